"""League lookups and role resolution.

All "is host / is governor / is captain" questions go through
``RoleResolver.for_user`` so every authorization gate reads the same
answer for a (user, league) pair.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from django.db import DatabaseError

from core.exceptions import InfrastructureError, NotFound
from .models import League, LeagueMember, LeagueRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeagueRoles:
    """Typed role set for one user in one league."""
    league_id: int
    user_id: int
    roles: FrozenSet[str] = field(default_factory=frozenset)
    member: Optional[LeagueMember] = None

    @property
    def is_member(self) -> bool:
        return self.member is not None

    @property
    def is_host(self) -> bool:
        return LeagueRole.HOST in self.roles

    @property
    def is_governor(self) -> bool:
        return LeagueRole.GOVERNOR in self.roles

    @property
    def is_captain(self) -> bool:
        return LeagueRole.CAPTAIN in self.roles

    @property
    def can_override(self) -> bool:
        """Hosts and governors may grade or re-grade any submission"""
        return self.is_host or self.is_governor

    @property
    def team_id(self) -> Optional[int]:
        return self.member.team_id if self.member else None

    def is_captain_of(self, team_id: Optional[int]) -> bool:
        """Captain role plus membership of the given team"""
        return bool(team_id) and self.is_captain and self.team_id == team_id


class RoleResolver:
    """Resolves league roles for a user."""

    @staticmethod
    def for_user(user, league) -> LeagueRoles:
        """Get the typed role set for ``user`` in ``league``.

        Args:
            user: Django User object
            league: League object or league id

        Returns:
            LeagueRoles with the user's membership (if any) and role names

        Example:
            >>> roles = RoleResolver.for_user(request.user, league)
            >>> if roles.can_override:
            ...     print("host or governor")
        """
        league_id = getattr(league, 'pk', league)
        try:
            role_names = frozenset(
                LeagueRole.objects.filter(league_id=league_id, user=user).values_list('role', flat=True)
            )
            member = LeagueMember.objects.filter(
                league_id=league_id, user=user, is_active=True
            ).select_related('team').first()
        except DatabaseError as exc:
            logger.exception(f"Role lookup failed for user {user.pk} in league {league_id}")
            raise InfrastructureError(str(exc)) from exc

        return LeagueRoles(league_id=league_id, user_id=user.pk, roles=role_names, member=member)


class LeagueService:
    """Lookups shared by the entry, challenge and leaderboard services."""

    @staticmethod
    def get_league(league_id) -> League:
        try:
            return League.objects.get(pk=league_id)
        except (League.DoesNotExist, ValueError, TypeError):
            raise NotFound("League not found")
        except DatabaseError as exc:
            logger.exception(f"League lookup failed for {league_id}")
            raise InfrastructureError(str(exc)) from exc

    @staticmethod
    def get_active_membership(user, league_id) -> Optional[LeagueMember]:
        """The user's active membership in the league, or None"""
        try:
            return LeagueMember.objects.filter(
                user=user, league_id=league_id, is_active=True
            ).select_related('league', 'team').first()
        except DatabaseError as exc:
            logger.exception(f"Membership lookup failed for user {user.pk} in league {league_id}")
            raise InfrastructureError(str(exc)) from exc
