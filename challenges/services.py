"""League challenge scoring.

Approved challenge submissions are turned into point maps that the
leaderboard merges with workout points:

* individual challenges credit the member and roll up to the member's team
* team challenges credit the team stamped on the submission
* sub-team challenges credit the sub-team and roll up to the submitter's team

A submission is worth ``awarded_points`` when set (an explicit 0 stays 0),
otherwise the challenge's ``total_points``. Anything worth 0 or less is
ignored everywhere.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from core.exceptions import Conflict, Forbidden, InfrastructureError, NotFound, ValidationFailed
from core.services.date_utils import DateWindow
from leagues.models import League
from leagues.services import LeagueService, RoleResolver

from .models import (
    ChallengeSubmission,
    LeagueChallenge,
    SpecialChallengeIndividualScore,
    SpecialChallengeTeamScore,
    SubTeam,
)

logger = logging.getLogger(__name__)


def resolve_points(awarded_points: Optional[float], total_points: Optional[float]) -> float:
    """Points a submission is worth.

    Example:
        >>> resolve_points(None, 10)
        10.0
        >>> resolve_points(0, 10)
        0.0
    """
    if awarded_points is not None:
        return float(awarded_points)
    return float(total_points or 0)


@dataclass
class ChallengePoints:
    """Challenge point maps for one league, keyed by model id."""
    member_points: Dict[int, float] = field(default_factory=lambda: defaultdict(float))
    team_points: Dict[int, float] = field(default_factory=lambda: defaultdict(float))
    sub_team_points: Dict[int, float] = field(default_factory=lambda: defaultdict(float))
    sub_team_submission_counts: Dict[int, int] = field(default_factory=lambda: defaultdict(int))
    legacy_team_bonus: Dict[int, float] = field(default_factory=lambda: defaultdict(float))

    def team_bonus(self, team_id: int) -> float:
        """Legacy bonus plus challenge points for a team"""
        return self.legacy_team_bonus.get(team_id, 0.0) + self.team_points.get(team_id, 0.0)


@dataclass(frozen=True)
class ChallengeRanking:
    rank: int
    id: int
    name: str
    score: float
    team_name: Optional[str] = None

    def as_dict(self):
        data = {'rank': self.rank, 'id': self.id, 'name': self.name, 'score': self.score}
        if self.team_name is not None:
            data['teamName'] = self.team_name
        return data


class ChallengeScoreIntegrator:
    """Builds challenge point maps and per-challenge standings."""

    @staticmethod
    def collect(league: League, window: Optional[DateWindow] = None, today: Optional[date] = None) -> ChallengePoints:
        """Collect challenge points for ``league``.

        Args:
            league: League object
            window: explicit date window, or None to include every challenge
            today: date used for challenges without start or end dates

        Returns:
            ChallengePoints

        Raises:
            InfrastructureError: when a read fails
        """
        today = today or timezone.localdate()
        points = ChallengePoints()

        try:
            valid_team_ids = set(league.teams.values_list('id', flat=True))
            submissions = list(
                ChallengeSubmission.objects.filter(
                    league_challenge__league=league,
                    status=ChallengeSubmission.APPROVED,
                ).select_related('league_challenge', 'member')
            )
            linked_special_ids = set(
                league.challenges.filter(special_challenge__isnull=False).values_list('special_challenge_id', flat=True)
            )
            legacy_scores = list(
                SpecialChallengeTeamScore.objects.filter(league=league).select_related('challenge')
            )
        except DatabaseError as exc:
            logger.exception(f"Challenge lookup failed for league {league.pk}")
            raise InfrastructureError(str(exc)) from exc

        for sub in submissions:
            challenge = sub.league_challenge
            if window is not None:
                challenge_date = challenge.end_date or challenge.start_date or today
                if not window.contains(challenge_date):
                    logger.debug(f"Skipping challenge {challenge.pk}: {challenge_date} outside {window}")
                    continue

            value = resolve_points(sub.awarded_points, challenge.total_points)
            if value <= 0:
                logger.debug(f"Skipping challenge submission {sub.pk}: no points")
                continue

            member_team_id = sub.member.team_id if sub.member.team_id in valid_team_ids else None

            if challenge.challenge_type == LeagueChallenge.INDIVIDUAL:
                points.member_points[sub.member_id] += value
                if member_team_id:
                    points.team_points[member_team_id] += value
            elif challenge.challenge_type == LeagueChallenge.TEAM:
                if sub.team_id and sub.team_id in valid_team_ids:
                    points.team_points[sub.team_id] += value
            elif challenge.challenge_type == LeagueChallenge.SUB_TEAM and sub.sub_team_id:
                points.sub_team_points[sub.sub_team_id] += value
                points.sub_team_submission_counts[sub.sub_team_id] += 1
                if member_team_id:
                    points.team_points[member_team_id] += value

        for score in legacy_scores:
            # Linked catalog challenges are already counted from their submissions
            if score.challenge_id in linked_special_ids:
                continue
            end_date = score.challenge.end_date
            if window is not None and end_date is not None and not window.contains(end_date):
                continue
            points.legacy_team_bonus[score.team_id] += score.score or 0

        return points

    @staticmethod
    def challenge_rankings(challenge: LeagueChallenge) -> List[ChallengeRanking]:
        """Standings for one challenge, grouped by its type.

        Individual challenges rank members, team challenges rank teams and
        sub-team challenges rank sub-teams. Ranks are sequential.
        """
        try:
            submissions = list(
                challenge.submissions.filter(status=ChallengeSubmission.APPROVED)
                .select_related('member__user__profile', 'member__team', 'team', 'sub_team__team')
            )
        except DatabaseError as exc:
            logger.exception(f"Submission lookup failed for challenge {challenge.pk}")
            raise InfrastructureError(str(exc)) from exc

        scores: Dict[int, float] = defaultdict(float)
        names: Dict[int, str] = {}
        team_names: Dict[int, Optional[str]] = {}

        for sub in submissions:
            value = resolve_points(sub.awarded_points, challenge.total_points)
            if value <= 0:
                continue

            if challenge.challenge_type == LeagueChallenge.INDIVIDUAL:
                key = sub.member.user_id
                names[key] = sub.member.user.display_name
            elif challenge.challenge_type == LeagueChallenge.TEAM:
                team = sub.team or sub.member.team
                if team is None:
                    continue
                key = team.pk
                names[key] = team.name
            else:
                if sub.sub_team is None:
                    continue
                key = sub.sub_team.pk
                names[key] = sub.sub_team.name
                team_names[key] = sub.sub_team.team.name
            scores[key] += value

        ordered = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
        return [
            ChallengeRanking(
                rank=index,
                id=key,
                name=names[key],
                score=score,
                team_name=team_names.get(key),
            )
            for index, (key, score) in enumerate(ordered, start=1)
        ]

    @staticmethod
    def rankings_for_user(user, challenge_id) -> List[ChallengeRanking]:
        challenge = ChallengeSubmissionService.get_challenge(challenge_id)
        if LeagueService.get_active_membership(user, challenge.league_id) is None:
            raise Forbidden("You are not a member of this league")
        return ChallengeScoreIntegrator.challenge_rankings(challenge)


class ChallengeSubmissionService:
    """Proof submission and review for league challenges."""

    @staticmethod
    def get_challenge(challenge_id) -> LeagueChallenge:
        try:
            return LeagueChallenge.objects.select_related('league', 'special_challenge').get(pk=challenge_id)
        except (LeagueChallenge.DoesNotExist, ValueError, TypeError):
            raise NotFound("Challenge not found")
        except DatabaseError as exc:
            logger.exception(f"Challenge lookup failed for {challenge_id}")
            raise InfrastructureError(str(exc)) from exc

    @staticmethod
    def submit_proof(user, challenge_id, proof_url: str) -> ChallengeSubmission:
        """Submit proof for a league challenge.

        Team challenges record the member's team; sub-team challenges record
        the sub-team the member was placed in.

        Raises:
            NotFound, Forbidden, ValidationFailed, Conflict
        """
        challenge = ChallengeSubmissionService.get_challenge(challenge_id)
        member = LeagueService.get_active_membership(user, challenge.league_id)
        if member is None:
            raise Forbidden("You are not a member of this league")
        if challenge.is_closed:
            raise ValidationFailed("Challenge is closed")
        if not proof_url:
            raise ValidationFailed("proof_url is required")

        team = None
        sub_team = None
        if challenge.challenge_type == LeagueChallenge.TEAM and member.team and \
                member.team.league_id == challenge.league_id:
            team = member.team
        elif challenge.challenge_type == LeagueChallenge.SUB_TEAM:
            sub_team = SubTeam.objects.filter(league_challenge=challenge, members=member).first()
            if sub_team is None:
                raise ValidationFailed("You have not been placed in a sub-team for this challenge")

        try:
            with transaction.atomic():
                submission = ChallengeSubmission.objects.create(
                    league_challenge=challenge,
                    member=member,
                    team=team,
                    sub_team=sub_team,
                    proof_url=proof_url,
                )
        except IntegrityError:
            raise Conflict("You already submitted for this challenge")
        except DatabaseError as exc:
            logger.exception(f"Challenge submission failed for member {member.pk}")
            raise InfrastructureError(str(exc)) from exc

        logger.info(f"Member {member.pk} submitted proof for challenge {challenge.pk}")
        return submission

    @staticmethod
    def validate(reviewer, submission_id, status: str, awarded_points: Optional[float] = None) -> ChallengeSubmission:
        """Approve or reject a challenge submission (hosts and governors only).

        Approval awards ``awarded_points`` when given, otherwise the
        challenge total. Rejection clears any awarded points.
        """
        if status not in (ChallengeSubmission.APPROVED, ChallengeSubmission.REJECTED):
            raise ValidationFailed("status must be approved or rejected")

        with transaction.atomic():
            submission = (
                ChallengeSubmission.objects.select_for_update()
                .select_related('league_challenge__special_challenge', 'member')
                .filter(pk=submission_id)
                .first()
            )
            if submission is None:
                raise NotFound("Submission not found")

            challenge = submission.league_challenge
            roles = RoleResolver.for_user(reviewer, challenge.league_id)
            if not roles.can_override:
                raise Forbidden("Only hosts and governors can validate challenge submissions")

            if status == ChallengeSubmission.APPROVED:
                if awarded_points is not None:
                    awarded_points = float(awarded_points)
                    if awarded_points < 0:
                        raise ValidationFailed("awarded_points must be >= 0")
                    if challenge.total_points is not None and awarded_points > challenge.total_points:
                        raise ValidationFailed("awarded_points cannot exceed challenge total points")
                submission.awarded_points = resolve_points(awarded_points, challenge.total_points)
                if submission.awarded_points <= 0:
                    logger.warning(f"Challenge submission {submission.pk} approved with no points")

                if challenge.challenge_type == LeagueChallenge.TEAM and not submission.team_id \
                        and submission.member.team_id:
                    submission.team_id = submission.member.team_id
            else:
                submission.awarded_points = None

            submission.status = status
            submission.reviewed_by = reviewer
            submission.reviewed_at = timezone.now()
            submission.save()

            ChallengeSubmissionService.sync_special_challenge_scores(challenge)

        logger.info(
            f"Challenge submission {submission.pk} {status} by user {reviewer.pk} "
            f"(points={submission.awarded_points})"
        )
        return submission

    @staticmethod
    def sync_special_challenge_scores(challenge: LeagueChallenge) -> None:
        """Refresh the catalog score tables from approved submissions.

        Only challenges created from a catalog challenge are synced. Team
        totals include every challenge type; individual totals only
        individual challenges.
        """
        if challenge.special_challenge_id is None:
            return

        submissions = challenge.submissions.filter(
            status=ChallengeSubmission.APPROVED
        ).select_related('member')

        team_totals: Dict[int, float] = defaultdict(float)
        member_totals: Dict[int, float] = defaultdict(float)
        for sub in submissions:
            value = resolve_points(sub.awarded_points, challenge.total_points)
            if value <= 0:
                continue
            team_id = sub.team_id or sub.member.team_id
            if team_id:
                team_totals[team_id] += value
            member_totals[sub.member_id] += value

        for team_id, score in team_totals.items():
            SpecialChallengeTeamScore.objects.update_or_create(
                challenge_id=challenge.special_challenge_id,
                team_id=team_id,
                defaults={'league_id': challenge.league_id, 'score': score},
            )
        SpecialChallengeTeamScore.objects.filter(
            challenge_id=challenge.special_challenge_id,
            league_id=challenge.league_id,
        ).exclude(team_id__in=list(team_totals)).delete()

        if challenge.challenge_type == LeagueChallenge.INDIVIDUAL:
            for member_id, score in member_totals.items():
                SpecialChallengeIndividualScore.objects.update_or_create(
                    challenge_id=challenge.special_challenge_id,
                    member_id=member_id,
                    defaults={'league_id': challenge.league_id, 'score': score},
                )
            SpecialChallengeIndividualScore.objects.filter(
                challenge_id=challenge.special_challenge_id,
                league_id=challenge.league_id,
            ).exclude(member_id__in=list(member_totals)).delete()

        logger.info(
            f"Synced catalog scores for challenge {challenge.pk}: "
            f"{len(team_totals)} teams, {len(member_totals)} members"
        )
