"""League leaderboard aggregation.

Every call re-reads the league from the database and recomputes the
rankings; nothing is cached here. Response caching lives in the API view.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import DatabaseError

from challenges.models import SubTeam
from challenges.services import ChallengePoints, ChallengeScoreIntegrator
from core.exceptions import InfrastructureError
from core.services.date_utils import DateRangeService, DateWindow
from entries.models import Entry
from leagues.models import League
from leagues.services import LeagueService

logger = logging.getLogger(__name__)

DEFAULT_INDIVIDUAL_LIMIT = 50


@dataclass
class TeamRanking:
    team_id: int
    team_name: str
    points: int = 0
    challenge_bonus: float = 0
    total_points: float = 0
    avg_rr: float = 0
    member_count: int = 0
    submission_count: int = 0
    rank: int = 0


@dataclass
class IndividualRanking:
    member_id: int
    user_id: int
    username: str
    team_id: Optional[int]
    team_name: Optional[str]
    points: float = 0
    avg_rr: float = 0
    submission_count: int = 0
    rank: int = 0


@dataclass
class SubTeamRanking:
    subteam_id: int
    subteam_name: str
    team_id: Optional[int]
    team_name: Optional[str]
    points: float = 0
    submission_count: int = 0
    rank: int = 0


@dataclass
class LeaderboardStats:
    total_submissions: int = 0
    approved: int = 0
    pending: int = 0
    rejected: int = 0
    total_rr: float = 0


@dataclass
class Leaderboard:
    league: League
    date_range: DateWindow
    teams: List[TeamRanking] = field(default_factory=list)
    sub_teams: List[SubTeamRanking] = field(default_factory=list)
    individuals: List[IndividualRanking] = field(default_factory=list)
    challenge_teams: List[TeamRanking] = field(default_factory=list)
    challenge_individuals: List[IndividualRanking] = field(default_factory=list)
    stats: LeaderboardStats = field(default_factory=LeaderboardStats)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'teams': [asdict(row) for row in self.teams],
            'subTeams': [asdict(row) for row in self.sub_teams],
            'individuals': [asdict(row) for row in self.individuals],
            'challengeTeams': [asdict(row) for row in self.challenge_teams],
            'challengeIndividuals': [asdict(row) for row in self.challenge_individuals],
            'stats': asdict(self.stats),
            'dateRange': {
                'startDate': self.date_range.start_date.isoformat(),
                'endDate': self.date_range.end_date.isoformat(),
            },
            'league': {
                'league_id': self.league.pk,
                'league_name': self.league.name,
                'start_date': self.league.start_date.isoformat(),
                'end_date': self.league.end_date.isoformat(),
            },
        }


class _Tally:
    """Running approved-entry count and positive-score average"""
    __slots__ = ('points', 'rr_total', 'rr_count', 'submissions')

    def __init__(self):
        self.points = 0
        self.rr_total = 0.0
        self.rr_count = 0
        self.submissions = 0

    def add(self, status: str, rr_value: Optional[float]):
        self.submissions += 1
        if status != Entry.APPROVED:
            return
        self.points += 1
        if rr_value and rr_value > 0:
            self.rr_total += rr_value
            self.rr_count += 1

    @property
    def avg_rr(self) -> float:
        if not self.rr_count:
            return 0
        return round(self.rr_total / self.rr_count, 2)


def _rank(rows):
    for index, row in enumerate(rows, start=1):
        row.rank = index
    return rows


class LeaderboardService:
    """Computes team, sub-team and individual standings for a league."""

    @staticmethod
    def individual_limit() -> int:
        return getattr(settings, 'LEADERBOARD_INDIVIDUAL_LIMIT', DEFAULT_INDIVIDUAL_LIMIT)

    @staticmethod
    def compute(league_id, start_date=None, end_date=None, full: bool = False) -> Leaderboard:
        """Compute the leaderboard for a league.

        Entries are only filtered when both ``start_date`` and ``end_date``
        are given; a single bound means the whole league.

        Args:
            league_id: League id
            start_date: YYYY-MM-DD string or date
            end_date: YYYY-MM-DD string or date
            full: return every individual instead of the top 50

        Returns:
            Leaderboard

        Raises:
            NotFound: unknown league
            ValidationFailed: malformed dates
            InfrastructureError: any read failed

        Example:
            >>> board = LeaderboardService.compute(league.id, '2026-01-01', '2026-01-07')
            >>> board.teams[0].rank
            1
        """
        league = LeagueService.get_league(league_id)
        window = DateRangeService.resolve_window(start_date, end_date)

        try:
            teams = list(league.teams.order_by('pk'))
            members = list(
                league.members.select_related('user__profile', 'team').order_by('pk')
            )
            entries = Entry.objects.filter(member__league=league)
            if window is not None:
                entries = entries.filter(date__gte=window.start_date, date__lte=window.end_date)
            entry_rows = list(entries.values_list('member_id', 'status', 'rr_value'))
        except DatabaseError as exc:
            logger.exception(f"Leaderboard read failed for league {league.pk}")
            raise InfrastructureError(str(exc)) from exc

        challenge_points = ChallengeScoreIntegrator.collect(league, window)
        sub_teams = LeaderboardService._load_sub_teams(challenge_points)

        valid_team_ids = {team.pk for team in teams}
        member_team = {member.pk: member.team_id for member in members}
        team_members: Dict[int, int] = defaultdict(int)
        for member in members:
            if member.team_id in valid_team_ids:
                team_members[member.team_id] += 1

        team_tallies: Dict[int, _Tally] = defaultdict(_Tally)
        member_tallies: Dict[int, _Tally] = defaultdict(_Tally)
        stats = LeaderboardStats()

        for member_id, status, rr_value in entry_rows:
            stats.total_submissions += 1
            if status == Entry.APPROVED:
                stats.approved += 1
                if rr_value and rr_value > 0:
                    stats.total_rr += rr_value
            elif status == Entry.PENDING:
                stats.pending += 1
            elif status == Entry.REJECTED:
                stats.rejected += 1

            member_tallies[member_id].add(status, rr_value)
            team_id = member_team.get(member_id)
            if team_id in valid_team_ids:
                team_tallies[team_id].add(status, rr_value)
        stats.total_rr = round(stats.total_rr, 2)

        team_rows = []
        challenge_team_rows = []
        for team in teams:
            tally = team_tallies[team.pk]
            bonus = challenge_points.team_bonus(team.pk)
            team_rows.append(TeamRanking(
                team_id=team.pk,
                team_name=team.name,
                points=tally.points,
                challenge_bonus=bonus,
                total_points=tally.points + bonus,
                avg_rr=tally.avg_rr,
                member_count=team_members[team.pk],
                submission_count=tally.submissions,
            ))
            team_challenge = challenge_points.team_points.get(team.pk, 0)
            if team_challenge > 0:
                challenge_team_rows.append(TeamRanking(
                    team_id=team.pk,
                    team_name=team.name,
                    points=team_challenge,
                    total_points=team_challenge,
                    member_count=team_members[team.pk],
                ))

        team_names = {team.pk: team.name for team in teams}
        individual_rows = []
        challenge_individual_rows = []
        for member in members:
            tally = member_tallies[member.pk]
            member_challenge = challenge_points.member_points.get(member.pk, 0)
            common = dict(
                member_id=member.pk,
                user_id=member.user_id,
                username=member.user.display_name,
                team_id=member.team_id,
                team_name=team_names.get(member.team_id),
            )
            individual_rows.append(IndividualRanking(
                points=tally.points + member_challenge,
                avg_rr=tally.avg_rr,
                submission_count=tally.submissions,
                **common
            ))
            if member_challenge > 0:
                challenge_individual_rows.append(IndividualRanking(points=member_challenge, **common))

        team_rows.sort(key=lambda row: (-row.total_points, -row.avg_rr))
        individual_rows.sort(key=lambda row: (-row.points, -row.avg_rr))
        challenge_team_rows.sort(key=lambda row: -row.total_points)
        challenge_individual_rows.sort(key=lambda row: -row.points)

        sub_team_rows = [
            SubTeamRanking(
                subteam_id=sub_team.pk,
                subteam_name=sub_team.name,
                team_id=sub_team.team_id,
                team_name=sub_team.team.name,
                points=challenge_points.sub_team_points[sub_team.pk],
                submission_count=challenge_points.sub_team_submission_counts.get(sub_team.pk, 0),
            )
            for sub_team in sub_teams
            if challenge_points.sub_team_points.get(sub_team.pk, 0) > 0
        ]
        sub_team_rows.sort(key=lambda row: -row.points)

        limit = LeaderboardService.individual_limit()
        individuals = _rank(individual_rows)
        if not full:
            individuals = individuals[:limit]

        board = Leaderboard(
            league=league,
            date_range=window or DateWindow(league.start_date, league.end_date),
            teams=_rank(team_rows),
            sub_teams=_rank(sub_team_rows),
            individuals=individuals,
            challenge_teams=_rank(challenge_team_rows),
            challenge_individuals=_rank(challenge_individual_rows)[:limit],
            stats=stats,
        )
        logger.info(
            f"Computed leaderboard for league {league.pk}: {len(board.teams)} teams, "
            f"{len(individual_rows)} members, {stats.total_submissions} entries"
            f"{f' between {window.start_date} and {window.end_date}' if window else ''}"
        )
        return board

    @staticmethod
    def _load_sub_teams(challenge_points: ChallengePoints) -> List[SubTeam]:
        sub_team_ids = [pk for pk, value in challenge_points.sub_team_points.items() if value > 0]
        if not sub_team_ids:
            return []
        try:
            return list(SubTeam.objects.filter(pk__in=sub_team_ids).select_related('team').order_by('pk'))
        except DatabaseError as exc:
            logger.exception("Sub-team lookup failed")
            raise InfrastructureError(str(exc)) from exc
