from datetime import date
from io import StringIO
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.db import DatabaseError
from django.test import TestCase, override_settings

from challenges.models import ChallengeSubmission, LeagueChallenge, SpecialChallenge, SpecialChallengeTeamScore, SubTeam
from core.exceptions import InfrastructureError, NotFound, ValidationFailed
from entries.models import Entry
from entries.services import SubmissionService
from leagues.models import League, LeagueMember, LeagueRole, Team
from .services import LeaderboardService

User = get_user_model()


class LeaderboardFixtureMixin:
    def setUp(self):
        self.league = League.objects.create(
            name='Autumn League',
            start_date=date(2026, 9, 1),
            end_date=date(2026, 9, 28),
            status='active',
        )
        self.team_a = Team.objects.create(league=self.league, name='Alpha')
        self.team_b = Team.objects.create(league=self.league, name='Bravo')
        self.alice = self.make_member('alice@example.com', self.team_a)
        self.amir = self.make_member('amir@example.com', self.team_a)
        self.bea = self.make_member('bea@example.com', self.team_b)

    def make_member(self, email, team):
        user = User.objects.create_user(email=email, password='pass')
        return LeagueMember.objects.create(user=user, league=self.league, team=team)

    def entry(self, member, day, rr_value=1.0, status=Entry.APPROVED, kind=Entry.WORKOUT):
        return Entry.objects.create(
            member=member,
            date=day,
            kind=kind,
            workout_type='run' if kind == Entry.WORKOUT else '',
            rr_value=rr_value,
            status=status,
        )


class TeamAggregationTests(LeaderboardFixtureMixin, TestCase):
    def test_binary_points_and_positive_average(self):
        self.entry(self.alice, date(2026, 9, 2), 1.0)
        self.entry(self.alice, date(2026, 9, 3), 1.5)
        self.entry(self.amir, date(2026, 9, 3), 0)
        self.entry(self.amir, date(2026, 9, 4), 1.8, status=Entry.PENDING)

        board = LeaderboardService.compute(self.league.id)
        alpha = next(team for team in board.teams if team.team_id == self.team_a.pk)

        self.assertEqual(alpha.points, 3)
        self.assertEqual(alpha.avg_rr, 1.25)
        self.assertEqual(alpha.submission_count, 4)
        self.assertEqual(alpha.member_count, 2)
        self.assertEqual(alpha.total_points, 3)

    def test_average_rounded_to_two_places(self):
        self.entry(self.bea, date(2026, 9, 2), 1.0)
        self.entry(self.bea, date(2026, 9, 3), 1.0)
        self.entry(self.bea, date(2026, 9, 4), 1.5)

        board = LeaderboardService.compute(self.league.id)
        bravo = next(team for team in board.teams if team.team_id == self.team_b.pk)

        self.assertEqual(bravo.avg_rr, 1.17)

    def test_points_outrank_average(self):
        self.entry(self.alice, date(2026, 9, 2), 1.0)
        self.entry(self.alice, date(2026, 9, 3), 1.0)
        self.entry(self.bea, date(2026, 9, 2), 2.0)

        board = LeaderboardService.compute(self.league.id)

        self.assertEqual([team.team_id for team in board.teams], [self.team_a.pk, self.team_b.pk])
        self.assertEqual([team.rank for team in board.teams], [1, 2])

    def test_average_breaks_ties(self):
        self.entry(self.alice, date(2026, 9, 2), 1.2)
        self.entry(self.bea, date(2026, 9, 2), 1.9)

        board = LeaderboardService.compute(self.league.id)

        self.assertEqual(board.teams[0].team_id, self.team_b.pk)

    def test_full_ties_get_sequential_ranks_deterministically(self):
        self.entry(self.alice, date(2026, 9, 2), 1.0)
        self.entry(self.bea, date(2026, 9, 2), 1.0)

        first = LeaderboardService.compute(self.league.id)
        second = LeaderboardService.compute(self.league.id)

        self.assertEqual([t.rank for t in first.teams], [1, 2])
        self.assertEqual(
            [(t.team_id, t.rank) for t in first.teams],
            [(t.team_id, t.rank) for t in second.teams],
        )
        self.assertEqual(
            [(i.member_id, i.rank) for i in first.individuals],
            [(i.member_id, i.rank) for i in second.individuals],
        )

    def test_unallocated_members_rank_individually_only(self):
        loner = self.make_member('loner@example.com', None)
        self.entry(loner, date(2026, 9, 2), 1.0)

        board = LeaderboardService.compute(self.league.id)

        self.assertTrue(all(team.points == 0 for team in board.teams))
        self.assertEqual(board.individuals[0].member_id, loner.pk)
        self.assertIsNone(board.individuals[0].team_name)


class WindowTests(LeaderboardFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.entry(self.alice, date(2026, 9, 2), 1.0)
        self.entry(self.alice, date(2026, 9, 20), 1.0)

    def test_explicit_window_filters_entries(self):
        board = LeaderboardService.compute(self.league.id, '2026-09-01', '2026-09-07')

        self.assertEqual(board.stats.total_submissions, 1)
        self.assertEqual(board.date_range.start_date, date(2026, 9, 1))

    def test_single_bound_means_no_filter(self):
        board = LeaderboardService.compute(self.league.id, '2026-09-01', None)

        self.assertEqual(board.stats.total_submissions, 2)
        self.assertEqual(board.to_dict()['dateRange'], {'startDate': '2026-09-01', 'endDate': '2026-09-28'})

    def test_malformed_date(self):
        with self.assertRaises(ValidationFailed):
            LeaderboardService.compute(self.league.id, '09/01/2026', '2026-09-07')

    def test_unknown_league(self):
        with self.assertRaises(NotFound):
            LeaderboardService.compute(999999)


class ChallengeMergeTests(LeaderboardFixtureMixin, TestCase):
    def approved(self, challenge, member, awarded_points=None, **kwargs):
        return ChallengeSubmission.objects.create(
            league_challenge=challenge,
            member=member,
            proof_url='https://example.com/proof.jpg',
            status=ChallengeSubmission.APPROVED,
            awarded_points=awarded_points,
            **kwargs
        )

    def test_individual_challenge_points_merge(self):
        self.entry(self.bea, date(2026, 9, 2), 1.0)
        challenge = LeagueChallenge.objects.create(league=self.league, name='Plank', total_points=5)
        self.approved(challenge, self.alice)

        board = LeaderboardService.compute(self.league.id)
        alpha = board.teams[0]

        self.assertEqual(alpha.team_id, self.team_a.pk)
        self.assertEqual(alpha.challenge_bonus, 5)
        self.assertEqual(alpha.total_points, 5)
        self.assertEqual(board.individuals[0].member_id, self.alice.pk)
        self.assertEqual(board.individuals[0].points, 5)
        self.assertEqual(board.challenge_individuals[0].points, 5)
        self.assertEqual(board.challenge_teams[0].team_id, self.team_a.pk)

    def test_explicit_zero_award_excluded(self):
        challenge = LeagueChallenge.objects.create(league=self.league, name='Plank', total_points=5)
        self.approved(challenge, self.alice, awarded_points=0)

        board = LeaderboardService.compute(self.league.id)

        self.assertTrue(all(team.challenge_bonus == 0 for team in board.teams))
        self.assertEqual(board.challenge_individuals, [])

    def test_legacy_bonus_added(self):
        catalog = SpecialChallenge.objects.create(name='Step Week', end_date=date(2026, 9, 6))
        SpecialChallengeTeamScore.objects.create(challenge=catalog, team=self.team_b, league=self.league, score=3)

        board = LeaderboardService.compute(self.league.id)
        bravo = board.teams[0]

        self.assertEqual(bravo.team_id, self.team_b.pk)
        self.assertEqual(bravo.challenge_bonus, 3)
        # Legacy bonus is not part of the challenge-only standings
        self.assertEqual(board.challenge_teams, [])

    def test_sub_teams_ranked_and_zero_rows_dropped(self):
        challenge = LeagueChallenge.objects.create(
            league=self.league, name='Relay', challenge_type=LeagueChallenge.SUB_TEAM, total_points=4
        )
        scoring = SubTeam.objects.create(league_challenge=challenge, team=self.team_a, name='Alpha 1')
        idle = SubTeam.objects.create(league_challenge=challenge, team=self.team_b, name='Bravo 1')
        self.approved(challenge, self.alice, sub_team=scoring)
        self.approved(challenge, self.bea, awarded_points=0, sub_team=idle)

        board = LeaderboardService.compute(self.league.id)

        self.assertEqual(len(board.sub_teams), 1)
        row = board.sub_teams[0]
        self.assertEqual((row.subteam_id, row.team_name, row.points, row.rank), (scoring.pk, 'Alpha', 4, 1))
        self.assertEqual(row.submission_count, 1)


class IndividualCapTests(LeaderboardFixtureMixin, TestCase):
    @override_settings(LEADERBOARD_INDIVIDUAL_LIMIT=2)
    def test_cap_and_full(self):
        self.assertEqual(len(LeaderboardService.compute(self.league.id).individuals), 2)
        self.assertEqual(len(LeaderboardService.compute(self.league.id, full=True).individuals), 3)


class StatsAndFailureTests(LeaderboardFixtureMixin, TestCase):
    def test_stats_block(self):
        self.entry(self.alice, date(2026, 9, 2), 1.5)
        self.entry(self.alice, date(2026, 9, 3), 0)
        self.entry(self.amir, date(2026, 9, 2), 1.0, status=Entry.PENDING)
        self.entry(self.bea, date(2026, 9, 2), 1.0, status=Entry.REJECTED)

        stats = LeaderboardService.compute(self.league.id).stats

        self.assertEqual(
            (stats.total_submissions, stats.approved, stats.pending, stats.rejected, stats.total_rr),
            (4, 2, 1, 1, 1.5),
        )

    def test_read_failure_is_loud(self):
        with mock.patch.object(Entry.objects, 'filter', side_effect=DatabaseError('connection lost')):
            with self.assertRaises(InfrastructureError) as ctx:
                LeaderboardService.compute(self.league.id)
        self.assertNotIn('connection lost', ctx.exception.message)

    def test_to_dict_shape(self):
        data = LeaderboardService.compute(self.league.id).to_dict()
        self.assertEqual(
            set(data),
            {'teams', 'subTeams', 'individuals', 'challengeTeams', 'challengeIndividuals',
             'stats', 'dateRange', 'league'},
        )
        self.assertEqual(data['league']['league_name'], 'Autumn League')


class ExemptionScoringTests(LeaderboardFixtureMixin, TestCase):
    def test_exemption_counts_only_once_approved(self):
        self.league.rest_days = 0
        self.league.save()
        host = self.make_member('host@example.com', None)
        LeagueRole.objects.create(league=self.league, user=host.user, role=LeagueRole.HOST)
        request, _ = SubmissionService.submit_entry(
            self.alice.user, self.league.id, {'date': '2026-09-02', 'kind': 'rest', 'notes': 'Sprained ankle'}
        )
        self.assertTrue(request.is_exemption_request)

        pending = LeaderboardService.compute(self.league.id)
        alpha = next(team for team in pending.teams if team.team_id == self.team_a.pk)
        self.assertEqual((alpha.points, alpha.submission_count), (0, 1))
        self.assertEqual(pending.stats.pending, 1)

        SubmissionService.validate_entry(host.user, request.id, Entry.APPROVED)

        approved = LeaderboardService.compute(self.league.id)
        alpha = next(team for team in approved.teams if team.team_id == self.team_a.pk)
        alice = next(row for row in approved.individuals if row.member_id == self.alice.pk)
        self.assertEqual(alpha.points, 1)
        self.assertEqual(alpha.avg_rr, 1.0)
        self.assertEqual(alice.points, 1)

    def test_rejected_exemption_earns_nothing(self):
        self.league.rest_days = 0
        self.league.save()
        host = self.make_member('host@example.com', None)
        LeagueRole.objects.create(league=self.league, user=host.user, role=LeagueRole.HOST)
        request, _ = SubmissionService.submit_entry(
            self.alice.user, self.league.id, {'date': '2026-09-02', 'kind': 'rest', 'notes': 'Busy week'}
        )

        SubmissionService.validate_entry(host.user, request.id, Entry.REJECTED, 'Not a valid reason')

        board = LeaderboardService.compute(self.league.id)
        self.assertTrue(all(team.points == 0 for team in board.teams))
        self.assertEqual(board.stats.rejected, 1)


class CalculateLeaderboardsCommandTests(LeaderboardFixtureMixin, TestCase):
    def test_prints_standings(self):
        self.entry(self.alice, date(2026, 9, 2), 1.0)
        out = StringIO()

        call_command('calculate_leaderboards', stdout=out)

        output = out.getvalue()
        self.assertIn('Autumn League', output)
        self.assertIn('#1 Alpha', output)
        self.assertIn('Successfully calculated 1 league leaderboards.', output)
