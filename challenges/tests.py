from datetime import date

from django.contrib.auth import get_user_model
from django.test import TestCase

from core.exceptions import Conflict, Forbidden, ValidationFailed
from core.services.date_utils import DateWindow
from leagues.models import League, LeagueMember, LeagueRole, Team
from .models import (
    ChallengeSubmission,
    LeagueChallenge,
    SpecialChallenge,
    SpecialChallengeIndividualScore,
    SpecialChallengeTeamScore,
    SubTeam,
)
from .services import ChallengeScoreIntegrator, ChallengeSubmissionService, resolve_points

User = get_user_model()


class ChallengeFixtureMixin:
    def setUp(self):
        self.league = League.objects.create(
            name='Spring League',
            start_date=date(2026, 3, 1),
            end_date=date(2026, 3, 29),
            status='active',
        )
        self.red = Team.objects.create(league=self.league, name='Red')
        self.blue = Team.objects.create(league=self.league, name='Blue')
        self.alice = self.make_member('alice@example.com', self.red)
        self.bob = self.make_member('bob@example.com', self.blue)
        self.host = self.make_member('host@example.com', None, LeagueRole.HOST)

    def make_member(self, email, team, role=None):
        user = User.objects.create_user(email=email, password='pass')
        member = LeagueMember.objects.create(user=user, league=self.league, team=team)
        if role:
            LeagueRole.objects.create(league=self.league, user=user, role=role)
        return member

    def make_challenge(self, challenge_type=LeagueChallenge.INDIVIDUAL, total_points=10, **kwargs):
        return LeagueChallenge.objects.create(
            league=self.league,
            name=kwargs.pop('name', f'{challenge_type} challenge'),
            challenge_type=challenge_type,
            total_points=total_points,
            **kwargs
        )

    def approved(self, challenge, member, awarded_points=None, **kwargs):
        return ChallengeSubmission.objects.create(
            league_challenge=challenge,
            member=member,
            proof_url='https://example.com/proof.jpg',
            status=ChallengeSubmission.APPROVED,
            awarded_points=awarded_points,
            **kwargs
        )


class ResolvePointsTests(TestCase):
    def test_unset_falls_back_to_total(self):
        self.assertEqual(resolve_points(None, 10), 10.0)

    def test_explicit_zero_is_kept(self):
        self.assertEqual(resolve_points(0, 10), 0.0)

    def test_missing_total(self):
        self.assertEqual(resolve_points(None, None), 0.0)


class CollectTests(ChallengeFixtureMixin, TestCase):
    def test_individual_challenge_credits_member_and_team(self):
        challenge = self.make_challenge()
        self.approved(challenge, self.alice)

        points = ChallengeScoreIntegrator.collect(self.league)

        self.assertEqual(points.member_points[self.alice.pk], 10)
        self.assertEqual(points.team_points[self.red.pk], 10)
        self.assertNotIn(self.blue.pk, points.team_points)

    def test_explicit_zero_award_excluded(self):
        challenge = self.make_challenge()
        self.approved(challenge, self.alice, awarded_points=0)

        points = ChallengeScoreIntegrator.collect(self.league)

        self.assertNotIn(self.alice.pk, points.member_points)
        self.assertNotIn(self.red.pk, points.team_points)

    def test_pending_submissions_ignored(self):
        challenge = self.make_challenge()
        ChallengeSubmission.objects.create(
            league_challenge=challenge, member=self.alice, proof_url='https://example.com/p.jpg'
        )
        points = ChallengeScoreIntegrator.collect(self.league)
        self.assertEqual(dict(points.member_points), {})

    def test_team_challenge_credits_stamped_team_only(self):
        challenge = self.make_challenge(LeagueChallenge.TEAM, total_points=20)
        self.approved(challenge, self.alice, awarded_points=15, team=self.red)

        points = ChallengeScoreIntegrator.collect(self.league)

        self.assertEqual(points.team_points[self.red.pk], 15)
        self.assertNotIn(self.alice.pk, points.member_points)

    def test_team_from_other_league_ignored(self):
        other = League.objects.create(name='Other', start_date=date(2026, 3, 1), end_date=date(2026, 3, 29))
        stranger_team = Team.objects.create(league=other, name='Green')
        challenge = self.make_challenge(LeagueChallenge.TEAM)
        self.approved(challenge, self.alice, team=stranger_team)

        points = ChallengeScoreIntegrator.collect(self.league)

        self.assertEqual(dict(points.team_points), {})

    def test_sub_team_challenge_rolls_up_to_team(self):
        challenge = self.make_challenge(LeagueChallenge.SUB_TEAM, total_points=5)
        sub_team = SubTeam.objects.create(league_challenge=challenge, team=self.red, name='Red Runners')
        sub_team.members.add(self.alice)
        self.approved(challenge, self.alice, sub_team=sub_team)

        points = ChallengeScoreIntegrator.collect(self.league)

        self.assertEqual(points.sub_team_points[sub_team.pk], 5)
        self.assertEqual(points.sub_team_submission_counts[sub_team.pk], 1)
        self.assertEqual(points.team_points[self.red.pk], 5)
        self.assertNotIn(self.alice.pk, points.member_points)

    def test_window_filters_by_challenge_end_date(self):
        inside = self.make_challenge(name='Inside', start_date=date(2026, 3, 1), end_date=date(2026, 3, 7))
        outside = self.make_challenge(name='Outside', start_date=date(2026, 3, 20), end_date=date(2026, 3, 27))
        self.approved(inside, self.alice)
        self.approved(outside, self.bob)

        window = DateWindow(date(2026, 3, 1), date(2026, 3, 10))
        points = ChallengeScoreIntegrator.collect(self.league, window)

        self.assertIn(self.alice.pk, points.member_points)
        self.assertNotIn(self.bob.pk, points.member_points)

    def test_undated_challenge_uses_today(self):
        challenge = self.make_challenge()
        self.approved(challenge, self.alice)
        window = DateWindow(date(2026, 3, 1), date(2026, 3, 10))

        included = ChallengeScoreIntegrator.collect(self.league, window, today=date(2026, 3, 5))
        excluded = ChallengeScoreIntegrator.collect(self.league, window, today=date(2026, 4, 5))

        self.assertIn(self.alice.pk, included.member_points)
        self.assertNotIn(self.alice.pk, excluded.member_points)

    def test_legacy_team_bonus_summed(self):
        catalog = SpecialChallenge.objects.create(name='Hydration Week', end_date=date(2026, 3, 8))
        SpecialChallengeTeamScore.objects.create(challenge=catalog, team=self.blue, league=self.league, score=7)

        points = ChallengeScoreIntegrator.collect(self.league)
        self.assertEqual(points.legacy_team_bonus[self.blue.pk], 7)
        self.assertEqual(points.team_bonus(self.blue.pk), 7)

        window = DateWindow(date(2026, 3, 15), date(2026, 3, 29))
        self.assertNotIn(self.blue.pk, ChallengeScoreIntegrator.collect(self.league, window).legacy_team_bonus)


class ChallengeRankingTests(ChallengeFixtureMixin, TestCase):
    def test_individual_rankings(self):
        challenge = self.make_challenge()
        self.approved(challenge, self.alice, awarded_points=4)
        self.approved(challenge, self.bob)

        rankings = ChallengeScoreIntegrator.challenge_rankings(challenge)

        self.assertEqual([r.id for r in rankings], [self.bob.user_id, self.alice.user_id])
        self.assertEqual([r.rank for r in rankings], [1, 2])
        self.assertEqual(rankings[0].score, 10)

    def test_sub_team_rankings_carry_team_name(self):
        challenge = self.make_challenge(LeagueChallenge.SUB_TEAM)
        sub_team = SubTeam.objects.create(league_challenge=challenge, team=self.red, name='Red Walkers')
        self.approved(challenge, self.alice, sub_team=sub_team)

        ranking = ChallengeScoreIntegrator.challenge_rankings(challenge)[0]

        self.assertEqual(ranking.name, 'Red Walkers')
        self.assertEqual(ranking.as_dict()['teamName'], 'Red')


class SubmitProofTests(ChallengeFixtureMixin, TestCase):
    def test_team_challenge_stamps_team(self):
        challenge = self.make_challenge(LeagueChallenge.TEAM)
        submission = ChallengeSubmissionService.submit_proof(
            self.alice.user, challenge.id, 'https://example.com/team.jpg'
        )
        self.assertEqual(submission.team, self.red)
        self.assertEqual(submission.status, ChallengeSubmission.PENDING)

    def test_sub_team_resolved_from_membership(self):
        challenge = self.make_challenge(LeagueChallenge.SUB_TEAM)
        sub_team = SubTeam.objects.create(league_challenge=challenge, team=self.red, name='Red Walkers')
        sub_team.members.add(self.alice)

        submission = ChallengeSubmissionService.submit_proof(
            self.alice.user, challenge.id, 'https://example.com/walk.jpg'
        )

        self.assertEqual(submission.sub_team, sub_team)

    def test_one_submission_per_member(self):
        challenge = self.make_challenge()
        ChallengeSubmissionService.submit_proof(self.alice.user, challenge.id, 'https://example.com/a.jpg')
        with self.assertRaises(Conflict):
            ChallengeSubmissionService.submit_proof(self.alice.user, challenge.id, 'https://example.com/b.jpg')

    def test_closed_challenge_refuses(self):
        challenge = self.make_challenge(status=LeagueChallenge.CLOSED)
        with self.assertRaises(ValidationFailed):
            ChallengeSubmissionService.submit_proof(self.alice.user, challenge.id, 'https://example.com/a.jpg')

    def test_non_member_forbidden(self):
        challenge = self.make_challenge()
        outsider = User.objects.create_user(email='outsider@example.com', password='pass')
        with self.assertRaises(Forbidden):
            ChallengeSubmissionService.submit_proof(outsider, challenge.id, 'https://example.com/a.jpg')


class ValidateSubmissionTests(ChallengeFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.catalog = SpecialChallenge.objects.create(name='Plank Month')
        self.challenge = self.make_challenge(special_challenge=self.catalog)
        self.submission = ChallengeSubmissionService.submit_proof(
            self.alice.user, self.challenge.id, 'https://example.com/plank.jpg'
        )

    def test_host_approval_defaults_to_total(self):
        submission = ChallengeSubmissionService.validate(
            self.host.user, self.submission.id, ChallengeSubmission.APPROVED
        )
        self.assertEqual(submission.awarded_points, 10)
        self.assertEqual(submission.reviewed_by, self.host.user)
        self.assertIsNotNone(submission.reviewed_at)

    def test_explicit_zero_award_stays_zero(self):
        submission = ChallengeSubmissionService.validate(
            self.host.user, self.submission.id, ChallengeSubmission.APPROVED, awarded_points=0
        )
        self.assertEqual(submission.awarded_points, 0)
        self.assertNotIn(self.alice.pk, ChallengeScoreIntegrator.collect(self.league).member_points)

    def test_points_out_of_bounds(self):
        with self.assertRaises(ValidationFailed):
            ChallengeSubmissionService.validate(
                self.host.user, self.submission.id, ChallengeSubmission.APPROVED, awarded_points=11
            )
        with self.assertRaises(ValidationFailed):
            ChallengeSubmissionService.validate(
                self.host.user, self.submission.id, ChallengeSubmission.APPROVED, awarded_points=-1
            )

    def test_player_forbidden(self):
        with self.assertRaises(Forbidden):
            ChallengeSubmissionService.validate(
                self.bob.user, self.submission.id, ChallengeSubmission.APPROVED
            )

    def test_rejection_clears_points(self):
        ChallengeSubmissionService.validate(self.host.user, self.submission.id, ChallengeSubmission.APPROVED)
        submission = ChallengeSubmissionService.validate(
            self.host.user, self.submission.id, ChallengeSubmission.REJECTED
        )
        self.assertIsNone(submission.awarded_points)

    def test_catalog_scores_synced(self):
        ChallengeSubmissionService.validate(
            self.host.user, self.submission.id, ChallengeSubmission.APPROVED, awarded_points=6
        )
        self.assertEqual(
            SpecialChallengeTeamScore.objects.get(challenge=self.catalog, team=self.red).score, 6
        )
        self.assertEqual(
            SpecialChallengeIndividualScore.objects.get(challenge=self.catalog, member=self.alice).score, 6
        )

        ChallengeSubmissionService.validate(self.host.user, self.submission.id, ChallengeSubmission.REJECTED)
        self.assertFalse(SpecialChallengeTeamScore.objects.filter(challenge=self.catalog).exists())
        self.assertFalse(SpecialChallengeIndividualScore.objects.filter(challenge=self.catalog).exists())

    def test_synced_catalog_scores_not_double_counted(self):
        ChallengeSubmissionService.validate(self.host.user, self.submission.id, ChallengeSubmission.APPROVED)
        points = ChallengeScoreIntegrator.collect(self.league)
        self.assertEqual(points.team_bonus(self.red.pk), 10)
