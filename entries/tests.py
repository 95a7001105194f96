from datetime import date
from unittest import mock
from celery.exceptions import Retry

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone

from core.exceptions import Conflict, Forbidden, InfrastructureError, NotFound, ValidationFailed
from leagues.models import League, LeagueMember, LeagueRole, Team
from .models import Entry
from .services import RestDayService, ReviewQueueService, SubmissionService
from .tasks import auto_assign_rest_days_task

User = get_user_model()


class EntryFixtureMixin:
    def setUp(self):
        self.league = League.objects.create(
            name='Winter League',
            start_date=date(2026, 1, 1),
            end_date=date(2026, 1, 29),
            status='active',
            rest_days=1,
        )
        self.red = Team.objects.create(league=self.league, name='Red')
        self.blue = Team.objects.create(league=self.league, name='Blue')

        self.player = self.make_member('player@example.com', self.red)
        self.teammate = self.make_member('teammate@example.com', self.red)
        self.captain = self.make_member('captain@example.com', self.red, LeagueRole.CAPTAIN)
        self.other_captain = self.make_member('blue-captain@example.com', self.blue, LeagueRole.CAPTAIN)
        self.host = self.make_member('host@example.com', None, LeagueRole.HOST)

    def make_member(self, email, team, role=None):
        user = User.objects.create_user(email=email, password='pass')
        member = LeagueMember.objects.create(user=user, league=self.league, team=team)
        if role:
            LeagueRole.objects.create(league=self.league, user=user, role=role)
        return member

    def workout(self, day='2026-01-05', **overrides):
        data = {
            'date': day,
            'kind': 'workout',
            'workout_type': 'run',
            'duration': 60,
            'proof_url': 'https://example.com/proof.jpg',
        }
        data.update(overrides)
        return data


class SubmitEntryTests(EntryFixtureMixin, TestCase):
    def test_workout_created_pending_with_score(self):
        entry, created = SubmissionService.submit_entry(self.player.user, self.league.id, self.workout())

        self.assertTrue(created)
        self.assertEqual(entry.status, Entry.PENDING)
        self.assertAlmostEqual(entry.rr_value, 60 / 45)
        self.assertEqual(entry.created_by, self.player.user)

    def test_long_run_is_capped(self):
        entry, _ = SubmissionService.submit_entry(self.player.user, self.league.id, self.workout(duration=90))
        self.assertEqual(entry.rr_value, 2.0)

    def test_second_submission_same_day_conflicts(self):
        SubmissionService.submit_entry(self.player.user, self.league.id, self.workout())

        with self.assertRaises(Conflict):
            SubmissionService.submit_entry(self.player.user, self.league.id, self.workout())
        self.assertEqual(Entry.objects.filter(member=self.player).count(), 1)

    def test_rejected_entry_is_replaced_in_place(self):
        entry, _ = SubmissionService.submit_entry(self.player.user, self.league.id, self.workout())
        SubmissionService.validate_entry(self.captain.user, entry.id, Entry.REJECTED, 'Blurry proof')

        replaced, created = SubmissionService.submit_entry(
            self.player.user, self.league.id, self.workout(duration=50, proof_url='')
        )

        self.assertFalse(created)
        self.assertEqual(replaced.pk, entry.pk)
        self.assertEqual(replaced.status, Entry.PENDING)
        self.assertEqual(replaced.rejection_reason, '')
        # Proof carried over from the replaced row
        self.assertEqual(replaced.proof_url, 'https://example.com/proof.jpg')

    def test_workout_without_proof_rejected(self):
        with self.assertRaises(ValidationFailed):
            SubmissionService.submit_entry(self.player.user, self.league.id, self.workout(proof_url=''))

    def test_workout_below_minimum_score_rejected(self):
        data = self.workout(workout_type='steps', duration=None, steps=5000)
        with self.assertRaises(ValidationFailed):
            SubmissionService.submit_entry(self.player.user, self.league.id, data)
        self.assertFalse(Entry.objects.exists())

    def test_zero_steps_workout_rejected(self):
        data = self.workout(workout_type='steps', duration=None, steps=0)
        with self.assertRaises(ValidationFailed):
            SubmissionService.submit_entry(self.player.user, self.league.id, data)
        self.assertFalse(Entry.objects.exists())

    def test_age_relaxes_step_thresholds(self):
        profile = self.player.user.profile
        profile.date_of_birth = date(timezone.localdate().year - 70, 1, 1)
        profile.save()

        data = self.workout(workout_type='steps', duration=None, steps=7500)
        entry, _ = SubmissionService.submit_entry(self.player.user, self.league.id, data)

        self.assertAlmostEqual(entry.rr_value, 1.5)

    def test_non_member_forbidden(self):
        outsider = User.objects.create_user(email='outsider@example.com', password='pass')
        with self.assertRaises(Forbidden):
            SubmissionService.submit_entry(outsider, self.league.id, self.workout())

    def test_unknown_league_not_found(self):
        with self.assertRaises(NotFound):
            SubmissionService.submit_entry(self.player.user, 999999, self.workout())

    def test_bad_date_rejected(self):
        with self.assertRaises(ValidationFailed):
            SubmissionService.submit_entry(self.player.user, self.league.id, self.workout(day='05/01/2026'))

    def test_timestamp_date_truncated(self):
        entry, _ = SubmissionService.submit_entry(
            self.player.user, self.league.id, self.workout(day='2026-01-05T21:15:00Z')
        )
        self.assertEqual(entry.date, date(2026, 1, 5))


class ReuploadTests(EntryFixtureMixin, TestCase):
    def test_reject_reupload_approve(self):
        original, _ = SubmissionService.submit_entry(self.player.user, self.league.id, self.workout())
        SubmissionService.validate_entry(self.captain.user, original.id, Entry.REJECTED, 'Wrong day')

        reupload = SubmissionService.reupload_entry(
            self.player.user, original.id, {'proof_url': 'https://example.com/new.jpg'}
        )

        self.assertNotEqual(reupload.pk, original.pk)
        self.assertEqual(reupload.reupload_of, original)
        self.assertEqual(reupload.status, Entry.PENDING)
        self.assertEqual(reupload.date, original.date)
        self.assertEqual(reupload.proof_url, 'https://example.com/new.jpg')

        approved = SubmissionService.validate_entry(self.captain.user, reupload.id, Entry.APPROVED)
        self.assertEqual(approved.status, Entry.APPROVED)
        original.refresh_from_db()
        self.assertEqual(original.status, Entry.REJECTED)

    def test_only_rejected_entries_can_be_reuploaded(self):
        entry, _ = SubmissionService.submit_entry(self.player.user, self.league.id, self.workout())
        with self.assertRaises(ValidationFailed):
            SubmissionService.reupload_entry(self.player.user, entry.id, {})

    def test_only_owner_can_reupload(self):
        entry, _ = SubmissionService.submit_entry(self.player.user, self.league.id, self.workout())
        SubmissionService.validate_entry(self.captain.user, entry.id, Entry.REJECTED)
        with self.assertRaises(Forbidden):
            SubmissionService.reupload_entry(self.teammate.user, entry.id, {})

    def test_second_reupload_conflicts_while_first_is_active(self):
        entry, _ = SubmissionService.submit_entry(self.player.user, self.league.id, self.workout())
        SubmissionService.validate_entry(self.captain.user, entry.id, Entry.REJECTED)
        SubmissionService.reupload_entry(self.player.user, entry.id, {})

        with self.assertRaises(Conflict):
            SubmissionService.reupload_entry(self.player.user, entry.id, {})


class ValidateEntryTests(EntryFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.entry, _ = SubmissionService.submit_entry(self.player.user, self.league.id, self.workout())

    def test_captain_grades_own_team(self):
        entry = SubmissionService.validate_entry(self.captain.user, self.entry.id, Entry.APPROVED)
        self.assertEqual(entry.status, Entry.APPROVED)
        self.assertEqual(entry.modified_by, self.captain.user)

    def test_captain_of_other_team_forbidden(self):
        with self.assertRaises(Forbidden):
            SubmissionService.validate_entry(self.other_captain.user, self.entry.id, Entry.APPROVED)

    def test_player_forbidden(self):
        with self.assertRaises(Forbidden):
            SubmissionService.validate_entry(self.teammate.user, self.entry.id, Entry.APPROVED)

    def test_captain_cannot_grade_own_entry(self):
        own, _ = SubmissionService.submit_entry(self.captain.user, self.league.id, self.workout())
        with self.assertRaises(Forbidden):
            SubmissionService.validate_entry(self.captain.user, own.id, Entry.APPROVED)

    def test_deactivated_captain_forbidden(self):
        LeagueMember.objects.filter(pk=self.captain.pk).update(is_active=False)
        with self.assertRaises(Forbidden):
            SubmissionService.validate_entry(self.captain.user, self.entry.id, Entry.APPROVED)

    def test_captain_cannot_regrade(self):
        SubmissionService.validate_entry(self.captain.user, self.entry.id, Entry.APPROVED)
        with self.assertRaises(Forbidden):
            SubmissionService.validate_entry(self.captain.user, self.entry.id, Entry.REJECTED)

    def test_host_can_override(self):
        SubmissionService.validate_entry(self.captain.user, self.entry.id, Entry.REJECTED, 'No proof')
        entry = SubmissionService.validate_entry(self.host.user, self.entry.id, Entry.APPROVED)
        self.assertEqual(entry.status, Entry.APPROVED)
        self.assertEqual(entry.rejection_reason, '')

    def test_override_conflicts_with_active_reupload(self):
        SubmissionService.validate_entry(self.captain.user, self.entry.id, Entry.REJECTED)
        SubmissionService.reupload_entry(self.player.user, self.entry.id, {})

        with self.assertRaises(Conflict):
            SubmissionService.validate_entry(self.host.user, self.entry.id, Entry.APPROVED)
        self.entry.refresh_from_db()
        self.assertEqual(self.entry.status, Entry.REJECTED)

    def test_invalid_status(self):
        with self.assertRaises(ValidationFailed):
            SubmissionService.validate_entry(self.host.user, self.entry.id, 'pending')

    def test_unknown_entry(self):
        with self.assertRaises(NotFound):
            SubmissionService.validate_entry(self.host.user, 999999, Entry.APPROVED)


class ReviewQueueTests(EntryFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.red_entry, _ = SubmissionService.submit_entry(self.player.user, self.league.id, self.workout())
        self.blue_member = self.make_member('blue@example.com', self.blue)
        self.blue_entry, _ = SubmissionService.submit_entry(self.blue_member.user, self.league.id, self.workout())

    def test_host_sees_whole_league(self):
        listing = ReviewQueueService.league_entries(self.host.user, self.league.id)

        self.assertEqual({e.pk for e in listing.entries}, {self.red_entry.pk, self.blue_entry.pk})
        self.assertEqual(listing.stats, {'total': 2, 'pending': 2, 'approved': 0, 'rejected': 0})

    def test_host_filters_by_team_and_status(self):
        SubmissionService.validate_entry(self.host.user, self.blue_entry.id, Entry.APPROVED)

        by_team = ReviewQueueService.league_entries(self.host.user, self.league.id, team_id=self.blue.pk)
        pending = ReviewQueueService.league_entries(self.host.user, self.league.id, status=Entry.PENDING)

        self.assertEqual([e.pk for e in by_team.entries], [self.blue_entry.pk])
        self.assertEqual([e.pk for e in pending.entries], [self.red_entry.pk])

    def test_captain_cannot_list_whole_league(self):
        with self.assertRaises(Forbidden):
            ReviewQueueService.league_entries(self.captain.user, self.league.id)

    def test_captain_sees_own_team_only(self):
        own, _ = SubmissionService.submit_entry(self.captain.user, self.league.id, self.workout())

        listing = ReviewQueueService.team_entries(self.captain.user, self.league.id)

        self.assertEqual({e.pk for e in listing.entries}, {self.red_entry.pk, own.pk})
        self.assertEqual(listing.member, self.captain)

    def test_player_cannot_list_team(self):
        with self.assertRaises(Forbidden):
            ReviewQueueService.team_entries(self.teammate.user, self.league.id)

    def test_host_without_team_cannot_list_team(self):
        with self.assertRaises(Forbidden):
            ReviewQueueService.team_entries(self.host.user, self.league.id)

    def test_member_sees_rejection_and_reupload(self):
        SubmissionService.validate_entry(self.captain.user, self.red_entry.id, Entry.REJECTED, 'Blurry proof')
        reupload = SubmissionService.reupload_entry(self.player.user, self.red_entry.id, {})
        SubmissionService.submit_entry(self.player.user, self.league.id, self.workout('2026-01-09'))

        rejected = ReviewQueueService.my_entries(self.player.user, self.league.id, status=Entry.REJECTED)
        week_one = ReviewQueueService.my_entries(self.player.user, self.league.id, end_date='2026-01-07')

        self.assertEqual([e.pk for e in rejected.entries], [self.red_entry.pk])
        self.assertEqual(rejected.entries[0].rejection_reason, 'Blurry proof')
        self.assertEqual({e.pk for e in week_one.entries}, {self.red_entry.pk, reupload.pk})
        self.assertEqual(
            next(e for e in week_one.entries if e.pk == reupload.pk).reupload_of_id, self.red_entry.pk
        )

    def test_outsider_cannot_list_own_entries(self):
        outsider = User.objects.create_user(email='outsider@example.com', password='pass')
        with self.assertRaises(Forbidden):
            ReviewQueueService.my_entries(outsider, self.league.id)

    def test_unknown_status_rejected(self):
        with self.assertRaises(ValidationFailed):
            ReviewQueueService.my_entries(self.player.user, self.league.id, status='archived')


class RestDayTests(EntryFixtureMixin, TestCase):
    def rest(self, day, notes=''):
        return {'date': day, 'kind': 'rest', 'notes': notes}

    def test_budget_spread_over_league_weeks(self):
        stats = RestDayService.stats(self.player)
        self.assertEqual(stats.total_allowed, 5)
        self.assertEqual(stats.remaining, 5)
        self.assertFalse(stats.is_at_limit)

    def test_rest_day_scores_one(self):
        entry, _ = SubmissionService.submit_entry(self.player.user, self.league.id, self.rest('2026-01-06'))
        self.assertEqual(entry.rr_value, 1.0)
        self.assertEqual(entry.submission_reason, Entry.REASON_NONE)

    def test_stats_count_used_and_pending(self):
        approved, _ = SubmissionService.submit_entry(self.player.user, self.league.id, self.rest('2026-01-06'))
        SubmissionService.validate_entry(self.captain.user, approved.id, Entry.APPROVED)
        SubmissionService.submit_entry(self.player.user, self.league.id, self.rest('2026-01-07'))

        stats = RestDayService.stats(self.player)
        self.assertEqual(stats.used, 1)
        self.assertEqual(stats.pending, 1)
        self.assertEqual(stats.remaining, 3)

    def test_over_budget_needs_justification(self):
        self.league.rest_days = 0
        self.league.save()

        with self.assertRaises(ValidationFailed):
            SubmissionService.submit_entry(self.player.user, self.league.id, self.rest('2026-01-06'))

        entry, _ = SubmissionService.submit_entry(
            self.player.user, self.league.id, self.rest('2026-01-06', notes='Recovering from flu')
        )
        self.assertTrue(entry.is_exemption_request)
        self.assertEqual(entry.status, Entry.PENDING)
        self.assertEqual(RestDayService.stats(self.player).exemptions_pending, 1)

    def test_exemption_stays_outside_budget_through_review(self):
        self.league.rest_days = 0
        self.league.save()
        approved, _ = SubmissionService.submit_entry(
            self.player.user, self.league.id, self.rest('2026-01-06', notes='Recovering from flu')
        )
        rejected, _ = SubmissionService.submit_entry(
            self.player.user, self.league.id, self.rest('2026-01-07', notes='Travel day')
        )

        stats = RestDayService.stats(self.player)
        self.assertEqual((stats.used, stats.pending, stats.exemptions_pending), (0, 0, 2))

        SubmissionService.validate_entry(self.captain.user, approved.id, Entry.APPROVED)
        SubmissionService.validate_entry(self.captain.user, rejected.id, Entry.REJECTED, 'Not a valid reason')

        stats = RestDayService.stats(self.player)
        self.assertEqual((stats.used, stats.pending, stats.exemptions_pending), (0, 0, 0))
        self.assertEqual(stats.remaining, 0)
        approved.refresh_from_db()
        self.assertEqual(approved.status, Entry.APPROVED)
        self.assertTrue(approved.is_exemption_request)
        self.assertEqual(approved.rr_value, 1.0)


class AutoRestDayTests(EntryFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.league.auto_rest_day_enabled = True
        self.league.save()

    def test_members_without_entry_get_rest_day(self):
        SubmissionService.submit_entry(self.player.user, self.league.id, self.workout('2026-01-05'))

        result = SubmissionService.auto_assign_rest_days(date(2026, 1, 5))

        self.assertEqual(result['processed'], 5)
        self.assertEqual(result['assigned'], 4)
        rest = Entry.objects.get(member=self.teammate, date=date(2026, 1, 5))
        self.assertEqual(rest.kind, Entry.REST)
        self.assertEqual(rest.status, Entry.APPROVED)

    def test_second_run_assigns_nothing(self):
        SubmissionService.auto_assign_rest_days(date(2026, 1, 5))
        result = SubmissionService.auto_assign_rest_days(date(2026, 1, 5))
        self.assertEqual(result['assigned'], 0)

    def test_exhausted_budget_skipped(self):
        self.league.rest_days = 0
        self.league.save()
        result = SubmissionService.auto_assign_rest_days(date(2026, 1, 5))
        self.assertEqual(result['assigned'], 0)

    def test_outside_league_dates_skipped(self):
        result = SubmissionService.auto_assign_rest_days(date(2026, 3, 1))
        self.assertEqual(result['processed'], 0)

    @mock.patch('entries.tasks.RedisLock')
    def test_task_skips_when_locked(self, lock_cls):
        lock_cls.return_value.__enter__.return_value = False
        result = auto_assign_rest_days_task('2026-01-05')
        self.assertEqual(result['status'], 'skipped')
        self.assertFalse(Entry.objects.exists())

    @mock.patch('entries.tasks.RedisLock')
    def test_task_assigns_under_lock(self, lock_cls):
        lock_cls.return_value.__enter__.return_value = True
        result = auto_assign_rest_days_task('2026-01-05')
        self.assertEqual(result['status'], 'success')
        self.assertEqual(result['assigned'], 5)

    @mock.patch('entries.tasks.RedisLock')
    def test_task_retries_when_budget_read_fails(self, lock_cls):
        lock_cls.return_value.__enter__.return_value = True
        failure = InfrastructureError('connection lost')
        with mock.patch.object(RestDayService, 'stats', side_effect=failure), \
                mock.patch.object(auto_assign_rest_days_task, 'retry', side_effect=Retry()) as retry:
            with self.assertRaises(Retry):
                auto_assign_rest_days_task('2026-01-05')

        retry.assert_called_once_with(exc=failure, countdown=60)
        self.assertFalse(Entry.objects.exists())
