from datetime import date
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import DatabaseError
from django.test import TestCase
from rest_framework.test import APIClient

from challenges.models import ChallengeSubmission, LeagueChallenge
from entries.models import Entry
from leagues.models import League, LeagueMember, LeagueRole, Team

User = get_user_model()


class ApiFixtureMixin:
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.league = League.objects.create(
            name='API League',
            start_date=date(2026, 1, 1),
            end_date=date(2026, 1, 29),
            status='active',
        )
        self.team = Team.objects.create(league=self.league, name='Red')
        self.player = self.make_member('player@example.com', LeagueRole.PLAYER)
        self.captain = self.make_member('captain@example.com', LeagueRole.CAPTAIN)
        self.host = self.make_member('host@example.com', LeagueRole.HOST)

    def make_member(self, email, role):
        user = User.objects.create_user(email=email, password='pass')
        member = LeagueMember.objects.create(user=user, league=self.league, team=self.team)
        LeagueRole.objects.create(league=self.league, user=user, role=role)
        return member

    def submit(self, user, **overrides):
        payload = {
            'league_id': self.league.id,
            'date': '2026-01-05',
            'kind': 'workout',
            'workout_type': 'run',
            'duration': 45,
            'proof_url': 'https://example.com/proof.jpg',
        }
        payload.update(overrides)
        self.client.force_authenticate(user)
        return self.client.post('/api/entries/', payload, format='json')


class EntryApiTests(ApiFixtureMixin, TestCase):
    def test_submit_created(self):
        response = self.submit(self.player.user)

        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.data['success'])
        self.assertTrue(response.data['created'])
        self.assertEqual(response.data['data']['status'], 'pending')
        self.assertEqual(response.data['data']['rr_value'], 1.0)

    def test_duplicate_is_conflict(self):
        self.submit(self.player.user)
        response = self.submit(self.player.user)

        self.assertEqual(response.status_code, 409)
        self.assertFalse(response.data['success'])
        self.assertIn('already submitted', response.data['error'])

    def test_low_score_is_bad_request(self):
        response = self.submit(self.player.user, duration=20)
        self.assertEqual(response.status_code, 400)
        self.assertIn('at least 1.0', response.data['error'])

    def test_malformed_payload(self):
        response = self.submit(self.player.user, kind='nap')
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.data['success'])
        self.assertIn('kind', response.data['details'])

    def test_unauthenticated(self):
        response = self.client.post('/api/entries/', {}, format='json')
        self.assertIn(response.status_code, (401, 403))
        self.assertFalse(response.data['success'])

    def test_validate_and_reupload_flow(self):
        entry_id = self.submit(self.player.user).data['data']['id']

        self.client.force_authenticate(self.player.user)
        response = self.client.post(f'/api/entries/{entry_id}/validate/', {'status': 'approved'}, format='json')
        self.assertEqual(response.status_code, 403)

        self.client.force_authenticate(self.captain.user)
        response = self.client.post(
            f'/api/entries/{entry_id}/validate/',
            {'status': 'rejected', 'rejection_reason': 'Wrong screenshot'},
            format='json',
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data']['status'], 'rejected')

        self.client.force_authenticate(self.player.user)
        response = self.client.post(
            f'/api/entries/{entry_id}/reupload/', {'proof_url': 'https://example.com/new.jpg'}, format='json'
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['data']['reupload_of'], entry_id)

    def test_unknown_entry(self):
        self.client.force_authenticate(self.host.user)
        response = self.client.post('/api/entries/999999/validate/', {'status': 'approved'}, format='json')
        self.assertEqual(response.status_code, 404)

    def test_rest_day_stats(self):
        self.client.force_authenticate(self.player.user)
        response = self.client.get(f'/api/leagues/{self.league.id}/rest-days/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data']['totalAllowed'], 5)
        self.assertFalse(response.data['data']['isAtLimit'])

    def test_fractional_duration_accepted(self):
        response = self.submit(self.player.user, duration=47.5)

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['data']['duration'], 47.5)
        self.assertAlmostEqual(response.data['data']['rr_value'], 47.5 / 45)


class SubmissionListApiTests(ApiFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.entry_id = self.submit(self.player.user).data['data']['id']

    def test_host_lists_league_submissions(self):
        self.client.force_authenticate(self.host.user)
        response = self.client.get(f'/api/leagues/{self.league.id}/submissions/?status=pending')

        self.assertEqual(response.status_code, 200)
        data = response.data['data']
        self.assertEqual([row['id'] for row in data['submissions']], [self.entry_id])
        self.assertEqual(data['submissions'][0]['team_name'], 'Red')
        self.assertEqual(data['submissions'][0]['username'], 'player@example.com')
        self.assertEqual(data['stats']['pending'], 1)

    def test_player_cannot_list_league_submissions(self):
        self.client.force_authenticate(self.player.user)
        response = self.client.get(f'/api/leagues/{self.league.id}/submissions/')

        self.assertEqual(response.status_code, 403)
        self.assertFalse(response.data['success'])

    def test_captain_lists_team_queue_and_grades(self):
        self.client.force_authenticate(self.captain.user)
        response = self.client.get(f'/api/leagues/{self.league.id}/my-team/submissions/?status=pending')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data']['teamId'], self.team.id)
        pending_id = response.data['data']['submissions'][0]['id']
        response = self.client.post(f'/api/entries/{pending_id}/validate/', {'status': 'rejected'}, format='json')
        self.assertEqual(response.status_code, 200)

        self.client.force_authenticate(self.player.user)
        response = self.client.get(f'/api/leagues/{self.league.id}/my-submissions/?status=rejected')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data']['leagueMemberId'], self.player.id)
        self.assertEqual([row['id'] for row in response.data['data']['submissions']], [self.entry_id])

    def test_bad_status_filter(self):
        self.client.force_authenticate(self.player.user)
        response = self.client.get(f'/api/leagues/{self.league.id}/my-submissions/?status=archived')
        self.assertEqual(response.status_code, 400)


class LeaderboardApiTests(ApiFixtureMixin, TestCase):
    def test_leaderboard(self):
        Entry.objects.create(member=self.player, date=date(2026, 1, 5), kind=Entry.REST, rr_value=1.0,
                             status=Entry.APPROVED)
        self.client.force_authenticate(self.player.user)

        response = self.client.get(f'/api/leagues/{self.league.id}/leaderboard/')

        self.assertEqual(response.status_code, 200)
        data = response.data['data']
        self.assertEqual(data['teams'][0]['points'], 1)
        self.assertEqual(data['dateRange'], {'startDate': '2026-01-01', 'endDate': '2026-01-29'})

    def test_leaderboard_is_cached(self):
        self.client.force_authenticate(self.player.user)
        self.client.get(f'/api/leagues/{self.league.id}/leaderboard/')
        Entry.objects.create(member=self.player, date=date(2026, 1, 5), kind=Entry.REST, rr_value=1.0,
                             status=Entry.APPROVED)

        cached = self.client.get(f'/api/leagues/{self.league.id}/leaderboard/')
        fresh = self.client.get(f'/api/leagues/{self.league.id}/leaderboard/?full=true')

        self.assertEqual(cached.data['data']['teams'][0]['points'], 0)
        self.assertEqual(fresh.data['data']['teams'][0]['points'], 1)

    def test_unknown_league(self):
        self.client.force_authenticate(self.player.user)
        response = self.client.get('/api/leagues/999999/leaderboard/')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data, {'success': False, 'error': 'League not found'})

    def test_storage_failure_is_generic_503(self):
        self.client.force_authenticate(self.player.user)
        with mock.patch.object(Entry.objects, 'filter', side_effect=DatabaseError('disk I/O error')):
            response = self.client.get(f'/api/leagues/{self.league.id}/leaderboard/')

        self.assertEqual(response.status_code, 503)
        self.assertNotIn('disk', response.data['error'])

    def test_schema(self):
        self.client.force_authenticate(self.player.user)
        response = self.client.get('/api/schema/')
        self.assertEqual(response.status_code, 200)


class ChallengeApiTests(ApiFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.challenge = LeagueChallenge.objects.create(
            league=self.league, name='Team Plank', challenge_type=LeagueChallenge.TEAM, total_points=20
        )

    def test_submit_validate_and_rank(self):
        self.client.force_authenticate(self.player.user)
        response = self.client.post(
            f'/api/challenges/{self.challenge.id}/submissions/',
            {'proof_url': 'https://example.com/plank.jpg'},
            format='json',
        )
        self.assertEqual(response.status_code, 201)
        submission_id = response.data['data']['id']
        self.assertEqual(response.data['data']['team'], self.team.id)

        self.client.force_authenticate(self.captain.user)
        response = self.client.post(
            f'/api/challenge-submissions/{submission_id}/validate/', {'status': 'approved'}, format='json'
        )
        self.assertEqual(response.status_code, 403)

        self.client.force_authenticate(self.host.user)
        response = self.client.post(
            f'/api/challenge-submissions/{submission_id}/validate/',
            {'status': 'approved', 'awarded_points': 12},
            format='json',
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data']['awarded_points'], 12)

        response = self.client.get(f'/api/challenges/{self.challenge.id}/leaderboard/')
        self.assertEqual(response.data['data'], [{'rank': 1, 'id': self.team.id, 'name': 'Red', 'score': 12.0}])

    def test_over_maximum_points(self):
        submission = ChallengeSubmission.objects.create(
            league_challenge=self.challenge, member=self.player, proof_url='https://example.com/p.jpg'
        )
        self.client.force_authenticate(self.host.user)
        response = self.client.post(
            f'/api/challenge-submissions/{submission.id}/validate/',
            {'status': 'approved', 'awarded_points': 25},
            format='json',
        )
        self.assertEqual(response.status_code, 400)
