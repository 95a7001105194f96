from datetime import date

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase

from core.exceptions import NotFound
from .models import League, LeagueMember, LeagueRole, Team
from .services import LeagueService, RoleResolver

User = get_user_model()


class LeagueModelTests(TestCase):
    def setUp(self):
        self.league = League.objects.create(
            name='Summer League',
            start_date=date(2026, 6, 1),
            end_date=date(2026, 6, 29),
            rest_days=2,
        )

    def test_rest_day_budget(self):
        self.assertEqual(self.league.duration_weeks, 5)
        self.assertEqual(self.league.total_rest_days, 10)

    def test_clean_rejects_inverted_dates(self):
        self.league.end_date = date(2026, 5, 1)
        with self.assertRaises(ValidationError):
            self.league.clean()

    def test_member_team_must_share_league(self):
        other = League.objects.create(name='Other', start_date=date(2026, 6, 1), end_date=date(2026, 6, 29))
        foreign_team = Team.objects.create(league=other, name='Green')
        user = User.objects.create_user(email='p@example.com', password='pass')
        member = LeagueMember(user=user, league=self.league, team=foreign_team)
        with self.assertRaises(ValidationError):
            member.clean()


class RoleResolverTests(TestCase):
    def setUp(self):
        self.league = League.objects.create(name='Role League', start_date=date(2026, 6, 1), end_date=date(2026, 6, 29))
        self.red = Team.objects.create(league=self.league, name='Red')
        self.blue = Team.objects.create(league=self.league, name='Blue')
        self.user = User.objects.create_user(email='captain@example.com', password='pass')
        LeagueMember.objects.create(user=self.user, league=self.league, team=self.red)

    def test_captain_of_own_team_only(self):
        LeagueRole.objects.create(league=self.league, user=self.user, role=LeagueRole.CAPTAIN)

        roles = RoleResolver.for_user(self.user, self.league)

        self.assertTrue(roles.is_member)
        self.assertTrue(roles.is_captain_of(self.red.pk))
        self.assertFalse(roles.is_captain_of(self.blue.pk))
        self.assertFalse(roles.is_captain_of(None))
        self.assertFalse(roles.can_override)

    def test_multiple_roles(self):
        LeagueRole.objects.create(league=self.league, user=self.user, role=LeagueRole.CAPTAIN)
        LeagueRole.objects.create(league=self.league, user=self.user, role=LeagueRole.GOVERNOR)

        roles = RoleResolver.for_user(self.user, self.league.pk)

        self.assertTrue(roles.is_governor)
        self.assertTrue(roles.can_override)
        self.assertTrue(roles.is_captain)

    def test_roles_are_per_league(self):
        other = League.objects.create(name='Other', start_date=date(2026, 6, 1), end_date=date(2026, 6, 29))
        LeagueRole.objects.create(league=other, user=self.user, role=LeagueRole.HOST)

        roles = RoleResolver.for_user(self.user, self.league)

        self.assertFalse(roles.is_host)

    def test_deactivated_captain_loses_team(self):
        LeagueRole.objects.create(league=self.league, user=self.user, role=LeagueRole.CAPTAIN)
        LeagueMember.objects.filter(user=self.user, league=self.league).update(is_active=False)

        roles = RoleResolver.for_user(self.user, self.league)

        self.assertFalse(roles.is_member)
        self.assertFalse(roles.is_captain_of(self.red.pk))

    def test_outsider(self):
        outsider = User.objects.create_user(email='outsider@example.com', password='pass')
        roles = RoleResolver.for_user(outsider, self.league)
        self.assertFalse(roles.is_member)
        self.assertIsNone(roles.team_id)


class LeagueServiceTests(TestCase):
    def test_unknown_league(self):
        with self.assertRaises(NotFound):
            LeagueService.get_league(12345)

    def test_inactive_membership_ignored(self):
        league = League.objects.create(name='L', start_date=date(2026, 6, 1), end_date=date(2026, 6, 29))
        user = User.objects.create_user(email='gone@example.com', password='pass')
        LeagueMember.objects.create(user=user, league=league, is_active=False)
        self.assertIsNone(LeagueService.get_active_membership(user, league.pk))
