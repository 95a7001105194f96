from datetime import date

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from core.services.date_utils import DateRangeService


class League(models.Model):
    """A time-boxed team fitness competition"""
    STATUS_CHOICES = [
        ("scheduled", "Scheduled"),
        ("active", "Active"),
        ("ended", "Ended"),
        ("completed", "Completed"),
        ("cancelled", "Cancelled"),
    ]

    name = models.CharField(max_length=120, unique=True)
    description = models.TextField(blank=True)
    start_date = models.DateField(help_text="League start date")
    end_date = models.DateField(help_text="League end date")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="scheduled")
    is_active = models.BooleanField(default=True)
    rest_days = models.PositiveSmallIntegerField(default=1, help_text="Rest days allowed per week (0-7)")
    auto_rest_day_enabled = models.BooleanField(
        default=False,
        help_text="Automatically log an approved rest day for members who miss a day and still have budget"
    )
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name="created_leagues")
    created_at = models.DateTimeField(auto_now_add=True)
    modified_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                    related_name="modified_leagues")
    modified_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["start_date", "name"]

    def __str__(self):
        return self.name

    @property
    def is_currently_running(self):
        today = date.today()
        return self.start_date <= today <= self.end_date

    @property
    def duration_weeks(self):
        """Weeks the rest-day budget is spread over"""
        return DateRangeService.league_weeks(self.start_date, self.end_date)

    @property
    def total_rest_days(self):
        """Rest days each member may take over the whole league"""
        return self.rest_days * self.duration_weeks

    def clean(self):
        if self.end_date and self.start_date and self.end_date < self.start_date:
            raise ValidationError({'end_date': 'End date must be after start date.'})
        if self.rest_days is not None and self.rest_days > 7:
            raise ValidationError({'rest_days': 'A week has at most 7 rest days.'})


class Team(models.Model):
    """Named group of members competing inside one league"""
    league = models.ForeignKey(League, on_delete=models.CASCADE, related_name="teams")
    name = models.CharField(max_length=120)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.league.name})"


class LeagueMember(models.Model):
    """A user's participation record in one league.

    ``team`` is null while the member sits in the allocation bucket.
    Members are deactivated rather than deleted.
    """
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="league_memberships")
    league = models.ForeignKey(League, on_delete=models.CASCADE, related_name="members")
    team = models.ForeignKey(Team, on_delete=models.SET_NULL, null=True, blank=True, related_name="members")
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name="+")
    created_at = models.DateTimeField(auto_now_add=True)
    modified_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                    related_name="+")
    modified_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "league"], name="unique_user_league"),
        ]
        ordering = ["league", "created_at"]

    def __str__(self):
        return f"{self.user.email} - {self.league.name}"

    def clean(self):
        if self.team_id and self.team.league_id != self.league_id:
            raise ValidationError({'team': 'Team belongs to a different league.'})


class LeagueRole(models.Model):
    """Role assignment for a user within a league (a user may hold several)"""
    HOST = "host"
    GOVERNOR = "governor"
    CAPTAIN = "captain"
    PLAYER = "player"
    ROLE_CHOICES = [
        (HOST, "Host"),
        (GOVERNOR, "Governor"),
        (CAPTAIN, "Captain"),
        (PLAYER, "Player"),
    ]

    league = models.ForeignKey(League, on_delete=models.CASCADE, related_name="role_assignments")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="league_roles")
    role = models.CharField(max_length=20, choices=ROLE_CHOICES)
    assigned_at = models.DateTimeField(auto_now_add=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name="+")

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["league", "user", "role"], name="unique_league_user_role"),
        ]
        ordering = ["league", "role"]

    def __str__(self):
        return f"{self.user.email} - {self.get_role_display()} ({self.league.name})"
