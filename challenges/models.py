from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from leagues.models import League, LeagueMember, Team


class SpecialChallenge(models.Model):
    """Catalog challenge that league challenges may be created from.

    Team and individual totals for it are kept in the score tables below,
    which older leagues were scored from directly.
    """
    name = models.CharField(max_length=120, unique=True)
    description = models.TextField(blank=True)
    challenge_type = models.CharField(max_length=20, blank=True, default="")
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True, help_text="Bonus counts in windows containing this date")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class SpecialChallengeTeamScore(models.Model):
    challenge = models.ForeignKey(SpecialChallenge, on_delete=models.CASCADE, related_name="team_scores")
    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name="special_challenge_scores")
    league = models.ForeignKey(League, on_delete=models.CASCADE, related_name="special_challenge_team_scores")
    score = models.FloatField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["challenge", "team"], name="unique_special_challenge_team"),
        ]

    def __str__(self):
        return f"{self.team.name} - {self.challenge.name}: {self.score}"


class SpecialChallengeIndividualScore(models.Model):
    challenge = models.ForeignKey(SpecialChallenge, on_delete=models.CASCADE, related_name="individual_scores")
    member = models.ForeignKey(LeagueMember, on_delete=models.CASCADE, related_name="special_challenge_scores")
    league = models.ForeignKey(League, on_delete=models.CASCADE,
                               related_name="special_challenge_individual_scores")
    score = models.FloatField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["challenge", "member"], name="unique_special_challenge_member"),
        ]

    def __str__(self):
        return f"{self.member} - {self.challenge.name}: {self.score}"


class LeagueChallenge(models.Model):
    """A challenge run inside one league, scored from approved proof submissions"""
    INDIVIDUAL = "individual"
    TEAM = "team"
    SUB_TEAM = "sub_team"
    CHALLENGE_TYPE_CHOICES = [
        (INDIVIDUAL, "Individual"),
        (TEAM, "Team"),
        (SUB_TEAM, "Sub-team"),
    ]

    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"
    STATUS_CHOICES = [
        (DRAFT, "Draft"),
        (ACTIVE, "Active"),
        (CLOSED, "Closed"),
    ]

    league = models.ForeignKey(League, on_delete=models.CASCADE, related_name="challenges")
    special_challenge = models.ForeignKey(SpecialChallenge, on_delete=models.SET_NULL, null=True, blank=True,
                                          related_name="league_challenges",
                                          help_text="Catalog challenge this was created from (optional)")
    name = models.CharField(max_length=120)
    description = models.TextField(blank=True)
    challenge_type = models.CharField(max_length=20, choices=CHALLENGE_TYPE_CHOICES, default=INDIVIDUAL)
    total_points = models.FloatField(default=0, help_text="Points awarded per approved submission unless overridden")
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["start_date", "created_at"]

    def __str__(self):
        return f"{self.name} ({self.league.name})"

    @property
    def is_closed(self):
        return self.status == self.CLOSED

    def clean(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({'end_date': 'End date must be after start date.'})
        if self.total_points is not None and self.total_points < 0:
            raise ValidationError({'total_points': 'Total points cannot be negative.'})


class SubTeam(models.Model):
    """Group of members from one team competing in a sub-team challenge"""
    league_challenge = models.ForeignKey(LeagueChallenge, on_delete=models.CASCADE, related_name="sub_teams")
    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name="sub_teams")
    name = models.CharField(max_length=120)
    members = models.ManyToManyField(LeagueMember, related_name="sub_teams", blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.team.name})"


class ChallengeSubmission(models.Model):
    """A member's proof for a league challenge; one per member and challenge"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (APPROVED, "Approved"),
        (REJECTED, "Rejected"),
    ]

    league_challenge = models.ForeignKey(LeagueChallenge, on_delete=models.CASCADE, related_name="submissions")
    member = models.ForeignKey(LeagueMember, on_delete=models.CASCADE, related_name="challenge_submissions")
    team = models.ForeignKey(Team, on_delete=models.SET_NULL, null=True, blank=True,
                             related_name="challenge_submissions")
    sub_team = models.ForeignKey(SubTeam, on_delete=models.SET_NULL, null=True, blank=True,
                                 related_name="submissions")
    proof_url = models.URLField(max_length=500)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=PENDING)
    awarded_points = models.FloatField(null=True, blank=True,
                                       help_text="Overrides the challenge total when set; 0 means no points")
    reviewed_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                    related_name="+")
    reviewed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["league_challenge", "member"], name="unique_challenge_submission_member"),
        ]

    def __str__(self):
        return f"{self.member} - {self.league_challenge.name} ({self.status})"
