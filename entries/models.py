from django.conf import settings
from django.db import models
from django.db.models import Q

from core.services.rr_calculator import WorkoutMetrics
from leagues.models import LeagueMember


class Entry(models.Model):
    """A member's workout or rest-day submission for one calendar day.

    At most one pending or approved entry exists per (member, date); rejected
    rows stay in place and may be replaced or re-uploaded.
    """
    WORKOUT = "workout"
    REST = "rest"
    KIND_CHOICES = [
        (WORKOUT, "Workout"),
        (REST, "Rest day"),
    ]

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (APPROVED, "Approved"),
        (REJECTED, "Rejected"),
    ]

    REASON_NONE = "none"
    REASON_EXEMPTION = "exemption_request"
    SUBMISSION_REASON_CHOICES = [
        (REASON_NONE, "None"),
        (REASON_EXEMPTION, "Rest day exemption request"),
    ]

    member = models.ForeignKey(LeagueMember, on_delete=models.CASCADE, related_name="entries")
    date = models.DateField(help_text="Calendar day the entry is for")
    kind = models.CharField(max_length=10, choices=KIND_CHOICES)
    workout_type = models.CharField(max_length=40, blank=True, default="",
                                    help_text="Subtype such as run, cycling, steps, golf, gym, yoga")
    duration = models.FloatField(null=True, blank=True, help_text="Minutes")
    distance = models.FloatField(null=True, blank=True, help_text="Kilometres")
    steps = models.PositiveIntegerField(null=True, blank=True)
    holes = models.PositiveSmallIntegerField(null=True, blank=True)
    rr_value = models.FloatField(default=0.0, help_text="Normalised score between 0.0 and 2.0")
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=PENDING)
    proof_url = models.URLField(max_length=500, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    submission_reason = models.CharField(max_length=20, choices=SUBMISSION_REASON_CHOICES, default=REASON_NONE)
    rejection_reason = models.TextField(blank=True, default="")
    reupload_of = models.ForeignKey("self", on_delete=models.SET_NULL, null=True, blank=True,
                                    related_name="reuploads",
                                    help_text="Rejected entry this submission replaces")
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name="+")
    created_at = models.DateTimeField(auto_now_add=True)
    modified_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                    related_name="+")
    modified_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "entries"
        ordering = ["-date", "-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["member", "date"],
                condition=Q(status__in=["pending", "approved"]),
                name="unique_active_entry_per_member_day",
            ),
        ]
        indexes = [
            models.Index(fields=["member", "date"], name="entries_ent_member__3f1c2a_idx"),
            models.Index(fields=["status"], name="entries_ent_status_8b7d4e_idx"),
        ]

    def __str__(self):
        return f"{self.member.user.email} - {self.date} {self.kind} ({self.status})"

    @property
    def metrics(self):
        return WorkoutMetrics(
            duration=self.duration,
            distance=self.distance,
            steps=self.steps,
            holes=self.holes,
        )

    @property
    def is_exemption_request(self):
        return self.submission_reason == self.REASON_EXEMPTION
