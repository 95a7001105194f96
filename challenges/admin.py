from django.contrib import admin
from .models import (
    ChallengeSubmission,
    LeagueChallenge,
    SpecialChallenge,
    SpecialChallengeIndividualScore,
    SpecialChallengeTeamScore,
    SubTeam,
)


@admin.register(SpecialChallenge)
class SpecialChallengeAdmin(admin.ModelAdmin):
    list_display = ["name", "challenge_type", "start_date", "end_date"]
    search_fields = ["name", "description"]


@admin.register(LeagueChallenge)
class LeagueChallengeAdmin(admin.ModelAdmin):
    list_display = ["name", "league", "challenge_type", "total_points", "status", "start_date", "end_date"]
    list_filter = ["league", "challenge_type", "status"]
    search_fields = ["name", "league__name"]
    date_hierarchy = "start_date"


@admin.register(SubTeam)
class SubTeamAdmin(admin.ModelAdmin):
    list_display = ["name", "team", "league_challenge"]
    list_filter = ["league_challenge__league", "team"]
    search_fields = ["name", "team__name"]
    filter_horizontal = ["members"]


@admin.register(ChallengeSubmission)
class ChallengeSubmissionAdmin(admin.ModelAdmin):
    list_display = ["member", "league_challenge", "status", "awarded_points", "team", "sub_team", "reviewed_at"]
    list_filter = ["status", "league_challenge__league", "league_challenge"]
    search_fields = ["member__user__email", "league_challenge__name"]
    raw_id_fields = ["member", "reviewed_by"]


@admin.register(SpecialChallengeTeamScore)
class SpecialChallengeTeamScoreAdmin(admin.ModelAdmin):
    list_display = ["challenge", "team", "league", "score", "updated_at"]
    list_filter = ["league", "challenge"]


@admin.register(SpecialChallengeIndividualScore)
class SpecialChallengeIndividualScoreAdmin(admin.ModelAdmin):
    list_display = ["challenge", "member", "league", "score", "updated_at"]
    list_filter = ["league", "challenge"]
