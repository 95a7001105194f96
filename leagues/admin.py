from django.contrib import admin
from .models import League, Team, LeagueMember, LeagueRole


@admin.register(League)
class LeagueAdmin(admin.ModelAdmin):
    list_display = ["name", "start_date", "end_date", "status", "is_active", "rest_days", "auto_rest_day_enabled"]
    list_filter = ["status", "is_active", "auto_rest_day_enabled", "start_date"]
    search_fields = ["name", "description"]
    date_hierarchy = "start_date"


@admin.register(Team)
class TeamAdmin(admin.ModelAdmin):
    list_display = ["name", "league", "created_at"]
    list_filter = ["league"]
    search_fields = ["name", "league__name"]


@admin.register(LeagueMember)
class LeagueMemberAdmin(admin.ModelAdmin):
    list_display = ["user", "league", "team", "is_active", "created_at"]
    list_filter = ["league", "team", "is_active"]
    search_fields = ["user__email", "league__name", "team__name"]


@admin.register(LeagueRole)
class LeagueRoleAdmin(admin.ModelAdmin):
    list_display = ["user", "league", "role", "assigned_at"]
    list_filter = ["league", "role"]
    search_fields = ["user__email", "league__name"]
