from django.contrib import admin
from .models import Entry


@admin.register(Entry)
class EntryAdmin(admin.ModelAdmin):
    list_display = ["member", "date", "kind", "workout_type", "rr_value", "status", "submission_reason", "created_at"]
    list_filter = ["status", "kind", "submission_reason", "member__league", "date"]
    search_fields = ["member__user__email", "member__team__name", "notes"]
    date_hierarchy = "date"
    raw_id_fields = ["member", "reupload_of", "created_by", "modified_by"]
    readonly_fields = ["rr_value", "created_at", "modified_at"]
