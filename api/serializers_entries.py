from rest_framework import serializers

from entries.models import Entry


class EntrySerializer(serializers.ModelSerializer):
    """
    Serializer for Entry, a member's workout or rest-day submission for one day.
    """
    league_id = serializers.IntegerField(source='member.league_id', read_only=True)
    is_exemption_request = serializers.BooleanField(read_only=True)

    class Meta:
        model = Entry
        fields = [
            'id', 'member', 'league_id', 'date', 'kind', 'workout_type', 'duration', 'distance',
            'steps', 'holes', 'rr_value', 'status', 'proof_url', 'notes', 'submission_reason',
            'is_exemption_request', 'rejection_reason', 'reupload_of', 'created_by', 'created_at',
            'modified_by', 'modified_at',
        ]
        read_only_fields = fields


class EntrySubmitSerializer(serializers.Serializer):
    league_id = serializers.IntegerField()
    # Parsed by the service so ISO timestamps are accepted as well
    date = serializers.CharField(help_text="YYYY-MM-DD")
    kind = serializers.ChoiceField(choices=Entry.KIND_CHOICES, help_text="workout or rest")
    workout_type = serializers.CharField(required=False, allow_blank=True, max_length=40)
    duration = serializers.FloatField(required=False, allow_null=True, min_value=0, help_text="Minutes")
    distance = serializers.FloatField(required=False, allow_null=True, min_value=0, help_text="Kilometres")
    steps = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    holes = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    proof_url = serializers.URLField(required=False, allow_blank=True, max_length=500)
    notes = serializers.CharField(required=False, allow_blank=True)
    reupload_of = serializers.IntegerField(required=False, allow_null=True)


class EntryReuploadSerializer(serializers.Serializer):
    duration = serializers.FloatField(required=False, allow_null=True, min_value=0)
    distance = serializers.FloatField(required=False, allow_null=True, min_value=0)
    steps = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    holes = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    proof_url = serializers.URLField(required=False, allow_blank=True, max_length=500)
    notes = serializers.CharField(required=False, allow_blank=True)


class EntryValidateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[Entry.APPROVED, Entry.REJECTED])
    rejection_reason = serializers.CharField(required=False, allow_blank=True)


class EntryReviewSerializer(EntrySerializer):
    """Entry with the submitting member's name and team, for review listings."""
    username = serializers.CharField(source='member.user.display_name', read_only=True)
    team_id = serializers.IntegerField(source='member.team_id', read_only=True, allow_null=True)
    team_name = serializers.CharField(source='member.team.name', read_only=True, allow_null=True)

    class Meta(EntrySerializer.Meta):
        fields = EntrySerializer.Meta.fields + ['username', 'team_id', 'team_name']
        read_only_fields = fields


class EntryListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Entry.STATUS_CHOICES, required=False)
    teamId = serializers.IntegerField(required=False)
    startDate = serializers.CharField(required=False, allow_blank=True)
    endDate = serializers.CharField(required=False, allow_blank=True)
