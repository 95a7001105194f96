from rest_framework import serializers

from challenges.models import ChallengeSubmission


class ChallengeSubmissionSerializer(serializers.ModelSerializer):
    """
    Serializer for ChallengeSubmission, a member's proof for a league challenge.
    """
    class Meta:
        model = ChallengeSubmission
        fields = [
            'id', 'league_challenge', 'member', 'team', 'sub_team', 'proof_url', 'status',
            'awarded_points', 'reviewed_by', 'reviewed_at', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class ChallengeProofSerializer(serializers.Serializer):
    proof_url = serializers.URLField(max_length=500)


class ChallengeValidateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[ChallengeSubmission.APPROVED, ChallengeSubmission.REJECTED])
    awarded_points = serializers.FloatField(required=False, allow_null=True)
