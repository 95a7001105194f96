from rest_framework import serializers


class LeaderboardQuerySerializer(serializers.Serializer):
    """Query parameters for the league leaderboard.

    Dates are only applied when both are given.
    """
    startDate = serializers.CharField(required=False, allow_blank=True)
    endDate = serializers.CharField(required=False, allow_blank=True)
    full = serializers.BooleanField(required=False, default=False)
