import logging

from django.conf import settings
from django.core.cache import cache
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from leaderboard.services import LeaderboardService
from .serializers_leaderboard import LeaderboardQuerySerializer

logger = logging.getLogger(__name__)


class LeagueLeaderboardAPIView(APIView):
    """
    Team, sub-team and individual standings for a league.

    Responses are cached for LEADERBOARD_CACHE_SECONDS per query.

    Usage Example:
    GET /api/leagues/1/leaderboard/?startDate=2026-01-01&endDate=2026-01-07
    Response:
    {
        "success": true,
        "data": {
            "teams": [...], "subTeams": [...], "individuals": [...],
            "challengeTeams": [...], "challengeIndividuals": [...],
            "stats": {...}, "dateRange": {...}, "league": {...}
        }
    }
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, league_id):
        query = LeaderboardQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        start_date = query.validated_data.get('startDate') or None
        end_date = query.validated_data.get('endDate') or None
        full = query.validated_data.get('full', False)

        cache_key = f"leaderboard:{league_id}:{start_date}:{end_date}:{int(full)}"
        data = cache.get(cache_key)
        if data is None:
            data = LeaderboardService.compute(league_id, start_date, end_date, full=full).to_dict()
            cache.set(cache_key, data, settings.LEADERBOARD_CACHE_SECONDS)
        else:
            logger.debug(f"Leaderboard cache hit for {cache_key}")

        return Response({'success': True, 'data': data})
