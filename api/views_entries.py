from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from entries.services import RestDayService, ReviewQueueService, SubmissionService
from .serializers_entries import (
    EntryListQuerySerializer,
    EntryReuploadSerializer,
    EntryReviewSerializer,
    EntrySerializer,
    EntrySubmitSerializer,
    EntryValidateSerializer,
)


class EntrySubmitAPIView(APIView):
    """
    Submit a workout or rest day for the authenticated member.

    A rejected entry for the same day is replaced in place; any other
    existing entry for that day is a 409 conflict.

    Usage Example:
    POST /api/entries/
    {
        "league_id": 1,
        "date": "2026-01-05",
        "kind": "workout",
        "workout_type": "run",
        "duration": 50,
        "proof_url": "https://example.com/proof.jpg"
    }
    """
    permission_classes = [IsAuthenticated]
    serializer_class = EntrySubmitSerializer

    def post(self, request):
        serializer = EntrySubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        league_id = data.pop('league_id')

        entry, created = SubmissionService.submit_entry(request.user, league_id, data)
        return Response(
            {'success': True, 'created': created, 'data': EntrySerializer(entry).data},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class EntryReuploadAPIView(APIView):
    """
    Resubmit a rejected entry as a new pending entry linked to it.

    Usage Example:
    POST /api/entries/12/reupload/
    {"proof_url": "https://example.com/better-proof.jpg"}
    """
    permission_classes = [IsAuthenticated]
    serializer_class = EntryReuploadSerializer

    def post(self, request, entry_id):
        serializer = EntryReuploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        entry = SubmissionService.reupload_entry(request.user, entry_id, serializer.validated_data)
        return Response({'success': True, 'data': EntrySerializer(entry).data}, status=status.HTTP_201_CREATED)


class EntryValidateAPIView(APIView):
    """
    Approve or reject an entry (captains for their own team, hosts and governors for any).

    Usage Example:
    POST /api/entries/12/validate/
    {"status": "rejected", "rejection_reason": "Screenshot is from another day"}
    """
    permission_classes = [IsAuthenticated]
    serializer_class = EntryValidateSerializer

    def post(self, request, entry_id):
        serializer = EntryValidateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        entry = SubmissionService.validate_entry(
            request.user,
            entry_id,
            serializer.validated_data['status'],
            serializer.validated_data.get('rejection_reason'),
        )
        return Response({'success': True, 'data': EntrySerializer(entry).data})


class RestDayStatsAPIView(APIView):
    """
    Rest-day budget for the authenticated member in a league.

    Usage Example:
    GET /api/leagues/1/rest-days/
    Response:
    {"success": true, "data": {"totalAllowed": 5, "used": 1, "pending": 0, "remaining": 4, "isAtLimit": false, ...}}
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, league_id):
        stats = RestDayService.stats_for_user(request.user, league_id)
        return Response({'success': True, 'data': stats.as_dict()})


def _listing_response(listing, **extra):
    return Response({
        'success': True,
        'data': {
            'submissions': EntryReviewSerializer(listing.entries, many=True).data,
            'stats': listing.stats,
            **extra,
        },
    })


class LeagueSubmissionsAPIView(APIView):
    """
    Every entry in a league, for hosts and governors.

    Usage Example:
    GET /api/leagues/1/submissions/?status=pending&teamId=3
    Response:
    {"success": true, "data": {"submissions": [...], "stats": {"total": 4, "pending": 4, "approved": 0, "rejected": 0}}}
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, league_id):
        query = EntryListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        listing = ReviewQueueService.league_entries(
            request.user,
            league_id,
            status=query.validated_data.get('status'),
            team_id=query.validated_data.get('teamId'),
        )
        return _listing_response(listing)


class TeamSubmissionsAPIView(APIView):
    """
    Entries of the caller's team, for its captain (or a host/governor on the team).

    Usage Example:
    GET /api/leagues/1/my-team/submissions/?status=pending
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, league_id):
        query = EntryListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        listing = ReviewQueueService.team_entries(
            request.user, league_id, status=query.validated_data.get('status')
        )
        return _listing_response(listing, teamId=listing.member.team_id)


class MySubmissionsAPIView(APIView):
    """
    The caller's own entries, including rejection reasons and reupload links.

    Usage Example:
    GET /api/leagues/1/my-submissions/?status=rejected&startDate=2026-01-01
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, league_id):
        query = EntryListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        listing = ReviewQueueService.my_entries(
            request.user,
            league_id,
            status=query.validated_data.get('status'),
            start_date=query.validated_data.get('startDate') or None,
            end_date=query.validated_data.get('endDate') or None,
        )
        return _listing_response(
            listing, leagueMemberId=listing.member.pk, teamId=listing.member.team_id
        )
