from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from challenges.services import ChallengeScoreIntegrator, ChallengeSubmissionService
from .serializers_challenges import (
    ChallengeProofSerializer,
    ChallengeSubmissionSerializer,
    ChallengeValidateSerializer,
)


class ChallengeSubmissionAPIView(APIView):
    """
    Submit proof for a league challenge (one submission per member).

    Usage Example:
    POST /api/challenges/3/submissions/
    {"proof_url": "https://example.com/plank.jpg"}
    """
    permission_classes = [IsAuthenticated]
    serializer_class = ChallengeProofSerializer

    def post(self, request, challenge_id):
        serializer = ChallengeProofSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        submission = ChallengeSubmissionService.submit_proof(
            request.user, challenge_id, serializer.validated_data['proof_url']
        )
        return Response(
            {'success': True, 'data': ChallengeSubmissionSerializer(submission).data},
            status=status.HTTP_201_CREATED,
        )


class ChallengeSubmissionValidateAPIView(APIView):
    """
    Approve or reject a challenge submission (hosts and governors only).

    Usage Example:
    POST /api/challenge-submissions/8/validate/
    {"status": "approved", "awarded_points": 5}
    """
    permission_classes = [IsAuthenticated]
    serializer_class = ChallengeValidateSerializer

    def post(self, request, submission_id):
        serializer = ChallengeValidateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        submission = ChallengeSubmissionService.validate(
            request.user,
            submission_id,
            serializer.validated_data['status'],
            serializer.validated_data.get('awarded_points'),
        )
        return Response({'success': True, 'data': ChallengeSubmissionSerializer(submission).data})


class ChallengeLeaderboardAPIView(APIView):
    """
    Standings for a single challenge: members, teams or sub-teams depending on its type.

    Usage Example:
    GET /api/challenges/3/leaderboard/
    Response:
    {"success": true, "data": [{"rank": 1, "id": 4, "name": "Red", "score": 20.0}]}
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, challenge_id):
        rankings = ChallengeScoreIntegrator.rankings_for_user(request.user, challenge_id)
        return Response({'success': True, 'data': [ranking.as_dict() for ranking in rankings]})
