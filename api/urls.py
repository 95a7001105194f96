from django.urls import path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView, SpectacularRedocView

from .views_challenges import (
    ChallengeLeaderboardAPIView,
    ChallengeSubmissionAPIView,
    ChallengeSubmissionValidateAPIView,
)
from .views_entries import (
    EntryReuploadAPIView,
    EntrySubmitAPIView,
    EntryValidateAPIView,
    LeagueSubmissionsAPIView,
    MySubmissionsAPIView,
    RestDayStatsAPIView,
    TeamSubmissionsAPIView,
)
from .views_leaderboard import LeagueLeaderboardAPIView

urlpatterns = [
    # Entries
    path('entries/', EntrySubmitAPIView.as_view(), name='api-entry-submit'),
    path('entries/<int:entry_id>/reupload/', EntryReuploadAPIView.as_view(), name='api-entry-reupload'),
    path('entries/<int:entry_id>/validate/', EntryValidateAPIView.as_view(), name='api-entry-validate'),
    # Leagues
    path('leagues/<int:league_id>/leaderboard/', LeagueLeaderboardAPIView.as_view(), name='api-league-leaderboard'),
    path('leagues/<int:league_id>/rest-days/', RestDayStatsAPIView.as_view(), name='api-rest-day-stats'),
    path('leagues/<int:league_id>/submissions/', LeagueSubmissionsAPIView.as_view(), name='api-league-submissions'),
    path('leagues/<int:league_id>/my-team/submissions/', TeamSubmissionsAPIView.as_view(),
         name='api-team-submissions'),
    path('leagues/<int:league_id>/my-submissions/', MySubmissionsAPIView.as_view(), name='api-my-submissions'),
    # Challenges
    path('challenges/<int:challenge_id>/submissions/', ChallengeSubmissionAPIView.as_view(),
         name='api-challenge-submit'),
    path('challenges/<int:challenge_id>/leaderboard/', ChallengeLeaderboardAPIView.as_view(),
         name='api-challenge-leaderboard'),
    path('challenge-submissions/<int:submission_id>/validate/', ChallengeSubmissionValidateAPIView.as_view(),
         name='api-challenge-submission-validate'),
    # OpenAPI
    path('schema/', SpectacularAPIView.as_view(), name='api-schema'),
    path('docs/', SpectacularSwaggerView.as_view(url_name='api-schema'), name='api-docs'),
    path('redoc/', SpectacularRedocView.as_view(url_name='api-schema'), name='api-redoc'),
]
