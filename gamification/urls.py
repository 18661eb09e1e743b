from django.urls import path
from .views import CatalogView, CommunityLeaderboardView, MyProgressView

urlpatterns = [
    path("me/", MyProgressView.as_view(), name="gamification-me"),
    path("catalog/", CatalogView.as_view(), name="gamification-catalog"),
    path(
        "communities/<int:community_id>/leaderboard/",
        CommunityLeaderboardView.as_view(),
        name="community-leaderboard",
    ),
]
