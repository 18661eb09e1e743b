from django.shortcuts import get_object_or_404
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.models import Community
from .achievements import MILESTONES
from .engine import GamificationEngine
from .levels import VOLUNTEER_LEVELS


class CommunityLeaderboardView(APIView):
    """
    GET /api/gamification/communities/<community_id>/leaderboard/?limit=10
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, community_id):
        community = get_object_or_404(Community, pk=community_id, is_active=True)
        try:
            limit = min(int(request.query_params.get("limit", 10)), 100)
        except ValueError:
            limit = 10

        return Response(GamificationEngine.get_community_leaderboard(community, limit=max(limit, 1)))


class MyProgressView(APIView):
    """GET /api/gamification/me/ → points, level, achievements"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(GamificationEngine.get_progress(request.user))


class CatalogView(APIView):
    """GET /api/gamification/catalog/ → levels and achievements"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response({
            "levels": [
                {"level": lvl.level, "name": lvl.name, "min_points": lvl.min_points, "badge": lvl.badge}
                for lvl in VOLUNTEER_LEVELS
            ],
            "achievements": [milestone.as_dict() for milestone in MILESTONES],
        })
