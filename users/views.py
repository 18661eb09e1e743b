# users/views.py - Profile & Reputation API

from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.contrib.auth import get_user_model

from core.constants import PERM_VIEW_USERS
from core.exceptions import ValidationFailure
from core.policies import CommunityPolicy
from gamification.engine import GamificationEngine
from reputation.scheduler import refresh_trust_score
from .serializers import RefreshTrustSerializer, TrustScoreSerializer, UpdateProfileSerializer, UserSerializer

User = get_user_model()


class UserViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Standard User API
    """
    queryset = User.objects.all()
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        # Listing everyone is not exposed; detail lookups only
        if self.action == 'list':
            return User.objects.none()
        return super().get_queryset()

    @action(detail=False, methods=['get', 'patch'])
    def me(self, request):
        """
        GET   /api/users/me/
        PATCH /api/users/me/   Body → {display_name, phone, password}
        """
        if request.method == 'PATCH':
            serializer = UpdateProfileSerializer(request.user, data=request.data, partial=True)
            serializer.is_valid(raise_exception=True)
            serializer.save()

        return Response(self.get_serializer(request.user).data)

    @action(detail=True, methods=['get'])
    def reputation(self, request, pk=None):
        """
        GET /api/users/{pk}/reputation/
        Cached trust score plus points, level and achievements.
        """
        user = self.get_object()
        return Response({
            'user_id': user.pk,
            'trust': TrustScoreSerializer(user).data,
            'gamification': GamificationEngine.get_progress(user),
        })

    @action(detail=True, methods=['post'], url_path='refresh-trust')
    def refresh_trust(self, request, pk=None):
        """
        POST /api/users/{pk}/refresh-trust/
        Body: {"community_id": <id>}  (defaults to the user's default community)

        Users may refresh their own score; admins need view_users in the community.
        """
        user = self.get_object()
        serializer = RefreshTrustSerializer(data=request.data)
        if not serializer.is_valid():
            raise ValidationFailure("community_id must be a positive integer.")
        community_id = serializer.validated_data.get('community_id') or user.default_community_id
        if not community_id:
            raise ValidationFailure("community_id is required.")

        if user.pk != request.user.pk:
            CommunityPolicy.require(request.user, PERM_VIEW_USERS, community_id)

        result = refresh_trust_score(user.pk, community_id)
        return Response(result.as_dict())
