import time
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import OperationalError, connections
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Community, CommunityMembership, JoinRequest
from .serializers import (
    AdminActionLogSerializer,
    BanSerializer,
    CommunityMembershipSerializer,
    CommunitySerializer,
    JoinRequestCreateSerializer,
    JoinRequestRejectSerializer,
    JoinRequestSerializer,
    RemoveMemberSerializer,
    RoleAssignSerializer,
)
from .services import AuditService, CommunityService, JoinRequestService, RoleService

User = get_user_model()


# -----------------------------
# COMMUNITIES
# -----------------------------
class CommunityListCreateView(APIView):
    """
    GET  /communities/   → list communities user belongs to
    POST /communities/   → create community (admin roles only)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        memberships = (
            CommunityMembership.objects
            .select_related("community")
            .filter(user=request.user, is_active=True)
            .order_by("community__name")
        )
        serializer = CommunityMembershipSerializer(memberships, many=True)
        return Response(serializer.data)

    def post(self, request):
        serializer = CommunitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        community = CommunityService.create_community(
            request.user,
            name=serializer.validated_data["name"],
            description=serializer.validated_data.get("description", ""),
            location=serializer.validated_data.get("location", ""),
        )
        return Response(CommunitySerializer(community).data, status=status.HTTP_201_CREATED)


class CommunityDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, community_id):
        community = get_object_or_404(Community, pk=community_id)
        return Response(CommunitySerializer(community).data)


class SetDefaultCommunityView(APIView):
    """
    POST /communities/<community_id>/set_default/
    Requires the user to be a member of that community.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, community_id):
        community = get_object_or_404(Community, pk=community_id, is_active=True)
        membership = CommunityService.set_default_community(request.user, community)
        return Response(CommunityMembershipSerializer(membership).data)


class CommunityMemberRemoveView(APIView):
    """
    POST /communities/<community_id>/members/<user_id>/remove/
    Body → { reason }
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, community_id, user_id):
        serializer = RemoveMemberSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        community = CommunityService.remove_member(
            user_id,
            community_id,
            request.user,
            reason=serializer.validated_data["reason"],
        )
        return Response(CommunitySerializer(community).data)


class CommunityAdminLogView(APIView):
    """GET /communities/<community_id>/admin-logs/ (view_logs permission)"""
    permission_classes = [IsAuthenticated]

    def get(self, request, community_id):
        community = get_object_or_404(Community, pk=community_id)
        logs = AuditService.get_logs(request.user, community)
        return Response(AdminActionLogSerializer(logs, many=True).data)


# -----------------------------
# JOIN REQUESTS
# -----------------------------
class CommunityJoinRequestView(APIView):
    """
    POST /communities/<community_id>/join-requests/   → submit a request
    GET  /communities/<community_id>/join-requests/   → list (admins), ?status=pending
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, community_id):
        community = get_object_or_404(Community, pk=community_id)

        serializer = JoinRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        join_request = JoinRequestService.create_join_request(
            request.user,
            community,
            message=serializer.validated_data["message"],
            verification=serializer.validated_data.get("verification"),
        )
        return Response(JoinRequestSerializer(join_request).data, status=status.HTTP_201_CREATED)

    def get(self, request, community_id):
        community = get_object_or_404(Community, pk=community_id)
        status_filter = request.query_params.get("status")

        if status_filter == JoinRequest.STATUS_PENDING:
            requests = JoinRequestService.get_pending_requests(request.user, community)
        else:
            requests = JoinRequestService.get_all_requests(request.user, community, status=status_filter)

        return Response({
            "pending_count": JoinRequestService.get_pending_count(community),
            "results": JoinRequestSerializer(requests, many=True).data,
        })


class MyJoinRequestView(APIView):
    """GET /communities/<community_id>/join-requests/me/"""
    permission_classes = [IsAuthenticated]

    def get(self, request, community_id):
        community = get_object_or_404(Community, pk=community_id)
        join_request = JoinRequestService.get_user_request(request.user, community)
        if join_request is None:
            return Response({"join_request": None})
        return Response({"join_request": JoinRequestSerializer(join_request).data})


class JoinRequestApproveView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        join_request = JoinRequestService.approve_join_request(pk, request.user)
        return Response(JoinRequestSerializer(join_request).data)


class JoinRequestRejectView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        serializer = JoinRequestRejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        join_request = JoinRequestService.reject_join_request(
            pk,
            request.user,
            serializer.validated_data["reason"],
        )
        return Response(JoinRequestSerializer(join_request).data)


class JoinRequestCancelView(APIView):
    """DELETE /join-requests/<pk>/ (owner only, pending only)"""
    permission_classes = [IsAuthenticated]

    def delete(self, request, pk):
        JoinRequestService.cancel_join_request(pk, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


# -----------------------------
# ROLES & BANS
# -----------------------------
class UserRoleView(APIView):
    """
    POST   /users/<user_id>/role/   Body → { role, community_id }
    DELETE /users/<user_id>/role/
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, user_id):
        serializer = RoleAssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = RoleService.assign_role(
            user_id,
            serializer.validated_data["role"],
            request.user,
            community_id=serializer.validated_data.get("community_id"),
        )
        return Response({
            "user_id": user.pk,
            "role": user.role,
            "admin_community": user.admin_community_id,
            "role_assigned_at": user.role_assigned_at,
        })

    def delete(self, request, user_id):
        user = RoleService.revoke_role(user_id, request.user)
        return Response({"user_id": user.pk, "role": user.role})


class UserBanView(APIView):
    """
    POST   /users/<user_id>/ban/   Body → { reason, duration_days }
    DELETE /users/<user_id>/ban/
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, user_id):
        serializer = BanSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        days = serializer.validated_data.get("duration_days")
        user = RoleService.ban_user(
            user_id,
            serializer.validated_data["reason"],
            request.user,
            duration=timedelta(days=days) if days else None,
        )
        return Response({
            "user_id": user.pk,
            "is_banned": user.is_banned,
            "ban_reason": user.ban_reason,
            "banned_at": user.banned_at,
        })

    def delete(self, request, user_id):
        user = RoleService.unban_user(user_id, request.user)
        return Response({"user_id": user.pk, "is_banned": user.is_banned, "unbanned_at": user.unbanned_at})


# -----------------------------
# HEALTH
# -----------------------------
class HealthCheckView(APIView):
    """
    Lightweight health endpoint for uptime checks.
    - Checks DB connectivity
    - Returns env and simple latency
    """
    permission_classes = [AllowAny]
    authentication_classes = []  # public endpoint

    def get(self, request, *args, **kwargs):
        start = time.time()

        db_ok = True
        try:
            connections["default"].cursor()
        except OperationalError:
            db_ok = False

        duration_ms = int((time.time() - start) * 1000)

        return Response(
            {
                "status": "ok" if db_ok else "degraded",
                "db": db_ok,
                "env": getattr(settings, "ENV", "unknown"),
                "latency_ms": duration_ms,
            }
        )
