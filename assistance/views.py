from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.models import Community
from gamification.levels import Level
from .models import HelpRequest
from .serializers import HelpRequestSerializer, RatingSerializer, UserReportSerializer
from .services import HelpRequestService, ReportService


def _level_payload(level: Level):
    if level is None:
        return None
    return {"level": level.level, "name": level.name, "badge": level.badge}


class CommunityHelpRequestListCreateView(APIView):
    """
    GET  /communities/<community_id>/requests/   → list (featured first)
    POST /communities/<community_id>/requests/   → create (members only)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, community_id):
        community = get_object_or_404(Community, pk=community_id)
        qs = (
            HelpRequest.objects
            .select_related("created_by", "volunteer")
            .filter(community=community)
            .order_by("-is_featured", "-created_at")
        )
        status_filter = request.query_params.get("status")
        if status_filter:
            qs = qs.filter(status=status_filter)
        return Response(HelpRequestSerializer(qs, many=True).data)

    def post(self, request, community_id):
        community = get_object_or_404(Community, pk=community_id, is_active=True)
        serializer = HelpRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        help_request = HelpRequestService.create_request(
            request.user,
            community,
            title=serializer.validated_data["title"],
            description=serializer.validated_data.get("description", ""),
            category=serializer.validated_data.get("category", "Other"),
            urgency=serializer.validated_data.get("urgency", HelpRequest.URGENCY_LOW),
        )
        return Response(HelpRequestSerializer(help_request).data, status=status.HTTP_201_CREATED)


class HelpRequestDetailView(APIView):
    """
    GET    /requests/<pk>/
    DELETE /requests/<pk>/   (owner while open, or delete_requests permission)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        help_request = get_object_or_404(HelpRequest, pk=pk)
        return Response(HelpRequestSerializer(help_request).data)

    def delete(self, request, pk):
        HelpRequestService.delete_request(pk, request.user, reason=request.data.get("reason", ""))
        return Response(status=status.HTTP_204_NO_CONTENT)


class HelpRequestClaimView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        help_request = HelpRequestService.claim_request(pk, request.user)
        return Response(HelpRequestSerializer(help_request).data)


class HelpRequestMarkDoneView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        help_request = HelpRequestService.mark_done(pk, request.user)
        return Response(HelpRequestSerializer(help_request).data)


class HelpRequestCompleteView(APIView):
    """
    POST /requests/<pk>/complete/
    Returns the request plus the volunteer's points, unlocked achievements and level-up.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        help_request, result = HelpRequestService.complete_request(pk, request.user)
        return Response({
            "request": HelpRequestSerializer(help_request).data,
            "reward": {
                "points_awarded": result.points_awarded,
                "total_points": result.total_points,
                "leveled_up": result.leveled_up,
                "new_level": _level_payload(result.new_level),
                "new_achievements": [a.as_dict() for a in result.new_achievements],
            },
        })


class HelpRequestRateView(APIView):
    """
    POST /requests/<pk>/rate/   Body → { rating }
    The requester rates the volunteer; the volunteer rates the requester.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        serializer = RatingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        rating = serializer.validated_data["rating"]

        help_request = get_object_or_404(HelpRequest, pk=pk)
        if help_request.volunteer_id == request.user.pk:
            help_request = HelpRequestService.rate_requester(pk, request.user, rating)
        else:
            help_request = HelpRequestService.rate_volunteer(pk, request.user, rating)

        return Response(HelpRequestSerializer(help_request).data)


class HelpRequestFeatureView(APIView):
    """POST /requests/<pk>/feature/   Body → { featured: true/false }"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        featured = bool(request.data.get("featured", True))
        help_request = HelpRequestService.feature_request(pk, request.user, featured=featured)
        return Response(HelpRequestSerializer(help_request).data)


class CommunityUserReportView(APIView):
    """POST /communities/<community_id>/reports/   Body → { reported_user, reason }"""
    permission_classes = [IsAuthenticated]

    def post(self, request, community_id):
        community = get_object_or_404(Community, pk=community_id)
        serializer = UserReportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        report = ReportService.report_user(
            request.user,
            serializer.validated_data["reported_user"],
            community,
            serializer.validated_data["reason"],
        )
        return Response(UserReportSerializer(report).data, status=status.HTTP_201_CREATED)
