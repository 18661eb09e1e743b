from rest_framework import serializers

from .models import AdminActionLog, Community, CommunityMembership, JoinRequest


class CommunitySerializer(serializers.ModelSerializer):
    created_by_name = serializers.CharField(source="created_by.username", read_only=True)

    class Meta:
        model = Community
        fields = [
            "id",
            "name",
            "slug",
            "description",
            "location",
            "is_active",
            "member_count",
            "created_by",
            "created_by_name",
            "created_at",
        ]
        read_only_fields = ["slug", "is_active", "member_count", "created_by", "created_at"]


class CommunityMembershipSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source="user.username", read_only=True)
    community_name = serializers.CharField(source="community.name", read_only=True)

    class Meta:
        model = CommunityMembership
        fields = [
            "id",
            "user",
            "username",
            "community",
            "community_name",
            "role",
            "is_active",
            "is_default",
            "joined_at",
        ]


class VerificationSerializer(serializers.Serializer):
    address = serializers.CharField(required=False, allow_blank=True)
    zip_code = serializers.CharField(required=False, allow_blank=True)
    residency_proof = serializers.CharField(required=False, allow_blank=True)


class JoinRequestSerializer(serializers.ModelSerializer):
    community_name = serializers.CharField(source="community.name", read_only=True)

    class Meta:
        model = JoinRequest
        fields = [
            "id",
            "user",
            "user_email",
            "user_name",
            "community",
            "community_name",
            "message",
            "verification",
            "status",
            "approved_by",
            "approved_at",
            "rejected_by",
            "rejected_at",
            "rejection_reason",
            "created_at",
        ]
        read_only_fields = fields


class JoinRequestCreateSerializer(serializers.Serializer):
    message = serializers.CharField(required=False, allow_blank=True, default="")
    verification = VerificationSerializer(required=False, allow_null=True)


class JoinRequestRejectSerializer(serializers.Serializer):
    # Emptiness is checked by the service so it raises MissingReason
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class AdminActionLogSerializer(serializers.ModelSerializer):
    performed_by_name = serializers.CharField(source="performed_by.username", read_only=True, default=None)
    target_user_name = serializers.CharField(source="target_user.username", read_only=True, default=None)

    class Meta:
        model = AdminActionLog
        fields = [
            "id",
            "action",
            "target_user",
            "target_user_name",
            "performed_by",
            "performed_by_name",
            "community",
            "join_request_id",
            "reason",
            "metadata",
            "timestamp",
        ]
        read_only_fields = fields


class RoleAssignSerializer(serializers.Serializer):
    # Role membership in the closed set is checked by the service (InvalidRole)
    role = serializers.CharField(allow_blank=True)
    community_id = serializers.IntegerField(required=False, allow_null=True)


class BanSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    duration_days = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class RemoveMemberSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
