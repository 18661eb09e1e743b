from rest_framework import serializers
from .models import HelpRequest, UserReport


class HelpRequestSerializer(serializers.ModelSerializer):
    created_by_name = serializers.CharField(source="created_by.username", read_only=True)
    volunteer_name = serializers.CharField(source="volunteer.username", read_only=True, default=None)

    class Meta:
        model = HelpRequest
        fields = [
            "id",
            "community",
            "created_by",
            "created_by_name",
            "volunteer",
            "volunteer_name",
            "title",
            "description",
            "category",
            "urgency",
            "status",
            "is_featured",
            "volunteer_rating",
            "requester_rating",
            "created_at",
            "claimed_at",
            "completed_at",
        ]
        read_only_fields = [
            "community",
            "created_by",
            "volunteer",
            "status",
            "is_featured",
            "volunteer_rating",
            "requester_rating",
            "created_at",
            "claimed_at",
            "completed_at",
        ]


class RatingSerializer(serializers.Serializer):
    # Range is enforced by the service so every caller gets the same failure
    rating = serializers.IntegerField()


class UserReportSerializer(serializers.ModelSerializer):
    class Meta:
        model = UserReport
        fields = ["id", "reported_user", "reported_by", "community", "reason", "created_at"]
        read_only_fields = ["reported_by", "community", "created_at"]
        extra_kwargs = {"reason": {"allow_blank": True}}
