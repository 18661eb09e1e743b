from rest_framework import serializers
from .models import User
from reputation.trust import trust_score_color


class UserSerializer(serializers.ModelSerializer):
    communities = serializers.SerializerMethodField()
    default_community = serializers.IntegerField(source='default_community_id', read_only=True)

    class Meta:
        model = User
        fields = [
            'id',
            'username',
            'email',
            'display_name',
            'role',
            'admin_community',
            'communities',
            'default_community',
            'email_verified',
            'phone_verified',
            'id_verified',
            'trust_score',
            'trust_level',
            'trust_badge',
            'is_banned',
            'date_joined',
        ]
        read_only_fields = fields

    def get_communities(self, obj):
        # JSON object keys are strings
        return {str(community_id): role for community_id, role in obj.communities.items()}


class UpdateProfileSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, required=False)

    class Meta:
        model = User
        fields = ['display_name', 'phone', 'password']

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if password:
            instance.set_password(password)
        instance.save()
        return instance


class TrustScoreSerializer(serializers.ModelSerializer):
    score = serializers.IntegerField(source='trust_score', read_only=True)
    level = serializers.CharField(source='trust_level', read_only=True)
    badge = serializers.CharField(source='trust_badge', read_only=True)
    color = serializers.SerializerMethodField()
    updated_at = serializers.DateTimeField(source='trust_updated_at', read_only=True)

    class Meta:
        model = User
        fields = ['score', 'level', 'badge', 'color', 'updated_at']

    def get_color(self, obj):
        return trust_score_color(obj.trust_score)


class RefreshTrustSerializer(serializers.Serializer):
    community_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
