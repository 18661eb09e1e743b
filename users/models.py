# users/models.py
from django.contrib.auth.models import AbstractUser
from django.db import models

from core.constants import PLATFORM_ROLE_CHOICES, ROLE_NONE


class User(AbstractUser):
    """
    Platform identity. Never hard-deleted by the engine: bans are soft.

    ``role`` is the platform-wide admin level; per-community roles live on
    CommunityMembership. ``trust_*`` fields are a denormalized cache written
    only by reputation.trust.update_user_trust_score.
    """
    role = models.CharField(
        max_length=32,
        choices=PLATFORM_ROLE_CHOICES,
        default=ROLE_NONE,
        blank=True,
        db_index=True,
    )
    role_assigned_at = models.DateTimeField(null=True, blank=True)
    admin_community = models.ForeignKey(
        "core.Community",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="platform_admins",
        help_text="Community a community_admin was assigned to.",
    )

    display_name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=20, blank=True, null=True)

    # Verification (feeds the trust score)
    email_verified = models.BooleanField(default=False)
    phone_verified = models.BooleanField(default=False)
    id_verified = models.BooleanField(default=False)

    # 🔹 Trust score cache
    trust_score = models.PositiveSmallIntegerField(default=50)
    trust_level = models.CharField(max_length=32, default="New User")
    trust_badge = models.CharField(max_length=8, blank=True)
    trust_updated_at = models.DateTimeField(null=True, blank=True, db_index=True)

    # Soft ban
    is_banned = models.BooleanField(default=False)
    ban_reason = models.TextField(blank=True)
    banned_at = models.DateTimeField(null=True, blank=True)
    banned_by = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bans_issued",
    )
    ban_duration = models.DurationField(null=True, blank=True)
    unbanned_at = models.DateTimeField(null=True, blank=True)
    unbanned_by = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="unbans_issued",
    )

    def __str__(self):
        return self.username

    @property
    def communities(self) -> dict:
        """{community_id: role} for active memberships."""
        return {
            m.community_id: m.role
            for m in self.community_memberships.filter(is_active=True)
        }

    @property
    def default_community_id(self):
        membership = (
            self.community_memberships
            .filter(is_active=True, is_default=True)
            .only("community_id")
            .first()
        )
        return membership.community_id if membership else None
