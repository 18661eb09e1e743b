#  core/models.py
from django.db import models
from django.db.models import Q
from django.conf import settings

from .constants import ADMIN_ACTION_CHOICES


class Community(models.Model):
    """
    A neighborhood community. Help requests and memberships are scoped to one.

    ``member_count`` is a maintained counter: only the join-request approval
    and member-removal paths change it.
    """
    name = models.CharField(max_length=255, unique=True)
    slug = models.SlugField(max_length=255, unique=True)
    description = models.TextField(blank=True)
    location = models.CharField(max_length=255, blank=True)

    is_active = models.BooleanField(default=True)
    member_count = models.PositiveIntegerField(default=0)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="communities_created",
        null=True,
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "Communities"
        indexes = [
            models.Index(fields=["slug"], name="community_slug_idx"),
        ]

    def __str__(self):
        return self.name


class CommunityMembership(models.Model):
    """
    Per-community role for a user (the user's ``communities`` map).
    A user can have different roles in different communities.
    """
    ROLE_MEMBER = "member"
    ROLE_ADMIN = "admin"

    ROLE_CHOICES = [
        (ROLE_MEMBER, "Member"),
        (ROLE_ADMIN, "Admin"),
    ]

    community = models.ForeignKey(
        Community,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="community_memberships",
    )
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=ROLE_MEMBER)
    is_active = models.BooleanField(default=True)

    # active / default context for this user
    is_default = models.BooleanField(
        default=False,
        help_text="If True, this is the user's default community.",
    )
    # Admin seats granted by community creation or role assignment are not counted
    is_counted = models.BooleanField(
        default=True,
        help_text="Whether this membership is included in the community's member_count.",
    )

    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("community", "user")
        indexes = [
            models.Index(
                fields=["community", "role"],
                name="membership_community_role_idx",
            ),
            models.Index(
                fields=["user", "is_default"],
                name="membership_user_default_idx",
            ),
        ]

    def __str__(self):
        return f"{self.user.username} @ {self.community.name} ({self.role})"


class JoinRequest(models.Model):
    """
    A membership application from a user to a community.

    pending → approved | rejected (terminal). Cancelling a pending request
    deletes the row. At most one pending request per (user, community).
    """
    STATUS_PENDING = "pending"
    STATUS_APPROVED = "approved"
    STATUS_REJECTED = "rejected"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_REJECTED, "Rejected"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="join_requests",
    )
    community = models.ForeignKey(
        Community,
        on_delete=models.CASCADE,
        related_name="join_requests",
    )

    # Snapshot of the applicant's profile at submission time
    user_email = models.EmailField(blank=True)
    user_name = models.CharField(max_length=255, blank=True)

    message = models.TextField(blank=True)
    # {"address", "zip_code", "residency_proof", "verified"}
    verification = models.JSONField(null=True, blank=True)

    status = models.CharField(
        max_length=16,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        db_index=True,
    )

    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approved_join_requests",
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    rejected_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="rejected_join_requests",
    )
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "community"],
                condition=Q(status="pending"),
                name="unique_pending_join_request",
            ),
        ]
        indexes = [
            models.Index(fields=["community", "status"], name="join_request_status_idx"),
        ]

    def __str__(self):
        return f"JoinRequest #{self.pk}: {self.user_id} -> {self.community_id} ({self.status})"

    @property
    def is_pending(self) -> bool:
        return self.status == self.STATUS_PENDING


class AdminActionLog(models.Model):
    """
    Append-only audit trail of role, ban and join-request decisions.
    Rows are never updated after creation.
    """
    action = models.CharField(max_length=64, choices=ADMIN_ACTION_CHOICES, db_index=True)

    target_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="admin_actions_received",
    )
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="admin_actions_performed",
    )
    community = models.ForeignKey(
        Community,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="admin_logs",
    )
    # Plain id: the request row may be gone (cancelled) by the time logs are read
    join_request_id = models.PositiveBigIntegerField(null=True, blank=True)

    reason = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-timestamp"]
        indexes = [
            models.Index(fields=["community", "-timestamp"], name="admin_log_community_idx"),
        ]

    def __str__(self):
        return f"{self.action} -> {self.target_user_id} by {self.performed_by_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("AdminActionLog entries are append-only.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("AdminActionLog entries are append-only.")
