# core/services.py
"""
Membership, role and ban operations.

Every write here is a single ``transaction.atomic()`` block: either all rows
(request, user, membership, community counter, audit entry) change or none
do. Join-request transitions are conditional updates on ``status='pending'``
so that concurrent resolutions produce exactly one winner.
"""
import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.text import slugify

from .constants import (
    ACTION_JOIN_REQUEST_APPROVED,
    ACTION_JOIN_REQUEST_REJECTED,
    ACTION_MEMBER_REMOVED,
    ACTION_ROLE_ASSIGNED,
    ACTION_ROLE_REMOVED,
    ACTION_USER_BANNED,
    ACTION_USER_UNBANNED,
    PERM_BAN_USERS,
    PERM_EDIT_COMMUNITY,
    PERM_MANAGE_ADMINS,
    PERM_MANAGE_USERS,
    PERM_VIEW_LOGS,
    PERM_VIEW_USERS,
    ROLE_COMMUNITY_ADMIN,
    ROLE_NONE,
)
from .db import store_operation
from .exceptions import (
    AlreadyMember,
    AlreadyResolved,
    CommunityNotFound,
    DuplicatePendingRequest,
    InvalidRole,
    JoinRequestNotFound,
    MissingReason,
    NotFoundFailure,
    Unauthorized,
    UserNotFound,
    ValidationFailure,
)
from .models import AdminActionLog, Community, CommunityMembership, JoinRequest
from .policies import CommunityPolicy
from .roles import is_admin_role
from .state_machine import STATUS_CANCELLED, can_transition, log_refused, log_transition

logger = logging.getLogger("neighborly.core.services")

User = get_user_model()


def _display_name(user) -> str:
    return user.display_name or user.get_full_name() or user.username


def _normalize_verification(payload):
    if not payload:
        return None
    return {
        "address": payload.get("address", ""),
        "zip_code": payload.get("zip_code", ""),
        "residency_proof": payload.get("residency_proof", ""),
        # Only an admin can mark an applicant verified
        "verified": False,
    }


def _locked_user(user_id):
    user = User.objects.select_for_update().filter(pk=user_id).first()
    if user is None:
        raise UserNotFound()
    return user


def _ensure_default_membership(user_id, membership):
    has_default = (
        CommunityMembership.objects
        .filter(user_id=user_id, is_active=True, is_default=True)
        .exclude(pk=membership.pk)
        .exists()
    )
    if not has_default and not membership.is_default:
        membership.is_default = True
        membership.save(update_fields=["is_default"])


class AuditService:
    @staticmethod
    def log_action(action, performed_by, target_user=None, community=None, join_request_id=None, reason="", metadata=None):
        """
        Append one entry to the admin action log.
        Must be called inside the transaction of the action it records.
        """
        if metadata is None:
            metadata = {}

        entry = AdminActionLog.objects.create(
            action=action,
            performed_by=performed_by,
            target_user=target_user,
            community=community,
            join_request_id=join_request_id,
            reason=reason or "",
            metadata=metadata,
        )
        logger.info(
            f"Admin action: {action}, target={getattr(target_user, 'pk', None)}, "
            f"by={getattr(performed_by, 'pk', None)}, community={getattr(community, 'pk', None)}"
        )
        return entry

    @staticmethod
    def get_logs(actor, community, limit=100):
        CommunityPolicy.require(actor, PERM_VIEW_LOGS, community)
        return list(
            AdminActionLog.objects
            .select_related("target_user", "performed_by")
            .filter(community=community)
            .order_by("-timestamp", "-pk")[:limit]
        )


class JoinRequestService:
    """pending → approved | rejected | cancelled"""

    @staticmethod
    @store_operation
    def create_join_request(user, community, message="", verification=None, profile=None):
        if getattr(user, "is_banned", False):
            raise Unauthorized("Banned users cannot request to join communities.")
        if not community.is_active:
            raise CommunityNotFound()

        profile = profile or {}

        with transaction.atomic():
            if CommunityMembership.objects.filter(user=user, community=community, is_active=True).exists():
                raise AlreadyMember()

            if JoinRequest.objects.filter(
                user=user,
                community=community,
                status=JoinRequest.STATUS_PENDING,
            ).exists():
                raise DuplicatePendingRequest()

            # The partial unique index settles races the check above cannot see
            try:
                with transaction.atomic():
                    join_request = JoinRequest.objects.create(
                        user=user,
                        community=community,
                        user_email=profile.get("email") or user.email,
                        user_name=profile.get("name") or _display_name(user),
                        message=message or "",
                        verification=_normalize_verification(verification),
                    )
            except IntegrityError as exc:
                raise DuplicatePendingRequest() from exc

        logger.info(f"Join request created: request={join_request.pk}, user={user.pk}, community={community.pk}")
        return join_request

    @staticmethod
    @store_operation
    def approve_join_request(request_id, admin, now=None):
        """
        Flip the request to approved, add the membership and bump the
        community counter, all in one transaction.
        """
        now = now or timezone.now()

        with transaction.atomic():
            join_request = JoinRequest.objects.filter(pk=request_id).first()
            if join_request is None:
                raise JoinRequestNotFound()

            CommunityPolicy.require(admin, PERM_MANAGE_USERS, join_request.community_id)

            allowed, reason = can_transition(join_request.status, JoinRequest.STATUS_APPROVED)
            if not allowed:
                log_refused(request_id, join_request.status, JoinRequest.STATUS_APPROVED, reason, admin.pk)
                raise AlreadyResolved(reason)

            won = JoinRequest.objects.filter(
                pk=request_id,
                status=JoinRequest.STATUS_PENDING,
            ).update(
                status=JoinRequest.STATUS_APPROVED,
                approved_by=admin,
                approved_at=now,
                updated_at=now,
            )
            if not won:
                log_refused(request_id, JoinRequest.STATUS_PENDING, JoinRequest.STATUS_APPROVED, "lost race", admin.pk)
                raise AlreadyResolved()

            applicant = _locked_user(join_request.user_id)

            membership, created = CommunityMembership.objects.get_or_create(
                community_id=join_request.community_id,
                user=applicant,
                defaults={"role": CommunityMembership.ROLE_MEMBER, "is_active": True},
            )
            newly_active = created
            if not created and not membership.is_active:
                membership.is_active = True
                membership.is_counted = True
                membership.role = CommunityMembership.ROLE_MEMBER
                membership.save(update_fields=["is_active", "is_counted", "role"])
                newly_active = True

            _ensure_default_membership(applicant.pk, membership)

            if newly_active:
                Community.objects.filter(pk=join_request.community_id).update(
                    member_count=F("member_count") + 1
                )

            AuditService.log_action(
                ACTION_JOIN_REQUEST_APPROVED,
                performed_by=admin,
                target_user=applicant,
                community=join_request.community,
                join_request_id=join_request.pk,
            )

        log_transition(join_request, JoinRequest.STATUS_PENDING, JoinRequest.STATUS_APPROVED, admin.pk)
        join_request.refresh_from_db()
        return join_request

    @staticmethod
    @store_operation
    def reject_join_request(request_id, admin, reason, now=None):
        if not reason or not str(reason).strip():
            raise MissingReason("A rejection reason is required.")

        now = now or timezone.now()
        reason = str(reason).strip()

        with transaction.atomic():
            join_request = JoinRequest.objects.filter(pk=request_id).first()
            if join_request is None:
                raise JoinRequestNotFound()

            CommunityPolicy.require(admin, PERM_MANAGE_USERS, join_request.community_id)

            allowed, refusal = can_transition(join_request.status, JoinRequest.STATUS_REJECTED)
            if not allowed:
                log_refused(request_id, join_request.status, JoinRequest.STATUS_REJECTED, refusal, admin.pk)
                raise AlreadyResolved(refusal)

            won = JoinRequest.objects.filter(
                pk=request_id,
                status=JoinRequest.STATUS_PENDING,
            ).update(
                status=JoinRequest.STATUS_REJECTED,
                rejected_by=admin,
                rejected_at=now,
                rejection_reason=reason,
                updated_at=now,
            )
            if not won:
                log_refused(request_id, JoinRequest.STATUS_PENDING, JoinRequest.STATUS_REJECTED, "lost race", admin.pk)
                raise AlreadyResolved()

            AuditService.log_action(
                ACTION_JOIN_REQUEST_REJECTED,
                performed_by=admin,
                target_user=join_request.user,
                community=join_request.community,
                join_request_id=join_request.pk,
                reason=reason,
            )

        log_transition(join_request, JoinRequest.STATUS_PENDING, JoinRequest.STATUS_REJECTED, admin.pk)
        join_request.refresh_from_db()
        return join_request

    @staticmethod
    @store_operation
    def cancel_join_request(request_id, user):
        """Owner-only. Deletes the row if it is still pending."""
        join_request = JoinRequest.objects.filter(pk=request_id).first()
        if join_request is None:
            raise JoinRequestNotFound()

        if join_request.user_id != user.pk:
            raise Unauthorized("You can only cancel your own join requests.")

        allowed, reason = can_transition(join_request.status, STATUS_CANCELLED)
        if not allowed:
            log_refused(request_id, join_request.status, STATUS_CANCELLED, reason, user.pk)
            raise AlreadyResolved(reason)

        deleted, _ = JoinRequest.objects.filter(
            pk=request_id,
            user=user,
            status=JoinRequest.STATUS_PENDING,
        ).delete()
        if not deleted:
            log_refused(request_id, JoinRequest.STATUS_PENDING, STATUS_CANCELLED, "lost race", user.pk)
            raise AlreadyResolved()

        log_transition(join_request, JoinRequest.STATUS_PENDING, STATUS_CANCELLED, user.pk)

    # --- Reads ---

    @staticmethod
    def get_pending_requests(actor, community):
        CommunityPolicy.require(actor, PERM_VIEW_USERS, community)
        return (
            JoinRequest.objects
            .select_related("user")
            .filter(community=community, status=JoinRequest.STATUS_PENDING)
            .order_by("-created_at")
        )

    @staticmethod
    def get_all_requests(actor, community, status=None):
        CommunityPolicy.require(actor, PERM_VIEW_USERS, community)
        qs = JoinRequest.objects.select_related("user").filter(community=community)
        if status:
            qs = qs.filter(status=status)
        return qs.order_by("-created_at")

    @staticmethod
    def get_user_request(user, community):
        """Most recent request by ``user`` for ``community``, or None."""
        return (
            JoinRequest.objects
            .filter(user=user, community=community)
            .order_by("-created_at", "-pk")
            .first()
        )

    @staticmethod
    def get_pending_count(community) -> int:
        return JoinRequest.objects.filter(community=community, status=JoinRequest.STATUS_PENDING).count()


class CommunityService:
    @staticmethod
    @store_operation
    def create_community(creator, name, description="", location="", slug=None):
        CommunityPolicy.require(creator, PERM_EDIT_COMMUNITY)

        name = (name or "").strip()
        if not name:
            raise ValidationFailure("Community name is required.")

        try:
            with transaction.atomic():
                community = Community.objects.create(
                    name=name,
                    slug=slug or slugify(name),
                    description=description,
                    location=location,
                    is_active=True,
                    member_count=0,
                    created_by=creator,
                )
                # Creator administers the community; only approved members are counted
                membership = CommunityMembership.objects.create(
                    community=community,
                    user=creator,
                    role=CommunityMembership.ROLE_ADMIN,
                    is_active=True,
                    is_counted=False,
                )
                _ensure_default_membership(creator.pk, membership)
        except IntegrityError as exc:
            raise ValidationFailure("A community with this name already exists.") from exc

        logger.info(f"Community created: community={community.pk}, by={creator.pk}")
        return community

    @staticmethod
    @store_operation
    def remove_member(user_id, community_id, admin, reason=""):
        CommunityPolicy.require(admin, PERM_MANAGE_USERS, community_id)

        with transaction.atomic():
            community = Community.objects.select_for_update().filter(pk=community_id).first()
            if community is None:
                raise CommunityNotFound()

            membership = (
                CommunityMembership.objects
                .select_for_update()
                .filter(user_id=user_id, community=community, is_active=True)
                .first()
            )
            if membership is None:
                raise NotFoundFailure("User is not a member of this community.")

            was_default = membership.is_default
            was_counted = membership.is_counted
            membership.is_active = False
            membership.is_default = False
            membership.is_counted = False
            membership.save(update_fields=["is_active", "is_default", "is_counted"])

            if was_default:
                replacement = (
                    CommunityMembership.objects
                    .filter(user_id=user_id, is_active=True)
                    .order_by("joined_at", "pk")
                    .first()
                )
                if replacement is not None:
                    replacement.is_default = True
                    replacement.save(update_fields=["is_default"])

            if was_counted:
                Community.objects.filter(pk=community.pk, member_count__gt=0).update(
                    member_count=F("member_count") - 1
                )

            AuditService.log_action(
                ACTION_MEMBER_REMOVED,
                performed_by=admin,
                target_user=membership.user,
                community=community,
                reason=reason,
            )

        community.refresh_from_db()
        return community

    @staticmethod
    def set_default_community(user, community):
        membership = CommunityMembership.objects.filter(
            community=community,
            user=user,
            is_active=True,
        ).first()
        if not membership:
            raise Unauthorized("You are not a member of this community.")

        with transaction.atomic():
            (
                CommunityMembership.objects
                .filter(user=user, is_active=True, is_default=True)
                .exclude(pk=membership.pk)
                .update(is_default=False)
            )
            membership.is_default = True
            membership.save(update_fields=["is_default"])

        return membership


class RoleService:
    """Platform role assignment and bans. Super admins only, except where noted."""

    @staticmethod
    @store_operation
    def assign_role(user_id, role, admin, community_id=None, now=None):
        if not is_admin_role(role):
            raise InvalidRole()

        CommunityPolicy.require(admin, PERM_MANAGE_ADMINS)
        now = now or timezone.now()

        community = None
        if role == ROLE_COMMUNITY_ADMIN:
            if community_id is None:
                raise ValidationFailure("A community is required for the community_admin role.")
            community = Community.objects.filter(pk=community_id).first()
            if community is None:
                raise CommunityNotFound()

        with transaction.atomic():
            user = _locked_user(user_id)
            previous = user.role

            user.role = role
            user.role_assigned_at = now
            user.admin_community = community
            user.save(update_fields=["role", "role_assigned_at", "admin_community"])

            if community is not None:
                membership, created = CommunityMembership.objects.get_or_create(
                    community=community,
                    user=user,
                    defaults={"role": CommunityMembership.ROLE_ADMIN, "is_active": True, "is_counted": False},
                )
                if not created:
                    if not membership.is_active:
                        membership.is_counted = False
                    membership.role = CommunityMembership.ROLE_ADMIN
                    membership.is_active = True
                    membership.save(update_fields=["role", "is_active", "is_counted"])
                _ensure_default_membership(user.pk, membership)

            AuditService.log_action(
                ACTION_ROLE_ASSIGNED,
                performed_by=admin,
                target_user=user,
                community=community,
                metadata={"role": role, "previous_role": previous},
            )

        return user

    @staticmethod
    @store_operation
    def revoke_role(user_id, admin):
        CommunityPolicy.require(admin, PERM_MANAGE_ADMINS)

        with transaction.atomic():
            user = _locked_user(user_id)
            previous = user.role
            previous_community_id = user.admin_community_id

            user.role = ROLE_NONE
            user.role_assigned_at = None
            user.admin_community = None
            user.save(update_fields=["role", "role_assigned_at", "admin_community"])

            if previous_community_id is not None:
                CommunityMembership.objects.filter(
                    user=user,
                    community_id=previous_community_id,
                    role=CommunityMembership.ROLE_ADMIN,
                ).update(role=CommunityMembership.ROLE_MEMBER)

            AuditService.log_action(
                ACTION_ROLE_REMOVED,
                performed_by=admin,
                target_user=user,
                metadata={"previous_role": previous, "community_id": previous_community_id},
            )

        return user

    @staticmethod
    @store_operation
    def ban_user(user_id, reason, admin, duration=None, now=None):
        """``duration`` is a timedelta; None bans indefinitely."""
        if not reason or not str(reason).strip():
            raise MissingReason("A ban reason is required.")

        CommunityPolicy.require(admin, PERM_BAN_USERS)
        if user_id == admin.pk:
            raise ValidationFailure("You cannot ban yourself.")

        now = now or timezone.now()

        with transaction.atomic():
            user = _locked_user(user_id)
            user.is_banned = True
            user.ban_reason = str(reason).strip()
            user.banned_at = now
            user.banned_by = admin
            user.ban_duration = duration
            user.save(update_fields=["is_banned", "ban_reason", "banned_at", "banned_by", "ban_duration"])

            AuditService.log_action(
                ACTION_USER_BANNED,
                performed_by=admin,
                target_user=user,
                reason=user.ban_reason,
                metadata={"duration_seconds": int(duration.total_seconds()) if duration else None},
            )

        return user

    @staticmethod
    @store_operation
    def unban_user(user_id, admin, now=None):
        CommunityPolicy.require(admin, PERM_BAN_USERS)
        now = now or timezone.now()

        with transaction.atomic():
            user = _locked_user(user_id)
            user.is_banned = False
            user.ban_reason = ""
            user.banned_at = None
            user.banned_by = None
            user.ban_duration = None
            user.unbanned_at = now
            user.unbanned_by = admin
            user.save(update_fields=[
                "is_banned", "ban_reason", "banned_at", "banned_by",
                "ban_duration", "unbanned_at", "unbanned_by",
            ])

            AuditService.log_action(ACTION_USER_UNBANNED, performed_by=admin, target_user=user)

        return user
