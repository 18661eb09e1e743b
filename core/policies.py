# core/policies.py
"""
Centralized authorization layer.

Every privileged operation resolves the actor's effective role for the
community in question and asks the static role table (core/roles.py)
whether that role holds the permission. Views and services should use
these methods instead of inline role checks.
"""
from typing import Optional, Tuple

from .constants import (
    ROLE_COMMUNITY_ADMIN,
    ROLE_MODERATOR,
    ROLE_SUPER_ADMIN,
    PERM_BAN_USERS,
    PERM_DELETE_REQUESTS,
    PERM_FEATURE_REQUESTS,
    PERM_MANAGE_ADMINS,
    PERM_MANAGE_USERS,
)
from .exceptions import Unauthorized
from .models import CommunityMembership
from .roles import has_permission


def _community_id(community) -> Optional[int]:
    if community is None:
        return None
    return getattr(community, "pk", community)


class CommunityPolicy:
    """
    Permission checks for membership and moderation actions.
    ``check`` methods return (bool, reason); ``require`` raises Unauthorized.
    """

    @staticmethod
    def effective_role(user, community=None) -> Optional[str]:
        """
        Role the user acts with inside ``community``.

        - super_admin acts everywhere
        - community_admin acts in its assigned community
        - an ``admin`` membership acts as community_admin in that community
        - moderator powers are platform-wide
        Banned users act with no role.
        """
        if not user or not getattr(user, "is_authenticated", False):
            return None
        if getattr(user, "is_banned", False):
            return None

        role = getattr(user, "role", None) or None
        if role == ROLE_SUPER_ADMIN:
            return ROLE_SUPER_ADMIN

        community_id = _community_id(community)
        if community_id is None:
            return role

        if role == ROLE_COMMUNITY_ADMIN and user.admin_community_id == community_id:
            return ROLE_COMMUNITY_ADMIN

        if CommunityMembership.objects.filter(
            user=user,
            community_id=community_id,
            role=CommunityMembership.ROLE_ADMIN,
            is_active=True,
        ).exists():
            return ROLE_COMMUNITY_ADMIN

        if role == ROLE_MODERATOR:
            return ROLE_MODERATOR

        return None

    @classmethod
    def check(cls, user, permission: str, community=None) -> Tuple[bool, str]:
        if not user or not getattr(user, "is_authenticated", False):
            return False, "Authentication required"

        role = cls.effective_role(user, community)
        if has_permission(role, permission):
            return True, ""

        return False, f"You do not have the '{permission}' permission here"

    @classmethod
    def require(cls, user, permission: str, community=None):
        allowed, reason = cls.check(user, permission, community)
        if not allowed:
            raise Unauthorized(reason)

    # ─────────────────────────────────────────────────────────────
    # Named checks
    # ─────────────────────────────────────────────────────────────

    @classmethod
    def can_resolve_join_request(cls, user, community) -> Tuple[bool, str]:
        return cls.check(user, PERM_MANAGE_USERS, community)

    @classmethod
    def can_manage_roles(cls, user) -> Tuple[bool, str]:
        return cls.check(user, PERM_MANAGE_ADMINS)

    @classmethod
    def can_ban_users(cls, user) -> Tuple[bool, str]:
        return cls.check(user, PERM_BAN_USERS)

    @classmethod
    def can_delete_request(cls, user, help_request) -> Tuple[bool, str]:
        return cls.check(user, PERM_DELETE_REQUESTS, help_request.community_id)

    @classmethod
    def can_feature_request(cls, user, help_request) -> Tuple[bool, str]:
        return cls.check(user, PERM_FEATURE_REQUESTS, help_request.community_id)
