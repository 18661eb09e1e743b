# core/roles.py
"""
Static role -> permission table.

Pure lookups, no I/O. The table knows *who* may do *what category* of
thing; callers decide what is being authorized.
"""
from typing import FrozenSet, Optional

from .constants import (
    ADMIN_ROLES,
    ALL_PERMISSIONS,
    ROLE_COMMUNITY_ADMIN,
    ROLE_MODERATOR,
    ROLE_SUPER_ADMIN,
    PERM_VIEW_USERS,
    PERM_MANAGE_USERS,
    PERM_VIEW_ALL_REQUESTS,
    PERM_EDIT_REQUESTS,
    PERM_DELETE_REQUESTS,
    PERM_FEATURE_REQUESTS,
    PERM_EDIT_COMMUNITY,
    PERM_MANAGE_BRANDING,
    PERM_VIEW_STATISTICS,
    PERM_MODERATE_CONTENT,
    PERM_VIEW_REPORTS,
    PERM_MANAGE_SETTINGS,
    PERM_VIEW_LOGS,
)


ROLE_PERMISSIONS = {
    ROLE_SUPER_ADMIN: ALL_PERMISSIONS,
    # Everything except platform-wide powers (bans, admin management)
    ROLE_COMMUNITY_ADMIN: frozenset({
        PERM_VIEW_USERS,
        PERM_MANAGE_USERS,
        PERM_VIEW_ALL_REQUESTS,
        PERM_EDIT_REQUESTS,
        PERM_DELETE_REQUESTS,
        PERM_FEATURE_REQUESTS,
        PERM_EDIT_COMMUNITY,
        PERM_MANAGE_BRANDING,
        PERM_VIEW_STATISTICS,
        PERM_MODERATE_CONTENT,
        PERM_VIEW_REPORTS,
        PERM_MANAGE_SETTINGS,
        PERM_VIEW_LOGS,
    }),
    ROLE_MODERATOR: frozenset({
        PERM_VIEW_USERS,
        PERM_VIEW_ALL_REQUESTS,
        PERM_MODERATE_CONTENT,
        PERM_VIEW_REPORTS,
        PERM_VIEW_STATISTICS,
    }),
}


def permissions_for(role: Optional[str]) -> FrozenSet[str]:
    """Unknown, empty or None roles get an empty set."""
    if not role or not isinstance(role, str):
        return frozenset()
    return ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(role: Optional[str], permission: str) -> bool:
    return permission in permissions_for(role)


def is_admin_role(role) -> bool:
    return bool(role) and role in ADMIN_ROLES
