# core/constants.py

# --- Platform Roles ---
# Platform-wide authorization level stored on User.role.
# Semantically ordered: super_admin ⊇ community_admin ⊇ moderator ⊇ member.
ROLE_NONE = ""
ROLE_MODERATOR = "moderator"
ROLE_COMMUNITY_ADMIN = "community_admin"
ROLE_SUPER_ADMIN = "super_admin"

ADMIN_ROLES = (ROLE_SUPER_ADMIN, ROLE_COMMUNITY_ADMIN, ROLE_MODERATOR)

PLATFORM_ROLE_CHOICES = [
    (ROLE_NONE, "None"),
    (ROLE_MODERATOR, "Moderator"),
    (ROLE_COMMUNITY_ADMIN, "Community Admin"),
    (ROLE_SUPER_ADMIN, "Super Admin"),
]

# --- Admin Permissions (closed set) ---

# User Management
PERM_VIEW_USERS = "view_users"
PERM_MANAGE_USERS = "manage_users"
PERM_BAN_USERS = "ban_users"

# Request Management
PERM_VIEW_ALL_REQUESTS = "view_all_requests"
PERM_EDIT_REQUESTS = "edit_requests"
PERM_DELETE_REQUESTS = "delete_requests"
PERM_FEATURE_REQUESTS = "feature_requests"

# Community Management
PERM_EDIT_COMMUNITY = "edit_community"
PERM_MANAGE_BRANDING = "manage_branding"
PERM_VIEW_STATISTICS = "view_statistics"
PERM_MANAGE_ADMINS = "manage_admins"

# Content Moderation
PERM_MODERATE_CONTENT = "moderate_content"
PERM_VIEW_REPORTS = "view_reports"

# Settings
PERM_MANAGE_SETTINGS = "manage_settings"
PERM_VIEW_LOGS = "view_logs"

ALL_PERMISSIONS = frozenset({
    PERM_VIEW_USERS,
    PERM_MANAGE_USERS,
    PERM_BAN_USERS,
    PERM_VIEW_ALL_REQUESTS,
    PERM_EDIT_REQUESTS,
    PERM_DELETE_REQUESTS,
    PERM_FEATURE_REQUESTS,
    PERM_EDIT_COMMUNITY,
    PERM_MANAGE_BRANDING,
    PERM_VIEW_STATISTICS,
    PERM_MANAGE_ADMINS,
    PERM_MODERATE_CONTENT,
    PERM_VIEW_REPORTS,
    PERM_MANAGE_SETTINGS,
    PERM_VIEW_LOGS,
})

# --- Admin Action Log verbs ---

# Roles
ACTION_ROLE_ASSIGNED = "ROLE_ASSIGNED"
ACTION_ROLE_REMOVED = "ROLE_REMOVED"

# Bans
ACTION_USER_BANNED = "USER_BANNED"
ACTION_USER_UNBANNED = "USER_UNBANNED"

# Join request lifecycle
ACTION_JOIN_REQUEST_APPROVED = "JOIN_REQUEST_APPROVED"
ACTION_JOIN_REQUEST_REJECTED = "JOIN_REQUEST_REJECTED"

# Membership
ACTION_MEMBER_REMOVED = "MEMBER_REMOVED"

# Help requests (moderation)
ACTION_REQUEST_DELETED = "REQUEST_DELETED"
ACTION_REQUEST_FEATURED = "REQUEST_FEATURED"

ADMIN_ACTION_CHOICES = [
    (ACTION_ROLE_ASSIGNED, "Role assigned"),
    (ACTION_ROLE_REMOVED, "Role removed"),
    (ACTION_USER_BANNED, "User banned"),
    (ACTION_USER_UNBANNED, "User unbanned"),
    (ACTION_JOIN_REQUEST_APPROVED, "Join request approved"),
    (ACTION_JOIN_REQUEST_REJECTED, "Join request rejected"),
    (ACTION_MEMBER_REMOVED, "Member removed"),
    (ACTION_REQUEST_DELETED, "Help request deleted"),
    (ACTION_REQUEST_FEATURED, "Help request featured"),
]
