# users/normalization.py
"""
Legacy user document normalization.

Older exports store a single ``communityId`` instead of the ``communities``
map, may omit ``role`` or use retired role names, and leave gamification
fields unset. ``normalize_user_document`` turns either shape into one
``CanonicalUser`` before anything is written.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from core.constants import ADMIN_ROLES, ROLE_NONE
from core.models import CommunityMembership

MEMBERSHIP_ROLES = (CommunityMembership.ROLE_MEMBER, CommunityMembership.ROLE_ADMIN)

DEFAULT_TRUST_SCORE = 50

SHAPE_CURRENT = "current"
SHAPE_LEGACY = "legacy"


@dataclass
class CanonicalUser:
    legacy_id: str
    email: str
    username: str
    display_name: str = ""
    role: str = ROLE_NONE
    # legacy community id -> "member" | "admin"
    communities: Dict[str, str] = field(default_factory=dict)
    default_community: Optional[str] = None
    admin_community: Optional[str] = None
    points: int = 0
    achievements: List[str] = field(default_factory=list)
    streak_days: int = 0
    category_stats: Dict[str, int] = field(default_factory=dict)
    trust_score: int = DEFAULT_TRUST_SCORE
    email_verified: bool = False
    phone_verified: bool = False
    id_verified: bool = False
    is_banned: bool = False
    ban_reason: str = ""
    shape: str = SHAPE_CURRENT


def document_shape(doc: dict) -> str:
    if isinstance(doc.get("communities"), dict):
        return SHAPE_CURRENT
    return SHAPE_LEGACY


def _as_int(value, default=0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _normalize_role(value) -> str:
    # Retired roles ("user", "admin", ...) carry no platform privileges
    if value in ADMIN_ROLES:
        return value
    return ROLE_NONE


def _normalize_communities(doc: dict, shape: str) -> Dict[str, str]:
    if shape == SHAPE_CURRENT:
        return {
            str(community_id): role if role in MEMBERSHIP_ROLES else CommunityMembership.ROLE_MEMBER
            for community_id, role in doc["communities"].items()
            if community_id and role
        }

    legacy_id = doc.get("communityId")
    if legacy_id:
        return {str(legacy_id): CommunityMembership.ROLE_MEMBER}
    return {}


def normalize_user_document(doc: dict) -> CanonicalUser:
    """
    Map a current or legacy user document onto ``CanonicalUser``.
    Raises ValueError when the document has no usable identity.
    """
    legacy_id = doc.get("id") or doc.get("uid")
    email = (doc.get("email") or "").strip().lower()
    if not legacy_id and not email:
        raise ValueError("User document has neither an id nor an email.")

    shape = document_shape(doc)
    communities = _normalize_communities(doc, shape)

    default_community = doc.get("communityId")
    if default_community is not None:
        default_community = str(default_community)
    if default_community not in communities:
        default_community = next(iter(communities), None)

    admin_community = doc.get("adminCommunity")
    trust_score = doc.get("trustScore")

    return CanonicalUser(
        legacy_id=str(legacy_id or email),
        email=email,
        username=doc.get("username") or (email.split("@")[0] if email else str(legacy_id)),
        display_name=doc.get("displayName") or doc.get("name") or "",
        role=_normalize_role(doc.get("role")),
        communities=communities,
        default_community=default_community,
        admin_community=str(admin_community) if admin_community else None,
        points=max(0, _as_int(doc.get("points"))),
        achievements=[str(a) for a in doc.get("achievements") or []],
        streak_days=max(0, _as_int(doc.get("streakDays", doc.get("streak")))),
        category_stats={
            str(category): _as_int(count)
            for category, count in (doc.get("categoryStats") or {}).items()
        },
        trust_score=min(100, max(0, _as_int(trust_score, DEFAULT_TRUST_SCORE))),
        email_verified=bool(doc.get("emailVerified")),
        phone_verified=bool(doc.get("phoneVerified")),
        id_verified=bool(doc.get("idVerified")),
        is_banned=bool(doc.get("banned")),
        ban_reason=doc.get("banReason") or "",
        shape=shape,
    )
