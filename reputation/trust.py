# reputation/trust.py
"""
Trust Score Engine.

Computes a 0-100 reliability score for a user within a community from seven
behavioral metrics, each normalized to 0-100 and combined by fixed weights.

Computation (``calculate_trust_score``) is read-only. Persisting the result
onto the user's cached fields is the separate ``update_user_trust_score`` step.
Missing sub-data never raises: every metric falls back to a default.
"""
import logging
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Optional, Sequence

from django.contrib.auth import get_user_model
from django.utils import timezone

from assistance.models import HelpRequest, UserReport
from core.db import store_operation
from .conf import reputation_setting

logger = logging.getLogger("neighborly.reputation.trust")

DEFAULT_SCORE = 50
DEFAULT_METRIC_SCORE = 75  # no history yet
DEFAULT_ACCOUNT_AGE_SCORE = 50  # unknown creation date

LEVEL_NEW_USER = "New User"
LEVEL_UNKNOWN = "Unknown"
BADGE_UNKNOWN = "❓"

# (min score, level, badge, color), highest first
TRUST_LEVELS = (
    (90, "Excellent", "🏆", "#4CAF50"),
    (80, "Very Good", "⭐", "#8BC34A"),
    (70, "Good", "✅", "#FFC107"),
    (60, "Fair", "👍", "#FF9800"),
    (50, "Average", "🆗", "#FF5722"),
)
LOWEST_TRUST_LEVEL = (0, "Needs Improvement", "⚠️", "#F44336")


@dataclass
class TrustScoreBreakdown:
    completion_rate: float
    response_time: float
    rating: float
    account_age: float
    activity_level: float
    report_history: float
    verification_status: float
    weights: Dict[str, float] = field(default_factory=dict)

    def metrics(self) -> Dict[str, float]:
        data = asdict(self)
        data.pop("weights")
        return data

    def weighted_total(self) -> float:
        return sum(value * self.weights.get(name, 0) for name, value in self.metrics().items())


@dataclass
class TrustScoreResult:
    score: int
    level: str
    badge: str
    breakdown: Optional[TrustScoreBreakdown] = None

    def as_dict(self) -> dict:
        return {
            "score": self.score,
            "level": self.level,
            "badge": self.badge,
            "color": trust_score_color(self.score),
            "breakdown": self.breakdown.metrics() if self.breakdown else {},
            "weights": dict(self.breakdown.weights) if self.breakdown else {},
        }


# -------------------------------------------------------------------
# Level / badge / color
# -------------------------------------------------------------------
def _bucket(score):
    for bucket in TRUST_LEVELS:
        if score >= bucket[0]:
            return bucket
    return LOWEST_TRUST_LEVEL


def trust_level(score) -> str:
    return _bucket(score)[1]


def trust_badge(score) -> str:
    return _bucket(score)[2]


def trust_score_color(score) -> str:
    return _bucket(score)[3]


# -------------------------------------------------------------------
# Metrics (each 0-100)
# -------------------------------------------------------------------
def completion_rate_score(statuses: Sequence[str]) -> float:
    """Completed / claimed ratio over requests the user volunteered for."""
    claimed = sum(1 for status in statuses if status in HelpRequest.CLAIMED_STATUSES)
    if claimed == 0:
        return DEFAULT_METRIC_SCORE
    completed = sum(1 for status in statuses if status == HelpRequest.STATUS_COMPLETED)
    return completed / claimed * 100


def response_time_score(latencies_hours: Sequence[float]) -> float:
    """Bucketed average hours between a request being posted and claimed."""
    if not latencies_hours:
        return DEFAULT_METRIC_SCORE

    average = sum(latencies_hours) / len(latencies_hours)
    if average < 1:
        return 100
    if average < 6:
        return 90
    if average < 24:
        return 80
    if average < 48:
        return 70
    return 60


def rating_score(ratings: Sequence[float]) -> float:
    """Average 5-star rating scaled to 100."""
    if not ratings:
        return DEFAULT_METRIC_SCORE
    return sum(ratings) / len(ratings) / 5 * 100


def account_age_score(created_at: Optional[datetime], now: datetime) -> float:
    if created_at is None:
        return DEFAULT_ACCOUNT_AGE_SCORE

    days = (now - created_at).total_seconds() / 86400
    if days > 365:
        return 100
    if days > 180:
        return 90
    if days > 90:
        return 80
    if days > 30:
        return 70
    return 60


def activity_level_score(total_requests: int) -> float:
    """Bucketed count of requests claimed plus requests created."""
    if total_requests > 50:
        return 100
    if total_requests > 25:
        return 90
    if total_requests > 10:
        return 80
    if total_requests > 5:
        return 70
    return 60


def report_history_score(report_count: int) -> float:
    return max(0, 100 - 15 * report_count)


def verification_score(email_verified: bool, phone_verified: bool, id_verified: bool) -> float:
    score = 0
    if email_verified:
        score += 40
    if phone_verified:
        score += 30
    if id_verified:
        score += 30
    return score


def round_score(value: float) -> int:
    """Round half up, clamped to 0-100."""
    return min(100, max(0, int(math.floor(value + 0.5))))


def _hours_between(start, end) -> Optional[float]:
    if start is None or end is None:
        return None
    return (end - start).total_seconds() / 3600


def _present(values: Iterable) -> list:
    return [value for value in values if value is not None]


# -------------------------------------------------------------------
# Engine
# -------------------------------------------------------------------
@store_operation
def calculate_trust_score(user_id, community_id, now=None) -> TrustScoreResult:
    """
    Score ``user_id`` within ``community_id``. Read-only.

    A missing user scores 50 / "New User". Malformed history degrades to
    50 / "Unknown" instead of raising.
    """
    now = now or timezone.now()
    User = get_user_model()

    user = User.objects.filter(pk=user_id).first()
    if user is None:
        return TrustScoreResult(score=DEFAULT_SCORE, level=LEVEL_NEW_USER, badge="")

    volunteered = list(
        HelpRequest.objects
        .filter(volunteer_id=user_id, community_id=community_id)
        .values_list("status", "created_at", "claimed_at", "volunteer_rating")
    )
    requested = list(
        HelpRequest.objects
        .filter(created_by_id=user_id, community_id=community_id)
        .values_list("requester_rating", flat=True)
    )
    report_count = UserReport.objects.filter(reported_user_id=user_id).count()

    try:
        breakdown = TrustScoreBreakdown(
            completion_rate=completion_rate_score([row[0] for row in volunteered]),
            response_time=response_time_score(
                _present(_hours_between(row[1], row[2]) for row in volunteered)
            ),
            rating=rating_score(_present([row[3] for row in volunteered] + requested)),
            account_age=account_age_score(user.date_joined, now),
            activity_level=activity_level_score(len(volunteered) + len(requested)),
            report_history=report_history_score(report_count),
            verification_status=verification_score(
                user.email_verified, user.phone_verified, user.id_verified
            ),
            weights=dict(reputation_setting("TRUST_SCORE_WEIGHTS")),
        )
        score = round_score(breakdown.weighted_total())
    except (TypeError, ValueError, ArithmeticError):
        logger.exception(f"Trust score degraded to default: user={user_id}, community={community_id}")
        return TrustScoreResult(score=DEFAULT_SCORE, level=LEVEL_UNKNOWN, badge=BADGE_UNKNOWN)

    return TrustScoreResult(
        score=score,
        level=trust_level(score),
        badge=trust_badge(score),
        breakdown=breakdown,
    )


@store_operation
def update_user_trust_score(user_id, community_id, now=None) -> Optional[TrustScoreResult]:
    """
    Recompute and persist the cached trust fields for ``user_id``.
    Returns None when the user does not exist.
    """
    now = now or timezone.now()
    User = get_user_model()

    result = calculate_trust_score(user_id, community_id, now=now)
    updated = User.objects.filter(pk=user_id).update(
        trust_score=result.score,
        trust_level=result.level,
        trust_badge=result.badge,
        trust_updated_at=now,
    )
    if not updated:
        return None

    logger.info(f"Trust score updated: user={user_id}, community={community_id}, score={result.score}")
    return result
