# reputation/scheduler.py
"""
Reputation Scheduler.

Two triggers drive trust score recomputation:

- event-driven: right after a completion, rating or report, the affected
  user is recomputed synchronously (high priority);
- time-driven: once per community per day, every member whose cached score
  is older than the refresh interval is recomputed (normal priority).

There is no in-process timer. A cron-like trigger (Celery beat, see
reputation/tasks.py) calls ``update_outdated_trust_scores``; ``next_run_at``
is a pure function of the current time.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from .conf import reputation_setting
from .trust import TrustScoreResult, update_user_trust_score

logger = logging.getLogger("neighborly.reputation.scheduler")

PRIORITY_HIGH = "high"
PRIORITY_NORMAL = "normal"


@dataclass
class BatchResult:
    community_id: int
    updated: int = 0
    failed: List[int] = field(default_factory=list)


def next_run_at(now: datetime, hour: Optional[int] = None) -> datetime:
    """Next local ``hour``:00 strictly after ``now``."""
    hour = reputation_setting("DAILY_REFRESH_HOUR") if hour is None else hour
    local_now = timezone.localtime(now) if timezone.is_aware(now) else now
    candidate = local_now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if candidate <= local_now:
        candidate += timedelta(days=1)
    return candidate


def is_stale(trust_updated_at: Optional[datetime], now: datetime, hours_threshold: Optional[int] = None) -> bool:
    if trust_updated_at is None:
        return True
    hours = reputation_setting("TRUST_REFRESH_HOURS") if hours_threshold is None else hours_threshold
    return now - trust_updated_at > timedelta(hours=hours)


def schedule_trust_score_update(user_id, community_id, priority=PRIORITY_NORMAL, now=None) -> Optional[TrustScoreResult]:
    """
    High priority recomputes immediately. Normal priority recomputes only
    when the cached score is stale. Returns the new result, or None when
    nothing was written.
    """
    now = now or timezone.now()

    if priority == PRIORITY_HIGH:
        return update_user_trust_score(user_id, community_id, now=now)

    User = get_user_model()
    user = User.objects.filter(pk=user_id).only("trust_updated_at").first()
    if user is None:
        return None

    if is_stale(user.trust_updated_at, now):
        return update_user_trust_score(user_id, community_id, now=now)

    logger.debug(f"Trust score still fresh, skipping: user={user_id}")
    return None


def update_trust_score_after_completion(volunteer_id, requester_id, community_id, now=None):
    # The volunteer just helped someone; the requester can wait for staleness
    schedule_trust_score_update(volunteer_id, community_id, PRIORITY_HIGH, now=now)
    schedule_trust_score_update(requester_id, community_id, PRIORITY_NORMAL, now=now)


def update_trust_score_after_rating(rated_user_id, community_id, now=None):
    return schedule_trust_score_update(rated_user_id, community_id, PRIORITY_HIGH, now=now)


def update_trust_score_after_report(reported_user_id, community_id, now=None):
    return schedule_trust_score_update(reported_user_id, community_id, PRIORITY_HIGH, now=now)


def refresh_trust_score(user_id, community_id, now=None) -> Optional[TrustScoreResult]:
    """Manual refresh (admin panel / profile page)."""
    return update_user_trust_score(user_id, community_id, now=now)


def get_users_needing_update(community_id, hours_threshold: Optional[int] = None, now=None):
    """Active members of the community whose cached score is missing or stale."""
    now = now or timezone.now()
    hours = reputation_setting("TRUST_REFRESH_HOURS") if hours_threshold is None else hours_threshold
    cutoff = now - timedelta(hours=hours)

    User = get_user_model()
    return (
        User.objects
        .filter(
            community_memberships__community_id=community_id,
            community_memberships__is_active=True,
        )
        .filter(Q(trust_updated_at__isnull=True) | Q(trust_updated_at__lt=cutoff))
        .distinct()
        .order_by("pk")
    )


def update_outdated_trust_scores(community_id, now=None) -> BatchResult:
    """
    Recompute every stale member of ``community_id``.

    Each user is updated in its own transaction; a failure is logged and
    skipped without touching the others.
    """
    now = now or timezone.now()
    result = BatchResult(community_id=community_id)
    user_ids = list(get_users_needing_update(community_id, now=now).values_list("pk", flat=True))

    logger.info(f"Updating trust scores for {len(user_ids)} users in community={community_id}")

    for user_id in user_ids:
        try:
            with transaction.atomic():
                update_user_trust_score(user_id, community_id, now=now)
        except Exception:
            logger.exception(f"Trust score update failed: user={user_id}, community={community_id}")
            result.failed.append(user_id)
        else:
            result.updated += 1

    logger.info(
        f"Trust score batch done: community={community_id}, "
        f"updated={result.updated}, failed={len(result.failed)}"
    )
    return result
