# reputation/tasks.py
import logging

from celery import group, shared_task

from core.exceptions import StoreTimeout
from core.models import Community
from .scheduler import get_users_needing_update, update_outdated_trust_scores
from .trust import update_user_trust_score

logger = logging.getLogger("neighborly.reputation.tasks")


@shared_task(
    autoretry_for=(StoreTimeout,),
    retry_backoff=True,
    retry_jitter=True,
    max_retries=3,
)
def update_user_trust_score_task(user_id: int, community_id: int):
    """
    Recompute one user's trust score. Store timeouts retry with backoff.
    """
    result = update_user_trust_score(user_id, community_id)
    return result.score if result else None


@shared_task
def refresh_outdated_trust_scores(community_id: int, fan_out: bool = True):
    """
    Daily per-community batch.

    With ``fan_out`` each stale member becomes its own task so workers process
    users concurrently and one failure never blocks its siblings. Without it
    the batch runs in-process, still isolating each user.
    """
    if not fan_out:
        result = update_outdated_trust_scores(community_id)
        return {"updated": result.updated, "failed": result.failed}

    user_ids = list(get_users_needing_update(community_id).values_list("pk", flat=True))
    if user_ids:
        group(update_user_trust_score_task.s(user_id, community_id) for user_id in user_ids).apply_async()

    logger.info(f"Dispatched {len(user_ids)} trust score updates for community={community_id}")
    return {"dispatched": len(user_ids)}


@shared_task
def refresh_all_communities():
    """Beat entry point: one batch per active community."""
    community_ids = list(Community.objects.filter(is_active=True).values_list("pk", flat=True))
    for community_id in community_ids:
        refresh_outdated_trust_scores.delay(community_id)
    return len(community_ids)
