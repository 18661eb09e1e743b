# core/state_machine.py
"""
Join Request State Machine.

Enforces valid state transitions for community admission:
pending → approved   (terminal)
pending → rejected   (terminal)
pending → cancelled  (terminal, the row is deleted)

Any transition not in VALID_TRANSITIONS is rejected. A rejected user must
submit a brand-new request.
"""
from typing import Tuple
import logging

from .models import JoinRequest

logger = logging.getLogger("neighborly.core.state_machine")

# Pseudo-status: cancelled requests are deleted, never stored
STATUS_CANCELLED = "cancelled"

# Valid state transitions: from_status -> list of allowed to_statuses
VALID_TRANSITIONS = {
    JoinRequest.STATUS_PENDING: [
        JoinRequest.STATUS_APPROVED,
        JoinRequest.STATUS_REJECTED,
        STATUS_CANCELLED,
    ],
    JoinRequest.STATUS_APPROVED: [],
    JoinRequest.STATUS_REJECTED: [],
}


def can_transition(current_status: str, new_status: str) -> Tuple[bool, str]:
    """
    Check if a join request in ``current_status`` may move to ``new_status``.

    Returns (can_transition: bool, reason: str)
    """
    if current_status not in VALID_TRANSITIONS:
        return False, f"Unknown status: {current_status}"

    allowed = VALID_TRANSITIONS[current_status]

    if new_status not in allowed:
        if is_terminal_status(current_status):
            return False, f"Join request is already {current_status}"
        return False, f"Cannot transition from '{current_status}' to '{new_status}'"

    return True, ""


def log_transition(join_request: JoinRequest, old_status: str, new_status: str, actor_id=None):
    logger.info(
        f"Join request transition: request={join_request.pk}, "
        f"user={join_request.user_id}, community={join_request.community_id}, "
        f"from={old_status}, to={new_status}, actor={actor_id or 'unknown'}"
    )


def log_refused(join_request_id, current_status: str, new_status: str, reason: str, actor_id=None):
    logger.warning(
        f"Invalid join request transition attempted: request={join_request_id}, "
        f"from={current_status}, to={new_status}, actor={actor_id or 'unknown'}. "
        f"Reason: {reason}"
    )


def is_terminal_status(status: str) -> bool:
    """approved and rejected admit no further transitions."""
    return status not in VALID_TRANSITIONS or len(VALID_TRANSITIONS[status]) == 0
