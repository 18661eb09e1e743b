from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework import status
import logging

logger = logging.getLogger("neighborly.core")


# -------------------------------------------------------------------
# Engine failures
# -------------------------------------------------------------------
class EngineError(APIException):
    """
    Base for every typed failure raised by the membership & reputation engine.

    These are plain exceptions for service callers and are rendered by DRF
    when they escape a view.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be completed."
    default_code = "engine_error"
    retryable = False


# --- Validation: malformed input / violated precondition. No mutation happened.
class ValidationFailure(EngineError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "validation_failed"


class InvalidRole(ValidationFailure):
    default_detail = "Invalid admin role."
    default_code = "invalid_role"


class MissingReason(ValidationFailure):
    default_detail = "A reason is required."
    default_code = "missing_reason"


class DuplicatePendingRequest(ValidationFailure):
    default_detail = "You already have a pending join request for this community."
    default_code = "duplicate_pending_request"


class AlreadyMember(ValidationFailure):
    default_detail = "You are already a member of this community."
    default_code = "already_member"


# --- Conflict: a concurrent actor won, or the caller lacks rights.
class ConflictFailure(EngineError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"


class AlreadyResolved(ConflictFailure):
    default_detail = "This join request has already been resolved."
    default_code = "already_resolved"


class Unauthorized(EngineError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You are not allowed to perform this action."
    default_code = "unauthorized"


# --- Lookups
class NotFoundFailure(EngineError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"


class JoinRequestNotFound(NotFoundFailure):
    default_detail = "Join request not found."
    default_code = "join_request_not_found"


class UserNotFound(NotFoundFailure):
    default_detail = "User not found."
    default_code = "user_not_found"


class CommunityNotFound(NotFoundFailure):
    default_detail = "Community not found."
    default_code = "community_not_found"


# --- Transient infrastructure
class StoreTimeout(EngineError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "The data store did not respond in time. Please retry."
    default_code = "store_timeout"
    retryable = True


# -------------------------------------------------------------------
# DRF exception handler
# -------------------------------------------------------------------
def custom_exception_handler(exc, context):
    """
    Wrap DRF + Django exceptions into a consistent response format.

    Success responses (2xx) are not touched.
    Only errors come through here.
    """
    response = drf_exception_handler(exc, context)

    # If DRF handled it, wrap it
    if response is not None:
        codes = exc.get_codes() if isinstance(exc, APIException) else None
        return Response(
            {
                "success": False,
                "status_code": response.status_code,
                "code": codes if isinstance(codes, str) else None,
                "retryable": getattr(exc, "retryable", False),
                "errors": response.data,
            },
            status=response.status_code,
            headers={"Retry-After": "1"} if getattr(exc, "retryable", False) else None,
        )

    # Unhandled exceptions -> 500
    logger.exception("Unhandled API exception", exc_info=exc)

    return Response(
        {
            "success": False,
            "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
            "code": "server_error",
            "retryable": False,
            "errors": {"detail": "Internal server error."},
        },
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
