# assistance/services.py
"""
Help request actions that feed the reputation engine.

Claiming may count as an early claim, completing awards points, and ratings
and reports refresh the affected trust scores. Trust refreshes run after the
surrounding transaction commits.
"""
import logging
from functools import partial

from django.db import transaction
from django.utils import timezone

from core.constants import ACTION_REQUEST_DELETED, ACTION_REQUEST_FEATURED
from core.db import store_operation
from core.exceptions import (
    ConflictFailure,
    MissingReason,
    NotFoundFailure,
    Unauthorized,
    ValidationFailure,
)
from core.models import CommunityMembership
from core.policies import CommunityPolicy
from core.services import AuditService
from gamification.engine import GamificationEngine
from reputation.scheduler import (
    update_trust_score_after_completion,
    update_trust_score_after_rating,
    update_trust_score_after_report,
)
from .models import HelpRequest, UserReport

logger = logging.getLogger("neighborly.assistance")

COMPLETABLE_STATUSES = (HelpRequest.STATUS_CLAIMED, HelpRequest.STATUS_PENDING_COMPLETION)


def _get_request(request_id) -> HelpRequest:
    help_request = HelpRequest.objects.select_related("community").filter(pk=request_id).first()
    if help_request is None:
        raise NotFoundFailure("Help request not found.")
    return help_request


def _require_member(user, community):
    if getattr(user, "is_banned", False):
        raise Unauthorized("Banned users cannot take part in help requests.")
    if not CommunityMembership.objects.filter(user=user, community=community, is_active=True).exists():
        raise Unauthorized("You are not a member of this community.")


def _validate_rating(rating):
    if not isinstance(rating, int) or isinstance(rating, bool) or not 1 <= rating <= 5:
        raise ValidationFailure("Rating must be an integer between 1 and 5.")


class HelpRequestService:

    @staticmethod
    @store_operation
    def create_request(user, community, title, description="", category="Other", urgency=HelpRequest.URGENCY_LOW):
        _require_member(user, community)
        if urgency not in dict(HelpRequest.URGENCY_CHOICES):
            raise ValidationFailure("Invalid urgency.")

        help_request = HelpRequest.objects.create(
            community=community,
            created_by=user,
            title=title,
            description=description,
            category=category or "Other",
            urgency=urgency,
        )
        logger.info(f"Help request created: request={help_request.pk}, community={community.pk}")
        return help_request

    @staticmethod
    @store_operation
    def claim_request(request_id, volunteer, now=None):
        now = now or timezone.now()
        help_request = _get_request(request_id)
        _require_member(volunteer, help_request.community)

        if help_request.created_by_id == volunteer.pk:
            raise ValidationFailure("You cannot claim your own request.")

        won = HelpRequest.objects.filter(
            pk=request_id,
            status=HelpRequest.STATUS_OPEN,
        ).update(
            status=HelpRequest.STATUS_CLAIMED,
            volunteer=volunteer,
            claimed_at=now,
        )
        if not won:
            raise ConflictFailure("This request is no longer open.")

        # The claim stands even if early-claim tracking fails
        try:
            with transaction.atomic():
                GamificationEngine.track_early_claim(volunteer, help_request.created_at, claimed_at=now)
        except Exception:
            logger.exception(f"Early-claim tracking failed: request={request_id}, volunteer={volunteer.pk}")

        help_request.refresh_from_db()
        logger.info(f"Help request claimed: request={request_id}, volunteer={volunteer.pk}")
        return help_request

    @staticmethod
    @store_operation
    def mark_done(request_id, volunteer):
        """Volunteer reports the work done; the requester confirms with ``complete_request``."""
        help_request = _get_request(request_id)
        if help_request.volunteer_id != volunteer.pk:
            raise Unauthorized("Only the volunteer can mark this request done.")

        won = HelpRequest.objects.filter(
            pk=request_id,
            status=HelpRequest.STATUS_CLAIMED,
        ).update(status=HelpRequest.STATUS_PENDING_COMPLETION)
        if not won:
            raise ConflictFailure("This request is not in progress.")

        help_request.refresh_from_db()
        return help_request

    @staticmethod
    @store_operation
    def complete_request(request_id, requester, now=None):
        """
        Requester confirms completion. Awards the volunteer's points and
        schedules trust refreshes for both sides.

        Returns (help_request, CompletionResult).
        """
        now = now or timezone.now()
        help_request = _get_request(request_id)
        if help_request.created_by_id != requester.pk:
            raise Unauthorized("Only the requester can confirm completion.")

        with transaction.atomic():
            won = HelpRequest.objects.filter(
                pk=request_id,
                status__in=COMPLETABLE_STATUSES,
            ).update(
                status=HelpRequest.STATUS_COMPLETED,
                completed_at=now,
            )
            if not won:
                raise ConflictFailure("This request cannot be completed.")

            help_request.refresh_from_db()
            duration = now - help_request.claimed_at if help_request.claimed_at else None

            result = GamificationEngine.award_points_for_completion(
                help_request.volunteer,
                help_request,
                completion_duration=duration,
                now=now,
            )

            transaction.on_commit(
                partial(
                    update_trust_score_after_completion,
                    help_request.volunteer_id,
                    help_request.created_by_id,
                    help_request.community_id,
                ),
                robust=True,
            )

        logger.info(
            f"Help request completed: request={request_id}, volunteer={help_request.volunteer_id}, "
            f"points={result.points_awarded}"
        )
        return help_request, result

    @staticmethod
    @store_operation
    def rate_volunteer(request_id, requester, rating):
        _validate_rating(rating)
        help_request = _get_request(request_id)
        if help_request.created_by_id != requester.pk:
            raise Unauthorized("Only the requester can rate the volunteer.")

        with transaction.atomic():
            won = HelpRequest.objects.filter(
                pk=request_id,
                status=HelpRequest.STATUS_COMPLETED,
                volunteer_rating__isnull=True,
            ).update(volunteer_rating=rating)
            if not won:
                raise ConflictFailure("This request cannot be rated again.")

            GamificationEngine.update_rating_stats(help_request.volunteer, rating)

            transaction.on_commit(
                partial(update_trust_score_after_rating, help_request.volunteer_id, help_request.community_id),
                robust=True,
            )

        help_request.refresh_from_db()
        return help_request

    @staticmethod
    @store_operation
    def rate_requester(request_id, volunteer, rating):
        _validate_rating(rating)
        help_request = _get_request(request_id)
        if help_request.volunteer_id != volunteer.pk:
            raise Unauthorized("Only the volunteer can rate the requester.")

        with transaction.atomic():
            won = HelpRequest.objects.filter(
                pk=request_id,
                status=HelpRequest.STATUS_COMPLETED,
                requester_rating__isnull=True,
            ).update(requester_rating=rating)
            if not won:
                raise ConflictFailure("This request cannot be rated again.")

            transaction.on_commit(
                partial(update_trust_score_after_rating, help_request.created_by_id, help_request.community_id),
                robust=True,
            )

        help_request.refresh_from_db()
        return help_request

    # ─────────────────────────────────────────────────────────────
    # Moderation
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    @store_operation
    def delete_request(request_id, actor, reason=""):
        help_request = _get_request(request_id)

        if help_request.created_by_id == actor.pk and help_request.status == HelpRequest.STATUS_OPEN:
            help_request.delete()
            return

        allowed, refusal = CommunityPolicy.can_delete_request(actor, help_request)
        if not allowed:
            raise Unauthorized(refusal)

        with transaction.atomic():
            AuditService.log_action(
                ACTION_REQUEST_DELETED,
                performed_by=actor,
                target_user=help_request.created_by,
                community=help_request.community,
                reason=reason,
                metadata={"help_request_id": help_request.pk, "title": help_request.title},
            )
            help_request.delete()

    @staticmethod
    @store_operation
    def feature_request(request_id, actor, featured=True):
        help_request = _get_request(request_id)

        allowed, refusal = CommunityPolicy.can_feature_request(actor, help_request)
        if not allowed:
            raise Unauthorized(refusal)

        with transaction.atomic():
            help_request.is_featured = featured
            help_request.save(update_fields=["is_featured"])
            AuditService.log_action(
                ACTION_REQUEST_FEATURED,
                performed_by=actor,
                target_user=help_request.created_by,
                community=help_request.community,
                metadata={"help_request_id": help_request.pk, "featured": featured},
            )

        return help_request


class ReportService:
    @staticmethod
    @store_operation
    def report_user(reporter, reported_user, community, reason):
        if not reason or not str(reason).strip():
            raise MissingReason("A report reason is required.")
        if reporter.pk == reported_user.pk:
            raise ValidationFailure("You cannot report yourself.")
        _require_member(reporter, community)

        with transaction.atomic():
            report = UserReport.objects.create(
                reported_user=reported_user,
                reported_by=reporter,
                community=community,
                reason=str(reason).strip(),
            )
            transaction.on_commit(
                partial(update_trust_score_after_report, reported_user.pk, community.pk),
                robust=True,
            )

        logger.info(f"User reported: user={reported_user.pk}, by={reporter.pk}, community={community.pk}")
        return report
