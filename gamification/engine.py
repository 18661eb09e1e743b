import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from core.db import store_operation
from core.exceptions import ValidationFailure
from core.models import CommunityMembership
from reputation.conf import reputation_setting
from .achievements import ACHIEVEMENTS_BY_ID, MILESTONES, AchievementDefinition
from .levels import Level, calculate_level, next_level
from .models import GamificationProfile, PointsLog

logger = logging.getLogger("neighborly.gamification")


@dataclass
class CompletionResult:
    points_awarded: int
    total_points: int
    leveled_up: bool
    new_level: Optional[Level] = None
    new_achievements: List[AchievementDefinition] = field(default_factory=list)


def next_streak(last_help_date: Optional[date], streak_days: int, today: date) -> int:
    """Yesterday extends the streak, today keeps it, anything else restarts at 1."""
    if last_help_date == today - timedelta(days=1):
        return streak_days + 1
    if last_help_date == today:
        return streak_days
    return 1


def completion_points(urgency: Optional[str], completion_duration: Optional[timedelta]):
    """
    Points for one completed request and whether it counts as fast.

    Returns (points, is_fast).
    """
    points = reputation_setting("BASE_COMPLETION_POINTS")
    points += reputation_setting("URGENCY_BONUS").get(urgency, 0)

    is_fast = (
        completion_duration is not None
        and completion_duration < reputation_setting("FAST_COMPLETION_WINDOW")
    )
    if is_fast:
        points += reputation_setting("FAST_COMPLETION_BONUS")

    return points, is_fast


class GamificationEngine:

    @staticmethod
    def get_profile(user) -> GamificationProfile:
        """Lazily creates the profile on first read."""
        profile, _ = GamificationProfile.objects.get_or_create(user=user)
        return profile

    @staticmethod
    def _locked_profile(user) -> GamificationProfile:
        GamificationProfile.objects.get_or_create(user=user)
        return GamificationProfile.objects.select_for_update().get(user=user)

    # ─────────────────────────────────────────────────────────────
    # Achievements
    # ─────────────────────────────────────────────────────────────

    @classmethod
    @store_operation
    def check_and_award_achievements(cls, user) -> List[AchievementDefinition]:
        """
        Unlock every milestone whose requirement is now met and not yet held.

        Safe to re-run: held ids are skipped before their predicate is
        evaluated, and ids are never removed.
        """
        with transaction.atomic():
            profile = cls._locked_profile(user)
            held = set(profile.achievements or [])
            stats = profile.stats()

            unlocked = [
                milestone for milestone in MILESTONES
                if milestone.id not in held and milestone.is_met(stats)
            ]
            if not unlocked:
                return []

            bonus = sum(milestone.points for milestone in unlocked)
            profile.achievements = list(profile.achievements or []) + [m.id for m in unlocked]
            profile.points += bonus
            profile.level = calculate_level(profile.points).level
            profile.save(update_fields=["achievements", "points", "level", "updated_at"])

            PointsLog.objects.bulk_create([
                PointsLog(
                    user=user,
                    amount=milestone.points,
                    reason=PointsLog.REASON_ACHIEVEMENT,
                    achievement_id=milestone.id,
                )
                for milestone in unlocked
            ])

        logger.info(
            f"Achievements unlocked: user={user.pk}, "
            f"achievements={[m.id for m in unlocked]}, bonus={bonus}"
        )
        return unlocked

    @classmethod
    def _evaluate_achievements_safely(cls, user) -> List[AchievementDefinition]:
        # Gamification bonuses must never undo the stat update that triggered them
        try:
            with transaction.atomic():
                return cls.check_and_award_achievements(user)
        except Exception:
            logger.exception(f"Achievement evaluation failed for user={user.pk}")
            return []

    # ─────────────────────────────────────────────────────────────
    # Event entry points
    # ─────────────────────────────────────────────────────────────

    @classmethod
    @store_operation
    def award_points_for_completion(cls, user, help_request, completion_duration=None, now=None) -> CompletionResult:
        """
        Award points to ``user`` for completing ``help_request``.

        Base 10, +5 high / +3 medium urgency, +5 when completed within 24h of
        the claim. Updates category stats and the daily streak, then unlocks
        achievements and recomputes the level.
        """
        now = now or timezone.now()
        today = timezone.localdate(now)
        points, is_fast = completion_points(help_request.urgency, completion_duration)
        category = help_request.category or "Other"

        with transaction.atomic():
            profile = cls._locked_profile(user)
            old_level = calculate_level(profile.points)

            category_stats = dict(profile.category_stats or {})
            category_stats[category] = category_stats.get(category, 0) + 1

            profile.points += points
            profile.requests_completed += 1
            if is_fast:
                profile.fast_completions += 1
            profile.category_stats = category_stats
            profile.streak_days = next_streak(profile.last_help_date, profile.streak_days, today)
            profile.last_help_date = today
            profile.level = calculate_level(profile.points).level
            profile.save()

            PointsLog.objects.create(
                user=user,
                amount=points,
                reason=PointsLog.REASON_COMPLETION,
                help_request=help_request if help_request.pk else None,
            )

        new_achievements = cls._evaluate_achievements_safely(user)

        profile.refresh_from_db(fields=["points", "level"])
        new_level = calculate_level(profile.points)
        leveled_up = new_level.level > old_level.level

        logger.info(
            f"Completion points: user={user.pk}, points={points}, fast={is_fast}, "
            f"total={profile.points}, leveled_up={leveled_up}"
        )

        return CompletionResult(
            points_awarded=points,
            total_points=profile.points,
            leveled_up=leveled_up,
            new_level=new_level if leveled_up else None,
            new_achievements=new_achievements,
        )

    @classmethod
    @store_operation
    def update_rating_stats(cls, user, new_rating) -> float:
        """Fold ``new_rating`` into the running average. Returns the new average."""
        if not 1 <= new_rating <= 5:
            raise ValidationFailure("Rating must be between 1 and 5.")

        with transaction.atomic():
            profile = cls._locked_profile(user)
            total = profile.average_rating * profile.ratings_count + new_rating
            profile.ratings_count += 1
            profile.average_rating = total / profile.ratings_count
            profile.save(update_fields=["average_rating", "ratings_count", "updated_at"])

        cls._evaluate_achievements_safely(user)
        return profile.average_rating

    @classmethod
    @store_operation
    def track_early_claim(cls, user, request_created_at, claimed_at=None) -> bool:
        """Count a claim made within the early-claim window of posting."""
        claimed_at = claimed_at or timezone.now()
        if claimed_at - request_created_at >= reputation_setting("EARLY_CLAIM_WINDOW"):
            return False

        cls.get_profile(user)
        GamificationProfile.objects.filter(user=user).update(
            early_claims_count=F("early_claims_count") + 1,
            updated_at=timezone.now(),
        )
        cls._evaluate_achievements_safely(user)
        return True

    # ─────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────

    @classmethod
    def get_progress(cls, user) -> dict:
        """Points, level, progress to the next level and unlocked achievements."""
        profile = cls.get_profile(user)
        level = calculate_level(profile.points)
        upcoming = next_level(profile.points)

        progress = 100
        if upcoming is not None:
            span = upcoming.min_points - level.min_points
            progress = int((profile.points - level.min_points) / span * 100)

        return {
            "points": profile.points,
            "level": level.level,
            "level_name": level.name,
            "level_badge": level.badge,
            "next_level_points": upcoming.min_points if upcoming else None,
            "level_progress": progress,
            "streak_days": profile.streak_days,
            "stats": profile.stats(),
            "category_stats": dict(profile.category_stats or {}),
            "achievements": [
                ACHIEVEMENTS_BY_ID[achievement_id].as_dict()
                for achievement_id in profile.achievements or []
                if achievement_id in ACHIEVEMENTS_BY_ID
            ],
        }

    @staticmethod
    def get_community_leaderboard(community, limit: int = 10) -> list:
        member_ids = CommunityMembership.objects.filter(
            community=community,
            is_active=True,
        ).values_list("user_id", flat=True)

        profiles = (
            GamificationProfile.objects
            .select_related("user")
            .filter(user_id__in=member_ids)
            .order_by("-points", "user__username")[:limit]
        )

        leaderboard = []
        for profile in profiles:
            level = calculate_level(profile.points)
            leaderboard.append({
                "user_id": profile.user_id,
                "user_name": profile.user.display_name or profile.user.username,
                "points": profile.points,
                "level": level.name,
                "badge": level.badge,
                "requests_completed": profile.requests_completed,
                "average_rating": profile.average_rating,
                "achievements": len(profile.achievements or []),
            })
        return leaderboard
