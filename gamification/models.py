from django.db import models
from django.db.models import Q
from django.conf import settings


class GamificationProfile(models.Model):
    """
    Denormalized gamification stats for a volunteer.
    Counters only grow; ``achievements`` only gains ids.
    """
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="gamification",
    )

    points = models.IntegerField(default=0)
    level = models.PositiveSmallIntegerField(default=1)

    requests_completed = models.PositiveIntegerField(default=0)
    fast_completions = models.PositiveIntegerField(default=0)
    early_claims_count = models.PositiveIntegerField(default=0)

    average_rating = models.FloatField(default=0.0)
    ratings_count = models.PositiveIntegerField(default=0)

    streak_days = models.PositiveIntegerField(default=0)
    last_help_date = models.DateField(null=True, blank=True)

    # e.g. {"Groceries": 4, "Transport": 1}
    category_stats = models.JSONField(default=dict, blank=True)
    # Unlocked achievement ids, in unlock order
    achievements = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["-points"], name="gamification_points_idx"),  # Leaderboard
        ]

    def __str__(self):
        return f"{self.user}: {self.points} pts (Lvl {self.level})"

    @property
    def max_category_completions(self) -> int:
        return max(self.category_stats.values(), default=0)

    def stats(self) -> dict:
        """Flat stats struct that achievement requirements are evaluated against."""
        return {
            "requests_completed": self.requests_completed,
            "average_rating": self.average_rating,
            "ratings_count": self.ratings_count,
            "fast_completions": self.fast_completions,
            "consecutive_days": self.streak_days,
            "category_completions": self.max_category_completions,
            "early_claims_count": self.early_claims_count,
        }


class PointsLog(models.Model):
    """
    Immutable audit trail of points earned.
    Answers "Why did I get points?". An achievement bonus appears at most once per user.
    """
    REASON_COMPLETION = "request.completed"
    REASON_ACHIEVEMENT = "achievement.unlocked"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="points_logs",
    )
    amount = models.IntegerField(help_text="Positive point value")
    reason = models.CharField(max_length=64, help_text="e.g. request.completed")
    achievement_id = models.CharField(max_length=64, blank=True)
    help_request = models.ForeignKey(
        "assistance.HelpRequest",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="points_logs",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["user", "-created_at"], name="points_log_user_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "achievement_id"],
                condition=~Q(achievement_id=""),
                name="unique_achievement_award",
            ),
        ]

    def __str__(self):
        return f"{self.user} (+{self.amount}): {self.reason}"
