from django.db import models
from django.conf import settings
from django.utils import timezone
from django.core.validators import MaxValueValidator, MinValueValidator


class HelpRequest(models.Model):
    """
    A neighbor's request for help, claimed and completed by a volunteer.
    Only the fields the reputation engine reads are modelled here.
    """
    STATUS_OPEN = "open"
    STATUS_CLAIMED = "claimed"
    STATUS_PENDING_COMPLETION = "pending_completion"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_OPEN, "Open"),
        (STATUS_CLAIMED, "Claimed"),
        (STATUS_PENDING_COMPLETION, "Pending completion"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    # Statuses that count as "claimed" for the completion-rate metric
    CLAIMED_STATUSES = (STATUS_CLAIMED, STATUS_PENDING_COMPLETION, STATUS_COMPLETED)

    URGENCY_LOW = "low"
    URGENCY_MEDIUM = "medium"
    URGENCY_HIGH = "high"

    URGENCY_CHOICES = [
        (URGENCY_LOW, "Low"),
        (URGENCY_MEDIUM, "Medium"),
        (URGENCY_HIGH, "High"),
    ]

    community = models.ForeignKey(
        "core.Community",
        on_delete=models.CASCADE,
        related_name="help_requests",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="help_requests_created",
    )
    volunteer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="help_requests_claimed",
    )

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=64, default="Other")
    urgency = models.CharField(max_length=16, choices=URGENCY_CHOICES, default=URGENCY_LOW)
    status = models.CharField(max_length=32, choices=STATUS_CHOICES, default=STATUS_OPEN, db_index=True)
    is_featured = models.BooleanField(default=False)

    # Ratings on a 1-5 scale, one per side
    volunteer_rating = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
        help_text="Rating the requester gave the volunteer",
    )
    requester_rating = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
        help_text="Rating the volunteer gave the requester",
    )

    created_at = models.DateTimeField(default=timezone.now)
    claimed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["volunteer", "community"], name="helpreq_volunteer_idx"),
            models.Index(fields=["created_by", "community"], name="helpreq_requester_idx"),
        ]

    def __str__(self):
        return f"{self.title} ({self.status})"


class UserReport(models.Model):
    """A report filed against a user. Each one lowers the trust score."""
    reported_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reports_received",
    )
    reported_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="reports_filed",
    )
    community = models.ForeignKey(
        "core.Community",
        on_delete=models.CASCADE,
        related_name="user_reports",
    )
    reason = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Report on {self.reported_user_id} by {self.reported_by_id}"
