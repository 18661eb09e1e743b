from datetime import datetime, timedelta, timezone as dt_timezone
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone

from assistance.models import HelpRequest, UserReport
from core.models import Community
from reputation.trust import (
    BADGE_UNKNOWN,
    LEVEL_NEW_USER,
    LEVEL_UNKNOWN,
    account_age_score,
    activity_level_score,
    calculate_trust_score,
    completion_rate_score,
    rating_score,
    report_history_score,
    response_time_score,
    round_score,
    trust_badge,
    trust_level,
    trust_score_color,
    update_user_trust_score,
    verification_score,
)

User = get_user_model()

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=dt_timezone.utc)


class MetricTestCase(SimpleTestCase):
    def test_completion_rate(self):
        self.assertEqual(completion_rate_score([]), 75)
        self.assertEqual(completion_rate_score(["open", "cancelled"]), 75)
        self.assertEqual(completion_rate_score(["completed", "claimed"]), 50)
        self.assertEqual(completion_rate_score(["completed", "pending_completion", "completed", "completed"]), 75)

    def test_response_time_buckets(self):
        self.assertEqual(response_time_score([]), 75)
        self.assertEqual(response_time_score([0.5]), 100)
        self.assertEqual(response_time_score([1]), 90)
        self.assertEqual(response_time_score([5.9]), 90)
        self.assertEqual(response_time_score([6]), 80)
        self.assertEqual(response_time_score([30]), 70)
        self.assertEqual(response_time_score([48]), 60)

    def test_rating(self):
        self.assertEqual(rating_score([]), 75)
        self.assertEqual(rating_score([5, 5]), 100)
        self.assertEqual(rating_score([4, 2]), 60)

    def test_account_age_buckets(self):
        self.assertEqual(account_age_score(None, NOW), 50)
        self.assertEqual(account_age_score(NOW - timedelta(days=366), NOW), 100)
        self.assertEqual(account_age_score(NOW - timedelta(days=365), NOW), 90)
        self.assertEqual(account_age_score(NOW - timedelta(days=181), NOW), 90)
        self.assertEqual(account_age_score(NOW - timedelta(days=91), NOW), 80)
        self.assertEqual(account_age_score(NOW - timedelta(days=31), NOW), 70)
        self.assertEqual(account_age_score(NOW - timedelta(days=30), NOW), 60)
        self.assertEqual(account_age_score(NOW, NOW), 60)

    def test_activity_buckets(self):
        self.assertEqual(activity_level_score(0), 60)
        self.assertEqual(activity_level_score(5), 60)
        self.assertEqual(activity_level_score(6), 70)
        self.assertEqual(activity_level_score(11), 80)
        self.assertEqual(activity_level_score(26), 90)
        self.assertEqual(activity_level_score(51), 100)

    def test_report_history_floors_at_zero(self):
        self.assertEqual(report_history_score(0), 100)
        self.assertEqual(report_history_score(2), 70)
        self.assertEqual(report_history_score(7), 0)
        self.assertEqual(report_history_score(20), 0)

    def test_verification(self):
        self.assertEqual(verification_score(False, False, False), 0)
        self.assertEqual(verification_score(True, False, False), 40)
        self.assertEqual(verification_score(True, True, True), 100)

    def test_rounding_and_clamping(self):
        self.assertEqual(round_score(69.5), 70)
        self.assertEqual(round_score(69.49), 69)
        self.assertEqual(round_score(-3), 0)
        self.assertEqual(round_score(140), 100)

    def test_level_buckets(self):
        self.assertEqual(trust_level(90), "Excellent")
        self.assertEqual(trust_level(89), "Very Good")
        self.assertEqual(trust_level(70), "Good")
        self.assertEqual(trust_level(60), "Fair")
        self.assertEqual(trust_level(50), "Average")
        self.assertEqual(trust_level(49), "Needs Improvement")
        self.assertEqual(trust_badge(95), "🏆")
        self.assertEqual(trust_badge(10), "⚠️")
        self.assertEqual(trust_score_color(75), "#FFC107")


class TrustScoreTestCase(TestCase):
    def setUp(self):
        self.community = Community.objects.create(name="Maple Street", slug="maple-street")
        self.other_community = Community.objects.create(name="Oak Avenue", slug="oak-avenue")
        self.requester = User.objects.create_user(username="requester")
        self.user = User.objects.create_user(username="volunteer")

    def test_missing_user_scores_default(self):
        result = calculate_trust_score(999999, self.community.pk)

        self.assertEqual(result.score, 50)
        self.assertEqual(result.level, LEVEL_NEW_USER)
        self.assertEqual(result.badge, "")
        self.assertIsNone(update_user_trust_score(999999, self.community.pk))

    def test_fresh_user_with_no_history(self):
        result = calculate_trust_score(self.user.pk, self.community.pk, now=timezone.now())

        # 75s for history metrics, 60s for age and activity, full report history
        self.assertEqual(result.score, 70)
        self.assertEqual(result.level, "Good")
        self.assertEqual(result.badge, "✅")
        self.assertEqual(result.breakdown.verification_status, 0)

    def test_history_is_scoped_to_community(self):
        self.user.date_joined = NOW - timedelta(days=400)
        self.user.email_verified = True
        self.user.save()

        HelpRequest.objects.create(
            community=self.community,
            created_by=self.requester,
            volunteer=self.user,
            title="Groceries",
            status=HelpRequest.STATUS_COMPLETED,
            created_at=NOW - timedelta(days=3),
            claimed_at=NOW - timedelta(days=3) + timedelta(minutes=30),
            volunteer_rating=5,
        )
        HelpRequest.objects.create(
            community=self.community,
            created_by=self.requester,
            volunteer=self.user,
            title="Ride to clinic",
            status=HelpRequest.STATUS_CLAIMED,
            created_at=NOW - timedelta(days=1),
            claimed_at=NOW - timedelta(days=1) + timedelta(hours=2),
        )
        # Different community, ignored
        HelpRequest.objects.create(
            community=self.other_community,
            created_by=self.requester,
            volunteer=self.user,
            title="Elsewhere",
            status=HelpRequest.STATUS_CLAIMED,
        )

        result = calculate_trust_score(self.user.pk, self.community.pk, now=NOW)

        breakdown = result.breakdown
        self.assertEqual(breakdown.completion_rate, 50)
        self.assertEqual(breakdown.response_time, 90)
        self.assertEqual(breakdown.rating, 100)
        self.assertEqual(breakdown.account_age, 100)
        self.assertEqual(breakdown.activity_level, 60)
        self.assertEqual(breakdown.report_history, 100)
        self.assertEqual(breakdown.verification_status, 40)
        self.assertEqual(result.score, 77)
        self.assertEqual(result.level, "Good")

    def test_reports_lower_the_score(self):
        before = calculate_trust_score(self.user.pk, self.community.pk).score
        for _ in range(2):
            UserReport.objects.create(
                reported_user=self.user,
                reported_by=self.requester,
                community=self.community,
                reason="No show",
            )

        after = calculate_trust_score(self.user.pk, self.community.pk)

        self.assertEqual(after.breakdown.report_history, 70)
        self.assertEqual(after.score, before - 3)

    @override_settings(REPUTATION={"TRUST_SCORE_WEIGHTS": {"verification_status": 1.0}})
    def test_weights_come_from_settings(self):
        self.user.email_verified = True
        self.user.phone_verified = True
        self.user.save()

        result = calculate_trust_score(self.user.pk, self.community.pk)

        self.assertEqual(result.score, 70)
        self.assertEqual(result.breakdown.weights, {"verification_status": 1.0})

    def test_malformed_history_degrades_to_unknown(self):
        with mock.patch("reputation.trust.completion_rate_score", side_effect=ValueError("bad status")):
            result = calculate_trust_score(self.user.pk, self.community.pk)

        self.assertEqual(result.score, 50)
        self.assertEqual(result.level, LEVEL_UNKNOWN)
        self.assertEqual(result.badge, BADGE_UNKNOWN)
        self.assertEqual(result.as_dict()["breakdown"], {})

    def test_calculation_does_not_write(self):
        calculate_trust_score(self.user.pk, self.community.pk)

        self.user.refresh_from_db()
        self.assertIsNone(self.user.trust_updated_at)
        self.assertEqual(self.user.trust_level, "New User")

    def test_update_persists_cached_fields(self):
        result = update_user_trust_score(self.user.pk, self.community.pk, now=NOW)

        self.user.refresh_from_db()
        self.assertEqual(self.user.trust_score, result.score)
        self.assertEqual(self.user.trust_level, result.level)
        self.assertEqual(self.user.trust_badge, result.badge)
        self.assertEqual(self.user.trust_updated_at, NOW)
