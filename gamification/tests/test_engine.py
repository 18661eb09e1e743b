from datetime import date, datetime, timedelta, timezone as dt_timezone
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase

from assistance.models import HelpRequest
from core.exceptions import ValidationFailure
from core.models import Community, CommunityMembership
from gamification.achievements import ACHIEVEMENTS_BY_ID, MILESTONES, AchievementDefinition
from gamification.engine import GamificationEngine, completion_points, next_streak
from gamification.levels import VOLUNTEER_LEVELS, calculate_level, next_level
from gamification.models import GamificationProfile, PointsLog

User = get_user_model()

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=dt_timezone.utc)


class LevelTableTestCase(SimpleTestCase):
    def test_thresholds(self):
        self.assertEqual(calculate_level(0).name, "Newcomer")
        self.assertEqual(calculate_level(49).name, "Newcomer")
        self.assertEqual(calculate_level(50).name, "Helper")
        self.assertEqual(calculate_level(149).name, "Helper")
        self.assertEqual(calculate_level(150).name, "Contributor")
        self.assertEqual(calculate_level(300).name, "Champion")
        self.assertEqual(calculate_level(999).name, "Hero")
        self.assertEqual(calculate_level(1000).name, "Legend")
        self.assertEqual(calculate_level(10 ** 6).name, "Legend")
        self.assertEqual(calculate_level(-5).name, "Newcomer")

    def test_level_is_non_decreasing_in_points(self):
        previous = calculate_level(0).level
        for points in range(0, 1200):
            current = calculate_level(points)
            self.assertGreaterEqual(current.level, previous)
            self.assertLessEqual(current.min_points, points)
            previous = current.level

    def test_picks_highest_threshold_not_exceeding_points(self):
        for points in (0, 75, 150, 420, 1000, 5000):
            expected = max(
                (lvl for lvl in VOLUNTEER_LEVELS if lvl.min_points <= points),
                key=lambda lvl: lvl.min_points,
            )
            self.assertEqual(calculate_level(points), expected)

    def test_next_level(self):
        self.assertEqual(next_level(0).name, "Helper")
        self.assertIsNone(next_level(1000))


class PureRulesTestCase(SimpleTestCase):
    def test_streak_rules(self):
        today = date(2024, 6, 15)
        self.assertEqual(next_streak(date(2024, 6, 14), 3, today), 4)
        self.assertEqual(next_streak(today, 3, today), 3)
        self.assertEqual(next_streak(date(2024, 6, 12), 3, today), 1)
        self.assertEqual(next_streak(None, 0, today), 1)

    def test_completion_points(self):
        self.assertEqual(completion_points("high", timedelta(hours=2)), (20, True))
        self.assertEqual(completion_points("medium", timedelta(hours=30)), (13, False))
        self.assertEqual(completion_points("low", None), (10, False))
        self.assertEqual(completion_points("low", timedelta(hours=24)), (10, False))

    def test_requirement_predicates(self):
        perfect = ACHIEVEMENTS_BY_ID["perfect_rating"]
        self.assertFalse(perfect.is_met({"average_rating": 5.0, "ratings_count": 9}))
        self.assertFalse(perfect.is_met({"average_rating": 4.9, "ratings_count": 20}))
        self.assertTrue(perfect.is_met({"average_rating": 5.0, "ratings_count": 10}))
        self.assertFalse(AchievementDefinition("empty", "Empty", "", 1, "", {}).is_met({}))

    def test_catalog(self):
        self.assertEqual(len(MILESTONES), 12)
        self.assertEqual(len(ACHIEVEMENTS_BY_ID), 12)
        self.assertEqual(ACHIEVEMENTS_BY_ID["first_help"].points, 10)


class GamificationEngineTestCase(TestCase):
    def setUp(self):
        self.community = Community.objects.create(name="Maple Street", slug="maple-street")
        self.requester = User.objects.create_user(username="requester")
        self.volunteer = User.objects.create_user(username="volunteer")

    def _request(self, urgency=HelpRequest.URGENCY_LOW, category="Groceries"):
        return HelpRequest.objects.create(
            community=self.community,
            created_by=self.requester,
            volunteer=self.volunteer,
            title="Pick up groceries",
            category=category,
            urgency=urgency,
            status=HelpRequest.STATUS_COMPLETED,
        )

    def test_fast_high_urgency_completion_awards_twenty(self):
        result = GamificationEngine.award_points_for_completion(
            self.volunteer,
            self._request(urgency=HelpRequest.URGENCY_HIGH),
            completion_duration=timedelta(hours=2),
            now=NOW,
        )

        self.assertEqual(result.points_awarded, 20)
        # first_help unlocks on top of the completion points
        self.assertEqual(result.total_points, 30)
        profile = GamificationEngine.get_profile(self.volunteer)
        self.assertEqual(profile.fast_completions, 1)
        self.assertEqual(profile.category_stats, {"Groceries": 1})

    def test_first_help_unlocks_exactly_once(self):
        first = GamificationEngine.award_points_for_completion(self.volunteer, self._request(), now=NOW)
        second = GamificationEngine.award_points_for_completion(
            self.volunteer, self._request(), now=NOW + timedelta(hours=1)
        )

        self.assertEqual([a.id for a in first.new_achievements], ["first_help"])
        self.assertEqual(second.new_achievements, [])

        profile = GamificationEngine.get_profile(self.volunteer)
        self.assertEqual(profile.achievements, ["first_help"])
        self.assertEqual(profile.points, 10 + 10 + 10)
        self.assertEqual(
            PointsLog.objects.filter(user=self.volunteer, achievement_id="first_help").count(),
            1,
        )

    def test_re_evaluation_is_idempotent(self):
        GamificationEngine.award_points_for_completion(self.volunteer, self._request(), now=NOW)
        before = GamificationEngine.get_profile(self.volunteer)

        self.assertEqual(GamificationEngine.check_and_award_achievements(self.volunteer), [])
        self.assertEqual(GamificationEngine.check_and_award_achievements(self.volunteer), [])

        after = GamificationEngine.get_profile(self.volunteer)
        self.assertEqual(after.points, before.points)
        self.assertEqual(after.achievements, before.achievements)

    def test_held_achievements_never_regress(self):
        profile = GamificationEngine.get_profile(self.volunteer)
        profile.achievements = ["ten_helps"]
        profile.requests_completed = 0
        profile.save()

        GamificationEngine.check_and_award_achievements(self.volunteer)

        profile.refresh_from_db()
        self.assertIn("ten_helps", profile.achievements)

    def test_level_up_is_reported(self):
        profile = GamificationEngine.get_profile(self.volunteer)
        profile.points = 45
        profile.requests_completed = 1
        profile.achievements = ["first_help"]
        profile.save()

        result = GamificationEngine.award_points_for_completion(self.volunteer, self._request(), now=NOW)

        self.assertTrue(result.leveled_up)
        self.assertEqual(result.new_level.name, "Helper")
        profile.refresh_from_db()
        self.assertEqual(profile.level, 2)

    def test_streak_updates(self):
        GamificationEngine.award_points_for_completion(self.volunteer, self._request(), now=NOW)
        GamificationEngine.award_points_for_completion(self.volunteer, self._request(), now=NOW + timedelta(hours=2))
        profile = GamificationEngine.get_profile(self.volunteer)
        self.assertEqual(profile.streak_days, 1)

        GamificationEngine.award_points_for_completion(self.volunteer, self._request(), now=NOW + timedelta(days=1))
        profile.refresh_from_db()
        self.assertEqual(profile.streak_days, 2)

        GamificationEngine.award_points_for_completion(self.volunteer, self._request(), now=NOW + timedelta(days=4))
        profile.refresh_from_db()
        self.assertEqual(profile.streak_days, 1)

    def test_week_streak_unlocks(self):
        for day in range(7):
            GamificationEngine.award_points_for_completion(
                self.volunteer, self._request(), now=NOW + timedelta(days=day)
            )

        profile = GamificationEngine.get_profile(self.volunteer)
        self.assertEqual(profile.streak_days, 7)
        self.assertIn("week_streak", profile.achievements)

    def test_achievement_failure_keeps_base_award(self):
        with mock.patch.object(
            GamificationEngine,
            "check_and_award_achievements",
            side_effect=RuntimeError("catalog exploded"),
        ):
            result = GamificationEngine.award_points_for_completion(self.volunteer, self._request(), now=NOW)

        self.assertEqual(result.points_awarded, 10)
        self.assertEqual(result.new_achievements, [])
        profile = GamificationEngine.get_profile(self.volunteer)
        self.assertEqual(profile.requests_completed, 1)
        self.assertEqual(profile.points, 10)
        self.assertEqual(profile.achievements, [])

    def test_rating_running_average(self):
        self.assertEqual(GamificationEngine.update_rating_stats(self.volunteer, 5), 5.0)
        self.assertEqual(GamificationEngine.update_rating_stats(self.volunteer, 4), 4.5)
        self.assertAlmostEqual(GamificationEngine.update_rating_stats(self.volunteer, 3), 4.0)

        profile = GamificationEngine.get_profile(self.volunteer)
        self.assertEqual(profile.ratings_count, 3)

    def test_invalid_rating(self):
        for rating in (0, 6, -1):
            with self.assertRaises(ValidationFailure):
                GamificationEngine.update_rating_stats(self.volunteer, rating)

        self.assertEqual(GamificationEngine.get_profile(self.volunteer).ratings_count, 0)

    def test_perfect_rating_unlocks_at_ten_reviews(self):
        for _ in range(9):
            GamificationEngine.update_rating_stats(self.volunteer, 5)
        self.assertNotIn("perfect_rating", GamificationEngine.get_profile(self.volunteer).achievements)

        GamificationEngine.update_rating_stats(self.volunteer, 5)
        self.assertIn("perfect_rating", GamificationEngine.get_profile(self.volunteer).achievements)

    def test_early_claim_window(self):
        created = NOW - timedelta(minutes=30)
        self.assertTrue(GamificationEngine.track_early_claim(self.volunteer, created, claimed_at=NOW))
        self.assertFalse(
            GamificationEngine.track_early_claim(self.volunteer, NOW - timedelta(hours=2), claimed_at=NOW)
        )
        self.assertFalse(
            GamificationEngine.track_early_claim(self.volunteer, NOW - timedelta(hours=1), claimed_at=NOW)
        )

        self.assertEqual(GamificationEngine.get_profile(self.volunteer).early_claims_count, 1)

    def test_profile_is_created_lazily(self):
        self.assertFalse(GamificationProfile.objects.filter(user=self.volunteer).exists())

        progress = GamificationEngine.get_progress(self.volunteer)

        self.assertEqual(progress["points"], 0)
        self.assertEqual(progress["level_name"], "Newcomer")
        self.assertEqual(progress["next_level_points"], 50)
        self.assertEqual(progress["achievements"], [])
        self.assertTrue(GamificationProfile.objects.filter(user=self.volunteer).exists())

    def test_leaderboard_orders_members_by_points(self):
        other = User.objects.create_user(username="other")
        outsider = User.objects.create_user(username="outsider")
        for user, points in ((self.volunteer, 120), (other, 300), (outsider, 999)):
            GamificationProfile.objects.create(user=user, points=points)
        CommunityMembership.objects.create(community=self.community, user=self.volunteer)
        CommunityMembership.objects.create(community=self.community, user=other)

        board = GamificationEngine.get_community_leaderboard(self.community)

        self.assertEqual([row["user_id"] for row in board], [other.pk, self.volunteer.pk])
        self.assertEqual(board[0]["level"], "Champion")
        self.assertEqual(board[0]["badge"], "🏆")
