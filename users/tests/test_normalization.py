import json
import os
import tempfile
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase, TestCase

from core.constants import ROLE_MODERATOR, ROLE_NONE
from core.models import Community, CommunityMembership
from gamification.models import GamificationProfile
from users.normalization import SHAPE_CURRENT, SHAPE_LEGACY, document_shape, normalize_user_document

User = get_user_model()


class NormalizeUserDocumentTestCase(SimpleTestCase):
    def test_legacy_document(self):
        doc = {
            "uid": "u-1",
            "email": " Alice@Example.com ",
            "name": "Alice",
            "role": "user",
            "communityId": "c-9",
            "trustScore": 140,
            "streak": 3,
        }

        user = normalize_user_document(doc)

        self.assertEqual(document_shape(doc), SHAPE_LEGACY)
        self.assertEqual(user.shape, SHAPE_LEGACY)
        self.assertEqual(user.legacy_id, "u-1")
        self.assertEqual(user.email, "alice@example.com")
        self.assertEqual(user.username, "alice")
        self.assertEqual(user.display_name, "Alice")
        self.assertEqual(user.role, ROLE_NONE)
        self.assertEqual(user.communities, {"c-9": CommunityMembership.ROLE_MEMBER})
        self.assertEqual(user.default_community, "c-9")
        self.assertEqual(user.trust_score, 100)
        self.assertEqual(user.streak_days, 3)
        self.assertEqual(user.points, 0)
        self.assertEqual(user.achievements, [])

    def test_current_document(self):
        doc = {
            "id": "u-2",
            "email": "bob@example.com",
            "displayName": "Bob",
            "role": ROLE_MODERATOR,
            "communities": {"c-1": "admin", "c-2": "member", "c-3": "owner"},
            "communityId": "c-2",
            "points": 120,
            "achievements": ["first_help"],
            "streakDays": 4,
            "categoryStats": {"Groceries": "3"},
        }

        user = normalize_user_document(doc)

        self.assertEqual(user.shape, SHAPE_CURRENT)
        self.assertEqual(user.role, ROLE_MODERATOR)
        self.assertEqual(user.communities, {"c-1": "admin", "c-2": "member", "c-3": "member"})
        self.assertEqual(user.default_community, "c-2")
        self.assertEqual(user.points, 120)
        self.assertEqual(user.category_stats, {"Groceries": 3})
        self.assertEqual(user.trust_score, 50)

    def test_default_falls_back_to_first_membership(self):
        user = normalize_user_document({"id": "u-3", "communities": {"c-5": "member"}, "communityId": "gone"})

        self.assertEqual(user.default_community, "c-5")

    def test_document_without_identity(self):
        with self.assertRaises(ValueError):
            normalize_user_document({"name": "Nobody"})


class ImportLegacyUsersTestCase(TestCase):
    def _export(self, data):
        fh = tempfile.NamedTemporaryFile("w", suffix=".json", delete=False, encoding="utf-8")
        with fh:
            json.dump(data, fh)
        self.addCleanup(os.remove, fh.name)
        return fh.name

    def _run(self, data, *args):
        out = StringIO()
        call_command("import_legacy_users", self._export(data), *args, stdout=out, stderr=StringIO())
        return out.getvalue()

    def _payload(self):
        return {
            "communities": [{"id": "c-9", "name": "Maple Street", "description": "Leafy"}],
            "users": [
                {"uid": "u-1", "email": "alice@example.com", "communityId": "c-9", "points": 60},
                {"id": "u-2", "email": "bob@example.com", "communities": {"c-9": "admin"}},
                {"name": "No identity"},
            ],
        }

    def test_imports_users_and_memberships(self):
        output = self._run(self._payload())

        self.assertIn("Users created: 2", output)
        self.assertIn("skipped: 1", output)

        community = Community.objects.get(slug="maple-street")
        # Admin memberships are not counted as members
        self.assertEqual(community.member_count, 1)

        alice = User.objects.get(email="alice@example.com")
        self.assertFalse(alice.has_usable_password())
        self.assertEqual(alice.communities, {community.pk: CommunityMembership.ROLE_MEMBER})
        self.assertEqual(alice.default_community_id, community.pk)

        profile = GamificationProfile.objects.get(user=alice)
        self.assertEqual(profile.points, 60)
        self.assertEqual(profile.level, 2)

    def test_reimport_never_lowers_counters(self):
        self._run(self._payload())
        payload = self._payload()
        payload["users"][0]["points"] = 10

        output = self._run(payload)

        self.assertIn("updated: 2", output)
        alice = User.objects.get(email="alice@example.com")
        self.assertEqual(GamificationProfile.objects.get(user=alice).points, 60)
        self.assertEqual(Community.objects.get(slug="maple-street").member_count, 1)

    def test_dry_run_writes_nothing(self):
        output = self._run(self._payload(), "--dry-run")

        self.assertIn("[dry run]", output)
        self.assertFalse(User.objects.exists())
        self.assertFalse(Community.objects.exists())

    def test_unreadable_export(self):
        with self.assertRaises(CommandError):
            call_command("import_legacy_users", "/nonexistent/export.json", stdout=StringIO())
