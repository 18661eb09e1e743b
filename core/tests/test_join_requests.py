from unittest import mock

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.test import SimpleTestCase, TestCase

from core.constants import (
    ACTION_JOIN_REQUEST_APPROVED,
    ACTION_JOIN_REQUEST_REJECTED,
    ROLE_COMMUNITY_ADMIN,
    ROLE_MODERATOR,
    ROLE_SUPER_ADMIN,
)
from core.exceptions import (
    AlreadyMember,
    AlreadyResolved,
    DuplicatePendingRequest,
    JoinRequestNotFound,
    MissingReason,
    Unauthorized,
)
from core.models import AdminActionLog, Community, CommunityMembership, JoinRequest
from core.services import JoinRequestService
from core.state_machine import STATUS_CANCELLED, can_transition, is_terminal_status

User = get_user_model()


class JoinRequestTestCase(TestCase):
    def setUp(self):
        self.community = Community.objects.create(
            name="Maple Street",
            slug="maple-street",
            member_count=3,
        )
        self.admin = User.objects.create_user(username="admin", role=ROLE_SUPER_ADMIN)
        self.user = User.objects.create_user(
            username="alice",
            email="alice@example.com",
            display_name="Alice A.",
        )

    def _create(self, user=None, **kwargs):
        return JoinRequestService.create_join_request(user or self.user, self.community, **kwargs)

    # --- create ---

    def test_create_snapshots_profile_and_verification(self):
        join_request = self._create(
            message="hi",
            verification={"address": "1 Maple St", "zip_code": "12345", "residency_proof": "utility_bill"},
        )

        self.assertEqual(join_request.status, JoinRequest.STATUS_PENDING)
        self.assertEqual(join_request.user_email, "alice@example.com")
        self.assertEqual(join_request.user_name, "Alice A.")
        self.assertEqual(join_request.message, "hi")
        self.assertEqual(join_request.verification["zip_code"], "12345")
        self.assertFalse(join_request.verification["verified"])

    def test_second_pending_request_is_rejected(self):
        self._create(message="hi")

        with self.assertRaises(DuplicatePendingRequest):
            self._create(message="hi again")

        self.assertEqual(JoinRequest.objects.filter(user=self.user, community=self.community).count(), 1)

    def test_pending_uniqueness_is_enforced_by_the_database(self):
        JoinRequest.objects.create(user=self.user, community=self.community)

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                JoinRequest.objects.create(user=self.user, community=self.community)

    def test_concurrent_insert_maps_to_duplicate_pending(self):
        # Another submission slips in between the existence check and the insert
        with mock.patch.object(JoinRequest.objects, "create", side_effect=IntegrityError("unique")):
            with self.assertRaises(DuplicatePendingRequest):
                self._create()

    def test_rejected_user_may_submit_a_new_request(self):
        first = self._create()
        JoinRequestService.reject_join_request(first.pk, self.admin, "Not a resident")

        second = self._create(message="I moved in last week")

        self.assertNotEqual(first.pk, second.pk)
        self.assertEqual(second.status, JoinRequest.STATUS_PENDING)

    def test_existing_member_cannot_request(self):
        CommunityMembership.objects.create(community=self.community, user=self.user)

        with self.assertRaises(AlreadyMember):
            self._create()

    def test_banned_user_cannot_request(self):
        self.user.is_banned = True
        self.user.save()

        with self.assertRaises(Unauthorized):
            self._create()

    # --- approve ---

    def test_approve_adds_member_and_increments_count(self):
        join_request = self._create(message="hi")

        approved = JoinRequestService.approve_join_request(join_request.pk, self.admin)

        self.community.refresh_from_db()
        self.assertEqual(self.community.member_count, 4)
        self.assertEqual(approved.status, JoinRequest.STATUS_APPROVED)
        self.assertEqual(approved.approved_by, self.admin)
        self.assertIsNotNone(approved.approved_at)
        self.assertEqual(self.user.communities[self.community.pk], CommunityMembership.ROLE_MEMBER)
        self.assertEqual(self.user.default_community_id, self.community.pk)

        log = AdminActionLog.objects.get(action=ACTION_JOIN_REQUEST_APPROVED)
        self.assertEqual(log.target_user, self.user)
        self.assertEqual(log.performed_by, self.admin)
        self.assertEqual(log.join_request_id, join_request.pk)

    def test_approve_keeps_existing_default_community(self):
        home = Community.objects.create(name="Home", slug="home")
        CommunityMembership.objects.create(community=home, user=self.user, is_default=True)
        join_request = self._create()

        JoinRequestService.approve_join_request(join_request.pk, self.admin)

        self.assertEqual(self.user.default_community_id, home.pk)

    def test_double_approval_applies_once(self):
        join_request = self._create()
        JoinRequestService.approve_join_request(join_request.pk, self.admin)

        with self.assertRaises(AlreadyResolved):
            JoinRequestService.approve_join_request(join_request.pk, self.admin)

        self.community.refresh_from_db()
        self.assertEqual(self.community.member_count, 4)
        self.assertEqual(AdminActionLog.objects.filter(action=ACTION_JOIN_REQUEST_APPROVED).count(), 1)

    def test_approve_then_reject_resolves_once(self):
        join_request = self._create()
        JoinRequestService.approve_join_request(join_request.pk, self.admin)

        with self.assertRaises(AlreadyResolved):
            JoinRequestService.reject_join_request(join_request.pk, self.admin, "Too late")

        join_request.refresh_from_db()
        self.assertEqual(join_request.status, JoinRequest.STATUS_APPROVED)
        self.assertEqual(join_request.rejection_reason, "")

    def test_losing_writer_sees_already_resolved_without_side_effects(self):
        join_request = self._create()
        # Another admin resolves the request after this one read it as pending
        JoinRequest.objects.filter(pk=join_request.pk).update(status=JoinRequest.STATUS_REJECTED)

        with mock.patch("core.services.can_transition", return_value=(True, "")):
            with self.assertRaises(AlreadyResolved):
                JoinRequestService.approve_join_request(join_request.pk, self.admin)

        self.community.refresh_from_db()
        self.assertEqual(self.community.member_count, 3)
        self.assertFalse(CommunityMembership.objects.filter(user=self.user).exists())

    def test_approve_requires_manage_users_in_that_community(self):
        join_request = self._create()
        other = Community.objects.create(name="Elsewhere", slug="elsewhere")
        outsider_admin = User.objects.create_user(
            username="cadmin",
            role=ROLE_COMMUNITY_ADMIN,
            admin_community=other,
        )
        moderator = User.objects.create_user(username="mod", role=ROLE_MODERATOR)

        for actor in (outsider_admin, moderator, self.user):
            with self.assertRaises(Unauthorized):
                JoinRequestService.approve_join_request(join_request.pk, actor)

        join_request.refresh_from_db()
        self.assertTrue(join_request.is_pending)

    def test_community_admin_approves_in_own_community(self):
        join_request = self._create()
        local_admin = User.objects.create_user(
            username="cadmin",
            role=ROLE_COMMUNITY_ADMIN,
            admin_community=self.community,
        )

        approved = JoinRequestService.approve_join_request(join_request.pk, local_admin)

        self.assertEqual(approved.status, JoinRequest.STATUS_APPROVED)

    def test_approve_missing_request(self):
        with self.assertRaises(JoinRequestNotFound):
            JoinRequestService.approve_join_request(999999, self.admin)

    # --- reject ---

    def test_reject_requires_reason(self):
        join_request = self._create()

        for reason in ("", "   ", None):
            with self.assertRaises(MissingReason):
                JoinRequestService.reject_join_request(join_request.pk, self.admin, reason)

        join_request.refresh_from_db()
        self.assertTrue(join_request.is_pending)
        self.assertFalse(AdminActionLog.objects.exists())

    def test_reject_records_resolution_and_audit(self):
        join_request = self._create()

        rejected = JoinRequestService.reject_join_request(join_request.pk, self.admin, "  Not a resident ")

        self.assertEqual(rejected.status, JoinRequest.STATUS_REJECTED)
        self.assertEqual(rejected.rejected_by, self.admin)
        self.assertEqual(rejected.rejection_reason, "Not a resident")
        self.community.refresh_from_db()
        self.assertEqual(self.community.member_count, 3)

        log = AdminActionLog.objects.get(action=ACTION_JOIN_REQUEST_REJECTED)
        self.assertEqual(log.reason, "Not a resident")

    # --- cancel ---

    def test_owner_cancels_pending_request(self):
        join_request = self._create()

        JoinRequestService.cancel_join_request(join_request.pk, self.user)

        self.assertFalse(JoinRequest.objects.filter(pk=join_request.pk).exists())

    def test_only_owner_can_cancel(self):
        join_request = self._create()
        stranger = User.objects.create_user(username="bob")

        with self.assertRaises(Unauthorized):
            JoinRequestService.cancel_join_request(join_request.pk, stranger)
        with self.assertRaises(Unauthorized):
            JoinRequestService.cancel_join_request(join_request.pk, self.admin)

        self.assertTrue(JoinRequest.objects.filter(pk=join_request.pk).exists())

    def test_cannot_cancel_resolved_request(self):
        join_request = self._create()
        JoinRequestService.approve_join_request(join_request.pk, self.admin)

        with self.assertRaises(AlreadyResolved):
            JoinRequestService.cancel_join_request(join_request.pk, self.user)

        self.assertTrue(JoinRequest.objects.filter(pk=join_request.pk).exists())

    def test_cancelled_request_cannot_be_approved(self):
        join_request = self._create()
        JoinRequestService.cancel_join_request(join_request.pk, self.user)

        with self.assertRaises(JoinRequestNotFound):
            JoinRequestService.approve_join_request(join_request.pk, self.admin)

    # --- reads ---

    def test_read_accessors(self):
        bob = User.objects.create_user(username="bob")
        first = self._create()
        self._create(user=bob)
        JoinRequestService.reject_join_request(first.pk, self.admin, "No")
        latest = self._create()

        self.assertEqual(JoinRequestService.get_pending_count(self.community), 2)
        self.assertEqual(JoinRequestService.get_pending_requests(self.admin, self.community).count(), 2)
        self.assertEqual(JoinRequestService.get_all_requests(self.admin, self.community).count(), 3)
        self.assertEqual(
            JoinRequestService.get_all_requests(self.admin, self.community, status=JoinRequest.STATUS_REJECTED).count(),
            1,
        )
        self.assertEqual(JoinRequestService.get_user_request(self.user, self.community), latest)

        with self.assertRaises(Unauthorized):
            JoinRequestService.get_pending_requests(bob, self.community)


class JoinRequestTransitionTestCase(SimpleTestCase):
    def test_only_pending_moves(self):
        for target in (JoinRequest.STATUS_APPROVED, JoinRequest.STATUS_REJECTED, STATUS_CANCELLED):
            self.assertEqual(can_transition(JoinRequest.STATUS_PENDING, target), (True, ""))

        for terminal in (JoinRequest.STATUS_APPROVED, JoinRequest.STATUS_REJECTED):
            allowed, reason = can_transition(terminal, JoinRequest.STATUS_APPROVED)
            self.assertFalse(allowed)
            self.assertEqual(reason, f"Join request is already {terminal}")
            self.assertTrue(is_terminal_status(terminal))

        self.assertFalse(can_transition("archived", JoinRequest.STATUS_APPROVED)[0])
