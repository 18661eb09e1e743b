import random
from datetime import timedelta

from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
from django.utils import timezone

from assistance.models import HelpRequest
from assistance.services import HelpRequestService
from core.constants import ROLE_COMMUNITY_ADMIN, ROLE_SUPER_ADMIN
from core.models import Community, CommunityMembership, JoinRequest
from core.services import JoinRequestService
from reputation.scheduler import update_outdated_trust_scores

User = get_user_model()

HELP_REQUESTS = [
    ("Pick up groceries", "Groceries", HelpRequest.URGENCY_MEDIUM),
    ("Ride to the clinic on Thursday", "Transport", HelpRequest.URGENCY_HIGH),
    ("Water plants while I'm away", "Home", HelpRequest.URGENCY_LOW),
    ("Help moving a couch", "Moving", HelpRequest.URGENCY_LOW),
    ("Walk the dog this evening", "Pets", HelpRequest.URGENCY_MEDIUM),
]


class Command(BaseCommand):
    help = "Seeds a sample community with members, join requests and completed help requests"

    def add_arguments(self, parser):
        parser.add_argument("--seed", type=int, default=None, help="Random seed for repeatable data")

    def handle(self, *args, **options):
        rng = random.Random(options["seed"])
        self.stdout.write("🌱 Seeding data...")

        # 1. Users
        root = self._user("admin", "admin@example.com", "admin", role=ROLE_SUPER_ADMIN, is_staff=True, is_superuser=True)
        neighbors = [
            self._user(name, f"{name}@example.com", "password")
            for name in ("alice", "bob", "carol", "dave")
        ]

        # 2. Community
        community, created = Community.objects.get_or_create(
            slug="maple-street",
            defaults={
                "name": "Maple Street",
                "description": "Neighbors helping neighbors around Maple Street.",
                "location": "Maple Street",
                "created_by": root,
            },
        )
        self.stdout.write(f"{'Created' if created else 'Used'} Community: {community.name}")

        local_admin = self._user(
            "maple_admin",
            "maple_admin@example.com",
            "password",
            role=ROLE_COMMUNITY_ADMIN,
            admin_community=community,
        )
        CommunityMembership.objects.get_or_create(
            community=community,
            user=local_admin,
            defaults={"role": CommunityMembership.ROLE_ADMIN, "is_default": True, "is_counted": False},
        )

        # 3. Memberships go through join requests like they would in the app
        for user in neighbors[:3]:
            if community.pk in user.communities:
                continue
            join_request = JoinRequest.objects.filter(
                user=user, community=community, status=JoinRequest.STATUS_PENDING
            ).first()
            if join_request is None:
                join_request = JoinRequestService.create_join_request(user, community, message="Hi, I live nearby!")
            JoinRequestService.approve_join_request(join_request.pk, local_admin)

        pending = neighbors[3]
        if not JoinRequest.objects.filter(user=pending, community=community).exists():
            JoinRequestService.create_join_request(pending, community, message="Just moved in at number 12")

        # 4. Help requests, claimed and completed by random members
        members = neighbors[:3]
        for title, category, urgency in HELP_REQUESTS:
            if HelpRequest.objects.filter(community=community, title=title).exists():
                continue

            requester, volunteer = rng.sample(members, 2)
            help_request = HelpRequestService.create_request(
                requester, community, title=title, category=category, urgency=urgency
            )
            if rng.random() < 0.2:
                self.stdout.write(f"  Left open: {title}")
                continue

            posted_at = timezone.now() - timedelta(hours=rng.randint(2, 48))
            HelpRequest.objects.filter(pk=help_request.pk).update(created_at=posted_at)
            HelpRequestService.claim_request(
                help_request.pk, volunteer, now=posted_at + timedelta(minutes=rng.randint(5, 90))
            )
            _, result = HelpRequestService.complete_request(help_request.pk, requester, now=timezone.now())
            HelpRequestService.rate_volunteer(help_request.pk, requester, rng.randint(3, 5))
            self.stdout.write(f"  Completed: {title} (+{result.points_awarded} pts for {volunteer.username})")

        # 5. Trust scores
        batch = update_outdated_trust_scores(community.pk)
        self.stdout.write(f"Trust scores refreshed: {batch.updated}")

        self.stdout.write(self.style.SUCCESS("✅ Seeding Complete!"))

    def _user(self, username, email, password, **fields):
        user, created = User.objects.get_or_create(username=username, defaults={"email": email, **fields})
        if created:
            user.set_password(password)
            user.save()
        return user
