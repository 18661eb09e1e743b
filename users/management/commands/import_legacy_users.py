import json

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.db.models import F
from django.utils.text import slugify

from core.models import Community, CommunityMembership
from gamification.levels import calculate_level
from gamification.models import GamificationProfile
from users.normalization import normalize_user_document

User = get_user_model()


class Command(BaseCommand):
    help = "Imports users and communities from a legacy JSON export, normalizing old document shapes"

    def add_arguments(self, parser):
        parser.add_argument("path", help="JSON file: a list of user docs or {\"communities\": [...], \"users\": [...]}")
        parser.add_argument("--dry-run", action="store_true", help="Validate and report without saving")

    def handle(self, *args, **options):
        try:
            with open(options["path"], encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise CommandError(f"Could not read export: {exc}")

        if isinstance(data, list):
            community_docs, user_docs = [], data
        else:
            community_docs, user_docs = data.get("communities", []), data.get("users", [])

        self.stdout.write(f"📥 Importing {len(community_docs)} communities and {len(user_docs)} users...")

        stats = {"created": 0, "updated": 0, "skipped": 0, "legacy": 0}

        with transaction.atomic():
            community_map = self._import_communities(community_docs)

            for doc in user_docs:
                try:
                    canonical = normalize_user_document(doc)
                except ValueError as exc:
                    stats["skipped"] += 1
                    self.stderr.write(f"Skipping document: {exc}")
                    continue

                if canonical.shape == "legacy":
                    stats["legacy"] += 1

                created = self._import_user(canonical, community_map)
                stats["created" if created else "updated"] += 1

            if options["dry_run"]:
                transaction.set_rollback(True)

        prefix = "[dry run] " if options["dry_run"] else ""
        self.stdout.write(self.style.SUCCESS(
            f"{prefix}Users created: {stats['created']}, updated: {stats['updated']}, "
            f"skipped: {stats['skipped']} ({stats['legacy']} legacy documents normalized)"
        ))

    def _import_communities(self, docs) -> dict:
        community_map = {}
        for doc in docs:
            name = (doc.get("name") or "").strip()
            if not name or doc.get("id") is None:
                self.stderr.write(f"Skipping community without id/name: {doc!r}")
                continue

            community, _ = Community.objects.get_or_create(
                slug=slugify(name),
                defaults={
                    "name": name,
                    "description": doc.get("description", ""),
                    "location": doc.get("location", ""),
                    "is_active": doc.get("active", True),
                },
            )
            community_map[str(doc["id"])] = community
        return community_map

    def _import_user(self, canonical, community_map) -> bool:
        user = None
        if canonical.email:
            user = User.objects.filter(email__iexact=canonical.email).first()
        created = user is None

        if created:
            user = User(username=canonical.username, email=canonical.email)
            user.set_unusable_password()

        user.display_name = canonical.display_name or user.display_name
        user.role = canonical.role
        user.admin_community = community_map.get(canonical.admin_community)
        user.trust_score = canonical.trust_score
        user.email_verified = canonical.email_verified
        user.phone_verified = canonical.phone_verified
        user.id_verified = canonical.id_verified
        user.is_banned = canonical.is_banned
        user.ban_reason = canonical.ban_reason
        user.save()

        for legacy_id, role in canonical.communities.items():
            community = community_map.get(legacy_id)
            if community is None:
                self.stderr.write(f"User {canonical.legacy_id}: unknown community {legacy_id}, membership skipped")
                continue

            membership, joined = CommunityMembership.objects.get_or_create(
                community=community,
                user=user,
                defaults={"role": role, "is_active": True, "is_counted": role == CommunityMembership.ROLE_MEMBER},
            )
            if joined and role == CommunityMembership.ROLE_MEMBER:
                Community.objects.filter(pk=community.pk).update(member_count=F("member_count") + 1)

            if legacy_id == canonical.default_community and not membership.is_default:
                membership.is_default = True
                membership.save(update_fields=["is_default"])

        profile, _ = GamificationProfile.objects.get_or_create(user=user)
        # Counters never move backwards on re-import
        profile.points = max(profile.points, canonical.points)
        profile.level = calculate_level(profile.points).level
        profile.achievements = list(dict.fromkeys(list(profile.achievements or []) + canonical.achievements))
        profile.streak_days = max(profile.streak_days, canonical.streak_days)
        category_stats = dict(profile.category_stats or {})
        for category, count in canonical.category_stats.items():
            category_stats[category] = max(category_stats.get(category, 0), count)
        profile.category_stats = category_stats
        profile.save()

        return created
