from django.core.management.base import BaseCommand, CommandError
from ad_banner import registry
from ad_banner.config_store import get_config_store
from ad_banner.exceptions import BannerError


class Command(BaseCommand):
    help = 'Rewrite the stored banner config in the canonical encoding (named weekdays, explicit active flag, assetRef)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would change without writing the document',
        )

    def handle(self, *args, **options):
        store = get_config_store()
        dry_run = options['dry_run']
        self.stdout.write(f'📦 Config store: {store.name} (key={store.key})')

        changes = []

        def mutate(blob):
            banners = registry.banners_of(blob)
            normalized = registry.normalize_banners(banners)
            for banner_id, value in banners.items():
                if value != normalized[banner_id]:
                    changes.append((banner_id, value, normalized[banner_id]))
            if not changes or dry_run:
                return blob, None
            return registry.with_banners(blob, normalized), None

        try:
            store.update(mutate)
        except BannerError as e:
            raise CommandError(f'Could not normalize banner config: {e.message}')

        for banner_id, old, new in changes:
            self.stdout.write(f"🔧 {banner_id}: {old!r} → {new!r}")

        if not changes:
            self.stdout.write(self.style.SUCCESS('✅ Banner config is already canonical!'))
        elif dry_run:
            self.stdout.write(self.style.WARNING(f'ℹ️ Dry run: {len(changes)} banners would be rewritten'))
        else:
            self.stdout.write(self.style.SUCCESS(f'✅ Rewrote {len(changes)} banners in canonical form'))
