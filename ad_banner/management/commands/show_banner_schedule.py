from django.core.management.base import BaseCommand, CommandError
from ad_banner import registry
from ad_banner.banner_service import BannerService
from ad_banner.exceptions import BannerError


class Command(BaseCommand):
    help = 'Print which banners are shown on each weekday, in display order'

    def handle(self, *args, **options):
        service = BannerService()
        try:
            banners = registry.banners_of(service.store.load())
        except BannerError as e:
            raise CommandError(f'Could not read banner config: {e.message}')

        today = service.today()
        self.stdout.write(f'🗓️ Today in {service.tz_name}: {today}')

        for day in registry.WEEKDAYS:
            selected = registry.select_banners(banners, day)
            marker = ' (today)' if day == today else ''
            self.stdout.write(f'{day}{marker}: {len(selected)} banners')
            for position, url in enumerate(selected, start=1):
                self.stdout.write(f'   {position}. {url}')

        inactive = [entry for entry in registry.list_entries(banners) if not entry.active]
        if inactive:
            self.stdout.write(self.style.WARNING(f'⏸️ {len(inactive)} inactive banners kept for reactivation'))
