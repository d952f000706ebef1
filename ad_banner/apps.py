from django.apps import AppConfig
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
import pytz


class AdBannerConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'ad_banner'
    verbose_name = 'Promotional Banners'

    def ready(self):
        # Fail at startup rather than on the first banner request
        try:
            pytz.timezone(settings.BANNER_TIMEZONE)
        except pytz.UnknownTimeZoneError:
            raise ImproperlyConfigured(f"BANNER_TIMEZONE '{settings.BANNER_TIMEZONE}' is not a valid timezone")
