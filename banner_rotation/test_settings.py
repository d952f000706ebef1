# Test settings - in-memory database, no network collaborators

from .settings import *

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'banner-rotation-tests',
    }
}

BANNER_CONFIG_BACKEND = 'database'
BANNER_ASSET_BACKEND = 'local'
BANNER_TIMEZONE = 'America/Sao_Paulo'
BANNER_COMPENSATE_ORPHANED_ASSETS = False

MEDIA_ROOT = BASE_DIR / 'test_media'

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    'DEFAULT_THROTTLE_RATES': {
        'banner_upload': '1000/minute',
    },
}

LOGGING['loggers']['ad_banner']['level'] = 'CRITICAL'
