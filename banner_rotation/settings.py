"""
Django settings for the Banner Rotation backend

All values are read once at process start from the environment.
A local .env file is loaded first but never overrides real environment variables.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / '.env', override=False)


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def env_int(name, default):
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


def redis_cache(url, timeout):
    """RedisCache entry whose connect and socket I/O are bounded by ``timeout``"""
    return {
        'BACKEND': 'django.core.cache.backends.redis.RedisCache',
        'LOCATION': url,
        'OPTIONS': {
            'socket_timeout': timeout,
            'socket_connect_timeout': timeout,
        },
    }


# SECURITY: never run production with the fallback key
SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'django-insecure-banner-rotation-dev-key')
DEBUG = env_bool('DJANGO_DEBUG', False)
ALLOWED_HOSTS = [h.strip() for h in os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h.strip()]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'cloudinary',
    'ad_banner',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'banner_rotation.urls'
WSGI_APPLICATION = 'banner_rotation.wsgi.application'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

# Seconds any single config store call may take (database lock wait, redis socket, HTTP)
BANNER_STORE_TIMEOUT = env_int('BANNER_STORE_TIMEOUT', 10)

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.environ.get('SQLITE_PATH', str(BASE_DIR / 'db.sqlite3')),
        'OPTIONS': {
            'timeout': BANNER_STORE_TIMEOUT,
        },
    }
}

# Redis-backed cache when REDIS_URL is set (Upstash style), local memory otherwise
REDIS_URL = os.environ.get('REDIS_URL')
if REDIS_URL:
    CACHES = {
        'default': redis_cache(REDIS_URL, BANNER_STORE_TIMEOUT),
    }
else:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'banner-rotation',
        }
    }

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
MEDIA_URL = '/media/'
MEDIA_ROOT = BASE_DIR / 'media'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Banner uploads are read into memory before being handed to the asset host
BANNER_MAX_UPLOAD_BYTES = env_int('BANNER_MAX_UPLOAD_BYTES', 5 * 1024 * 1024)
DATA_UPLOAD_MAX_MEMORY_SIZE = BANNER_MAX_UPLOAD_BYTES + 1024 * 1024
FILE_UPLOAD_MAX_MEMORY_SIZE = BANNER_MAX_UPLOAD_BYTES

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_THROTTLE_RATES': {
        'banner_upload': '20/minute',
    },
    'UNAUTHENTICATED_USER': None,
}

# ==================== Banner Config Store ====================

BANNER_CONFIG_BACKEND = os.environ.get('BANNER_CONFIG_BACKEND', 'database')
BANNER_CONFIG_KEY = os.environ.get('BANNER_CONFIG_KEY', 'banner_config')

# JSONBin.io (the master key is the only shared secret the store sees)
JSONBIN_BASE_URL = os.environ.get('JSONBIN_BASE_URL', 'https://api.jsonbin.io/v3/b')
JSONBIN_BIN_ID = os.environ.get('JSONBIN_BIN_ID')
JSONBIN_MASTER_KEY = os.environ.get('JSONBIN_MASTER_KEY')

# Firestore
FIREBASE_CREDENTIALS_JSON = os.environ.get('FIREBASE_CREDENTIALS_JSON')
FIREBASE_CREDENTIALS_PATH = Path(os.environ.get('FIREBASE_CREDENTIALS_PATH', BASE_DIR / 'firebase_keys' / 'service_account.json'))
BANNER_FIRESTORE_COLLECTION = os.environ.get('BANNER_FIRESTORE_COLLECTION', 'site_config')

# ==================== Banner Asset Host ====================

BANNER_ASSET_BACKEND = os.environ.get('BANNER_ASSET_BACKEND', 'cloudinary')
BANNER_ASSET_TIMEOUT = env_int('BANNER_ASSET_TIMEOUT', 30)
BANNER_CLOUDINARY_FOLDER = os.environ.get('BANNER_CLOUDINARY_FOLDER', 'site_banners')
BANNER_LOCAL_ASSET_DIR = 'banners'

CLOUDINARY = {
    'cloud_name': os.environ.get('CLOUDINARY_CLOUD_NAME'),
    'api_key': os.environ.get('CLOUDINARY_API_KEY'),
    'api_secret': os.environ.get('CLOUDINARY_API_SECRET'),
    'secure': True,
}

# Delete the uploaded asset again when the config write after an upload fails
BANNER_COMPENSATE_ORPHANED_ASSETS = env_bool('BANNER_COMPENSATE_ORPHANED_ASSETS', False)

# ==================== Banner Display ====================

BANNER_TIMEZONE = os.environ.get('BANNER_TIMEZONE', 'America/Sao_Paulo')

# ==================== Logging ====================

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} [{levelname}] {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'ad_banner': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
        'django': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}
