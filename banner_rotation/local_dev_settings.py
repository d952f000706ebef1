# Local development settings - no JSONBin, Firestore or Cloudinary account needed
# Usage: python manage.py runserver --settings=banner_rotation.local_dev_settings

from .settings import *
import os

DEBUG = True

# Allow all hosts in local development
ALLOWED_HOSTS = ['*']

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.path.join(BASE_DIR, 'local_dev.sqlite3'),
        'OPTIONS': {'timeout': BANNER_STORE_TIMEOUT},
    }
}

# Config document lives in the local database, images on local disk
BANNER_CONFIG_BACKEND = 'database'
BANNER_ASSET_BACKEND = 'local'

print("🔧 Using LOCAL SQLite config store and local banner files for development")
