"""
WSGI config for the Banner Rotation backend
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'banner_rotation.settings')

application = get_wsgi_application()
