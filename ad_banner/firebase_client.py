"""
Firebase Admin client for the Firestore banner config store

Credentials come from FIREBASE_CREDENTIALS_JSON (service account JSON string)
or, for development, the file at FIREBASE_CREDENTIALS_PATH.
"""

import json
import logging
from pathlib import Path

import firebase_admin
from django.conf import settings
from firebase_admin import credentials, firestore

from .exceptions import ConfigUnavailable

logger = logging.getLogger('ad_banner.store')

_firestore_client = None


def load_credentials():
    """Service account certificate from settings, or None when nothing is configured"""
    if settings.FIREBASE_CREDENTIALS_JSON:
        try:
            service_account = json.loads(settings.FIREBASE_CREDENTIALS_JSON)
        except ValueError as e:
            raise ConfigUnavailable('FIREBASE_CREDENTIALS_JSON is not valid JSON') from e
        return credentials.Certificate(service_account)

    path = settings.FIREBASE_CREDENTIALS_PATH
    if path and Path(path).exists():
        return credentials.Certificate(str(path))

    return None


def initialize_firebase():
    """Initialise the Firebase app once per process and return its Firestore client"""
    global _firestore_client

    if _firestore_client is not None:
        return _firestore_client

    try:
        # Another part of the process may already own the default app
        app = firebase_admin.get_app()
        logger.info("✅ Using existing Firebase app for the banner config store")
    except ValueError:
        cred = load_credentials()
        if cred is None:
            logger.error("❌ No Firebase credentials found - set FIREBASE_CREDENTIALS_JSON or FIREBASE_CREDENTIALS_PATH")
            raise ConfigUnavailable('Firebase credentials not configured')

        app = firebase_admin.initialize_app(cred, options={'projectId': cred.project_id})
        logger.info(f"✅ Firebase Admin SDK initialized (Project: {cred.project_id})")

    _firestore_client = firestore.client(app)
    return _firestore_client


def get_firestore_client():
    return initialize_firebase()


def reset_firestore_client():
    global _firestore_client
    _firestore_client = None
