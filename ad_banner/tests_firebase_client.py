"""
Tests for the Firebase Admin client used by the Firestore config store

firebase_admin is mocked out, so no credentials or network are needed.
"""

import json
import os
import tempfile

from django.test import SimpleTestCase, override_settings
from unittest.mock import patch

from . import firebase_client
from .exceptions import ConfigUnavailable

SERVICE_ACCOUNT = {'type': 'service_account', 'project_id': 'banner-demo'}


@override_settings(FIREBASE_CREDENTIALS_JSON=None, FIREBASE_CREDENTIALS_PATH=None)
class FirebaseClientTests(SimpleTestCase):

    def setUp(self):
        firebase_client.reset_firestore_client()
        self.addCleanup(firebase_client.reset_firestore_client)

        patchers = {
            'admin': patch('ad_banner.firebase_client.firebase_admin'),
            'credentials': patch('ad_banner.firebase_client.credentials'),
            'firestore': patch('ad_banner.firebase_client.firestore'),
        }
        for name, patcher in patchers.items():
            setattr(self, f'mock_{name}', patcher.start())
            self.addCleanup(patcher.stop)

        # No default app yet
        self.mock_admin.get_app.side_effect = ValueError('The default Firebase app does not exist.')
        self.mock_credentials.Certificate.return_value.project_id = 'banner-demo'

    def test_credentials_from_json_setting(self):
        with override_settings(FIREBASE_CREDENTIALS_JSON=json.dumps(SERVICE_ACCOUNT)):
            client = firebase_client.get_firestore_client()

        self.mock_credentials.Certificate.assert_called_once_with(SERVICE_ACCOUNT)
        cert = self.mock_credentials.Certificate.return_value
        self.mock_admin.initialize_app.assert_called_once_with(cert, options={'projectId': 'banner-demo'})
        self.mock_firestore.client.assert_called_once_with(self.mock_admin.initialize_app.return_value)
        self.assertIs(client, self.mock_firestore.client.return_value)

    def test_credentials_from_file(self):
        handle, path = tempfile.mkstemp(suffix='.json')
        os.close(handle)
        self.addCleanup(os.remove, path)

        with override_settings(FIREBASE_CREDENTIALS_PATH=path):
            firebase_client.get_firestore_client()

        self.mock_credentials.Certificate.assert_called_once_with(path)
        self.mock_admin.initialize_app.assert_called_once()

    def test_missing_file_means_no_credentials(self):
        with override_settings(FIREBASE_CREDENTIALS_PATH='/nonexistent/service_account.json'):
            with self.assertRaises(ConfigUnavailable):
                firebase_client.get_firestore_client()

        self.mock_credentials.Certificate.assert_not_called()

    def test_missing_credentials(self):
        with self.assertRaises(ConfigUnavailable):
            firebase_client.get_firestore_client()

        self.mock_admin.initialize_app.assert_not_called()
        self.mock_firestore.client.assert_not_called()

    def test_invalid_json_credentials(self):
        with override_settings(FIREBASE_CREDENTIALS_JSON='{not json'):
            with self.assertRaises(ConfigUnavailable):
                firebase_client.get_firestore_client()

    def test_existing_app_is_reused(self):
        self.mock_admin.get_app.side_effect = None

        firebase_client.get_firestore_client()

        self.mock_admin.initialize_app.assert_not_called()
        self.mock_credentials.Certificate.assert_not_called()
        self.mock_firestore.client.assert_called_once_with(self.mock_admin.get_app.return_value)

    def test_client_is_created_once(self):
        with override_settings(FIREBASE_CREDENTIALS_JSON=json.dumps(SERVICE_ACCOUNT)):
            first = firebase_client.get_firestore_client()
            second = firebase_client.get_firestore_client()

        self.assertIs(first, second)
        self.mock_admin.initialize_app.assert_called_once()

    def test_firestore_store_reports_missing_credentials_as_unavailable(self):
        from .config_store import FirestoreConfigStore

        store = FirestoreConfigStore('banner_config', timeout=3, collection='site_config')
        with self.assertRaises(ConfigUnavailable):
            store.read()
