"""
Tests for the Banner Config Store backends

Tests cover:
- Lazy creation of the document on first read
- Whole-document writes with the version precondition (lost update detection)
- Store failures surfacing as ConfigUnavailable
- JSONBin and Firestore backends against mocked transports
"""

from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase, override_settings
from unittest.mock import patch, MagicMock
from google.api_core.exceptions import FailedPrecondition
import requests
from django.core.cache.backends.redis import RedisCache

from banner_rotation.settings import redis_cache

from .config_store import (
    CacheConfigStore,
    DatabaseConfigStore,
    FirestoreConfigStore,
    JSONBinConfigStore,
    MemoryConfigStore,
    build_config_store,
    empty_document,
)
from .exceptions import ConcurrentUpdate, ConfigUnavailable, NotFound
from .models import BannerConfigDocument


def add_banner(banner_id):
    def mutate(blob):
        new_blob = dict(blob)
        new_blob['specific_banners'] = dict(blob['specific_banners'], **{banner_id: False})
        return new_blob, banner_id
    return mutate


class DatabaseConfigStoreTests(TestCase):
    """Test the BannerConfigDocument-backed store"""

    def setUp(self):
        self.store = DatabaseConfigStore('banner_config', timeout=5)

    def test_first_read_creates_empty_document(self):
        stored = self.store.read()

        self.assertEqual(stored.blob, {'specific_banners': {}})
        self.assertEqual(stored.version, 0)
        self.assertEqual(BannerConfigDocument.objects.filter(key='banner_config').count(), 1)

    def test_update_writes_whole_document_and_bumps_version(self):
        result = self.store.update(add_banner('x'))

        self.assertEqual(result, 'x')
        record = BannerConfigDocument.objects.get(key='banner_config')
        self.assertEqual(record.document, {'specific_banners': {'x': False}})
        self.assertEqual(record.version, 1)

    def test_stale_version_is_rejected(self):
        """Two panel writes from the same read: the second one loses"""
        first = self.store.read()
        second = self.store.read()

        self.store.write({'specific_banners': {'a': False}}, expected_version=first.version)
        with self.assertRaises(ConcurrentUpdate):
            self.store.write({'specific_banners': {'b': False}}, expected_version=second.version)

        self.assertEqual(self.store.load(), {'specific_banners': {'a': False}})

    def test_unchanged_blob_skips_write(self):
        self.store.update(lambda blob: (blob, None))
        self.assertEqual(BannerConfigDocument.objects.get(key='banner_config').version, 0)

    def test_mutate_error_writes_nothing(self):
        def failing(blob):
            raise NotFound('nope')

        with self.assertRaises(NotFound):
            self.store.update(failing)
        self.assertEqual(BannerConfigDocument.objects.get(key='banner_config').version, 0)

    def test_write_without_existing_row_creates_it(self):
        self.store.write({'specific_banners': {'y': False}})
        self.assertEqual(BannerConfigDocument.objects.get(key='banner_config').version, 1)

    def test_database_error_is_config_unavailable(self):
        with patch.object(BannerConfigDocument.objects, 'get_or_create', side_effect=DatabaseError('down')):
            with self.assertRaises(ConfigUnavailable):
                self.store.read()


class MemoryConfigStoreTests(SimpleTestCase):
    """Test the in-process store"""

    def test_reads_are_isolated_copies(self):
        store = MemoryConfigStore('k', initial={'specific_banners': {'a': False}})
        blob = store.load()
        blob['specific_banners']['b'] = False

        self.assertEqual(store.load(), {'specific_banners': {'a': False}})

    def test_lost_update_detected(self):
        store = MemoryConfigStore('k')
        stale = store.read()
        store.update(add_banner('a'))

        with self.assertRaises(ConcurrentUpdate):
            store.write({'specific_banners': {}}, expected_version=stale.version)


class CacheConfigStoreTests(SimpleTestCase):
    """Test the Django cache (Redis) store"""

    def setUp(self):
        self.store = CacheConfigStore('banner-cache-test', timeout=5)
        self.store.cache.delete('banner-cache-test')

    def test_missing_key_reads_as_empty_document(self):
        stored = self.store.read()
        self.assertEqual(stored.blob, empty_document())
        self.assertEqual(stored.version, 0)

    def test_update_round_trip(self):
        self.store.update(add_banner('a'))
        stored = self.store.read()

        self.assertEqual(stored.blob, {'specific_banners': {'a': False}})
        self.assertEqual(stored.version, 1)

    def test_stale_version_is_rejected(self):
        stale = self.store.read()
        self.store.update(add_banner('a'))
        with self.assertRaises(ConcurrentUpdate):
            self.store.write(empty_document(), expected_version=stale.version)

    def test_cache_error_is_config_unavailable(self):
        with patch('ad_banner.config_store.caches') as mock_caches:
            mock_caches.__getitem__.return_value.get.side_effect = ConnectionError('redis down')
            with self.assertRaises(ConfigUnavailable):
                self.store.read()

    def test_redis_client_is_bounded_by_store_timeout(self):
        """Building the client opens no connection, so no Redis server is needed"""
        config = redis_cache('redis://localhost:6379/0', 7)
        cache = RedisCache(config['LOCATION'], config)

        pool_options = cache._cache._pool_options
        self.assertEqual(pool_options['socket_timeout'], 7)
        self.assertEqual(pool_options['socket_connect_timeout'], 7)

    def test_redis_store_uses_configured_client(self):
        redis_caches = {'banners': redis_cache('redis://localhost:6379/0', 4)}
        with override_settings(CACHES=redis_caches):
            store = CacheConfigStore('banner_config', timeout=4, alias='banners')
            self.assertEqual(store.cache._cache._pool_options['socket_timeout'], 4)

    def test_sqlite_lock_wait_is_bounded_by_store_timeout(self):
        from banner_rotation import settings as project_settings

        self.assertEqual(
            project_settings.DATABASES['default']['OPTIONS']['timeout'],
            project_settings.BANNER_STORE_TIMEOUT,
        )


class JSONBinConfigStoreTests(SimpleTestCase):
    """Test the JSONBin.io store with requests mocked out"""

    def setUp(self):
        self.store = JSONBinConfigStore(
            'banner_config',
            timeout=7,
            bin_id='bin123',
            master_key='secret',
            base_url='https://api.jsonbin.io/v3/b/',
        )

    def _response(self, ok=True, status_code=200, payload=None):
        response = MagicMock(ok=ok, status_code=status_code, text='body')
        response.json.return_value = payload
        return response

    @patch('ad_banner.config_store.requests.get')
    def test_read_returns_record(self, mock_get):
        record = {'specific_banners': {'x': {'publicId': 'p', 'day': 'random', 'priority': 999}}}
        mock_get.return_value = self._response(payload={'record': record, 'metadata': {}})

        stored = self.store.read()

        self.assertEqual(stored.blob, record)
        self.assertIsNone(stored.version)
        mock_get.assert_called_once_with(
            'https://api.jsonbin.io/v3/b/bin123/latest',
            headers={'Content-Type': 'application/json', 'X-Master-Key': 'secret'},
            timeout=7,
        )

    @patch('ad_banner.config_store.requests.put')
    def test_write_puts_full_document(self, mock_put):
        mock_put.return_value = self._response()
        blob = {'specific_banners': {'x': False}}

        self.store.write(blob, expected_version=None)

        mock_put.assert_called_once_with(
            'https://api.jsonbin.io/v3/b/bin123',
            json=blob,
            headers={'Content-Type': 'application/json', 'X-Master-Key': 'secret'},
            timeout=7,
        )

    @patch('ad_banner.config_store.requests.put')
    def test_write_failure_status(self, mock_put):
        mock_put.return_value = self._response(ok=False, status_code=401)
        with self.assertRaises(ConfigUnavailable):
            self.store.write(empty_document())

    @patch('ad_banner.config_store.requests.get')
    def test_timeout_is_config_unavailable(self, mock_get):
        mock_get.side_effect = requests.Timeout('slow')
        with self.assertRaises(ConfigUnavailable):
            self.store.read()

    @patch('ad_banner.config_store.requests.get')
    def test_missing_record_reads_as_empty(self, mock_get):
        mock_get.return_value = self._response(payload={'metadata': {}})
        self.assertEqual(self.store.load(), empty_document())

    def test_missing_bin_id(self):
        store = JSONBinConfigStore('k', timeout=1, bin_id=None, master_key=None, base_url='https://x')
        with self.assertRaises(ConfigUnavailable):
            store.read()


class FirestoreConfigStoreTests(SimpleTestCase):
    """Test the Firestore store with the Firebase client mocked out"""

    def setUp(self):
        self.db = MagicMock()
        self.ref = self.db.collection.return_value.document.return_value
        patcher = patch('ad_banner.firebase_client.get_firestore_client', return_value=self.db)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.store = FirestoreConfigStore('banner_config', timeout=3, collection='site_config')

    def test_read_existing_document(self):
        snapshot = MagicMock(exists=True, update_time='t1')
        snapshot.to_dict.return_value = {'document': {'specific_banners': {'a': False}}}
        self.ref.get.return_value = snapshot

        stored = self.store.read()

        self.assertEqual(stored.blob, {'specific_banners': {'a': False}})
        self.assertEqual(stored.version, 't1')
        self.db.collection.assert_called_with('site_config')
        self.db.collection.return_value.document.assert_called_with('banner_config')

    def test_missing_document_is_created_on_first_write(self):
        self.ref.get.return_value = MagicMock(exists=False)

        self.store.update(add_banner('a'))

        payload = self.ref.create.call_args[0][0]
        self.assertEqual(payload['document'], {'specific_banners': {'a': False}})

    def test_write_uses_update_time_precondition(self):
        self.store.write(empty_document(), expected_version='t1')

        self.db.write_option.assert_called_once_with(last_update_time='t1')
        self.assertEqual(self.ref.update.call_args[1]['option'], self.db.write_option.return_value)

    def test_failed_precondition_is_concurrent_update(self):
        self.ref.update.side_effect = FailedPrecondition('stale')
        with self.assertRaises(ConcurrentUpdate):
            self.store.write(empty_document(), expected_version='t1')

    def test_read_error_is_config_unavailable(self):
        self.ref.get.side_effect = RuntimeError('deadline exceeded')
        with self.assertRaises(ConfigUnavailable):
            self.store.read()


class BuildConfigStoreTests(SimpleTestCase):

    def test_backend_selection(self):
        for backend, cls in (
            ('database', DatabaseConfigStore),
            ('cache', CacheConfigStore),
            ('jsonbin', JSONBinConfigStore),
            ('firestore', FirestoreConfigStore),
            ('memory', MemoryConfigStore),
        ):
            with override_settings(BANNER_CONFIG_BACKEND=backend):
                self.assertIsInstance(build_config_store(), cls)

    @override_settings(BANNER_CONFIG_BACKEND='mongodb')
    def test_unknown_backend(self):
        with self.assertRaises(ConfigUnavailable):
            build_config_store()
