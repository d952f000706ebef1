"""
Tests for BannerService (registry + config store + asset host)

Tests cover:
- Feed degrades to an empty list when the store is down
- Today's weekday computed in the display timezone
- Create -> list shows the new banner with defaults
- Upload failure aborts create, config failure does not roll back the upload
- Delete tolerates missing / failing assets and is idempotent
"""

from datetime import datetime

import pytz
from django.test import SimpleTestCase
from unittest.mock import MagicMock

from .asset_host import AssetHost, UploadedAsset
from .banner_service import BannerService
from .config_store import MemoryConfigStore
from .exceptions import AssetHostFailure, AssetNotFound, ConfigUnavailable, NotFound


def make_host(url='https://res.cloudinary.com/demo/image/upload/site_banners/new.png', asset_ref='site_banners/new'):
    host = MagicMock(spec=AssetHost)
    host.upload.return_value = UploadedAsset(url=url, asset_ref=asset_ref)
    return host


class BannerFeedTests(SimpleTestCase):

    def setUp(self):
        self.store = MemoryConfigStore('k', initial={'specific_banners': {
            'bannerA': {'assetRef': 'a1', 'day': 'random', 'priority': 999},
            'bannerB': {'assetRef': 'b1', 'day': 'monday', 'priority': 1},
        }})
        self.service = BannerService(store=self.store, asset_host=make_host(), tz_name='America/Sao_Paulo')

    def test_today_uses_display_timezone(self):
        """02:00 UTC on a Monday is still Sunday evening in Sao Paulo"""
        self.assertEqual(self.service.today(datetime(2026, 10, 19, 2, 0, tzinfo=pytz.utc)), 'sunday')
        self.assertEqual(self.service.today(datetime(2026, 10, 19, 15, 0, tzinfo=pytz.utc)), 'monday')

    def test_feed_for_monday(self):
        feed = self.service.active_banners(now=datetime(2026, 10, 19, 15, 0, tzinfo=pytz.utc))

        self.assertEqual(feed.banners, ['bannerB', 'bannerA'])
        self.assertEqual(feed.current_day, 'monday')
        self.assertEqual(feed.timezone, 'America/Sao_Paulo')
        self.assertFalse(feed.degraded)

    def test_feed_degrades_to_empty_when_store_down(self):
        store = MagicMock()
        store.load.side_effect = ConfigUnavailable('down')
        service = BannerService(store=store, asset_host=make_host(), tz_name='UTC')

        feed = service.active_banners()

        self.assertEqual(feed.banners, [])
        self.assertTrue(feed.degraded)

    def test_listing_surfaces_store_failure(self):
        store = MagicMock()
        store.load.side_effect = ConfigUnavailable('down')
        service = BannerService(store=store, asset_host=make_host(), tz_name='UTC')

        with self.assertRaises(ConfigUnavailable):
            service.list_banners()


class BannerWriteTests(SimpleTestCase):

    def setUp(self):
        self.store = MemoryConfigStore('k')
        self.host = make_host()
        self.service = BannerService(store=self.store, asset_host=self.host, tz_name='UTC', compensate_orphans=False)

    def test_create_then_list(self):
        entry = self.service.create_banner(b'png-bytes', filename='new.png', content_type='image/png')

        self.host.upload.assert_called_once_with(b'png-bytes', filename='new.png', content_type='image/png')
        listed = {e.id: e for e in self.service.list_banners()}
        self.assertIn(entry.id, listed)
        self.assertTrue(listed[entry.id].active)
        self.assertEqual(listed[entry.id].day, 'random')
        self.assertEqual(listed[entry.id].priority, 999)
        self.assertEqual(listed[entry.id].asset_ref, 'site_banners/new')

    def test_upload_failure_writes_no_config(self):
        self.host.upload.side_effect = AssetHostFailure('cloudinary down')

        with self.assertRaises(AssetHostFailure):
            self.service.create_banner(b'x')
        self.assertEqual(self.service.list_banners(), [])

    def test_config_failure_keeps_uploaded_asset(self):
        store = MagicMock(wraps=self.store)
        store.update.side_effect = ConfigUnavailable('jsonbin down')
        service = BannerService(store=store, asset_host=self.host, tz_name='UTC', compensate_orphans=False)

        with self.assertRaises(ConfigUnavailable):
            service.create_banner(b'x')
        self.host.delete.assert_not_called()

    def test_config_failure_compensates_when_enabled(self):
        store = MagicMock(wraps=self.store)
        store.update.side_effect = ConfigUnavailable('jsonbin down')
        service = BannerService(store=store, asset_host=self.host, tz_name='UTC', compensate_orphans=True)

        with self.assertRaises(ConfigUnavailable):
            service.create_banner(b'x')
        self.host.delete.assert_called_once_with('site_banners/new')

    def test_update_unknown_banner(self):
        with self.assertRaises(NotFound):
            self.service.update_banner('https://nowhere/x.png', True)

    def test_update_round_trip(self):
        entry = self.service.create_banner(b'x')
        self.service.update_banner(entry.id, True, day='friday', priority=3)
        self.service.update_banner(entry.id, False)
        restored = self.service.update_banner(entry.id, True)

        self.assertEqual((restored.day, restored.priority, restored.asset_ref), ('friday', 3, 'site_banners/new'))

    def test_delete_removes_banner_and_asset(self):
        entry = self.service.create_banner(b'x')

        result = self.service.delete_banner(entry.id)

        self.host.delete.assert_called_once_with('site_banners/new')
        self.assertTrue(result.removed)
        self.assertTrue(result.asset_deleted)
        self.assertEqual(self.service.list_banners(), [])

    def test_delete_is_idempotent(self):
        entry = self.service.create_banner(b'x')
        self.service.delete_banner(entry.id, asset_ref='site_banners/new')
        self.host.delete.side_effect = AssetNotFound('gone')

        result = self.service.delete_banner(entry.id, asset_ref='site_banners/new')

        self.assertFalse(result.removed)
        self.assertFalse(result.asset_deleted)

    def test_delete_proceeds_when_asset_host_fails(self):
        entry = self.service.create_banner(b'x')
        self.host.delete.side_effect = AssetHostFailure('500 from cloudinary')

        result = self.service.delete_banner(entry.id)

        self.assertTrue(result.removed)
        self.assertFalse(result.asset_deleted)
        self.assertEqual(self.service.list_banners(), [])

    def test_delete_skips_unknown_asset(self):
        self.store.write({'specific_banners': {'legacy': False}})

        result = self.service.delete_banner('legacy')

        self.host.delete.assert_not_called()
        self.assertTrue(result.removed)

    def test_delete_leaves_other_banners(self):
        self.store.write({'specific_banners': {
            'keep': {'assetRef': 'k', 'day': 'monday', 'priority': 1},
            'drop': {'assetRef': 'd', 'day': 'random', 'priority': 2},
        }})

        self.service.delete_banner('drop')

        self.assertEqual(self.store.load(), {'specific_banners': {
            'keep': {'assetRef': 'k', 'day': 'monday', 'priority': 1},
        }})
