"""
Tests for the banner management commands
"""

from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from unittest.mock import patch

from .config_store import reset_config_store
from .exceptions import ConfigUnavailable
from .models import BannerConfigDocument

LEGACY_DOCUMENT = {
    'specific_banners': {
        'https://cdn/a.png': {'publicId': 'site_banners/a', 'day': '1', 'priority': 2},
        'https://cdn/b.png': False,
        'https://cdn/c.png': {'assetRef': 'site_banners/c', 'day': 'random', 'priority': 999, 'active': True},
    },
    'daily_banners_active': True,
}


class NormalizeBannerConfigTests(TestCase):

    def setUp(self):
        reset_config_store()
        self.addCleanup(reset_config_store)
        self.record = BannerConfigDocument.objects.create(key='banner_config', document=LEGACY_DOCUMENT)

    def test_rewrites_legacy_entries(self):
        out = StringIO()
        call_command('normalize_banner_config', stdout=out)

        self.record.refresh_from_db()
        self.assertEqual(self.record.document, {
            'specific_banners': {
                'https://cdn/a.png': {'assetRef': 'site_banners/a', 'day': 'monday', 'priority': 2, 'active': True},
                'https://cdn/b.png': {'assetRef': 'unknown', 'day': 'random', 'priority': 999, 'active': False},
                'https://cdn/c.png': {'assetRef': 'site_banners/c', 'day': 'random', 'priority': 999, 'active': True},
            },
            'daily_banners_active': True,
        })
        self.assertIn('Rewrote 2 banners', out.getvalue())

    def test_dry_run_writes_nothing(self):
        out = StringIO()
        call_command('normalize_banner_config', '--dry-run', stdout=out)

        self.record.refresh_from_db()
        self.assertEqual(self.record.document, LEGACY_DOCUMENT)
        self.assertEqual(self.record.version, 0)
        self.assertIn('Dry run: 2 banners', out.getvalue())

    def test_already_canonical(self):
        call_command('normalize_banner_config', stdout=StringIO())
        out = StringIO()
        call_command('normalize_banner_config', stdout=out)

        self.assertIn('already canonical', out.getvalue())

    @patch('ad_banner.config_store.DatabaseConfigStore.read', side_effect=ConfigUnavailable('down'))
    def test_store_down(self, mock_read):
        with self.assertRaises(CommandError):
            call_command('normalize_banner_config', stdout=StringIO())


class ShowBannerScheduleTests(TestCase):

    def setUp(self):
        reset_config_store()
        self.addCleanup(reset_config_store)
        BannerConfigDocument.objects.create(key='banner_config', document=LEGACY_DOCUMENT)

    def test_prints_each_weekday(self):
        out = StringIO()
        call_command('show_banner_schedule', stdout=out)
        output = out.getvalue()

        self.assertIn('monday', output)
        self.assertIn('sunday', output)
        self.assertIn('1. https://cdn/a.png', output)
        self.assertIn('1 inactive banners', output)
