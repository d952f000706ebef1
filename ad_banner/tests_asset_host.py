"""
Tests for the Banner Asset Hosts

Tests cover:
- Cloudinary upload / destroy calls (SDK mocked), folder and timeout
- Cloudinary "not found" vs hard failures
- Local file host save / delete against a temporary MEDIA directory
"""

import shutil
import tempfile

from cloudinary.exceptions import Error as CloudinaryError
from django.test import SimpleTestCase, override_settings
from unittest.mock import patch

from .asset_host import CloudinaryAssetHost, LocalAssetHost, build_asset_host
from .exceptions import AssetHostFailure, AssetNotFound

CREDENTIALS = {'cloud_name': 'demo', 'api_key': 'key', 'api_secret': 'secret'}


class CloudinaryAssetHostTests(SimpleTestCase):

    def setUp(self):
        self.host = CloudinaryAssetHost(folder='site_banners', timeout=12, credentials=CREDENTIALS)

    @patch('ad_banner.asset_host.cloudinary.uploader.upload')
    def test_upload_returns_secure_url_and_public_id(self, mock_upload):
        mock_upload.return_value = {
            'secure_url': 'https://res.cloudinary.com/demo/image/upload/v1/site_banners/abc.png',
            'url': 'http://res.cloudinary.com/demo/image/upload/v1/site_banners/abc.png',
            'public_id': 'site_banners/abc',
        }

        asset = self.host.upload(b'image-bytes', filename='abc.png', content_type='image/png')

        self.assertEqual(asset.url, 'https://res.cloudinary.com/demo/image/upload/v1/site_banners/abc.png')
        self.assertEqual(asset.asset_ref, 'site_banners/abc')
        kwargs = mock_upload.call_args[1]
        self.assertEqual(kwargs['folder'], 'site_banners')
        self.assertEqual(kwargs['timeout'], 12)
        self.assertEqual(mock_upload.call_args[0][0].read(), b'image-bytes')

    @patch('ad_banner.asset_host.cloudinary.uploader.upload')
    def test_upload_error(self, mock_upload):
        mock_upload.side_effect = CloudinaryError('Invalid image file')
        with self.assertRaises(AssetHostFailure):
            self.host.upload(b'x')

    @patch('ad_banner.asset_host.cloudinary.uploader.upload')
    def test_upload_without_public_id(self, mock_upload):
        mock_upload.return_value = {'secure_url': 'https://x'}
        with self.assertRaises(AssetHostFailure):
            self.host.upload(b'x')

    @patch('ad_banner.asset_host.cloudinary.uploader.destroy')
    def test_delete_ok(self, mock_destroy):
        mock_destroy.return_value = {'result': 'ok'}

        self.host.delete('site_banners/abc')

        mock_destroy.assert_called_once_with('site_banners/abc', invalidate=True, timeout=12)

    @patch('ad_banner.asset_host.cloudinary.uploader.destroy')
    def test_delete_not_found(self, mock_destroy):
        mock_destroy.return_value = {'result': 'not found'}
        with self.assertRaises(AssetNotFound):
            self.host.delete('site_banners/gone')

    @patch('ad_banner.asset_host.cloudinary.uploader.destroy')
    def test_delete_other_result_is_failure(self, mock_destroy):
        mock_destroy.return_value = {'result': 'error'}
        with self.assertRaises(AssetHostFailure) as context:
            self.host.delete('site_banners/abc')
        self.assertNotIsInstance(context.exception, AssetNotFound)

    def test_unconfigured_host(self):
        host = CloudinaryAssetHost(folder='site_banners', timeout=5, credentials={})

        self.assertFalse(host.is_configured())
        with self.assertRaises(AssetHostFailure):
            host.upload(b'x')


class LocalAssetHostTests(SimpleTestCase):

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)
        self.host = LocalAssetHost('banners', location=self.media_root, base_url='/media/')

    def test_upload_then_delete(self):
        asset = self.host.upload(b'png', filename='Summer Sale.PNG')

        self.assertTrue(asset.asset_ref.startswith('banners/'))
        self.assertTrue(asset.asset_ref.endswith('.png'))
        self.assertEqual(asset.url, f'/media/{asset.asset_ref}')
        self.assertTrue(self.host.storage.exists(asset.asset_ref))

        self.host.delete(asset.asset_ref)
        self.assertFalse(self.host.storage.exists(asset.asset_ref))

    def test_delete_missing_file(self):
        with self.assertRaises(AssetNotFound):
            self.host.delete('banners/missing.png')


class BuildAssetHostTests(SimpleTestCase):

    @override_settings(BANNER_ASSET_BACKEND='local')
    def test_local(self):
        self.assertIsInstance(build_asset_host(), LocalAssetHost)

    @override_settings(BANNER_ASSET_BACKEND='cloudinary', CLOUDINARY=CREDENTIALS)
    def test_cloudinary(self):
        host = build_asset_host()
        self.assertIsInstance(host, CloudinaryAssetHost)
        self.assertTrue(host.is_configured())

    @override_settings(BANNER_ASSET_BACKEND='s3')
    def test_unknown(self):
        with self.assertRaises(AssetHostFailure):
            build_asset_host()
