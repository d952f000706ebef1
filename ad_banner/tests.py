"""
API tests for the Banner endpoints

Tests cover:
- GET  /api/banners              (today's feed, degraded feed)
- GET  /api/config/banners/list  (panel listing)
- PUT  /api/config/banners       (partial update, validation, 404)
- POST /api/banners/upload       (create, upload failure)
- DELETE /api/banners/delete     (delete, idempotency)
- GET  /api/banners/health
"""

from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase
from unittest.mock import patch, MagicMock

from .asset_host import AssetHost, UploadedAsset
from .config_store import reset_config_store
from .exceptions import AssetHostFailure, ConcurrentUpdate, ConfigUnavailable
from .models import BannerConfigDocument

BANNER_A = 'https://res.cloudinary.com/demo/image/upload/site_banners/a.png'
BANNER_B = 'https://res.cloudinary.com/demo/image/upload/site_banners/b.png'
NEW_BANNER = 'https://res.cloudinary.com/demo/image/upload/site_banners/new.png'


class BannerAPITestCase(APITestCase):
    """Seeds the database config store and swaps in a fake asset host"""

    def setUp(self):
        reset_config_store()
        self.client = APIClient()
        self.record = BannerConfigDocument.objects.create(
            key='banner_config',
            document={'specific_banners': {
                BANNER_A: {'assetRef': 'site_banners/a', 'day': 'random', 'priority': 999, 'active': True},
                BANNER_B: {'assetRef': 'site_banners/b', 'day': 'monday', 'priority': 1, 'active': True},
            }},
        )

        self.host = MagicMock(spec=AssetHost)
        self.host.name = 'fake'
        self.host.is_configured.return_value = True
        self.host.upload.return_value = UploadedAsset(url=NEW_BANNER, asset_ref='site_banners/new')
        patcher = patch('ad_banner.banner_service.get_asset_host', return_value=self.host)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(reset_config_store)

    def stored_banners(self):
        self.record.refresh_from_db()
        return self.record.document['specific_banners']


class BannerFeedAPITests(BannerAPITestCase):
    """Test GET /api/banners"""

    def setUp(self):
        super().setUp()
        self.url = reverse('ad_banner:banners_api')

    @patch('ad_banner.banner_service.BannerService.today', return_value='monday')
    def test_monday_feed(self, mock_today):
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['banners'], [BANNER_B, BANNER_A])
        self.assertEqual(response.data['debug']['currentDay'], 'monday')
        self.assertEqual(response.data['debug']['timezone'], 'America/Sao_Paulo')
        self.assertEqual(response.data['debug']['numActive'], 2)

    @patch('ad_banner.banner_service.BannerService.today', return_value='tuesday')
    def test_tuesday_feed(self, mock_today):
        response = self.client.get(self.url)
        self.assertEqual(response.data['banners'], [BANNER_A])

    def test_trailing_slash_is_accepted(self):
        response = self.client.get(self.url + '/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    @patch('ad_banner.config_store.DatabaseConfigStore.read', side_effect=ConfigUnavailable('down'))
    def test_store_down_gives_empty_feed(self, mock_read):
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['banners'], [])
        self.assertTrue(response.data['debug']['degraded'])

    def test_missing_document_gives_empty_feed(self):
        BannerConfigDocument.objects.all().delete()

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['banners'], [])
        self.assertTrue(BannerConfigDocument.objects.filter(key='banner_config').exists())


class BannerListAPITests(BannerAPITestCase):
    """Test GET /api/config/banners/list"""

    def setUp(self):
        super().setUp()
        self.url = reverse('ad_banner:banner_list')

    def test_lists_every_banner_by_priority(self):
        self.record.document['specific_banners']['legacy'] = False
        self.record.save()

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['config'], {})
        banners = response.data['banners']
        self.assertEqual([b['fileName'] for b in banners], [BANNER_B, BANNER_A, 'legacy'])
        self.assertEqual(banners[0], {
            'fileName': BANNER_B,
            'isDailyBanner': False,
            'isActive': True,
            'day': 'monday',
            'priority': 1,
            'publicId': 'site_banners/b',
        })
        self.assertFalse(banners[2]['isActive'])

    @patch('ad_banner.config_store.DatabaseConfigStore.read', side_effect=ConfigUnavailable('down'))
    def test_store_down_is_503(self, mock_read):
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertFalse(response.data['success'])
        self.assertIn('error', response.data)


class BannerUpdateAPITests(BannerAPITestCase):
    """Test PUT /api/config/banners"""

    def setUp(self):
        super().setUp()
        self.url = reverse('ad_banner:banner_config')

    def test_update_day_and_priority(self):
        response = self.client.put(self.url, {
            'file': BANNER_A, 'active': True, 'day': 'tuesday', 'priority': 5,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['new_state'], True)
        self.assertEqual(response.data['banner_file'], BANNER_A)
        self.assertEqual(response.data['new_day'], 'tuesday')
        self.assertEqual(response.data['new_priority'], 5)

        banners = self.stored_banners()
        self.assertEqual(banners[BANNER_A], {'assetRef': 'site_banners/a', 'day': 'tuesday', 'priority': 5, 'active': True})
        self.assertEqual(banners[BANNER_B], {'assetRef': 'site_banners/b', 'day': 'monday', 'priority': 1, 'active': True})

    def test_deactivate_keeps_rule(self):
        response = self.client.put(self.url, {'file': BANNER_B, 'active': False}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['new_state'], False)
        self.assertEqual(response.data['new_day'], 'monday')
        self.assertEqual(response.data['new_priority'], 1)
        self.assertEqual(
            self.stored_banners()[BANNER_B],
            {'assetRef': 'site_banners/b', 'day': 'monday', 'priority': 1, 'active': False},
        )

    def test_active_must_be_boolean(self):
        response = self.client.put(self.url, {'file': BANNER_A, 'active': 'true'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertIn('active', response.data['error'])

    def test_file_is_required(self):
        response = self.client.put(self.url, {'active': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_day(self):
        response = self.client.put(self.url, {'file': BANNER_A, 'active': True, 'day': 'someday'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_priority_must_be_integer(self):
        response = self.client.put(self.url, {'file': BANNER_A, 'active': True, 'priority': '3'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_banner_is_404(self):
        response = self.client.put(self.url, {'file': 'https://nowhere/x.png', 'active': True}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertNotIn('https://nowhere/x.png', self.stored_banners())

    def test_validation_failure_never_reaches_store(self):
        with patch('ad_banner.config_store.DatabaseConfigStore.read') as mock_read:
            self.client.put(self.url, {'file': BANNER_A, 'active': 1}, format='json')
        mock_read.assert_not_called()

    @patch('ad_banner.config_store.DatabaseConfigStore.read', side_effect=ConfigUnavailable('down'))
    def test_store_down_is_503(self, mock_read):
        response = self.client.put(self.url, {'file': BANNER_A, 'active': False}, format='json')

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data, {'success': False, 'error': 'down'})

    @patch('ad_banner.config_store.DatabaseConfigStore.write', side_effect=ConcurrentUpdate())
    def test_lost_race_is_409(self, mock_write):
        response = self.client.put(self.url, {'file': BANNER_A, 'active': False}, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(response.data['success'])
        self.assertIn('modified concurrently', response.data['error'])
        mock_write.assert_called_once()
        self.assertTrue(self.stored_banners()[BANNER_A]['active'])

    def test_stale_version_is_409(self):
        """Another writer bumps the version between our read and write"""
        from .config_store import DatabaseConfigStore

        original_read = DatabaseConfigStore.read

        def read_then_race(store):
            stored = original_read(store)
            BannerConfigDocument.objects.filter(key='banner_config').update(version=stored.version + 1)
            return stored

        with patch.object(DatabaseConfigStore, 'read', read_then_race):
            response = self.client.put(self.url, {'file': BANNER_A, 'active': False}, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(self.stored_banners()[BANNER_A]['active'])


class BannerUploadAPITests(BannerAPITestCase):
    """Test POST /api/banners/upload"""

    def setUp(self):
        super().setUp()
        self.url = reverse('ad_banner:banner_upload')

    def test_upload_registers_banner(self):
        image = SimpleUploadedFile('new.png', b'\x89PNG fake image', content_type='image/png')

        response = self.client.post(self.url, {'bannerFile': image}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['url'], NEW_BANNER)
        self.assertEqual(response.data['publicId'], 'site_banners/new')
        self.assertEqual(
            self.stored_banners()[NEW_BANNER],
            {'assetRef': 'site_banners/new', 'day': 'random', 'priority': 999, 'active': True},
        )

        listed = self.client.get(reverse('ad_banner:banner_list')).data['banners']
        new_entry = [b for b in listed if b['fileName'] == NEW_BANNER][0]
        self.assertTrue(new_entry['isActive'])
        self.assertEqual(new_entry['day'], 'random')
        self.assertEqual(new_entry['priority'], 999)

    def test_missing_file(self):
        response = self.client.post(self.url, {}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])

    def test_non_image_rejected(self):
        document = SimpleUploadedFile('notes.txt', b'hello', content_type='text/plain')
        response = self.client.post(self.url, {'bannerFile': document}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.host.upload.assert_not_called()

    def test_asset_host_failure_leaves_config_untouched(self):
        self.host.upload.side_effect = AssetHostFailure('Cloudinary upload failed')
        image = SimpleUploadedFile('new.png', b'data', content_type='image/png')

        response = self.client.post(self.url, {'bannerFile': image}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertNotIn(NEW_BANNER, self.stored_banners())

    def test_duplicate_url_is_409(self):
        self.host.upload.return_value = UploadedAsset(url=BANNER_A, asset_ref='site_banners/a')
        image = SimpleUploadedFile('a.png', b'data', content_type='image/png')

        response = self.client.post(self.url, {'bannerFile': image}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(self.stored_banners()[BANNER_A]['priority'], 999)

    @patch('ad_banner.config_store.DatabaseConfigStore.read', side_effect=ConfigUnavailable('down'))
    def test_store_down_is_503(self, mock_read):
        image = SimpleUploadedFile('new.png', b'data', content_type='image/png')

        response = self.client.post(self.url, {'bannerFile': image}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data, {'success': False, 'error': 'down'})
        self.host.upload.assert_called_once()
        self.host.delete.assert_not_called()

    @patch('ad_banner.config_store.DatabaseConfigStore.write', side_effect=ConcurrentUpdate())
    def test_lost_race_is_409(self, mock_write):
        image = SimpleUploadedFile('new.png', b'data', content_type='image/png')

        response = self.client.post(self.url, {'bannerFile': image}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(response.data['success'])
        self.assertNotIn(NEW_BANNER, self.stored_banners())


class BannerDeleteAPITests(BannerAPITestCase):
    """Test DELETE /api/banners/delete"""

    def setUp(self):
        super().setUp()
        self.url = reverse('ad_banner:banner_delete')

    def test_delete_banner(self):
        response = self.client.delete(self.url, {'fileUrl': BANNER_A, 'publicId': 'site_banners/a'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.host.delete.assert_called_once_with('site_banners/a')
        self.assertNotIn(BANNER_A, self.stored_banners())
        self.assertIn(BANNER_B, self.stored_banners())

    def test_delete_uses_stored_asset_ref(self):
        self.client.delete(self.url, {'fileUrl': BANNER_B}, format='json')
        self.host.delete.assert_called_once_with('site_banners/b')

    def test_delete_twice_succeeds(self):
        self.client.delete(self.url, {'fileUrl': BANNER_A}, format='json')
        response = self.client.delete(self.url, {'fileUrl': BANNER_A}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])

    def test_delete_with_query_string(self):
        response = self.client.delete(f'{self.url}?fileUrl={BANNER_A}')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotIn(BANNER_A, self.stored_banners())

    def test_asset_failure_still_removes_config(self):
        self.host.delete.side_effect = AssetHostFailure('timeout')

        response = self.client.delete(self.url, {'fileUrl': BANNER_A}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotIn(BANNER_A, self.stored_banners())

    def test_missing_url(self):
        response = self.client.delete(self.url, {'publicId': 'site_banners/a'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.host.delete.assert_not_called()

    @patch('ad_banner.config_store.DatabaseConfigStore.read', side_effect=ConfigUnavailable('down'))
    def test_store_down_is_503(self, mock_read):
        response = self.client.delete(self.url, {'fileUrl': BANNER_A, 'publicId': 'site_banners/a'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data, {'success': False, 'error': 'down'})

    @patch('ad_banner.config_store.DatabaseConfigStore.write', side_effect=ConcurrentUpdate())
    def test_lost_race_is_409(self, mock_write):
        response = self.client.delete(self.url, {'fileUrl': BANNER_A, 'publicId': 'site_banners/a'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(response.data['success'])
        self.assertIn(BANNER_A, self.stored_banners())


class HealthCheckTests(BannerAPITestCase):
    """Test GET /api/banners/health"""

    def setUp(self):
        super().setUp()
        self.url = reverse('ad_banner:health_check')

    def test_healthy(self):
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'healthy')
        self.assertIn('database', response.data['checks']['config_store'])

    @patch('ad_banner.config_store.DatabaseConfigStore.read', side_effect=ConfigUnavailable('down'))
    def test_store_down(self, mock_read):
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data['status'], 'unhealthy')

    def test_asset_host_not_configured(self):
        self.host.is_configured.return_value = False

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertIn('unhealthy', response.data['checks']['asset_host'])
