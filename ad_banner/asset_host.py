"""
Banner Asset Hosts - where the banner images themselves live

    upload(data, filename, content_type) -> UploadedAsset(url, asset_ref)
    delete(asset_ref)                    -> None, raises AssetNotFound / AssetHostFailure

Cloudinary in production, Django's FileSystemStorage for local development.
"""

import io
import logging
import os
import uuid
from typing import NamedTuple, Optional

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import FileSystemStorage

from .exceptions import AssetHostFailure, AssetNotFound

logger = logging.getLogger('ad_banner.assets')


class UploadedAsset(NamedTuple):
    url: str
    asset_ref: str


class AssetHost:
    name = 'base'

    def upload(self, data: bytes, filename: Optional[str] = None, content_type: Optional[str] = None) -> UploadedAsset:
        raise NotImplementedError

    def delete(self, asset_ref: str) -> None:
        raise NotImplementedError

    def is_configured(self) -> bool:
        return True


class CloudinaryAssetHost(AssetHost):
    """Banner images uploaded to a Cloudinary folder (default 'site_banners')"""

    name = 'cloudinary'

    def __init__(self, folder: str, timeout: float, credentials: Optional[dict] = None):
        self.folder = folder
        self.timeout = timeout
        self.credentials = dict(credentials or {})
        if self.is_configured():
            cloudinary.config(**self.credentials)

    def is_configured(self) -> bool:
        return all(self.credentials.get(k) for k in ('cloud_name', 'api_key', 'api_secret'))

    def _require_config(self):
        if not self.is_configured():
            raise AssetHostFailure('Cloudinary credentials are not configured')

    def upload(self, data: bytes, filename: Optional[str] = None, content_type: Optional[str] = None) -> UploadedAsset:
        self._require_config()

        stream = io.BytesIO(data)
        stream.name = filename or 'banner'
        try:
            result = cloudinary.uploader.upload(
                stream,
                folder=self.folder,
                resource_type='image',
                timeout=self.timeout,
            )
        except CloudinaryError as e:
            logger.error(f"❌ Cloudinary upload failed: {str(e)}")
            raise AssetHostFailure(f'Cloudinary upload failed: {str(e)}') from e
        except Exception as e:
            logger.error(f"❌ Cloudinary upload error: {str(e)}", exc_info=True)
            raise AssetHostFailure(f'Cloudinary upload failed: {str(e)}') from e

        url = result.get('secure_url') or result.get('url')
        public_id = result.get('public_id')
        if not url or not public_id:
            raise AssetHostFailure('Cloudinary upload returned no URL or public_id')

        logger.info(f"🖼️  Uploaded banner to Cloudinary: {public_id}")
        return UploadedAsset(url=url, asset_ref=public_id)

    def delete(self, asset_ref: str) -> None:
        self._require_config()

        try:
            result = cloudinary.uploader.destroy(asset_ref, invalidate=True, timeout=self.timeout)
        except CloudinaryError as e:
            logger.error(f"❌ Cloudinary delete failed for {asset_ref}: {str(e)}")
            raise AssetHostFailure(f'Cloudinary delete failed: {str(e)}') from e
        except Exception as e:
            logger.error(f"❌ Cloudinary delete error for {asset_ref}: {str(e)}", exc_info=True)
            raise AssetHostFailure(f'Cloudinary delete failed: {str(e)}') from e

        outcome = (result or {}).get('result')
        if outcome == 'not found':
            raise AssetNotFound(f'Cloudinary has no asset {asset_ref}')
        if outcome != 'ok':
            raise AssetHostFailure(f'Cloudinary delete failed: {outcome}')

        logger.info(f"🗑️  Deleted banner from Cloudinary: {asset_ref}")


class LocalAssetHost(AssetHost):
    """Banner images saved under MEDIA_ROOT/<directory> and served from MEDIA_URL"""

    name = 'local'

    def __init__(self, directory: str, location=None, base_url: Optional[str] = None):
        self.directory = directory.strip('/')
        self.storage = FileSystemStorage(location=location, base_url=base_url)

    def upload(self, data: bytes, filename: Optional[str] = None, content_type: Optional[str] = None) -> UploadedAsset:
        ext = os.path.splitext(filename or '')[1].lower() or '.png'
        name = f"{self.directory}/{uuid.uuid4().hex}{ext}"
        try:
            saved_name = self.storage.save(name, ContentFile(data))
        except OSError as e:
            logger.error(f"❌ Local banner save failed: {str(e)}")
            raise AssetHostFailure(f'Could not save banner file: {str(e)}') from e

        logger.info(f"🖼️  Saved banner locally: {saved_name}")
        return UploadedAsset(url=self.storage.url(saved_name), asset_ref=saved_name)

    def delete(self, asset_ref: str) -> None:
        try:
            if not self.storage.exists(asset_ref):
                raise AssetNotFound(f'No local banner file {asset_ref}')
            self.storage.delete(asset_ref)
        except OSError as e:
            logger.error(f"❌ Local banner delete failed for {asset_ref}: {str(e)}")
            raise AssetHostFailure(f'Could not delete banner file: {str(e)}') from e

        logger.info(f"🗑️  Deleted local banner: {asset_ref}")


# ==================== Host selection ====================

_asset_host = None


def build_asset_host(backend: Optional[str] = None) -> AssetHost:
    backend = (backend or settings.BANNER_ASSET_BACKEND or 'cloudinary').lower()

    if backend == 'cloudinary':
        return CloudinaryAssetHost(
            folder=settings.BANNER_CLOUDINARY_FOLDER,
            timeout=settings.BANNER_ASSET_TIMEOUT,
            credentials=getattr(settings, 'CLOUDINARY', {}),
        )
    if backend == 'local':
        return LocalAssetHost(settings.BANNER_LOCAL_ASSET_DIR)

    raise AssetHostFailure(f'Unknown BANNER_ASSET_BACKEND: {backend}')


def get_asset_host() -> AssetHost:
    global _asset_host
    if _asset_host is None:
        _asset_host = build_asset_host()
        logger.info(f"🖼️  Banner asset host: {_asset_host.name}")
    return _asset_host


def reset_asset_host() -> None:
    global _asset_host
    _asset_host = None
