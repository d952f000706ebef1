"""
Banner Service - registry logic wired to the config store and the asset host

Every write is "read full document, mutate one key, write full document".
Failure policy:
- today's feed never fails: an unreachable store gives an empty feed
- upload failure aborts create before the config is touched
- asset delete failure is logged and the config entry is removed anyway
- nothing is retried
"""

import logging
from typing import List, NamedTuple, Optional

import pytz
from django.conf import settings
from django.utils import timezone

from . import registry
from .asset_host import get_asset_host
from .config_store import get_config_store
from .exceptions import AssetHostFailure, AssetNotFound, ConcurrentUpdate, ConfigUnavailable
from .registry import BannerEntry, UNKNOWN_ASSET

logger = logging.getLogger('ad_banner')


class BannerFeed(NamedTuple):
    banners: List[str]
    current_day: str
    timezone: str
    degraded: bool = False


class DeleteResult(NamedTuple):
    banner_id: str
    asset_ref: Optional[str]
    removed: bool
    asset_deleted: bool


class BannerService:

    def __init__(self, store=None, asset_host=None, tz_name: Optional[str] = None, compensate_orphans: Optional[bool] = None):
        self._store = store
        self._asset_host = asset_host
        self.tz_name = tz_name or settings.BANNER_TIMEZONE
        if compensate_orphans is None:
            compensate_orphans = settings.BANNER_COMPENSATE_ORPHANED_ASSETS
        self.compensate_orphans = compensate_orphans

    @property
    def store(self):
        if self._store is None:
            self._store = get_config_store()
        return self._store

    @property
    def asset_host(self):
        if self._asset_host is None:
            self._asset_host = get_asset_host()
        return self._asset_host

    def today(self, now=None) -> str:
        """Weekday token in the display timezone"""
        display_tz = pytz.timezone(self.tz_name)
        moment = (now or timezone.now()).astimezone(display_tz)
        return registry.weekday_token(moment)

    # ==================== Reads ====================

    def active_banners(self, now=None) -> BannerFeed:
        """Banners to show right now; an unreachable store yields an empty feed"""
        today = self.today(now)
        try:
            banners = registry.banners_of(self.store.load())
        except ConfigUnavailable as e:
            logger.error(f"❌ Banner feed degraded to empty list: {e.message}")
            return BannerFeed([], today, self.tz_name, degraded=True)

        return BannerFeed(registry.select_banners(banners, today), today, self.tz_name)

    def list_banners(self) -> List[BannerEntry]:
        """Every configured banner for the admin panel, raises ConfigUnavailable"""
        return registry.list_entries(registry.banners_of(self.store.load()))

    # ==================== Writes ====================

    def update_banner(self, banner_id, active, day=None, priority=None) -> BannerEntry:
        """Toggle / reschedule / reprioritise one banner without touching the others"""

        def mutate(blob):
            banners, entry = registry.apply_update(registry.banners_of(blob), banner_id, active, day, priority)
            return registry.with_banners(blob, banners), entry

        entry = self.store.update(mutate)
        logger.info(
            f"✅ Banner updated: {entry.id} active={entry.active} day={entry.day} priority={entry.priority}"
        )
        return entry

    def create_banner(self, data: bytes, filename: Optional[str] = None, content_type: Optional[str] = None) -> BannerEntry:
        """
        Upload a banner image and register it (active, random day, priority 999).

        The upload is not rolled back if the config write fails, unless
        BANNER_COMPENSATE_ORPHANED_ASSETS is on.
        """
        uploaded = self.asset_host.upload(data, filename=filename, content_type=content_type)

        def mutate(blob):
            banners, entry = registry.apply_create(registry.banners_of(blob), uploaded.url, uploaded.asset_ref)
            return registry.with_banners(blob, banners), entry

        try:
            entry = self.store.update(mutate)
        except (ConfigUnavailable, ConcurrentUpdate) as e:
            logger.error(f"❌ Banner {uploaded.asset_ref} uploaded but config write failed: {e.message}")
            if self.compensate_orphans:
                self._discard_orphan(uploaded.asset_ref)
            raise

        logger.info(f"✅ Banner registered: {entry.id} (asset {entry.asset_ref})")
        return entry

    def delete_banner(self, banner_id, asset_ref: Optional[str] = None) -> DeleteResult:
        """
        Delete the image from the asset host, then drop the config entry.

        Missing assets and missing config keys are not errors, so deleting
        twice succeeds. A failed asset delete is logged and the config entry
        is still removed.
        """
        banner_id = registry.validate_banner_id(banner_id)

        if not asset_ref:
            stored = registry.banners_of(self.store.load()).get(banner_id)
            if stored is not None:
                asset_ref = BannerEntry.from_stored(banner_id, stored).asset_ref

        asset_deleted = False
        if asset_ref and asset_ref != UNKNOWN_ASSET:
            try:
                self.asset_host.delete(asset_ref)
                asset_deleted = True
            except AssetNotFound:
                logger.warning(f"⚠️  Asset {asset_ref} not found on asset host, removing banner from config anyway")
            except AssetHostFailure as e:
                logger.error(f"❌ Asset delete failed for {asset_ref}, removing banner from config anyway: {e.message}")
        else:
            logger.warning(f"⚠️  Banner {banner_id} has no known asset reference, skipping asset delete")

        def mutate(blob):
            banners, removed = registry.apply_delete(registry.banners_of(blob), banner_id)
            if removed is None:
                return blob, None
            return registry.with_banners(blob, banners), removed

        removed = self.store.update(mutate)
        if removed is None:
            logger.warning(f"⚠️  Banner {banner_id} not found in config, nothing to remove")
        else:
            logger.info(f"🗑️  Banner removed from config: {banner_id}")

        return DeleteResult(banner_id, asset_ref, removed is not None, asset_deleted)

    def _discard_orphan(self, asset_ref: str) -> None:
        try:
            self.asset_host.delete(asset_ref)
            logger.info(f"🧹 Deleted orphaned asset {asset_ref}")
        except AssetHostFailure as e:
            logger.error(f"❌ Could not delete orphaned asset {asset_ref}: {e.message}")
