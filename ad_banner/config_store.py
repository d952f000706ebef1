"""
Banner Config Store backends

The whole banner config document is one JSON blob under a fixed key.
Every backend exposes the same narrow interface:

    read()                      -> StoredDocument(blob, version)
    write(blob, expected_version)
    update(mutate)              -> read, mutate in memory, write the full blob back

``update`` is the transaction boundary. Backends that can check the version
precondition (database, firestore, memory) raise ConcurrentUpdate when another
writer got in first; jsonbin and cache fall back to last-writer-wins.
Any transport failure or timeout surfaces as ConfigUnavailable.
"""

import copy
import logging
import threading
from typing import Any, Callable, Dict, NamedTuple, Optional, Tuple

import requests
from django.conf import settings
from django.core.cache import caches
from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone

from .exceptions import ConcurrentUpdate, ConfigUnavailable
from .registry import DOCUMENT_KEY

logger = logging.getLogger('ad_banner.store')


def empty_document() -> Dict[str, Any]:
    return {DOCUMENT_KEY: {}}


class StoredDocument(NamedTuple):
    blob: Dict[str, Any]
    version: Optional[Any]


class ConfigStore:
    """Base class: whole-document get/set keyed by ``key``"""

    name = 'base'
    supports_versioning = False

    def __init__(self, key: str, timeout: float):
        self.key = key
        self.timeout = timeout

    def read(self) -> StoredDocument:
        raise NotImplementedError

    def write(self, blob: Dict[str, Any], expected_version: Optional[Any] = None) -> None:
        raise NotImplementedError

    def load(self) -> Dict[str, Any]:
        return self.read().blob

    def update(self, mutate: Callable[[Dict[str, Any]], Tuple[Dict[str, Any], Any]]) -> Any:
        """
        Read-modify-write the whole document.

        ``mutate`` receives the current blob and returns (new_blob, result).
        Returning the very same blob object skips the write.
        Exceptions raised by ``mutate`` abort before anything is written.
        """
        current = self.read()
        new_blob, result = mutate(current.blob)
        if new_blob is current.blob:
            return result
        self.write(new_blob, expected_version=current.version)
        return result

    def ping(self) -> None:
        self.read()


class DatabaseConfigStore(ConfigStore):
    """Document stored in a BannerConfigDocument row (JSONField)"""

    name = 'database'
    supports_versioning = True

    def read(self) -> StoredDocument:
        from .models import BannerConfigDocument

        try:
            record, created = BannerConfigDocument.objects.get_or_create(
                key=self.key,
                defaults={'document': empty_document()},
            )
        except DatabaseError as e:
            logger.error(f"❌ Failed to read banner config '{self.key}' from database: {str(e)}")
            raise ConfigUnavailable(f'Database config store unavailable: {str(e)}') from e

        if created:
            logger.info(f"📄 Created empty banner config document '{self.key}'")
        return StoredDocument(record.document or empty_document(), record.version)

    def write(self, blob: Dict[str, Any], expected_version: Optional[Any] = None) -> None:
        from .models import BannerConfigDocument

        try:
            with transaction.atomic():
                rows = BannerConfigDocument.objects.filter(key=self.key)
                if expected_version is not None:
                    rows = rows.filter(version=expected_version)
                updated = rows.update(
                    document=blob,
                    version=F('version') + 1,
                    updated_at=timezone.now(),
                )
                if not updated and expected_version is None:
                    BannerConfigDocument.objects.create(key=self.key, document=blob, version=1)
                    updated = 1
        except DatabaseError as e:
            logger.error(f"❌ Failed to write banner config '{self.key}' to database: {str(e)}")
            raise ConfigUnavailable(f'Database config store unavailable: {str(e)}') from e

        if not updated:
            logger.warning(f"⚠️  Banner config '{self.key}' changed since version {expected_version}, write rejected")
            raise ConcurrentUpdate()


class CacheConfigStore(ConfigStore):
    """
    Document stored in a Django cache (Redis / Upstash via REDIS_URL).

    The version check is best-effort: the cache has no compare-and-set,
    so two writers can still race between the check and the set.
    Calls are bounded by the cache client's socket timeouts, which settings
    derive from BANNER_STORE_TIMEOUT (see ``redis_cache``).
    """

    name = 'cache'
    supports_versioning = False

    def __init__(self, key: str, timeout: float, alias: str = 'default'):
        super().__init__(key, timeout)
        self.alias = alias

    @property
    def cache(self):
        return caches[self.alias]

    def read(self) -> StoredDocument:
        try:
            stored = self.cache.get(self.key)
        except Exception as e:
            logger.error(f"❌ Failed to read banner config '{self.key}' from cache: {str(e)}")
            raise ConfigUnavailable(f'Cache config store unavailable: {str(e)}') from e

        if not isinstance(stored, dict):
            return StoredDocument(empty_document(), 0)
        return StoredDocument(stored.get('document') or empty_document(), stored.get('version', 0))

    def write(self, blob: Dict[str, Any], expected_version: Optional[Any] = None) -> None:
        current = self.read()
        if expected_version is not None and current.version != expected_version:
            logger.warning(f"⚠️  Banner config '{self.key}' changed since version {expected_version}, write rejected")
            raise ConcurrentUpdate()

        try:
            self.cache.set(self.key, {'document': blob, 'version': (current.version or 0) + 1}, timeout=None)
        except Exception as e:
            logger.error(f"❌ Failed to write banner config '{self.key}' to cache: {str(e)}")
            raise ConfigUnavailable(f'Cache config store unavailable: {str(e)}') from e


class JSONBinConfigStore(ConfigStore):
    """
    Document stored in a JSONBin.io bin (one bin per deployment).

    The bin id plays the role of the store key; the master key is sent as
    an opaque secret. JSONBin has no conditional write: last writer wins.
    """

    name = 'jsonbin'

    def __init__(self, key: str, timeout: float, bin_id: Optional[str], master_key: Optional[str], base_url: str):
        super().__init__(key, timeout)
        self.bin_id = bin_id
        self.master_key = master_key
        self.base_url = base_url.rstrip('/')

    def _headers(self) -> Dict[str, str]:
        headers = {'Content-Type': 'application/json'}
        if self.master_key:
            headers['X-Master-Key'] = self.master_key
        return headers

    def _require_bin(self) -> str:
        if not self.bin_id:
            raise ConfigUnavailable('JSONBIN_BIN_ID is not configured')
        return self.bin_id

    def read(self) -> StoredDocument:
        url = f"{self.base_url}/{self._require_bin()}/latest"
        try:
            response = requests.get(url, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"❌ Failed to fetch banner config from JSONBin: {str(e)}")
            raise ConfigUnavailable(f'JSONBin unreachable: {str(e)}') from e

        if not response.ok:
            logger.error(f"❌ JSONBin read failed. Status: {response.status_code}. Body: {response.text[:200]}")
            raise ConfigUnavailable(f'JSONBin read failed with status {response.status_code}')

        try:
            data = response.json()
        except ValueError as e:
            raise ConfigUnavailable('JSONBin returned a non-JSON body') from e

        record = data.get('record') if isinstance(data, dict) else None
        return StoredDocument(record if isinstance(record, dict) else empty_document(), None)

    def write(self, blob: Dict[str, Any], expected_version: Optional[Any] = None) -> None:
        url = f"{self.base_url}/{self._require_bin()}"
        try:
            response = requests.put(url, json=blob, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"❌ Failed to write banner config to JSONBin: {str(e)}")
            raise ConfigUnavailable(f'JSONBin unreachable: {str(e)}') from e

        if not response.ok:
            logger.error(f"❌ JSONBin write failed. Status: {response.status_code}. Body: {response.text[:200]}")
            raise ConfigUnavailable(f'JSONBin write failed with status {response.status_code}')


class FirestoreConfigStore(ConfigStore):
    """
    Document stored in Firestore at /{collection}/{key}, field ``document``.

    The snapshot's update_time is the version token; writes use it as a
    last_update_time precondition.
    """

    name = 'firestore'
    supports_versioning = True

    def __init__(self, key: str, timeout: float, collection: str):
        super().__init__(key, timeout)
        self.collection = collection

    def _document_ref(self):
        from . import firebase_client

        try:
            db = firebase_client.get_firestore_client()
        except Exception as e:
            raise ConfigUnavailable(f'Firestore not configured: {str(e)}') from e
        return db, db.collection(self.collection).document(self.key)

    def read(self) -> StoredDocument:
        _, ref = self._document_ref()
        try:
            snapshot = ref.get(timeout=self.timeout)
        except Exception as e:
            logger.error(f"❌ Failed to read banner config '{self.key}' from Firestore: {str(e)}")
            raise ConfigUnavailable(f'Firestore unavailable: {str(e)}') from e

        if not snapshot.exists:
            return StoredDocument(empty_document(), None)
        data = snapshot.to_dict() or {}
        return StoredDocument(data.get('document') or empty_document(), snapshot.update_time)

    def write(self, blob: Dict[str, Any], expected_version: Optional[Any] = None) -> None:
        from google.api_core import exceptions as google_exceptions

        db, ref = self._document_ref()
        payload = {'document': blob, 'updated_at': timezone.now()}
        try:
            if expected_version is None:
                # First write: fails if someone else created the document meanwhile
                ref.create(payload, timeout=self.timeout)
            else:
                option = db.write_option(last_update_time=expected_version)
                ref.update(payload, option=option, timeout=self.timeout)
        except (google_exceptions.FailedPrecondition, google_exceptions.Conflict) as e:
            logger.warning(f"⚠️  Banner config '{self.key}' changed in Firestore, write rejected: {str(e)}")
            raise ConcurrentUpdate() from e
        except Exception as e:
            logger.error(f"❌ Failed to write banner config '{self.key}' to Firestore: {str(e)}")
            raise ConfigUnavailable(f'Firestore unavailable: {str(e)}') from e


class MemoryConfigStore(ConfigStore):
    """In-process store for local development and tests"""

    name = 'memory'
    supports_versioning = True

    def __init__(self, key: str, timeout: float = 0, initial: Optional[Dict[str, Any]] = None):
        super().__init__(key, timeout)
        self._lock = threading.Lock()
        self._blob = copy.deepcopy(initial) if initial is not None else empty_document()
        self._version = 0

    def read(self) -> StoredDocument:
        with self._lock:
            return StoredDocument(copy.deepcopy(self._blob), self._version)

    def write(self, blob: Dict[str, Any], expected_version: Optional[Any] = None) -> None:
        with self._lock:
            if expected_version is not None and expected_version != self._version:
                raise ConcurrentUpdate()
            self._blob = copy.deepcopy(blob)
            self._version += 1


# ==================== Store selection ====================

_config_store = None


def build_config_store(backend: Optional[str] = None) -> ConfigStore:
    """Instantiate the store named by BANNER_CONFIG_BACKEND"""
    backend = (backend or settings.BANNER_CONFIG_BACKEND or 'database').lower()
    key = settings.BANNER_CONFIG_KEY
    timeout = settings.BANNER_STORE_TIMEOUT

    if backend == 'database':
        return DatabaseConfigStore(key, timeout)
    if backend == 'cache':
        return CacheConfigStore(key, timeout, alias=getattr(settings, 'BANNER_CACHE_ALIAS', 'default'))
    if backend == 'jsonbin':
        return JSONBinConfigStore(
            key,
            timeout,
            bin_id=settings.JSONBIN_BIN_ID,
            master_key=settings.JSONBIN_MASTER_KEY,
            base_url=settings.JSONBIN_BASE_URL,
        )
    if backend == 'firestore':
        return FirestoreConfigStore(key, timeout, collection=settings.BANNER_FIRESTORE_COLLECTION)
    if backend == 'memory':
        return MemoryConfigStore(key, timeout)

    raise ConfigUnavailable(f'Unknown BANNER_CONFIG_BACKEND: {backend}')


def get_config_store() -> ConfigStore:
    """Process-wide config store instance"""
    global _config_store
    if _config_store is None:
        _config_store = build_config_store()
        logger.info(f"📦 Banner config store: {_config_store.name} (key='{_config_store.key}')")
    return _config_store


def reset_config_store() -> None:
    global _config_store
    _config_store = None
