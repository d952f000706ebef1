"""
Banner Registry - display rules for the rotating banner carousel

The stored config blob looks like:

    {
        "specific_banners": {
            "<banner url>": {"assetRef": "...", "day": "random", "priority": 999, "active": true},
            "<other url>": false
        }
    }

Every function here is pure: it takes the banner mapping, returns a new one,
and never mutates its input. Only the key being changed is ever rewritten,
so entries in older encodings stay exactly as they were stored.

Weekday encoding: lowercase English names, "monday" ... "sunday".
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .exceptions import DuplicateBanner, InvalidArgument, NotFound

DOCUMENT_KEY = 'specific_banners'

RANDOM_DAY = 'random'
DEFAULT_PRIORITY = 999
UNKNOWN_ASSET = 'unknown'

WEEKDAYS = (
    'monday',
    'tuesday',
    'wednesday',
    'thursday',
    'friday',
    'saturday',
    'sunday',
)

DAY_CHOICES = (RANDOM_DAY,) + WEEKDAYS

_DAY_ALIASES = {day[:3]: day for day in WEEKDAYS}


def normalize_day(value: Any) -> str:
    """
    Map any inbound or stored day token onto the canonical encoding.

    Accepts "random", weekday names in any case, three-letter abbreviations
    and numeric tokens (1=monday ... 7=sunday, 0 is also sunday).

    Raises:
        InvalidArgument: token is not a recognised day
    """
    if isinstance(value, bool):
        raise InvalidArgument(f'Invalid day: {value!r}')

    if isinstance(value, int):
        number = value
    else:
        token = str(value).strip().lower()
        if token == RANDOM_DAY or token in WEEKDAYS:
            return token
        if token in _DAY_ALIASES:
            return _DAY_ALIASES[token]
        try:
            number = int(token)
        except ValueError:
            raise InvalidArgument(
                f'Invalid day: {value!r}. Use "random" or a weekday name (monday ... sunday)'
            )

    if number == 0:
        return 'sunday'
    if 1 <= number <= 7:
        return WEEKDAYS[number - 1]
    raise InvalidArgument(f'Invalid day number: {value!r}. Use 1 (monday) to 7 (sunday)')


def weekday_token(moment) -> str:
    """Canonical weekday token for a date or datetime"""
    return WEEKDAYS[moment.weekday()]


def _stored_day(value: Any) -> str:
    if value is None or value == '':
        return RANDOM_DAY
    try:
        return normalize_day(value)
    except InvalidArgument:
        # Unknown tokens are shown as-is in the panel and never selected
        return str(value)


def _stored_priority(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return DEFAULT_PRIORITY
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    try:
        return int(str(value).strip())
    except ValueError:
        return DEFAULT_PRIORITY


@dataclass(frozen=True)
class BannerEntry:
    """One banner's display rule"""

    id: str
    asset_ref: str = UNKNOWN_ASSET
    day: str = RANDOM_DAY
    priority: int = DEFAULT_PRIORITY
    active: bool = True

    @classmethod
    def from_stored(cls, banner_id: str, value: Any) -> 'BannerEntry':
        """Read an entry in any of the stored encodings"""
        if isinstance(value, dict):
            asset_ref = value.get('assetRef') or value.get('publicId') or UNKNOWN_ASSET
            return cls(
                id=banner_id,
                asset_ref=str(asset_ref),
                day=_stored_day(value.get('day')),
                priority=_stored_priority(value.get('priority')),
                active=value.get('active', True) is True,
            )

        # Legacy scalar encodings: only a real true is enabled
        return cls(id=banner_id, active=value is True)

    def to_stored(self) -> Dict[str, Any]:
        return {
            'assetRef': self.asset_ref,
            'day': self.day,
            'priority': self.priority,
            'active': self.active,
        }

    def is_scheduled_for(self, today: str) -> bool:
        return self.active and (self.day == RANDOM_DAY or self.day == today)


# ==================== Document access ====================

def banners_of(blob: Any) -> Dict[str, Any]:
    """Extract the banner mapping from a stored blob (missing -> empty)"""
    if not isinstance(blob, dict):
        return {}
    banners = blob.get(DOCUMENT_KEY)
    if not isinstance(banners, dict):
        return {}
    return banners


def with_banners(blob: Any, banners: Dict[str, Any]) -> Dict[str, Any]:
    """New blob holding ``banners``, other top-level keys preserved"""
    new_blob = dict(blob) if isinstance(blob, dict) else {}
    new_blob[DOCUMENT_KEY] = banners
    return new_blob


def parse_entries(banners: Dict[str, Any]) -> List[BannerEntry]:
    return [BannerEntry.from_stored(banner_id, value) for banner_id, value in banners.items()]


# ==================== Selection & listing ====================

def select_banners(banners: Dict[str, Any], today: str) -> List[str]:
    """
    Banner URLs to show today, highest precedence first.

    Active entries scheduled for ``today`` or "random", sorted by priority
    (stable, so equal priorities keep document order), without duplicates.
    """
    scheduled = [entry for entry in parse_entries(banners) if entry.is_scheduled_for(today)]
    scheduled.sort(key=lambda entry: entry.priority)

    urls = []
    seen = set()
    for entry in scheduled:
        if entry.id not in seen:
            seen.add(entry.id)
            urls.append(entry.id)
    return urls


def list_entries(banners: Dict[str, Any]) -> List[BannerEntry]:
    """Every entry, active or not, sorted by priority for the admin panel"""
    return sorted(parse_entries(banners), key=lambda entry: entry.priority)


# ==================== Validation ====================

def validate_banner_id(banner_id: Any) -> str:
    if not isinstance(banner_id, str) or not banner_id.strip():
        raise InvalidArgument('"file" (banner URL) must be provided')
    return banner_id


def validate_active(active: Any) -> bool:
    if not isinstance(active, bool):
        raise InvalidArgument('"active" must be a boolean')
    return active


def validate_priority(priority: Any) -> Optional[int]:
    if priority is None:
        return None
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise InvalidArgument('"priority" must be an integer')
    return priority


# ==================== Mutations ====================

def apply_update(
    banners: Dict[str, Any],
    banner_id: Any,
    active: Any,
    day: Any = None,
    priority: Any = None,
) -> Tuple[Dict[str, Any], BannerEntry]:
    """
    Merge a toggle/day/priority change into a single banner.

    Deactivating keeps assetRef/day/priority so a later reactivation restores
    them. Day and priority overrides only apply when activating.

    Returns:
        (new banner mapping, the entry now stored for ``banner_id``)

    Raises:
        InvalidArgument: bad id, active flag, day or priority
        NotFound: ``banner_id`` was never created
    """
    banner_id = validate_banner_id(banner_id)
    active = validate_active(active)
    priority = validate_priority(priority)
    day = normalize_day(day) if day not in (None, '') else None

    if banner_id not in banners:
        raise NotFound(f'Banner {banner_id} is not registered')

    base = BannerEntry.from_stored(banner_id, banners[banner_id])

    if active:
        entry = BannerEntry(
            id=banner_id,
            asset_ref=base.asset_ref,
            day=day or base.day,
            priority=priority if priority is not None else base.priority,
            active=True,
        )
    else:
        entry = BannerEntry(
            id=banner_id,
            asset_ref=base.asset_ref,
            day=base.day,
            priority=base.priority,
            active=False,
        )

    updated = dict(banners)
    updated[banner_id] = entry.to_stored()
    return updated, entry


def apply_create(banners: Dict[str, Any], banner_id: str, asset_ref: str) -> Tuple[Dict[str, Any], BannerEntry]:
    """Register a freshly uploaded banner: active, random day, lowest precedence"""
    banner_id = validate_banner_id(banner_id)
    if banner_id in banners:
        raise DuplicateBanner(f'Banner {banner_id} is already registered')

    entry = BannerEntry(id=banner_id, asset_ref=asset_ref or UNKNOWN_ASSET)
    created = dict(banners)
    created[banner_id] = entry.to_stored()
    return created, entry


def apply_delete(banners: Dict[str, Any], banner_id: str) -> Tuple[Dict[str, Any], Optional[BannerEntry]]:
    """Drop a banner; returns the removed entry, or None if it was not there"""
    if banner_id not in banners:
        return banners, None

    removed = BannerEntry.from_stored(banner_id, banners[banner_id])
    remaining = {key: value for key, value in banners.items() if key != banner_id}
    return remaining, removed


def normalize_banners(banners: Dict[str, Any]) -> Dict[str, Any]:
    """Rewrite every entry in the canonical encoding (used by the maintenance command)"""
    return {entry.id: entry.to_stored() for entry in parse_entries(banners)}
