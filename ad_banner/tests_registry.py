"""
Unit tests for the Banner Registry (pure selection / merge logic)

Tests cover:
- Today's selection: filtering, priority order, stable ties, no duplicates
- Panel listing of active and inactive banners
- Partial update merge semantics and the deactivate/reactivate round trip
- Create / delete on the banner mapping
- Weekday normalization and legacy stored encodings
"""

import copy
from datetime import date

from django.test import SimpleTestCase

from . import registry
from .exceptions import DuplicateBanner, InvalidArgument, NotFound
from .registry import BannerEntry


def sample_banners():
    return {
        'bannerA': {'assetRef': 'a1', 'day': 'random', 'priority': 999},
        'bannerB': {'assetRef': 'b1', 'day': 'monday', 'priority': 1},
    }


class SelectionTests(SimpleTestCase):
    """Test select_banners()"""

    def test_scenario_monday(self):
        """Monday shows the monday banner first (lower priority number)"""
        self.assertEqual(registry.select_banners(sample_banners(), 'monday'), ['bannerB', 'bannerA'])

    def test_scenario_tuesday(self):
        """Tuesday only shows the random banner"""
        self.assertEqual(registry.select_banners(sample_banners(), 'tuesday'), ['bannerA'])

    def test_inactive_banners_are_never_selected(self):
        banners = {
            'on': {'assetRef': 'x', 'day': 'random', 'priority': 5},
            'off': {'assetRef': 'y', 'day': 'random', 'priority': 1, 'active': False},
            'legacy-off': False,
        }
        self.assertEqual(registry.select_banners(banners, 'friday'), ['on'])

    def test_hand_edited_active_flags_are_inactive(self):
        """Only a real boolean true (or no flag at all) counts as active"""
        banners = {
            'string-false': {'assetRef': 'x', 'day': 'random', 'priority': 1, 'active': 'false'},
            'string-true': {'assetRef': 'x', 'day': 'random', 'priority': 1, 'active': 'true'},
            'number': {'assetRef': 'x', 'day': 'random', 'priority': 1, 'active': 1},
            'null': {'assetRef': 'x', 'day': 'random', 'priority': 1, 'active': None},
            'scalar-string': 'yes',
            'on': {'assetRef': 'x', 'day': 'random', 'priority': 2, 'active': True},
            'legacy-on': True,
        }
        self.assertEqual(registry.select_banners(banners, 'monday'), ['on', 'legacy-on'])
        self.assertFalse(BannerEntry.from_stored('string-false', banners['string-false']).active)

    def test_only_active_and_scheduled_ids(self):
        """Every selected id is active and scheduled for today or random"""
        banners = {
            f'b{i}': {'assetRef': f'a{i}', 'day': day, 'priority': i % 3, 'active': i % 4 != 0}
            for i, day in enumerate(['random', 'monday', 'sunday', 'random', 'friday', 'monday', 'random', 'tuesday'])
        }
        selected = registry.select_banners(banners, 'monday')
        for banner_id in selected:
            entry = BannerEntry.from_stored(banner_id, banners[banner_id])
            self.assertTrue(entry.active)
            self.assertIn(entry.day, ('random', 'monday'))
        self.assertEqual(set(selected), {'b1', 'b3', 'b5', 'b6'})

    def test_sorted_by_priority_with_stable_ties(self):
        banners = {
            'late': {'assetRef': '1', 'day': 'random', 'priority': 10},
            'tie-first': {'assetRef': '2', 'day': 'random', 'priority': 3},
            'early': {'assetRef': '3', 'day': 'random', 'priority': 0},
            'tie-second': {'assetRef': '4', 'day': 'random', 'priority': 3},
        }
        self.assertEqual(
            registry.select_banners(banners, 'monday'),
            ['early', 'tie-first', 'tie-second', 'late'],
        )

    def test_missing_priority_sorts_last(self):
        banners = {
            'no-priority': {'assetRef': '1', 'day': 'random'},
            'ranked': {'assetRef': '2', 'day': 'random', 'priority': 50},
        }
        self.assertEqual(registry.select_banners(banners, 'monday'), ['ranked', 'no-priority'])

    def test_no_duplicates(self):
        selected = registry.select_banners(sample_banners(), 'monday')
        self.assertEqual(len(selected), len(set(selected)))

    def test_empty_document(self):
        self.assertEqual(registry.select_banners({}, 'monday'), [])

    def test_unknown_day_is_never_selected(self):
        banners = {'odd': {'assetRef': '1', 'day': 'someday', 'priority': 1}}
        self.assertEqual(registry.select_banners(banners, 'monday'), [])

    def test_legacy_numeric_day_matches_named_weekday(self):
        """Luxon-style '1' (monday) and '7' (sunday) are read as names"""
        banners = {
            'mon': {'publicId': 'p1', 'day': '1', 'priority': 2},
            'sun': {'publicId': 'p2', 'day': '7', 'priority': 1},
        }
        self.assertEqual(registry.select_banners(banners, 'monday'), ['mon'])
        self.assertEqual(registry.select_banners(banners, 'sunday'), ['sun'])


class ListingTests(SimpleTestCase):
    """Test list_entries()"""

    def test_lists_active_and_inactive_sorted_by_priority(self):
        banners = {
            'a': {'assetRef': 'a1', 'day': 'random', 'priority': 999},
            'b': {'assetRef': 'b1', 'day': 'friday', 'priority': 2, 'active': False},
            'c': False,
            'd': {'assetRef': 'd1', 'day': 'monday', 'priority': 1},
        }
        entries = registry.list_entries(banners)

        self.assertEqual([e.id for e in entries], ['d', 'b', 'a', 'c'])
        by_id = {e.id: e for e in entries}
        self.assertFalse(by_id['b'].active)
        self.assertEqual(by_id['b'].day, 'friday')
        self.assertEqual(by_id['b'].asset_ref, 'b1')
        self.assertFalse(by_id['c'].active)
        self.assertEqual(by_id['c'].asset_ref, 'unknown')
        self.assertEqual(by_id['c'].priority, 999)

    def test_listing_does_not_filter_by_day(self):
        banners = {'sun': {'assetRef': 's', 'day': 'sunday', 'priority': 1}}
        self.assertEqual([e.id for e in registry.list_entries(banners)], ['sun'])


class UpdateTests(SimpleTestCase):
    """Test apply_update()"""

    def test_update_changes_only_target_entry(self):
        banners = sample_banners()
        banners['legacy'] = False
        original = copy.deepcopy(banners)

        updated, entry = registry.apply_update(banners, 'bannerA', True, day='tuesday', priority=5)

        self.assertEqual(updated['bannerA'], {'assetRef': 'a1', 'day': 'tuesday', 'priority': 5, 'active': True})
        for key in ('bannerB', 'legacy'):
            self.assertEqual(updated[key], original[key])
            self.assertIs(updated[key], banners[key])
        self.assertEqual(banners, original)  # input untouched
        self.assertEqual(entry.day, 'tuesday')

    def test_activate_keeps_existing_day_and_priority(self):
        updated, entry = registry.apply_update(sample_banners(), 'bannerB', True)
        self.assertEqual(entry.day, 'monday')
        self.assertEqual(entry.priority, 1)
        self.assertEqual(entry.asset_ref, 'b1')

    def test_deactivate_then_reactivate_restores_rule(self):
        """Round trip of inactive state keeps day and priority"""
        banners = sample_banners()
        off, off_entry = registry.apply_update(banners, 'bannerB', False)

        self.assertFalse(off_entry.active)
        self.assertEqual(off['bannerB'], {'assetRef': 'b1', 'day': 'monday', 'priority': 1, 'active': False})

        on, on_entry = registry.apply_update(off, 'bannerB', True)
        self.assertEqual(on['bannerB'], {'assetRef': 'b1', 'day': 'monday', 'priority': 1, 'active': True})

    def test_deactivate_ignores_overrides(self):
        _, entry = registry.apply_update(sample_banners(), 'bannerB', False, day='friday', priority=7)
        self.assertEqual(entry.day, 'monday')
        self.assertEqual(entry.priority, 1)

    def test_reactivate_legacy_false_uses_defaults(self):
        banners = {'old': False}
        _, entry = registry.apply_update(banners, 'old', True)
        self.assertEqual(entry.to_stored(), {'assetRef': 'unknown', 'day': 'random', 'priority': 999, 'active': True})

    def test_legacy_public_id_is_carried_forward(self):
        banners = {'old': {'publicId': 'site_banners/old', 'day': 'random', 'priority': 4}}
        updated, _ = registry.apply_update(banners, 'old', True, priority=2)
        self.assertEqual(updated['old']['assetRef'], 'site_banners/old')

    def test_priority_zero_is_kept(self):
        _, entry = registry.apply_update(sample_banners(), 'bannerA', True, priority=0)
        self.assertEqual(entry.priority, 0)

    def test_day_is_normalized(self):
        _, entry = registry.apply_update(sample_banners(), 'bannerA', True, day='Wed')
        self.assertEqual(entry.day, 'wednesday')

    def test_unknown_id_raises_not_found(self):
        with self.assertRaises(NotFound):
            registry.apply_update(sample_banners(), 'missing', True)

    def test_non_boolean_active_raises(self):
        for bad in ('true', 1, None):
            with self.assertRaises(InvalidArgument):
                registry.apply_update(sample_banners(), 'bannerA', bad)

    def test_empty_id_raises(self):
        for bad in ('', '   ', None):
            with self.assertRaises(InvalidArgument):
                registry.apply_update(sample_banners(), bad, True)

    def test_invalid_day_raises(self):
        with self.assertRaises(InvalidArgument):
            registry.apply_update(sample_banners(), 'bannerA', True, day='someday')

    def test_invalid_priority_raises(self):
        for bad in ('5', 1.5, True):
            with self.assertRaises(InvalidArgument):
                registry.apply_update(sample_banners(), 'bannerA', True, priority=bad)


class CreateDeleteTests(SimpleTestCase):
    """Test apply_create() and apply_delete()"""

    def test_create_defaults(self):
        created, entry = registry.apply_create({}, 'https://cdn/x.png', 'site_banners/x')
        self.assertEqual(
            created['https://cdn/x.png'],
            {'assetRef': 'site_banners/x', 'day': 'random', 'priority': 999, 'active': True},
        )
        self.assertTrue(entry.active)

    def test_create_never_overwrites(self):
        with self.assertRaises(DuplicateBanner):
            registry.apply_create(sample_banners(), 'bannerA', 'other')

    def test_delete_removes_entry(self):
        remaining, removed = registry.apply_delete(sample_banners(), 'bannerA')
        self.assertNotIn('bannerA', remaining)
        self.assertIn('bannerB', remaining)
        self.assertEqual(removed.asset_ref, 'a1')

    def test_delete_missing_is_noop(self):
        banners = sample_banners()
        remaining, removed = registry.apply_delete(banners, 'missing')
        self.assertIs(remaining, banners)
        self.assertIsNone(removed)


class NormalizationTests(SimpleTestCase):
    """Test normalize_day() and stored document helpers"""

    def test_named_days(self):
        self.assertEqual(registry.normalize_day('Monday'), 'monday')
        self.assertEqual(registry.normalize_day(' SUNDAY '), 'sunday')
        self.assertEqual(registry.normalize_day('random'), 'random')
        self.assertEqual(registry.normalize_day('thu'), 'thursday')

    def test_numeric_days(self):
        self.assertEqual(registry.normalize_day(1), 'monday')
        self.assertEqual(registry.normalize_day('7'), 'sunday')
        self.assertEqual(registry.normalize_day(0), 'sunday')

    def test_invalid_days(self):
        for bad in ('8', -1, 'someday', True, ''):
            with self.assertRaises(InvalidArgument):
                registry.normalize_day(bad)

    def test_weekday_token(self):
        self.assertEqual(registry.weekday_token(date(2026, 10, 19)), 'monday')
        self.assertEqual(registry.weekday_token(date(2026, 10, 25)), 'sunday')

    def test_banners_of_missing_document(self):
        self.assertEqual(registry.banners_of(None), {})
        self.assertEqual(registry.banners_of({}), {})
        self.assertEqual(registry.banners_of({'specific_banners': 'junk'}), {})

    def test_with_banners_keeps_other_keys(self):
        blob = {'specific_banners': {}, 'daily_banners_active': True}
        new_blob = registry.with_banners(blob, {'x': False})
        self.assertEqual(new_blob, {'specific_banners': {'x': False}, 'daily_banners_active': True})
        self.assertEqual(blob['specific_banners'], {})

    def test_normalize_banners(self):
        banners = {
            'a': False,
            'b': {'publicId': 'pb', 'day': 3, 'priority': '4'},
        }
        self.assertEqual(registry.normalize_banners(banners), {
            'a': {'assetRef': 'unknown', 'day': 'random', 'priority': 999, 'active': False},
            'b': {'assetRef': 'pb', 'day': 'wednesday', 'priority': 4, 'active': True},
        })
