"""
Tests for the key/value persistence port.

Tests:
- Plain get/set/remove semantics
- Quota enforcement
- Change notification and per-context filtering
- JSON file backend, including corrupt files
"""

import json

import pytest

from storage import (
    ContextStorage,
    JsonFileStorage,
    MemoryStorage,
    PersistenceError,
    StorageEvent,
    load_json,
    save_json,
)


class TestMemoryStorage:
    """Tests for the in-memory backend"""

    def test_missing_key_is_none(self):
        assert MemoryStorage().get('stories') is None

    def test_set_then_get(self):
        storage = MemoryStorage()
        storage.set('favorites', '["a"]')
        assert storage.get('favorites') == '["a"]'
        assert storage.keys() == ['favorites']

    def test_remove(self):
        storage = MemoryStorage({'favorites': '[]'})
        storage.remove('favorites')
        assert storage.get('favorites') is None
        # Removing again is a no-op
        storage.remove('favorites')

    def test_rejects_non_string_values(self):
        with pytest.raises(TypeError):
            MemoryStorage().set('stories', [])

    def test_quota_exceeded_raises_and_keeps_old_value(self):
        storage = MemoryStorage({'k': 'old'}, quota_bytes=10)
        with pytest.raises(PersistenceError):
            storage.set('k', 'x' * 50)
        assert storage.get('k') == 'old'

    def test_last_write_wins(self):
        storage = MemoryStorage()
        storage.set('stories', '["first"]', origin='tab-a')
        storage.set('stories', '["second"]', origin='tab-b')
        assert storage.get('stories') == '["second"]'


class TestNotifications:
    """Tests for storage change events"""

    def test_subscribers_see_old_and_new_values(self):
        storage = MemoryStorage({'favorites': '[]'})
        events = []
        storage.subscribe(events.append)

        storage.set('favorites', '["s1"]', origin='tab-a')
        storage.remove('favorites', origin='tab-a')

        assert events == [
            StorageEvent('favorites', '[]', '["s1"]', 'tab-a'),
            StorageEvent('favorites', '["s1"]', None, 'tab-a'),
        ]

    def test_unsubscribe(self):
        storage = MemoryStorage()
        events = []
        unsubscribe = storage.subscribe(events.append)
        unsubscribe()
        storage.set('k', 'v')
        assert events == []

    def test_failing_listener_does_not_block_others(self):
        storage = MemoryStorage()
        events = []

        def broken(event):
            raise RuntimeError('boom')

        storage.subscribe(broken)
        storage.subscribe(events.append)
        storage.set('k', 'v')
        assert len(events) == 1

    def test_no_event_when_write_fails(self):
        storage = MemoryStorage(quota_bytes=4)
        events = []
        storage.subscribe(events.append)
        with pytest.raises(PersistenceError):
            storage.set('key', 'value')
        assert events == []


class TestContextStorage:
    """Tests for per-context handles over one shared storage"""

    def test_context_only_hears_other_contexts(self):
        storage = MemoryStorage()
        tab_a = ContextStorage(storage, 'tab-a')
        tab_b = ContextStorage(storage, 'tab-b')
        heard_by_a, heard_by_b = [], []
        tab_a.on_change(heard_by_a.append)
        tab_b.on_change(heard_by_b.append)

        tab_a.set('favorites', '["s1"]')

        assert heard_by_a == []
        assert [e.key for e in heard_by_b] == ['favorites']
        assert heard_by_b[0].origin == 'tab-a'

    def test_contexts_share_values(self):
        storage = MemoryStorage()
        ContextStorage(storage, 'tab-a').set('k', 'v')
        assert ContextStorage(storage, 'tab-b').get('k') == 'v'


class TestJsonFileStorage:
    """Tests for the file-backed storage"""

    def test_round_trip_through_file(self, tmp_path):
        path = tmp_path / 'data' / 'storage.json'
        JsonFileStorage(path).set('stories', '[]')

        assert json.loads(path.read_text()) == {'stories': '[]'}
        assert JsonFileStorage(path).get('stories') == '[]'

    def test_missing_file_is_empty(self, tmp_path):
        assert JsonFileStorage(tmp_path / 'nope.json').keys() == []

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        path = tmp_path / 'storage.json'
        path.write_text('{not json')
        storage = JsonFileStorage(path)
        assert storage.get('stories') is None

        storage.set('stories', '[]')
        assert storage.get('stories') == '[]'

    def test_non_object_file_reads_as_empty(self, tmp_path):
        path = tmp_path / 'storage.json'
        path.write_text('[1, 2, 3]')
        assert JsonFileStorage(path).keys() == []

    def test_two_handles_see_each_others_writes(self, tmp_path):
        path = tmp_path / 'storage.json'
        first, second = JsonFileStorage(path), JsonFileStorage(path)
        first.set('a', '1')
        second.set('b', '2')
        assert first.get('b') == '2'
        assert second.get('a') == '1'


class TestJsonHelpers:
    def test_load_json_default_for_missing_and_corrupt(self):
        storage = MemoryStorage({'bad': '{'})
        assert load_json(storage, 'missing', []) == []
        assert load_json(storage, 'bad', []) == []

    def test_save_json(self):
        storage = MemoryStorage()
        save_json(storage, 'favorites', ['s1'])
        assert load_json(storage, 'favorites') == ['s1']
