"""
Tests for favorites resolution and cross-context sync.

Tests:
- Resolving ids through the story store, skipping dangling ids
- Local writes republish the resolved list
- Other-context writes trigger refresh only for participating keys
"""

import json

import pytest

from favorites import FavoritesResolver, SyncListener
from storage import ContextStorage, MemoryStorage
from stores import NOT_FOUND, PERSISTENCE_FAILURE, StoryStore


@pytest.fixture
def tab(storage):
    return ContextStorage(storage, 'tab-a')


@pytest.fixture
def stories(tab, allocator):
    return StoryStore(tab, allocator)


@pytest.fixture
def resolver(tab, stories):
    return FavoritesResolver(tab, stories)


def add_story(stories, title):
    return stories.add({'title': title, 'categoryId': 'c1', 'duration': 5, 'ageRange': '3-5'}).entity


class TestResolve:
    def test_empty_when_nothing_saved(self, resolver):
        assert resolver.ids() == []
        assert resolver.resolve() == []

    def test_resolves_in_saved_order(self, storage, stories, resolver):
        first, second = add_story(stories, 'One'), add_story(stories, 'Two')
        storage.set('favorites', json.dumps([second['id'], first['id']]))
        assert resolver.resolve() == [second, first]

    def test_dangling_ids_are_dropped(self, stories, resolver):
        kept, deleted = add_story(stories, 'Kept'), add_story(stories, 'Gone')
        resolver.add(kept['id'])
        resolver.add(deleted['id'])

        stories.delete(deleted['id'])

        assert resolver.resolve() == [kept]
        # The stored list still carries the dangling id
        assert resolver.ids() == [kept['id'], deleted['id']]

    @pytest.mark.parametrize('raw', ['{oops', '{"a": 1}', '[1, null, "s"]'])
    def test_bad_stored_values(self, allocator, raw):
        storage = MemoryStorage({'favorites': raw})
        resolver = FavoritesResolver(storage, StoryStore(storage, allocator))
        assert resolver.resolve() == []


class TestLocalChanges:
    def test_add_remove_toggle(self, stories, resolver):
        story = add_story(stories, 'One')
        assert resolver.add(story['id'])
        assert resolver.is_favorite(story['id'])
        # Adding twice keeps one entry
        resolver.add(story['id'])
        assert resolver.ids() == [story['id']]

        assert resolver.toggle(story['id'])
        assert not resolver.is_favorite(story['id'])
        assert resolver.toggle(story['id'])
        assert resolver.is_favorite(story['id'])

        assert resolver.remove(story['id'])
        assert resolver.remove(story['id']).kind == NOT_FOUND

    def test_unresolved_id_is_stored_and_skipped(self, stories, resolver):
        # The story may not have reached this context yet
        assert resolver.add('story-not-yet-synced')
        assert resolver.ids() == ['story-not-yet-synced']
        assert resolver.resolve() == []

        stories.storage.set('stories', json.dumps([{'id': 'story-not-yet-synced', 'title': 'Late'}]))
        stories.reload()
        assert [s['id'] for s in resolver.resolve()] == ['story-not-yet-synced']

    def test_local_write_republishes(self, stories, resolver):
        published = []
        resolver.subscribe(published.append)
        story = add_story(stories, 'One')

        resolver.add(story['id'])
        resolver.remove(story['id'])

        assert published == [[story], []]
        assert resolver.current == []


class TestSyncListener:
    """Cross-context notifications"""

    def test_other_context_favorites_write_triggers_refresh(self, storage, stories, resolver):
        story = add_story(stories, 'One')
        published = []
        resolver.subscribe(published.append)
        listener = SyncListener(ContextStorage(storage, 'tab-a'), [stories, resolver])
        listener.start()

        ContextStorage(storage, 'tab-b').set('favorites', json.dumps([story['id']]))

        assert published == [[story]]
        assert resolver.current == [story]

    def test_own_writes_do_not_come_back_as_notifications(self, storage, stories, resolver):
        story = add_story(stories, 'One')
        published = []
        resolver.subscribe(published.append)
        SyncListener(ContextStorage(storage, 'tab-a'), [resolver]).start()

        resolver.add(story['id'])

        # Published once by the local write, not a second time by the listener
        assert published == [[story]]

    def test_only_participants_that_sync_are_wired(self, tab, stories, resolver):
        listener = SyncListener(tab, [stories, resolver])
        assert listener.participants == [resolver]

    def test_story_writes_from_other_context_are_not_picked_up(self, storage, stories, resolver):
        """Stories are only re-read on explicit reload, unlike favorites"""
        add_story(stories, 'Local')
        SyncListener(ContextStorage(storage, 'tab-a'), [stories, resolver]).start()

        ContextStorage(storage, 'tab-b').set('stories', json.dumps([{'id': 'story-x', 'title': 'Foreign'}]))

        assert [s['title'] for s in stories.list()] == ['Local']
        stories.reload()
        assert [s['title'] for s in stories.list()] == ['Foreign']

    def test_stop_unsubscribes(self, storage, stories, resolver):
        published = []
        resolver.subscribe(published.append)
        listener = SyncListener(ContextStorage(storage, 'tab-a'), [resolver])
        listener.start()
        listener.stop()

        ContextStorage(storage, 'tab-b').set('favorites', '[]')
        assert published == []

    def test_last_write_wins_across_contexts(self, storage, allocator):
        tab_a, tab_b = ContextStorage(storage, 'tab-a'), ContextStorage(storage, 'tab-b')
        stories_a, stories_b = StoryStore(tab_a, allocator), StoryStore(tab_b, allocator)
        stories_a.list()
        stories_b.list()

        add_story(stories_a, 'From A')
        add_story(stories_b, 'From B')

        persisted = json.loads(storage.get('stories'))
        assert [s['title'] for s in persisted] == ['From B']


class TestFavoritesPersistenceFailure:
    def test_refused_write_is_reported(self, allocator):
        storage = MemoryStorage(quota_bytes=1000)
        stories = StoryStore(storage, allocator)
        story = stories.add({'title': 'One'}).entity
        resolver = FavoritesResolver(storage, stories)
        storage.quota_bytes = len(storage.get('stories')) + len('stories')

        result = resolver.add(story['id'])

        assert result.kind == PERSISTENCE_FAILURE
        assert resolver.ids() == []
        assert resolver.current == []
