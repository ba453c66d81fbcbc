"""Favorites and cross-context sync.

Favorites are a bare JSON list of story ids under one key. Nothing checks
them when they are saved or when a story is deleted, so resolving them has
to skip ids that do not exist (yet, or any more).
"""

import logging

from config import FAVORITES_KEY
from storage import PersistenceError, load_json, save_json
from stores import NOT_FOUND, PERSISTENCE_FAILURE, Result

logger = logging.getLogger(__name__)


class FavoritesResolver:
    syncs_across_contexts = True
    sync_keys = (FAVORITES_KEY,)

    def __init__(self, storage, stories):
        self.storage = storage
        self.stories = stories
        self.current = []
        self._subscribers = []

    def ids(self):
        ids = load_json(self.storage, FAVORITES_KEY, [])
        if not isinstance(ids, list):
            return []
        return [story_id for story_id in ids if isinstance(story_id, str)]

    def resolve(self):
        resolved = (self.stories.get(story_id) for story_id in self.ids())
        return [story for story in resolved if story is not None]

    def subscribe(self, callback):
        """Call ``callback(stories)`` whenever the resolved list is republished."""
        self._subscribers.append(callback)

    def refresh(self):
        self.current = self.resolve()
        for callback in list(self._subscribers):
            callback(self.current)
        return self.current

    def is_favorite(self, story_id):
        return story_id in self.ids()

    def _save(self, ids):
        try:
            save_json(self.storage, FAVORITES_KEY, ids)
        except PersistenceError as e:
            logger.error('Could not save favorites: %s', e)
            return Result.fail(PERSISTENCE_FAILURE, str(e))
        self.refresh()
        return None

    def add(self, story_id):
        """Save ``story_id`` as is; ids that do not resolve are skipped later."""
        ids = self.ids()
        if story_id not in ids:
            ids.append(story_id)
            failure = self._save(ids)
            if failure is not None:
                return failure
        return Result.ok(ids)

    def remove(self, story_id):
        ids = self.ids()
        if story_id not in ids:
            return Result.fail(NOT_FOUND, f'Story {story_id} is not a favorite')
        ids.remove(story_id)
        failure = self._save(ids)
        if failure is not None:
            return failure
        return Result.ok(ids)

    def toggle(self, story_id):
        if self.is_favorite(story_id):
            return self.remove(story_id)
        return self.add(story_id)


class SyncListener:
    """Refreshes participants when another context writes one of their keys.

    Only participants declaring ``syncs_across_contexts`` are wired up; the
    rest keep whatever they loaded until reloaded explicitly.
    """

    def __init__(self, context_storage, participants):
        self.context_storage = context_storage
        self.participants = [p for p in participants if p.syncs_across_contexts]
        self._unsubscribe = None

    def start(self):
        if self._unsubscribe is None:
            self._unsubscribe = self.context_storage.on_change(self.handle_event)

    def stop(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def handle_event(self, event):
        for participant in self.participants:
            if event.key in participant.sync_keys:
                logger.debug('Key %r changed in context %r, refreshing', event.key, event.origin)
                participant.refresh()
