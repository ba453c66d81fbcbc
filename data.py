"""Data management for TaleShelf"""

import logging

from auth import AdminSession
from favorites import FavoritesResolver, SyncListener
from ids import IdAllocator
from media import MediaRegistry
from seed import DEFAULT_CATEGORIES, DEFAULT_STORIES
from storage import ContextStorage
from stores import CategoryStore, StoryStore

logger = logging.getLogger(__name__)


class Catalog:
    """Every data-layer component for one context, built once and shared."""

    def __init__(self, storage, context_id='server', seed=True, handles=None):
        self.storage = storage
        self.context = ContextStorage(storage, context_id)
        self.allocator = IdAllocator()

        self.stories = StoryStore(
            self.context, self.allocator, defaults=DEFAULT_STORIES if seed else ()
        )
        self.categories = CategoryStore(
            self.context, self.allocator, self.stories,
            defaults=DEFAULT_CATEGORIES if seed else (),
        )
        self.media = MediaRegistry(self.context, self.allocator, handles=handles)
        self.favorites = FavoritesResolver(self.context, self.stories)
        self.session = AdminSession(self.context)

        self.sync = SyncListener(
            self.context, [self.stories, self.categories, self.media, self.favorites]
        )
        self.sync.start()
        self.favorites.refresh()

    def stats(self):
        stories = self.stories.list()
        popular = max(stories, key=lambda s: s.get('views', 0), default=None)
        return {
            'totalStories': len(stories),
            'totalCategories': len(self.categories.list()),
            'totalViews': sum(s.get('views', 0) for s in stories),
            'popularStory': popular,
        }

    def close(self):
        self.sync.stop()


def create_catalog(storage, context_id='server', seed=True):
    logger.debug('Building catalog for context %r', context_id)
    return Catalog(storage, context_id=context_id, seed=seed)
