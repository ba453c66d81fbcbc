"""Entity stores for stories and categories.

Each store mirrors one persisted key: the whole ordered collection is
serialized as a JSON list and rewritten on every mutation. Operations report
their outcome as a ``Result`` instead of raising.
"""

import json
import logging
from collections import namedtuple
from datetime import datetime, timezone

from config import CATEGORIES_KEY, STORIES_KEY
from storage import PersistenceError

logger = logging.getLogger(__name__)

# Result kinds
NOT_FOUND = 'not_found'
VALIDATION = 'validation'
VALIDATION_CONFLICT = 'validation_conflict'
PERSISTENCE_FAILURE = 'persistence_failure'

# Referential integrity verdicts
BLOCKED = 'blocked'
CLEAR = 'clear'


class Result(namedtuple('Result', 'success entity error kind')):
    """Outcome of a store operation. Truthy exactly when it succeeded."""

    __slots__ = ()

    def __bool__(self):
        return bool(self.success)

    @classmethod
    def ok(cls, entity=None):
        return cls(True, entity, None, None)

    @classmethod
    def fail(cls, kind, error):
        return cls(False, None, error, kind)


def check_category_references(category_id, stories):
    """Return BLOCKED if any story still points at ``category_id``."""
    if any(story.get('categoryId') == category_id for story in stories):
        return BLOCKED
    return CLEAR


class EntityStore:
    """CRUD over one persisted, ordered collection of dict entities.

    Subclasses set ``kind``, ``key``, ``id_prefix``, ``fields`` (editable
    field -> default) and may override ``derived_values`` and ``coerce``.
    """

    kind = 'entity'
    key = None
    id_prefix = None
    fields = {}
    # Stories, categories and media are only re-read on an explicit reload
    syncs_across_contexts = False

    def __init__(self, storage, allocator, defaults=()):
        self.storage = storage
        self.allocator = allocator
        self._defaults = [dict(entity) for entity in defaults]
        self._items = None

    @property
    def sync_keys(self):
        return (self.key,)

    # ---- loading / saving ----

    def _seed(self):
        return [self.normalize(dict(entity)) for entity in self._defaults]

    def _load(self):
        raw = self.storage.get(self.key)
        if raw is None:
            logger.info('No stored %s, starting from %d defaults', self.key, len(self._defaults))
            return self._seed()

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning('Stored %s is not valid JSON, falling back to defaults', self.key)
            return self._seed()

        if not isinstance(data, list) or not all(
            isinstance(entity, dict) and isinstance(entity.get('id'), str) for entity in data
        ):
            logger.warning('Stored %s has an unexpected shape, falling back to defaults', self.key)
            return self._seed()
        return [self.normalize(entity) for entity in data]

    def _collection(self):
        if self._items is None:
            self._items = self._load()
        return self._items

    def reload(self):
        """Drop the in-memory copy and read the persisted collection again."""
        self._items = self._load()

    def _commit(self, items):
        """Persist ``items`` and adopt them. Returns a failed Result or None."""
        try:
            self.storage.set(self.key, json.dumps(items, ensure_ascii=False))
        except PersistenceError as e:
            logger.error('Could not save %s: %s', self.key, e)
            return Result.fail(PERSISTENCE_FAILURE, str(e))
        self._items = items
        return None

    def _index_of(self, entity_id):
        return next((i for i, e in enumerate(self._collection()) if e['id'] == entity_id), None)

    # ---- field handling ----

    def editable(self, fields):
        if not isinstance(fields, dict):
            raise ValueError(f'{self.kind.capitalize()} fields must be an object')
        return {name: value for name, value in fields.items() if name in self.fields}

    def coerce(self, fields):
        """Normalize editable fields; raise ValueError on bad input."""
        return fields

    def derived_values(self):
        return {}

    def normalize(self, entity):
        """Repair a loaded record so later operations can rely on its field types."""
        return entity

    # ---- operations ----

    def list(self):
        return [dict(entity) for entity in self._collection()]

    def get(self, entity_id):
        index = self._index_of(entity_id)
        if index is None:
            return None
        return dict(self._collection()[index])

    def add(self, fields):
        try:
            values = self.coerce(self.editable(fields))
        except ValueError as e:
            return Result.fail(VALIDATION, str(e))

        entity = {'id': self.allocator.allocate(self.id_prefix)}
        for name, default in self.fields.items():
            entity[name] = values.get(name, default)
        entity.update(self.derived_values())

        failure = self._commit(self._collection() + [entity])
        if failure is not None:
            return failure
        logger.info('Added %s %s', self.kind, entity['id'])
        return Result.ok(dict(entity))

    def update(self, entity_id, fields):
        index = self._index_of(entity_id)
        if index is None:
            return Result.fail(NOT_FOUND, f'{self.kind.capitalize()} {entity_id} not found')

        try:
            values = self.coerce(self.editable(fields))
        except ValueError as e:
            return Result.fail(VALIDATION, str(e))

        items = list(self._collection())
        items[index] = {**items[index], **values}
        failure = self._commit(items)
        if failure is not None:
            return failure
        return Result.ok(dict(items[index]))

    def delete(self, entity_id):
        index = self._index_of(entity_id)
        if index is None:
            return Result.fail(NOT_FOUND, f'{self.kind.capitalize()} {entity_id} not found')

        items = list(self._collection())
        removed = items.pop(index)
        failure = self._commit(items)
        if failure is not None:
            return failure
        logger.info('Deleted %s %s', self.kind, entity_id)
        return Result.ok(removed)


def _as_int(name, value):
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValueError(f'{name} must be an integer')
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f'{name} must be an integer') from None
    if number < 0:
        raise ValueError(f'{name} must not be negative')
    return number


class StoryStore(EntityStore):
    kind = 'story'
    key = STORIES_KEY
    id_prefix = 'story'
    fields = {'title': '', 'categoryId': None, 'duration': 0, 'ageRange': ''}

    def coerce(self, fields):
        if 'duration' in fields:
            fields['duration'] = _as_int('duration', fields['duration'])
        return fields

    def derived_values(self):
        return {'views': 0, 'createdAt': datetime.now(timezone.utc).isoformat()}

    def normalize(self, story):
        for name in ('views', 'duration'):
            try:
                story[name] = _as_int(name, story.get(name, 0))
            except ValueError:
                logger.warning('Story %s has a bad %s %r, using 0', story['id'], name, story.get(name))
                story[name] = 0
        return story

    def by_category(self, category_id):
        return [story for story in self.list() if story.get('categoryId') == category_id]

    def record_view(self, story_id):
        """Count one view of a story. The only path that changes ``views``."""
        index = self._index_of(story_id)
        if index is None:
            return Result.fail(NOT_FOUND, f'Story {story_id} not found')

        items = list(self._collection())
        story = dict(items[index])
        story['views'] = story['views'] + 1
        items[index] = story
        failure = self._commit(items)
        if failure is not None:
            return failure
        return Result.ok(dict(story))


class CategoryStore(EntityStore):
    kind = 'category'
    key = CATEGORIES_KEY
    id_prefix = 'category'
    fields = {'name': '', 'description': '', 'icon': '', 'color': ''}

    def __init__(self, storage, allocator, stories, defaults=()):
        super().__init__(storage, allocator, defaults=defaults)
        self.stories = stories

    def delete(self, entity_id):
        if self.get(entity_id) is None:
            return Result.fail(NOT_FOUND, f'Category {entity_id} not found')

        if check_category_references(entity_id, self.stories.list()) == BLOCKED:
            count = len(self.stories.by_category(entity_id))
            logger.info('Refusing to delete category %s: %d stories use it', entity_id, count)
            return Result.fail(
                VALIDATION_CONFLICT,
                f'Category {entity_id} still has {count} stories; move or delete them first',
            )
        return super().delete(entity_id)

    def story_counts(self):
        """Map each category id to the number of stories filed under it."""
        counts = {category['id']: 0 for category in self.list()}
        for story in self.stories.list():
            if story.get('categoryId') in counts:
                counts[story['categoryId']] += 1
        return counts
