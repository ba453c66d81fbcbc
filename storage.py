"""Key/value persistence for TaleShelf.

Everything the catalog keeps durably goes through a ``KeyValueStorage``: a
flat, synchronous map of string keys to string values with a byte quota.
Writers are tagged with the browsing context they came from so that other
contexts can be told about the change, the same way a browser delivers
``storage`` events to every tab except the one that wrote.
"""

import json
import logging
from collections import namedtuple

from config import STORAGE_QUOTA_BYTES

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """The storage substrate refused a write (quota, I/O)."""


StorageEvent = namedtuple('StorageEvent', 'key old_value new_value origin')


def _entry_size(key, value):
    return len(key.encode('utf-8')) + len(value.encode('utf-8'))


class KeyValueStorage:
    """Base class: quota accounting and change notification.

    Subclasses provide ``_read_all()`` and ``_write_all(items)``.
    """

    def __init__(self, quota_bytes=STORAGE_QUOTA_BYTES):
        self.quota_bytes = quota_bytes
        self._listeners = []

    def _read_all(self):
        raise NotImplementedError

    def _write_all(self, items):
        raise NotImplementedError

    def get(self, key):
        """Return the stored string for ``key`` or None."""
        return self._read_all().get(key)

    def keys(self):
        return list(self._read_all())

    def set(self, key, value, origin=None):
        if not isinstance(key, str) or not isinstance(value, str):
            raise TypeError('storage keys and values must be strings')

        items = self._read_all()
        old_value = items.get(key)
        items[key] = value

        used = sum(_entry_size(k, v) for k, v in items.items())
        if self.quota_bytes is not None and used > self.quota_bytes:
            raise PersistenceError(
                f'Storage quota exceeded writing {key!r} ({used} > {self.quota_bytes} bytes)'
            )

        self._write_all(items)
        self._notify(StorageEvent(key, old_value, value, origin))

    def remove(self, key, origin=None):
        items = self._read_all()
        if key not in items:
            return
        old_value = items.pop(key)
        self._write_all(items)
        self._notify(StorageEvent(key, old_value, None, origin))

    def subscribe(self, listener):
        """Call ``listener(event)`` after every write. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event):
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception('Storage listener failed for key %r', event.key)


class MemoryStorage(KeyValueStorage):
    """In-process storage, shared by every context holding a reference to it."""

    def __init__(self, initial=None, quota_bytes=STORAGE_QUOTA_BYTES):
        super().__init__(quota_bytes=quota_bytes)
        self._items = dict(initial or {})

    def _read_all(self):
        return dict(self._items)

    def _write_all(self, items):
        self._items = dict(items)


class JsonFileStorage(KeyValueStorage):
    """All keys kept in one JSON object on disk.

    The file is re-read on every access and rewritten whole on every write,
    so two processes writing at once simply leave the later write in place.
    """

    def __init__(self, path, quota_bytes=STORAGE_QUOTA_BYTES):
        super().__init__(quota_bytes=quota_bytes)
        self.path = path

    def _read_all(self):
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError):
            logger.warning('Unreadable storage file %s, treating as empty', self.path)
            return {}
        if not isinstance(data, dict):
            logger.warning('Storage file %s does not hold an object, treating as empty', self.path)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, items):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(items, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise PersistenceError(f'Could not write {self.path}: {e}') from e


class ContextStorage:
    """One browsing context's view of a shared ``KeyValueStorage``."""

    def __init__(self, storage, context_id):
        self.storage = storage
        self.context_id = context_id

    def get(self, key):
        return self.storage.get(key)

    def set(self, key, value):
        self.storage.set(key, value, origin=self.context_id)

    def remove(self, key):
        self.storage.remove(key, origin=self.context_id)

    def on_change(self, listener):
        """Deliver only changes made by other contexts."""
        def forward(event):
            if event.origin != self.context_id:
                listener(event)

        return self.storage.subscribe(forward)


def load_json(storage, key, default=None):
    """Decode the JSON stored under ``key``; absent or corrupt values give ``default``."""
    raw = storage.get(key)
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        logger.warning('Stored value for %r is not valid JSON, ignoring it', key)
        return default


def save_json(storage, key, value):
    storage.set(key, json.dumps(value, ensure_ascii=False))
