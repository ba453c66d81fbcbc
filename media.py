"""Media asset registry.

Two layers: durable metadata lists, one per media kind, kept under
``media_<kind>``; and a ``HandleCache`` holding the uploaded bytes for the
life of the current session only. A handle saved in the metadata cannot be
resolved again after a restart.
"""

import logging
import uuid
from datetime import datetime, timezone

from config import MEDIA_KEY_PREFIX, MEDIA_KINDS
from storage import PersistenceError, load_json, save_json
from stores import NOT_FOUND, PERSISTENCE_FAILURE, VALIDATION, Result

logger = logging.getLogger(__name__)


def media_key(kind):
    return f'{MEDIA_KEY_PREFIX}{kind}'


class HandleCache:
    """Session-scoped payload store keyed by handle."""

    def __init__(self, session_id=None):
        self.session_id = session_id or uuid.uuid4().hex
        self._payloads = {}

    def create(self, asset_id, payload):
        handle = f'session:{self.session_id}/{asset_id}'
        self._payloads[handle] = payload
        return handle

    def resolve(self, handle):
        return self._payloads.get(handle)

    def release(self, handle):
        return self._payloads.pop(handle, None) is not None

    def clear(self):
        self._payloads.clear()

    def __len__(self):
        return len(self._payloads)


class MediaRegistry:
    syncs_across_contexts = False

    def __init__(self, storage, allocator, handles=None):
        self.storage = storage
        self.allocator = allocator
        self.handles = handles if handles is not None else HandleCache()

    @property
    def sync_keys(self):
        return tuple(media_key(kind) for kind in MEDIA_KINDS)

    def _read(self, kind):
        records = load_json(self.storage, media_key(kind), [])
        if not isinstance(records, list):
            logger.warning('Stored %s is not a list, treating as empty', media_key(kind))
            return []
        return [r for r in records if isinstance(r, dict) and 'id' in r]

    def _write(self, kind, records):
        save_json(self.storage, media_key(kind), records)

    def list_by_kind(self, kind):
        if kind not in MEDIA_KINDS:
            return []
        return self._read(kind)

    def get(self, kind, asset_id):
        return next((r for r in self.list_by_kind(kind) if r['id'] == asset_id), None)

    def upload(self, kind, payload, name, size=None):
        """Register ``payload`` under ``kind`` and persist its metadata."""
        if kind not in MEDIA_KINDS:
            return Result.fail(VALIDATION, f'Unknown media kind {kind!r}')

        asset_id = self.allocator.allocate('media')
        handle = self.handles.create(asset_id, payload)
        record = {
            'id': asset_id,
            'name': name,
            'kind': kind,
            'handle': handle,
            'size': len(payload) if size is None else size,
            'uploadedAt': datetime.now(timezone.utc).isoformat(),
        }

        records = self._read(kind)
        records.append(record)
        try:
            self._write(kind, records)
        except PersistenceError as e:
            self.handles.release(handle)
            logger.error('Could not save %s metadata: %s', kind, e)
            return Result.fail(PERSISTENCE_FAILURE, str(e))

        logger.info('Uploaded %s %s (%s bytes)', kind, name, record['size'])
        return Result.ok(record)

    def delete(self, kind, asset_id):
        """Remove the metadata entry. The session payload is left in the cache."""
        records = self._read(kind) if kind in MEDIA_KINDS else []
        record = next((r for r in records if r['id'] == asset_id), None)
        if record is None:
            return Result.fail(NOT_FOUND, f'Media file {asset_id} not found')

        try:
            self._write(kind, [r for r in records if r['id'] != asset_id])
        except PersistenceError as e:
            logger.error('Could not save %s metadata: %s', kind, e)
            return Result.fail(PERSISTENCE_FAILURE, str(e))
        return Result.ok(record)

    def open(self, kind, asset_id):
        """Return the uploaded bytes, or None once the session that held them is gone."""
        record = self.get(kind, asset_id)
        if record is None:
            return None
        return self.handles.resolve(record.get('handle'))
