"""Socket.IO event handlers for TaleShelf.

Every connected client is a separate browsing context, identified by its
sid. Clients read and write the shared storage over the socket, and every
write is echoed to all the other clients as a ``storage`` event. Catalog
keys can only be written by a client whose session is logged in as admin.
"""

import logging

from flask import request, session
from flask_socketio import emit

from config import ADMIN_ONLY_KEYS, PRIVATE_KEYS
from storage import ContextStorage, PersistenceError

logger = logging.getLogger(__name__)


def storage_event_payload(event):
    return {'key': event.key, 'oldValue': event.old_value, 'newValue': event.new_value}


def register_socket_handlers(socketio, app):
    """Register all Socket.IO event handlers."""
    catalog = app.extensions['taleshelf']

    def relay_storage_event(event):
        if event.key in PRIVATE_KEYS:
            return
        # The writing client never hears about its own change
        socketio.emit('storage', storage_event_payload(event), skip_sid=event.origin)

    def publish_favorites(stories):
        socketio.emit('favorites_update', stories)

    catalog.storage.subscribe(relay_storage_event)
    catalog.favorites.subscribe(publish_favorites)

    def client_storage():
        return ContextStorage(catalog.storage, request.sid)

    def is_admin_authenticated():
        """Check if the current session is logged in as admin."""
        return session.get('admin_authenticated', False)

    def refuse_write(key):
        """Emit an error and return True if this client may not write ``key``."""
        if key in ADMIN_ONLY_KEYS and not is_admin_authenticated():
            logger.warning('Refused write to %r from unauthenticated %s', key, request.sid)
            emit('auth_error', {'key': key, 'error': 'Not authenticated as admin'})
            return True
        return False

    @socketio.on('connect')
    def handle_connect(auth=None):
        logger.debug('Context %s connected', request.sid)
        emit('favorites_update', catalog.favorites.current)

    @socketio.on('disconnect')
    def handle_disconnect(*args):
        logger.debug('Context %s disconnected', request.sid)

    @socketio.on('storage_get')
    def handle_storage_get(data):
        key = (data or {}).get('key')
        if key in PRIVATE_KEYS:
            return {'key': key, 'value': None}
        return {'key': key, 'value': client_storage().get(key)}

    @socketio.on('storage_set')
    def handle_storage_set(data):
        data = data or {}
        key, value = data.get('key'), data.get('value')
        if refuse_write(key):
            return {'success': False, 'error': 'Authentication required'}
        try:
            client_storage().set(key, value)
        except (PersistenceError, TypeError) as e:
            logger.warning('Rejected write to %r from %s: %s', key, request.sid, e)
            emit('storage_error', {'key': key, 'error': str(e)})
            return {'success': False, 'error': str(e)}
        return {'success': True}

    @socketio.on('storage_remove')
    def handle_storage_remove(data):
        key = (data or {}).get('key')
        if refuse_write(key):
            return {'success': False, 'error': 'Authentication required'}
        try:
            client_storage().remove(key)
        except PersistenceError as e:
            emit('storage_error', {'key': key, 'error': str(e)})
            return {'success': False, 'error': str(e)}
        return {'success': True}
