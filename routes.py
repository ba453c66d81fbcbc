"""Flask routes for TaleShelf"""

from functools import wraps

from flask import Response, current_app, jsonify, request, session
from werkzeug.utils import secure_filename

from auth import check_credentials
from stores import NOT_FOUND, PERSISTENCE_FAILURE, VALIDATION, VALIDATION_CONFLICT

_STATUS_BY_KIND = {
    NOT_FOUND: 404,
    VALIDATION: 400,
    VALIDATION_CONFLICT: 409,
    PERSISTENCE_FAILURE: 507,
}

_MIME_TYPES = {
    '.png': 'image/png',
    '.gif': 'image/gif',
    '.webp': 'image/webp',
    '.svg': 'image/svg+xml',
    '.mp4': 'video/mp4',
    '.webm': 'video/webm',
    '.mp3': 'audio/mpeg',
    '.wav': 'audio/wav',
    '.ogg': 'audio/ogg',
}


def mime_type_for(filename, kind):
    """Guess a MIME type from the file extension."""
    filename = (filename or '').lower()
    for extension, mime_type in _MIME_TYPES.items():
        if filename.endswith(extension):
            return mime_type
    # Default to JPEG for jpg, jpeg, and unknown images
    if kind == 'image':
        return 'image/jpeg'
    return 'application/octet-stream'


def get_catalog():
    return current_app.extensions['taleshelf']


def result_response(result, status=200):
    """Turn a store Result into a JSON response."""
    if result:
        return jsonify(result.entity), status
    return jsonify({'error': result.error, 'kind': result.kind}), _STATUS_BY_KIND.get(result.kind, 400)


def require_admin(f):
    """Decorator to require an authenticated admin session for a route."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not session.get('admin_authenticated'):
            return jsonify({'error': 'Authentication required'}), 401
        return f(*args, **kwargs)
    return decorated_function


def register_routes(app):
    """Register all Flask routes."""

    # ============ API: Admin session ============

    @app.route('/api/admin/login', methods=['POST'])
    def admin_login():
        data = request.get_json(silent=True) or {}
        if check_credentials(data.get('username', ''), data.get('password', '')):
            session.clear()
            session['admin_authenticated'] = True
            return jsonify({'authenticated': True})
        return jsonify({'authenticated': False, 'error': 'Invalid username or password'}), 401

    @app.route('/api/admin/logout', methods=['POST'])
    def admin_logout():
        session.pop('admin_authenticated', None)
        return jsonify({'authenticated': False})

    @app.route('/api/admin/session')
    def admin_session():
        return jsonify({'authenticated': bool(session.get('admin_authenticated'))})

    @app.route('/api/admin/password', methods=['POST'])
    @require_admin
    def change_password():
        data = request.get_json(silent=True) or {}
        result = get_catalog().session.change_password(
            data.get('current_password', ''),
            data.get('new_password', ''),
            data.get('confirm_password', ''),
        )
        if not result:
            return result_response(result)
        return jsonify({'success': True})

    # ============ API: Stories ============

    @app.route('/api/stories', methods=['GET', 'POST'])
    def stories():
        catalog = get_catalog()
        if request.method == 'GET':
            category_id = request.args.get('category')
            if category_id:
                return jsonify(catalog.stories.by_category(category_id))
            return jsonify(catalog.stories.list())
        return _create_story()

    @require_admin
    def _create_story():
        return result_response(get_catalog().stories.add(request.get_json(silent=True) or {}), 201)

    @app.route('/api/stories/<story_id>', methods=['GET', 'PUT', 'DELETE'])
    def story(story_id):
        if request.method == 'GET':
            found = get_catalog().stories.get(story_id)
            if found is None:
                return jsonify({'error': 'Story not found'}), 404
            return jsonify(found)
        return _modify_story(story_id)

    @require_admin
    def _modify_story(story_id):
        stories = get_catalog().stories
        if request.method == 'PUT':
            return result_response(stories.update(story_id, request.get_json(silent=True) or {}))
        return result_response(stories.delete(story_id))

    @app.route('/api/stories/<story_id>/view', methods=['POST'])
    def view_story(story_id):
        return result_response(get_catalog().stories.record_view(story_id))

    # ============ API: Categories ============

    @app.route('/api/categories', methods=['GET', 'POST'])
    def categories():
        catalog = get_catalog()
        if request.method == 'GET':
            counts = catalog.categories.story_counts()
            return jsonify([
                {**category, 'storyCount': counts.get(category['id'], 0)}
                for category in catalog.categories.list()
            ])
        return _create_category()

    @require_admin
    def _create_category():
        return result_response(get_catalog().categories.add(request.get_json(silent=True) or {}), 201)

    @app.route('/api/categories/<category_id>', methods=['GET', 'PUT', 'DELETE'])
    def category(category_id):
        if request.method == 'GET':
            found = get_catalog().categories.get(category_id)
            if found is None:
                return jsonify({'error': 'Category not found'}), 404
            return jsonify(found)
        return _modify_category(category_id)

    @require_admin
    def _modify_category(category_id):
        categories = get_catalog().categories
        if request.method == 'PUT':
            return result_response(categories.update(category_id, request.get_json(silent=True) or {}))
        return result_response(categories.delete(category_id))

    # ============ API: Media ============

    @app.route('/api/media/<kind>', methods=['GET', 'POST'])
    @require_admin
    def media(kind):
        registry = get_catalog().media
        if request.method == 'GET':
            return jsonify(registry.list_by_kind(kind))

        file = request.files.get('file')
        if not file or not file.filename:
            return jsonify({'error': 'No file uploaded'}), 400
        payload = file.read()
        return result_response(registry.upload(kind, payload, secure_filename(file.filename), len(payload)), 201)

    @app.route('/api/media/<kind>/<asset_id>', methods=['DELETE'])
    @require_admin
    def delete_media(kind, asset_id):
        return result_response(get_catalog().media.delete(kind, asset_id))

    @app.route('/api/media/<kind>/<asset_id>/content')
    @require_admin
    def media_content(kind, asset_id):
        registry = get_catalog().media
        record = registry.get(kind, asset_id)
        if record is None:
            return jsonify({'error': 'Media file not found'}), 404
        payload = registry.open(kind, asset_id)
        if payload is None:
            return jsonify({'error': 'Media content is no longer available'}), 410
        return Response(payload, mimetype=mime_type_for(record['name'], kind))

    # ============ API: Favorites ============

    @app.route('/api/favorites')
    def favorites():
        return jsonify(get_catalog().favorites.resolve())

    @app.route('/api/favorites/<story_id>', methods=['POST', 'DELETE'])
    def favorite(story_id):
        resolver = get_catalog().favorites
        if request.method == 'POST':
            result = resolver.add(story_id)
        else:
            result = resolver.remove(story_id)
        if not result:
            return result_response(result)
        return jsonify(resolver.resolve())

    # ============ API: Stats ============

    @app.route('/api/stats')
    @require_admin
    def stats():
        return jsonify(get_catalog().stats())
