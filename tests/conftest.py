"""
Pytest configuration for TaleShelf tests

Provides fixtures shared across all test files
"""

import pytest

from app import create_app
from data import create_catalog
from ids import IdAllocator
from storage import MemoryStorage


@pytest.fixture
def storage():
    """Shared in-memory storage standing in for the durable key/value store"""
    return MemoryStorage()


@pytest.fixture
def allocator():
    return IdAllocator()


@pytest.fixture
def catalog(storage):
    """Catalog with no default dataset, so tests start from empty collections"""
    catalog = create_catalog(storage, seed=False)
    yield catalog
    catalog.close()


@pytest.fixture
def seeded_catalog(storage):
    catalog = create_catalog(storage)
    yield catalog
    catalog.close()


@pytest.fixture
def app_and_socketio(storage):
    app, socketio = create_app(storage=storage, seed=False, secret_key='test')
    app.config['TESTING'] = True
    return app, socketio


@pytest.fixture
def app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client):
    """Test client with the admin session flag already set"""
    response = client.post('/api/admin/login', json={'username': 'admin', 'password': 'admin123'})
    assert response.status_code == 200
    return client
