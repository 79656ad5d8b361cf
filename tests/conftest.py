import copy
import os
import sys
import pytest

# Ensure project root is on sys.path for conftest imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app import create_app
from services.errors import BackingStoreError, WriteConflict
from services.storage import BaseStorage, ContentDocument, empty_document

ADMIN_USERNAME = 'admin'
ADMIN_PASSWORD = 'test-password!'


class RecordingStorage(BaseStorage):
    """In-memory storage that records file calls and enforces precondition tokens."""

    name = 'memory'

    def __init__(self, data=None):
        self.data = copy.deepcopy(data) if data is not None else empty_document()
        self.version = 1
        self.saves = 0
        self.uploaded = []
        self.deleted = []
        self.failing_deletes = set()

    def load_content(self):
        return ContentDocument(copy.deepcopy(self.data), sha=str(self.version))

    def save_content(self, document):
        if document.sha != str(self.version):
            raise WriteConflict('stale token', status=409)
        self.data = copy.deepcopy(document.data)
        self.version += 1
        self.saves += 1
        document.sha = str(self.version)

    def upload_file(self, data, file_name, category):
        self.uploaded.append((file_name, category, data))
        return f'/uploads/{category}/{file_name}'

    def delete_file(self, url):
        self.deleted.append(url)
        if url in self.failing_deletes:
            raise BackingStoreError('boom', status=500)


@pytest.fixture
def storage():
    return RecordingStorage()


# Provide a Flask `app` fixture configured for testing with on-disk storage under tmp_path
@pytest.fixture
def app(tmp_path):
    test_config = {
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key',
        'FLASK_ENV': 'development',
        'ADMIN_USERNAME': ADMIN_USERNAME,
        'ADMIN_PASSWORD': ADMIN_PASSWORD,
        'STORAGE_BACKEND': 'filesystem',
        'STORAGE_ROOT': str(tmp_path),
        'METRICS_ENABLED': False,  # the Prometheus exporter registers globally once per process
        'RATELIMIT_ENABLED': False,
    }
    app, _ = create_app(test_config)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def memory_storage(app):
    """Swap the app's storage for a RecordingStorage."""
    fake = RecordingStorage()
    app.extensions['content_storage'] = fake
    return fake


@pytest.fixture
def auth_headers(app):
    # Separate client so the auth cookie does not leak into `client`
    rv = app.test_client().post('/auth/login', json={'username': ADMIN_USERNAME, 'password': ADMIN_PASSWORD})
    assert rv.status_code == 200, rv.data[:200]
    return {'Authorization': f"Bearer {rv.get_json()['token']}"}
