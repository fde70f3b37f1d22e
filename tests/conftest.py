from types import SimpleNamespace

import pytest

from foodshare import create_app, extensions
from foodshare.config import TestingConfig
from foodshare.extensions import db
from foodshare.feed import MemoryChangeFeed
from foodshare.lifecycle import DonationDraft, DonationLifecycle
from foodshare.geo import GeoPoint
from foodshare.services.profiles import upsert_profile
from foodshare.storage.base import StorageProvider


class RecordingStorage(StorageProvider):
    """Storage double that remembers what was saved and removed."""

    def __init__(self, fail_remove=False):
        self.saved = {}
        self.removed = []
        self.fail_remove = fail_remove

    def save(self, key, file_path):
        self.saved[key] = file_path
        return key

    def url_for(self, key):
        return f'https://cdn.test/{key}'

    def remove(self, key):
        if self.fail_remove:
            raise ConnectionError('storage unreachable')
        self.removed.append(key)


@pytest.fixture
def app(tmp_path, monkeypatch):
    monkeypatch.setenv('FLASK_SILENT_STARTUP', '1')
    monkeypatch.setattr(TestingConfig, 'UPLOAD_FOLDER', str(tmp_path / 'uploads'))
    app = create_app('testing')
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


def create_user(email, role, name=None, organization=None):
    """Create a user holding ``role`` plus its profile. Needs an app context."""
    datastore = extensions.user_datastore
    role_obj = datastore.find_or_create_role(name=role)
    user = datastore.create_user(email=email, password='password123', roles=[role_obj])
    db.session.commit()
    upsert_profile(user, name=name or email.split('@')[0], organization=organization)
    return user


@pytest.fixture
def make_user(app):
    """Create a user in its own app context and return plain attributes."""
    def _make(email, role, name=None, organization=None):
        with app.app_context():
            user = create_user(email, role, name=name, organization=organization)
            return SimpleNamespace(id=user.id, email=user.email, fs_uniquifier=user.fs_uniquifier)
    return _make


def login(client, user):
    with client.session_transaction() as sess:
        sess['_user_id'] = user.fs_uniquifier
        sess['_fresh'] = True


@pytest.fixture
def storage():
    return RecordingStorage()


@pytest.fixture
def feed():
    return MemoryChangeFeed()


@pytest.fixture
def lifecycle(app_ctx, storage, feed):
    return DonationLifecycle(db.session, storage=storage, feed=feed, logger=app_ctx.logger)


@pytest.fixture
def donor(app_ctx):
    return create_user('donor@foodshare.org', 'donor', organization='Green Bistro')


@pytest.fixture
def receiver(app_ctx):
    return create_user('ngo@foodshare.org', 'receiver')


@pytest.fixture
def other_receiver(app_ctx):
    return create_user('volunteer@foodshare.org', 'receiver')


def make_draft(**overrides):
    values = dict(
        donor_type='restaurant',
        food_type='veg',
        category='perishable',
        quantity=5,
        items='rice, curry',
        description='Leftover lunch trays',
        pickup_address='10 Bayfront Ave',
        location=GeoPoint(lat=1.3521, lng=103.8198),
        contact_person='Ana',
        contact_number='+65 5555 0000',
        consent=True,
    )
    values.update(overrides)
    return DonationDraft(**values)
