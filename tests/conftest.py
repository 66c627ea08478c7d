"""
Shared test fixtures and configuration for pytest
"""
import os
import tempfile

# Keep logs and default paths out of the real home directory
os.environ.setdefault("MAILCACHE_HOME", tempfile.mkdtemp(prefix="mailcache-tests-"))

import pytest

from mailcache.core.database import LocalStore
from mailcache.sync import ConnectivityMode, SyncCoordinator

from factories import FakeRemoteAdapter, make_email, standard_mailboxes


@pytest.fixture
def db_path(tmp_path):
    """Path to a fresh temporary database"""
    return tmp_path / "test_mailcache.db"


@pytest.fixture
async def store(db_path):
    """Initialised LocalStore on a temporary database"""
    local_store = LocalStore(db_path)
    await local_store.initialise()

    yield local_store

    await local_store.close()


@pytest.fixture
async def seeded_store(store):
    """Store holding the standard mailboxes and three inbox emails"""
    await store.save_mailboxes(standard_mailboxes())
    await store.save_emails(
        [
            make_email("e1", date="2024-01-03"),
            make_email("e2", date="2024-01-02"),
            make_email("e3", date="2024-01-01"),
        ]
    )
    return store


@pytest.fixture
def remote():
    """Fake remote holding the standard mailboxes"""
    fake = FakeRemoteAdapter()
    fake.mailboxes = standard_mailboxes()
    return fake


@pytest.fixture
def coordinator(store, remote):
    """Online coordinator over an empty store"""
    return SyncCoordinator(store, remote, ConnectivityMode.ONLINE)


@pytest.fixture
def offline_coordinator(seeded_store, remote):
    """Offline coordinator over the seeded store"""
    return SyncCoordinator(seeded_store, remote, ConnectivityMode.OFFLINE)
