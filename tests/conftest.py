import pytest
from fastapi.testclient import TestClient
from app.db.persistence import PersistenceAdapter
from app.db.repository import EntityRepository
from app.db.storage import InMemoryStorage, KeyValueStorage
from app.main import app


class FakeClock:
    """Strictly increasing ISO timestamps, one second apart."""

    def __init__(self):
        self.ticks = 0

    def __call__(self):
        self.ticks += 1
        return f"2024-01-01T00:00:{self.ticks:02d}.000Z"


class FailingStorage(KeyValueStorage):
    def __init__(self, data=None):
        self.data = dict(data or {})

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        raise OSError("disk full")


@pytest.fixture()
def storage():
    return InMemoryStorage()


@pytest.fixture()
def failing_storage():
    return FailingStorage()


@pytest.fixture()
def make_repo():
    def factory(storage, **kwargs):
        return EntityRepository(PersistenceAdapter(storage), clock=FakeClock(), **kwargs)
    return factory


@pytest.fixture()
def repo(storage, make_repo):
    return make_repo(storage)


@pytest.fixture()
def client(repo):
    previous = app.state.repository
    app.state.repository = repo
    yield TestClient(app)
    app.state.repository = previous
