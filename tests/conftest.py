import os

# Must be set before the application modules read their settings
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"
os.environ.pop("EMAIL_API_KEY", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from medicare_api import models  # noqa: F401
from medicare_api.main import app
from medicare_api.api.deps import get_notifier
from medicare_api.core.database import get_db, get_redis, Base

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


class InMemoryRedis:
    """Just enough of the redis client surface for the rate limiter."""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def setex(self, key, ttl, value):
        self.data[key] = str(value)
        return True

    def incr(self, key):
        self.data[key] = str(int(self.data.get(key, 0)) + 1)
        return int(self.data[key])


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send(self, recipient_email, template, payload):
        self.sent.append((recipient_email, template, payload))
        if self.fail:
            return False, "Email delivery failed: provider unavailable"
        return True, None


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(scope="function")
def test_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(test_db):
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def redis_store():
    store = InMemoryRedis()
    app.dependency_overrides[get_redis] = lambda: store
    yield store
    app.dependency_overrides.pop(get_redis, None)


@pytest.fixture
def notifier():
    recorder = RecordingNotifier()
    app.dependency_overrides[get_notifier] = lambda: recorder
    yield recorder
    app.dependency_overrides.pop(get_notifier, None)


@pytest.fixture
def client(test_db, redis_store, notifier):
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client
