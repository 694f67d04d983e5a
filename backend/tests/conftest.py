import os
import time

# Settings are read at import time; provide test values before any app import.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("FIRECRAWL_API_KEY", "test-firecrawl-key")
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")

import pytest
import redis
from redis.lock import Lock
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mining_intel.core.db import Base
import mining_intel.models  # noqa: F401


class FakeRedis:
    """In-memory stand-in for the handful of redis commands the app uses."""

    def __init__(self):
        self.store = {}
        self.lists = {}
        self.hashes = {}

    def _alive(self, key):
        item = self.store.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and time.monotonic() >= expires_at:
            del self.store[key]
            return None
        return value

    def get(self, key):
        return self._alive(key)

    def set(self, key, value, ex=None, px=None, nx=False):
        if nx and self._alive(key) is not None:
            return None
        if px:
            ex = px / 1000
        expires_at = time.monotonic() + ex if ex else None
        self.store[key] = (value, expires_at)
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    def ttl_of(self, key):
        item = self.store.get(key)
        if item is None or item[1] is None:
            return None
        return item[1] - time.monotonic()

    def llen(self, key):
        return len(self.lists.get(key, []))

    def hlen(self, key):
        return len(self.hashes.get(key, {}))

    def lock(self, name, timeout=None, blocking=True, **kwargs):
        return Lock(self, name, timeout=timeout, blocking=blocking, **kwargs)

    def register_script(self, script):
        # Only the lock release script is ever executed
        return _CompareAndDelete()


class _CompareAndDelete:
    def __call__(self, keys=(), args=(), client=None):
        if client.get(keys[0]) == args[0]:
            return client.delete(keys[0])
        return 0


class BrokenRedis:
    """Every command fails as if the server were unreachable."""

    def __getattr__(self, name):
        def _fail(*args, **kwargs):
            raise redis.ConnectionError("redis is down")
        return _fail


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def broken_redis():
    return BrokenRedis()


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(eng, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def db_session(engine):
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = Session()
    try:
        yield session
    finally:
        session.close()
