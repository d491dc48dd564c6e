import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from habit_engine.cache import InMemoryCache, SafeCache
from habit_engine.db import get_db
from habit_engine.main import create_app
from habit_engine.models.base import Base
from habit_engine.services.achievements import seed_catalog


def make_session():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    with SessionLocal() as db:
        seed_catalog(db)
    return SessionLocal


class FakeRedisClient:
    def __init__(self):
        self.data = {}
        self.ttls = {}

    def ping(self):
        return True

    def get(self, key):
        return self.data.get(key)

    def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl

    def delete(self, key):
        self.data.pop(key, None)

    def close(self):
        pass


@pytest.fixture()
def session_factory():
    return make_session()


@pytest.fixture()
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture()
def memory_cache():
    return InMemoryCache()


@pytest.fixture()
def cache(memory_cache):
    return SafeCache(memory_cache)


@pytest.fixture()
def test_app(session_factory, cache):
    app = create_app(cache=cache, session_factory=session_factory)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return app, session_factory


@pytest.fixture()
def client(test_app):
    app, _ = test_app
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def user_headers():
    return {"X-User-Id": "mae-1"}


@pytest.fixture()
def fake_redis():
    return FakeRedisClient()
