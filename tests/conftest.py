"""Shared fixtures: an in-memory SQLite database, a fake Redis and a test client."""

import pytest
import redis
from fastapi.testclient import TestClient

from goodmap.api.metrics import metrics_collector
from goodmap.auth.jwt_manager import jwt_manager
from goodmap.auth.password import password_manager
from goodmap.auth.rate_limiter import rate_limiter
from goodmap.core.cache import RedisPostCache
from goodmap.core.config import Settings
from goodmap.core.database import Base, build_engine, build_session_factory
from goodmap.main import create_app
from goodmap.models import User

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-secret"


class FakeRedis:
    """Just enough of redis.Redis for RedisPostCache."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    def ping(self):
        return True


class BrokenRedis:
    """A Redis that is down: every call raises."""

    def _fail(self, *args, **kwargs):
        raise redis.ConnectionError("Connection refused")

    get = setex = delete = ping = _fail


@pytest.fixture(autouse=True)
def reset_globals():
    rate_limiter.reset()
    metrics_collector.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def test_settings():
    return Settings(
        environment="testing",
        database_url="sqlite://",
        cache_enabled=True,
        posts_cache_ttl_seconds=60,
    )


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def post_cache(fake_redis):
    return RedisPostCache(fake_redis, ttl_seconds=60)


@pytest.fixture
def app(test_settings, engine, post_cache):
    return create_app(app_settings=test_settings, engine=engine, post_cache=post_cache)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_user(session_factory):
    db = session_factory()
    user = User(
        email=ADMIN_EMAIL,
        hashed_password=password_manager.hash_password(ADMIN_PASSWORD),
        is_admin=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    db.close()
    return user


@pytest.fixture
def admin_headers(admin_user):
    token = jwt_manager.create_access_token(admin_user.id, is_admin=True)
    return {"Authorization": f"Bearer {token}"}


def make_marker(client, name="Seoul City Hall", latitude=37.5665, longitude=126.978, tags=None):
    response = client.post(
        "/markers",
        json={"name": name, "latitude": latitude, "longitude": longitude, "tags": tags or []},
    )
    assert response.status_code == 201, response.text
    return response.json()


def make_post(client, marker_id, title="Hello", content="<p>Hi</p>", password="pw1"):
    response = client.post(
        f"/markers/{marker_id}/posts",
        json={"title": title, "content": content, "password": password},
    )
    assert response.status_code == 201, response.text
    return response.json()
