import pytest

from app.auth.verify import auth_dependency
from tests.fakes import FakeCacheStore


@pytest.fixture
def auth_override():
    def _override():
        return {"sub": "user-123", "email": "me@example.com"}

    return _override


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app):
        app.dependency_overrides[auth_dependency] = auth_override

    return _apply


@pytest.fixture
def fake_cache():
    return FakeCacheStore()
