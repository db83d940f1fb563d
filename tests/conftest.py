import os

# Settings are read at import time; keep the suite independent of a developer .env
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient

from planilla.config import Settings, get_settings
from planilla.database import get_gateway
from planilla.main import app


class FakeGateway:
    """Spy standing in for planilla.database.Gateway: records calls, returns primed rows or raises."""

    def __init__(self, rows=None, value=None, error=None):
        self.calls = []
        self.rows = rows if rows is not None else []
        self.value = value
        self.error = error

    def _record(self, kind, routine, params, types):
        self.calls.append((kind, routine, list(params), list(types)))
        if self.error is not None:
            raise self.error

    async def fetch(self, routine, params=(), types=()):
        self._record("fetch", routine, params, types)
        return self.rows

    async def scalar(self, routine, params=(), types=()):
        self._record("scalar", routine, params, types)
        return self.value

    async def call(self, procedure, params=(), types=()):
        self._record("call", procedure, params, types)

    async def server_time(self):
        self._record("now", "NOW", (), ())
        return "2024-01-15 10:00:00+00"


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def test_settings():
    return Settings(_env_file=None, jwt_secret="test-secret")


@pytest.fixture
def client(gateway, test_settings):
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_settings] = lambda: test_settings
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
