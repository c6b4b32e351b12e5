import asyncio
import os
import tempfile

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# Point the module-level engine at a throwaway SQLite file before anything
# imports resourcekit.db.database.
_TEST_DB_DIR = tempfile.mkdtemp(prefix="resourcekit-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_DB_DIR}/module-engine.db")

from resourcekit.api.main import create_app, include_resources  # noqa: E402
from resourcekit.db.database import build_engine, build_session_factory, init_db  # noqa: E402
from resourcekit.db.memory import MemoryCollection  # noqa: E402
from resourcekit.utils.settings import refresh_settings_cache  # noqa: E402

_SETTINGS_ENV = ("LOG_LEVEL", "API_PREFIX", "REQUEST_LOGGING", "MAX_PAGE_LIMIT", "CORS_ORIGINS")


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch):
    """Clear settings env + cached values for each test to avoid cross-contamination."""
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    refresh_settings_cache()
    yield
    refresh_settings_cache()


class TrackingCollection(MemoryCollection):
    """Memory collection that records how many calls overlap."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.in_flight = 0
        self.peak = 0
        self.calls = []

    async def _track(self, name, call):
        self.calls.append(name)
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(0)
            return await call
        finally:
            self.in_flight -= 1

    async def find(self, filter, *, skip=0, limit=None):
        return await self._track("find", super().find(filter, skip=skip, limit=limit))

    async def find_one(self, filter):
        return await self._track("find_one", super().find_one(filter))

    async def count(self, filter):
        return await self._track("count", super().count(filter))

    async def create(self, document):
        return await self._track("create", super().create(document))

    async def find_one_and_update(self, filter, update):
        return await self._track("find_one_and_update", super().find_one_and_update(filter, update))


@pytest.fixture
def tracking_collection():
    return TrackingCollection()


@pytest.fixture
def make_client():
    """Build a TestClient serving the given resource configs at the root."""

    def _make(*configs):
        app = FastAPI()
        app.router.redirect_slashes = False
        include_resources(app, configs)
        return TestClient(app)

    return _make


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'resourcekit.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def app(engine):
    return create_app(engine=engine)


@pytest.fixture
def client(app):
    return TestClient(app)
