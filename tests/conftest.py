"""Shared pytest fixtures."""

from collections.abc import Iterator
from pathlib import Path

import pytest

from typecache import Cache, MemoryStorage, SessionStorage, SQLiteStorage
from typecache.storage import PATH_ENV_VAR, reset_storages

START_MS = 1_700_000_000_000


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start_ms: int = START_MS) -> None:
        self.ms = start_ms

    def __call__(self) -> float:
        return self.ms / 1000

    def advance(self, ms: int) -> None:
        self.ms += ms


@pytest.fixture(autouse=True)
def isolated_storages(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Point permanent storage at a temp file and drop shared backends."""
    monkeypatch.setenv(PATH_ENV_VAR, str(tmp_path / "permanent.sqlite3"))
    reset_storages()
    yield
    reset_storages()


@pytest.fixture
def clock() -> FakeClock:
    """Create a fake clock for expiration tests."""
    return FakeClock()


@pytest.fixture
def session_storage() -> SessionStorage:
    """Create a fresh SessionStorage for each test."""
    return SessionStorage()


@pytest.fixture
def cache(session_storage: SessionStorage, clock: FakeClock) -> Cache:
    """Create a serializing cache over a session storage."""
    return Cache(session_storage, key_prefix="test.cache.", clock=clock)


@pytest.fixture(params=["session", "sqlite", "memory"])
def any_cache(request: pytest.FixtureRequest, tmp_path: Path, clock: FakeClock) -> Cache:
    """Create a cache over each kind of backend."""
    if request.param == "session":
        storage = SessionStorage()
    elif request.param == "sqlite":
        storage = SQLiteStorage(tmp_path / "cache.sqlite3")
    else:
        storage = MemoryStorage()
    return Cache(storage, key_prefix="test.cache.", clock=clock)
