"""Storage backends for typecache.

``"permanent"`` and ``"session"`` name process-wide shared backends, the
way a browser has one ``localStorage`` and one ``sessionStorage``. Caches
bound to the same kind share one instance and partition it by key prefix.
"""

import os
import threading
from pathlib import Path

from typecache.storage.base import KeyListingStorage, Storage
from typecache.storage.memory import MemoryStorage, SessionStorage
from typecache.storage.redis import RedisStorage
from typecache.storage.sqlite import SQLiteStorage

PATH_ENV_VAR = "TYPECACHE_PATH"
DEFAULT_PATH = Path("~/.cache/typecache/storage.sqlite3")

STORAGE_KINDS = ("permanent", "session", "memory")

_shared: dict[str, Storage] = {}
_lock = threading.Lock()


def permanent_storage_path() -> Path:
    """Location of the permanent SQLite file."""
    return Path(os.environ.get(PATH_ENV_VAR) or DEFAULT_PATH).expanduser()


def get_storage(kind: str) -> Storage:
    """Get the backend for a storage kind.

    ``"permanent"`` and ``"session"`` return the shared instance for the
    process, creating it on first use. ``"memory"`` always returns a new,
    private ``MemoryStorage``.

    Raises:
        ValueError: Unknown storage kind.
        sqlite3.Error, OSError: The permanent file cannot be opened.
    """
    if kind == "memory":
        return MemoryStorage()
    if kind not in STORAGE_KINDS:
        raise ValueError(
            f"Invalid storage kind: {kind!r} (expected one of {STORAGE_KINDS})"
        )

    with _lock:
        storage = _shared.get(kind)
        if storage is None:
            if kind == "permanent":
                storage = SQLiteStorage(permanent_storage_path())
            else:
                storage = SessionStorage()
            _shared[kind] = storage
        return storage


def reset_storages() -> None:
    """Forget the shared backends so the next lookup creates fresh ones."""
    with _lock:
        _shared.clear()


__all__ = [
    "DEFAULT_PATH",
    "KeyListingStorage",
    "PATH_ENV_VAR",
    "STORAGE_KINDS",
    "MemoryStorage",
    "RedisStorage",
    "SQLiteStorage",
    "SessionStorage",
    "Storage",
    "get_storage",
    "permanent_storage_path",
    "reset_storages",
]
