"""In-process storage backends."""

import threading
from typing import Any


class MemoryStorage:
    """Raw in-memory storage holding cache entries as native objects.

    Used as the private fallback of a single cache, so it is never shared
    and needs no key prefix.
    """

    requires_serialization = False

    def __init__(self) -> None:
        self._items: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get_item(self, key: str) -> Any | None:
        """Get the stored item for a key, or None if absent."""
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: Any) -> None:
        """Store an item, replacing any existing one."""
        with self._lock:
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        """Remove an item. No-op if absent."""
        with self._lock:
            self._items.pop(key, None)

    def key(self, index: int) -> str | None:
        """Get the key at a position in insertion order."""
        with self._lock:
            if not 0 <= index < len(self._items):
                return None
            return list(self._items)[index]

    def list_keys(self) -> list[str]:
        """Snapshot of every key in insertion order."""
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def clear(self) -> None:
        """Remove every item."""
        with self._lock:
            self._items.clear()


class SessionStorage(MemoryStorage):
    """String-only storage that lives as long as the process.

    The session-scoped backend: one instance is shared by every cache bound
    to ``"session"``, each cache owning the keys under its prefix.
    """

    requires_serialization = True

    def set_item(self, key: str, value: Any) -> None:
        """Store a string, replacing any existing one."""
        if not isinstance(value, str):
            raise TypeError(
                f"SessionStorage only stores strings, got {type(value).__name__}"
            )
        super().set_item(key, value)
