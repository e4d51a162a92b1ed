"""Redis storage backend."""

from __future__ import annotations

from typing import Any


def _decode(data: bytes | str) -> str:
    if isinstance(data, bytes):
        return data.decode("utf-8")
    return data


class RedisStorage:
    """String-only persistent storage kept in a single Redis hash.

    Every cache sharing the hash owns the fields under its key prefix, so
    ``clear()`` here drops the whole hash and is only for administration.
    """

    requires_serialization = True

    def __init__(
        self,
        client: Any,  # redis.Redis
        *,
        name: str = "typecache",
    ) -> None:
        self._client = client
        self._name = name

    def get_item(self, key: str) -> str | None:
        """Get the stored document for a key, or None if absent."""
        data = self._client.hget(self._name, key)
        if data is None:
            return None
        return _decode(data)

    def set_item(self, key: str, value: str) -> None:
        """Store a document, replacing any existing one."""
        if not isinstance(value, str):
            raise TypeError(
                f"RedisStorage only stores strings, got {type(value).__name__}"
            )
        self._client.hset(self._name, key, value)

    def remove_item(self, key: str) -> None:
        """Remove a document. No-op if absent."""
        self._client.hdel(self._name, key)

    def key(self, index: int) -> str | None:
        """Get the key at a position in key order."""
        keys = self.list_keys()
        if not 0 <= index < len(keys):
            return None
        return keys[index]

    def list_keys(self) -> list[str]:
        """Snapshot of every field in key order, from a single HKEYS."""
        return sorted(_decode(field) for field in self._client.hkeys(self._name))

    def __len__(self) -> int:
        return int(self._client.hlen(self._name))

    def clear(self) -> None:
        """Drop the whole hash."""
        self._client.delete(self._name)

    def disconnect(self) -> None:
        """Close the Redis connection."""
        self._client.close()
