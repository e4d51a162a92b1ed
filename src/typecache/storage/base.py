"""Base storage protocol for cache backends."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Storage(Protocol):
    """Key/value storage interface, modeled on Web Storage.

    Raw storages (``requires_serialization = False``) hold cache entries as
    native objects. String storages hold only strings, and the cache
    serializes entries before handing them over.
    """

    requires_serialization: bool

    def get_item(self, key: str) -> Any | None:
        """Get the stored item for a key, or None if absent."""
        ...

    def set_item(self, key: str, value: Any) -> None:
        """Store an item, replacing any existing one."""
        ...

    def remove_item(self, key: str) -> None:
        """Remove an item. No-op if absent."""
        ...

    def key(self, index: int) -> str | None:
        """Get the key at a position, or None if out of range."""
        ...

    def __len__(self) -> int:
        """Number of stored items."""
        ...

    def clear(self) -> None:
        """Remove every item, including ones written by other consumers."""
        ...


@runtime_checkable
class KeyListingStorage(Protocol):
    """Optional mixin for storages that can list all keys in one call."""

    def list_keys(self) -> list[str]:
        """Snapshot of every stored key, in the same order as ``key(index)``."""
        ...
