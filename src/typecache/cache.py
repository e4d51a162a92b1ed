"""Expiring key/value cache that preserves value types."""

from __future__ import annotations

import logging
import math
import sqlite3
import threading
import time
from collections.abc import Callable
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Final, TypeVar

from typecache.duration import parse_duration
from typecache.errors import (
    CorruptEntryError,
    InvalidExpirationError,
    InvalidKeyError,
    InvalidValueError,
)
from typecache.serialization import check_storable, freeze, from_millis, thaw, to_millis
from typecache.storage import KeyListingStorage, MemoryStorage, Storage, get_storage
from typecache.types import UNDEFINED, CacheEntry, Expiration

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MILLISECOND = timedelta(milliseconds=1)


class _Missing(Enum):
    MISSING = "MISSING"


_MISSING: Final = _Missing.MISSING


class Cache:
    """Expiring key/value cache over a storage backend.

    Values keep their type through string-only backends: ``None``, strings,
    numbers (including NaN and the infinities), booleans, datetimes, and
    lists and dicts of those come back as they went in. Expired entries are
    evicted lazily, by the first ``get`` that sees them.

    Note:
        ``has()`` does not check expiration, so it returns True for an entry
        that has expired but has not yet been evicted by ``get()``.

    Example:
        cache = Cache("permanent", key_prefix="myapp.")
        cache.set("user", {"id": 1, "seen": datetime.now()}, "15m")
        cache.get("user")
    """

    def __init__(
        self,
        storage: str | Storage = "session",
        *,
        key_prefix: str = "cache.",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Bind the cache to a backend.

        Args:
            storage: ``"permanent"``, ``"session"``, ``"memory"`` or a
                ``Storage`` instance.
            key_prefix: Namespace for this cache's keys in a shared backend.
                Ignored (forced empty) for raw storages, which are never
                shared.
            clock: Returns the current time in seconds since the epoch.
        """
        if not isinstance(key_prefix, str):
            raise TypeError("key_prefix must be a string")
        if isinstance(storage, str):
            storage = self._open_storage(storage)
        elif not isinstance(storage, Storage):
            raise TypeError(f"Invalid storage: {storage!r}")

        self._storage = storage
        self._serializes = bool(storage.requires_serialization)
        self._key_prefix = key_prefix if self._serializes else ""
        self._clock = clock
        self._lock = threading.RLock()

    @staticmethod
    def _open_storage(kind: str) -> Storage:
        """Look up a storage kind, falling back to memory if it cannot open."""
        try:
            return get_storage(kind)
        except (sqlite3.Error, OSError) as exc:
            logger.warning(
                "Cannot open %s storage, falling back to memory storage: %s",
                kind,
                exc,
            )
            return MemoryStorage()

    @property
    def storage(self) -> Storage:
        """The backend this cache is bound to."""
        return self._storage

    @property
    def key_prefix(self) -> str:
        """Prefix prepended to every key in the backend."""
        return self._key_prefix

    @property
    def serializes(self) -> bool:
        """Whether entries are serialized before they reach the backend."""
        return self._serializes

    def _now_ms(self) -> int:
        return round(self._clock() * 1000)

    def _full_key(self, key: str) -> str:
        if not isinstance(key, str) or key == "":
            raise InvalidKeyError(key)
        return self._key_prefix + key

    def _resolve_expiration(self, expires_in: Expiration | _Missing) -> datetime | None:
        """Turn an expiration modifier into an absolute time."""
        if expires_in is _MISSING:
            return None
        if isinstance(expires_in, datetime):
            return from_millis(to_millis(expires_in))

        if isinstance(expires_in, bool):
            raise InvalidExpirationError(expires_in)
        if isinstance(expires_in, (int, float)):
            if isinstance(expires_in, float) and not math.isfinite(expires_in):
                raise InvalidExpirationError(expires_in)
            millis: int | float = expires_in
        elif isinstance(expires_in, timedelta):
            millis = expires_in / _MILLISECOND
        elif isinstance(expires_in, str):
            try:
                millis = parse_duration(expires_in)
            except ValueError:
                raise InvalidExpirationError(expires_in) from None
        else:
            raise InvalidExpirationError(expires_in)

        now = self._now_ms()
        try:
            expires_ms = math.floor(now + millis)
            if millis <= 0:
                # Zero or negative TTL is already expired
                expires_ms = min(expires_ms, now - 1)
            return from_millis(expires_ms)
        except OverflowError:
            raise InvalidExpirationError(expires_in) from None

    def _fetch(self, key: str) -> CacheEntry[Any] | None:
        """Read and decode the entry for a key, ignoring expiration."""
        stored = self._storage.get_item(self._full_key(key))
        if stored is None:
            return None
        if self._serializes:
            return thaw(stored)
        if not isinstance(stored, CacheEntry):
            raise CorruptEntryError("Stored item is not a cache entry", node=stored)
        return stored

    def set(self, key: str, value: T, expires_in: Expiration | _Missing = _MISSING) -> T:
        """Store a value, replacing any existing entry for the key.

        Args:
            key: Non-empty string.
            value: Any storable value except ``UNDEFINED``.
            expires_in: Milliseconds to live (zero or negative means already
                expired), a ``"30s"``-style duration, a ``timedelta``, or an
                absolute ``datetime``. Omit for an entry that never expires.

        Returns:
            The value as passed in.

        Raises:
            InvalidKeyError: Key is not a non-empty string.
            InvalidValueError: Value is ``UNDEFINED`` or self-referencing.
            UnsupportedTypeError: Value is or contains a non-storable kind.
            InvalidExpirationError: Expiration modifier is not understood.
        """
        full_key = self._full_key(key)
        if value is UNDEFINED:
            raise InvalidValueError()
        check_storable(value)
        expires = self._resolve_expiration(expires_in)

        entry: CacheEntry[Any] = CacheEntry(value=value, expires=expires)
        stored: Any = freeze(entry) if self._serializes else entry

        with self._lock:
            # Drop the old entry first so nothing of it survives the overwrite
            self._storage.remove_item(full_key)
            self._storage.set_item(full_key, stored)

        logger.debug("Cached %r (expires %s)", key, expires or "never")
        return value

    def get(self, key: str) -> Any | None:
        """Get the value for a key, or None if absent or expired.

        An expired entry is removed from the backend as a side effect.
        """
        with self._lock:
            entry = self._fetch(key)
            if entry is None:
                return None

            if entry.expires is not None and to_millis(entry.expires) < self._now_ms():
                logger.debug("Evicting expired cache entry %r", key)
                self._storage.remove_item(self._full_key(key))
                return None

            return entry.value

    def has(self, key: str) -> bool:
        """Check whether an entry exists for a key.

        Expiration is not checked: an expired entry counts until ``get()``
        evicts it.
        """
        with self._lock:
            return self._fetch(key) is not None

    def keys(self) -> list[str]:
        """List the keys of this cache, without prefix, in backend order."""
        prefix = self._key_prefix
        with self._lock:
            if isinstance(self._storage, KeyListingStorage):
                stored_keys = self._storage.list_keys()
            else:
                stored_keys = [
                    self._storage.key(index) for index in range(len(self._storage))
                ]
        return [
            stored_key[len(prefix) :]
            for stored_key in stored_keys
            if stored_key is not None and stored_key.startswith(prefix)
        ]

    def remove(self, key: str) -> None:
        """Remove the entry for a key. No-op if absent."""
        full_key = self._full_key(key)
        with self._lock:
            self._storage.remove_item(full_key)

    def clear(self) -> None:
        """Remove every entry of this cache.

        Keys outside this cache's prefix are left alone, so a shared backend
        keeps the entries of its other users.
        """
        with self._lock:
            if not self._serializes:
                # Raw storage is private to this cache
                self._storage.clear()
            else:
                for key in self.keys():
                    self._storage.remove_item(self._key_prefix + key)
        logger.debug("Cleared cache %r", self._key_prefix)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key != "" and self.has(key)

    def __len__(self) -> int:
        return len(self.keys())

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(storage={type(self._storage).__name__}, "
            f"key_prefix={self._key_prefix!r})"
        )
