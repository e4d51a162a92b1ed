"""Exceptions raised by typecache."""

from __future__ import annotations

from typing import Any


class CacheError(Exception):
    """Base class for all cache errors."""


class InvalidKeyError(CacheError, TypeError):
    """Key is missing, not a string, or empty."""

    def __init__(self, key: Any = None) -> None:
        self.key = key
        super().__init__("Cache key must be a non-empty string")


class InvalidValueError(CacheError, ValueError):
    """Top-level value is UNDEFINED, or the value is self-referencing."""

    def __init__(
        self, message: str = "Cache value must be defined primitive, object or null"
    ) -> None:
        super().__init__(message)


class UnsupportedTypeError(CacheError, TypeError):
    """Value, or a nested member of it, is of a kind the cache cannot store."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"Cache cannot store {kind} type values")


class InvalidExpirationError(CacheError, ValueError):
    """Expiration modifier is neither a relative duration nor a datetime."""

    def __init__(self, expires_in: Any = None) -> None:
        self.expires_in = expires_in
        super().__init__(
            "Cache expiration modifier must be a number of milliseconds or Date object"
        )


class CorruptEntryError(CacheError, ValueError):
    """Stored document failed structural validation on read."""

    def __init__(self, message: str = "Invalid serialized value", node: Any = None) -> None:
        self.node = node
        super().__init__(message)


class InvalidSerializedTypeError(CorruptEntryError):
    """Stored document carries a type tag outside the known set."""

    def __init__(self, type_: Any) -> None:
        self.type = type_
        super().__init__(f"Invalid serialized value type: {type_!r}")
