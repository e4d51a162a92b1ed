"""Core types for typecache."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Final, Generic, TypeVar

T = TypeVar("T")


class _Undefined:
    """Marker for an explicitly undefined member of a list or dict."""

    _instance: _Undefined | None = None

    def __new__(cls) -> _Undefined:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "UNDEFINED"


UNDEFINED: Final = _Undefined()


class TypeTag(str, Enum):
    """Wire tags of the serialized value algebra."""

    UNDEFINED = "undefined"
    NULL = "null"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    """A cached value with its absolute expiration time."""

    value: T
    expires: datetime | None  # None never expires


# Any storable value: None, str, int, float, bool, datetime, list, dict, UNDEFINED
Value = Any

# Serialized node: {"type": <tag>, "value": <payload>}
SerializedValue = dict[str, Any]

# Expiration modifier: milliseconds, "30s"-style duration, timedelta or datetime
Expiration = int | float | str | timedelta | datetime
