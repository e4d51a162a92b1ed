"""Type-preserving serialization of cache values.

String-only backends cannot hold native values, so every value is turned into
a self-describing node::

    {"type": "<tag>", "value": <payload>}

recursively for lists and dicts. Reading the node back yields a value of the
original type. ``undefined`` and ``null`` nodes carry no payload; finite
numbers are JSON literals while ``NaN`` and the infinities are strings;
booleans are ``"true"``/``"false"``; datetimes are the string form of their
epoch milliseconds.

Example:
    serialize({"x": 1, "y": [True, None]})
    # {"type": "object", "value": {
    #     "x": {"type": "number", "value": 1},
    #     "y": {"type": "array", "value": [
    #         {"type": "boolean", "value": "true"},
    #         {"type": "null"},
    #     ]},
    # }}
"""

from __future__ import annotations

import inspect
import json
import math
import re
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Any
from xml.dom.minidom import Node
from xml.etree.ElementTree import Element

from typecache.errors import (
    CorruptEntryError,
    InvalidSerializedTypeError,
    InvalidValueError,
    UnsupportedTypeError,
)
from typecache.types import UNDEFINED, CacheEntry, SerializedValue, TypeTag, Value

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MILLISECOND = timedelta(milliseconds=1)

_NON_FINITE: dict[str, float] = {
    "NaN": math.nan,
    "Infinity": math.inf,
    "-Infinity": -math.inf,
}

_PAYLOADLESS = (TypeTag.UNDEFINED.value, TypeTag.NULL.value)


def _classify(value: Any) -> TypeTag | None:
    """Return the wire tag for a storable value, None for anything else."""
    if value is UNDEFINED:
        return TypeTag.UNDEFINED
    if value is None:
        return TypeTag.NULL
    # bool is an int subclass, so it must be checked first
    if isinstance(value, bool):
        return TypeTag.BOOLEAN
    if isinstance(value, (int, float)):
        return TypeTag.NUMBER
    if isinstance(value, str):
        return TypeTag.STRING
    if isinstance(value, datetime):
        return TypeTag.DATE
    if isinstance(value, list):
        return TypeTag.ARRAY
    if isinstance(value, dict):
        return TypeTag.OBJECT
    return None


def value_kind(value: Any) -> str:
    """Name the kind of a runtime value.

    Storable values are named by their wire tag. Non-storable values are
    named ``function``, ``regexp``, ``element``, ``textnode`` or
    ``whitespace`` where they are one of those, otherwise by Python type.
    """
    tag = _classify(value)
    if tag is not None:
        return tag.value
    if inspect.isroutine(value) or isinstance(value, partial):
        return "function"
    if isinstance(value, re.Pattern):
        return "regexp"
    if isinstance(value, Element):
        return "element"
    if isinstance(value, Node):
        if value.nodeType == Node.TEXT_NODE:
            return "textnode" if value.data.strip() else "whitespace"
        return "element"
    return type(value).__name__


def to_millis(value: datetime) -> int:
    """Epoch milliseconds of a datetime; naive values are local time."""
    if value.tzinfo is None:
        value = value.astimezone()
    return (value - _EPOCH) // _MILLISECOND


def from_millis(millis: int) -> datetime:
    """Aware UTC datetime for an epoch millisecond count."""
    return _EPOCH + timedelta(milliseconds=millis)


def _check_keys(value: dict[Any, Any]) -> None:
    """Raise unless every key of a dict is a string."""
    for key in value:
        if not isinstance(key, str):
            raise UnsupportedTypeError(f"{type(key).__name__}-keyed dict")


def check_storable(value: Any, _seen: set[int] | None = None) -> None:
    """Raise unless ``value`` and everything nested in it can be serialized.

    Raises:
        UnsupportedTypeError: A value or member is not one of the storable kinds.
        InvalidValueError: A list or dict contains itself.
    """
    tag = _classify(value)
    if tag is None:
        raise UnsupportedTypeError(value_kind(value))
    if tag is not TypeTag.ARRAY and tag is not TypeTag.OBJECT:
        return

    if _seen is None:
        _seen = set()
    if id(value) in _seen:
        raise InvalidValueError("Cache cannot store self-referencing values")
    _seen.add(id(value))

    if tag is TypeTag.OBJECT:
        _check_keys(value)
        members = list(value.values())
    else:
        members = value

    for member in members:
        check_storable(member, _seen)
    _seen.discard(id(value))


# -- serialize ---------------------------------------------------------------


def _serialize_undefined(value: Any) -> SerializedValue:
    return {"type": TypeTag.UNDEFINED.value}


def _serialize_null(value: None) -> SerializedValue:
    return {"type": TypeTag.NULL.value}


def _serialize_string(value: str) -> SerializedValue:
    return {"type": TypeTag.STRING.value, "value": value}


def _serialize_number(value: int | float) -> SerializedValue:
    # ints are always finite and may be too large to convert to float
    if not isinstance(value, float):
        return {"type": TypeTag.NUMBER.value, "value": value}
    if math.isnan(value):
        return {"type": TypeTag.NUMBER.value, "value": "NaN"}
    if math.isinf(value):
        return {
            "type": TypeTag.NUMBER.value,
            "value": "Infinity" if value > 0 else "-Infinity",
        }
    return {"type": TypeTag.NUMBER.value, "value": value}


def _serialize_boolean(value: bool) -> SerializedValue:
    return {"type": TypeTag.BOOLEAN.value, "value": "true" if value else "false"}


def _serialize_date(value: datetime) -> SerializedValue:
    return {"type": TypeTag.DATE.value, "value": str(to_millis(value))}


def _serialize_array(value: list[Any]) -> SerializedValue:
    return {"type": TypeTag.ARRAY.value, "value": [serialize(item) for item in value]}


def _serialize_object(value: dict[str, Any]) -> SerializedValue:
    _check_keys(value)
    return {
        "type": TypeTag.OBJECT.value,
        "value": {key: serialize(item) for key, item in value.items()},
    }


_SERIALIZERS: dict[TypeTag, Callable[[Any], SerializedValue]] = {
    TypeTag.UNDEFINED: _serialize_undefined,
    TypeTag.NULL: _serialize_null,
    TypeTag.STRING: _serialize_string,
    TypeTag.NUMBER: _serialize_number,
    TypeTag.BOOLEAN: _serialize_boolean,
    TypeTag.DATE: _serialize_date,
    TypeTag.ARRAY: _serialize_array,
    TypeTag.OBJECT: _serialize_object,
}


def serialize(value: Value) -> SerializedValue:
    """Convert a storable value into its tagged node form."""
    tag = _classify(value)
    if tag is None:
        raise UnsupportedTypeError(value_kind(value))
    return _SERIALIZERS[tag](value)


# -- deserialize -------------------------------------------------------------


def check_serialized(node: Any) -> None:
    """Validate the structure of one serialized node.

    A node must be a dict with a ``type`` member, and must carry a ``value``
    member unless its type is ``undefined`` or ``null``.
    """
    if not isinstance(node, dict) or "type" not in node:
        raise CorruptEntryError(node=node)
    if node["type"] not in _PAYLOADLESS and "value" not in node:
        raise CorruptEntryError(node=node)


def _deserialize_undefined(payload: Any) -> Any:
    return UNDEFINED


def _deserialize_null(payload: Any) -> None:
    return None


def _deserialize_string(payload: Any) -> str:
    if not isinstance(payload, str):
        raise CorruptEntryError("Invalid serialized string value", node=payload)
    return payload


def _deserialize_number(payload: Any) -> int | float:
    if isinstance(payload, (int, float)) and not isinstance(payload, bool):
        return payload
    if isinstance(payload, str):
        if payload in _NON_FINITE:
            return _NON_FINITE[payload]
        try:
            return int(payload)
        except ValueError:
            pass
        try:
            return float(payload)
        except ValueError:
            pass
    raise CorruptEntryError("Invalid serialized number value", node=payload)


def _deserialize_boolean(payload: Any) -> bool:
    if payload == "true":
        return True
    if payload == "false":
        return False
    raise CorruptEntryError("Invalid serialized boolean value", node=payload)


def _deserialize_date(payload: Any) -> datetime:
    try:
        return from_millis(int(payload))
    except (TypeError, ValueError, OverflowError) as exc:
        raise CorruptEntryError("Invalid serialized date value", node=payload) from exc


def _deserialize_array(payload: Any) -> list[Any]:
    if not isinstance(payload, list):
        raise CorruptEntryError("Invalid serialized array value", node=payload)
    return [deserialize(item) for item in payload]


def _deserialize_object(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise CorruptEntryError("Invalid serialized object value", node=payload)
    return {key: deserialize(item) for key, item in payload.items()}


_DESERIALIZERS: dict[TypeTag, Callable[[Any], Any]] = {
    TypeTag.UNDEFINED: _deserialize_undefined,
    TypeTag.NULL: _deserialize_null,
    TypeTag.STRING: _deserialize_string,
    TypeTag.NUMBER: _deserialize_number,
    TypeTag.BOOLEAN: _deserialize_boolean,
    TypeTag.DATE: _deserialize_date,
    TypeTag.ARRAY: _deserialize_array,
    TypeTag.OBJECT: _deserialize_object,
}


def deserialize(node: Any) -> Value:
    """Reconstruct a native value from its tagged node form.

    Raises:
        CorruptEntryError: The node, or a node nested in it, is malformed.
        InvalidSerializedTypeError: A node carries an unknown type tag.
    """
    check_serialized(node)
    try:
        tag = TypeTag(node["type"])
    except (TypeError, ValueError):
        raise InvalidSerializedTypeError(node["type"]) from None
    return _DESERIALIZERS[tag](node.get("value"))


# -- documents ---------------------------------------------------------------


def freeze(entry: CacheEntry[Any]) -> str:
    """Encode a cache entry as the JSON document stored in string backends."""
    node = serialize(
        {
            "value": entry.value,
            "expires": UNDEFINED if entry.expires is None else entry.expires,
        }
    )
    return json.dumps(node, separators=(",", ":"), allow_nan=False)


def thaw(document: str | bytes) -> CacheEntry[Any]:
    """Decode a stored JSON document back into a cache entry."""
    try:
        node = json.loads(document)
    except (TypeError, ValueError) as exc:
        raise CorruptEntryError("Stored document is not valid JSON", node=document) from exc

    data = deserialize(node)
    if not isinstance(data, dict) or "value" not in data:
        raise CorruptEntryError("Stored document is not a cache entry", node=node)

    expires = data.get("expires", UNDEFINED)
    if expires is UNDEFINED or expires is None:
        expires = None
    elif not isinstance(expires, datetime):
        raise CorruptEntryError("Invalid cache entry expiration", node=node)

    return CacheEntry(value=data["value"], expires=expires)
