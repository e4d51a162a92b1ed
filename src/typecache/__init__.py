"""typecache - Type-preserving expiring cache over string key/value storage."""

from typecache.cache import Cache

# Duration parsing
from typecache.duration import parse_duration

# Errors
from typecache.errors import (
    CacheError,
    CorruptEntryError,
    InvalidExpirationError,
    InvalidKeyError,
    InvalidSerializedTypeError,
    InvalidValueError,
    UnsupportedTypeError,
)

# Serialization engine
from typecache.serialization import deserialize, serialize

# Storage backends
from typecache.storage import (
    KeyListingStorage,
    MemoryStorage,
    RedisStorage,
    SessionStorage,
    SQLiteStorage,
    Storage,
    get_storage,
)

# Core types
from typecache.types import (
    UNDEFINED,
    CacheEntry,
    Expiration,
    TypeTag,
)

__version__ = "0.1.0"

__all__ = [
    "UNDEFINED",
    "Cache",
    "CacheEntry",
    "CacheError",
    "CorruptEntryError",
    "Expiration",
    "InvalidExpirationError",
    "InvalidKeyError",
    "InvalidSerializedTypeError",
    "InvalidValueError",
    "KeyListingStorage",
    "MemoryStorage",
    "RedisStorage",
    "SQLiteStorage",
    "SessionStorage",
    "Storage",
    "TypeTag",
    "UnsupportedTypeError",
    "deserialize",
    "get_storage",
    "parse_duration",
    "serialize",
]
