"""Short-lived key/value cache for user and product vectors.

The cache is handed to the recommendation engine explicitly. Values are
plain JSON-compatible dictionaries (``ProductVector.to_dict()`` /
``UserVector.to_dict()``). A missing or expired key is a miss, never an
error; concurrent writers to the same key race and the last one wins.
"""

import copy
import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple

import redis

# Configure module logger
logger = logging.getLogger(__name__)

USER_VECTOR_PREFIX = "user_vector:"
PRODUCT_VECTOR_PREFIX = "product_vector:"


def user_vector_key(user_id: str) -> str:
    return f"{USER_VECTOR_PREFIX}{user_id}"


def product_vector_key(product_id: str) -> str:
    return f"{PRODUCT_VECTOR_PREFIX}{product_id}"


class VectorCache(ABC):
    """Get/set interface with per-entry time-to-live."""

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the cached value, or None on a miss."""

    @abstractmethod
    def set(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> None:
        """Store value under key for ttl_seconds."""


class InMemoryVectorCache(VectorCache):
    """Process-local cache with TTL expiry.

    Args:
        clock: Monotonic time source in seconds; tests pass a fake clock to
            move past expiry.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, Dict[str, Any]]] = {}

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None

            return copy.deepcopy(value)

    def set(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + ttl_seconds, copy.deepcopy(value))

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        # An empty cache is still a usable cache
        return True


class RedisVectorCache(VectorCache):
    """Redis-backed cache storing JSON values with ``SETEX``."""

    def __init__(self, client: redis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisVectorCache":
        logger.info("Connecting vector cache to Redis", extra={"redis_url": url})
        return cls(redis.Redis.from_url(url))

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        raw = self._client.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> None:
        self._client.setex(key, ttl_seconds, json.dumps(value))

    def ping(self) -> bool:
        """Check connectivity; connection errors propagate to the caller."""
        return bool(self._client.ping())
