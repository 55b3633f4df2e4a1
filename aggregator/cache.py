"""
Short-lived cache for composite responses.

Keyed by the full request shape so a repeated dashboard query within the TTL
window is served without touching the upstream API. Expiry is checked lazily on
lookup; there is no background sweep.
"""
import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .models import CompositeResponse

logger = logging.getLogger(__name__)


def cache_signature(
    character_name: str,
    date: Optional[str] = None,
    section: Optional[str] = None,
    ocid: Optional[str] = None,
    module: Optional[str] = None
) -> str:
    """Deterministic key for (characterName, date, section, ocid, module)."""
    return json.dumps(
        [character_name, date or None, section or None, ocid or None, module or None],
        ensure_ascii=False
    )


@dataclass
class CacheEntry:
    """Cached composite response with its expiry time."""
    key: str
    payload: CompositeResponse
    expires_at: float


class BaseResponseCache(ABC):
    """Abstract response cache."""

    @abstractmethod
    def get(self, signature: str) -> Optional[CompositeResponse]:
        """Return the cached response, marked as cached, or None."""
        pass

    @abstractmethod
    def put(self, signature: str, payload: CompositeResponse):
        """Store a response under a signature."""
        pass

    @abstractmethod
    def clear(self):
        """Drop every entry."""
        pass


class TTLResponseCache(BaseResponseCache):
    """In-memory cache with a fixed time-to-live; ttl <= 0 disables it."""

    def __init__(self, ttl: float = 30.0, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.ttl > 0

    def get(self, signature: str) -> Optional[CompositeResponse]:
        if not self.enabled:
            return None

        with self._lock:
            entry = self._entries.get(signature)
            if entry is None:
                return None
            if self.clock() >= entry.expires_at:
                del self._entries[signature]
                logger.debug(f"Cache entry expired: {signature}")
                return None

        return entry.payload.model_copy(update={"cached": True}, deep=True)

    def put(self, signature: str, payload: CompositeResponse):
        if not self.enabled:
            return

        entry = CacheEntry(
            key=signature,
            payload=payload.model_copy(update={"cached": False}, deep=True),
            expires_at=self.clock() + self.ttl
        )
        with self._lock:
            self._entries[signature] = entry

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
