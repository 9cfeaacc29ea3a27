"""Single-slot cache of the last notified fingerprint."""

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

LAST_NOTIFIED_KEY = "last_notified_event"
DEFAULT_TTL_SECONDS = 120.0


class LastNotifiedCache:
    """Holds the fingerprint of the most recently notified event.

    Every notification overwrites the slot, so the TTL only bounds how long
    an old fingerprint can keep suppressing a repeat. Not thread-safe: the
    watch loop is its only reader and writer.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            ttl_seconds: Age after which the stored fingerprint is ignored
            clock: Monotonic time source, replaceable in tests
        """
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._store: dict[str, tuple[str, float]] = {}

    def get(self) -> tuple[Optional[str], bool]:
        """Return ``(fingerprint, found)`` for the last notified event."""
        entry = self._store.get(LAST_NOTIFIED_KEY)
        if entry is None:
            return None, False

        value, stored_at = entry
        if self._clock() - stored_at > self.ttl_seconds:
            del self._store[LAST_NOTIFIED_KEY]
            logger.debug(f"Cached fingerprint expired: {value}")
            return None, False

        return value, True

    def set(self, fingerprint: str) -> None:
        """Store a fingerprint, replacing any previous one."""
        self._store[LAST_NOTIFIED_KEY] = (fingerprint, self._clock())

    def clear(self) -> None:
        """Drop the stored fingerprint."""
        self._store.clear()
