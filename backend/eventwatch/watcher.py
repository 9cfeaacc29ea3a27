"""Watch loop: feed -> fingerprint -> dedup cache -> notifier.

One attempt subscribes to the feed and streams events until the
subscription closes or fails. ``run_forever`` repeats attempts with a
backoff until asked to stop. Every attempt records a fresh start time and
ignores events that occurred before it, because the feed replays its
backlog on reconnect.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

from .dedup_cache import LastNotifiedCache
from .events import ClusterEvent, WatchState
from .feed import EventFeed
from .fingerprint import fingerprint

logger = logging.getLogger(__name__)


# Reconnect configuration
BASE_BACKOFF_SECONDS = 5.0
MAX_BACKOFF_SECONDS = 60.0


class Notifier(Protocol):
    """Anything that can deliver a notification for one event."""

    def notify(self, event: ClusterEvent) -> bool: ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WatchLoop:
    """Turns the event feed into deduplicated notifications."""

    def __init__(
        self,
        feed: EventFeed,
        cache: LastNotifiedCache,
        notifier: Notifier,
        now: Callable[[], datetime] = utc_now,
        backoff_seconds: float = BASE_BACKOFF_SECONDS,
        max_backoff_seconds: float = MAX_BACKOFF_SECONDS,
    ):
        """Initialize the loop.

        Args:
            feed: Source of Warning events
            cache: Last-notified fingerprint store, owned by this loop
            notifier: Object with ``notify(event)``
            now: Wall clock used for the start-time filter
            backoff_seconds: Wait before resubscribing after a closed feed
            max_backoff_seconds: Cap for the wait after repeated failures
        """
        self.feed = feed
        self.cache = cache
        self.notifier = notifier
        self._now = now
        self.backoff_seconds = backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds

        self.state = WatchState.IDLE
        self.started_at: Optional[datetime] = None

    def handle_event(self, event: ClusterEvent) -> bool:
        """Notify about an event unless it is stale or a repeat.

        Returns:
            True if a notification was triggered
        """
        if self.started_at is not None and event.occurred_at <= self.started_at:
            logger.debug(
                f"Skipping event from before the watch started: {event.message}"
            )
            return False

        logger.info(f"Handling event: {event.message}")
        current = fingerprint(event)
        cached, found = self.cache.get()

        if found and cached == current:
            logger.debug(f"Duplicate of last notified event: {current}")
            return False

        if not found:
            logger.info("Cache is empty, sending the event")
        else:
            logger.info(f"Event differs from last notified ({cached}), sending it")

        self.notifier.notify(event)
        self.cache.set(current)
        logger.info(f"Event {current} has been cached")
        return True

    def run_once(self, stop_event: Optional[threading.Event] = None) -> WatchState:
        """Subscribe once and stream events until the feed closes.

        Returns:
            WatchState.CLOSED once the subscription ends

        Raises:
            Whatever the feed raises while opening or streaming; the state
            is left at WatchState.FAILED
        """
        self.state = WatchState.SUBSCRIBING
        self.started_at = self._now()
        logger.info(f"Watching events after {self.started_at.isoformat()}")

        try:
            events = iter(self.feed.subscribe())
            self.state = WatchState.STREAMING
            for event in events:
                self.handle_event(event)
                if stop_event is not None and stop_event.is_set():
                    break
        except Exception:
            self.state = WatchState.FAILED
            raise

        self.state = WatchState.CLOSED
        logger.info("Event subscription closed")
        return self.state

    def next_delay(self, consecutive_failures: int) -> float:
        """Backoff before the next attempt.

        Fixed after a clean close, exponential with a cap after failures.
        """
        if consecutive_failures == 0:
            return self.backoff_seconds
        return min(
            self.backoff_seconds * (2 ** (consecutive_failures - 1)),
            self.max_backoff_seconds,
        )

    def run_forever(
        self,
        stop_event: threading.Event,
        wait: Optional[Callable[[float], bool]] = None,
    ) -> None:
        """Keep the watch alive until stop_event is set.

        Args:
            stop_event: Set to end the loop
            wait: Sleeps for the given seconds and returns True if the loop
                should stop; defaults to ``stop_event.wait``
        """
        wait = wait or stop_event.wait
        failures = 0

        while not stop_event.is_set():
            try:
                self.run_once(stop_event)
                failures = 0
            except Exception as e:
                failures += 1
                logger.error(
                    f"Event subscription failed (attempt {failures}): "
                    f"{type(e).__name__}: {e}"
                )

            if stop_event.is_set():
                break

            delay = self.next_delay(failures)
            logger.info(f"Resubscribing in {delay:.1f}s...")
            if wait(delay):
                break

        logger.info("Watch loop stopped")
