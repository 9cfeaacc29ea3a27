"""Pytest configuration and fixtures."""

import pytest
from datetime import datetime, timedelta, timezone

from eventwatch.events import ClusterEvent
from eventwatch.feed import EventFeed

# Watch loop start time used across tests (t=0)
T0 = datetime(2026, 1, 28, 12, 0, 0, tzinfo=timezone.utc)


def at(seconds: float) -> datetime:
    """Wall-clock time ``seconds`` after T0."""
    return T0 + timedelta(seconds=seconds)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedFeed(EventFeed):
    """Feed that replays one scripted list of events per subscription.

    A script entry that is an exception instance is raised instead of
    yielded; a whole script that is an exception fails the subscribe call.
    """

    def __init__(self, *scripts):
        self.scripts = list(scripts)
        self.subscriptions = 0
        self.stopped = False

    def subscribe(self):
        self.subscriptions += 1
        script = self.scripts.pop(0) if self.scripts else []
        if isinstance(script, Exception):
            raise script
        return self._stream(script)

    def _stream(self, script):
        for item in script:
            if isinstance(item, Exception):
                raise item
            yield item

    def stop(self):
        self.stopped = True


class RecordingNotifier:
    """Notifier that remembers what it was asked to send."""

    def __init__(self):
        self.sent = []

    def notify(self, event):
        self.sent.append(event)
        return True


@pytest.fixture
def make_event():
    """Factory for cluster events with sensible defaults."""

    def _make_event(
        namespace="ns1",
        kind="Pod",
        name="app-abc123",
        reason="BackOff",
        message="CrashLoopBackOff",
        occurred_at=None,
    ):
        return ClusterEvent(
            namespace=namespace,
            kind=kind,
            name=name,
            reason=reason,
            message=message,
            occurred_at=occurred_at or at(10),
        )

    return _make_event


@pytest.fixture
def fake_clock():
    """Monotonic clock starting at zero."""
    return FakeClock()


@pytest.fixture
def notifier():
    """Recording notifier."""
    return RecordingNotifier()


@pytest.fixture
def raw_event():
    """Raw watch event for a Warning on a pod, as the watch API delivers it."""
    return {
        "type": "ADDED",
        "raw_object": {
            "kind": "Event",
            "apiVersion": "v1",
            "metadata": {
                "name": "payments-api-7d8f9c-xk2pq.17a2b3c4d5e6f7",
                "namespace": "payments",
                "creationTimestamp": "2026-01-28T12:00:10Z",
            },
            "involvedObject": {
                "kind": "Pod",
                "namespace": "payments",
                "name": "payments-api-7d8f9c-xk2pq",
                "uid": "0b6e4f1c-2a4d-4c1e-9d2b-2f5c1e7b8a90",
            },
            "reason": "Unhealthy",
            "message": "Readiness probe failed: Get http://10.1.2.3:8080/healthz: dial tcp: timeout",
            "firstTimestamp": "2026-01-28T12:00:10Z",
            "lastTimestamp": "2026-01-28T12:00:40Z",
            "count": 3,
            "type": "Warning",
            "eventTime": None,
        },
    }
