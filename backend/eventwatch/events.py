"""Event data classes for the watch pipeline."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class WatchState(Enum):
    """Lifecycle states of a single watch attempt."""

    IDLE = "idle"
    SUBSCRIBING = "subscribing"
    STREAMING = "streaming"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass(frozen=True)
class ClusterEvent:
    """A Warning event reported by the cluster.

    Attributes:
        namespace: Namespace of the object the event is about
        kind: Kind of the involved object (Pod, Node, ...)
        name: Name of the involved object
        reason: Short machine-readable reason (BackOff, Unhealthy, ...)
        message: Human-readable description
        occurred_at: When the event first occurred (timezone-aware)
    """

    namespace: str
    kind: str
    name: str
    reason: str
    message: str
    occurred_at: datetime
