"""Cluster event feed.

Subscribes to Warning events through the Kubernetes watch API and decodes
each raw watch event into a ClusterEvent. Decoding is validated: payloads
that do not look like an Event are rejected with FeedDecodeError and
skipped by the feed instead of breaking the subscription.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterator, Optional

from kubernetes import client, config, watch
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .events import ClusterEvent

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)

WARNING_FIELD_SELECTOR = "type=Warning"

# Watch event types carrying an Event we should look at
DELIVERED_WATCH_TYPES = {"ADDED", "MODIFIED"}
# Watch event types that never lead to a notification
IGNORED_WATCH_TYPES = {"DELETED", "BOOKMARK"}


class FeedDecodeError(ValueError):
    """A raw watch event did not have the expected shape."""


class SubscriptionError(RuntimeError):
    """The watch reported an error; the current subscription is unusable."""


# =============================================================================
# Raw payload models
# =============================================================================


class ObjectReference(BaseModel):
    kind: str = ""
    namespace: Optional[str] = None
    name: str = ""


class ObjectMeta(BaseModel):
    name: Optional[str] = None
    namespace: Optional[str] = None
    creation_timestamp: Optional[datetime] = Field(
        default=None, alias="creationTimestamp"
    )

    model_config = ConfigDict(populate_by_name=True)


class EventObject(BaseModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    involved_object: ObjectReference = Field(alias="involvedObject")
    reason: Optional[str] = None
    message: Optional[str] = None
    type: Optional[str] = None
    first_timestamp: Optional[datetime] = Field(default=None, alias="firstTimestamp")
    event_time: Optional[datetime] = Field(default=None, alias="eventTime")

    model_config = ConfigDict(populate_by_name=True)

    def occurred_at(self) -> Optional[datetime]:
        """First occurrence, falling back to the series time and creation time."""
        occurred = (
            self.first_timestamp or self.event_time or self.metadata.creation_timestamp
        )
        if occurred is not None and occurred.tzinfo is None:
            occurred = occurred.replace(tzinfo=timezone.utc)
        return occurred


def decode_watch_event(raw: dict) -> Optional[ClusterEvent]:
    """Decode one raw watch event.

    Args:
        raw: Watch event as yielded by ``kubernetes.watch.Watch.stream``
            (``type`` plus ``raw_object``; ``object`` is accepted as well)

    Returns:
        ClusterEvent, or None for watch events that carry nothing to notify

    Raises:
        SubscriptionError: The watch delivered an ERROR status
        FeedDecodeError: The payload is not a usable Event
    """
    if not isinstance(raw, dict):
        raise FeedDecodeError(f"Expected a watch event mapping, got {type(raw).__name__}")

    event_type = raw.get("type")
    payload = raw.get("raw_object", raw.get("object"))

    if event_type == "ERROR":
        status = payload if isinstance(payload, dict) else {}
        raise SubscriptionError(
            f"Watch error {status.get('code', 'unknown')}: "
            f"{status.get('message', 'no message')}"
        )
    if event_type in IGNORED_WATCH_TYPES:
        return None
    if event_type not in DELIVERED_WATCH_TYPES:
        raise FeedDecodeError(f"Unknown watch event type: {event_type!r}")
    if not isinstance(payload, dict):
        raise FeedDecodeError(f"{event_type} watch event has no raw object")

    try:
        obj = EventObject.model_validate(payload)
    except ValidationError as e:
        raise FeedDecodeError(f"Invalid Event object: {e}") from e

    occurred_at = obj.occurred_at()
    if occurred_at is None:
        raise FeedDecodeError(
            f"Event {obj.metadata.name or '<unnamed>'} has no timestamp"
        )

    return ClusterEvent(
        namespace=obj.involved_object.namespace or obj.metadata.namespace or "",
        kind=obj.involved_object.kind,
        name=obj.involved_object.name,
        reason=obj.reason or "",
        message=obj.message or "",
        occurred_at=occurred_at,
    )


# =============================================================================
# Feeds
# =============================================================================


class EventFeed(ABC):
    """Source of Warning events for the watch loop."""

    @abstractmethod
    def subscribe(self) -> Iterator[ClusterEvent]:
        """Open a subscription and yield events until it closes.

        Raises on failure to open or on a broken stream.
        """
        pass

    def stop(self) -> None:
        """Ask an open subscription to end."""


def build_core_api(kubeconfig_path: str = "") -> client.CoreV1Api:
    """Create a CoreV1Api from in-cluster credentials or a kubeconfig file.

    Raises:
        kubernetes.config.ConfigException: Credentials could not be loaded
    """
    configuration = client.Configuration()
    if kubeconfig_path:
        config.load_kube_config(
            config_file=kubeconfig_path, client_configuration=configuration
        )
        logger.info(f"Loaded cluster credentials from {kubeconfig_path}")
    else:
        config.load_incluster_config(client_configuration=configuration)
        logger.info("Loaded in-cluster credentials")

    # Shape checks happen in decode_watch_event
    configuration.client_side_validation = False
    return client.CoreV1Api(client.ApiClient(configuration))


class KubernetesEventFeed(EventFeed):
    """Warning events from every namespace via the Kubernetes watch API."""

    def __init__(self, api: client.CoreV1Api, timeout_seconds: int = 0):
        self.api = api
        self.timeout_seconds = timeout_seconds
        self._watch: Optional[watch.Watch] = None

    @classmethod
    def from_settings(cls, settings: "Settings") -> "KubernetesEventFeed":
        """Bootstrap credentials and build the feed."""
        api = build_core_api(settings.kubeconfig_path)
        return cls(api, timeout_seconds=settings.watch_timeout_seconds)

    def subscribe(self) -> Iterator[ClusterEvent]:
        self._watch = watch.Watch()
        kwargs = {"field_selector": WARNING_FIELD_SELECTOR}
        if self.timeout_seconds:
            kwargs["timeout_seconds"] = self.timeout_seconds

        for raw in self._watch.stream(self.api.list_event_for_all_namespaces, **kwargs):
            try:
                event = decode_watch_event(raw)
            except FeedDecodeError as e:
                logger.warning(f"Skipping undecodable event: {e}")
                continue
            if event is not None:
                yield event

    def stop(self) -> None:
        if self._watch is not None:
            self._watch.stop()
