"""Chat webhook message formatting.

Builds Slack-compatible attachment payloads for cluster events.
"""

from .events import ClusterEvent

WARNING_COLOR = "warning"


def monitoring_url(console_base_url: str, event: ClusterEvent) -> str:
    """Console monitoring page for the event's namespace."""
    base = console_base_url.rstrip("/")
    return f"{base}/project/{event.namespace}/monitoring"


def resource_url(console_base_url: str, event: ClusterEvent) -> str:
    """Console page for the object the event is about."""
    base = console_base_url.rstrip("/")
    return (
        f"{base}/project/{event.namespace}/browse/"
        f"{event.kind.lower()}s/{event.name}"
    )


def field(title: str, value: str, short: bool = True) -> dict:
    """Create an attachment field."""
    return {"title": title, "value": value, "short": short}


def format_event_attachment(event: ClusterEvent, console_base_url: str) -> dict:
    """Format an event as a single attachment.

    Args:
        event: The event to describe
        console_base_url: Base URL of the cluster web console

    Returns:
        Attachment dict
    """
    return {
        "color": WARNING_COLOR,
        "author_name": event.namespace,
        "author_link": monitoring_url(console_base_url, event),
        "title": event.name,
        "title_link": resource_url(console_base_url, event),
        "text": event.message,
        "fields": [
            field("Reason", event.reason),
            field("Kind", event.kind),
        ],
    }


def format_event_message(event: ClusterEvent, console_base_url: str) -> dict:
    """Build the full webhook body for an event."""
    return {"attachments": [format_event_attachment(event, console_base_url)]}
