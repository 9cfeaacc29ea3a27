"""Chat webhook notifier.

Delivery is best-effort: one POST per event, no retry. Failures are logged
and never reach the watch loop.
"""

import logging
from typing import Optional

from slack_sdk.webhook import WebhookClient

from .chat_payload import format_event_message
from .config import get_settings
from .events import ClusterEvent

settings = get_settings()
logger = logging.getLogger(__name__)


class WebhookNotifier:
    """Send event notifications to an incoming webhook."""

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        console_base_url: Optional[str] = None,
        timeout_seconds: Optional[int] = None,
    ):
        self.webhook_url = (
            settings.webhook_url if webhook_url is None else webhook_url
        )
        self.console_base_url = (
            settings.console_base_url if console_base_url is None else console_base_url
        )
        timeout = (
            settings.webhook_timeout_seconds
            if timeout_seconds is None
            else timeout_seconds
        )
        # No retry handlers: one POST per event, even on connection errors
        self.client = (
            WebhookClient(self.webhook_url, timeout=timeout, retry_handlers=[])
            if self.webhook_url
            else None
        )

    def notify(self, event: ClusterEvent) -> bool:
        """Post a notification for an event.

        Args:
            event: The event to report

        Returns:
            True if the webhook accepted the message
        """
        if self.client is None:
            logger.warning("WEBHOOK_URL not set - notification skipped")
            return False

        body = format_event_message(event, self.console_base_url)
        try:
            response = self.client.send_dict(body)
        except Exception as e:
            logger.error(f"Unable to reach the webhook: {e}")
            return False

        if not 200 <= response.status_code < 300:
            logger.error(
                f"Webhook rejected notification: HTTP {response.status_code} {response.body}"
            )
            return False

        logger.info(f"Sent notification for {event.namespace}/{event.name}: {event.reason}")
        return True
