"""Event watcher - FastAPI application.

Watches the cluster's Warning events in a background thread and forwards
new ones to a chat webhook. The HTTP side only answers health checks.
"""

import logging
import threading
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI
from kubernetes.config import ConfigException

from .config import Settings, get_settings
from .dedup_cache import LastNotifiedCache
from .feed import KubernetesEventFeed
from .notifier import WebhookNotifier
from .watcher import WatchLoop

# Configure logging
settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

SHUTDOWN_JOIN_SECONDS = 5.0

watch_loop: Optional[WatchLoop] = None


def build_watch_loop(settings: Settings) -> WatchLoop:
    """Wire the feed, cache and notifier together.

    Raises:
        ConfigException: Cluster credentials could not be loaded
    """
    feed = KubernetesEventFeed.from_settings(settings)
    cache = LastNotifiedCache(ttl_seconds=settings.dedup_ttl_seconds)
    notifier = WebhookNotifier(
        webhook_url=settings.webhook_url,
        console_base_url=settings.console_base_url,
        timeout_seconds=settings.webhook_timeout_seconds,
    )
    return WatchLoop(
        feed,
        cache,
        notifier,
        backoff_seconds=settings.reconnect_backoff_seconds,
        max_backoff_seconds=settings.reconnect_backoff_max_seconds,
    )


# =============================================================================
# App Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global watch_loop

    # Startup
    logger.info("Starting event watcher...")
    try:
        watch_loop = build_watch_loop(settings)
    except ConfigException as e:
        logger.critical(f"Unable to load cluster credentials: {e}")
        raise

    if not settings.webhook_url:
        logger.warning("WEBHOOK_URL not set - notifications disabled")

    stop_event = threading.Event()
    watch_thread = threading.Thread(
        target=watch_loop.run_forever,
        args=(stop_event,),
        name="event-watch",
        daemon=True,
    )
    watch_thread.start()
    logger.info("Watch loop started")

    yield

    # Shutdown
    stop_event.set()
    watch_loop.feed.stop()
    watch_thread.join(timeout=SHUTDOWN_JOIN_SECONDS)
    if watch_thread.is_alive():
        logger.warning("Watch loop still blocked on the feed, leaving it behind")
    logger.info("Event watcher stopped")


app = FastAPI(
    title="Event Watcher",
    description="Forwards new cluster Warning events to a chat webhook",
    version="0.1.0",
    lifespan=lifespan,
)


# =============================================================================
# API Routes
# =============================================================================


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    state = watch_loop.state.value if watch_loop else "not_started"
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "watch_state": state,
    }


def run() -> None:
    """Serve the app on the configured port."""
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        lifespan="on",
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
