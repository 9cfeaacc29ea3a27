"""Reduce cluster events to a short identity used for deduplication.

Two events describing the same underlying condition must reduce to the
same fingerprint:

- the workload prefix drops generated name suffixes, so restarts of the
  same deployment share an identity
- probe failure messages are cut before the pod IP, which changes with
  every reschedule
"""

import re

from .events import ClusterEvent

HEALTH_CHECK_PREFIXES = ("Readiness", "Liveness")
HEALTH_CHECK_MARKER = ": Get http://10."

# Same marker for any IPv4 target, quoted or not (newer kubelets quote the URL)
_IP_TARGET_MARKER = re.compile(r': Get "?https?://\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}')

# Alphabet used by Kubernetes for generated name suffixes (no vowels)
_GENERATED_SEGMENT = re.compile(r"^[bcdfghjklmnpqrstvwxz2456789]{5,10}$")
MAX_GENERATED_SEGMENTS = 2


def _is_generated(segment: str) -> bool:
    """Check if a name segment looks like a ReplicaSet hash or pod suffix."""
    return any(c.isdigit() for c in segment) or bool(_GENERATED_SEGMENT.match(segment))


def workload_prefix(name: str) -> str:
    """Approximate the workload name from an instance name.

    ``payments-api-7d8f9c-xk2pq`` -> ``payments-api``. At most two trailing
    generated segments are dropped and the first segment is always kept,
    so two workloads whose names only differ in such a segment collide.
    """
    segments = name.split("-")
    dropped = 0
    while (
        len(segments) > 1
        and dropped < MAX_GENERATED_SEGMENTS
        and _is_generated(segments[-1])
    ):
        segments.pop()
        dropped += 1
    return "-".join(segments)


def normalize_message(message: str) -> str:
    """Strip the volatile target address from probe failure messages."""
    if not message.startswith(HEALTH_CHECK_PREFIXES):
        return message

    if HEALTH_CHECK_MARKER in message:
        prefix = message.split(HEALTH_CHECK_MARKER)[0]
    else:
        prefix = _IP_TARGET_MARKER.split(message, maxsplit=1)[0]
    return prefix.replace(" ", "_")


def fingerprint(event: ClusterEvent) -> str:
    """Build ``{namespace}_{workload}_{message}`` for an event."""
    components = [
        event.namespace,
        workload_prefix(event.name),
        normalize_message(event.message),
    ]
    return "_".join(components)
