"""Event model for livemark observability.

Defines event types for the document store and the reload pipeline.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass
from typing import Literal


# ---------------------------------------------------------------------------
# Document store events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DocumentRendered:
    """A document was read and rendered into the store.

    Attributes:
        key: Root-relative document key.
        path: Absolute path that was read.
        reason: Why the document was rendered.
        render_ms: Time spent reading and rendering in milliseconds.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    key: str
    path: str
    reason: Literal["initial", "refresh", "admit"]
    render_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class DocumentFailed:
    """A refresh or admission failed; the stale artifact was kept.

    Attributes:
        key: Document key (may be empty when the key could not be derived).
        path: Path the operation was attempted on.
        operation: Which step failed: a store refresh or admission, or
            ``"process"`` for an unexpected error while handling a raw event.
        error: String form of the underlying error.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    key: str
    path: str
    operation: Literal["refresh", "admit", "process"]
    error: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Reload pipeline events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ReloadPublished:
    """A reload message was fanned out to connected viewers.

    Attributes:
        trigger_path: File whose change caused the reload.
        clients_notified: Subscribers that accepted the message.
        dropped: Subscribers whose buffer was full.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    trigger_path: str
    clients_notified: int
    dropped: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class EventIgnored:
    """A raw filesystem event classified to no operation.

    Attributes:
        kind: Raw event kind name (e.g. ``"REMOVE"``).
        path: First path reported with the event.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    kind: str
    path: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type LivemarkEvent = DocumentRendered | DocumentFailed | ReloadPublished | EventIgnored


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
