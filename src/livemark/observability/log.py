"""Event log — the bounded history of one livemark run.

Keeps the most recent ``LivemarkEvent`` objects for inspection, plus lifetime
totals per event type that survive eviction.  Queries filter by document key,
failed operation, path and time, so a serving layer or the CLI can answer
"what happened to ``guide/intro.md``?" without scanning the whole buffer.

Thread Safety:
    All methods are protected by a ``threading.Lock``.  The pump task and
    store calls running on worker threads record concurrently.

"""

import threading
from collections import Counter, deque

from livemark.observability.events import LivemarkEvent


class EventLog:
    """Ring buffer of pipeline events with per-type totals.

    Args:
        max_events: Events retained for queries; older ones are evicted but
            still counted in :meth:`totals`.

    """

    __slots__ = ("_events", "_lock", "_totals")

    def __init__(self, max_events: int = 10_000) -> None:
        self._events: deque[LivemarkEvent] = deque(maxlen=max_events)
        self._totals: Counter[str] = Counter()
        self._lock = threading.Lock()

    def append(self, event: LivemarkEvent) -> None:
        with self._lock:
            self._events.append(event)
            self._totals[type(event).__name__] += 1

    def query(
        self,
        *,
        event_type: type | None = None,
        key: str | None = None,
        operation: str | None = None,
        path: str | None = None,
        since_ns: int = 0,
        limit: int = 100,
    ) -> list[LivemarkEvent]:
        """Retained events matching every given filter, most recent first.

        Args:
            event_type: Only events of this class.
            key: Only events about this document key (renders and failures).
            operation: Only failures of this store operation
                (``"refresh"``, ``"admit"`` or ``"process"``).
            path: Only events whose path or trigger path contains this text.
            since_ns: Only events at or after this monotonic timestamp.
            limit: Maximum number of events returned; ``0`` returns none.

        """
        if limit <= 0:
            return []

        with self._lock:
            snapshot = list(self._events)

        results: list[LivemarkEvent] = []
        for event in reversed(snapshot):
            if event_type is not None and not isinstance(event, event_type):
                continue
            if key is not None and getattr(event, "key", None) != key:
                continue
            if operation is not None and getattr(event, "operation", None) != operation:
                continue
            if since_ns and event.timestamp_ns < since_ns:
                continue
            if path is not None:
                event_path = getattr(event, "path", None) or getattr(event, "trigger_path", "")
                if path not in event_path:
                    continue
            results.append(event)
            if len(results) == limit:
                break
        return results

    def totals(self) -> dict[str, int]:
        """Events recorded per type name since the log was created."""
        with self._lock:
            return dict(self._totals)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
