"""Collector — the recording façade used by the store and the pump.

Turns keyword-style calls into frozen events appended to an ``EventLog``.

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.

"""

from __future__ import annotations

from livemark.observability.events import (
    DocumentFailed,
    DocumentRendered,
    EventIgnored,
    ReloadPublished,
    now_ns,
)
from livemark.observability.log import EventLog


class StackCollector:
    """Unified event collector for the document pipeline.

    Args:
        log: The EventLog to store events in.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    # ----- Document store events -----

    def record_render(
        self,
        key: str,
        path: str,
        *,
        reason: str = "refresh",
        render_ms: float = 0.0,
    ) -> None:
        """Record a document (re-)render."""
        self._log.append(
            DocumentRendered(
                key=key,
                path=path,
                reason=reason,  # type: ignore[arg-type]
                render_ms=render_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_failure(
        self,
        path: str,
        *,
        key: str = "",
        operation: str = "refresh",
        error: str = "",
    ) -> None:
        """Record a failed refresh or admission."""
        self._log.append(
            DocumentFailed(
                key=key,
                path=path,
                operation=operation,  # type: ignore[arg-type]
                error=error,
                timestamp_ns=now_ns(),
            )
        )

    # ----- Reload pipeline events -----

    def record_reload(
        self,
        trigger_path: str,
        *,
        clients_notified: int = 0,
        dropped: int = 0,
    ) -> None:
        """Record a published reload."""
        self._log.append(
            ReloadPublished(
                trigger_path=trigger_path,
                clients_notified=clients_notified,
                dropped=dropped,
                timestamp_ns=now_ns(),
            )
        )

    def record_ignored(self, kind: str, path: str) -> None:
        """Record a raw event that produced no operation."""
        self._log.append(EventIgnored(kind=kind, path=path, timestamp_ns=now_ns()))
