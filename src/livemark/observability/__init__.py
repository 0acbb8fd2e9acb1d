"""Observability — structured events for the document pipeline.

Aggregates events from:
- **Store**: Document renders and failed refreshes/admissions
- **Pump**: Published reloads and ignored raw events

All events are frozen dataclasses with nanosecond timestamps, safe for
concurrent production from the watcher thread and the event loop.

Quick Start:
    >>> from livemark.observability import StackCollector, EventLog
    >>> log = EventLog()
    >>> collector = StackCollector(log)
    >>> # Pass collector to DocumentStore.initialize() and WatchPump

"""

from livemark.observability.collector import StackCollector
from livemark.observability.events import (
    DocumentFailed,
    DocumentRendered,
    EventIgnored,
    LivemarkEvent,
    ReloadPublished,
    now_ns,
)
from livemark.observability.log import EventLog

__all__ = [
    "DocumentFailed",
    "DocumentRendered",
    "EventIgnored",
    "EventLog",
    "LivemarkEvent",
    "ReloadPublished",
    "StackCollector",
    "now_ns",
]
