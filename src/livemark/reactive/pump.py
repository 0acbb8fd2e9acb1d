"""Watch pump — the single writer that turns raw events into store updates.

For every raw event, in delivery order:

1. Classify it (``livemark.content.classifier``).
2. Apply the resulting operation to the store: refresh a tracked document,
   or admit a new one in dynamic mode.
3. Publish one reload if, and only if, the store changed (or an asset did).

Step 2 completes before step 3 starts, so a viewer that reacts to the reload
by re-fetching always sees the updated artifact.

A failure on one event never stops the pump.  The document keeps its last
good artifact, the failure is logged and recorded, and no reload is sent for
that event.
"""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING

from livemark._errors import DocumentError
from livemark.content.classifier import AssetChanged, ContentChanged, Created, classify
from livemark.reactive.broadcaster import RELOAD

if TYPE_CHECKING:
    from collections.abc import AsyncIterable
    from pathlib import Path

    from livemark.content.classifier import RawEvent
    from livemark.content.store import DocumentStore
    from livemark.observability.collector import StackCollector
    from livemark.reactive.broadcaster import Broadcaster


class WatchPump:
    """Consumes raw events, mutates the store, and triggers broadcasts.

    Args:
        store: The document store; the pump is its only writer.
        broadcaster: Hub that fans reloads out to viewers.
        collector: Optional observability collector.
        quiet: Suppress progress lines on stderr.

    """

    def __init__(
        self,
        store: DocumentStore,
        broadcaster: Broadcaster,
        *,
        collector: StackCollector | None = None,
        quiet: bool = False,
    ) -> None:
        self._store = store
        self._broadcaster = broadcaster
        self._collector = collector
        self._quiet = quiet
        self.processed = 0
        self.published = 0
        self.failed = 0

    async def run(self, events: AsyncIterable[RawEvent]) -> None:
        """Process events until the source is exhausted."""
        async for event in events:
            try:
                await self.process(event)
            except Exception as exc:
                self.failed += 1
                print(f"  Event error: {type(exc).__name__}: {exc}", file=sys.stderr)
                self._record_unexpected(event, exc)

    def _record_unexpected(self, event: RawEvent, exc: Exception) -> None:
        if self._collector is None:
            return
        if event.paths:
            path, key = str(event.paths[0]), self._store.key_for(event.paths[0])
        else:
            path, key = "", ""
        self._collector.record_failure(
            path, key=key, operation="process", error=str(exc),
        )

    async def process(self, event: RawEvent) -> bool:
        """Handle one raw event.

        Returns:
            True when a reload was published.

        """
        self.processed += 1
        operation = classify(event)

        if isinstance(operation, (ContentChanged, Created)):
            changed = await asyncio.to_thread(self._apply, operation.path)
            if not changed:
                return False
            return self._publish(operation.path)

        if isinstance(operation, AssetChanged):
            return self._publish(operation.path)

        if self._collector is not None:
            path = str(event.paths[0]) if event.paths else ""
            self._collector.record_ignored(event.kind.name, path)
        return False

    def _apply(self, path: Path) -> bool:
        """Refresh the document at ``path`` if tracked, else try to admit it."""
        store = self._store
        key = store.key_for(path)
        try:
            if key in store:
                return store.refresh(key)
            return store.admit(path)
        except DocumentError as exc:
            self.failed += 1
            print(f"  Skipped {key}: {exc}", file=sys.stderr)
            return False

    def _publish(self, trigger: Path) -> bool:
        dropped_before = self._broadcaster.dropped_total
        notified = self._broadcaster.publish(RELOAD)
        dropped = self._broadcaster.dropped_total - dropped_before
        self.published += 1

        if self._collector is not None:
            self._collector.record_reload(
                str(trigger), clients_notified=notified, dropped=dropped,
            )

        if not self._quiet:
            clients = "client" if notified == 1 else "clients"
            print(f"  {trigger.name} changed, {notified} {clients} notified", file=sys.stderr)
        return True
