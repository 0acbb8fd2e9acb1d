"""File watcher — feeds raw filesystem events to the watch pump.

Runs ``watchfiles`` in a background thread and bridges its changes onto a
bounded ``asyncio.Queue`` owned by the event loop.  Nothing but normalization
happens on the watcher thread: classification, store mutation and
broadcasting all run on the consumer side.

Each watchfiles change is normalized to a ``RawEvent``:

- ``Change.added``    -> ``EventKind.CREATE``
- ``Change.modified`` -> ``EventKind.MODIFY_DATA``
- ``Change.deleted``  -> ``EventKind.REMOVE``

watchfiles resolves renames itself before they reach us: a rename with both
paths becomes ``deleted(old)`` + ``added(new)``, and a lone rename half is
reported as ``added`` when the path exists and ``deleted`` when it does not.
The classifier's rename branches serve event sources that report renames
directly.

When the queue is full the watcher thread blocks until the pump catches up.
watchfiles keeps buffering in the meantime, so bursts are delayed rather than
dropped, up to whatever the OS backend itself retains.
"""

from __future__ import annotations

import asyncio
import sys
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from watchfiles import Change

from livemark._errors import WatchError
from livemark.content.classifier import EventKind, RawEvent

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable


# Mapping from watchfiles Change enum to our raw event kinds.
_CHANGE_KIND_MAP: dict[Change, EventKind] = {
    Change.added: EventKind.CREATE,
    Change.modified: EventKind.MODIFY_DATA,
    Change.deleted: EventKind.REMOVE,
}


def normalize_changes(raw_changes: Iterable[tuple[Change, str]]) -> list[RawEvent]:
    """Convert one watchfiles batch into raw events.

    watchfiles delivers a batch as a set, so the order inside it is not the
    OS order.  Events are sorted by path, deletions first, to keep processing
    deterministic.
    """
    ordered = sorted(raw_changes, key=lambda change: (change[1], change[0] != Change.deleted))
    return [
        RawEvent(_CHANGE_KIND_MAP.get(change_type, EventKind.MODIFY_DATA), (Path(path_str),))
        for change_type, path_str in ordered
    ]


class DocumentWatcher:
    """Watches a directory tree and yields ``RawEvent`` objects.

    Args:
        root: Directory to watch recursively.
        queue_size: Capacity of the hand-off queue.
        debounce: watchfiles debounce window in milliseconds.
        step: watchfiles polling step in milliseconds.
        force_polling: Force the polling backend (None = let watchfiles decide).

    """

    def __init__(
        self,
        root: Path,
        *,
        queue_size: int = 100,
        debounce: int = 50,
        step: int = 50,
        force_polling: bool | None = None,
    ) -> None:
        self._root = root
        self._debounce = debounce
        self._step = step
        self._force_polling = force_polling
        self._queue: asyncio.Queue[RawEvent] = asyncio.Queue(maxsize=queue_size)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._error: BaseException | None = None

    @property
    def is_running(self) -> bool:
        """Whether the watcher background thread is active."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def root(self) -> Path:
        return self._root

    def start(self) -> None:
        """Start watching in a background thread.

        Must be called from a running event loop; events are delivered to
        that loop.

        Raises:
            WatchError: If the root is not a directory or no loop is running.

        """
        if self.is_running:
            return

        if not self._root.is_dir():
            msg = f"Cannot watch {self._root}: not a directory"
            raise WatchError(msg)

        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            msg = "DocumentWatcher.start() requires a running event loop"
            raise WatchError(msg) from exc

        self._error = None
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._watch_loop,
            name="livemark-watcher",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal the watcher to stop and wait for the thread to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None

    async def events(self) -> AsyncIterator[RawEvent]:
        """Async iterator that yields events in delivery order.

        Ends once the watcher is stopped and the queue is drained.

        Raises:
            WatchError: If the watch thread died with an error.

        """
        while self.is_running or not self._queue.empty():
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=0.5)
            except TimeoutError:
                if not self.is_running:
                    break
                continue
            yield event

        if self._error is not None:
            msg = f"Watching {self._root} failed: {self._error}"
            raise WatchError(msg) from self._error

    def _watch_loop(self) -> None:
        """Background thread: run watchfiles and push events to the queue."""
        from watchfiles import watch

        try:
            for raw_changes in watch(
                self._root,
                stop_event=self._stop_event,
                debounce=self._debounce,
                step=self._step,
                force_polling=self._force_polling,
                raise_interrupt=False,
            ):
                for event in normalize_changes(raw_changes):
                    if not self._hand_off(event):
                        return
        except Exception as exc:
            self._error = exc
            print(f"  Watcher stopped: {exc}", file=sys.stderr)

    def _hand_off(self, event: RawEvent) -> bool:
        """Block until the loop accepts ``event``.  False once stopping."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return False

        future = asyncio.run_coroutine_threadsafe(self._queue.put(event), loop)
        while True:
            try:
                future.result(timeout=0.5)
                return True
            except TimeoutError:
                if self._stop_event.is_set() or loop.is_closed():
                    future.cancel()
                    return False
