"""Livemark application — the running core wired together.

``LiveDocuments`` owns one store, one broadcaster, one watcher and one pump.
Serving layers embed it: they read documents through ``store`` and hand each
viewer a ``broadcaster.subscribe()`` channel.

Quick start::

    config = LivemarkConfig.from_target("docs/")
    async with LiveDocuments(config) as live:
        html = live.store.current(live.store.first_key())
        with live.broadcaster.subscribe() as sub:
            async for message in sub:
                ...

``watch()`` and ``list_documents()`` are the CLI entry points.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from livemark._errors import ConfigError, LivemarkError, ReactiveError
from livemark.config import LivemarkConfig, resolve_target
from livemark.config_loader import load_config
from livemark.content.store import DocumentStore, scan_documents
from livemark.content.watcher import DocumentWatcher
from livemark.observability.collector import StackCollector
from livemark.observability.events import DocumentFailed
from livemark.reactive.broadcaster import Broadcaster
from livemark.reactive.pump import WatchPump

if TYPE_CHECKING:
    from types import TracebackType

    from livemark._types import RenderFunc
    from livemark.observability.log import EventLog

__all__ = ["LiveDocuments", "list_documents", "resolve_target", "watch"]


def _default_render() -> RenderFunc:
    from livemark.content.render import get_markdown, render_markdown

    # Build the processor now so a broken renderer fails at startup.
    get_markdown()
    return render_markdown


class LiveDocuments:
    """A store kept in sync with disk, plus the broadcaster viewers listen on.

    Args:
        config: Frozen configuration.
        render: Text -> HTML function (defaults to Patitas markdown).
        collector: Optional observability collector shared by store and pump.

    """

    def __init__(
        self,
        config: LivemarkConfig,
        *,
        render: RenderFunc | None = None,
        collector: StackCollector | None = None,
    ) -> None:
        self._config = config
        self._render = render if render is not None else _default_render()
        self._collector = collector
        self._store: DocumentStore | None = None
        self._broadcaster = Broadcaster(buffer_size=config.subscriber_buffer)
        self._watcher: DocumentWatcher | None = None
        self._pump: WatchPump | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def config(self) -> LivemarkConfig:
        return self._config

    @property
    def broadcaster(self) -> Broadcaster:
        return self._broadcaster

    @property
    def store(self) -> DocumentStore:
        """The document store.  Available after ``start()``."""
        if self._store is None:
            msg = "LiveDocuments.store accessed before start()"
            raise RuntimeError(msg)
        return self._store

    @property
    def pump(self) -> WatchPump | None:
        return self._pump

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Load every initial document, then start watching.

        Raises:
            ConfigError: If the root or an initial document cannot be read.
            WatchError: If the filesystem watch cannot be started.
            ReactiveError: If this instance was already stopped.

        """
        if self.is_running:
            return
        if self._broadcaster.closed:
            msg = "LiveDocuments cannot be restarted after stop()"
            raise ReactiveError(msg)

        config = self._config
        files = list(config.files)
        if config.dynamic and not files:
            try:
                files = scan_documents(config.root)
            except OSError as exc:
                msg = f"Cannot scan {config.root}: {exc}"
                raise ConfigError(msg) from exc

        try:
            self._store = DocumentStore.initialize(
                config.root,
                files,
                dynamic=config.dynamic,
                render=self._render,
                collector=self._collector,
            )
        except (OSError, UnicodeDecodeError) as exc:
            msg = f"Failed to load documents from {config.root}: {exc}"
            raise ConfigError(msg) from exc

        self._watcher = DocumentWatcher(
            self._store.root,
            queue_size=config.queue_size,
            debounce=config.debounce,
            step=config.step,
            force_polling=config.force_polling,
        )
        self._watcher.start()

        self._pump = WatchPump(
            self._store,
            self._broadcaster,
            collector=self._collector,
            quiet=config.quiet,
        )
        self._task = asyncio.create_task(
            self._pump.run(self._watcher.events()), name="livemark-pump",
        )

    async def stop(self) -> None:
        """Stop watching, drain the pump, and close every subscription."""
        if self._watcher is not None:
            self._watcher.stop()
        try:
            if self._task is not None:
                await self._task
        finally:
            self._task = None
            self._broadcaster.close()

    async def wait(self) -> None:
        """Block until the pump ends (watch failure or ``stop()``)."""
        if self._task is not None:
            await self._task

    async def __aenter__(self) -> LiveDocuments:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()


# ---------------------------------------------------------------------------
# CLI entry points
# ---------------------------------------------------------------------------


def _config_for(target: str | Path, **overrides: object) -> LivemarkConfig:
    root, files, dynamic = resolve_target(Path(target))
    return load_config(root, files=tuple(files), dynamic=dynamic, **overrides)


def list_documents(target: str | Path = ".") -> list[str]:
    """Load the documents under ``target`` and return their keys in order."""
    config = _config_for(target)
    try:
        store = DocumentStore.initialize(
            config.root,
            list(config.files),
            dynamic=config.dynamic,
            render=lambda text: text,
        )
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Failed to load documents from {config.root}: {exc}"
        raise ConfigError(msg) from exc
    return store.list_keys()


def watch(target: str | Path = ".", **overrides: object) -> None:
    """Watch ``target`` and report every reload until interrupted."""
    try:
        config = _config_for(target, **overrides)
    except LivemarkError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    collector = StackCollector()

    async def _run() -> None:
        live = LiveDocuments(config, collector=collector)
        await live.start()
        store = live.store
        mode = "directory" if config.dynamic else "file"
        print(f"  Watching {config.root} ({mode} mode)", file=sys.stderr)
        print(f"  {len(store)} documents tracked", file=sys.stderr)
        try:
            await live.wait()
        finally:
            await live.stop()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        print("\n  Stopped.", file=sys.stderr)
    except LivemarkError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    _print_watch_summary(collector.log)


def _print_watch_summary(log: EventLog) -> None:
    """Print render, reload and failure totals for the run to stderr."""
    totals = log.totals()
    renders = totals.get("DocumentRendered", 0)
    reloads = totals.get("ReloadPublished", 0)
    failures = totals.get("DocumentFailed", 0)

    lines = [
        f"  Rendered {renders} document{'s' if renders != 1 else ''}",
        f"  Sent {reloads} reload{'s' if reloads != 1 else ''}",
    ]
    if failures:
        lines.append(f"  {failures} failure{'s' if failures != 1 else ''}, most recent first:")
        for event in log.query(event_type=DocumentFailed, limit=5):
            lines.append(f"    {event.key or event.path} ({event.operation}): {event.error}")  # type: ignore[union-attr]

    print("\n".join(lines), file=sys.stderr)
