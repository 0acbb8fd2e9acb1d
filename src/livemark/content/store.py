"""Tracked-document store — the authoritative rendered view of the documents.

Maps a document key (root-relative, canonical path) to the document's last
rendered HTML and the modification time it was rendered from.  The store owns
key derivation, refresh, and the admission policy for new documents.

Two modes:

- **Fixed**: the key set is closed after ``initialize()``.
- **Dynamic**: new documents under the root are admitted as they appear.

In neither mode is a key ever removed.  Editors routinely delete or rename a
file away for a moment while saving; dropping the document would surface as a
"not found" to any viewer that re-fetches in that window.  A document deleted
for good therefore stays servable from its last rendered artifact.

Thread Safety:
    One ``threading.Lock`` guards the whole mapping.  Each operation holds it
    for its complete read-or-mutate step, so a reader never observes a
    timestamp paired with an artifact from a different read.

"""

from __future__ import annotations

import os
import sys
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from livemark._errors import ConfigError, DocumentError
from livemark.content.classifier import is_document_file

if TYPE_CHECKING:
    from livemark._types import Artifact, DocumentKey, RenderFunc, RenderReason
    from livemark.observability.collector import StackCollector


@dataclass(frozen=True, slots=True)
class TrackedDocument:
    """One tracked document.

    Attributes:
        path: Canonical absolute path the document is read from.
        modified_ns: ``st_mtime_ns`` of the content that was rendered.
        html: Rendered artifact for that content.

    """

    path: Path
    modified_ns: int
    html: Artifact


def scan_documents(directory: Path) -> list[Path]:
    """Return every document file beneath ``directory``, sorted.

    Symlinked directories are not descended into, so link cycles cannot
    recurse forever.  Symlinked files are included.

    Raises:
        OSError: If the directory cannot be listed.

    """
    found: list[Path] = []
    _scan_into(directory, found)
    found.sort()
    return found


def _scan_into(directory: Path, found: list[Path]) -> None:
    with os.scandir(directory) as entries:
        for entry in entries:
            path = Path(entry.path)
            if entry.is_dir(follow_symlinks=False):
                _scan_into(path, found)
            elif entry.is_file() and is_document_file(path):
                found.append(path)


class DocumentStore:
    """In-memory map from document key to rendered document.

    Create with :meth:`initialize`.  The watch pump is the only writer; request
    handlers call :meth:`current` (or :meth:`refresh` + :meth:`get`) to serve
    the latest on-disk content without waiting for a push.

    Args:
        root: Canonical root directory.
        render: Text -> HTML function applied to every document.
        dynamic: Whether new documents may be admitted.
        collector: Optional observability collector.

    """

    __slots__ = ("_collector", "_documents", "_dynamic", "_lock", "_render", "_root")

    def __init__(
        self,
        root: Path,
        render: RenderFunc,
        *,
        dynamic: bool = False,
        collector: StackCollector | None = None,
    ) -> None:
        self._root = root
        self._render = render
        self._dynamic = dynamic
        self._collector = collector
        self._documents: dict[DocumentKey, TrackedDocument] = {}
        self._lock = threading.Lock()

    @classmethod
    def initialize(
        cls,
        root: Path,
        initial_paths: list[Path] | tuple[Path, ...] = (),
        *,
        dynamic: bool,
        render: RenderFunc,
        collector: StackCollector | None = None,
    ) -> DocumentStore:
        """Build a store and load every initial document.

        Raises:
            ConfigError: If the root directory cannot be canonicalized.
            OSError: If any initial document cannot be stat'ed or read.
            UnicodeDecodeError: If an initial document is not valid UTF-8.

        """
        try:
            canonical_root = root.resolve(strict=True)
        except OSError as exc:
            msg = f"Cannot resolve root directory {root}: {exc}"
            raise ConfigError(msg) from exc

        store = cls(canonical_root, render, dynamic=dynamic, collector=collector)
        for path in initial_paths:
            key = store.key_for(path)
            store._documents[key] = store._load(key, _canonical(path), "initial")
        return store

    # ----- Properties -----

    @property
    def root(self) -> Path:
        """Canonical root directory; immutable for the life of the store."""
        return self._root

    @property
    def dynamic(self) -> bool:
        """Whether new documents are admitted (directory mode)."""
        return self._dynamic

    # ----- Keys -----

    def key_for(self, path: Path) -> DocumentKey:
        """Derive the document key for a filesystem path.

        Canonicalizes the path (falling back to the absolute raw path when the
        file has vanished) and strips the root prefix.  Paths outside the root
        keep their full form.

        """
        canonical = _canonical(path)
        try:
            return canonical.relative_to(self._root).as_posix()
        except ValueError:
            return canonical.as_posix()

    def list_keys(self) -> list[DocumentKey]:
        """All tracked keys in lexicographic order."""
        with self._lock:
            return sorted(self._documents)

    def first_key(self) -> DocumentKey | None:
        """The lexicographically smallest key, or None when nothing is tracked."""
        with self._lock:
            return min(self._documents, default=None)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._documents

    def __len__(self) -> int:
        with self._lock:
            return len(self._documents)

    # ----- Reads -----

    def get(self, key: DocumentKey) -> Artifact | None:
        """Current artifact for ``key``, or None when not tracked."""
        with self._lock:
            doc = self._documents.get(key)
        return doc.html if doc is not None else None

    def document(self, key: DocumentKey) -> TrackedDocument | None:
        """The tracked value for ``key`` (path, timestamp and artifact together)."""
        with self._lock:
            return self._documents.get(key)

    def current(self, key: DocumentKey) -> Artifact | None:
        """Refresh ``key`` and return its artifact, serving stale content on failure.

        Intended for request handlers: a failed refresh is logged and the
        previously rendered artifact is returned instead of failing the request.

        """
        try:
            self.refresh(key)
        except DocumentError as exc:
            print(f"  Serving stale {key}: {exc}", file=sys.stderr)
        return self.get(key)

    # ----- Mutations -----

    def refresh(self, key: DocumentKey) -> bool:
        """Re-render ``key`` if its file is strictly newer than the stored copy.

        Untracked keys, and files whose timestamp is unchanged or older, are
        left alone.  Safe to call speculatively before every read.

        Returns:
            True when the stored document was replaced.

        Raises:
            DocumentError: If the file cannot be stat'ed or read.  The stale
                document is kept.

        """
        with self._lock:
            tracked = self._documents.get(key)
            if tracked is None:
                return False

            try:
                modified_ns = tracked.path.stat().st_mtime_ns
            except OSError as exc:
                self._record_failure(key, tracked.path, "refresh", exc)
                msg = f"Cannot stat {tracked.path}: {exc}"
                raise DocumentError(msg, tracked.path) from exc

            if modified_ns <= tracked.modified_ns:
                return False

            try:
                self._documents[key] = self._load(key, tracked.path, "refresh")
            except (OSError, UnicodeDecodeError) as exc:
                self._record_failure(key, tracked.path, "refresh", exc)
                msg = f"Cannot read {tracked.path}: {exc}"
                raise DocumentError(msg, tracked.path) from exc
            return True

    def admit(self, path: Path) -> bool:
        """Start tracking a new document (dynamic mode only).

        Already-tracked documents are left alone, so duplicate create events
        are harmless.  In fixed mode this returns without doing anything.

        Returns:
            True when a new document was inserted.

        Raises:
            DocumentError: If the file cannot be stat'ed or read.

        """
        if not self._dynamic:
            return False

        key = self.key_for(path)
        canonical = _canonical(path)
        with self._lock:
            if key in self._documents:
                return False
            try:
                self._documents[key] = self._load(key, canonical, "admit")
            except (OSError, UnicodeDecodeError) as exc:
                self._record_failure(key, canonical, "admit", exc)
                msg = f"Cannot read {canonical}: {exc}"
                raise DocumentError(msg, canonical) from exc
            return True

    # ----- Internals -----

    def _load(self, key: DocumentKey, path: Path, reason: RenderReason) -> TrackedDocument:
        """Stat, read and render ``path``.  Callers hold the lock (or own the store)."""
        t0 = time.perf_counter()
        modified_ns = path.stat().st_mtime_ns
        text = path.read_text(encoding="utf-8")
        html = self._render(text)
        if self._collector is not None:
            self._collector.record_render(
                key,
                str(path),
                reason=reason,
                render_ms=(time.perf_counter() - t0) * 1000,
            )
        return TrackedDocument(path=path, modified_ns=modified_ns, html=html)

    def _record_failure(
        self, key: DocumentKey, path: Path, operation: str, exc: BaseException,
    ) -> None:
        if self._collector is not None:
            self._collector.record_failure(
                str(path), key=key, operation=operation, error=str(exc),
            )


def _canonical(path: Path) -> Path:
    """Resolve symlinks and ``..``; fall back to the absolute path if it vanished."""
    try:
        return path.resolve(strict=True)
    except OSError:
        return Path(os.path.abspath(path))
