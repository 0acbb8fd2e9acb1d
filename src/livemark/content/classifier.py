"""Event classifier — raw filesystem notifications to store operations.

Editors rarely save atomically.  Some rename the live file to a backup and
write a new one in its place; others write a temp file and rename it over the
original; and platforms disagree on how a rename is reported.  The classifier
folds all of that into three operations the store understands:

- ``Created`` / ``ContentChanged``: a document may have new content.
- ``AssetChanged``: an image referenced by rendered pages changed.
- ``IGNORE``: nothing to do.

Removals never un-track a document.  A document that vanishes for the length
of a save and reappears must stay servable the whole time.

Rename handling is best-effort on platforms that report the two halves of a
rename as independent, uncorrelated events (``RenameMode.ANY``): the reported
path is taken as the new location when it exists and ignored when it does not.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path

DOCUMENT_EXTENSIONS: frozenset[str] = frozenset({".md", ".markdown"})

ASSET_EXTENSIONS: frozenset[str] = frozenset({
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".bmp", ".ico",
})


class EventKind(enum.Enum):
    """Kind of raw filesystem notification."""

    CREATE = "create"
    MODIFY_DATA = "modify_data"
    MODIFY_METADATA = "modify_metadata"
    RENAME = "rename"
    REMOVE = "remove"


class RenameMode(enum.Enum):
    """Which side(s) of a rename a ``RENAME`` event reports."""

    BOTH = "both"  # (old, new) in a single event
    FROM = "from"  # old location only
    TO = "to"  # new location only
    ANY = "any"  # one path, side unknown


@dataclass(frozen=True, slots=True)
class RawEvent:
    """One normalized filesystem notification.

    Attributes:
        kind: What happened.
        paths: Paths reported with the event.  Non-rename events carry one
            path; ``RenameMode.BOTH`` carries ``(old, new)``.
        rename: Rename side, only set for ``EventKind.RENAME``.

    """

    kind: EventKind
    paths: tuple[Path, ...]
    rename: RenameMode | None = None

    @classmethod
    def create(cls, path: Path) -> RawEvent:
        return cls(EventKind.CREATE, (path,))

    @classmethod
    def modify(cls, path: Path) -> RawEvent:
        return cls(EventKind.MODIFY_DATA, (path,))

    @classmethod
    def remove(cls, path: Path) -> RawEvent:
        return cls(EventKind.REMOVE, (path,))

    @classmethod
    def renamed(cls, mode: RenameMode, *paths: Path) -> RawEvent:
        return cls(EventKind.RENAME, tuple(paths), mode)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ContentChanged:
    """A document's content may have changed on disk."""

    path: Path


@dataclass(frozen=True, slots=True)
class Created:
    """A document appeared on disk."""

    path: Path


@dataclass(frozen=True, slots=True)
class AssetChanged:
    """An auxiliary asset changed; viewers should reload, the store is untouched."""

    path: Path


@dataclass(frozen=True, slots=True)
class Ignore:
    """No operation."""


IGNORE = Ignore()

type Operation = ContentChanged | Created | AssetChanged | Ignore


# ---------------------------------------------------------------------------
# Name filters
# ---------------------------------------------------------------------------


def is_document_file(path: Path | str) -> bool:
    """Whether ``path`` names a markdown document (case-insensitive suffix)."""
    return Path(path).suffix.lower() in DOCUMENT_EXTENSIONS


def is_asset_file(path: Path | str) -> bool:
    """Whether ``path`` names an image asset (case-insensitive suffix)."""
    return Path(path).suffix.lower() in ASSET_EXTENSIONS


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def classify(event: RawEvent) -> Operation:
    """Classify one raw event into at most one store operation."""
    if not event.paths:
        return IGNORE

    if event.kind is EventKind.RENAME:
        return _classify_rename(event)

    path = event.paths[0]

    if is_document_file(path):
        if event.kind is EventKind.CREATE:
            return Created(path)
        if event.kind is EventKind.MODIFY_DATA:
            return ContentChanged(path)
        # REMOVE: the next write at this path will bring it back.
        return IGNORE

    if is_asset_file(path):
        return AssetChanged(path)

    return IGNORE


def _classify_rename(event: RawEvent) -> Operation:
    mode = event.rename

    if mode is RenameMode.BOTH:
        if len(event.paths) != 2:
            return IGNORE
        return _classify_destination(event.paths[1])

    if mode is RenameMode.FROM:
        return IGNORE

    if mode is RenameMode.TO:
        return _classify_destination(event.paths[0])

    if mode is RenameMode.ANY:
        path = event.paths[0]
        if path.exists():
            return _classify_destination(path)
        return IGNORE

    return IGNORE


def _classify_destination(path: Path) -> Operation:
    """Classify the path a file was renamed to."""
    if is_document_file(path):
        return ContentChanged(path)
    if is_asset_file(path):
        return AssetChanged(path)
    return IGNORE
