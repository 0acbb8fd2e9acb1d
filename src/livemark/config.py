"""Livemark configuration.

LivemarkConfig is the central configuration object, frozen after creation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from livemark._errors import ConfigError


@dataclass(frozen=True, slots=True)
class LivemarkConfig:
    """Configuration for a running livemark core.

    Attributes:
        root: Directory that bounds document keys and is watched recursively.
              Always resolved to an absolute path on construction.
        files: Documents tracked at startup. Empty in dynamic mode means
            "scan the root".
        dynamic: Admit new documents appearing under the root (directory mode).
            When False the document set is fixed at startup.
        queue_size: Capacity of the watcher -> pump hand-off queue.
        subscriber_buffer: Per-viewer message buffer; a full buffer drops.
        debounce: watchfiles debounce window in milliseconds.
        step: watchfiles polling step in milliseconds.
        force_polling: Force watchfiles' polling backend (None = auto).
        quiet: Suppress progress lines on stderr.

    """

    root: Path = field(default_factory=Path.cwd)
    files: tuple[Path, ...] = ()
    dynamic: bool = True
    queue_size: int = 100
    subscriber_buffer: int = 16
    debounce: int = 50
    step: int = 50
    force_polling: bool | None = None
    quiet: bool = False

    def __post_init__(self) -> None:
        # Resolve root to absolute so that watchfiles (which returns
        # absolute paths) maps onto the same keys as the store.
        if not self.root.is_absolute():
            object.__setattr__(self, "root", self.root.resolve())
        if not isinstance(self.files, tuple):
            object.__setattr__(self, "files", tuple(Path(f) for f in self.files))
        if self.queue_size < 1:
            msg = f"queue_size must be positive, got {self.queue_size}"
            raise ConfigError(msg)
        if self.subscriber_buffer < 1:
            msg = f"subscriber_buffer must be positive, got {self.subscriber_buffer}"
            raise ConfigError(msg)

    @classmethod
    def from_target(cls, target: Path | str, **overrides: object) -> LivemarkConfig:
        """Build a config from a file or directory given on the command line."""
        root, files, dynamic = resolve_target(Path(target))
        return cls(root=root, files=tuple(files), dynamic=dynamic, **overrides)  # type: ignore[arg-type]


def resolve_target(target: Path) -> tuple[Path, list[Path], bool]:
    """Map a user-supplied path onto ``(root, files, dynamic)``.

    A single file is served in fixed mode with its parent as the root.  A
    directory is served in dynamic mode with every document found beneath it.

    Raises:
        ConfigError: If the path does not exist or is neither file nor directory.

    """
    from livemark.content.store import scan_documents

    try:
        resolved = target.resolve(strict=True)
    except OSError as exc:
        msg = f"Path not found: {target}"
        raise ConfigError(msg) from exc

    if resolved.is_file():
        return resolved.parent, [resolved], False
    if resolved.is_dir():
        try:
            return resolved, scan_documents(resolved), True
        except OSError as exc:
            msg = f"Cannot scan directory {resolved}: {exc}"
            raise ConfigError(msg) from exc

    msg = f"Not a file or directory: {target}"
    raise ConfigError(msg)
