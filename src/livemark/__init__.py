"""Livemark — live, rendered markdown that follows the files on disk.

Keeps a rendered view of a set of markdown documents consistent with their
on-disk state and tells connected viewers when to reload.  Tolerates the way
editors actually save: backup-then-write, write-temp-then-rename, and rename
events that differ per OS.

Quick start::

    import livemark

    config = livemark.LivemarkConfig.from_target("docs/")
    async with livemark.LiveDocuments(config) as live:
        live.store.list_keys()

Pieces:

    DocumentStore   rendered documents, keyed by root-relative path
    Broadcaster     reload notifications for connected viewers
    LiveDocuments   store + watcher + pump + broadcaster, wired together

"""

__version__ = "0.1.0"
__all__ = [
    "Broadcaster",
    "DocumentStore",
    "LiveDocuments",
    "LivemarkConfig",
    "__version__",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import livemark`` fast while providing a clean top-level API.
    """
    if name == "LivemarkConfig":
        from livemark.config import LivemarkConfig

        return LivemarkConfig

    if name == "DocumentStore":
        from livemark.content.store import DocumentStore

        return DocumentStore

    if name == "Broadcaster":
        from livemark.reactive.broadcaster import Broadcaster

        return Broadcaster

    if name == "LiveDocuments":
        from livemark.app import LiveDocuments

        return LiveDocuments

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
