"""Content layer — markdown documents as a live, rendered view.

Handles event classification, the tracked-document store, rendering, file
watching, and the navigation tree.
"""

from livemark.content.classifier import (
    AssetChanged,
    ContentChanged,
    Created,
    EventKind,
    RawEvent,
    RenameMode,
    classify,
    is_asset_file,
    is_document_file,
)
from livemark.content.navigation import TreeNode, build_file_tree
from livemark.content.store import DocumentStore, TrackedDocument, scan_documents
from livemark.content.watcher import DocumentWatcher

__all__ = [
    "AssetChanged",
    "ContentChanged",
    "Created",
    "DocumentStore",
    "DocumentWatcher",
    "EventKind",
    "RawEvent",
    "RenameMode",
    "TrackedDocument",
    "TreeNode",
    "build_file_tree",
    "classify",
    "is_asset_file",
    "is_document_file",
    "scan_documents",
]
