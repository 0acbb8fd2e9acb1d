"""Navigation tree built from the store's document keys.

Turns flat keys like ``guide/intro.md`` into nested directory and file nodes
for a sidebar.  Directories and files are interleaved and sorted
case-insensitively by name at each level.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(frozen=True, slots=True)
class TreeNode:
    """A directory or a document in the navigation tree.

    Attributes:
        name: Last path segment.
        is_dir: True for directories.
        path: Full document key (files only).
        children: Nested nodes (directories only).

    """

    name: str
    is_dir: bool
    path: str | None = None
    children: tuple[TreeNode, ...] = ()


def build_file_tree(keys: Iterable[str]) -> list[TreeNode]:
    """Build the navigation tree for a set of document keys."""
    return _build_level(list(keys), "")


def _build_level(paths: list[str], prefix: str) -> list[TreeNode]:
    dirs: dict[str, list[str]] = {}
    files: list[str] = []

    for path in paths:
        head, sep, rest = path.partition("/")
        if sep:
            dirs.setdefault(head, []).append(rest)
        else:
            files.append(path)

    items: list[tuple[str, TreeNode]] = []

    for dir_name, sub_paths in dirs.items():
        dir_prefix = f"{prefix}/{dir_name}" if prefix else dir_name
        children = tuple(_build_level(sub_paths, dir_prefix))
        items.append((dir_name.lower(), TreeNode(name=dir_name, is_dir=True, children=children)))

    for file_name in files:
        full_path = f"{prefix}/{file_name}" if prefix else file_name
        items.append((file_name.lower(), TreeNode(name=file_name, is_dir=False, path=full_path)))

    items.sort(key=lambda item: item[0])
    return [node for _, node in items]
