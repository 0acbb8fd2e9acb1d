"""Shared test fixtures for livemark."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

# Fixed base timestamp so mtimes are explicit and strictly ordered.
BASE_NS = 1_700_000_000 * 1_000_000_000


def fake_render(text: str) -> str:
    """Deterministic stand-in for the markdown renderer."""
    return f"<p>{text}</p>"


def write_doc(path: Path, text: str, *, tick: int = 0) -> Path:
    """Write ``text`` to ``path`` and pin its mtime to ``BASE_NS + tick`` seconds.

    Tests never depend on the filesystem clock's granularity: a later write
    uses a larger ``tick``.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    stamp = BASE_NS + tick * 1_000_000_000
    os.utime(path, ns=(stamp, stamp))
    return path


@pytest.fixture
def docs_dir(tmp_path: Path) -> Path:
    """A small document tree.

    Layout::

        docs/
            README.md
            guide/intro.md
            guide/Setup.markdown
            notes.txt
            logo.png

    """
    root = tmp_path / "docs"
    root.mkdir()
    write_doc(root / "README.md", "readme")
    write_doc(root / "guide" / "intro.md", "intro")
    write_doc(root / "guide" / "Setup.markdown", "setup")
    (root / "notes.txt").write_text("not a document\n")
    (root / "logo.png").write_bytes(b"\x89PNG\r\n")
    return root


@pytest.fixture
def empty_dir(tmp_path: Path) -> Path:
    """An empty directory for dynamic-mode tests."""
    root = tmp_path / "empty"
    root.mkdir()
    return root
