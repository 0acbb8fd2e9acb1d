"""Markdown rendering — the text -> HTML function applied to every document.

Uses Patitas with the GitHub-flavoured extensions enabled (tables,
strikethrough, task lists, footnotes, autolinks).  Raw HTML in the source is
passed through untouched.  A leading YAML (``---``) or TOML (``+++``) front
matter block is dropped from the output.

A document that cannot be rendered shows a visible placeholder instead, so one
broken file never takes the store down.  A missing or broken Patitas install
is not a document problem: ``ImportError`` always propagates.
"""

from __future__ import annotations

import sys
from functools import cache

from patitas import Markdown
from patitas.frontmatter import extract_body

RENDER_ERROR_PLACEHOLDER = "Error parsing markdown"

_PLUGINS = ["table", "strikethrough", "task_lists", "footnotes", "autolinks"]


@cache
def get_markdown() -> Markdown:
    """Shared Patitas processor.  Immutable config, safe across threads."""
    return Markdown(plugins=_PLUGINS)


def strip_front_matter(text: str) -> str:
    """Remove a leading ``---`` (YAML) or ``+++`` (TOML) front matter block.

    YAML blocks go through Patitas' ``extract_body``.  An unclosed TOML block
    is left in place.
    """
    if text.startswith("---"):
        return extract_body(text)

    if text.startswith("+++"):
        lines = text.splitlines(keepends=True)
        for i, line in enumerate(lines[1:], start=1):
            if line.strip() == "+++":
                return "".join(lines[i + 1 :])

    return text


def render_markdown(text: str) -> str:
    """Render markdown source to HTML, excluding front matter."""
    try:
        return get_markdown()(strip_front_matter(text))
    except ImportError:
        raise
    except Exception as exc:
        print(f"  Render error: {type(exc).__name__}: {exc}", file=sys.stderr)
        return RENDER_ERROR_PLACEHOLDER
