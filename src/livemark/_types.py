"""Shared type definitions for livemark."""

from collections.abc import Callable
from typing import Literal

# Root-relative, canonical document path using "/" separators
type DocumentKey = str

# Rendered HTML for one document
type Artifact = str

# Pure text -> HTML transformation applied to every document
type RenderFunc = Callable[[str], Artifact]

# Why a document was (re-)rendered
type RenderReason = Literal["initial", "refresh", "admit"]
