"""Tests for livemark.content.navigation — sidebar tree from document keys."""

from __future__ import annotations

import pytest

from livemark.content.navigation import TreeNode, build_file_tree


class TestTreeNode:
    def test_frozen(self) -> None:
        node = TreeNode(name="a.md", is_dir=False, path="a.md")
        with pytest.raises(AttributeError):
            node.name = "b.md"  # type: ignore[misc]


class TestBuildFileTree:
    """Flat keys -> nested directory and file nodes."""

    def test_empty(self) -> None:
        assert build_file_tree([]) == []

    def test_flat_files(self) -> None:
        tree = build_file_tree(["b.md", "a.md"])
        assert [(n.name, n.path) for n in tree] == [("a.md", "a.md"), ("b.md", "b.md")]
        assert not any(n.is_dir for n in tree)

    def test_nested_directories(self) -> None:
        tree = build_file_tree(["README.md", "guide/intro.md", "guide/deep/x.md"])

        guide = next(n for n in tree if n.name == "guide")
        assert guide.is_dir
        assert guide.path is None
        assert [n.name for n in guide.children] == ["deep", "intro.md"]

        deep = guide.children[0]
        assert deep.children == (TreeNode(name="x.md", is_dir=False, path="guide/deep/x.md"),)

    def test_case_insensitive_order_interleaves_dirs_and_files(self) -> None:
        tree = build_file_tree(["Zebra.md", "apple.md", "Docs/a.md", "beta/b.md"])
        assert [n.name for n in tree] == ["apple.md", "beta", "Docs", "Zebra.md"]

    def test_builds_from_store_keys(self, docs_dir) -> None:
        from livemark.content.store import DocumentStore, scan_documents
        from tests.conftest import fake_render

        store = DocumentStore.initialize(
            docs_dir, scan_documents(docs_dir), dynamic=True, render=fake_render,
        )
        tree = build_file_tree(store.list_keys())

        assert [n.name for n in tree] == ["guide", "README.md"]
        assert [n.path for n in tree[0].children] == ["guide/intro.md", "guide/Setup.markdown"]
