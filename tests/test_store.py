"""Tests for livemark.content.store — the tracked-document store."""

from __future__ import annotations

import os
import threading
from pathlib import Path

import pytest

from livemark._errors import ConfigError, DocumentError
from livemark.content.store import DocumentStore, TrackedDocument, scan_documents
from livemark.observability.collector import StackCollector
from livemark.observability.events import DocumentFailed, DocumentRendered
from tests.conftest import BASE_NS, fake_render, write_doc


def _fixed(root: Path, *files: Path, **kwargs: object) -> DocumentStore:
    return DocumentStore.initialize(root, list(files), dynamic=False, render=fake_render, **kwargs)  # type: ignore[arg-type]


def _dynamic(root: Path, *files: Path, **kwargs: object) -> DocumentStore:
    return DocumentStore.initialize(root, list(files), dynamic=True, render=fake_render, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# scan_documents
# ---------------------------------------------------------------------------


class TestScanDocuments:
    """Recursive, sorted discovery of document files."""

    def test_empty_directory(self, empty_dir: Path) -> None:
        assert scan_documents(empty_dir) == []

    def test_finds_documents_recursively(self, docs_dir: Path) -> None:
        found = [p.relative_to(docs_dir).as_posix() for p in scan_documents(docs_dir)]
        assert found == ["README.md", "guide/Setup.markdown", "guide/intro.md"]

    def test_case_insensitive_extensions(self, empty_dir: Path) -> None:
        write_doc(empty_dir / "a.MD", "a")
        write_doc(empty_dir / "b.Markdown", "b")
        (empty_dir / "c.txt").write_text("c")
        names = [p.name for p in scan_documents(empty_dir)]
        assert names == ["a.MD", "b.Markdown"]

    def test_directory_symlink_cycle_terminates(self, docs_dir: Path) -> None:
        (docs_dir / "guide" / "loop").symlink_to(docs_dir, target_is_directory=True)
        found = [p.relative_to(docs_dir).as_posix() for p in scan_documents(docs_dir)]
        assert found == ["README.md", "guide/Setup.markdown", "guide/intro.md"]

    def test_symlinked_file_is_included(self, empty_dir: Path, tmp_path: Path) -> None:
        target = write_doc(tmp_path / "elsewhere.md", "x")
        (empty_dir / "linked.md").symlink_to(target)
        assert [p.name for p in scan_documents(empty_dir)] == ["linked.md"]


# ---------------------------------------------------------------------------
# initialize
# ---------------------------------------------------------------------------


class TestInitialize:
    """Startup loading of the initial document set."""

    def test_keys_are_root_relative(self, docs_dir: Path) -> None:
        store = _dynamic(docs_dir, *scan_documents(docs_dir))
        assert store.list_keys() == ["README.md", "guide/Setup.markdown", "guide/intro.md"]

    def test_renders_initial_content(self, docs_dir: Path) -> None:
        store = _fixed(docs_dir, docs_dir / "README.md")
        assert store.get("README.md") == "<p>readme</p>"

    def test_root_is_canonical(self, docs_dir: Path) -> None:
        store = _fixed(docs_dir / "guide" / "..", docs_dir / "README.md")
        assert store.root == docs_dir.resolve()
        assert store.list_keys() == ["README.md"]

    def test_missing_root_is_fatal(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            _fixed(tmp_path / "nope")

    def test_unreadable_initial_file_is_fatal(self, docs_dir: Path) -> None:
        with pytest.raises(OSError):
            _fixed(docs_dir, docs_dir / "README.md", docs_dir / "missing.md")

    def test_invalid_utf8_is_fatal(self, docs_dir: Path) -> None:
        bad = docs_dir / "bad.md"
        bad.write_bytes(b"\xff\xfe\xfa")
        with pytest.raises(UnicodeDecodeError):
            _fixed(docs_dir, bad)

    def test_mode_flag(self, docs_dir: Path) -> None:
        assert _dynamic(docs_dir).dynamic is True
        assert _fixed(docs_dir).dynamic is False

    def test_records_initial_renders(self, docs_dir: Path) -> None:
        collector = StackCollector()
        _fixed(docs_dir, docs_dir / "README.md", collector=collector)
        events = collector.log.query(event_type=DocumentRendered)
        assert len(events) == 1
        assert events[0].key == "README.md"
        assert events[0].reason == "initial"


# ---------------------------------------------------------------------------
# key_for
# ---------------------------------------------------------------------------


class TestKeyFor:
    """Key derivation is consistent for every spelling of a path."""

    def test_dotdot_and_direct_paths_agree(self, docs_dir: Path) -> None:
        store = _fixed(docs_dir)
        direct = store.key_for(docs_dir / "guide" / "intro.md")
        indirect = store.key_for(docs_dir / "guide" / ".." / "guide" / "intro.md")
        assert direct == indirect == "guide/intro.md"

    def test_symlink_maps_to_target(self, docs_dir: Path) -> None:
        link = docs_dir / "link.md"
        try:
            link.symlink_to(docs_dir / "README.md")
        except OSError:
            pytest.skip("symlinks not supported")
        assert _fixed(docs_dir).key_for(link) == "README.md"

    def test_vanished_file_falls_back_to_raw_path(self, docs_dir: Path) -> None:
        store = _fixed(docs_dir)
        assert store.key_for(docs_dir / "not-yet.md") == "not-yet.md"

    def test_path_outside_root_keeps_full_form(self, docs_dir: Path, tmp_path: Path) -> None:
        outside = write_doc(tmp_path / "outside.md", "x")
        key = _fixed(docs_dir).key_for(outside)
        assert key == outside.resolve().as_posix()


# ---------------------------------------------------------------------------
# refresh
# ---------------------------------------------------------------------------


class TestRefresh:
    """Timestamp-gated re-rendering."""

    def test_newer_file_is_rerendered(self, docs_dir: Path) -> None:
        store = _fixed(docs_dir, docs_dir / "README.md")
        write_doc(docs_dir / "README.md", "updated", tick=5)

        assert store.refresh("README.md") is True
        assert store.get("README.md") == "<p>updated</p>"

    def test_refresh_is_idempotent(self, docs_dir: Path) -> None:
        store = _fixed(docs_dir, docs_dir / "README.md")
        write_doc(docs_dir / "README.md", "updated", tick=5)

        assert store.refresh("README.md") is True
        before = store.document("README.md")
        assert store.refresh("README.md") is False
        assert store.document("README.md") == before

    def test_unchanged_timestamp_is_noop(self, docs_dir: Path) -> None:
        store = _fixed(docs_dir, docs_dir / "README.md")
        # Same mtime, different content: not re-read.
        write_doc(docs_dir / "README.md", "sneaky", tick=0)
        assert store.refresh("README.md") is False
        assert store.get("README.md") == "<p>readme</p>"

    def test_older_timestamp_is_noop(self, docs_dir: Path) -> None:
        store = _fixed(docs_dir, docs_dir / "README.md")
        write_doc(docs_dir / "README.md", "restored from backup", tick=-10)
        assert store.refresh("README.md") is False
        assert store.get("README.md") == "<p>readme</p>"

    def test_untracked_key_is_noop(self, docs_dir: Path) -> None:
        store = _fixed(docs_dir)
        assert store.refresh("README.md") is False
        assert "README.md" not in store

    def test_timestamp_and_artifact_replaced_together(self, docs_dir: Path) -> None:
        store = _fixed(docs_dir, docs_dir / "README.md")
        path = write_doc(docs_dir / "README.md", "v2", tick=3)
        store.refresh("README.md")

        doc = store.document("README.md")
        assert doc == TrackedDocument(
            path=path.resolve(), modified_ns=path.stat().st_mtime_ns, html="<p>v2</p>",
        )

    def test_missing_file_raises_and_keeps_stale(self, docs_dir: Path) -> None:
        store = _fixed(docs_dir, docs_dir / "README.md")
        (docs_dir / "README.md").unlink()

        with pytest.raises(DocumentError) as excinfo:
            store.refresh("README.md")
        assert excinfo.value.path == (docs_dir / "README.md").resolve()
        assert store.get("README.md") == "<p>readme</p>"
        assert "README.md" in store

    def test_unreadable_content_raises_and_keeps_stale(self, docs_dir: Path) -> None:
        store = _fixed(docs_dir, docs_dir / "README.md")
        path = docs_dir / "README.md"
        path.write_bytes(b"\xff\xfe\xfa")
        stamp = path.stat().st_mtime_ns + 10_000_000_000
        os.utime(path, ns=(stamp, stamp))

        with pytest.raises(DocumentError):
            store.refresh("README.md")
        assert store.get("README.md") == "<p>readme</p>"

    def test_failure_is_recorded(self, docs_dir: Path) -> None:
        collector = StackCollector()
        store = _fixed(docs_dir, docs_dir / "README.md", collector=collector)
        (docs_dir / "README.md").unlink()

        with pytest.raises(DocumentError):
            store.refresh("README.md")
        failures = collector.log.query(event_type=DocumentFailed)
        assert len(failures) == 1
        assert failures[0].operation == "refresh"
        assert failures[0].key == "README.md"


# ---------------------------------------------------------------------------
# admit
# ---------------------------------------------------------------------------


class TestAdmit:
    """Mode-gated admission of new documents."""

    def test_fixed_mode_ignores_new_documents(self, docs_dir: Path) -> None:
        store = _fixed(docs_dir, docs_dir / "README.md")
        new = write_doc(docs_dir / "new.md", "new")

        assert store.admit(new) is False
        assert store.list_keys() == ["README.md"]

    def test_dynamic_mode_admits_new_documents(self, empty_dir: Path) -> None:
        store = _dynamic(empty_dir)
        new = write_doc(empty_dir / "sub" / "new.md", "new")

        assert store.admit(new) is True
        assert store.list_keys() == ["sub/new.md"]
        assert store.get("sub/new.md") == "<p>new</p>"

    def test_duplicate_admission_is_noop(self, empty_dir: Path) -> None:
        store = _dynamic(empty_dir)
        new = write_doc(empty_dir / "new.md", "new")

        assert store.admit(new) is True
        assert store.admit(new) is False
        assert store.admit(empty_dir / "." / "new.md") is False
        assert store.list_keys() == ["new.md"]

    def test_admit_missing_file_raises(self, empty_dir: Path) -> None:
        store = _dynamic(empty_dir)
        with pytest.raises(DocumentError):
            store.admit(empty_dir / "ghost.md")
        assert len(store) == 0


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


class TestReads:
    """get / current / first_key / list_keys."""

    def test_get_untracked_returns_none(self, docs_dir: Path) -> None:
        assert _fixed(docs_dir).get("nope.md") is None

    def test_first_key(self, docs_dir: Path) -> None:
        store = _dynamic(docs_dir, *scan_documents(docs_dir))
        assert store.first_key() == "README.md"

    def test_first_key_empty(self, empty_dir: Path) -> None:
        assert _dynamic(empty_dir).first_key() is None

    def test_list_keys_is_lexicographic(self, empty_dir: Path) -> None:
        for name in ("b.md", "a.md", "C.md", "a/z.md"):
            write_doc(empty_dir / name, name)
        store = _dynamic(empty_dir, *scan_documents(empty_dir))
        assert store.list_keys() == ["C.md", "a.md", "a/z.md", "b.md"]

    def test_current_refreshes_first(self, docs_dir: Path) -> None:
        store = _fixed(docs_dir, docs_dir / "README.md")
        write_doc(docs_dir / "README.md", "fresh", tick=2)
        assert store.current("README.md") == "<p>fresh</p>"

    def test_current_serves_stale_on_failure(
        self, docs_dir: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        store = _fixed(docs_dir, docs_dir / "README.md")
        (docs_dir / "README.md").unlink()

        assert store.current("README.md") == "<p>readme</p>"
        assert "Serving stale README.md" in capsys.readouterr().err

    def test_current_untracked(self, docs_dir: Path) -> None:
        assert _fixed(docs_dir).current("nope.md") is None


# ---------------------------------------------------------------------------
# Save strategies and concurrency
# ---------------------------------------------------------------------------


class TestEditorSaves:
    """The document stays tracked through non-atomic saves."""

    def test_backup_then_write(self, docs_dir: Path) -> None:
        store = _fixed(docs_dir, docs_dir / "README.md")
        original = docs_dir / "README.md"

        original.rename(docs_dir / "README.md.bak")
        assert store.get("README.md") == "<p>readme</p>"

        write_doc(original, "rewritten", tick=4)
        assert store.refresh("README.md") is True
        assert store.get("README.md") == "<p>rewritten</p>"

    def test_temp_then_rename(self, docs_dir: Path) -> None:
        store = _fixed(docs_dir, docs_dir / "README.md")
        temp = write_doc(docs_dir / ".README.md.tmp", "atomic", tick=6)

        os.replace(temp, docs_dir / "README.md")
        assert store.refresh("README.md") is True
        assert store.get("README.md") == "<p>atomic</p>"


class TestConcurrentAccess:
    """Readers never see a torn (timestamp, artifact) pair."""

    def test_reads_during_refreshes(self, docs_dir: Path) -> None:
        path = docs_dir / "README.md"
        store = _fixed(docs_dir, path)
        torn: list[TrackedDocument] = []
        stop = threading.Event()

        def expected_html(modified_ns: int) -> str:
            tick = (modified_ns - BASE_NS) // 1_000_000_000
            return "<p>readme</p>" if tick == 0 else f"<p>v{tick}</p>"

        def reader() -> None:
            while not stop.is_set():
                doc = store.document("README.md")
                if doc is not None and doc.html != expected_html(doc.modified_ns):
                    torn.append(doc)

        thread = threading.Thread(target=reader)
        thread.start()
        try:
            for tick in range(1, 30):
                write_doc(path, f"v{tick}", tick=tick)
                store.refresh("README.md")
        finally:
            stop.set()
            thread.join()

        assert torn == []
        assert store.get("README.md") == "<p>v29</p>"
