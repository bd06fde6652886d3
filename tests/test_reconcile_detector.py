"""Tests for ChangeDetector."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from template_sync.errors import FileAccessError
from template_sync.reconcile.detector import UNREADABLE, ChangeDetector
from template_sync.reconcile.fingerprint import (
    ABSENT,
    compute_fingerprint,
    fingerprint_files,
)
from template_sync.reconcile.models import FileStatus
from template_sync.reconcile.state import HashStore

TRACKED = ["a.txt", "b.txt"]


@pytest.fixture
def store():
    return HashStore()


@pytest.fixture
def detector(store):
    return ChangeDetector(store)


def _stamp(store: HashStore, artifact_dir: Path, tracked=TRACKED) -> None:
    store.save(artifact_dir, fingerprint_files(artifact_dir, tracked))


class TestDetect:
    """Tests for ChangeDetector.detect()."""

    def test_untouched_files_unchanged(self, tmp_path, store, detector):
        (tmp_path / "a.txt").write_text("A")
        (tmp_path / "b.txt").write_text("B")
        _stamp(store, tmp_path)

        report = detector.detect(tmp_path, TRACKED)

        assert report.baseline_found
        assert not report.has_conflict
        assert [c.status for c in report.changes] == [FileStatus.UNCHANGED] * 2

    def test_single_edit_scenario(self, tmp_path, store, detector):
        (tmp_path / "a.txt").write_text("A")
        (tmp_path / "b.txt").write_text("B")
        _stamp(store, tmp_path)
        (tmp_path / "a.txt").write_text("A edited")

        report = detector.detect(tmp_path, TRACKED)

        assert [(c.file, c.status) for c in report.changes] == [
            ("a.txt", FileStatus.MODIFIED),
            ("b.txt", FileStatus.UNCHANGED),
        ]

    def test_edit_and_delete_scenario(self, tmp_path, store, detector):
        """Editing a.txt and deleting b.txt yields modified + deleted."""
        (tmp_path / "a.txt").write_text("A")
        (tmp_path / "b.txt").write_text("B")
        _stamp(store, tmp_path)

        (tmp_path / "a.txt").write_text("A2")
        (tmp_path / "b.txt").unlink()

        report = detector.detect(tmp_path, TRACKED)

        assert report.status_of("a.txt") == FileStatus.MODIFIED
        assert report.status_of("b.txt") == FileStatus.DELETED
        assert report.has_conflict
        assert [c.file for c in report.modified] == ["a.txt"]
        assert [c.file for c in report.deleted] == ["b.txt"]

    def test_restoring_bytes_is_unchanged(self, tmp_path, store, detector):
        """Only content matters, not modification time."""
        (tmp_path / "a.txt").write_text("A")
        _stamp(store, tmp_path, ["a.txt"])
        (tmp_path / "a.txt").write_text("changed")
        (tmp_path / "a.txt").write_text("A")

        report = detector.detect(tmp_path, ["a.txt"])
        assert report.status_of("a.txt") == FileStatus.UNCHANGED

    def test_empty_baseline_reports_all_unchanged(self, tmp_path, detector):
        """First pull: no baseline means no conflict, whatever is on disk."""
        (tmp_path / "a.txt").write_text("hand-written")

        report = detector.detect(tmp_path, TRACKED)

        assert not report.baseline_found
        assert not report.has_conflict
        assert [c.file for c in report.changes] == TRACKED

    def test_corrupt_baseline_warns_and_reports_unchanged(self, tmp_path, detector):
        (tmp_path / ".pull-hashes.json").write_text("garbage")
        (tmp_path / "a.txt").write_text("A")

        report = detector.detect(tmp_path, TRACKED)

        assert not report.has_conflict
        assert len(report.warnings) == 1
        assert "invalid JSON" in report.warnings[0]

    def test_file_missing_from_baseline_is_unchanged(self, tmp_path, store, detector):
        (tmp_path / "a.txt").write_text("A")
        _stamp(store, tmp_path, ["a.txt"])
        (tmp_path / "b.txt").write_text("new")

        report = detector.detect(tmp_path, TRACKED)
        assert report.status_of("b.txt") == FileStatus.UNCHANGED

    def test_unreadable_file_is_modified(self, tmp_path, store, detector):
        (tmp_path / "a.txt").write_text("A")
        (tmp_path / "b.txt").write_text("B")
        _stamp(store, tmp_path)

        def _fingerprint(path):
            if path.name == "a.txt":
                raise FileAccessError(str(path), "Permission denied")
            return compute_fingerprint(path)

        with patch(
            "template_sync.reconcile.detector.compute_fingerprint",
            side_effect=_fingerprint,
        ):
            report = detector.detect(tmp_path, TRACKED)

        change = report.changes[0]
        assert change.status == FileStatus.MODIFIED
        assert change.error == "Permission denied"
        assert report.status_of("b.txt") == FileStatus.UNCHANGED
        assert any("Permission denied" in w for w in report.warnings)

    def test_order_follows_tracked_list(self, tmp_path, store, detector):
        for name in ("x", "y", "z"):
            (tmp_path / name).write_text(name)
        _stamp(store, tmp_path, ["x", "y", "z"])

        report = detector.detect(tmp_path, ["z", "x", "y"])
        assert [c.file for c in report.changes] == ["z", "x", "y"]


class TestSnapshot:
    """Tests for ChangeDetector.snapshot()."""

    def test_absent_and_present(self, tmp_path, detector):
        (tmp_path / "a.txt").write_text("A")
        snap = detector.snapshot(tmp_path, TRACKED)

        assert snap["a.txt"] is not None
        assert snap["b.txt"] is ABSENT

    def test_unreadable_marked(self, tmp_path, detector):
        with patch(
            "template_sync.reconcile.detector.compute_fingerprint",
            side_effect=FileAccessError("a.txt", "Permission denied"),
        ):
            snap = detector.snapshot(tmp_path, ["a.txt"])
        assert snap == {"a.txt": UNREADABLE}
