"""Change detection against the stored fingerprint baseline."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from template_sync.errors import FileAccessError

from .fingerprint import ABSENT, compute_fingerprint
from .models import ChangeReport, FileChange, FileStatus
from .state import HashStore

logger = logging.getLogger(__name__)

UNREADABLE = "unreadable"


class ChangeDetector:
    """Classify each tracked file of an artifact as unchanged, modified
    or deleted relative to its baseline.

    Comparison is by exact content fingerprint; modification times are
    never consulted.
    """

    def __init__(self, hash_store: HashStore) -> None:
        self.hash_store = hash_store

    def detect(
        self, artifact_dir: Path, tracked_files: Sequence[str]
    ) -> ChangeReport:
        """Return one ``FileChange`` per tracked file, in declared order.

        An empty or missing baseline means a first pull: every file is
        reported unchanged regardless of what is on disk.  A file that
        exists but cannot be read is reported modified.
        """
        baseline = self.hash_store.read(artifact_dir)
        warnings = [baseline.warning] if baseline.warning else []

        if not baseline.fingerprints:
            return ChangeReport(
                changes=[
                    FileChange(file=name, status=FileStatus.UNCHANGED)
                    for name in tracked_files
                ],
                baseline_found=False,
                warnings=warnings,
            )

        changes = []
        for name in tracked_files:
            recorded = baseline.fingerprints.get(name)
            if recorded is None:
                changes.append(FileChange(file=name, status=FileStatus.UNCHANGED))
                continue

            try:
                current = compute_fingerprint(artifact_dir / name)
            except FileAccessError as exc:
                logger.warning("Treating %s as modified: %s", name, exc)
                warnings.append(str(exc))
                changes.append(
                    FileChange(file=name, status=FileStatus.MODIFIED, error=exc.reason)
                )
                continue

            if current is ABSENT:
                status = FileStatus.DELETED
            elif current == recorded:
                status = FileStatus.UNCHANGED
            else:
                status = FileStatus.MODIFIED
            changes.append(FileChange(file=name, status=status))

        return ChangeReport(changes=changes, baseline_found=True, warnings=warnings)

    def snapshot(
        self, artifact_dir: Path, tracked_files: Sequence[str]
    ) -> dict[str, str | None]:
        """Return the current fingerprint of every tracked file.

        Absent files map to ``ABSENT``; files that cannot be read map to
        ``UNREADABLE``.  Used to tell whether an artifact moved between
        evaluating a conflict and resuming it.
        """
        result: dict[str, str | None] = {}
        for name in tracked_files:
            try:
                result[name] = compute_fingerprint(artifact_dir / name)
            except FileAccessError:
                result[name] = UNREADABLE
        return result
