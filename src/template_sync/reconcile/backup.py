"""Snapshots of tracked files taken before a destructive overwrite.

Snapshots live under ``<artifact_dir>/<backup_dir>/<timestamp>/`` and hold
verbatim copies of the tracked files as they stood before the overwrite.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from pathlib import Path

from template_sync.errors import FileAccessError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def snapshot_name(moment: datetime) -> str:
    """Filesystem-safe, lexically sortable name for a snapshot directory."""
    return moment.strftime("%Y-%m-%dT%H-%M-%S-%fZ")


class BackupManager:
    """Create and list per-artifact snapshots.

    Args:
        backup_dir: Name of the backup root inside each artifact directory.
        clock: Returns the current time; injectable for tests.
    """

    def __init__(
        self,
        backup_dir: str = ".backup",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.backup_dir = backup_dir
        self._clock = clock

    def backup_root(self, artifact_dir: Path) -> Path:
        return artifact_dir / self.backup_dir

    def backup(self, artifact_dir: Path, tracked_files: Sequence[str]) -> Path:
        """Copy every existing tracked file into a new snapshot directory.

        Missing files are skipped.  Two snapshots taken within the same
        clock tick get distinct directories (``-1``, ``-2``, ... suffixes).

        Returns:
            The snapshot directory.

        Raises:
            FileAccessError: If the snapshot cannot be created or a file
                cannot be copied.
        """
        root = self.backup_root(artifact_dir)
        snapshot = self._create_snapshot_dir(root)

        copied = 0
        for name in tracked_files:
            source = artifact_dir / name
            if not source.is_file():
                continue
            target = snapshot / name
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(source, target)
            except OSError as exc:
                raise FileAccessError(
                    str(source), exc.strerror or str(exc)
                ) from exc
            copied += 1

        logger.info("Backed up %d file(s) to %s", copied, snapshot)
        return snapshot

    def _create_snapshot_dir(self, root: Path) -> Path:
        base = snapshot_name(self._clock())
        try:
            root.mkdir(parents=True, exist_ok=True)
            candidate = root / base
            suffix = 0
            while True:
                try:
                    candidate.mkdir()
                    return candidate
                except FileExistsError:
                    suffix += 1
                    candidate = root / f"{base}-{suffix}"
        except OSError as exc:
            raise FileAccessError(str(root), exc.strerror or str(exc)) from exc

    def list_snapshots(self, artifact_dir: Path) -> list[Path]:
        """Return snapshot directories for *artifact_dir*, newest first."""
        root = self.backup_root(artifact_dir)
        if not root.is_dir():
            return []
        return sorted(
            (p for p in root.iterdir() if p.is_dir()),
            key=lambda p: p.name,
            reverse=True,
        )
