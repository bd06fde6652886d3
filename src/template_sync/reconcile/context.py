"""Per-invocation reconciliation context.

Bundles the settings, the remote store and the reconcile components for
one run, together with the per-artifact locks that keep two overlapping
operations from reconciling the same artifact directory at once.  Create
one per invocation and pass it through; nothing here is module-level.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from template_sync.config_schema import CollectionConfig, SyncSettings, UnifiedConfig
from template_sync.core.client import RemoteStore
from template_sync.core.models import TemplateBundle
from template_sync.file_handler import write_files_atomically
from template_sync.validators import require_identifier

from .backup import BackupManager
from .detector import ChangeDetector
from .differ import DiffEngine
from .fingerprint import fingerprint_files
from .policy import ReconciliationPolicy
from .state import HashStore

logger = logging.getLogger(__name__)


@dataclass
class ReconcileContext:
    settings: SyncSettings
    remote: RemoteStore
    root: Path
    hash_store: HashStore
    detector: ChangeDetector
    differ: DiffEngine
    backups: BackupManager
    policy: ReconciliationPolicy
    collections: dict[str, CollectionConfig] = field(default_factory=dict)
    _locks: dict[Path, threading.Lock] = field(default_factory=dict, repr=False)
    _locks_guard: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def create(
        cls,
        settings: SyncSettings,
        remote: RemoteStore,
        *,
        base_dir: Path | None = None,
        collections: dict[str, CollectionConfig] | None = None,
    ) -> ReconcileContext:
        """Wire up the components described by *settings*.

        Args:
            settings: Reconciliation settings.
            remote: Remote store implementation.
            base_dir: Directory ``templates_root`` is relative to
                (default: the current directory).
            collections: Declared collections for bulk sync.
        """
        hash_store = HashStore(settings.hash_file)
        detector = ChangeDetector(hash_store)
        differ = DiffEngine(settings.diff_max_lines)
        backups = BackupManager(settings.backup_dir)
        root = Path(base_dir or Path.cwd()) / settings.templates_root
        return cls(
            settings=settings,
            remote=remote,
            root=root.resolve(),
            hash_store=hash_store,
            detector=detector,
            differ=differ,
            backups=backups,
            policy=ReconciliationPolicy(detector, differ, backups),
            collections=dict(collections or {}),
        )

    @classmethod
    def from_config(
        cls,
        unified: UnifiedConfig,
        remote: RemoteStore,
        *,
        base_dir: Path | None = None,
    ) -> ReconcileContext:
        return cls.create(
            unified.sync,
            remote,
            base_dir=base_dir,
            collections=unified.collections,
        )

    @property
    def tracked_files(self) -> list[str]:
        return list(self.settings.tracked_files)

    def has_local_copy(self, artifact_dir: Path) -> bool:
        """True when any tracked file or a baseline exists for *artifact_dir*.

        A bundle with only some files left (or only its baseline) still
        counts, so it goes through change detection instead of being
        pulled over.
        """
        if self.hash_store.exists(artifact_dir):
            return True
        return any((artifact_dir / name).exists() for name in self.settings.tracked_files)

    def artifact_dir(self, collection_id: str, artifact_id: str) -> Path:
        """Return ``<root>/<collection_id>/<artifact_id>``.

        Raises:
            ValueError: If either id is not a safe path segment.
        """
        require_identifier(collection_id, "Collection id")
        require_identifier(artifact_id, "Template id")
        return self.root / collection_id / artifact_id

    @contextmanager
    def artifact_lock(self, artifact_dir: Path) -> Iterator[None]:
        """Hold the lock for *artifact_dir* for the duration of the block."""
        key = artifact_dir.resolve()
        with self._locks_guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            yield

    def restamp(self, artifact_dir: Path, tracked_files: Sequence[str]) -> None:
        """Record the current fingerprints of *tracked_files* as the baseline.

        Call only after the corresponding write or publish succeeded.
        """
        self.hash_store.save(artifact_dir, fingerprint_files(artifact_dir, tracked_files))

    def write_bundle(
        self,
        artifact_dir: Path,
        tracked_files: Sequence[str],
        bundle: TemplateBundle,
    ) -> int:
        """Write *bundle* as the tracked files, then re-stamp the baseline.

        Returns:
            Number of bytes written.
        """
        size = write_files_atomically(artifact_dir, bundle.to_files(tracked_files))
        self.restamp(artifact_dir, tracked_files)
        return size
