"""Local/remote reconciliation engine.

Keeps locally cached template bundles in step with the remote store
without ever silently overwriting local edits.

Architecture
------------
After every successful pull or push the fingerprints of the tracked
files are recorded as the artifact's *baseline*.  The next operation
compares the current files against that baseline (never against the
remote) to find local drift.  Drift pauses the operation and hands a
``PendingDecision`` back to the caller, who resumes it with a
``Decision``.

Modules:

- ``fingerprint``  -- SHA-256 of raw file bytes, ``ABSENT`` for missing files.
- ``state``        -- ``HashStore``: load/save the per-artifact baseline.
- ``detector``     -- ``ChangeDetector``: classify drift per tracked file.
- ``differ``       -- ``DiffEngine``: size-guarded LCS line diff.
- ``backup``       -- ``BackupManager``: snapshots before an overwrite.
- ``policy``       -- ``ReconciliationPolicy``: the decision state machine.
- ``context``      -- ``ReconcileContext``: per-invocation wiring and locks.
- ``engine``       -- ``Reconciler``: pull, push, status, bulk entry points.
- ``orchestrator`` -- ``SyncOrchestrator``: concurrent bulk sync.
- ``models``       -- pydantic data contracts.
- ``reporter``     -- human-readable and JSON formatting.

Usage example
-------------
::

    from template_sync.config_loader import load_hierarchical_config
    from template_sync.config_schema import build_config
    from template_sync.reconcile import (
        Decision,
        PendingDecision,
        ReconcileContext,
        Reconciler,
        format_pending,
        format_sync_summary,
    )

    unified = build_config(load_hierarchical_config())
    context = ReconcileContext.from_config(unified, remote=template_client)
    reconciler = Reconciler(context)

    result = reconciler.reconcile_pull("network-1", "tmpl-42")
    if isinstance(result, PendingDecision):
        print(format_pending(result))
        result = reconciler.resume_pull(result, Decision.BACKUP_THEN_OVERWRITE)

    summary = reconciler.reconcile_sync_collection("network-1", dry_run=True)
    print(format_sync_summary(summary))
"""

from .backup import BackupManager
from .context import ReconcileContext
from .detector import ChangeDetector
from .differ import DiffEngine, compute_diff
from .engine import Reconciler
from .fingerprint import ABSENT, compute_fingerprint
from .models import (
    ArtifactRef,
    ArtifactSyncResult,
    ChangeReport,
    Decision,
    DiffKind,
    DiffOp,
    DiffResult,
    FileChange,
    FileStatus,
    FileSummary,
    PendingDecision,
    PolicyState,
    ReconcileResult,
    Resolution,
    SyncOutcome,
    SyncSummary,
)
from .orchestrator import SyncOrchestrator
from .policy import ReconciliationPolicy
from .reporter import (
    format_change_report,
    format_diff,
    format_pending,
    format_sync_report,
    format_sync_summary,
    summary_to_json,
)
from .state import HashStore

__all__ = [
    "ABSENT",
    "ArtifactRef",
    "ArtifactSyncResult",
    "BackupManager",
    "ChangeDetector",
    "ChangeReport",
    "Decision",
    "DiffEngine",
    "DiffKind",
    "DiffOp",
    "DiffResult",
    "FileChange",
    "FileStatus",
    "FileSummary",
    "HashStore",
    "PendingDecision",
    "PolicyState",
    "ReconcileContext",
    "ReconcileResult",
    "Reconciler",
    "ReconciliationPolicy",
    "Resolution",
    "SyncOrchestrator",
    "SyncOutcome",
    "SyncSummary",
    "compute_diff",
    "compute_fingerprint",
    "format_change_report",
    "format_diff",
    "format_pending",
    "format_sync_report",
    "format_sync_summary",
    "summary_to_json",
]
