"""Pydantic models for the reconciliation engine.

Defines the data contracts shared by every reconcile module:

- ``FileStatus`` / ``FileChange`` / ``ChangeReport``: drift classification
  of one artifact against its baseline.
- ``DiffKind`` / ``DiffOp`` / ``DiffResult``: line-level diff output.
- ``Decision`` / ``PolicyState``: the reconciliation state machine
  vocabulary.
- ``PendingDecision`` / ``Resolution`` / ``ReconcileResult``: values
  passed between the policy, the engine and its caller.
- ``SyncOutcome`` / ``ArtifactSyncResult`` / ``SyncSummary``: bulk sync
  results.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel

from template_sync.core.models import TemplateBundle


class FileStatus(str, Enum):
    """Classification of one tracked file against the baseline."""

    UNCHANGED = "unchanged"
    MODIFIED = "modified"
    DELETED = "deleted"


class FileChange(BaseModel):
    """Classification of a single tracked file.

    Attributes:
        file: Tracked path relative to the artifact directory.
        status: Drift classification.
        error: Read error message when the file could not be fingerprinted
            (such files are conservatively ``MODIFIED``).
    """

    file: str
    status: FileStatus
    error: str | None = None

    model_config = {"frozen": True}


class ChangeReport(BaseModel):
    """Ordered per-file classification for one artifact.

    Attributes:
        changes: One entry per tracked file, in declaration order.
        baseline_found: Whether a non-empty baseline was loaded.
        warnings: Non-fatal problems (e.g. an unreadable fingerprint store).
    """

    changes: list[FileChange] = []
    baseline_found: bool = False
    warnings: list[str] = []

    model_config = {"frozen": True}

    @property
    def has_conflict(self) -> bool:
        """True if any tracked file drifted from the baseline."""
        return any(c.status != FileStatus.UNCHANGED for c in self.changes)

    @property
    def modified(self) -> list[FileChange]:
        return [c for c in self.changes if c.status == FileStatus.MODIFIED]

    @property
    def deleted(self) -> list[FileChange]:
        return [c for c in self.changes if c.status == FileStatus.DELETED]

    def status_of(self, file: str) -> FileStatus | None:
        """Return the status recorded for *file*, or ``None``."""
        for change in self.changes:
            if change.file == file:
                return change.status
        return None


# ---------------------------------------------------------------------------
# Diff
# ---------------------------------------------------------------------------


class DiffKind(str, Enum):
    CONTEXT = "context"
    ADD = "add"
    REMOVE = "remove"


class DiffOp(BaseModel):
    """One line of diff output.

    ``position`` is the 1-based line number in the new text for
    ``context`` and ``add`` operations, and in the old text for
    ``remove`` operations.
    """

    kind: DiffKind
    text: str
    position: int

    model_config = {"frozen": True}


class DiffResult(BaseModel):
    """Ordered line operations plus aggregate counts.

    Attributes:
        ops: Operations in output order.
        additions: Number of ``add`` operations.
        deletions: Number of ``remove`` operations.
        omitted: True when the size guard skipped the full diff.
        cost: Number of LCS table cells evaluated (0 on the fast path).
    """

    ops: list[DiffOp] = []
    additions: int = 0
    deletions: int = 0
    omitted: bool = False
    cost: int = 0

    model_config = {"frozen": True}

    @property
    def has_changes(self) -> bool:
        return self.omitted or self.additions > 0 or self.deletions > 0


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------


class Decision(str, Enum):
    """Caller-supplied answer to a detected conflict."""

    OVERWRITE = "overwrite"
    BACKUP_THEN_OVERWRITE = "backup_then_overwrite"
    SKIP = "skip"
    CANCEL = "cancel"

    @property
    def writes(self) -> bool:
        """True for decisions that replace on-disk or remote content."""
        return self in (Decision.OVERWRITE, Decision.BACKUP_THEN_OVERWRITE)


class PolicyState(str, Enum):
    EVALUATING = "evaluating"
    NO_CONFLICT = "no_conflict"
    CONFLICT_DETECTED = "conflict_detected"
    AWAITING_DECISION = "awaiting_decision"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


class ArtifactRef(BaseModel):
    """Identity of one artifact: (collection id, artifact id)."""

    collection_id: str
    artifact_id: str
    name: str | None = None

    model_config = {"frozen": True}

    @property
    def label(self) -> str:
        if self.name:
            return f"{self.name} ({self.artifact_id})"
        return self.artifact_id


class FileSummary(BaseModel):
    """Human-facing change summary for one drifted file.

    Exactly one of the following describes the change: ``diff`` when
    both texts were available, ``estimated_lines`` when only a coarse
    estimate could be made, or neither (file deleted or unreadable).
    """

    file: str
    status: FileStatus
    diff: DiffResult | None = None
    estimated_lines: int | None = None

    model_config = {"frozen": True}


class PendingDecision(BaseModel):
    """A reconciliation paused in ``AWAITING_DECISION``.

    Returned to the caller instead of blocking; pass it back together
    with a ``Decision`` to resume.

    Attributes:
        operation: ``"pull"`` or ``"push"``.
        artifact: The artifact being reconciled.
        artifact_dir: Absolute artifact directory.
        tracked_files: Tracked files at evaluation time.
        report: Drift classification at evaluation time.
        summaries: Per-file change summaries for display.
        fingerprints: Current fingerprints seen at evaluation time, used
            to refuse a stale resume.
        payload: Content to write (pull) or publish (push) on resume.
    """

    operation: Literal["pull", "push"]
    artifact: ArtifactRef
    artifact_dir: str
    tracked_files: list[str]
    report: ChangeReport
    summaries: list[FileSummary] = []
    fingerprints: dict[str, str | None] = {}
    payload: TemplateBundle
    state: PolicyState = PolicyState.AWAITING_DECISION

    model_config = {"frozen": True}


class Resolution(BaseModel):
    """Terminal policy state for one artifact.

    Attributes:
        state: ``RESOLVED`` or ``CANCELLED``.
        decision: The decision taken.
        backup_path: Snapshot directory when a backup was made.
        warnings: Baseline problems found while evaluating, e.g. a
            corrupt hash file that was treated as empty.
    """

    state: PolicyState
    decision: Decision
    backup_path: str | None = None
    warnings: list[str] = []

    model_config = {"frozen": True}

    @property
    def proceeds(self) -> bool:
        """True when the caller should go on to write."""
        return self.state == PolicyState.RESOLVED and self.decision.writes


class ReconcileResult(BaseModel):
    """Outcome of a single-artifact pull or push.

    Attributes:
        operation: ``"pull"`` or ``"push"``.
        artifact: The artifact reconciled.
        state: Terminal policy state.
        decision_taken: The decision that was applied.
        diff_summary: Change summaries shown for the decision, if any.
        backup_path: Snapshot directory when a backup was made.
        written: Whether local files (pull) or the remote (push) changed.
        message: Short human-readable description.
        warnings: Baseline problems the caller should know about.
    """

    operation: Literal["pull", "push"]
    artifact: ArtifactRef
    state: PolicyState
    decision_taken: Decision
    diff_summary: list[FileSummary] = []
    backup_path: str | None = None
    written: bool = False
    message: str | None = None
    warnings: list[str] = []

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Bulk sync
# ---------------------------------------------------------------------------


class SyncOutcome(str, Enum):
    PULLED = "pulled"
    SKIPPED = "skipped"
    MODIFIED = "modified"
    FAILED = "failed"


class ArtifactSyncResult(BaseModel):
    """Outcome of one artifact within a bulk sync."""

    artifact: ArtifactRef
    outcome: SyncOutcome
    error: str | None = None
    changes: list[FileChange] = []

    model_config = {"frozen": True}


class SyncSummary(BaseModel):
    """Aggregate report for a bulk sync run.

    Attributes:
        collection_id: Collection synced, when known.
        dry_run: Whether this was a dry-run (no fetches, no writes).
        results: Per-artifact outcomes in input order.
        started_at: ISO 8601 timestamp when the run started.
        completed_at: ISO 8601 timestamp when the run completed.
    """

    collection_id: str | None = None
    dry_run: bool = False
    results: list[ArtifactSyncResult] = []
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    def _count(self, outcome: SyncOutcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)

    @property
    def pulled(self) -> int:
        return self._count(SyncOutcome.PULLED)

    @property
    def skipped(self) -> int:
        return self._count(SyncOutcome.SKIPPED)

    @property
    def modified(self) -> int:
        return self._count(SyncOutcome.MODIFIED)

    @property
    def failed(self) -> int:
        return self._count(SyncOutcome.FAILED)

    def counts(self) -> dict[str, int]:
        """Return the four counters as a dict."""
        return {
            "pulled": self.pulled,
            "skipped": self.skipped,
            "modified": self.modified,
            "failed": self.failed,
        }
