"""Reconciliation policy: the state machine that stands between change
detection and any destructive write.

::

    EVALUATING -> NO_CONFLICT -> RESOLVED(overwrite)
               -> CONFLICT_DETECTED -> AWAITING_DECISION
                      + overwrite             -> RESOLVED(overwrite)
                      + backup_then_overwrite -> backup -> RESOLVED(backup_then_overwrite)
                      + skip                  -> RESOLVED(skip)
                      + cancel                -> CANCELLED   (RESOLVED(skip) in bulk)

``AWAITING_DECISION`` is returned to the caller as a ``PendingDecision``
value; the caller resumes the machine with :meth:`ReconciliationPolicy.resume`.
The policy performs no prompting and writes nothing except backups.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Literal

from template_sync.core.models import TemplateBundle
from template_sync.errors import (
    FileAccessError,
    InvalidDecisionError,
    StaleDecisionError,
)
from template_sync.file_handler import read_file_with_encoding

from .backup import BackupManager
from .detector import ChangeDetector
from .differ import DiffEngine, estimate_lines_changed
from .models import (
    ArtifactRef,
    ChangeReport,
    Decision,
    FileStatus,
    FileSummary,
    PendingDecision,
    PolicyState,
    Resolution,
)

logger = logging.getLogger(__name__)


class ReconciliationPolicy:
    """Gate every destructive write on the local drift report.

    :meth:`evaluate` either resolves straight to an overwrite or pauses
    with a ``PendingDecision``; :meth:`resume` applies the caller's
    decision, taking a backup first when asked to.

    Args:
        detector: Classifies local drift against the baseline.
        differ: Builds the per-file summaries shown for a decision.
        backups: Takes snapshots for ``backup_then_overwrite``.
    """

    def __init__(
        self,
        detector: ChangeDetector,
        differ: DiffEngine,
        backups: BackupManager,
    ) -> None:
        self.detector = detector
        self.differ = differ
        self.backups = backups

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(
        self,
        artifact: ArtifactRef,
        artifact_dir: Path,
        tracked_files: Sequence[str],
        payload: TemplateBundle,
        *,
        force: bool = False,
    ) -> Resolution | PendingDecision:
        """Decide whether *payload* may overwrite the local bundle.

        Returns ``Resolution(RESOLVED, OVERWRITE)`` when nothing drifted
        (or *force* is set), otherwise a ``PendingDecision`` whose
        summaries compare each drifted local file with the incoming text.
        """
        logger.debug("%s: %s", artifact.label, PolicyState.EVALUATING.value)
        report = self.detector.detect(artifact_dir, tracked_files)

        if force or not report.has_conflict:
            logger.debug(
                "%s: %s%s",
                artifact.label,
                PolicyState.NO_CONFLICT.value,
                " (forced)" if force and report.has_conflict else "",
            )
            return Resolution(
                state=PolicyState.RESOLVED,
                decision=Decision.OVERWRITE,
                warnings=list(report.warnings),
            )

        logger.info(
            "%s: %s (%d modified, %d deleted)",
            artifact.label,
            PolicyState.CONFLICT_DETECTED.value,
            len(report.modified),
            len(report.deleted),
        )
        summaries = self.summarize(
            artifact_dir, report, payload.to_files(tracked_files)
        )
        return self.await_decision(
            "pull", artifact, artifact_dir, tracked_files, report, summaries, payload
        )

    def summarize(
        self,
        artifact_dir: Path,
        report: ChangeReport,
        incoming: Mapping[str, str],
    ) -> list[FileSummary]:
        """Describe what overwriting each drifted file would replace."""
        summaries = []
        for change in report.changes:
            if change.status == FileStatus.UNCHANGED:
                continue
            if change.status == FileStatus.DELETED:
                summaries.append(FileSummary(file=change.file, status=change.status))
                continue

            new_text = incoming.get(change.file, "")
            try:
                old_text, _ = read_file_with_encoding(artifact_dir / change.file)
            except FileAccessError:
                summaries.append(
                    FileSummary(
                        file=change.file,
                        status=change.status,
                        estimated_lines=estimate_lines_changed(new_text),
                    )
                )
                continue
            summaries.append(
                FileSummary(
                    file=change.file,
                    status=change.status,
                    diff=self.differ.diff(old_text, new_text),
                )
            )
        return summaries

    def await_decision(
        self,
        operation: Literal["pull", "push"],
        artifact: ArtifactRef,
        artifact_dir: Path,
        tracked_files: Sequence[str],
        report: ChangeReport,
        summaries: list[FileSummary],
        payload: TemplateBundle,
    ) -> PendingDecision:
        """Pause in ``AWAITING_DECISION``, recording what was seen on disk."""
        return PendingDecision(
            operation=operation,
            artifact=artifact,
            artifact_dir=str(artifact_dir),
            tracked_files=list(tracked_files),
            report=report,
            summaries=summaries,
            fingerprints=self.detector.snapshot(artifact_dir, tracked_files),
            payload=payload,
        )

    # ------------------------------------------------------------------
    # Resumption
    # ------------------------------------------------------------------

    def resume(
        self,
        pending: PendingDecision,
        decision: Decision | str,
        *,
        bulk: bool = False,
    ) -> Resolution:
        """Apply the caller's *decision* to a paused evaluation.

        In *bulk* mode a cancel only skips this artifact.

        Raises:
            InvalidDecisionError: If *decision* is not a known decision or
                *pending* is not awaiting one.
            StaleDecisionError: If a writing decision arrives after the
                tracked files changed on disk.
            FileAccessError: If the backup cannot be written.
        """
        try:
            decision = Decision(decision)
        except ValueError as exc:
            raise InvalidDecisionError(f"Unknown decision: {decision!r}") from exc
        if pending.state != PolicyState.AWAITING_DECISION:
            raise InvalidDecisionError(
                f"Cannot resume {pending.artifact.label} from state {pending.state.value}"
            )

        label = pending.artifact.label
        warnings = list(pending.report.warnings)
        if decision == Decision.CANCEL:
            if bulk:
                logger.info("%s: cancel treated as skip in bulk mode", label)
                return Resolution(
                    state=PolicyState.RESOLVED, decision=Decision.SKIP, warnings=warnings
                )
            logger.info("%s: cancelled", label)
            return Resolution(
                state=PolicyState.CANCELLED, decision=Decision.CANCEL, warnings=warnings
            )

        if decision == Decision.SKIP:
            logger.info("%s: skipped, local files left untouched", label)
            return Resolution(
                state=PolicyState.RESOLVED, decision=Decision.SKIP, warnings=warnings
            )

        artifact_dir = Path(pending.artifact_dir)
        self._check_not_stale(pending, artifact_dir)

        backup_path = None
        if decision == Decision.BACKUP_THEN_OVERWRITE:
            backup_path = str(self.backups.backup(artifact_dir, pending.tracked_files))

        return Resolution(
            state=PolicyState.RESOLVED,
            decision=decision,
            backup_path=backup_path,
            warnings=warnings,
        )

    def _check_not_stale(self, pending: PendingDecision, artifact_dir: Path) -> None:
        current = self.detector.snapshot(artifact_dir, pending.tracked_files)
        moved = [
            name
            for name in pending.tracked_files
            if current.get(name) != pending.fingerprints.get(name)
        ]
        if moved:
            raise StaleDecisionError(
                f"{pending.artifact.label}: {', '.join(moved)} changed since the "
                "conflict was reported; evaluate again"
            )
