"""Bulk synchronisation across a collection of artifacts.

Artifacts are reconciled concurrently in worker threads, bounded by
``max_parallel_syncs``; each artifact is still processed strictly
sequentially under its own directory lock.  A failure in one artifact
is counted and never aborts the batch.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from template_sync.core.async_utils import (
    gather_limited,
    make_semaphore,
    run_sync_limited,
)

from .context import ReconcileContext
from .models import (
    ArtifactRef,
    ArtifactSyncResult,
    Decision,
    FileStatus,
    PendingDecision,
    SyncOutcome,
    SyncSummary,
)

logger = logging.getLogger(__name__)

DecisionProvider = Callable[[PendingDecision], Decision]


class SyncOrchestrator:
    """Drive reconciliation over many artifacts.

    By default an artifact with local changes is left untouched and
    counted as ``modified``.  Supplying *decide* lets an unattended caller
    resolve such conflicts instead; a ``cancel`` from it only skips that
    artifact.

    Args:
        context: The per-invocation reconcile context.
        decide: Optional callback answering each conflict in the batch.
    """

    def __init__(
        self,
        context: ReconcileContext,
        decide: DecisionProvider | None = None,
    ) -> None:
        self.context = context
        self.decide = decide

    def sync_collection(
        self,
        artifacts: Sequence[ArtifactRef],
        *,
        dry_run: bool = False,
        collection_id: str | None = None,
    ) -> SyncSummary:
        """Synchronous entry point; runs its own event loop."""
        return asyncio.run(
            self.sync_collection_async(
                artifacts, dry_run=dry_run, collection_id=collection_id
            )
        )

    async def sync_collection_async(
        self,
        artifacts: Sequence[ArtifactRef],
        *,
        dry_run: bool = False,
        collection_id: str | None = None,
    ) -> SyncSummary:
        """Reconcile *artifacts* concurrently and aggregate the outcomes.

        Args:
            artifacts: Artifacts to sync; results keep this order.
            dry_run: Classify only: no fetches, no writes.
            collection_id: Recorded on the summary.
        """
        started_at = datetime.now(timezone.utc).isoformat()
        semaphore = make_semaphore(self.context.settings.max_parallel_syncs)
        results = await gather_limited(
            [
                run_sync_limited(semaphore, self.sync_one, artifact, dry_run)
                for artifact in artifacts
            ]
        )
        summary = SyncSummary(
            collection_id=collection_id,
            dry_run=dry_run,
            results=results,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )
        logger.info(
            "%sSync finished: %d pulled, %d skipped, %d modified, %d failed",
            "[dry-run] " if dry_run else "",
            summary.pulled,
            summary.skipped,
            summary.modified,
            summary.failed,
        )
        return summary

    def sync_one(self, artifact: ArtifactRef, dry_run: bool = False) -> ArtifactSyncResult:
        """Reconcile one artifact, converting any error into ``FAILED``."""
        try:
            return self._reconcile(artifact, dry_run)
        except Exception as exc:
            logger.error("%s: sync failed: %s", artifact.label, exc)
            return ArtifactSyncResult(
                artifact=artifact, outcome=SyncOutcome.FAILED, error=str(exc)
            )

    def _reconcile(self, artifact: ArtifactRef, dry_run: bool) -> ArtifactSyncResult:
        ctx = self.context
        artifact_dir = ctx.artifact_dir(artifact.collection_id, artifact.artifact_id)
        tracked = ctx.tracked_files
        prefix = "[dry-run] " if dry_run else ""

        with ctx.artifact_lock(artifact_dir):
            if not ctx.has_local_copy(artifact_dir):
                if not dry_run:
                    bundle = ctx.remote.fetch(artifact.artifact_id)
                    ctx.write_bundle(artifact_dir, tracked, bundle)
                logger.info("%s%s: pulled", prefix, artifact.label)
                return ArtifactSyncResult(artifact=artifact, outcome=SyncOutcome.PULLED)

            report = ctx.detector.detect(artifact_dir, tracked)
            if not report.has_conflict:
                logger.info("%s%s: exists locally, skipped", prefix, artifact.label)
                return ArtifactSyncResult(
                    artifact=artifact,
                    outcome=SyncOutcome.SKIPPED,
                    changes=report.changes,
                )

            drifted = [c for c in report.changes if c.status != FileStatus.UNCHANGED]
            if self.decide is None or dry_run:
                logger.warning(
                    "%s%s: has local changes (%s), left untouched",
                    prefix,
                    artifact.label,
                    ", ".join(f"{c.file} {c.status.value}" for c in drifted),
                )
                return ArtifactSyncResult(
                    artifact=artifact,
                    outcome=SyncOutcome.MODIFIED,
                    changes=report.changes,
                )

            bundle = ctx.remote.fetch(artifact.artifact_id)
            step = ctx.policy.evaluate(artifact, artifact_dir, tracked, bundle)
            if isinstance(step, PendingDecision):
                step = ctx.policy.resume(step, self.decide(step), bulk=True)
            if not step.proceeds:
                return ArtifactSyncResult(
                    artifact=artifact,
                    outcome=SyncOutcome.MODIFIED,
                    changes=report.changes,
                )
            ctx.write_bundle(artifact_dir, tracked, bundle)
            logger.info("%s: pulled (%s)", artifact.label, step.decision.value)
            return ArtifactSyncResult(
                artifact=artifact,
                outcome=SyncOutcome.PULLED,
                changes=report.changes,
            )
