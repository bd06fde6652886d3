"""Single-artifact reconciliation entry points.

The ``Reconciler`` ties the context's components into complete pull and
push operations.  For each operation it:

1. Takes the artifact-directory lock.
2. Fetches the remote bundle (nothing local is touched if this fails).
3. Runs the policy; on conflict returns a ``PendingDecision`` to the
   caller instead of prompting.
4. On a writing decision, writes (pull) or publishes (push).
5. Re-stamps the fingerprint baseline, only after step 4 succeeded.

Bulk collection sync is delegated to ``SyncOrchestrator``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from template_sync.core.models import TemplateBundle
from template_sync.errors import InvalidDecisionError
from template_sync.file_handler import read_file_with_encoding, validate_file_size

from .context import ReconcileContext
from .models import (
    ArtifactRef,
    ChangeReport,
    Decision,
    FileStatus,
    FileSummary,
    PendingDecision,
    PolicyState,
    ReconcileResult,
    Resolution,
    SyncSummary,
)
from .orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)


class Reconciler:
    """Pull, push, status and bulk sync for artifacts under one context.

    Args:
        context: The per-invocation reconcile context.
    """

    def __init__(self, context: ReconcileContext) -> None:
        self.context = context

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self, collection_id: str, artifact_id: str) -> ChangeReport:
        """Classify local drift against the baseline without remote access."""
        ctx = self.context
        artifact_dir = ctx.artifact_dir(collection_id, artifact_id)
        with ctx.artifact_lock(artifact_dir):
            return ctx.detector.detect(artifact_dir, ctx.tracked_files)

    def list_backups(self, collection_id: str, artifact_id: str) -> list[Path]:
        """Return the artifact's snapshot directories, newest first."""
        artifact_dir = self.context.artifact_dir(collection_id, artifact_id)
        return self.context.backups.list_snapshots(artifact_dir)

    # ------------------------------------------------------------------
    # Pull
    # ------------------------------------------------------------------

    def reconcile_pull(
        self,
        collection_id: str,
        artifact_id: str,
        *,
        force: bool = False,
    ) -> ReconcileResult | PendingDecision:
        """Replace the local bundle with the remote one.

        Args:
            collection_id: Collection the artifact belongs to.
            artifact_id: Remote template id.
            force: Overwrite local changes without asking.

        Returns:
            A ``ReconcileResult`` when no decision was needed, otherwise a
            ``PendingDecision`` to pass to :meth:`resume_pull`.

        Raises:
            ValueError: If an id is not a valid path segment.
            RemoteUnavailableError: If the fetch fails (nothing is written).
            MalformedResponseError: If the remote answer cannot be decoded.
            FileAccessError: If writing the bundle fails (baseline untouched).
        """
        ctx = self.context
        artifact_dir = ctx.artifact_dir(collection_id, artifact_id)
        tracked = ctx.tracked_files

        with ctx.artifact_lock(artifact_dir):
            bundle = ctx.remote.fetch(artifact_id)
            artifact = ArtifactRef(
                collection_id=collection_id,
                artifact_id=artifact_id,
                name=bundle.name,
            )
            step = ctx.policy.evaluate(
                artifact, artifact_dir, tracked, bundle, force=force
            )
            if isinstance(step, PendingDecision):
                return step
            return self._write_pulled(artifact, artifact_dir, tracked, bundle, step)

    def resume_pull(
        self, pending: PendingDecision, decision: Decision | str
    ) -> ReconcileResult:
        """Finish a pull that stopped at ``AWAITING_DECISION``.

        Raises:
            InvalidDecisionError: If *pending* is not a pull.
            StaleDecisionError: If local files changed since evaluation.
        """
        if pending.operation != "pull":
            raise InvalidDecisionError(
                f"Expected a pending pull, got a pending {pending.operation}"
            )
        ctx = self.context
        artifact_dir = Path(pending.artifact_dir)
        with ctx.artifact_lock(artifact_dir):
            resolution = ctx.policy.resume(pending, decision)
            if not resolution.proceeds:
                return self._not_written("pull", pending, resolution)
            return self._write_pulled(
                pending.artifact,
                artifact_dir,
                pending.tracked_files,
                pending.payload,
                resolution,
                pending.summaries,
            )

    def _write_pulled(
        self,
        artifact: ArtifactRef,
        artifact_dir: Path,
        tracked: Sequence[str],
        bundle: TemplateBundle,
        resolution: Resolution,
        summaries: list[FileSummary] | None = None,
    ) -> ReconcileResult:
        size = self.context.write_bundle(artifact_dir, tracked, bundle)
        logger.info(
            "%s: wrote %d file(s), %d bytes, to %s",
            artifact.label,
            len(tracked),
            size,
            artifact_dir,
        )
        return ReconcileResult(
            operation="pull",
            artifact=artifact,
            state=resolution.state,
            decision_taken=resolution.decision,
            diff_summary=summaries or [],
            backup_path=resolution.backup_path,
            written=True,
            message=f"Pulled {artifact.label}",
            warnings=resolution.warnings,
        )

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    def reconcile_push(
        self,
        collection_id: str,
        artifact_id: str,
        *,
        assume_yes: bool = False,
    ) -> ReconcileResult | PendingDecision:
        """Publish local markup and style to the remote.

        The summaries diff the current remote text against the local
        text.  When they are identical the push is skipped.

        Args:
            collection_id: Collection the artifact belongs to.
            artifact_id: Remote template id.
            assume_yes: Publish without asking.

        Returns:
            A ``ReconcileResult``, or a ``PendingDecision`` to pass to
            :meth:`resume_push`.

        Raises:
            FileAccessError: If the markup file is missing or unreadable.
            FileTooLargeError: If a local file exceeds ``max_file_size_mb``.
            RemoteUnavailableError: If the fetch or publish fails.
        """
        ctx = self.context
        artifact_dir = ctx.artifact_dir(collection_id, artifact_id)
        tracked = ctx.tracked_files
        markup, style = tracked[0], tracked[1]

        with ctx.artifact_lock(artifact_dir):
            local = self._read_pushable(artifact_dir, markup, style)
            remote = ctx.remote.fetch(artifact_id)
            artifact = ArtifactRef(
                collection_id=collection_id,
                artifact_id=artifact_id,
                name=remote.name,
            )

            remote_files = remote.to_files(tracked)
            summaries = []
            for name, text in local.items():
                diff = ctx.differ.diff(remote_files[name], text)
                if diff.has_changes:
                    summaries.append(
                        FileSummary(file=name, status=FileStatus.MODIFIED, diff=diff)
                    )

            if not summaries:
                logger.info("%s: remote already matches local files", artifact.label)
                return ReconcileResult(
                    operation="push",
                    artifact=artifact,
                    state=PolicyState.RESOLVED,
                    decision_taken=Decision.SKIP,
                    message="Remote is up to date",
                )

            outgoing = remote.with_local_content(local[markup], local[style])
            if assume_yes:
                resolution = Resolution(
                    state=PolicyState.RESOLVED, decision=Decision.OVERWRITE
                )
                return self._publish(
                    artifact, artifact_dir, tracked, outgoing, resolution, summaries
                )

            report = ctx.detector.detect(artifact_dir, tracked)
            return ctx.policy.await_decision(
                "push", artifact, artifact_dir, tracked, report, summaries, outgoing
            )

    def resume_push(
        self, pending: PendingDecision, decision: Decision | str
    ) -> ReconcileResult:
        """Finish a push that stopped at ``AWAITING_DECISION``.

        Raises:
            InvalidDecisionError: If *pending* is not a push, or the
                decision is ``backup_then_overwrite``.
            StaleDecisionError: If local files changed since evaluation.
        """
        if pending.operation != "push":
            raise InvalidDecisionError(
                f"Expected a pending push, got a pending {pending.operation}"
            )
        if decision == Decision.BACKUP_THEN_OVERWRITE:
            raise InvalidDecisionError(
                "backup_then_overwrite is only valid for pull"
            )

        ctx = self.context
        artifact_dir = Path(pending.artifact_dir)
        with ctx.artifact_lock(artifact_dir):
            resolution = ctx.policy.resume(pending, decision)
            if not resolution.proceeds:
                return self._not_written("push", pending, resolution)
            return self._publish(
                pending.artifact,
                artifact_dir,
                pending.tracked_files,
                pending.payload,
                resolution,
                pending.summaries,
            )

    def _read_pushable(
        self, artifact_dir: Path, markup: str, style: str
    ) -> dict[str, str]:
        limit = self.context.settings.max_file_size_mb
        markup_path = artifact_dir / markup
        validate_file_size(markup_path, limit)
        texts = {markup: read_file_with_encoding(markup_path)[0]}

        style_path = artifact_dir / style
        if style_path.exists():
            validate_file_size(style_path, limit)
            texts[style] = read_file_with_encoding(style_path)[0]
        else:
            texts[style] = ""
        return texts

    def _publish(
        self,
        artifact: ArtifactRef,
        artifact_dir: Path,
        tracked: Sequence[str],
        outgoing: TemplateBundle,
        resolution: Resolution,
        summaries: list[FileSummary],
    ) -> ReconcileResult:
        self.context.remote.publish(artifact.artifact_id, outgoing)
        self.context.restamp(artifact_dir, tracked)
        logger.info("%s: published to remote", artifact.label)
        return ReconcileResult(
            operation="push",
            artifact=artifact,
            state=resolution.state,
            decision_taken=resolution.decision,
            diff_summary=summaries,
            written=True,
            message=f"Pushed {artifact.label}",
        )

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------

    def reconcile_sync_collection(
        self, collection_id: str, *, dry_run: bool = False
    ) -> SyncSummary:
        """Bulk-sync every template declared for *collection_id*.

        Unknown or empty collections yield an empty summary.
        """
        return SyncOrchestrator(self.context).sync_collection(
            self._collection_artifacts(collection_id),
            dry_run=dry_run,
            collection_id=collection_id,
        )

    async def reconcile_sync_collection_async(
        self, collection_id: str, *, dry_run: bool = False
    ) -> SyncSummary:
        """Async variant of :meth:`reconcile_sync_collection`."""
        return await SyncOrchestrator(self.context).sync_collection_async(
            self._collection_artifacts(collection_id),
            dry_run=dry_run,
            collection_id=collection_id,
        )

    def _collection_artifacts(self, collection_id: str) -> list[ArtifactRef]:
        collection = self.context.collections.get(collection_id)
        if collection is None:
            logger.warning("No templates configured for collection %s", collection_id)
            return []
        return [
            ArtifactRef(
                collection_id=collection_id,
                artifact_id=entry.id,
                name=entry.name,
            )
            for entry in collection.templates
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _not_written(
        operation: str, pending: PendingDecision, resolution: Resolution
    ) -> ReconcileResult:
        if resolution.state == PolicyState.CANCELLED:
            message = "Cancelled, nothing written"
        elif operation == "pull":
            message = "Skipped, local files kept"
        else:
            message = "Skipped, remote left unchanged"
        return ReconcileResult(
            operation=operation,
            artifact=pending.artifact,
            state=resolution.state,
            decision_taken=resolution.decision,
            diff_summary=pending.summaries,
            written=False,
            message=message,
            warnings=resolution.warnings,
        )
