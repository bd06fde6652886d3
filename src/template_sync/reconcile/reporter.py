"""Report formatting functions.

Provides human-readable and machine-readable output for reconciliation:

- ``format_change_report`` -- local status tree for one artifact.
- ``format_diff`` -- ``+``/``-`` lines with line numbers and a count footer.
- ``format_file_summaries`` -- the change summary shown before a decision.
- ``format_pending`` -- full prompt text for a ``PendingDecision``.
- ``format_sync_summary`` -- one-line bulk summary.
- ``format_sync_report`` -- full post-sync report.
- ``summary_to_json`` -- structured dict for JSON output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .models import DiffKind, FileStatus, SyncOutcome

if TYPE_CHECKING:
    from .models import (
        ArtifactRef,
        ChangeReport,
        DiffResult,
        FileSummary,
        PendingDecision,
        SyncSummary,
    )

_RED = "\x1b[31m"
_GREEN = "\x1b[32m"
_DIM = "\x1b[2m"
_RESET = "\x1b[0m"


def _paint(text: str, code: str, color: bool) -> str:
    return f"{code}{text}{_RESET}" if color else text


def _tree_line(label: str, is_last: bool) -> str:
    return f"    └── {label}" if is_last else f"    ├── {label}"


# ------------------------------------------------------------------
# Status
# ------------------------------------------------------------------


def format_change_report(report: ChangeReport, artifact: ArtifactRef | None = None) -> str:
    """Format a change report as a status tree.

    Args:
        report: Result of ``ChangeDetector.detect``.
        artifact: Optional artifact shown in the header.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []
    if artifact is not None:
        lines.append(f"Template: {artifact.label}")
        lines.append(f"Collection: {artifact.collection_id}")
        lines.append("")

    lines.append("Local Status:")
    for index, change in enumerate(report.changes):
        label = f"{change.file}: {change.status.value}"
        if change.error:
            label += f" ({change.error})"
        lines.append(_tree_line(label, index == len(report.changes) - 1))

    if not report.baseline_found:
        lines.append("")
        lines.append("No baseline recorded; the next pull will not ask.")
    for warning in report.warnings:
        lines.append(f"Warning: {warning}")

    return "\n".join(lines)


# ------------------------------------------------------------------
# Diffs
# ------------------------------------------------------------------


def format_diff(diff: DiffResult, filename: str, color: bool = False) -> str:
    """Render the changed lines of *diff* for display.

    Context lines are not shown.  Each changed line carries its 4-wide
    line number; a ``+A, -D line(s)`` footer closes the block.
    """
    if diff.omitted:
        return f"{filename}: large file changed, diff omitted"
    if not diff.has_changes:
        return _paint(f"{filename}: no changes", _DIM, color)

    lines = [f"{filename}:"]
    for op in diff.ops:
        if op.kind == DiffKind.REMOVE:
            lines.append(_paint(f"  {op.position:>4} - {op.text}", _RED, color))
        elif op.kind == DiffKind.ADD:
            lines.append(_paint(f"  {op.position:>4} + {op.text}", _GREEN, color))

    parts = []
    if diff.additions:
        parts.append(_paint(f"+{diff.additions}", _GREEN, color))
    if diff.deletions:
        parts.append(_paint(f"-{diff.deletions}", _RED, color))
    lines.append(f"  {', '.join(parts)} line(s)")
    return "\n".join(lines)


def format_file_summaries(summaries: list[FileSummary], color: bool = False) -> str:
    """Format the per-file change summaries of a pending decision."""
    blocks: list[str] = []
    for summary in summaries:
        if summary.status == FileStatus.DELETED:
            blocks.append(f"{summary.file}: deleted locally")
        elif summary.diff is not None:
            blocks.append(format_diff(summary.diff, summary.file, color))
        elif summary.estimated_lines is not None:
            blocks.append(
                f"{summary.file}: modified (~{summary.estimated_lines} line(s) changed)"
            )
        else:
            blocks.append(f"{summary.file}: modified")
    return "\n\n".join(blocks)


def format_pending(pending: PendingDecision, color: bool = False) -> str:
    """Format the text shown when asking for a decision."""
    if pending.operation == "pull":
        header = f"{pending.artifact.label} has local changes that a pull would overwrite:"
    else:
        header = f"Pushing {pending.artifact.label} will change the remote:"
    return f"{header}\n\n{format_file_summaries(pending.summaries, color)}"


# ------------------------------------------------------------------
# Bulk sync
# ------------------------------------------------------------------


def format_sync_summary(summary: SyncSummary) -> str:
    """One-line bulk summary naming only the non-zero counters."""
    parts: list[str] = []
    if summary.pulled:
        parts.append(f"{summary.pulled} pulled")
    if summary.skipped:
        parts.append(f"{summary.skipped} skipped")
    if summary.modified:
        parts.append(f"{summary.modified} have local changes")
    if summary.failed:
        parts.append(f"{summary.failed} failed")

    text = ", ".join(parts) if parts else "No templates processed."
    return f"[dry-run] {text}" if summary.dry_run else text


def format_sync_report(summary: SyncSummary) -> str:
    """Format a complete bulk sync report as human-readable text.

    Sections are only included when they contain at least one result.
    Skipped artifacts are summarised by count only.
    """
    lines: list[str] = []

    header = "Sync report"
    if summary.collection_id:
        header += f" for '{summary.collection_id}'"
    if summary.dry_run:
        header += " (DRY RUN)"
    lines.append(header)
    lines.append(f"Started: {summary.started_at}")
    if summary.completed_at:
        lines.append(f"Completed: {summary.completed_at}")
    lines.append("")
    lines.append(format_sync_summary(summary))
    lines.append("")

    sections = [
        (SyncOutcome.PULLED, "Would pull:" if summary.dry_run else "Pulled:"),
        (SyncOutcome.MODIFIED, "Local changes (left untouched):"),
        (SyncOutcome.FAILED, "Failed:"),
    ]
    for outcome, title in sections:
        results = [r for r in summary.results if r.outcome == outcome]
        if not results:
            continue
        lines.append(title)
        for r in results:
            if r.error:
                lines.append(f"  {r.artifact.label}: {r.error}")
            elif r.outcome == SyncOutcome.MODIFIED:
                files = ", ".join(
                    c.file for c in r.changes if c.status != FileStatus.UNCHANGED
                )
                lines.append(f"  {r.artifact.label}: {files}")
            else:
                lines.append(f"  {r.artifact.label}")
        lines.append("")

    if summary.skipped:
        lines.append(f"Skipped: {summary.skipped} templates (unchanged)")
        lines.append("")

    return "\n".join(lines).rstrip()


def summary_to_json(summary: SyncSummary) -> dict:
    """Convert a sync summary to a structured dict for JSON serialisation."""
    results_list = []
    for r in summary.results:
        entry: dict = {
            "collection_id": r.artifact.collection_id,
            "artifact_id": r.artifact.artifact_id,
            "name": r.artifact.name,
            "outcome": r.outcome.value,
        }
        if r.error:
            entry["error"] = r.error
        changed = [
            {"file": c.file, "status": c.status.value}
            for c in r.changes
            if c.status != FileStatus.UNCHANGED
        ]
        if changed:
            entry["changes"] = changed
        results_list.append(entry)

    return {
        "collection_id": summary.collection_id,
        "dry_run": summary.dry_run,
        "started_at": summary.started_at,
        "completed_at": summary.completed_at,
        "counts": summary.counts(),
        "results": results_list,
    }
