"""Tests for reconcile report formatting.

Covers:
- format_change_report: status tree, baseline note, warnings
- format_diff: numbered +/- lines, footer, omitted and unchanged forms
- format_file_summaries / format_pending
- format_sync_summary: non-zero counters only, dry-run prefix
- format_sync_report: sections appear only when non-empty
- summary_to_json: structure and counts
"""

from __future__ import annotations

from conftest import make_bundle
from template_sync.reconcile.differ import compute_diff
from template_sync.reconcile.models import (
    ArtifactRef,
    ArtifactSyncResult,
    ChangeReport,
    DiffResult,
    FileChange,
    FileStatus,
    FileSummary,
    PendingDecision,
    SyncOutcome,
    SyncSummary,
)
from template_sync.reconcile.reporter import (
    format_change_report,
    format_diff,
    format_file_summaries,
    format_pending,
    format_sync_report,
    format_sync_summary,
    summary_to_json,
)

_TS = "2025-01-01T00:00:00+00:00"


def _ref(artifact_id="tmpl-1", name=None):
    return ArtifactRef(collection_id="net-1", artifact_id=artifact_id, name=name)


def _summary(outcomes, dry_run=False):
    return SyncSummary(
        collection_id="net-1",
        dry_run=dry_run,
        started_at=_TS,
        completed_at=_TS,
        results=[
            ArtifactSyncResult(artifact=_ref(f"t{i}"), outcome=o)
            for i, o in enumerate(outcomes)
        ],
    )


# ---------------------------------------------------------------------------
# format_change_report
# ---------------------------------------------------------------------------


class TestFormatChangeReport:
    def test_tree(self):
        report = ChangeReport(
            baseline_found=True,
            changes=[
                FileChange(file="template.html", status=FileStatus.MODIFIED),
                FileChange(file="styles.css", status=FileStatus.UNCHANGED),
                FileChange(file="config.json", status=FileStatus.DELETED),
            ],
        )
        text = format_change_report(report, _ref(name="Banner"))

        assert text.splitlines() == [
            "Template: Banner (tmpl-1)",
            "Collection: net-1",
            "",
            "Local Status:",
            "    ├── template.html: modified",
            "    ├── styles.css: unchanged",
            "    └── config.json: deleted",
        ]

    def test_error_and_warning_shown(self):
        report = ChangeReport(
            baseline_found=True,
            changes=[
                FileChange(
                    file="template.html",
                    status=FileStatus.MODIFIED,
                    error="Permission denied",
                )
            ],
            warnings=["something odd"],
        )
        text = format_change_report(report)
        assert "template.html: modified (Permission denied)" in text
        assert "Warning: something odd" in text

    def test_no_baseline_note(self):
        text = format_change_report(ChangeReport(changes=[]))
        assert "No baseline recorded" in text


# ---------------------------------------------------------------------------
# format_diff
# ---------------------------------------------------------------------------


class TestFormatDiff:
    def test_changed_lines_with_numbers(self):
        diff = compute_diff("line1\nline2\nline3", "line1\nline2 modified\nline3")
        assert format_diff(diff, "template.html").splitlines() == [
            "template.html:",
            "     2 - line2",
            "     2 + line2 modified",
            "  +1, -1 line(s)",
        ]

    def test_additions_only_footer(self):
        diff = compute_diff("a", "a\nb")
        assert format_diff(diff, "f").splitlines()[-1] == "  +1 line(s)"

    def test_omitted(self):
        text = format_diff(DiffResult(omitted=True), "big.html")
        assert text == "big.html: large file changed, diff omitted"

    def test_no_changes(self):
        assert format_diff(DiffResult(), "a.css") == "a.css: no changes"

    def test_color_wraps_lines(self):
        diff = compute_diff("a", "b")
        text = format_diff(diff, "f", color=True)
        assert "\x1b[31m" in text
        assert "\x1b[32m" in text
        assert "\x1b[31m" not in format_diff(diff, "f")


class TestFormatFileSummaries:
    def test_each_kind(self):
        summaries = [
            FileSummary(file="styles.css", status=FileStatus.DELETED),
            FileSummary(
                file="template.html",
                status=FileStatus.MODIFIED,
                diff=compute_diff("a", "b"),
            ),
            FileSummary(file="big.html", status=FileStatus.MODIFIED, estimated_lines=4),
            FileSummary(file="config.json", status=FileStatus.MODIFIED),
        ]
        blocks = format_file_summaries(summaries).split("\n\n")

        assert blocks[0] == "styles.css: deleted locally"
        assert blocks[1].startswith("template.html:")
        assert blocks[2] == "big.html: modified (~4 line(s) changed)"
        assert blocks[3] == "config.json: modified"


# ---------------------------------------------------------------------------
# Bulk summaries
# ---------------------------------------------------------------------------


class TestFormatSyncSummary:
    def test_only_non_zero_counters(self):
        summary = _summary([SyncOutcome.PULLED, SyncOutcome.FAILED])
        assert format_sync_summary(summary) == "1 pulled, 1 failed"

    def test_all_counters(self):
        summary = _summary(
            [
                SyncOutcome.PULLED,
                SyncOutcome.PULLED,
                SyncOutcome.SKIPPED,
                SyncOutcome.MODIFIED,
                SyncOutcome.FAILED,
            ]
        )
        assert (
            format_sync_summary(summary)
            == "2 pulled, 1 skipped, 1 have local changes, 1 failed"
        )

    def test_empty(self):
        assert format_sync_summary(_summary([])) == "No templates processed."

    def test_dry_run_prefix(self):
        summary = _summary([SyncOutcome.PULLED], dry_run=True)
        assert format_sync_summary(summary) == "[dry-run] 1 pulled"


class TestFormatSyncReport:
    def test_sections_only_when_present(self):
        report = format_sync_report(_summary([SyncOutcome.PULLED, SyncOutcome.SKIPPED]))

        assert "Sync report for 'net-1'" in report
        assert "Pulled:" in report
        assert "Failed:" not in report
        assert "Skipped: 1 templates (unchanged)" in report

    def test_modified_lists_drifted_files(self):
        summary = SyncSummary(
            started_at=_TS,
            results=[
                ArtifactSyncResult(
                    artifact=_ref("t1", "Banner"),
                    outcome=SyncOutcome.MODIFIED,
                    changes=[
                        FileChange(file="template.html", status=FileStatus.MODIFIED),
                        FileChange(file="styles.css", status=FileStatus.UNCHANGED),
                    ],
                ),
                ArtifactSyncResult(
                    artifact=_ref("t2"), outcome=SyncOutcome.FAILED, error="API error: 500"
                ),
            ],
        )
        report = format_sync_report(summary)

        assert "Local changes (left untouched):" in report
        assert "  Banner (t1): template.html" in report
        assert "  t2: API error: 500" in report

    def test_dry_run_header(self):
        report = format_sync_report(_summary([SyncOutcome.PULLED], dry_run=True))
        assert "(DRY RUN)" in report
        assert "Would pull:" in report


class TestSummaryToJson:
    def test_structure(self):
        summary = SyncSummary(
            collection_id="net-1",
            started_at=_TS,
            results=[
                ArtifactSyncResult(
                    artifact=_ref("t1", "Banner"),
                    outcome=SyncOutcome.MODIFIED,
                    changes=[
                        FileChange(file="template.html", status=FileStatus.MODIFIED),
                        FileChange(file="styles.css", status=FileStatus.UNCHANGED),
                    ],
                ),
                ArtifactSyncResult(
                    artifact=_ref("t2"), outcome=SyncOutcome.FAILED, error="boom"
                ),
            ],
        )
        data = summary_to_json(summary)

        assert data["counts"] == {"pulled": 0, "skipped": 0, "modified": 1, "failed": 1}
        assert data["results"][0] == {
            "collection_id": "net-1",
            "artifact_id": "t1",
            "name": "Banner",
            "outcome": "modified",
            "changes": [{"file": "template.html", "status": "modified"}],
        }
        assert data["results"][1]["error"] == "boom"
        assert "changes" not in data["results"][1]


class TestFormatPending:
    def _pending(self, operation):
        return PendingDecision(
            operation=operation,
            artifact=_ref(name="Banner"),
            artifact_dir="/tmp/net-1/tmpl-1",
            tracked_files=["template.html", "styles.css", "config.json"],
            report=ChangeReport(baseline_found=True),
            summaries=[FileSummary(file="styles.css", status=FileStatus.DELETED)],
            payload=make_bundle(),
        )

    def test_pull_header(self):
        text = format_pending(self._pending("pull"))
        assert text.startswith("Banner (tmpl-1) has local changes that a pull would overwrite:")
        assert text.endswith("styles.css: deleted locally")

    def test_push_header(self):
        text = format_pending(self._pending("push"))
        assert text.startswith("Pushing Banner (tmpl-1) will change the remote:")
