"""Tests for sync report formatting and the SyncReport model."""

from __future__ import annotations

from datetime import datetime, timezone

from outline_notes.sync.models import (
    ConflictInfo,
    SyncAction,
    SyncProgress,
    SyncReport,
    SyncResult,
    SyncStatus,
)
from outline_notes.sync.reporter import (
    format_conflict,
    format_sync_report,
    progress_to_json,
    report_to_json,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _result(
    action: SyncAction,
    name: str = "Page.md",
    *,
    success: bool = True,
    error: str | None = None,
) -> SyncResult:
    return SyncResult(
        location="pages",
        name=name,
        document_id="doc-1",
        action=action,
        success=success,
        error=error,
    )


def _report(*results: SyncResult) -> SyncReport:
    return SyncReport(
        results=list(results),
        started_at="2024-05-01T09:00:00+00:00",
        completed_at="2024-05-01T09:00:01+00:00",
    )


# ---------------------------------------------------------------------------
# SyncReport properties
# ---------------------------------------------------------------------------


class TestSyncReport:
    """Tests for the SyncReport aggregate properties."""

    def test_groups_by_action(self) -> None:
        report = _report(
            _result(SyncAction.IMPORT, "a.md"),
            _result(SyncAction.CREATE, "b.md"),
            _result(SyncAction.EXPORT, "c.md"),
            _result(SyncAction.SKIP, "d.md"),
            _result(SyncAction.CONFLICT, "e.md", error="Unresolved conflict"),
            _result(SyncAction.EXPORT, "f.md", success=False, error="disk full"),
        )
        assert [r.name for r in report.imported] == ["a.md"]
        assert [r.name for r in report.created] == ["b.md"]
        assert [r.name for r in report.exported] == ["c.md"]
        assert [r.name for r in report.skipped] == ["d.md"]
        assert [r.name for r in report.conflicts] == ["e.md"]
        assert [r.name for r in report.errors] == ["f.md"]

    def test_empty_report(self) -> None:
        report = _report()
        assert report.imported == []
        assert report.errors == []

    def test_summary(self) -> None:
        summary = _report(_result(SyncAction.IMPORT)).summary()
        assert summary.startswith("Vault sync report")
        assert "Imported:  1" in summary
        assert "Total:     1" in summary


# ---------------------------------------------------------------------------
# format_sync_report
# ---------------------------------------------------------------------------


class TestFormatSyncReport:
    """Tests for format_sync_report()."""

    def test_sections(self) -> None:
        text = format_sync_report(
            _report(
                _result(SyncAction.IMPORT, "a.md"),
                _result(SyncAction.EXPORT, "b.md"),
                _result(SyncAction.SKIP, "c.md"),
                _result(
                    SyncAction.CONFLICT, "d.md", error="Unresolved conflict"
                ),
                _result(
                    SyncAction.IMPORT, "e.md", success=False, error="bad file"
                ),
            )
        )
        assert text.startswith("Vault sync report")
        assert "Processed 5 items: 1 imported, 0 created, 1 exported" in text
        assert "Imported from vault:\n  pages/a.md" in text
        assert "Exported to vault:\n  pages/b.md" in text
        assert "Conflicts:\n  pages/d.md: Unresolved conflict" in text
        assert "Errors:\n  pages/e.md: bad file" in text
        assert "Unchanged: 1 items" in text
        assert "Created from vault:" not in text

    def test_location_only_result(self) -> None:
        result = SyncResult(
            location="journals",
            name="",
            action=SyncAction.SKIP,
            success=False,
            error="permission denied",
        )
        text = format_sync_report(_report(result))
        assert "  journals: permission denied" in text


# ---------------------------------------------------------------------------
# format_conflict
# ---------------------------------------------------------------------------


class TestFormatConflict:
    """Tests for format_conflict()."""

    def _conflict(self, **overrides) -> ConflictInfo:
        fields = {
            "document_id": "doc-1",
            "title": "Page",
            "location": "pages",
            "name": "Page.md",
            "file_modified": 2.0,
            "document_updated": 1.0,
        }
        fields.update(overrides)
        return ConflictInfo(**fields)

    def test_header_only_without_contents(self) -> None:
        text = format_conflict(self._conflict())
        assert text.startswith("Conflict: Page (pages/Page.md)")
        assert "---" not in text

    def test_includes_diff(self) -> None:
        text = format_conflict(
            self._conflict(store_content="a\n", file_content="b\n")
        )
        assert "--- store: Page" in text
        assert "+++ file: pages/Page.md" in text

    def test_identical_contents(self) -> None:
        text = format_conflict(
            self._conflict(store_content="a\n", file_content="a\n")
        )
        assert text.endswith("(no textual differences)")


# ---------------------------------------------------------------------------
# JSON output
# ---------------------------------------------------------------------------


class TestJsonOutput:
    """Tests for report_to_json() and progress_to_json()."""

    def test_report_to_json(self) -> None:
        data = report_to_json(
            _report(
                _result(SyncAction.CREATE),
                _result(SyncAction.EXPORT, success=False, error="boom"),
            )
        )
        assert data["counts"] == {
            "total": 2,
            "imported": 0,
            "created": 1,
            "exported": 0,
            "deleted": 0,
            "conflicts": 0,
            "errors": 1,
            "skipped": 0,
        }
        assert data["results"][0]["action"] == "create"
        assert "error" not in data["results"][0]
        assert data["results"][1]["error"] == "boom"

    def test_progress_to_json(self) -> None:
        progress = SyncProgress(
            status=SyncStatus.SUCCESS,
            last_sync_time=datetime(2024, 5, 1, tzinfo=timezone.utc),
            files_scanned=3,
        )
        data = progress_to_json(progress)
        assert data["status"] == "success"
        assert data["files_scanned"] == 3
        assert data["last_sync_time"].startswith("2024-05-01T00:00:00")
