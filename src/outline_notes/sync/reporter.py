"""Sync report formatting functions.

Provides human-readable and machine-readable output for sync operations:

- ``format_sync_report`` -- full post-sync summary.
- ``format_conflict`` -- conflict details with a unified diff.
- ``progress_to_json`` / ``report_to_json`` -- structured dicts for MCP
  tool output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .merger import generate_diff

if TYPE_CHECKING:
    from .models import ConflictInfo, SyncProgress, SyncReport

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def _resource(location: str, name: str) -> str:
    return f"{location}/{name}" if name else location


def format_sync_report(report: SyncReport) -> str:
    """Format a complete sync report as human-readable text.

    Sections are only included when they contain at least one result.
    Skipped resources are summarised by count only.
    """
    lines: list[str] = ["Vault sync report", f"Started: {report.started_at}"]
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    lines.append(
        f"Processed {len(report.results)} items: "
        f"{len(report.imported)} imported, "
        f"{len(report.created)} created, "
        f"{len(report.exported)} exported, "
        f"{len(report.conflicts)} conflicts, "
        f"{len(report.errors)} errors"
    )
    lines.append("")

    sections = (
        ("Imported from vault:", report.imported),
        ("Created from vault:", report.created),
        ("Exported to vault:", report.exported),
        ("Deleted:", report.deleted),
    )
    for title, results in sections:
        if not results:
            continue
        lines.append(title)
        for r in results:
            lines.append(f"  {_resource(r.location, r.name)}")
        lines.append("")

    if report.conflicts:
        lines.append("Conflicts:")
        for r in report.conflicts:
            desc = r.error or "both sides changed"
            lines.append(f"  {_resource(r.location, r.name)}: {desc}")
        lines.append("")

    if report.errors:
        lines.append("Errors:")
        for r in report.errors:
            lines.append(f"  {_resource(r.location, r.name)}: {r.error}")
        lines.append("")

    if report.skipped:
        lines.append(f"Unchanged: {len(report.skipped)} items")
        lines.append("")

    return "\n".join(lines).rstrip()


def format_conflict(conflict: ConflictInfo) -> str:
    """Format a single conflict, with a store-vs-file diff when available."""
    lines = [
        f"Conflict: {conflict.title} ({conflict.location}/{conflict.name})",
        f"  file modified:    {conflict.file_modified:.3f}",
        f"  document updated: {conflict.document_updated:.3f}",
    ]
    if conflict.store_content is not None and conflict.file_content is not None:
        diff = generate_diff(
            conflict.store_content,
            conflict.file_content,
            label_old=f"store: {conflict.title}",
            label_new=f"file: {conflict.location}/{conflict.name}",
        )
        lines.append("")
        lines.append(diff.rstrip() if diff else "(no textual differences)")
    return "\n".join(lines)


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: SyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Suitable for MCP ``structuredContent`` output.
    """
    results_list = []
    for r in report.results:
        entry: dict = {
            "location": r.location,
            "name": r.name,
            "document_id": r.document_id,
            "action": r.action.value,
            "success": r.success,
        }
        if r.error:
            entry["error"] = r.error
        results_list.append(entry)

    return {
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": {
            "total": len(report.results),
            "imported": len(report.imported),
            "created": len(report.created),
            "exported": len(report.exported),
            "deleted": len(report.deleted),
            "conflicts": len(report.conflicts),
            "errors": len(report.errors),
            "skipped": len(report.skipped),
        },
        "results": results_list,
    }


def progress_to_json(progress: SyncProgress) -> dict:
    return progress.model_dump(mode="json")
