"""Pydantic models for the vault sync engine.

Defines the data contracts used across all sync modules:

- ``SyncAction``: Enum of per-resource outcomes.
- ``ExportState``: Per-document export state machine.
- ``ConflictStrategy``: How a detected conflict is resolved.
- ``ConflictInfo``: Details about a document/resource conflict.
- ``SyncResult``: Outcome of syncing one resource or document.
- ``SyncReport``: Aggregate results for a full sync run.
- ``SyncStatus`` / ``SyncProgress``: Observable engine state.

All models are frozen (immutable).
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class SyncAction(str, Enum):
    """What happened to one resource or document."""

    IMPORT = "import"
    CREATE = "create"
    EXPORT = "export"
    CONFLICT = "conflict"
    SKIP = "skip"
    DELETE = "delete"


class ExportState(str, Enum):
    """``clean -> pending -> exporting -> clean``."""

    CLEAN = "clean"
    PENDING = "pending"
    EXPORTING = "exporting"


class ConflictStrategy(str, Enum):
    FILE_WINS = "file-wins"
    DATABASE_WINS = "database-wins"
    MERGE = "merge"


class SyncStatus(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    SUCCESS = "success"
    ERROR = "error"


class ConflictInfo(BaseModel):
    """A document whose resource changed outside the engine.

    Attributes:
        document_id: Conflicting document.
        title: Document title.
        location: Vault location of the resource.
        name: Resource name.
        file_modified: Resource modification time (epoch seconds).
        document_updated: Document ``updated_at`` (epoch seconds).
        base_content: Text last agreed with the vault, if known.
        file_content: Current resource text.
        store_content: Current serialization of the stored document.
    """

    document_id: str
    title: str
    location: str
    name: str
    file_modified: float
    document_updated: float
    base_content: str | None = None
    file_content: str | None = None
    store_content: str | None = None

    model_config = {"frozen": True}


class SyncResult(BaseModel):
    """Result of syncing one resource or document.

    Attributes:
        location: Vault location (``pages`` / ``journals``).
        name: Resource name.
        document_id: Document involved, when known.
        action: What was done.
        success: Whether the operation succeeded.
        error: Error message if the operation failed.
    """

    location: str
    name: str
    document_id: str | None = None
    action: SyncAction
    success: bool = True
    error: str | None = None

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for a full sync run."""

    results: list[SyncResult] = []
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    def _with(self, action: SyncAction) -> list[SyncResult]:
        return [
            r for r in self.results if r.action == action and r.success
        ]

    @property
    def imported(self) -> list[SyncResult]:
        return self._with(SyncAction.IMPORT)

    @property
    def created(self) -> list[SyncResult]:
        return self._with(SyncAction.CREATE)

    @property
    def exported(self) -> list[SyncResult]:
        return self._with(SyncAction.EXPORT)

    @property
    def deleted(self) -> list[SyncResult]:
        return self._with(SyncAction.DELETE)

    @property
    def skipped(self) -> list[SyncResult]:
        return self._with(SyncAction.SKIP)

    @property
    def conflicts(self) -> list[SyncResult]:
        return [r for r in self.results if r.action == SyncAction.CONFLICT]

    @property
    def errors(self) -> list[SyncResult]:
        """Results where success is False."""
        return [r for r in self.results if not r.success]

    def summary(self) -> str:
        """Format a short multi-line count summary."""
        lines = [
            "Vault sync report",
            f"  Imported:  {len(self.imported)}",
            f"  Created:   {len(self.created)}",
            f"  Exported:  {len(self.exported)}",
            f"  Deleted:   {len(self.deleted)}",
            f"  Skipped:   {len(self.skipped)}",
            f"  Conflicts: {len(self.conflicts)}",
            f"  Errors:    {len(self.errors)}",
            f"  Total:     {len(self.results)}",
        ]
        return "\n".join(lines)


class SyncProgress(BaseModel):
    """Snapshot of engine state delivered to status listeners.

    Attributes:
        status: Current status.
        message: Short human-readable description (error text on
            ``error``).
        last_sync_time: Completion time of the last successful full sync.
        files_scanned: Resources enumerated by the current or last sync.
        files_synced: Resources and documents processed so far.
        watching: Whether the change-detection loop is running.
        pending_exports: Documents with a scheduled or running export.
    """

    status: SyncStatus = SyncStatus.IDLE
    message: str | None = None
    last_sync_time: datetime | None = None
    files_scanned: int = 0
    files_synced: int = 0
    watching: bool = False
    pending_exports: int = 0

    model_config = {"frozen": True}
