"""Vault synchronisation engine.

Keeps the block store and a directory of Markdown files consistent in
both directions.

Architecture
------------
Edits mutate the ``BlockStore`` and call ``SyncEngine.schedule_export``;
after a short debounce the document is serialized and written through a
``DirectoryAdapter``.  Independently, a polling loop compares resource
modification times against the ``ResourceCache`` and imports changed
files.  The cache records the engine's own writes so they are never
mistaken for external edits.

Modules:

- ``engine``    -- ``SyncEngine``: import, export, full sync, watcher.
- ``adapter``   -- ``DirectoryAdapter`` protocol, local and in-memory
  implementations.
- ``state``     -- ``ResourceCache``: per-resource mtimes and hashes.
- ``models``    -- ``SyncAction``, ``SyncResult``, ``SyncReport``,
  ``ConflictInfo``, ``SyncStatus``, ``SyncProgress``.
- ``merger``    -- Three-way merge via ``merge3`` library.
- ``resolver``  -- Conflict strategies (file-wins, database-wins, merge).
- ``reporter``  -- Human-readable and JSON report formatting.

Usage example
-------------
::

    from outline_notes.store import BlockStore
    from outline_notes.sync import (
        LocalDirectoryAdapter,
        SyncEngine,
        format_sync_report,
    )

    engine = SyncEngine(BlockStore(), LocalDirectoryAdapter("~/notes"))
    report = await engine.full_sync()
    print(format_sync_report(report))
    engine.start_watching()
    ...
    await engine.close()
"""

from .adapter import (
    DirectoryAdapter,
    LocalDirectoryAdapter,
    MemoryDirectoryAdapter,
    ResourceInfo,
)
from .engine import EngineClosedError, SyncEngine
from .models import (
    ConflictInfo,
    ConflictStrategy,
    ExportState,
    SyncAction,
    SyncProgress,
    SyncReport,
    SyncResult,
    SyncStatus,
)
from .reporter import format_conflict, format_sync_report, report_to_json
from .state import ResourceCache

__all__ = [
    "ConflictInfo",
    "ConflictStrategy",
    "DirectoryAdapter",
    "EngineClosedError",
    "ExportState",
    "LocalDirectoryAdapter",
    "MemoryDirectoryAdapter",
    "ResourceCache",
    "ResourceInfo",
    "SyncAction",
    "SyncEngine",
    "SyncProgress",
    "SyncReport",
    "SyncResult",
    "SyncStatus",
    "format_conflict",
    "format_sync_report",
    "report_to_json",
]
