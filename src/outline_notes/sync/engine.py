"""Sync engine keeping the block store and the vault directory consistent.

The ``SyncEngine`` ties together the store, the text codec, a directory
adapter, the resource cache and a conflict resolver.  It:

1. Imports vault resources into the store (``import_resource``).
2. Exports store documents to the vault (``export_document``), debounced
   per document through ``schedule_export``.
3. Runs two-phase full syncs: import everything, then export everything.
4. Polls the vault for external changes (``start_watching``).
5. Detects and resolves conflicts with a configurable strategy.

Error handling is per unit of work: a failing resource or document is
logged and reported in its ``SyncResult``; the batch carries on.

Tree mutations are synchronous store calls, so they never interleave
with each other.  Awaits only happen around adapter I/O, and every
read-modify-write of one resource runs under that resource's
``asyncio.Lock``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from ..codec.markdown import (
    DEFAULT_INDENT_SIZE,
    ParsedDocument,
    deserialize_document,
    serialize_document,
    validate_document,
)
from ..codec.naming import (
    JOURNALS_LOCATION,
    PAGES_LOCATION,
    generate_filename,
    is_document_resource,
    kind_for_location,
    location_for_kind,
    title_from_filename,
)
from ..core.async_utils import gather_limited
from ..store.models import Document
from ..store.tree import BlockStore
from .adapter import DirectoryAdapter, ResourceInfo
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
from .resolver import FILE, MERGED, STORE, create_resolver
from .state import ResourceCache

logger = logging.getLogger(__name__)

LOCATIONS = (PAGES_LOCATION, JOURNALS_LOCATION)

StateListener = Callable[[SyncProgress], None]


class EngineClosedError(RuntimeError):
    """Raised when work is requested from a closed engine."""


class SyncEngine:
    """Synchronise one ``BlockStore`` with one vault.

    Args:
        store: The block store to keep in sync.
        adapter: Access to the vault directory.
        watch_interval: Seconds between change-detection polls.
        export_debounce: Seconds to wait after the last edit before
            exporting a document.
        indent_size: Spaces per depth level in written files.
        conflict_strategy: Default resolution strategy.
    """

    def __init__(
        self,
        store: BlockStore,
        adapter: DirectoryAdapter,
        *,
        watch_interval: float = 5.0,
        export_debounce: float = 0.1,
        indent_size: int = DEFAULT_INDENT_SIZE,
        conflict_strategy: str | ConflictStrategy = ConflictStrategy.FILE_WINS,
    ) -> None:
        self.store = store
        self.adapter = adapter
        self.watch_interval = watch_interval
        self.export_debounce = export_debounce
        self.indent_size = indent_size
        self.conflict_strategy = ConflictStrategy(conflict_strategy)
        self.resolver = create_resolver(self.conflict_strategy)
        self.cache = ResourceCache()

        # Per-document edit generation; present while an edit is unexported.
        self._dirty: dict[str, int] = {}
        self._generation = 0
        self._export_state: dict[str, ExportState] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._export_tasks: dict[str, asyncio.Task] = {}
        self._rerun: set[str] = set()

        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._sync_lock = asyncio.Lock()
        self._watch_task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None
        self._closing = False
        self._closed = False

        self._progress = SyncProgress()
        self._listeners: list[StateListener] = []

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_state(self) -> SyncProgress:
        """Return the current engine state."""
        return self._progress.model_copy(
            update={
                "watching": self.is_watching,
                "pending_exports": len(self._timers)
                + len(self._export_tasks),
            }
        )

    def on_state_change(self, listener: StateListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update_progress(self, **fields) -> None:
        self._progress = self._progress.model_copy(update=fields)
        self._notify()

    def _notify(self) -> None:
        state = self.get_state()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Sync state listener failed")

    @property
    def is_watching(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    @property
    def closed(self) -> bool:
        return self._closed

    def export_state(self, document_id: str) -> ExportState:
        return self._export_state.get(document_id, ExportState.CLEAN)

    def has_unexported_changes(self, document_id: str) -> bool:
        return document_id in self._dirty

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closing:
            raise EngineClosedError("Sync engine is closed")

    def _lock_for(self, location: str, name: str) -> asyncio.Lock:
        return self._locks.setdefault((location, name), asyncio.Lock())

    @staticmethod
    def resource_for(document: Document) -> tuple[str, str]:
        """Return the ``(location, name)`` a document is written to."""
        return location_for_kind(document.kind), generate_filename(document)

    def _serialize(self, document: Document) -> str:
        return serialize_document(
            document,
            self.store.blocks_for_document(document.id),
            indent_size=self.indent_size,
        )

    def _parse(self, text: str, name: str) -> ParsedDocument:
        return deserialize_document(
            text, filename=name, indent_size=self.indent_size
        )

    def _mark_dirty(self, document_id: str) -> None:
        self._generation += 1
        self._dirty[document_id] = self._generation

    def _conflicts(
        self, document: Document, info: ResourceInfo, location: str
    ) -> bool:
        entry = self.cache.get(location, info.name)
        if entry is not None and entry.last_modified == info.last_modified:
            return False
        return info.last_modified > document.updated_at.timestamp()

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    async def import_resource(self, location: str, name: str) -> SyncResult:
        """Read one resource and replace its document in the store.

        An existing document (matched by header id) keeps any metadata
        field the header omits; otherwise a new document is created.
        """
        self._ensure_open()
        async with self._lock_for(location, name):
            info = await self.adapter.resource_info(location, name)
            if info is None:
                return SyncResult(
                    location=location,
                    name=name,
                    action=SyncAction.SKIP,
                    success=False,
                    error="Resource not found",
                )
            text = await self.adapter.read_resource(location, name)
            return self._import_text(location, name, text, info)

    def _resolve_document_id(
        self, parsed: ParsedDocument, location: str, name: str
    ) -> str:
        """Pick the document a header-less resource belongs to."""
        if not parsed.id_synthesized:
            return parsed.metadata.id
        entry = self.cache.get(location, name)
        if entry is not None and entry.document_id is not None:
            if self.store.get_document(entry.document_id) is not None:
                return entry.document_id
        title = parsed.metadata.title
        if title:
            existing = self.store.find_document_by_title(title)
            if (
                existing is not None
                and location_for_kind(existing.kind) == location
            ):
                return existing.id
        return parsed.metadata.id

    def _import_text(
        self,
        location: str,
        name: str,
        text: str,
        info: ResourceInfo,
        parsed: ParsedDocument | None = None,
    ) -> SyncResult:
        validation = validate_document(text)
        if not validation.valid:
            logger.info(
                "Importing %s/%s without a valid header: %s",
                location,
                name,
                "; ".join(validation.errors),
            )
        parsed = parsed or self._parse(text, name)
        meta = parsed.metadata
        document_id = self._resolve_document_id(parsed, location, name)
        kind = meta.kind or kind_for_location(location, name)
        file_time = datetime.fromtimestamp(info.last_modified, timezone.utc)

        existing = self.store.get_document(document_id)
        if existing is None:
            self.store.create_document(
                meta.title or title_from_filename(name, kind),
                kind,
                document_id=document_id,
                created_at=meta.created_at or file_time,
                updated_at=meta.updated_at or file_time,
            )
            action = SyncAction.CREATE
            fields = {"updated_at": meta.updated_at or file_time}
        else:
            other = self.cache.find_by_document(document_id)
            if other is not None and (other.location, other.name) != (
                location,
                name,
            ):
                logger.warning(
                    "Document %s is also stored in %s/%s; %s/%s replaces it",
                    document_id,
                    other.location,
                    other.name,
                    location,
                    name,
                )
            action = SyncAction.IMPORT
            fields = {
                "title": meta.title or existing.title,
                "kind": meta.kind or existing.kind,
                "created_at": meta.created_at or existing.created_at,
                "updated_at": meta.updated_at or existing.updated_at,
            }

        # Replace, never diff: blocks are deleted and re-inserted as parsed.
        self.store.replace_document_blocks(document_id, parsed.blocks)
        self.store.update_document(document_id, **fields)

        self.cache.record(
            location, name, info.last_modified, text, document_id
        )
        self._dirty.pop(document_id, None)
        logger.info(
            "Imported %s/%s into document %s (%d blocks)",
            location,
            name,
            document_id,
            len(parsed.blocks),
        )
        return SyncResult(
            location=location,
            name=name,
            document_id=document_id,
            action=action,
        )

    async def _sync_resource_locked(
        self, location: str, info: ResourceInfo
    ) -> SyncResult:
        """Bring one listed resource into the store if it changed.

        Caller holds the resource lock.
        """
        name = info.name
        entry = self.cache.get(location, name)
        if entry is not None and entry.last_modified == info.last_modified:
            if entry.conflicted:
                return SyncResult(
                    location=location,
                    name=name,
                    document_id=entry.document_id,
                    action=SyncAction.CONFLICT,
                    error="Unresolved conflict",
                )
            return SyncResult(
                location=location,
                name=name,
                document_id=entry.document_id,
                action=SyncAction.SKIP,
            )

        text = await self.adapter.read_resource(location, name)
        if entry is not None and entry.content_hash == self.cache.content_hash(
            text
        ):
            # Touched but not changed.
            self.cache.refresh_mtime(location, name, info.last_modified)
            return SyncResult(
                location=location,
                name=name,
                document_id=entry.document_id,
                action=SyncAction.SKIP,
            )

        parsed = self._parse(text, name)
        document_id = self._resolve_document_id(parsed, location, name)
        document = self.store.get_document(document_id)
        if document is not None and document_id in self._dirty:
            return await self._resolve_locked(
                document, location, name, None, info=info, file_text=text
            )
        return self._import_text(location, name, text, info, parsed)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    async def export_document(self, document_id: str) -> SyncResult:
        """Serialize a document and write it to its resource.

        The post-write modification time is cached so the watcher does
        not re-import the engine's own write.  A resource changed outside
        the engine is routed through conflict resolution first.
        """
        self._ensure_open()
        return await self._export_guarded(document_id)

    async def _export_guarded(self, document_id: str) -> SyncResult:
        document = self.store.get_document(document_id)
        if document is None:
            return SyncResult(
                location="",
                name="",
                document_id=document_id,
                action=SyncAction.SKIP,
                success=False,
                error="Unknown document",
            )
        location, name = self.resource_for(document)
        try:
            return await self._export_routed(document, location, name)
        except Exception as exc:
            logger.error(
                "Failed to export %s to %s/%s: %s",
                document_id,
                location,
                name,
                exc,
            )
            return SyncResult(
                location=location,
                name=name,
                document_id=document_id,
                action=SyncAction.EXPORT,
                success=False,
                error=str(exc),
            )

    async def _export_routed(
        self, document: Document, location: str, name: str
    ) -> SyncResult:
        if (
            document.is_reference
            and self.store.block_count(document.id) == 0
            and self.cache.find_by_document(document.id) is None
        ):
            # Empty link placeholders stay out of the vault.
            return SyncResult(
                location=location,
                name=name,
                document_id=document.id,
                action=SyncAction.SKIP,
            )

        async with self._lock_for(location, name):
            # Re-read: an import may have replaced it while we waited.
            document = self.store.get_document(document.id) or document
            entry = self.cache.get(location, name)
            if entry is not None and entry.conflicted:
                return SyncResult(
                    location=location,
                    name=name,
                    document_id=document.id,
                    action=SyncAction.CONFLICT,
                    error="Unresolved conflict; export withheld",
                )
            if (
                entry is not None
                and entry.document_id is not None
                and entry.document_id != document.id
                and self.store.get_document(entry.document_id) is not None
            ):
                return SyncResult(
                    location=location,
                    name=name,
                    document_id=document.id,
                    action=SyncAction.SKIP,
                    success=False,
                    error=(
                        f"Resource {location}/{name} belongs to "
                        f"document {entry.document_id}"
                    ),
                )
            info = await self.adapter.resource_info(location, name)
            if info is not None and self._conflicts(document, info, location):
                return await self._resolve_locked(
                    document, location, name, None, info=info
                )
            return await self._write_locked(document, location, name)

    async def _write_locked(
        self,
        document: Document,
        location: str,
        name: str,
        text: str | None = None,
    ) -> SyncResult:
        """Write *document* (or *text*) to its resource.

        Caller holds the resource lock.
        """
        generation = self._dirty.get(document.id)
        if text is None:
            text = self._serialize(document)

        entry = self.cache.get(location, name)
        if entry is not None and entry.content_hash == self.cache.content_hash(
            text
        ):
            info = await self.adapter.resource_info(location, name)
            if info is not None and info.last_modified == entry.last_modified:
                self._clear_dirty(document.id, generation)
                return SyncResult(
                    location=location,
                    name=name,
                    document_id=document.id,
                    action=SyncAction.SKIP,
                )

        stale = [
            e
            for e in self.cache.entries()
            if e.document_id == document.id
            and (e.location, e.name) != (location, name)
        ]

        await self.adapter.ensure_location(location)
        await self.adapter.write_resource(location, name, text)
        info = await self.adapter.resource_info(location, name)
        written_at = (
            info.last_modified
            if info is not None
            else datetime.now(timezone.utc).timestamp()
        )
        self.cache.record(location, name, written_at, text, document.id)

        for old in stale:
            # Renamed document: the new resource exists, drop the old one.
            await self.adapter.delete_resource(old.location, old.name)
            self.cache.remove(old.location, old.name)
            logger.info(
                "Removed stale resource %s/%s for document %s",
                old.location,
                old.name,
                document.id,
            )

        self._clear_dirty(document.id, generation)
        logger.debug("Exported document %s to %s/%s", document.id, location, name)
        return SyncResult(
            location=location,
            name=name,
            document_id=document.id,
            action=SyncAction.EXPORT,
        )

    def _clear_dirty(self, document_id: str, generation: int | None) -> None:
        # An edit made while the write was in flight keeps the flag.
        if self._dirty.get(document_id) == generation:
            self._dirty.pop(document_id, None)

    # ------------------------------------------------------------------
    # Debounced export
    # ------------------------------------------------------------------

    def schedule_export(self, document_id: str) -> None:
        """Request an export after ``export_debounce`` seconds.

        Repeated calls within the window coalesce into one export, which
        serializes the document as it is when the export actually runs.
        Must be called from within the running event loop.
        """
        self._ensure_open()
        self._mark_dirty(document_id)
        loop = asyncio.get_running_loop()
        handle = self._timers.pop(document_id, None)
        if handle is not None:
            handle.cancel()
        self._timers[document_id] = loop.call_later(
            self.export_debounce, self._start_export, document_id
        )
        if document_id not in self._export_tasks:
            self._export_state[document_id] = ExportState.PENDING
        self._notify()

    def _start_export(self, document_id: str) -> None:
        self._timers.pop(document_id, None)
        if document_id in self._export_tasks:
            # Runs again once the in-flight export finishes.
            self._rerun.add(document_id)
            return
        self._export_state[document_id] = ExportState.EXPORTING
        self._export_tasks[document_id] = asyncio.get_running_loop().create_task(
            self._run_export(document_id)
        )

    async def _run_export(self, document_id: str) -> None:
        try:
            result = await self._export_guarded(document_id)
            if not result.success:
                logger.warning(
                    "Scheduled export of %s failed: %s",
                    document_id,
                    result.error,
                )
        finally:
            self._export_tasks.pop(document_id, None)
            if document_id in self._rerun:
                self._rerun.discard(document_id)
                self._start_export(document_id)
            elif document_id in self._timers:
                self._export_state[document_id] = ExportState.PENDING
            else:
                self._export_state.pop(document_id, None)
            self._notify()

    async def flush(self) -> None:
        """Start every pending export now and wait for all of them."""
        while self._timers or self._export_tasks:
            for document_id, handle in list(self._timers.items()):
                handle.cancel()
                self._start_export(document_id)
            tasks = list(self._export_tasks.values())
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Conflicts
    # ------------------------------------------------------------------

    async def detect_conflict(self, document_id: str) -> bool:
        """Return True if the document's resource changed outside the engine.

        A conflict means the resource exists, its modification time is
        not one the engine itself observed or produced, and it is strictly
        newer than the document's ``updated_at``.
        """
        document = self.store.get_document(document_id)
        if document is None:
            return False
        location, name = self.resource_for(document)
        info = await self.adapter.resource_info(location, name)
        if info is None:
            return False
        return self._conflicts(document, info, location)

    async def check_conflicts(self) -> list[ConflictInfo]:
        """Return a ``ConflictInfo`` for every conflicting document."""
        found: list[ConflictInfo] = []
        for document in self.store.list_documents():
            location, name = self.resource_for(document)
            info = await self.adapter.resource_info(location, name)
            if info is None:
                continue
            if not (
                self._conflicts(document, info, location)
                or self.cache.is_conflicted(location, name)
            ):
                continue
            entry = self.cache.get(location, name)
            found.append(
                ConflictInfo(
                    document_id=document.id,
                    title=document.title,
                    location=location,
                    name=name,
                    file_modified=info.last_modified,
                    document_updated=document.updated_at.timestamp(),
                    base_content=entry.text if entry else None,
                )
            )
        return found

    async def resolve_conflict(
        self,
        document_id: str,
        strategy: str | ConflictStrategy | None = None,
    ) -> SyncResult:
        """Resolve a document's conflict with *strategy* (default: config).

        Clears a previously recorded unresolved conflict first.
        """
        self._ensure_open()
        document = self.store.get_document(document_id)
        if document is None:
            return SyncResult(
                location="",
                name="",
                document_id=document_id,
                action=SyncAction.SKIP,
                success=False,
                error="Unknown document",
            )
        location, name = self.resource_for(document)
        async with self._lock_for(location, name):
            self.cache.mark_conflicted(location, name, conflicted=False)
            return await self._resolve_locked(document, location, name, strategy)

    async def _resolve_locked(
        self,
        document: Document,
        location: str,
        name: str,
        strategy: str | ConflictStrategy | None,
        *,
        info: ResourceInfo | None = None,
        file_text: str | None = None,
    ) -> SyncResult:
        if info is None:
            info = await self.adapter.resource_info(location, name)
        if info is None:
            return await self._write_locked(document, location, name)
        if file_text is None:
            file_text = await self.adapter.read_resource(location, name)

        entry = self.cache.get(location, name)
        if entry is not None and entry.content_hash == self.cache.content_hash(
            file_text
        ):
            self.cache.refresh_mtime(location, name, info.last_modified)
            return await self._write_locked(document, location, name)

        parsed = self._parse(file_text, name)
        if not parsed.id_synthesized and parsed.metadata.id != document.id:
            return SyncResult(
                location=location,
                name=name,
                document_id=document.id,
                action=SyncAction.SKIP,
                success=False,
                error=(
                    f"Resource {location}/{name} belongs to "
                    f"document {parsed.metadata.id}"
                ),
            )

        store_text = self._serialize(document)
        conflict = ConflictInfo(
            document_id=document.id,
            title=document.title,
            location=location,
            name=name,
            file_modified=info.last_modified,
            document_updated=document.updated_at.timestamp(),
            base_content=entry.text if entry else None,
            file_content=file_text,
            store_content=store_text,
        )
        resolver = (
            create_resolver(strategy) if strategy is not None else self.resolver
        )
        resolution = resolver.resolve(conflict)
        logger.info(
            "Conflict on %s/%s for document %s: %s",
            location,
            name,
            document.id,
            resolution,
        )

        if resolution == FILE:
            return self._import_text(location, name, file_text, info, parsed)
        if resolution == STORE:
            return await self._write_locked(
                document, location, name, store_text
            )
        if resolution == MERGED:
            merged = resolver.get_resolved_content(conflict, resolution)
            if merged is not None:
                await self.adapter.write_resource(location, name, merged)
                written = await self.adapter.resource_info(location, name)
                return self._import_text(
                    location, name, merged, written or info
                )

        self.cache.mark_conflicted(
            location,
            name,
            last_modified=info.last_modified,
            document_id=document.id,
        )
        return SyncResult(
            location=location,
            name=name,
            document_id=document.id,
            action=SyncAction.CONFLICT,
            error="Unresolved conflict",
        )

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    async def remove_document(self, document_id: str) -> SyncResult:
        """Delete a document from the store and its resource from the vault."""
        self._ensure_open()
        document = self.store.get_document(document_id)
        if document is None:
            return SyncResult(
                location="",
                name="",
                document_id=document_id,
                action=SyncAction.DELETE,
                success=False,
                error="Unknown document",
            )
        handle = self._timers.pop(document_id, None)
        if handle is not None:
            handle.cancel()
        self._dirty.pop(document_id, None)

        location, name = self.resource_for(document)
        targets = {(location, name)}
        targets.update(
            (e.location, e.name)
            for e in self.cache.entries()
            if e.document_id == document_id
        )
        self.store.delete_document(document_id)

        for target_location, target_name in sorted(targets):
            async with self._lock_for(target_location, target_name):
                await self.adapter.delete_resource(target_location, target_name)
                self.cache.remove(target_location, target_name)
        logger.info("Removed document %s and %s/%s", document_id, location, name)
        return SyncResult(
            location=location,
            name=name,
            document_id=document_id,
            action=SyncAction.DELETE,
        )

    # ------------------------------------------------------------------
    # Full sync
    # ------------------------------------------------------------------

    async def full_sync(self) -> SyncReport:
        """Import every resource, then export every document.

        Import runs first so external edits made while the engine was
        stopped are not clobbered by stale exports.
        """
        self._ensure_open()
        async with self._sync_lock:
            started_at = datetime.now(timezone.utc).isoformat()
            self._update_progress(
                status=SyncStatus.SYNCING,
                message="Importing vault",
                files_scanned=0,
                files_synced=0,
            )
            results: list[SyncResult] = []

            for location in LOCATIONS:
                try:
                    await self.adapter.ensure_location(location)
                    infos = await self.adapter.list_resources(location)
                except Exception as exc:
                    logger.error("Failed to list %s: %s", location, exc)
                    results.append(
                        SyncResult(
                            location=location,
                            name="",
                            action=SyncAction.SKIP,
                            success=False,
                            error=str(exc),
                        )
                    )
                    continue
                infos = [i for i in infos if is_document_resource(i.name)]
                self._update_progress(
                    files_scanned=self._progress.files_scanned + len(infos)
                )
                present = {i.name for i in infos}
                for entry in self.cache.entries():
                    if entry.location == location and entry.name not in present:
                        self.cache.remove(entry.location, entry.name)
                for info in infos:
                    results.append(await self._sync_one(location, info))
                    self._update_progress(
                        files_synced=self._progress.files_synced + 1
                    )

            self._update_progress(message="Exporting documents")
            exports = await gather_limited(
                [
                    self._export_guarded(document.id)
                    for document in self.store.list_documents()
                ]
            )
            results.extend(exports)

            report = SyncReport(
                results=results,
                started_at=started_at,
                completed_at=datetime.now(timezone.utc).isoformat(),
            )
            if report.errors:
                self._update_progress(
                    status=SyncStatus.ERROR,
                    message=f"{len(report.errors)} resource(s) failed",
                    files_synced=self._progress.files_synced + len(exports),
                )
            else:
                self._update_progress(
                    status=SyncStatus.SUCCESS,
                    message="Sync complete",
                    last_sync_time=datetime.now(timezone.utc),
                    files_synced=self._progress.files_synced + len(exports),
                )
            logger.info(
                "Full sync finished: %d results, %d errors",
                len(report.results),
                len(report.errors),
            )
            return report

    async def _sync_one(self, location: str, info: ResourceInfo) -> SyncResult:
        try:
            async with self._lock_for(location, info.name):
                return await self._sync_resource_locked(location, info)
        except Exception as exc:
            logger.error(
                "Failed to import %s/%s: %s", location, info.name, exc
            )
            return SyncResult(
                location=location,
                name=info.name,
                action=SyncAction.IMPORT,
                success=False,
                error=str(exc),
            )

    # ------------------------------------------------------------------
    # Change detection
    # ------------------------------------------------------------------

    async def check_for_changes(self) -> list[SyncResult]:
        """Run one polling cycle; return results for resources acted on."""
        self._ensure_open()
        results: list[SyncResult] = []
        async with self._sync_lock:
            for location in LOCATIONS:
                infos = await self.adapter.list_resources(location)
                for info in infos:
                    if not is_document_resource(info.name):
                        continue
                    entry = self.cache.get(location, info.name)
                    if (
                        entry is not None
                        and entry.last_modified == info.last_modified
                    ):
                        continue
                    result = await self._sync_one(location, info)
                    if result.action != SyncAction.SKIP or not result.success:
                        results.append(result)
        if results:
            logger.info("Detected %d changed resource(s)", len(results))
        return results

    def start_watching(self) -> None:
        """Start the polling loop; no-op if it is already running."""
        self._ensure_open()
        if self.is_watching:
            return
        self._stop_event = asyncio.Event()
        self._watch_task = asyncio.get_running_loop().create_task(
            self._watch_loop(self._stop_event)
        )
        logger.info("Watching vault every %.1fs", self.watch_interval)
        self._notify()

    async def stop_watching(self) -> None:
        """Stop the polling loop and wait for an in-flight cycle to end."""
        task = self._watch_task
        if task is None:
            return
        if self._stop_event is not None:
            self._stop_event.set()
        await task
        self._watch_task = None
        self._stop_event = None
        self._notify()

    async def _watch_loop(self, stop: asyncio.Event) -> None:
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.watch_interval)
                break
            except asyncio.TimeoutError:
                pass
            if self._closing:
                break
            try:
                await self.check_for_changes()
            except Exception as exc:
                logger.error("Change detection failed: %s", exc)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Stop watching, finish pending exports, then refuse new work."""
        if self._closing:
            return
        await self.stop_watching()
        self._closing = True
        await self.flush()
        async with self._sync_lock:
            pass
        self._closed = True
        self._update_progress(status=SyncStatus.IDLE, message="Closed")
        logger.info("Sync engine closed")
