"""Per-resource sync state.

``ResourceCache`` remembers, for every vault resource the engine has
read or written, the last-observed modification time and a hash of the
text.  It is private to one ``SyncEngine`` and lives only in memory.

Key design choices:

* **Self-write tracking** -- the engine records the post-write mtime of
  its own exports so the watcher does not re-import them.
* **Content hashing** -- ``content_hash()`` normalises content (BOM,
  line-endings, trailing blank lines) before SHA-256, so a touched but
  unchanged file is not re-imported.
* **Merge base** -- the last text exchanged with the vault is kept as the
  base for three-way merges.
"""

from __future__ import annotations

import hashlib

from pydantic import BaseModel

ResourceKey = tuple[str, str]


class CacheEntry(BaseModel):
    """Last agreed state of one resource.

    Attributes:
        location: Vault location (``pages`` or ``journals``).
        name: Resource name within the location.
        last_modified: Modification time observed after the last import
            or export.
        document_id: Document the resource holds.
        content_hash: ``content_hash()`` of ``text``.
        text: Text last read from or written to the resource.
        conflicted: An unresolved merge left this resource untouched.
    """

    location: str
    name: str
    last_modified: float
    document_id: str | None = None
    content_hash: str | None = None
    text: str | None = None
    conflicted: bool = False

    model_config = {"frozen": True}


class ResourceCache:
    """In-memory map of ``(location, name)`` to ``CacheEntry``."""

    def __init__(self) -> None:
        self._entries: dict[ResourceKey, CacheEntry] = {}

    def get(self, location: str, name: str) -> CacheEntry | None:
        return self._entries.get((location, name))

    def record(
        self,
        location: str,
        name: str,
        last_modified: float,
        text: str,
        document_id: str | None,
    ) -> CacheEntry:
        """Store the state agreed after an import or export."""
        entry = CacheEntry(
            location=location,
            name=name,
            last_modified=last_modified,
            document_id=document_id,
            content_hash=self.content_hash(text),
            text=text,
        )
        self._entries[(location, name)] = entry
        return entry

    def refresh_mtime(
        self, location: str, name: str, last_modified: float
    ) -> None:
        """Accept a new mtime for unchanged content."""
        entry = self._entries.get((location, name))
        if entry is not None:
            self._entries[(location, name)] = entry.model_copy(
                update={"last_modified": last_modified}
            )

    def mark_conflicted(
        self,
        location: str,
        name: str,
        conflicted: bool = True,
        *,
        last_modified: float | None = None,
        document_id: str | None = None,
    ) -> None:
        """Set or clear the conflicted flag.

        *last_modified* records the resource mtime the conflict was seen
        at, so the watcher does not re-raise it until the file changes
        again.  The agreed text is kept as the merge base.
        """
        entry = self._entries.get((location, name))
        if entry is None:
            if not conflicted or last_modified is None:
                return
            entry = CacheEntry(
                location=location,
                name=name,
                last_modified=last_modified,
                document_id=document_id,
            )
        update: dict = {"conflicted": conflicted}
        if last_modified is not None:
            update["last_modified"] = last_modified
        if entry.document_id is None and document_id is not None:
            update["document_id"] = document_id
        self._entries[(location, name)] = entry.model_copy(update=update)

    def remove(self, location: str, name: str) -> None:
        """No-op if not present."""
        self._entries.pop((location, name), None)

    def find_by_document(self, document_id: str) -> CacheEntry | None:
        for entry in self._entries.values():
            if entry.document_id == document_id:
                return entry
        return None

    def entries(self) -> list[CacheEntry]:
        return list(self._entries.values())

    def is_conflicted(self, location: str, name: str) -> bool:
        entry = self._entries.get((location, name))
        return bool(entry and entry.conflicted)

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Content hashing
    # ------------------------------------------------------------------

    @staticmethod
    def content_hash(content: str) -> str:
        """Compute a normalised SHA-256 hex digest of *content*.

        Normalisation steps (applied in order):

        1. Strip BOM (``\\ufeff``).
        2. Replace ``\\r\\n`` with ``\\n``.
        3. Strip trailing whitespace at the end of the text.

        Whitespace inside lines is block content and is hashed as is.
        """
        text = content.lstrip("\ufeff")
        normalised = text.replace("\r\n", "\n").rstrip()
        return hashlib.sha256(normalised.encode("utf-8")).hexdigest()
