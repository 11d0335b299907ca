"""Snapshot persistence for the block store.

The whole store (documents and blocks, collapse flags included) is written
as one JSON file so a restart can restore it before the vault is synced.

* **Atomic writes** -- ``save_snapshot()`` writes to a temp file in the
  target directory then calls ``os.replace()``.
* **Versioned format** -- the top-level ``version`` key lets later
  releases migrate older files.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from .models import Block, Document
from .tree import BlockStore

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class SnapshotError(ValueError):
    """The snapshot file exists but cannot be decoded."""


def dump_store(store: BlockStore) -> dict:
    """Return a JSON-serialisable dict of every document and block."""
    documents = store.list_documents()
    blocks = [
        block
        for document in documents
        for block in store.blocks_for_document(document.id)
    ]
    return {
        "version": SNAPSHOT_VERSION,
        "saved_at": datetime.now(timezone.utc).isoformat(),
        "documents": [d.model_dump(mode="json") for d in documents],
        "blocks": [b.model_dump(mode="json") for b in blocks],
    }


def restore_store(data: dict) -> BlockStore:
    """Build a ``BlockStore`` from a dict produced by ``dump_store``.

    Raises:
        SnapshotError: On an unsupported version or malformed records.
    """
    version = data.get("version")
    if version != SNAPSHOT_VERSION:
        raise SnapshotError(f"Unsupported snapshot version: {version!r}")

    store = BlockStore()
    try:
        documents = [Document.model_validate(d) for d in data["documents"]]
        blocks = [Block.model_validate(b) for b in data["blocks"]]
    except (KeyError, TypeError, ValidationError) as exc:
        raise SnapshotError(f"Malformed snapshot: {exc}") from exc

    by_document: dict[str, list[Block]] = {}
    for block in blocks:
        by_document.setdefault(block.document_id, []).append(block)

    for document in documents:
        store.add_document(document)
        owned = by_document.pop(document.id, [])
        if owned:
            store.replace_document_blocks(document.id, owned)
            # Restoring must not look like a user edit.
            store.update_document(
                document.id, updated_at=document.updated_at
            )

    if by_document:
        logger.warning(
            "Dropped blocks for %d unknown document(s) while restoring",
            len(by_document),
        )
    return store


def save_snapshot(store: BlockStore, path: Path) -> None:
    """Persist *store* to *path* atomically, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(dump_store(store), fh, indent=2)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    logger.debug("Saved snapshot to %s", path)


def load_snapshot(path: Path) -> BlockStore:
    """Load a store from *path*; an empty store if the file is missing.

    Raises:
        SnapshotError: If the file exists but is not a valid snapshot.
    """
    if not path.exists():
        return BlockStore()
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"Snapshot is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise SnapshotError("Snapshot root must be an object")
    store = restore_store(data)
    logger.info(
        "Loaded snapshot from %s (%d documents, %d blocks)",
        path,
        len(store.list_documents()),
        store.block_count(),
    )
    return store
