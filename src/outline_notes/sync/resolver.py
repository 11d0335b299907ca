"""Conflict resolution strategies for the sync engine.

A conflict means a document's resource changed outside the engine after
the document itself was last edited in the store.  Strategies:

- ``FileWinsResolver``: Re-import the resource (default).
- ``DatabaseWinsResolver``: Force-export the stored document.
- ``MergeResolver``: Three-way merge of store and file against the text
  last agreed with the vault; an unresolvable merge is skipped and left
  for the caller.

The ``create_resolver()`` factory maps config strategy strings to resolver
instances.
"""

from __future__ import annotations

import logging
from typing import Protocol

from .merger import merge_documents
from .models import ConflictInfo, ConflictStrategy

logger = logging.getLogger(__name__)

FILE = "file"
STORE = "store"
MERGED = "merged"
SKIP = "skip"


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ConflictResolver(Protocol):
    """Protocol that all conflict resolvers must satisfy."""

    def resolve(self, conflict: ConflictInfo) -> str:
        """Return ``"file"``, ``"store"``, ``"merged"`` or ``"skip"``."""
        ...  # pragma: no cover

    def get_resolved_content(
        self, conflict: ConflictInfo, resolution: str
    ) -> str | None:
        """Return the text to write to the resource and re-import.

        ``None`` means no text needs writing (``"file"`` keeps the
        resource as-is, ``"skip"`` leaves everything untouched).
        """
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# Simple resolvers
# ---------------------------------------------------------------------------


class FileWinsResolver:
    """Always resolve conflicts in favour of the resource."""

    def resolve(self, conflict: ConflictInfo) -> str:
        return FILE

    def get_resolved_content(
        self, conflict: ConflictInfo, resolution: str
    ) -> str | None:
        if resolution == STORE:
            return conflict.store_content
        return None


class DatabaseWinsResolver:
    """Always resolve conflicts in favour of the stored document."""

    def resolve(self, conflict: ConflictInfo) -> str:
        return STORE

    def get_resolved_content(
        self, conflict: ConflictInfo, resolution: str
    ) -> str | None:
        if resolution == STORE:
            return conflict.store_content
        return None


# ---------------------------------------------------------------------------
# Merge resolver
# ---------------------------------------------------------------------------


class MergeResolver:
    """Merge store and file edits when they touch different blocks.

    Unresolvable edits resolve to ``SKIP``; the engine keeps the resource
    flagged as conflicted until it is resolved explicitly.
    """

    def _merge(self, conflict: ConflictInfo) -> tuple[str, bool] | None:
        if (
            conflict.base_content is None
            or conflict.store_content is None
            or conflict.file_content is None
        ):
            return None
        return merge_documents(
            conflict.base_content,
            conflict.store_content,
            conflict.file_content,
        )

    def resolve(self, conflict: ConflictInfo) -> str:
        result = self._merge(conflict)
        if result is None:
            logger.warning(
                "No merge base for %s/%s -- leaving conflict pending",
                conflict.location,
                conflict.name,
            )
            return SKIP
        _, has_conflicts = result
        if has_conflicts:
            logger.info(
                "Conflicting edits in %s/%s -- pending review",
                conflict.location,
                conflict.name,
            )
            return SKIP
        logger.info(
            "Clean three-way merge for %s/%s",
            conflict.location,
            conflict.name,
        )
        return MERGED

    def get_resolved_content(
        self, conflict: ConflictInfo, resolution: str
    ) -> str | None:
        if resolution == MERGED:
            result = self._merge(conflict)
            return result[0] if result is not None else None
        if resolution == STORE:
            return conflict.store_content
        return None


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_STRATEGY_MAP: dict[str, type] = {
    ConflictStrategy.FILE_WINS.value: FileWinsResolver,
    ConflictStrategy.DATABASE_WINS.value: DatabaseWinsResolver,
    ConflictStrategy.MERGE.value: MergeResolver,
}


def create_resolver(strategy: str | ConflictStrategy) -> ConflictResolver:
    """Create a conflict resolver for the given strategy.

    Raises:
        ValueError: If the strategy string is not recognised.
    """
    key = strategy.value if isinstance(strategy, ConflictStrategy) else strategy
    cls = _STRATEGY_MAP.get(key)
    if cls is None:
        raise ValueError(
            f"Unknown conflict strategy: '{strategy}'. Valid strategies: {sorted(_STRATEGY_MAP.keys())}"
        )
    return cls()  # type: ignore[return-value]
