"""Pydantic models for the block tree store.

Defines the data contracts shared by the store, the text codec and the
sync engine:

- ``DocumentKind``: ordinary note vs. date-keyed journal entry.
- ``Block``: one node of an outline tree.
- ``Document``: a page owning a tree of blocks.
- ``MutationResult``: non-throwing outcome of a structural operation.

All models are frozen (immutable).  The store swaps in a fresh copy on
every mutation, so state can only change through store operations.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Return a fresh, never-reused identifier."""
    return str(uuid.uuid4())


class DocumentKind(str, Enum):
    """Kinds of documents."""

    NOTE = "note"
    DAILY = "daily"


class MutationResult(str, Enum):
    """Outcome of a structural store operation.

    Only ``APPLIED`` is truthy, so callers can write
    ``if store.indent(block_id): ...``.
    """

    APPLIED = "applied"
    NOT_FOUND = "not_found"
    NOOP = "noop"
    REJECTED = "rejected"

    def __bool__(self) -> bool:
        return self is MutationResult.APPLIED


class Block(BaseModel):
    """A single content unit in an outline.

    Attributes:
        id: Stable unique identifier, never reused.
        content: Block text; may span several lines and carry inline
            markup or ``[[links]]`` (opaque to the tree).
        parent_id: Containing block, or ``None`` for a top-level block.
        document_id: Owning document.
        order: Sibling position.  Comparable only; gaps are allowed.
        collapsed: Hide descendants from the visible traversal.
        created_at: Creation timestamp (UTC).
        updated_at: Last modification timestamp (UTC).
    """

    id: str = Field(default_factory=new_id)
    content: str = ""
    parent_id: str | None = None
    document_id: str
    order: int = 0
    collapsed: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = {"frozen": True}


class Document(BaseModel):
    """A named page.

    Attributes:
        id: Stable unique identifier.
        title: Page title (also drives the on-disk file name).
        kind: ``note`` or ``daily``.
        is_reference: ``True`` when the page was created automatically as
            the target of a ``[[link]]`` rather than authored by the user.
        created_at: Creation timestamp (UTC).
        updated_at: Last modification of the page or any of its blocks.
    """

    id: str = Field(default_factory=new_id)
    title: str
    kind: DocumentKind = DocumentKind.NOTE
    is_reference: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = {"frozen": True}
