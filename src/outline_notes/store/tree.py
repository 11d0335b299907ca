"""In-memory block tree store.

``BlockStore`` is the authoritative structured representation of every
document and block.  The tree is kept as a flat mapping of blocks keyed by
id, with ``parent_id`` used as a lookup key; a secondary index maps
``(document_id, parent_id)`` to the ids of that sibling group.

Key design choices:

* **Synchronous mutations** -- every operation reads and rewrites sibling
  ``order`` values inside one call, so no other task can observe a torn
  intermediate state.
* **Non-throwing structural failures** -- unknown ids, cycles and no-op
  moves return a ``MutationResult`` instead of raising.  Only arguments
  that can never be valid (unknown document on create) raise
  ``InvalidReferenceError``.
* **Frozen models** -- stored ``Block``/``Document`` objects are replaced
  via ``model_copy`` rather than mutated.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime

from .errors import InvalidReferenceError
from .models import (
    Block,
    Document,
    DocumentKind,
    MutationResult,
    new_id,
    utcnow,
)
from .traversal import iter_tree, sibling_key

logger = logging.getLogger(__name__)

_DOCUMENT_FIELDS = frozenset(
    {"title", "kind", "is_reference", "created_at", "updated_at"}
)

SiblingKey = tuple[str, str | None]


class BlockStore:
    """Hold all documents and blocks and enforce the tree invariants."""

    def __init__(self) -> None:
        self._documents: dict[str, Document] = {}
        self._blocks: dict[str, Block] = {}
        self._children: dict[SiblingKey, set[str]] = defaultdict(set)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def create_document(
        self,
        title: str,
        kind: DocumentKind = DocumentKind.NOTE,
        *,
        is_reference: bool = False,
        document_id: str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> Document:
        """Create and register a new document.

        Raises:
            InvalidReferenceError: If *document_id* is already in use.
        """
        now = utcnow()
        document = Document(
            id=document_id or new_id(),
            title=title,
            kind=DocumentKind(kind),
            is_reference=is_reference,
            created_at=created_at or now,
            updated_at=updated_at or now,
        )
        return self.add_document(document)

    def add_document(self, document: Document) -> Document:
        """Register an already-built document (import, snapshot restore)."""
        if document.id in self._documents:
            raise InvalidReferenceError(
                f"Document id already exists: {document.id}"
            )
        self._documents[document.id] = document
        logger.debug("Created document %s (%s)", document.id, document.title)
        return document

    def get_document(self, document_id: str) -> Document | None:
        return self._documents.get(document_id)

    def find_document_by_title(self, title: str) -> Document | None:
        """Return the first document whose title matches exactly."""
        for document in self._documents.values():
            if document.title == title:
                return document
        return None

    def list_documents(self) -> list[Document]:
        """Return all documents, most recently updated first."""
        return sorted(
            self._documents.values(),
            key=lambda d: d.updated_at,
            reverse=True,
        )

    def ensure_document_by_title(
        self,
        title: str,
        kind: DocumentKind = DocumentKind.NOTE,
        *,
        is_reference: bool = False,
    ) -> Document:
        """Return the document titled *title*, creating it if absent."""
        existing = self.find_document_by_title(title)
        if existing is not None:
            return existing
        return self.create_document(title, kind, is_reference=is_reference)

    def ensure_journal(self, day: date | None = None) -> Document:
        """Return the daily journal document for *day* (default: today)."""
        day = day or utcnow().date()
        return self.ensure_document_by_title(
            day.strftime("%Y-%m-%d"), DocumentKind.DAILY
        )

    def update_document(self, document_id: str, **fields) -> MutationResult:
        """Update metadata fields of a document.

        ``updated_at`` is bumped to now unless given explicitly.

        Raises:
            ValueError: If an unknown field name is passed.
        """
        unknown = set(fields) - _DOCUMENT_FIELDS
        if unknown:
            raise ValueError(
                f"Unknown document field(s): {', '.join(sorted(unknown))}"
            )
        document = self._documents.get(document_id)
        if document is None:
            return MutationResult.NOT_FOUND
        if "kind" in fields:
            fields["kind"] = DocumentKind(fields["kind"])
        fields.setdefault("updated_at", utcnow())
        self._documents[document_id] = document.model_copy(update=fields)
        return MutationResult.APPLIED

    def delete_document(self, document_id: str) -> MutationResult:
        """Delete a document and every block it owns."""
        if document_id not in self._documents:
            return MutationResult.NOT_FOUND
        for block_id in [
            b.id
            for b in self._blocks.values()
            if b.document_id == document_id
        ]:
            self._drop(block_id)
        del self._documents[document_id]
        logger.debug("Deleted document %s", document_id)
        return MutationResult.APPLIED

    # ------------------------------------------------------------------
    # Block queries
    # ------------------------------------------------------------------

    def get_block(self, block_id: str) -> Block | None:
        return self._blocks.get(block_id)

    def block_count(self, document_id: str | None = None) -> int:
        if document_id is None:
            return len(self._blocks)
        return sum(
            1 for b in self._blocks.values() if b.document_id == document_id
        )

    def children_of(self, block_id: str) -> list[Block]:
        """Return the direct children of a block, in ``order``."""
        block = self._blocks.get(block_id)
        if block is None:
            return []
        return self._sorted_group((block.document_id, block.id))

    def roots_of(self, document_id: str) -> list[Block]:
        """Return the top-level blocks of a document, in ``order``."""
        return self._sorted_group((document_id, None))

    def depth_of(self, block: Block | str) -> int:
        """Return the nesting depth of a block (0 for top-level).

        Walks ``parent_id`` links iteratively; returns -1 for an unknown
        block.
        """
        current = (
            self._blocks.get(block) if isinstance(block, str) else block
        )
        if current is None:
            return -1
        depth = 0
        while current.parent_id is not None:
            parent = self._blocks.get(current.parent_id)
            if parent is None or depth > len(self._blocks):
                break
            depth += 1
            current = parent
        return depth

    def is_ancestor(self, ancestor_id: str, block_id: str) -> bool:
        """Return True if *ancestor_id* is a strict ancestor of *block_id*."""
        current = self._blocks.get(block_id)
        steps = 0
        while current is not None and current.parent_id is not None:
            if current.parent_id == ancestor_id:
                return True
            steps += 1
            if steps > len(self._blocks):
                break
            current = self._blocks.get(current.parent_id)
        return False

    def blocks_for_document(self, document_id: str) -> list[Block]:
        """Return every block of a document, collapsed subtrees included,
        in pre-order."""
        return self.flatten(document_id, include_collapsed=True)

    def flatten(
        self, document_id: str, include_collapsed: bool = False
    ) -> list[Block]:
        """Return the visible pre-order sequence of a document's blocks.

        Collapsed blocks appear but their descendants do not, unless
        *include_collapsed* is true.
        """
        blocks = [
            b for b in self._blocks.values() if b.document_id == document_id
        ]
        return [b for b, _ in iter_tree(blocks, include_collapsed)]

    # ------------------------------------------------------------------
    # Block mutations
    # ------------------------------------------------------------------

    def create_block(
        self,
        document_id: str,
        content: str = "",
        parent_id: str | None = None,
        order: int | None = None,
    ) -> Block:
        """Create a block.

        Without *order* the block is appended after its last sibling
        (``max(order) + 1``, or 0 for the first child).  An explicit
        *order* that collides with a sibling shifts that sibling and all
        later ones down by one.

        Raises:
            InvalidReferenceError: If the document does not exist or the
                parent is unknown or belongs to another document.
        """
        if document_id not in self._documents:
            raise InvalidReferenceError(f"Unknown document: {document_id}")
        if parent_id is not None:
            parent = self._blocks.get(parent_id)
            if parent is None:
                raise InvalidReferenceError(
                    f"Unknown parent block: {parent_id}"
                )
            if parent.document_id != document_id:
                raise InvalidReferenceError(
                    f"Parent block {parent_id} belongs to another document"
                )

        key = (document_id, parent_id)
        if order is None:
            order = self._next_order(key)
        else:
            self._make_room(key, order)

        now = utcnow()
        block = Block(
            content=content,
            parent_id=parent_id,
            document_id=document_id,
            order=order,
            created_at=now,
            updated_at=now,
        )
        self._blocks[block.id] = block
        self._children[key].add(block.id)
        self._touch(document_id, now)
        return block

    def update_content(self, block_id: str, content: str) -> MutationResult:
        """Replace a block's content; no structural change."""
        block = self._blocks.get(block_id)
        if block is None:
            return MutationResult.NOT_FOUND
        now = utcnow()
        self._blocks[block_id] = block.model_copy(
            update={"content": content, "updated_at": now}
        )
        self._touch(block.document_id, now)
        return MutationResult.APPLIED

    def toggle_collapse(self, block_id: str) -> MutationResult:
        """Flip the ``collapsed`` flag of a block."""
        block = self._blocks.get(block_id)
        if block is None:
            return MutationResult.NOT_FOUND
        now = utcnow()
        self._blocks[block_id] = block.model_copy(
            update={"collapsed": not block.collapsed, "updated_at": now}
        )
        self._touch(block.document_id, now)
        return MutationResult.APPLIED

    def delete_block(self, block_id: str) -> int:
        """Delete a block and its whole subtree.

        Descendants are removed depth-first before the block itself.

        Returns:
            Number of blocks removed (0 if *block_id* is unknown).
        """
        block = self._blocks.get(block_id)
        if block is None:
            return 0

        # Iterative post-order: collect pre-order, then delete reversed.
        collected: list[str] = []
        stack = [block_id]
        while stack:
            current = stack.pop()
            collected.append(current)
            stack.extend(
                self._children.get((block.document_id, current), ())
            )
        for doomed in reversed(collected):
            self._drop(doomed)

        self._touch(block.document_id, utcnow())
        return len(collected)

    def move(
        self, block_id: str, new_parent_id: str | None, new_order: int
    ) -> MutationResult:
        """Re-parent and/or reorder a block.

        Rejected when the target parent is the block itself, one of its
        descendants, or lives in another document.  A colliding
        *new_order* shifts the target sibling and all later ones by one.
        """
        block = self._blocks.get(block_id)
        if block is None:
            return MutationResult.NOT_FOUND
        if new_parent_id is not None:
            parent = self._blocks.get(new_parent_id)
            if parent is None:
                return MutationResult.NOT_FOUND
            if parent.document_id != block.document_id:
                return MutationResult.REJECTED
            if new_parent_id == block_id or self.is_ancestor(
                block_id, new_parent_id
            ):
                logger.debug(
                    "Rejected move of %s under its own subtree", block_id
                )
                return MutationResult.REJECTED
        if block.parent_id == new_parent_id and block.order == new_order:
            return MutationResult.NOOP

        self._place(block, new_parent_id, new_order)
        return MutationResult.APPLIED

    def indent(self, block_id: str) -> MutationResult:
        """Make a block the last child of its preceding sibling.

        ``NOOP`` when the block is already the first of its siblings.
        """
        block = self._blocks.get(block_id)
        if block is None:
            return MutationResult.NOT_FOUND
        siblings = self._sorted_group((block.document_id, block.parent_id))
        index = next(i for i, b in enumerate(siblings) if b.id == block_id)
        if index == 0:
            return MutationResult.NOOP

        new_parent = siblings[index - 1]
        new_order = self._next_order((block.document_id, new_parent.id))
        self._place(block, new_parent.id, new_order)
        return MutationResult.APPLIED

    def outdent(self, block_id: str) -> MutationResult:
        """Make a block the sibling immediately after its former parent.

        The block takes the slot of the parent's next sibling, and that
        sibling and every later one shift down by one.  ``NOOP`` for a
        top-level block.
        """
        block = self._blocks.get(block_id)
        if block is None:
            return MutationResult.NOT_FOUND
        if block.parent_id is None:
            return MutationResult.NOOP
        parent = self._blocks.get(block.parent_id)
        if parent is None:
            return MutationResult.NOT_FOUND

        later = [
            b
            for b in self._sorted_group(
                (parent.document_id, parent.parent_id)
            )
            if sibling_key(b) > sibling_key(parent)
        ]
        new_order = later[0].order if later else parent.order + 1
        for sibling in later:
            self._set_order(sibling, sibling.order + 1)
        self._place(block, parent.parent_id, new_order)
        return MutationResult.APPLIED

    def compact_orders(self, document_id: str) -> int:
        """Renumber every sibling group of a document to 0..n-1.

        Returns:
            Number of blocks whose ``order`` changed.
        """
        changed = 0
        for key in [k for k in self._children if k[0] == document_id]:
            for index, block in enumerate(self._sorted_group(key)):
                if block.order != index:
                    self._set_order(block, index)
                    changed += 1
        return changed

    def replace_document_blocks(
        self, document_id: str, blocks: Iterable[Block]
    ) -> list[Block]:
        """Replace all blocks of a document in one step.

        Used by import.  Blocks whose id already exists in the document
        keep their ``collapsed`` flag and ``created_at``.  Ids owned by
        another document (or repeated within *blocks*) are re-issued and
        children are remapped.  Parents missing from *blocks* make the
        block top-level; duplicate sibling orders are renumbered.

        Raises:
            InvalidReferenceError: If the document does not exist.
        """
        if document_id not in self._documents:
            raise InvalidReferenceError(f"Unknown document: {document_id}")

        previous = {
            b.id: b
            for b in self._blocks.values()
            if b.document_id == document_id
        }
        for block_id in previous:
            self._drop(block_id)

        # Incoming blocks arrive parent-first, so a child always resolves its
        # parent through the most recent mapping of that id.
        current: dict[str, str] = {}
        staged: list[Block] = []
        used: set[str] = set()
        for block in blocks:
            final_id = block.id
            if final_id in self._blocks or final_id in used:
                final_id = new_id()
                logger.debug(
                    "Re-issued block id %s as %s in document %s",
                    block.id,
                    final_id,
                    document_id,
                )
            current[block.id] = final_id
            used.add(final_id)
            parent_id = block.parent_id
            if parent_id is not None:
                parent_id = current.get(parent_id, parent_id)
            update = {
                "id": final_id,
                "parent_id": parent_id,
                "document_id": document_id,
            }
            kept = previous.get(final_id)
            if kept is not None:
                update["collapsed"] = kept.collapsed
                update["created_at"] = kept.created_at
            staged.append(block.model_copy(update=update))

        staged_ids = {b.id for b in staged}
        parents = {b.id: b.parent_id for b in staged}
        for block in staged:
            parent_id = block.parent_id
            if parent_id is not None and (
                parent_id not in staged_ids
                or _closes_cycle(block.id, parents)
            ):
                parents[block.id] = None
                block = block.model_copy(update={"parent_id": None})
            self._blocks[block.id] = block
            self._children[(document_id, block.parent_id)].add(block.id)

        for key in [k for k in self._children if k[0] == document_id]:
            group = self._sorted_group(key)
            if len({b.order for b in group}) != len(group):
                for index, block in enumerate(group):
                    self._set_order(block, index)

        return self.blocks_for_document(document_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _sorted_group(self, key: SiblingKey) -> list[Block]:
        return sorted(
            (self._blocks[i] for i in self._children.get(key, ())),
            key=sibling_key,
        )

    def _next_order(self, key: SiblingKey) -> int:
        orders = [self._blocks[i].order for i in self._children.get(key, ())]
        return max(orders) + 1 if orders else 0

    def _make_room(
        self, key: SiblingKey, order: int, exclude: str | None = None
    ) -> None:
        """Shift siblings at or after *order* down by one if *order* is taken."""
        group = [b for b in self._sorted_group(key) if b.id != exclude]
        if not any(b.order == order for b in group):
            return
        for sibling in group:
            if sibling.order >= order:
                self._set_order(sibling, sibling.order + 1)

    def _set_order(self, block: Block, order: int) -> None:
        current = self._blocks[block.id]
        self._blocks[block.id] = current.model_copy(update={"order": order})

    def _place(
        self, block: Block, parent_id: str | None, order: int
    ) -> None:
        """Detach *block* from its sibling group and insert it elsewhere."""
        old_key = (block.document_id, block.parent_id)
        new_key = (block.document_id, parent_id)
        self._children[old_key].discard(block.id)
        self._make_room(new_key, order, exclude=block.id)
        now = utcnow()
        self._blocks[block.id] = self._blocks[block.id].model_copy(
            update={"parent_id": parent_id, "order": order, "updated_at": now}
        )
        self._children[new_key].add(block.id)
        self._touch(block.document_id, now)

    def _drop(self, block_id: str) -> None:
        block = self._blocks.pop(block_id)
        key = (block.document_id, block.parent_id)
        self._children[key].discard(block_id)
        if not self._children[key]:
            del self._children[key]
        self._children.pop((block.document_id, block_id), None)

    def _touch(self, document_id: str, when: datetime) -> None:
        document = self._documents.get(document_id)
        if document is not None:
            self._documents[document_id] = document.model_copy(
                update={"updated_at": when}
            )


def _closes_cycle(block_id: str, parents: dict[str, str | None]) -> bool:
    """Return True if following *parents* from *block_id* loops back."""
    current = parents.get(block_id)
    for _ in range(len(parents)):
        if current is None:
            return False
        if current == block_id:
            return True
        current = parents.get(current)
    return True
