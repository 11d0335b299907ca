"""Block tree store.

Authoritative in-memory representation of documents and their outline
trees.

Modules:

- ``models``    -- ``Block``, ``Document``, ``DocumentKind``,
  ``MutationResult``: core data contracts.
- ``tree``      -- ``BlockStore``: document and block operations.
- ``traversal`` -- ``iter_tree``: iterative pre-order walk.
- ``links``     -- ``[[link]]`` extraction, reference pages, backlinks.
- ``snapshot``  -- atomic JSON save/load of the whole store.
"""

from .errors import InvalidReferenceError
from .links import backlinks, ensure_link_targets, extract_page_links
from .models import Block, Document, DocumentKind, MutationResult
from .snapshot import SnapshotError, load_snapshot, save_snapshot
from .traversal import iter_tree
from .tree import BlockStore

__all__ = [
    "Block",
    "BlockStore",
    "Document",
    "DocumentKind",
    "InvalidReferenceError",
    "MutationResult",
    "SnapshotError",
    "backlinks",
    "ensure_link_targets",
    "extract_page_links",
    "iter_tree",
    "load_snapshot",
    "save_snapshot",
]
