"""Page links (``[[Title]]``) embedded in block content.

Link syntax is opaque to the tree itself; these helpers only read block
content and create placeholder documents for link targets that do not
exist yet.
"""

from __future__ import annotations

import logging
import re

from .models import Block, Document, DocumentKind
from .tree import BlockStore

logger = logging.getLogger(__name__)

_LINK_PATTERN = re.compile(r"\[\[([^\[\]]+?)\]\]")


def extract_page_links(content: str) -> list[str]:
    """Return the distinct link targets in *content*, in first-seen order."""
    titles: list[str] = []
    for match in _LINK_PATTERN.finditer(content):
        title = match.group(1).strip()
        if title and title not in titles:
            titles.append(title)
    return titles


def ensure_link_targets(store: BlockStore, content: str) -> list[Document]:
    """Create reference documents for links in *content* that lack a target.

    Returns:
        The documents that were newly created.
    """
    created: list[Document] = []
    for title in extract_page_links(content):
        if store.find_document_by_title(title) is not None:
            continue
        document = store.create_document(
            title, DocumentKind.NOTE, is_reference=True
        )
        logger.debug("Created reference page for link [[%s]]", title)
        created.append(document)
    return created


def backlinks(store: BlockStore, document_id: str) -> list[Block]:
    """Return blocks in other documents that link to *document_id*."""
    document = store.get_document(document_id)
    if document is None:
        return []
    found: list[Block] = []
    for other in store.list_documents():
        if other.id == document_id:
            continue
        for block in store.blocks_for_document(other.id):
            if document.title in extract_page_links(block.content):
                found.append(block)
    return found
