"""Mapping between documents and vault resource names.

Notes live under ``pages/``, daily journal entries under ``journals/``.
"""

from __future__ import annotations

import re

from ..store.models import Document, DocumentKind

PAGES_LOCATION = "pages"
JOURNALS_LOCATION = "journals"
EXTENSION = ".md"

_UNSAFE_CHARS = re.compile(r'[/\\:*?"<>|]')
_WHITESPACE_RUN = re.compile(r"\s+")


def generate_filename(document: Document) -> str:
    """Return the resource name for *document*.

    Daily entries use their title verbatim (``2024-05-01.md``).  Notes
    drop characters that are unsafe in file names and turn whitespace
    runs into ``-``.
    """
    if document.kind == DocumentKind.DAILY:
        return f"{document.title}{EXTENSION}"
    safe = _UNSAFE_CHARS.sub("", document.title)
    safe = _WHITESPACE_RUN.sub("-", safe.strip())
    return f"{safe or 'untitled'}{EXTENSION}"


def location_for_kind(kind: DocumentKind) -> str:
    if DocumentKind(kind) == DocumentKind.DAILY:
        return JOURNALS_LOCATION
    return PAGES_LOCATION


def kind_for_location(location: str, name: str | None = None) -> DocumentKind:
    """Infer a document kind from where its resource lives.

    *name* is accepted so callers can pass the full resource identity;
    only the location decides the kind.
    """
    if location == JOURNALS_LOCATION:
        return DocumentKind.DAILY
    return DocumentKind.NOTE


def title_from_filename(
    name: str, kind: DocumentKind = DocumentKind.NOTE
) -> str:
    """Best-effort title for a resource without a header title.

    Daily names are dates and are kept as-is; note names get their
    ``-`` separators turned back into spaces.
    """
    stem = name[: -len(EXTENSION)] if name.endswith(EXTENSION) else name
    if DocumentKind(kind) == DocumentKind.DAILY:
        return stem
    return stem.replace("-", " ").strip() or stem


def is_document_resource(name: str) -> bool:
    """Return True for names the sync engine should treat as documents."""
    return name.endswith(EXTENSION) and not name.startswith(".")
