"""Outline <-> Markdown text codec.

A document is written as a ``---``-delimited header of ``key: "value"``
pairs followed by a nested bullet list::

    ---
    id: "3f2a..."
    title: "Project ideas"
    type: "note"
    created: "2024-05-01T09:00:00+00:00"
    updated: "2024-05-01T09:30:00+00:00"
    ---

    - First block ^b1
      - Nested block
        second line of the nested block ^b2

Each block starts with a ``- `` marker indented one unit per depth level.
Continuation lines carry one extra unit of indentation.  The block id is
appended as `` ^<id>`` to the block's last physical line.

Parsing never raises: malformed headers fall back to defaults, missing
ids are synthesized and depth jumps are clamped to the nearest valid
parent.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from datetime import datetime, timezone

import yaml
from pydantic import BaseModel

from ..store.models import Block, Document, DocumentKind, new_id
from ..store.traversal import iter_tree
from .naming import title_from_filename

logger = logging.getLogger(__name__)

HEADER_DELIMITER = "---"
DEFAULT_INDENT_SIZE = 2

_MARKER_LINE = re.compile(r"^-(?: (?P<rest>.*))?$")
_ID_SUFFIX = re.compile(r" \^(?P<id>[A-Za-z0-9_-]+)\s*$")
_NEEDS_ESCAPE = re.compile(r"^\s*(?:-(?: |$)|\\)")
_HEADER_LINE = re.compile(r"^(?P<key>[A-Za-z_][\w-]*)\s*:\s*(?P<value>.*)$")


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------


class DocumentMetadata(BaseModel):
    """Header fields recovered from a document.

    Fields absent from the header are ``None`` so importers can fall back
    to values they already hold.
    """

    id: str
    title: str | None = None
    kind: DocumentKind | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"frozen": True}


class ParsedDocument(BaseModel):
    """Output of ``deserialize_document``.

    Attributes:
        metadata: Header fields.
        id_synthesized: True when the header had no usable id.
        blocks: Blocks in pre-order, with parents before children.
    """

    metadata: DocumentMetadata
    id_synthesized: bool = False
    blocks: list[Block] = []

    model_config = {"frozen": True}


class ValidationResult(BaseModel):
    valid: bool
    errors: list[str] = []

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Serialize
# ---------------------------------------------------------------------------


def serialize_document(
    document: Document,
    blocks: Iterable[Block],
    *,
    indent_size: int = DEFAULT_INDENT_SIZE,
    include_block_ids: bool = True,
) -> str:
    """Render *document* and its blocks as Markdown text.

    Every block is written, including descendants of collapsed blocks.

    Args:
        document: Document whose metadata goes into the header.
        blocks: All blocks of the document, in any order.
        indent_size: Spaces per depth level.
        include_block_ids: Append `` ^<id>`` markers.
    """
    if indent_size < 1:
        raise ValueError(f"indent_size must be positive, got {indent_size}")

    header = [
        HEADER_DELIMITER,
        _header_pair("id", document.id),
        _header_pair("title", document.title),
        _header_pair("type", document.kind.value),
        _header_pair("created", document.created_at.isoformat()),
        _header_pair("updated", document.updated_at.isoformat()),
        HEADER_DELIMITER,
    ]

    body: list[str] = []
    unit = " " * indent_size
    for block, depth in iter_tree(blocks, include_collapsed=True):
        prefix = unit * depth
        lines = block.content.split("\n")
        if include_block_ids:
            lines[-1] = f"{lines[-1]} ^{block.id}"
        body.append(f"{prefix}- {lines[0]}")
        for line in lines[1:]:
            if line == "":
                body.append("")
                continue
            if _NEEDS_ESCAPE.match(line):
                line = "\\" + line
            body.append(f"{prefix}{unit}{line}")

    text = "\n".join(header) + "\n\n"
    if body:
        text += "\n".join(body) + "\n"
    return text


def _header_pair(key: str, value: str) -> str:
    return f"{key}: {json.dumps(value, ensure_ascii=False)}"


# ---------------------------------------------------------------------------
# Deserialize
# ---------------------------------------------------------------------------


def deserialize_document(
    text: str,
    filename: str | None = None,
    *,
    indent_size: int = DEFAULT_INDENT_SIZE,
) -> ParsedDocument:
    """Parse Markdown text into metadata and blocks.

    Args:
        text: Full resource text.
        filename: Resource name, used for a fallback title.
        indent_size: Spaces per depth level; tabs count as one level.

    Returns:
        ParsedDocument whose blocks reference ``metadata.id``.
    """
    lines = _normalise(text).split("\n")
    header_lines, body_lines = _split_header(lines)
    fields = _parse_header(header_lines) if header_lines is not None else {}

    raw_id = fields.get("id")
    document_id = str(raw_id).strip() if raw_id not in (None, "") else ""
    id_synthesized = not document_id
    if id_synthesized:
        document_id = new_id()

    kind = _parse_kind(fields.get("type", fields.get("kind")))
    title = fields.get("title")
    title = str(title) if title not in (None, "") else None
    if title is None and filename:
        title = title_from_filename(filename, kind or DocumentKind.NOTE)

    metadata = DocumentMetadata(
        id=document_id,
        title=title,
        kind=kind,
        created_at=_parse_datetime(fields.get("created")),
        updated_at=_parse_datetime(fields.get("updated")),
    )
    blocks = _parse_body(body_lines, document_id, indent_size)
    return ParsedDocument(
        metadata=metadata, id_synthesized=id_synthesized, blocks=blocks
    )


def validate_document(text: str) -> ValidationResult:
    """Structural check run before a full import.

    A valid document has a delimited, non-empty header carrying an id.
    """
    errors: list[str] = []
    lines = _normalise(text).split("\n")
    header_lines, _ = _split_header(lines)
    if header_lines is None:
        errors.append("Missing header delimited by '---' lines")
    elif not any(line.strip() for line in header_lines):
        errors.append("Header is empty")
    else:
        fields = _parse_header(header_lines)
        raw_id = fields.get("id")
        if raw_id in (None, "") or not str(raw_id).strip():
            errors.append("Header has no 'id' field")
    return ValidationResult(valid=not errors, errors=errors)


def _normalise(text: str) -> str:
    return text.lstrip("\ufeff").replace("\r\n", "\n")


def _split_header(
    lines: list[str],
) -> tuple[list[str] | None, list[str]]:
    """Return ``(header_lines, body_lines)``; header is None if absent."""
    if not lines or lines[0].strip() != HEADER_DELIMITER:
        return None, lines
    for index in range(1, len(lines)):
        if lines[index].strip() == HEADER_DELIMITER:
            return lines[1:index], lines[index + 1 :]
    return None, lines


def _parse_header(lines: list[str]) -> dict:
    """Parse header lines with YAML, falling back to ``key: value`` lines."""
    try:
        loaded = yaml.safe_load("\n".join(lines))
    except yaml.YAMLError as exc:
        logger.debug("Header is not valid YAML, using line parser: %s", exc)
        loaded = None
    if isinstance(loaded, dict):
        return {str(k): v for k, v in loaded.items()}

    fields: dict = {}
    for line in lines:
        match = _HEADER_LINE.match(line.strip())
        if match is None:
            continue
        fields[match.group("key")] = _unquote(match.group("value").strip())
    return fields


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value[1:-1]
    if len(value) >= 2 and value[0] == value[-1] == "'":
        return value[1:-1]
    return value


def _parse_kind(value) -> DocumentKind | None:
    if value is None:
        return None
    try:
        return DocumentKind(str(value).strip().lower())
    except ValueError:
        logger.debug("Ignoring unknown document type %r", value)
        return None


def _parse_datetime(value) -> datetime | None:
    """Accept ISO-8601 strings or YAML-decoded datetimes; naive means UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip())
        except ValueError:
            logger.debug("Ignoring unparseable timestamp %r", value)
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class _PendingBlock:
    """Block being accumulated while scanning the body."""

    __slots__ = ("raw_depth", "indent_width", "lines", "parent_id", "order")

    def __init__(self, raw_depth: int, indent_width: int, first_line: str):
        self.raw_depth = raw_depth
        self.indent_width = indent_width
        self.lines = [first_line]
        self.parent_id: str | None = None
        self.order = 0


def _parse_body(
    lines: list[str], document_id: str, indent_size: int
) -> list[Block]:
    unit = max(indent_size, 1)
    blocks: list[Block] = []
    used_ids: set[str] = set()
    # (raw_depth, block_id) of blocks that can still adopt children.
    ancestors: list[tuple[int, str]] = []
    sibling_counts: dict[str | None, int] = {}
    pending: _PendingBlock | None = None

    def close(block: _PendingBlock) -> None:
        content_lines = list(block.lines)
        while len(content_lines) > 1 and not content_lines[-1].strip():
            content_lines.pop()
        block_id = None
        match = _ID_SUFFIX.search(content_lines[-1])
        if match is not None:
            block_id = match.group("id")
            content_lines[-1] = content_lines[-1][: match.start()]
        if block_id is None or block_id in used_ids:
            if block_id is not None:
                logger.debug("Duplicate block id %s re-issued", block_id)
            block_id = new_id()
        used_ids.add(block_id)

        while ancestors and ancestors[-1][0] >= block.raw_depth:
            ancestors.pop()
        parent_id = ancestors[-1][1] if ancestors else None
        order = sibling_counts.get(parent_id, 0)
        sibling_counts[parent_id] = order + 1
        ancestors.append((block.raw_depth, block_id))

        blocks.append(
            Block(
                id=block_id,
                content="\n".join(content_lines),
                parent_id=parent_id,
                document_id=document_id,
                order=order,
            )
        )

    for raw_line in lines:
        expanded, width = _expand_indent(raw_line, unit)
        stripped = expanded[width:]
        marker = _MARKER_LINE.match(stripped)
        if marker is not None:
            if pending is not None:
                close(pending)
            pending = _PendingBlock(
                width // unit, width, marker.group("rest") or ""
            )
            continue

        if pending is None:
            # Text before the first marker becomes a top-level block.
            if not stripped:
                continue
            pending = _PendingBlock(0, 0, _unescape(stripped))
            continue

        if not raw_line:
            pending.lines.append("")
            continue
        cut = _indent_chars(raw_line, pending.indent_width + unit, unit)
        pending.lines.append(_unescape(raw_line[cut:]))

    if pending is not None:
        close(pending)
    return blocks


def _expand_indent(line: str, unit: int) -> tuple[str, int]:
    """Expand leading tabs to one indentation unit each.

    Returns the expanded line and the width of its leading whitespace.
    """
    index = 0
    prefix: list[str] = []
    while index < len(line) and line[index] in " \t":
        prefix.append(" " * unit if line[index] == "\t" else " ")
        index += 1
    leading = "".join(prefix)
    return leading + line[index:], len(leading)


def _indent_chars(line: str, width: int, unit: int) -> int:
    """Number of leading characters of *line* that make up *width* columns.

    Whitespace past *width* belongs to the content and is kept verbatim.
    """
    index = 0
    consumed = 0
    while index < len(line) and line[index] in " \t" and consumed < width:
        consumed += unit if line[index] == "\t" else 1
        index += 1
    return index


def _unescape(line: str) -> str:
    return line[1:] if line.startswith("\\") else line
