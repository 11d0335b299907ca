"""Page tool handlers for MCP server.

This module implements page-level operations: list, get, create, delete
and today's journal.  Pages are read from the block store; every change
schedules a debounced export so the vault file follows the store.
"""

import logging

import mcp.types as types

from ...codec.markdown import serialize_document
from ...store.links import backlinks
from ...store.models import Block, Document, DocumentKind, utcnow
from ...store.traversal import iter_tree
from ...validators import parse_journal_date, validate_title
from ..lifespan import AppContext
from .errors import build_error_response, format_timestamp, page_not_found
from .registry import OUTLINE_EDIT, OUTLINE_VIEW, ToolSpec

logger = logging.getLogger(__name__)

# Tool definitions for list_tools()
PAGE_TOOLS = [
    types.Tool(
        name="page_list",
        description="List pages, most recently updated first. Returns id, title, kind and block count for each page.",
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "kind": {
                    "type": "string",
                    "enum": ["note", "daily"],
                    "description": "Only list pages of this kind (optional)",
                },
                "include_references": {
                    "type": "boolean",
                    "description": "Include placeholder pages created by [[links]] (default: true)",
                    "default": True,
                },
                "limit": {
                    "type": "integer",
                    "description": "Maximum pages to return (default: 50)",
                    "default": 50,
                    "minimum": 1,
                    "maximum": 500,
                },
            },
            "required": [],
        },
    ),
    types.Tool(
        name="page_get",
        description="Get a page as an outline of blocks with their ids. Set format=markdown for the exact file text written to the vault.",
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "document_id": {
                    "type": "string",
                    "description": "Page id (either document_id or title is required)",
                },
                "title": {
                    "type": "string",
                    "description": "Page title",
                },
                "format": {
                    "type": "string",
                    "enum": ["outline", "markdown"],
                    "default": "outline",
                },
                "include_collapsed": {
                    "type": "boolean",
                    "description": "Show children of collapsed blocks (default: true)",
                    "default": True,
                },
            },
            "required": [],
        },
    ),
    types.Tool(
        name="page_create",
        description="Create a page. Creating a page whose title exists only as a [[link]] placeholder turns the placeholder into a real page.",
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=False,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "title": {"type": "string", "description": "Page title"},
                "kind": {
                    "type": "string",
                    "enum": ["note", "daily"],
                    "default": "note",
                },
            },
            "required": ["title"],
        },
    ),
    types.Tool(
        name="page_delete",
        description="Delete a page with all its blocks and remove its file from the vault.",
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "document_id": {"type": "string", "description": "Page id"},
            },
            "required": ["document_id"],
        },
    ),
    types.Tool(
        name="journal_today",
        description="Get or create the journal page for a date (default: today, UTC).",
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "date": {
                    "type": "string",
                    "description": "Journal date as YYYY-MM-DD (optional)",
                },
            },
            "required": [],
        },
    ),
]


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _document_json(ctx: AppContext, document: Document) -> dict:
    return {
        "id": document.id,
        "title": document.title,
        "kind": document.kind.value,
        "is_reference": document.is_reference,
        "block_count": ctx.store.block_count(document.id),
        "created": document.created_at.isoformat(),
        "updated": document.updated_at.isoformat(),
    }


def _block_json(block: Block, depth: int) -> dict:
    return {
        "id": block.id,
        "content": block.content,
        "parent_id": block.parent_id,
        "order": block.order,
        "depth": depth,
        "collapsed": block.collapsed,
    }


def _outline_lines(pairs: list[tuple[Block, int]]) -> list[str]:
    lines = []
    for block, depth in pairs:
        marker = "+" if block.collapsed else "-"
        content_lines = block.content.split("\n")
        lines.append(
            f"{'  ' * depth}{marker} {content_lines[0]}  [{block.id}]"
        )
        for extra in content_lines[1:]:
            lines.append(f"{'  ' * (depth + 1)}{extra}")
    return lines


def _find_document(ctx: AppContext, args: dict) -> Document | None:
    document_id = args.get("document_id")
    if document_id:
        return ctx.store.get_document(document_id)
    title = args.get("title")
    if title:
        return ctx.store.find_document_by_title(title)
    raise ValueError("document_id or title is required")


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_list(ctx: AppContext, args: dict) -> types.CallToolResult:
    """Handle page_list."""
    kind = args.get("kind")
    include_references = args.get("include_references", True)
    limit = args.get("limit", 50)

    documents = ctx.store.list_documents()
    if kind:
        documents = [d for d in documents if d.kind.value == kind]
    if not include_references:
        documents = [d for d in documents if not d.is_reference]
    total = len(documents)
    documents = documents[:limit]

    if not documents:
        return types.CallToolResult(
            content=[types.TextContent(type="text", text="No pages found.")],
            structuredContent={"pages": [], "total": 0},
        )

    lines = [f"Pages ({len(documents)} of {total}):"]
    for document in documents:
        flag = " (reference)" if document.is_reference else ""
        lines.append(
            f"- {document.title}{flag} [{document.id}] "
            f"{document.kind.value}, updated {format_timestamp(document.updated_at)}"
        )
    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent={
            "pages": [_document_json(ctx, d) for d in documents],
            "total": total,
        },
    )


async def _handle_get(ctx: AppContext, args: dict) -> types.CallToolResult:
    """Handle page_get."""
    document = _find_document(ctx, args)
    if document is None:
        return page_not_found(args.get("document_id") or args.get("title"))

    blocks = ctx.store.blocks_for_document(document.id)
    if args.get("format", "outline") == "markdown":
        text = serialize_document(
            document, blocks, indent_size=ctx.config.indent_size
        )
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=text)],
            structuredContent={"page": _document_json(ctx, document)},
        )

    pairs = list(
        iter_tree(blocks, include_collapsed=args.get("include_collapsed", True))
    )
    linked = backlinks(ctx.store, document.id)
    lines = [
        f"Page: {document.title}",
        f"Id: {document.id}",
        f"Kind: {document.kind.value}",
        f"Updated: {format_timestamp(document.updated_at)}",
        "",
    ]
    lines.extend(_outline_lines(pairs) or ["(empty page)"])
    if linked:
        lines.extend(["", f"Linked references: {len(linked)}"])

    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent={
            "page": _document_json(ctx, document),
            "blocks": [_block_json(b, d) for b, d in pairs],
            "backlinks": [
                {"block_id": b.id, "document_id": b.document_id}
                for b in linked
            ],
        },
    )


async def _handle_create(ctx: AppContext, args: dict) -> types.CallToolResult:
    """Handle page_create."""
    title = (args.get("title") or "").strip()
    is_valid, error = validate_title(title)
    if not is_valid:
        return build_error_response(
            "validation_error", error, "Provide a different title."
        )
    kind = DocumentKind(args.get("kind", DocumentKind.NOTE.value))

    existing = ctx.store.find_document_by_title(title)
    if existing is not None and not existing.is_reference:
        return build_error_response(
            "already_exists",
            f"Page '{title}' already exists ({existing.id})",
            "Use page_get to open the existing page.",
        )
    if existing is not None:
        ctx.store.update_document(existing.id, is_reference=False, kind=kind)
        document = ctx.store.get_document(existing.id)
        verb = "Promoted reference page"
    else:
        document = ctx.store.create_document(title, kind)
        verb = "Created page"

    ctx.engine.schedule_export(document.id)
    logger.info("%s %s (%s)", verb, document.title, document.id)
    return types.CallToolResult(
        content=[
            types.TextContent(
                type="text", text=f"{verb}: {document.title} [{document.id}]"
            )
        ],
        structuredContent={"page": _document_json(ctx, document)},
    )


async def _handle_delete(ctx: AppContext, args: dict) -> types.CallToolResult:
    """Handle page_delete."""
    document_id = args.get("document_id")
    if not document_id:
        raise ValueError("document_id is required")
    document = ctx.store.get_document(document_id)
    if document is None:
        return page_not_found(document_id)

    result = await ctx.engine.remove_document(document_id)
    if not result.success:
        return build_error_response(
            "server_error",
            f"Deleted page '{document.title}' but its file could not be removed: {result.error}",
            "Delete the file from the vault manually.",
        )
    return types.CallToolResult(
        content=[
            types.TextContent(
                type="text",
                text=f"Deleted page: {document.title} ({result.location}/{result.name})",
            )
        ],
    )


async def _handle_journal(ctx: AppContext, args: dict) -> types.CallToolResult:
    """Handle journal_today."""
    day = parse_journal_date(args.get("date")) or utcnow().date()
    existed = ctx.store.find_document_by_title(day.isoformat())
    document = ctx.store.ensure_journal(day)
    if existed is None:
        ctx.engine.schedule_export(document.id)

    pairs = list(
        iter_tree(
            ctx.store.blocks_for_document(document.id), include_collapsed=True
        )
    )
    lines = [f"Journal: {document.title} [{document.id}]", ""]
    lines.extend(_outline_lines(pairs) or ["(empty page)"])
    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent={
            "page": _document_json(ctx, document),
            "blocks": [_block_json(b, d) for b, d in pairs],
        },
    )


# ToolSpec list for registry-based dispatch
PAGE_SPECS: list[ToolSpec] = [
    ToolSpec(
        tool=PAGE_TOOLS[0],
        permissions=frozenset({OUTLINE_VIEW}),
        handler=_handle_list,
    ),
    ToolSpec(
        tool=PAGE_TOOLS[1],
        permissions=frozenset({OUTLINE_VIEW}),
        handler=_handle_get,
    ),
    ToolSpec(
        tool=PAGE_TOOLS[2],
        permissions=frozenset({OUTLINE_EDIT}),
        handler=_handle_create,
    ),
    ToolSpec(
        tool=PAGE_TOOLS[3],
        permissions=frozenset({OUTLINE_EDIT}),
        handler=_handle_delete,
    ),
    ToolSpec(
        tool=PAGE_TOOLS[4],
        permissions=frozenset({OUTLINE_EDIT}),
        handler=_handle_journal,
    ),
]
