"""Block tool handlers for MCP server.

Structural edits on the outline tree: create, update, delete, indent,
outdent, move and collapse.  Each successful edit schedules a debounced
export of the owning page; content edits also create placeholder pages
for new ``[[links]]``.
"""

import logging

import mcp.types as types

from ...store.links import ensure_link_targets
from ...store.models import Block, MutationResult
from ...validators import validate_content, validate_identifier
from ..lifespan import AppContext
from .errors import block_not_found, build_error_response, page_not_found
from .registry import OUTLINE_EDIT, ToolSpec

logger = logging.getLogger(__name__)

_BLOCK_ID_SCHEMA = {
    "type": "string",
    "description": "Block id (from page_get)",
}


def _block_id_tool(name: str, description: str, idempotent: bool) -> types.Tool:
    return types.Tool(
        name=name,
        description=description,
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=idempotent,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {"block_id": _BLOCK_ID_SCHEMA},
            "required": ["block_id"],
        },
    )


# Tool definitions for list_tools()
BLOCK_TOOLS = [
    types.Tool(
        name="block_create",
        description="Create a block on a page. Without parent_id the block is top-level; without order it is appended after its last sibling.",
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=False,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "document_id": {"type": "string", "description": "Page id"},
                "content": {
                    "type": "string",
                    "description": "Block text; may span lines and contain [[Page]] links",
                    "default": "",
                },
                "parent_id": {
                    "type": "string",
                    "description": "Parent block id (optional)",
                },
                "order": {
                    "type": "integer",
                    "description": "Sibling position (optional); later siblings shift down",
                    "minimum": 0,
                },
            },
            "required": ["document_id"],
        },
    ),
    types.Tool(
        name="block_update",
        description="Replace the text of a block. Structure is unchanged.",
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "block_id": _BLOCK_ID_SCHEMA,
                "content": {"type": "string", "description": "New block text"},
            },
            "required": ["block_id", "content"],
        },
    ),
    types.Tool(
        name="block_delete",
        description="Delete a block together with all of its children.",
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {"block_id": _BLOCK_ID_SCHEMA},
            "required": ["block_id"],
        },
    ),
    _block_id_tool(
        "block_indent",
        "Make a block the last child of the sibling above it. No change for a first sibling.",
        idempotent=False,
    ),
    _block_id_tool(
        "block_outdent",
        "Move a block out one level, right after its former parent. No change for a top-level block.",
        idempotent=False,
    ),
    types.Tool(
        name="block_move",
        description="Move a block under a new parent (null for top level) at a sibling position. Moves under the block's own children are rejected.",
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "block_id": _BLOCK_ID_SCHEMA,
                "parent_id": {
                    "type": ["string", "null"],
                    "description": "New parent block id, or null for top level",
                },
                "order": {
                    "type": "integer",
                    "description": "New sibling position",
                    "minimum": 0,
                },
            },
            "required": ["block_id", "order"],
        },
    ),
    _block_id_tool(
        "block_toggle_collapse",
        "Collapse or expand a block. Children are kept either way.",
        idempotent=False,
    ),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _require_block_id(args: dict) -> str:
    block_id = args.get("block_id")
    is_valid, error = validate_identifier(block_id or "", "block_id")
    if not is_valid:
        raise ValueError(error)
    return block_id


def _require_content(args: dict, default: str | None = None) -> str:
    content = args.get("content", default)
    if content is None:
        raise ValueError("content is required")
    is_valid, error = validate_content(content)
    if not is_valid:
        raise ValueError(error)
    return content


def _after_content_change(ctx: AppContext, block: Block) -> list[str]:
    created = ensure_link_targets(ctx.store, block.content)
    ctx.engine.schedule_export(block.document_id)
    return [d.title for d in created]


def _text_result(text: str, structured: dict | None = None) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=structured,
    )


def _structural_result(
    ctx: AppContext, block: Block, result: MutationResult, verb: str
) -> types.CallToolResult:
    """Turn a structural ``MutationResult`` into a tool response."""
    match result:
        case MutationResult.APPLIED:
            ctx.engine.schedule_export(block.document_id)
            moved = ctx.store.get_block(block.id)
            return _text_result(
                f"{verb} block {block.id}",
                {
                    "block_id": block.id,
                    "parent_id": moved.parent_id,
                    "order": moved.order,
                    "depth": ctx.store.depth_of(moved),
                },
            )
        case MutationResult.NOOP:
            return _text_result(
                f"Block {block.id} unchanged",
                {"block_id": block.id, "changed": False},
            )
        case MutationResult.REJECTED:
            return build_error_response(
                "validation_error",
                f"Cannot move block {block.id} there",
                "Pick a parent outside the block's own subtree on the same page.",
            )
        case _:
            return block_not_found(block.id)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_create(ctx: AppContext, args: dict) -> types.CallToolResult:
    """Handle block_create."""
    document_id = args.get("document_id")
    if not document_id:
        raise ValueError("document_id is required")
    if ctx.store.get_document(document_id) is None:
        return page_not_found(document_id)
    content = _require_content(args, default="")

    block = ctx.store.create_block(
        document_id,
        content,
        parent_id=args.get("parent_id"),
        order=args.get("order"),
    )
    created = _after_content_change(ctx, block)
    text = f"Created block {block.id}"
    if created:
        text += f"\nCreated linked pages: {', '.join(created)}"
    return _text_result(
        text,
        {
            "block_id": block.id,
            "document_id": document_id,
            "parent_id": block.parent_id,
            "order": block.order,
            "created_pages": created,
        },
    )


async def _handle_update(ctx: AppContext, args: dict) -> types.CallToolResult:
    """Handle block_update."""
    block_id = _require_block_id(args)
    content = _require_content(args)

    if not ctx.store.update_content(block_id, content):
        return block_not_found(block_id)
    created = _after_content_change(ctx, ctx.store.get_block(block_id))
    text = f"Updated block {block_id}"
    if created:
        text += f"\nCreated linked pages: {', '.join(created)}"
    return _text_result(
        text, {"block_id": block_id, "created_pages": created}
    )


async def _handle_delete(ctx: AppContext, args: dict) -> types.CallToolResult:
    """Handle block_delete."""
    block_id = _require_block_id(args)
    block = ctx.store.get_block(block_id)
    if block is None:
        return block_not_found(block_id)

    removed = ctx.store.delete_block(block_id)
    ctx.engine.schedule_export(block.document_id)
    return _text_result(
        f"Deleted {removed} block(s)",
        {"block_id": block_id, "removed": removed},
    )


def _structural_handler(operation: str, verb: str):
    async def handler(ctx: AppContext, args: dict) -> types.CallToolResult:
        block_id = _require_block_id(args)
        block = ctx.store.get_block(block_id)
        if block is None:
            return block_not_found(block_id)
        result = getattr(ctx.store, operation)(block_id)
        return _structural_result(ctx, block, result, verb)

    handler.__doc__ = f"Handle block_{operation}."
    return handler


async def _handle_move(ctx: AppContext, args: dict) -> types.CallToolResult:
    """Handle block_move."""
    block_id = _require_block_id(args)
    order = args.get("order")
    if not isinstance(order, int) or order < 0:
        raise ValueError("order must be a non-negative integer")
    block = ctx.store.get_block(block_id)
    if block is None:
        return block_not_found(block_id)

    parent_id = args.get("parent_id")
    if parent_id is not None and ctx.store.get_block(parent_id) is None:
        return block_not_found(parent_id)
    result = ctx.store.move(block_id, parent_id, order)
    return _structural_result(ctx, block, result, "Moved")


# ToolSpec list for registry-based dispatch
BLOCK_SPECS: list[ToolSpec] = [
    ToolSpec(
        tool=tool,
        permissions=frozenset({OUTLINE_EDIT}),
        handler=handler,
    )
    for tool, handler in zip(
        BLOCK_TOOLS,
        [
            _handle_create,
            _handle_update,
            _handle_delete,
            _structural_handler("indent", "Indented"),
            _structural_handler("outdent", "Outdented"),
            _handle_move,
            _structural_handler("toggle_collapse", "Toggled"),
        ],
    )
]
