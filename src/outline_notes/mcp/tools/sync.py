"""MCP tool handlers for vault synchronisation.

Defines four tools:

- ``vault_sync`` -- run a full two-phase sync (import, then export).
- ``vault_sync_status`` -- current engine state.
- ``vault_conflict_check`` -- list pages whose file changed under an edit.
- ``vault_conflict_resolve`` -- resolve one page's conflict with a strategy.
"""

from __future__ import annotations

import logging
from typing import Any

import mcp.types as types

from ...sync.models import ConflictStrategy, SyncAction, SyncStatus
from ...sync.reporter import (
    format_conflict,
    format_sync_report,
    progress_to_json,
    report_to_json,
)
from ..lifespan import AppContext
from .errors import build_error_response, format_timestamp, page_not_found
from .registry import OUTLINE_VIEW, VAULT_SYNC, ToolSpec

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


SYNC_TOOLS: list[types.Tool] = [
    types.Tool(
        name="vault_sync",
        description=(
            "Synchronize the vault directory with the page store: import "
            "every changed file, then write every page. Conflicts are "
            "handled with the configured strategy."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="vault_sync_status",
        description=(
            "Show sync state -- status, last sync time, files scanned, "
            "pending exports and whether the vault is being watched."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="vault_conflict_check",
        description=(
            "List pages whose vault file was changed outside this server "
            "after the page was last written, including unresolved merges."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="vault_conflict_resolve",
        description=(
            "Resolve a page's conflict. file-wins imports the file, "
            "database-wins rewrites the file from the store, merge does a "
            "three-way merge and reports when it cannot merge cleanly."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=False,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "document_id": {"type": "string", "description": "Page id"},
                "strategy": {
                    "type": "string",
                    "enum": [s.value for s in ConflictStrategy],
                    "description": "Resolution strategy (default: configured strategy)",
                },
            },
            "required": ["document_id"],
        },
    ),
]


# ---------------------------------------------------------------------------
# Individual handlers
# ---------------------------------------------------------------------------


async def _handle_vault_sync(
    ctx: AppContext, args: dict[str, Any]
) -> types.CallToolResult:
    report = await ctx.engine.full_sync()
    return types.CallToolResult(
        content=[
            types.TextContent(type="text", text=format_sync_report(report))
        ],
        structuredContent=report_to_json(report),
    )


async def _handle_vault_sync_status(
    ctx: AppContext, args: dict[str, Any]
) -> types.CallToolResult:
    state = ctx.engine.get_state()
    last = (
        format_timestamp(state.last_sync_time)
        if state.last_sync_time
        else "never"
    )
    lines = [
        f"Vault: {ctx.config.vault_path}",
        f"Status: {state.status.value}",
        f"Last sync: {last}",
        f"Files scanned: {state.files_scanned}",
        f"Files synced: {state.files_synced}",
        f"Pending exports: {state.pending_exports}",
        f"Watching: {'yes' if state.watching else 'no'}",
        f"Conflict strategy: {ctx.engine.conflict_strategy.value}",
    ]
    if state.status == SyncStatus.ERROR and state.message:
        lines.append(f"Last error: {state.message}")
    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent=progress_to_json(state),
    )


async def _handle_conflict_check(
    ctx: AppContext, args: dict[str, Any]
) -> types.CallToolResult:
    conflicts = await ctx.engine.check_conflicts()
    if not conflicts:
        return types.CallToolResult(
            content=[types.TextContent(type="text", text="No conflicts.")],
            structuredContent={"conflicts": []},
        )
    text = "\n\n".join(format_conflict(c) for c in conflicts)
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent={
            "conflicts": [
                c.model_dump(
                    mode="json",
                    exclude={"base_content", "file_content", "store_content"},
                )
                for c in conflicts
            ]
        },
    )


async def _handle_conflict_resolve(
    ctx: AppContext, args: dict[str, Any]
) -> types.CallToolResult:
    document_id = args.get("document_id")
    if not document_id:
        raise ValueError("document_id is required")
    strategy = args.get("strategy")
    if strategy is not None:
        strategy = ConflictStrategy(strategy)
    if ctx.store.get_document(document_id) is None:
        return page_not_found(document_id)

    result = await ctx.engine.resolve_conflict(document_id, strategy)
    if not result.success:
        return build_error_response(
            "server_error",
            f"Could not resolve {result.location}/{result.name}: {result.error}",
            "Check the server log, then retry or edit the file by hand.",
        )
    if result.action == SyncAction.CONFLICT:
        return build_error_response(
            "conflict",
            f"{result.location}/{result.name} could not be merged automatically",
            "Retry with strategy file-wins or database-wins, or edit the file by hand.",
        )
    return types.CallToolResult(
        content=[
            types.TextContent(
                type="text",
                text=f"Resolved {result.location}/{result.name}: {result.action.value}",
            )
        ],
        structuredContent={
            "document_id": document_id,
            "action": result.action.value,
        },
    )


# ToolSpec list for registry-based dispatch
SYNC_SPECS: list[ToolSpec] = [
    ToolSpec(
        tool=SYNC_TOOLS[0],
        permissions=frozenset({VAULT_SYNC}),
        handler=_handle_vault_sync,
    ),
    ToolSpec(
        tool=SYNC_TOOLS[1],
        permissions=frozenset({OUTLINE_VIEW}),
        handler=_handle_vault_sync_status,
    ),
    ToolSpec(
        tool=SYNC_TOOLS[2],
        permissions=frozenset({OUTLINE_VIEW}),
        handler=_handle_conflict_check,
    ),
    ToolSpec(
        tool=SYNC_TOOLS[3],
        permissions=frozenset({VAULT_SYNC}),
        handler=_handle_conflict_resolve,
    ),
]
