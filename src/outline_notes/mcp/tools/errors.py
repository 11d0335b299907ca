"""Error response builders and shared utilities for MCP tool handlers.

Structured error responses carry a corrective action so agents can
recover without human intervention.
"""

from datetime import datetime, timezone
from typing import Any

import mcp.types as types


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (not_found, validation_error, conflict,
            server_error, unknown_tool)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("not_found", "Page 'x' not found", "Use page_list to find pages.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def page_not_found(document_id: str) -> types.CallToolResult:
    return build_error_response(
        "not_found",
        f"Page '{document_id}' not found",
        "Use page_list to find available pages.",
    )


def block_not_found(block_id: str) -> types.CallToolResult:
    return build_error_response(
        "not_found",
        f"Block '{block_id}' not found",
        "Use page_get to list the page's blocks and their ids.",
    )


# ---------------------------------------------------------------------------
# Shared formatting utilities
# ---------------------------------------------------------------------------


def format_timestamp(timestamp: Any) -> str:
    """Format timestamp for display.

    Handles datetime objects and Unix timestamps (int/float). Uses
    timezone-aware UTC conversion.

    Returns:
        Formatted date string (YYYY-MM-DD HH:MM)
    """
    match timestamp:
        case datetime() as dt:
            return dt.strftime("%Y-%m-%d %H:%M")
        case int() | float() as ts:
            dt = datetime.fromtimestamp(ts, tz=timezone.utc)
            return dt.strftime("%Y-%m-%d %H:%M")
        case _:
            return str(timestamp)
