"""MCP tool handlers for outline notes.

This package contains MCP tool implementations that wrap the block store
and sync engine with async handlers and structured error responses.
"""

from .blocks import BLOCK_SPECS, BLOCK_TOOLS
from .errors import build_error_response
from .pages import PAGE_SPECS, PAGE_TOOLS
from .registry import ToolRegistry, ToolSpec, load_permissions_file
from .sync import SYNC_SPECS, SYNC_TOOLS

ALL_SPECS: list[ToolSpec] = PAGE_SPECS + BLOCK_SPECS + SYNC_SPECS

__all__ = [
    "ALL_SPECS",
    "BLOCK_SPECS",
    "BLOCK_TOOLS",
    "PAGE_SPECS",
    "PAGE_TOOLS",
    "SYNC_SPECS",
    "SYNC_TOOLS",
    "ToolRegistry",
    "ToolSpec",
    "build_error_response",
    "load_permissions_file",
]
