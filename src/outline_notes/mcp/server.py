"""MCP Server for outline notes using stdio transport.

This module implements the Model Context Protocol server that lets AI
agents read and edit outline pages while the vault directory is kept in
sync in the background.

Transport: stdio (for Claude Desktop/Code integration)
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from pydantic_core import Url

from .. import __version__
from ..logger import setup_logging
from ..sync.reporter import format_sync_report
from .lifespan import AppContext, server_lifespan
from .resources import (
    handle_list_page_resources,
    handle_read_page_resource,
)
from .tools import (
    ALL_SPECS,
    ToolRegistry,
    build_error_response,
    load_permissions_file,
)

logger = logging.getLogger(__name__)

# Initialize server instance
server = Server("outline-notes")

# Global application context (initialized in main)
_app_context: AppContext | None = None

# Global registry instance (initialized in main)
_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_context() -> AppContext:
    """Get the global AppContext instance.

    Raises:
        RuntimeError: If the context is not initialized
    """
    if _app_context is None:
        raise RuntimeError(
            "AppContext not initialized. Server lifespan not started."
        )
    return _app_context


def set_context(ctx: AppContext | None) -> None:
    global _app_context
    _app_context = ctx


def get_registry() -> ToolRegistry:
    """Get the global ToolRegistry instance.

    Raises:
        RuntimeError: If registry is not initialized
    """
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List all registered (and permitted) tools."""
    return get_registry().list_tools()


@server.list_resources()
async def handle_list_resources() -> list[types.Resource]:
    """List page resources."""
    return await handle_list_page_resources()


@server.read_resource()  # type: ignore[arg-type]  # MCP Url type mismatch
async def handle_read_resource(uri: Url) -> str:
    """Read a page resource by URI.

    Supports:
    - outline://page/{document_id} - Page as vault Markdown
    - outline://page/_index - List all pages

    Raises:
        ValueError: If URI scheme or path is not recognized
    """
    if uri.scheme != "outline":
        raise ValueError(f"Unsupported URI scheme: {uri.scheme}")

    if uri.host == "page":
        ctx = get_context()
        return await handle_read_page_resource(
            uri, ctx.store, ctx.config.indent_size
        )

    raise ValueError(f"Unknown resource type: {uri.host}")


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Handle tool execution via ToolRegistry dispatch."""
    ctx = get_context()
    try:
        return await get_registry().call_tool(name, arguments, ctx)
    except ValueError as e:
        # Unknown or filtered-out tool name
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


def build_registry(permissions_file: str | None = None) -> ToolRegistry:
    """Build the tool registry, filtered by an optional permissions file."""
    allowed_permissions = None
    if permissions_file:
        allowed_permissions = load_permissions_file(permissions_file)
        logger.info(
            "Loaded %d permissions from %s",
            len(allowed_permissions),
            permissions_file,
        )

    registry = ToolRegistry(ALL_SPECS, allowed_permissions)
    logger.info(
        "Registered %d tools (of %d total)",
        registry.tool_count(),
        len(ALL_SPECS),
    )
    if permissions_file:
        print(
            f"Permissions file: {permissions_file} "
            f"({registry.tool_count()} of {len(ALL_SPECS)} tools enabled)",
            file=sys.stderr,
        )
    return registry


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Sets up logging for MCP mode (file only, never stdout), starts the
    store and sync engine via the lifespan manager, and serves JSON-RPC
    over stdio.  With ``sync_once`` the initial sync report is printed
    to stderr and the server exits without serving.

    Args:
        config_overrides: Optional dict with config values to override
            (vault, watch_interval, log_file, permissions_file, sync_once)
    """
    overrides = config_overrides or {}

    # Must run before stdio_server so nothing reaches stdout.
    setup_logging(
        mode="mcp",
        debug=overrides.get("debug", False),
        log_file=overrides.get("log_file"),
    )

    set_registry(build_registry(overrides.get("permissions_file")))

    # set_context() is called here rather than in the lifespan so that
    # running this file as __main__ updates the module the handlers use.
    async with server_lifespan(config_overrides=overrides) as ctx:
        if overrides.get("sync_once"):
            if ctx.initial_report is not None:
                print(format_sync_report(ctx.initial_report), file=sys.stderr)
            set_registry(None)
            return

        set_context(ctx)
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="outline-notes",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(read_stream, write_stream, init_options)
        finally:
            set_context(None)
            set_registry(None)


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Outline Notes MCP Server - outline pages kept in sync with a Markdown vault",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .outline_notes/config.yml)
  outline-notes-server

  # Serve a specific vault
  outline-notes-server --vault ~/notes

  # Import and export once, print the report, exit
  outline-notes-server --vault ~/notes --sync-once

  # Read-only tools
  outline-notes-server --permissions-file /etc/outline-notes/read-only.permissions

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr. Do not pipe stdin/stdout manually.
        """,
    )

    parser.add_argument(
        "--vault",
        help="Vault directory (takes precedence over OUTLINE_VAULT env var and config files)",
    )
    parser.add_argument(
        "--watch-interval",
        type=float,
        help="Seconds between checks for external file changes (default: 5)",
    )
    parser.add_argument(
        "--sync-once",
        action="store_true",
        help="Run one full sync, print the report to stderr and exit",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-file",
        default="/tmp/outline-notes.log",
        help="Log file path (default: /tmp/outline-notes.log)",
    )
    parser.add_argument(
        "--permissions-file",
        help="Path to permissions file restricting available tools. "
        "Format: one permission per line (OUTLINE_VIEW, OUTLINE_EDIT, VAULT_SYNC), # for comments. "
        "If not specified, all tools are available.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"outline-notes-server version {__version__}",
    )

    args = parser.parse_args()

    config_overrides = {}
    if args.vault:
        config_overrides["vault"] = args.vault
    if args.watch_interval is not None:
        config_overrides["watch_interval"] = args.watch_interval
    if args.sync_once:
        config_overrides["sync_once"] = True
    if args.debug:
        config_overrides["debug"] = True
    if args.log_file:
        config_overrides["log_file"] = args.log_file
    if args.permissions_file:
        config_overrides["permissions_file"] = args.permissions_file

    if config_overrides:
        print(
            f"Config overrides from CLI: {', '.join(config_overrides)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(main(config_overrides=config_overrides or None))
    except RuntimeError:
        # Error already printed to stderr by lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
