"""Page resource handlers for MCP server.

Exposes pages as read-only resources.  ``outline://page/{document_id}``
returns the page exactly as it is written to the vault;
``outline://page/_index`` lists all pages.
"""

from urllib.parse import unquote

import mcp.types as types
from pydantic_core import Url

from ...codec.markdown import serialize_document
from ...codec.naming import generate_filename, location_for_kind
from ...store.tree import BlockStore
from ..tools.errors import format_timestamp

PAGE_URI_PREFIX = "outline://page/"
INDEX_NAME = "_index"

# Resource definitions for list_resources()
PAGE_RESOURCES = [
    types.Resource(
        uri="outline://page/{document_id}",  # type: ignore[arg-type]  # MCP AnyUrl/Url type mismatch
        name="Page",
        description=(
            "Read a page as Markdown (the same text written to the vault). "
            "Example: outline://page/3f2c9a4e-..."
        ),
        mimeType="text/markdown",
    ),
    types.Resource(
        uri="outline://page/_index",  # type: ignore[arg-type]  # MCP AnyUrl/Url type mismatch
        name="Page Index",
        description=(
            "List all pages with their ids and vault files. "
            "Use this to discover pages before reading them."
        ),
        mimeType="text/plain",
    ),
]


async def handle_list_page_resources() -> list[types.Resource]:
    """List available page resources."""
    return PAGE_RESOURCES


async def handle_read_page_resource(
    uri: Url, store: BlockStore, indent_size: int = 2
) -> str:
    """Read a page resource by URI.

    Returns:
        Serialized page text, the page index, or an error message.
    """
    path = str(uri)
    if path.startswith(PAGE_URI_PREFIX):
        path = path[len(PAGE_URI_PREFIX) :]
    document_id = unquote(path.split("?", 1)[0])

    if document_id == INDEX_NAME:
        return _build_page_index(store)

    document = store.get_document(document_id)
    if document is None:
        return (
            f"Error (not_found): Page '{document_id}' not found.\n\n"
            f"Hint: Read {PAGE_URI_PREFIX}{INDEX_NAME} to list pages."
        )
    return serialize_document(
        document,
        store.blocks_for_document(document.id),
        indent_size=indent_size,
    )


def _build_page_index(store: BlockStore) -> str:
    documents = store.list_documents()
    if not documents:
        return "# Pages\n\n(no pages)"
    lines = ["# Pages", ""]
    for document in documents:
        resource = (
            f"{location_for_kind(document.kind)}/{generate_filename(document)}"
        )
        lines.append(
            f"- {document.title} [{document.id}] {resource} "
            f"(updated {format_timestamp(document.updated_at)})"
        )
    return "\n".join(lines)
