"""MCP resource handlers for outline notes.

Pages are exposed as read-only resources via URI templates.
"""

from .pages import (
    PAGE_RESOURCES,
    handle_list_page_resources,
    handle_read_page_resource,
)

__all__ = [
    "handle_list_page_resources",
    "handle_read_page_resource",
    "PAGE_RESOURCES",
]
