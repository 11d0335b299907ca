"""
Input validation functions for the outline notes tools.

Checks page titles, block content and identifiers before they reach the
block store, so agents get a precise message instead of a store error.
"""

import re
from datetime import date

_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
_TITLE_FORBIDDEN = re.compile(r"[\n\r\t]")


# ---------------------------------------------------------------------------
# Error message formatting helpers
# ---------------------------------------------------------------------------


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Page title")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_title(title: str, max_length: int = 200) -> tuple[bool, str]:
    """
    Validate a page title.

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Cannot be empty or whitespace-only
        - Cannot contain line breaks or tabs
        - Cannot be '.' or '..' or exceed max_length characters
        - Must keep at least one character once file-unsafe characters
          are removed
    """
    if not title or not title.strip():
        return (False, format_validation_error("Page title", "cannot be empty"))

    if _TITLE_FORBIDDEN.search(title):
        return (
            False,
            format_validation_error(
                "Page title", "cannot contain line breaks or tabs"
            ),
        )

    if title.strip() in (".", ".."):
        return (False, format_validation_error("Page title", "is reserved"))

    if len(title) > max_length:
        return (
            False,
            format_validation_error(
                "Page title", f"exceeds {max_length} characters"
            ),
        )

    if not re.sub(r'[/\\:*?"<>|\s]', "", title):
        return (
            False,
            format_validation_error(
                "Page title", "must contain a file-safe character"
            ),
        )

    return (True, "")


def validate_content(
    content: str, max_size: int = 1_000_000
) -> tuple[bool, str]:
    """
    Validate block content.

    Empty content is allowed (a fresh block is empty).

    Validation rules:
        - Must be a string
        - Cannot exceed max_size bytes
    """
    if not isinstance(content, str):
        return (False, format_validation_error("Content", "must be a string"))

    content_bytes = len(content.encode("utf-8"))
    if content_bytes > max_size:
        return (
            False,
            format_validation_error(
                "Content", f"exceeds maximum size of {max_size} bytes"
            ),
        )

    return (True, "")


def validate_identifier(value: str, field_name: str = "Id") -> tuple[bool, str]:
    """Validate a document or block id (letters, digits, '-' and '_')."""
    if not value or not _ID_PATTERN.match(value):
        return (
            False,
            format_validation_error(
                field_name, "must contain only letters, digits, '-' or '_'"
            ),
        )
    return (True, "")


def parse_journal_date(value: str | None) -> date | None:
    """Parse an optional ``YYYY-MM-DD`` date.

    Raises:
        ValueError: If *value* is given but not a valid date.
    """
    if value is None or value == "":
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(
            format_validation_error("Date", f"'{value}' is not YYYY-MM-DD")
        ) from None
