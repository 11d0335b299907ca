"""Text codec: documents <-> Markdown outline files.

Modules:

- ``markdown`` -- ``serialize_document``, ``deserialize_document``,
  ``validate_document``.
- ``naming``   -- resource names and locations for documents.
"""

from .markdown import (
    DocumentMetadata,
    ParsedDocument,
    ValidationResult,
    deserialize_document,
    serialize_document,
    validate_document,
)
from .naming import (
    JOURNALS_LOCATION,
    PAGES_LOCATION,
    generate_filename,
    kind_for_location,
    location_for_kind,
    title_from_filename,
)

__all__ = [
    "DocumentMetadata",
    "JOURNALS_LOCATION",
    "PAGES_LOCATION",
    "ParsedDocument",
    "ValidationResult",
    "deserialize_document",
    "generate_filename",
    "kind_for_location",
    "location_for_kind",
    "serialize_document",
    "title_from_filename",
    "validate_document",
]
