"""File handler module: vault path validation and encoding-aware read/write.

Provides the blocking file I/O used by ``LocalDirectoryAdapter``.  All
functions here are synchronous; the adapter runs them through
``run_sync_limited()``.
"""

import os
import tempfile
from pathlib import Path

from charset_normalizer import from_bytes

# =============================================================================
# Path Validation
# =============================================================================


def validate_vault_root(path_str: str) -> Path:
    """Validate and resolve the vault root directory.

    The directory is created if it does not exist yet.

    Raises:
        ValueError: If the path exists but is not a directory.
    """
    resolved = Path(path_str).expanduser().resolve()
    if resolved.exists() and not resolved.is_dir():
        raise ValueError(f"Vault path is not a directory: {path_str}")
    resolved.mkdir(parents=True, exist_ok=True)
    return resolved


def _check_segment(part: str, label: str) -> None:
    if not part or part in (".", "..") or "/" in part or "\\" in part:
        raise ValueError(f"Invalid resource {label}: {part!r}")


def resolve_location_path(root: Path, location: str) -> Path:
    """Return the path of the ``<root>/<location>`` directory.

    Raises:
        ValueError: If *location* is not a single path segment.
    """
    _check_segment(location, "location")
    return root / location


def resolve_resource_path(root: Path, location: str, name: str) -> Path:
    """Return the path of ``<root>/<location>/<name>``.

    Raises:
        ValueError: If *location* or *name* is not a single path segment
            or the result would escape *root*.
    """
    _check_segment(location, "location")
    _check_segment(name, "name")
    resolved = (root / location / name).resolve()
    if not resolved.is_relative_to(root.resolve()):
        raise ValueError(
            f"Resource path is outside the vault: {resolved} not under {root}"
        )
    return resolved


# =============================================================================
# File Read/Write
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Reads raw bytes first, then uses charset-normalizer to detect encoding.
    Defaults to UTF-8 for empty files or when detection fails.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    try:
        return (raw.decode("utf-8"), "utf-8")
    except UnicodeDecodeError:
        pass

    result = from_bytes(raw).best()
    if result is None:
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content, encoding)


def write_file_atomic(
    path: Path, content: str, encoding: str = "utf-8"
) -> int:
    """Write *content* to *path* via a temp file and ``os.replace()``.

    Parent directories are created as needed; readers never observe a
    partially written file.

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(encoded)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    return len(encoded)
