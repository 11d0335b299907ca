"""Directory access adapters used by the sync engine.

The engine never touches the filesystem directly; it goes through a
``DirectoryAdapter``.  Two implementations ship:

* ``LocalDirectoryAdapter`` -- a vault directory on local disk.  Blocking
  calls run in the thread pool via ``run_sync_limited()``.
* ``MemoryDirectoryAdapter`` -- a dict-backed vault for tests and
  embedding.  Modification times strictly increase on every write.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel

from ..core.async_utils import run_sync_limited
from ..file_handler import (
    read_file_with_encoding,
    resolve_location_path,
    resolve_resource_path,
    validate_vault_root,
    write_file_atomic,
)

logger = logging.getLogger(__name__)


class ResourceInfo(BaseModel):
    """Name and last-modified time (epoch seconds) of one resource."""

    name: str
    last_modified: float

    model_config = {"frozen": True}


class DirectoryAdapter(Protocol):
    """Capability over a user-chosen storage root."""

    async def list_resources(self, location: str) -> list[ResourceInfo]:
        """Return the resources in *location*; empty if it is missing."""
        ...

    async def read_resource(self, location: str, name: str) -> str: ...

    async def write_resource(
        self, location: str, name: str, text: str
    ) -> None:
        """Create or replace a resource."""
        ...

    async def delete_resource(self, location: str, name: str) -> None:
        """Delete a resource; missing resources are ignored."""
        ...

    async def ensure_location(self, name: str) -> str:
        """Create *name* if absent and return a handle to it."""
        ...

    async def resource_info(
        self, location: str, name: str
    ) -> ResourceInfo | None:
        """Return current info for one resource, or None if absent."""
        ...


# ---------------------------------------------------------------------------
# Local disk
# ---------------------------------------------------------------------------


class LocalDirectoryAdapter:
    """Vault rooted at a directory on local disk.

    Args:
        root: Vault directory; created if it does not exist.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = validate_vault_root(str(root))

    async def list_resources(self, location: str) -> list[ResourceInfo]:
        return await run_sync_limited(self._list, location)

    async def read_resource(self, location: str, name: str) -> str:
        path = resolve_resource_path(self.root, location, name)
        content, encoding = await run_sync_limited(
            read_file_with_encoding, path
        )
        if encoding != "utf-8":
            logger.info("Read %s as %s", path, encoding)
        return content

    async def write_resource(
        self, location: str, name: str, text: str
    ) -> None:
        path = resolve_resource_path(self.root, location, name)
        await run_sync_limited(write_file_atomic, path, text)

    async def delete_resource(self, location: str, name: str) -> None:
        path = resolve_resource_path(self.root, location, name)
        await run_sync_limited(path.unlink, missing_ok=True)

    async def ensure_location(self, name: str) -> str:
        path = resolve_location_path(self.root, name)
        await run_sync_limited(path.mkdir, parents=True, exist_ok=True)
        return str(path)

    async def resource_info(
        self, location: str, name: str
    ) -> ResourceInfo | None:
        path = resolve_resource_path(self.root, location, name)
        return await run_sync_limited(self._stat, path)

    def _list(self, location: str) -> list[ResourceInfo]:
        directory = self.root / location
        if not directory.is_dir():
            return []
        infos = []
        for entry in sorted(directory.iterdir()):
            if entry.is_file():
                infos.append(
                    ResourceInfo(
                        name=entry.name,
                        last_modified=entry.stat().st_mtime,
                    )
                )
        return infos

    @staticmethod
    def _stat(path: Path) -> ResourceInfo | None:
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            return None
        return ResourceInfo(name=path.name, last_modified=mtime)


# ---------------------------------------------------------------------------
# In memory
# ---------------------------------------------------------------------------


class MemoryDirectoryAdapter:
    """Dict-backed vault.

    ``files`` maps ``location -> name -> (text, last_modified)``.
    """

    def __init__(self) -> None:
        self.files: dict[str, dict[str, tuple[str, float]]] = {}
        self._clock = 0.0

    def _tick(self) -> float:
        self._clock = max(time.time(), self._clock + 0.001)
        return self._clock

    async def list_resources(self, location: str) -> list[ResourceInfo]:
        entries = self.files.get(location, {})
        return [
            ResourceInfo(name=name, last_modified=mtime)
            for name, (_, mtime) in sorted(entries.items())
        ]

    async def read_resource(self, location: str, name: str) -> str:
        try:
            return self.files[location][name][0]
        except KeyError:
            raise FileNotFoundError(f"{location}/{name}") from None

    async def write_resource(
        self, location: str, name: str, text: str
    ) -> None:
        self.put(location, name, text)

    async def delete_resource(self, location: str, name: str) -> None:
        self.files.get(location, {}).pop(name, None)

    async def ensure_location(self, name: str) -> str:
        self.files.setdefault(name, {})
        return name

    async def resource_info(
        self, location: str, name: str
    ) -> ResourceInfo | None:
        entry = self.files.get(location, {}).get(name)
        if entry is None:
            return None
        return ResourceInfo(name=name, last_modified=entry[1])

    def put(self, location: str, name: str, text: str) -> float:
        """Synchronously write a resource, as an external editor would.

        Returns:
            The new modification time.
        """
        mtime = self._tick()
        self.files.setdefault(location, {})[name] = (text, mtime)
        return mtime

    def touch(self, location: str, name: str) -> float:
        """Bump a resource's modification time without changing it."""
        text, _ = self.files[location][name]
        return self.put(location, name, text)

    def get(self, location: str, name: str) -> str | None:
        entry = self.files.get(location, {}).get(name)
        return entry[0] if entry is not None else None
