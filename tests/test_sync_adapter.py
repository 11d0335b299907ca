"""Tests for the local and in-memory directory adapters."""

from __future__ import annotations

import pytest

from outline_notes.sync.adapter import (
    LocalDirectoryAdapter,
    MemoryDirectoryAdapter,
)

# ---------------------------------------------------------------------------
# LocalDirectoryAdapter
# ---------------------------------------------------------------------------


class TestLocalDirectoryAdapter:
    """Tests against a real temporary directory."""

    async def test_write_read_and_info(self, tmp_path) -> None:
        adapter = LocalDirectoryAdapter(tmp_path)
        await adapter.write_resource("pages", "a.md", "- hello\n")

        assert (tmp_path / "pages" / "a.md").read_text() == "- hello\n"
        assert await adapter.read_resource("pages", "a.md") == "- hello\n"
        info = await adapter.resource_info("pages", "a.md")
        assert info.name == "a.md"
        assert info.last_modified > 0

    async def test_list_resources(self, tmp_path) -> None:
        adapter = LocalDirectoryAdapter(tmp_path)
        await adapter.write_resource("pages", "b.md", "b")
        await adapter.write_resource("pages", "a.md", "a")
        (tmp_path / "pages" / "sub").mkdir()

        names = [i.name for i in await adapter.list_resources("pages")]
        assert names == ["a.md", "b.md"]
        assert await adapter.list_resources("journals") == []

    async def test_missing_resource(self, tmp_path) -> None:
        adapter = LocalDirectoryAdapter(tmp_path)
        assert await adapter.resource_info("pages", "nope.md") is None
        with pytest.raises(FileNotFoundError):
            await adapter.read_resource("pages", "nope.md")

    async def test_delete_is_idempotent(self, tmp_path) -> None:
        adapter = LocalDirectoryAdapter(tmp_path)
        await adapter.write_resource("pages", "a.md", "a")
        await adapter.delete_resource("pages", "a.md")
        await adapter.delete_resource("pages", "a.md")
        assert not (tmp_path / "pages" / "a.md").exists()

    async def test_ensure_location(self, tmp_path) -> None:
        adapter = LocalDirectoryAdapter(tmp_path)
        path = await adapter.ensure_location("journals")
        assert (tmp_path / "journals").is_dir()
        assert path.endswith("journals")

    async def test_reads_legacy_encoding(self, tmp_path) -> None:
        adapter = LocalDirectoryAdapter(tmp_path)
        (tmp_path / "pages").mkdir()
        (tmp_path / "pages" / "old.md").write_bytes(
            "- café crème brûlée, déjà vu, à la carte\n".encode("latin-1")
        )
        text = await adapter.read_resource("pages", "old.md")
        assert "caf" in text

    async def test_rejects_path_escape(self, tmp_path) -> None:
        adapter = LocalDirectoryAdapter(tmp_path / "vault")
        with pytest.raises(ValueError):
            await adapter.write_resource("..", "x.md", "x")
        with pytest.raises(ValueError):
            await adapter.read_resource("pages", "../x.md")


# ---------------------------------------------------------------------------
# MemoryDirectoryAdapter
# ---------------------------------------------------------------------------


class TestMemoryDirectoryAdapter:
    """Tests for the dict-backed adapter."""

    async def test_mtimes_strictly_increase(self) -> None:
        adapter = MemoryDirectoryAdapter()
        first = adapter.put("pages", "a.md", "a")
        second = adapter.touch("pages", "a.md")
        assert second > first
        assert adapter.get("pages", "a.md") == "a"

    async def test_round_trip(self) -> None:
        adapter = MemoryDirectoryAdapter()
        await adapter.write_resource("pages", "a.md", "text")
        assert await adapter.read_resource("pages", "a.md") == "text"
        assert [i.name for i in await adapter.list_resources("pages")] == [
            "a.md"
        ]
        await adapter.delete_resource("pages", "a.md")
        assert await adapter.resource_info("pages", "a.md") is None
        with pytest.raises(FileNotFoundError):
            await adapter.read_resource("pages", "a.md")
