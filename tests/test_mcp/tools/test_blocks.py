"""Tests for block tool handlers (block_*)."""

import mcp.types as types
import pytest

from outline_notes.mcp.tools import ALL_SPECS, ToolRegistry


@pytest.fixture
def call(app_context):
    registry = ToolRegistry(ALL_SPECS)

    async def _call(name: str, **args) -> types.CallToolResult:
        return await registry.call_tool(name, args, app_context)

    return _call


def _text(result: types.CallToolResult) -> str:
    return result.content[0].text


@pytest.fixture
def page(store):
    """Page with top-level blocks A, B, C; B has child B1."""
    doc = store.create_document("Outline")
    a = store.create_block(doc.id, "A")
    b = store.create_block(doc.id, "B")
    b1 = store.create_block(doc.id, "B1", parent_id=b.id)
    c = store.create_block(doc.id, "C")
    return doc, a, b, b1, c


def _top_level(store, doc) -> list[str]:
    return [blk.content for blk in store.roots_of(doc.id)]


# ---------------------------------------------------------------------------
# block_create / block_update / block_delete
# ---------------------------------------------------------------------------


class TestBlockCreate:
    async def test_appends_top_level(self, call, store, page) -> None:
        doc = page[0]
        result = await call("block_create", document_id=doc.id, content="D")

        block = store.get_block(result.structuredContent["block_id"])
        assert block.content == "D"
        assert block.parent_id is None
        assert _top_level(store, doc) == ["A", "B", "C", "D"]

    async def test_under_parent_at_position(self, call, store, page) -> None:
        doc, _, b, b1, _ = page
        result = await call(
            "block_create",
            document_id=doc.id,
            content="B0",
            parent_id=b.id,
            order=0,
        )
        assert result.structuredContent["parent_id"] == b.id
        assert [c.content for c in store.children_of(b.id)] == ["B0", "B1"]

    async def test_empty_content_default(self, call, store, page) -> None:
        result = await call("block_create", document_id=page[0].id)
        assert store.get_block(result.structuredContent["block_id"]).content == ""

    async def test_links_create_reference_pages(self, call, store, page) -> None:
        result = await call(
            "block_create",
            document_id=page[0].id,
            content="read [[Dune]] and [[Outline]]",
        )
        assert "Created linked pages: Dune" in _text(result)
        assert result.structuredContent["created_pages"] == ["Dune"]
        assert store.find_document_by_title("Dune").is_reference is True

    async def test_unknown_document(self, call) -> None:
        result = await call("block_create", document_id="missing")
        assert "Page 'missing' not found" in _text(result)

    async def test_unknown_parent(self, call, page) -> None:
        result = await call(
            "block_create", document_id=page[0].id, parent_id="nope"
        )
        assert _text(result).startswith("Error (invalid_reference)")

    async def test_parent_in_other_document(self, call, store, page) -> None:
        other = store.create_document("Other")
        foreign = store.create_block(other.id, "x")
        result = await call(
            "block_create", document_id=page[0].id, parent_id=foreign.id
        )
        assert "belongs to another document" in _text(result)

    async def test_requires_document_id(self, call) -> None:
        result = await call("block_create", content="x")
        assert _text(result).startswith("Error (validation_error)")


class TestBlockUpdate:
    async def test_updates_and_exports(
        self, call, store, adapter, engine, page
    ) -> None:
        doc, a, *_ = page
        result = await call("block_update", block_id=a.id, content="A!")

        assert _text(result) == f"Updated block {a.id}"
        assert store.get_block(a.id).content == "A!"
        await engine.flush()
        assert f"- A! ^{a.id}" in adapter.get("pages", "Outline.md")

    async def test_unknown_block(self, call) -> None:
        result = await call("block_update", block_id="nope", content="x")
        assert "Block 'nope' not found" in _text(result)

    async def test_requires_content(self, call, page) -> None:
        result = await call("block_update", block_id=page[1].id)
        assert "content is required" in _text(result)

    async def test_rejects_malformed_id(self, call) -> None:
        result = await call("block_update", block_id="a b", content="x")
        assert "block_id must contain only" in _text(result)


class TestBlockDelete:
    async def test_removes_subtree(self, call, store, page) -> None:
        doc, _, b, b1, _ = page
        result = await call("block_delete", block_id=b.id)

        assert _text(result) == "Deleted 2 block(s)"
        assert store.get_block(b1.id) is None
        assert _top_level(store, doc) == ["A", "C"]

    async def test_unknown_block(self, call) -> None:
        result = await call("block_delete", block_id="nope")
        assert result.isError is True


# ---------------------------------------------------------------------------
# Structural edits
# ---------------------------------------------------------------------------


class TestIndentOutdent:
    async def test_indent_under_previous_sibling(
        self, call, store, page
    ) -> None:
        doc, _, b, b1, c = page
        result = await call("block_indent", block_id=c.id)

        assert _text(result) == f"Indented block {c.id}"
        assert result.structuredContent["parent_id"] == b.id
        assert result.structuredContent["depth"] == 1
        assert [x.content for x in store.children_of(b.id)] == ["B1", "C"]

    async def test_indent_first_sibling_is_noop(self, call, page) -> None:
        a = page[1]
        result = await call("block_indent", block_id=a.id)
        assert result.isError is not True
        assert result.structuredContent == {"block_id": a.id, "changed": False}

    async def test_outdent_lands_after_parent(self, call, store, page) -> None:
        doc, _, b, b1, _ = page
        await call("block_outdent", block_id=b1.id)
        assert _top_level(store, doc) == ["A", "B", "B1", "C"]

    async def test_outdent_top_level_is_noop(self, call, page) -> None:
        result = await call("block_outdent", block_id=page[1].id)
        assert "unchanged" in _text(result)

    async def test_unknown_block(self, call) -> None:
        result = await call("block_indent", block_id="nope")
        assert "Block 'nope' not found" in _text(result)


class TestBlockMove:
    async def test_move_to_top(self, call, store, page) -> None:
        doc, _, _, _, c = page
        result = await call("block_move", block_id=c.id, order=0)
        assert _text(result) == f"Moved block {c.id}"
        assert _top_level(store, doc) == ["C", "A", "B"]

    async def test_move_under_parent(self, call, store, page) -> None:
        _, a, b, _, _ = page
        await call("block_move", block_id=a.id, parent_id=b.id, order=5)
        assert [x.content for x in store.children_of(b.id)] == ["B1", "A"]

    async def test_move_into_own_subtree_rejected(
        self, call, store, page
    ) -> None:
        _, _, b, b1, _ = page
        result = await call(
            "block_move", block_id=b.id, parent_id=b1.id, order=0
        )
        assert _text(result).startswith("Error (validation_error)")
        assert f"Cannot move block {b.id}" in _text(result)
        assert store.get_block(b.id).parent_id is None

    async def test_same_position_is_noop(self, call, page) -> None:
        a = page[1]
        result = await call("block_move", block_id=a.id, order=a.order)
        assert result.structuredContent["changed"] is False

    async def test_unknown_parent(self, call, page) -> None:
        result = await call(
            "block_move", block_id=page[1].id, parent_id="ghost", order=0
        )
        assert "Block 'ghost' not found" in _text(result)

    @pytest.mark.parametrize("order", [-1, "1", None])
    async def test_invalid_order(self, call, page, order) -> None:
        result = await call("block_move", block_id=page[1].id, order=order)
        assert "order must be a non-negative integer" in _text(result)


class TestToggleCollapse:
    async def test_toggles_and_keeps_children(self, call, store, page) -> None:
        _, _, b, b1, _ = page
        await call("block_toggle_collapse", block_id=b.id)
        assert store.get_block(b.id).collapsed is True
        assert store.get_block(b1.id) is not None

        await call("block_toggle_collapse", block_id=b.id)
        assert store.get_block(b.id).collapsed is False
