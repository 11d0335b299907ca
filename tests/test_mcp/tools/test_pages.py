"""Tests for page tool handlers (page_*, journal_today)."""

from datetime import date

import mcp.types as types
import pytest

from outline_notes.codec.markdown import serialize_document
from outline_notes.mcp.tools import ALL_SPECS, ToolRegistry
from outline_notes.store.links import ensure_link_targets
from outline_notes.store.models import DocumentKind


@pytest.fixture
def registry():
    return ToolRegistry(ALL_SPECS)


@pytest.fixture
def call(registry, app_context):
    async def _call(name: str, **args) -> types.CallToolResult:
        return await registry.call_tool(name, args, app_context)

    return _call


def _text(result: types.CallToolResult) -> str:
    content = result.content[0]
    assert isinstance(content, types.TextContent)
    return content.text


@pytest.fixture
def ideas(store):
    """A page with a nested block under the first top-level block."""
    doc = store.create_document("Ideas")
    one = store.create_block(doc.id, "one")
    two = store.create_block(doc.id, "two", parent_id=one.id)
    store.create_block(doc.id, "three")
    return doc, one, two


# ---------------------------------------------------------------------------
# page_list
# ---------------------------------------------------------------------------


class TestPageList:
    async def test_empty_store(self, call) -> None:
        result = await call("page_list")
        assert _text(result) == "No pages found."
        assert result.structuredContent == {"pages": [], "total": 0}

    async def test_lists_pages(self, call, ideas) -> None:
        doc, _, _ = ideas
        result = await call("page_list")

        assert _text(result).startswith("Pages (1 of 1):")
        assert f"- Ideas [{doc.id}] note" in _text(result)
        page = result.structuredContent["pages"][0]
        assert page["id"] == doc.id
        assert page["block_count"] == 3
        assert page["is_reference"] is False

    async def test_filters(self, call, store) -> None:
        store.create_document("Plain")
        store.ensure_journal(date(2024, 5, 1))
        ensure_link_targets(store, "see [[Someday]]")

        daily = await call("page_list", kind="daily")
        assert [p["title"] for p in daily.structuredContent["pages"]] == [
            "2024-05-01"
        ]

        no_refs = await call("page_list", include_references=False)
        titles = {p["title"] for p in no_refs.structuredContent["pages"]}
        assert titles == {"Plain", "2024-05-01"}

        with_refs = await call("page_list")
        assert "(reference)" in _text(with_refs)

    async def test_limit(self, call, store) -> None:
        for i in range(3):
            store.create_document(f"Page {i}")
        result = await call("page_list", limit=2)
        assert len(result.structuredContent["pages"]) == 2
        assert result.structuredContent["total"] == 3
        assert _text(result).startswith("Pages (2 of 3):")


# ---------------------------------------------------------------------------
# page_get
# ---------------------------------------------------------------------------


class TestPageGet:
    async def test_outline_by_id(self, call, ideas) -> None:
        doc, one, two = ideas
        result = await call("page_get", document_id=doc.id)

        text = _text(result)
        assert text.startswith(f"Page: Ideas\nId: {doc.id}\nKind: note")
        assert f"- one  [{one.id}]\n  - two  [{two.id}]\n- three" in text
        blocks = result.structuredContent["blocks"]
        assert [(b["content"], b["depth"]) for b in blocks] == [
            ("one", 0),
            ("two", 1),
            ("three", 0),
        ]

    async def test_by_title(self, call, ideas) -> None:
        result = await call("page_get", title="Ideas")
        assert result.structuredContent["page"]["id"] == ideas[0].id

    async def test_collapsed_children_hidden_on_request(
        self, call, store, ideas
    ) -> None:
        doc, one, _ = ideas
        store.toggle_collapse(one.id)

        shown = await call("page_get", document_id=doc.id)
        assert f"+ one  [{one.id}]" in _text(shown)
        assert len(shown.structuredContent["blocks"]) == 3

        hidden = await call(
            "page_get", document_id=doc.id, include_collapsed=False
        )
        assert [b["content"] for b in hidden.structuredContent["blocks"]] == [
            "one",
            "three",
        ]

    async def test_multiline_content(self, call, store) -> None:
        doc = store.create_document("Poem")
        block = store.create_block(doc.id, "first\nsecond")
        text = _text(await call("page_get", document_id=doc.id))
        assert f"- first  [{block.id}]\n  second" in text

    async def test_empty_page(self, call, store) -> None:
        doc = store.create_document("Blank")
        text = _text(await call("page_get", document_id=doc.id))
        assert text.endswith("(empty page)")

    async def test_markdown_matches_vault_text(self, call, store, ideas) -> None:
        doc = ideas[0]
        result = await call("page_get", document_id=doc.id, format="markdown")
        assert _text(result) == serialize_document(
            doc, store.blocks_for_document(doc.id), indent_size=2
        )

    async def test_backlinks(self, call, store, ideas) -> None:
        other = store.create_document("Journal notes")
        linking = store.create_block(other.id, "revisit [[Ideas]] soon")

        result = await call("page_get", document_id=ideas[0].id)
        assert "Linked references: 1" in _text(result)
        assert result.structuredContent["backlinks"] == [
            {"block_id": linking.id, "document_id": other.id}
        ]

    async def test_not_found(self, call) -> None:
        result = await call("page_get", title="Nope")
        assert result.isError is True
        assert "Page 'Nope' not found" in _text(result)

    async def test_requires_id_or_title(self, call) -> None:
        result = await call("page_get")
        assert result.isError is True
        assert _text(result).startswith("Error (validation_error)")


# ---------------------------------------------------------------------------
# page_create
# ---------------------------------------------------------------------------


class TestPageCreate:
    async def test_creates_and_exports(
        self, call, store, adapter, engine
    ) -> None:
        result = await call("page_create", title="  Reading list ")

        doc = store.find_document_by_title("Reading list")
        assert doc is not None
        assert _text(result) == f"Created page: Reading list [{doc.id}]"
        await engine.flush()
        assert adapter.get("pages", "Reading-list.md").startswith("---\n")

    async def test_daily_kind(self, call, store) -> None:
        await call("page_create", title="2024-05-03", kind="daily")
        assert store.find_document_by_title("2024-05-03").kind == (
            DocumentKind.DAILY
        )

    async def test_promotes_reference_page(self, call, store) -> None:
        (ref,) = ensure_link_targets(store, "[[Someday]]")

        result = await call("page_create", title="Someday")

        assert _text(result).startswith("Promoted reference page")
        assert store.get_document(ref.id).is_reference is False
        assert len(store.list_documents()) == 1

    async def test_duplicate_title(self, call, ideas) -> None:
        result = await call("page_create", title="Ideas")
        assert result.isError is True
        assert _text(result).startswith("Error (already_exists)")

    @pytest.mark.parametrize("title", ["", "   ", "a\nb", "..", "///"])
    async def test_invalid_title(self, call, store, title) -> None:
        result = await call("page_create", title=title)
        assert result.isError is True
        assert "Page title" in _text(result)
        assert store.list_documents() == []

    async def test_invalid_kind(self, call) -> None:
        result = await call("page_create", title="X", kind="weekly")
        assert _text(result).startswith("Error (validation_error)")


# ---------------------------------------------------------------------------
# page_delete
# ---------------------------------------------------------------------------


class TestPageDelete:
    async def test_deletes_page_and_file(
        self, call, store, adapter, engine, ideas
    ) -> None:
        doc = ideas[0]
        await engine.export_document(doc.id)
        assert adapter.get("pages", "Ideas.md") is not None

        result = await call("page_delete", document_id=doc.id)

        assert _text(result) == "Deleted page: Ideas (pages/Ideas.md)"
        assert store.get_document(doc.id) is None
        assert store.block_count() == 0
        assert adapter.get("pages", "Ideas.md") is None

    async def test_unknown_page(self, call) -> None:
        result = await call("page_delete", document_id="missing")
        assert "Page 'missing' not found" in _text(result)

    async def test_requires_id(self, call) -> None:
        result = await call("page_delete")
        assert _text(result).startswith("Error (validation_error)")


# ---------------------------------------------------------------------------
# journal_today
# ---------------------------------------------------------------------------


class TestJournalToday:
    async def test_creates_once(self, call, store, adapter, engine) -> None:
        first = await call("journal_today", date="2024-05-01")
        second = await call("journal_today", date="2024-05-01")

        doc = store.find_document_by_title("2024-05-01")
        assert doc.kind == DocumentKind.DAILY
        assert first.structuredContent["page"]["id"] == doc.id
        assert second.structuredContent["page"]["id"] == doc.id
        assert len(store.list_documents()) == 1
        await engine.flush()
        assert adapter.get("journals", "2024-05-01.md") is not None

    async def test_defaults_to_today(self, call, store) -> None:
        result = await call("journal_today")
        title = result.structuredContent["page"]["title"]
        assert date.fromisoformat(title)

    async def test_shows_existing_blocks(self, call, store) -> None:
        doc = store.ensure_journal(date(2024, 5, 1))
        block = store.create_block(doc.id, "standup")
        text = _text(await call("journal_today", date="2024-05-01"))
        assert f"- standup  [{block.id}]" in text

    async def test_invalid_date(self, call) -> None:
        result = await call("journal_today", date="05/01/2024")
        assert result.isError is True
        assert "is not YYYY-MM-DD" in _text(result)
