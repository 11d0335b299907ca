"""Tests for outline_notes.sync.state - the per-resource cache."""

from __future__ import annotations

from outline_notes.sync.state import ResourceCache


class TestContentHash:
    """Tests for ResourceCache.content_hash normalisation."""

    def test_identical_content(self) -> None:
        assert ResourceCache.content_hash("a\nb") == ResourceCache.content_hash(
            "a\nb"
        )

    def test_ignores_bom_crlf_and_trailing_blank_lines(self) -> None:
        base = ResourceCache.content_hash("- a\n- b")
        assert ResourceCache.content_hash("\ufeff- a\r\n- b\n\n") == base

    def test_trailing_whitespace_inside_text_is_content(self) -> None:
        base = ResourceCache.content_hash("- a ^x1\n  two\n- b ^x2")
        edited = ResourceCache.content_hash("- a ^x1\n  two  \n- b ^x2")
        assert edited != base

    def test_detects_changes(self) -> None:
        assert ResourceCache.content_hash("- a") != ResourceCache.content_hash(
            "- b"
        )


class TestResourceCache:
    """Tests for record, lookup and conflict flags."""

    def test_record_and_get(self) -> None:
        cache = ResourceCache()
        entry = cache.record("pages", "a.md", 10.0, "text", "doc-1")
        assert cache.get("pages", "a.md") == entry
        assert entry.content_hash == ResourceCache.content_hash("text")
        assert entry.text == "text"
        assert len(cache) == 1

    def test_refresh_mtime_keeps_text(self) -> None:
        cache = ResourceCache()
        cache.record("pages", "a.md", 10.0, "text", "doc-1")
        cache.refresh_mtime("pages", "a.md", 20.0)
        entry = cache.get("pages", "a.md")
        assert entry.last_modified == 20.0
        assert entry.text == "text"

    def test_refresh_mtime_unknown_is_noop(self) -> None:
        cache = ResourceCache()
        cache.refresh_mtime("pages", "a.md", 20.0)
        assert cache.get("pages", "a.md") is None

    def test_mark_conflicted_existing(self) -> None:
        cache = ResourceCache()
        cache.record("pages", "a.md", 10.0, "base", "doc-1")
        cache.mark_conflicted("pages", "a.md", last_modified=15.0)
        assert cache.is_conflicted("pages", "a.md")
        entry = cache.get("pages", "a.md")
        assert entry.last_modified == 15.0
        assert entry.text == "base"

        cache.mark_conflicted("pages", "a.md", conflicted=False)
        assert not cache.is_conflicted("pages", "a.md")

    def test_mark_conflicted_creates_entry_only_with_mtime(self) -> None:
        cache = ResourceCache()
        cache.mark_conflicted("pages", "a.md")
        assert cache.get("pages", "a.md") is None

        cache.mark_conflicted(
            "pages", "a.md", last_modified=5.0, document_id="doc-1"
        )
        entry = cache.get("pages", "a.md")
        assert entry.conflicted is True
        assert entry.document_id == "doc-1"
        assert entry.text is None

    def test_find_by_document_and_remove(self) -> None:
        cache = ResourceCache()
        cache.record("pages", "a.md", 1.0, "a", "doc-1")
        cache.record("pages", "b.md", 1.0, "b", "doc-2")
        assert cache.find_by_document("doc-2").name == "b.md"
        cache.remove("pages", "b.md")
        cache.remove("pages", "b.md")
        assert cache.find_by_document("doc-2") is None
        assert [e.name for e in cache.entries()] == ["a.md"]
