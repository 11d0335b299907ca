"""Tests for outline_notes.store.snapshot - atomic store persistence."""

import json

import pytest

from outline_notes.store.snapshot import (
    SnapshotError,
    load_snapshot,
    restore_store,
    save_snapshot,
)
from outline_notes.store.tree import BlockStore


class TestSnapshotRoundTrip:
    """save_snapshot() followed by load_snapshot()."""

    def test_restores_documents_and_tree(self, tmp_path):
        store = BlockStore()
        doc = store.create_document("Page")
        parent = store.create_block(doc.id, "parent")
        child = store.create_block(doc.id, "child", parent_id=parent.id)
        store.toggle_collapse(parent.id)
        updated_at = store.get_document(doc.id).updated_at

        path = tmp_path / "nested" / "store.json"
        save_snapshot(store, path)
        restored = load_snapshot(path)

        restored_doc = restored.get_document(doc.id)
        assert restored_doc.title == "Page"
        assert restored_doc.updated_at == updated_at
        assert restored.get_block(parent.id).collapsed is True
        assert restored.get_block(child.id).parent_id == parent.id

    def test_no_temp_files_left_behind(self, tmp_path):
        path = tmp_path / "store.json"
        save_snapshot(BlockStore(), path)
        assert [p.name for p in tmp_path.iterdir()] == ["store.json"]


class TestLoadSnapshot:
    """Error handling in load_snapshot()."""

    def test_missing_file_gives_empty_store(self, tmp_path):
        store = load_snapshot(tmp_path / "absent.json")
        assert store.list_documents() == []

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(SnapshotError, match="not valid JSON"):
            load_snapshot(path)

    def test_non_object_root(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text(json.dumps([1, 2]), encoding="utf-8")
        with pytest.raises(SnapshotError, match="must be an object"):
            load_snapshot(path)

    def test_unsupported_version(self):
        with pytest.raises(SnapshotError, match="Unsupported"):
            restore_store({"version": 99, "documents": [], "blocks": []})

    def test_malformed_records(self):
        with pytest.raises(SnapshotError, match="Malformed"):
            restore_store({"version": 1, "documents": [{"id": "x"}]})
