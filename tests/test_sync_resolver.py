"""Tests for sync conflict resolver strategies."""

from __future__ import annotations

import pytest

from outline_notes.sync.models import ConflictInfo, ConflictStrategy
from outline_notes.sync.resolver import (
    FILE,
    MERGED,
    SKIP,
    STORE,
    DatabaseWinsResolver,
    FileWinsResolver,
    MergeResolver,
    create_resolver,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_conflict(
    *,
    base: str | None = "a\nb\nc\n",
    store: str = "A\nb\nc\n",
    file: str = "a\nb\nC\n",
) -> ConflictInfo:
    """Build a minimal ConflictInfo for testing."""
    return ConflictInfo(
        document_id="doc-1",
        title="Page",
        location="pages",
        name="Page.md",
        file_modified=2.0,
        document_updated=1.0,
        base_content=base,
        file_content=file,
        store_content=store,
    )


# ---------------------------------------------------------------------------
# Simple strategies
# ---------------------------------------------------------------------------


class TestSimpleResolvers:
    """Tests for FileWinsResolver and DatabaseWinsResolver."""

    def test_file_wins(self) -> None:
        resolver = FileWinsResolver()
        conflict = _make_conflict()
        assert resolver.resolve(conflict) == FILE
        assert resolver.get_resolved_content(conflict, FILE) is None

    def test_database_wins(self) -> None:
        resolver = DatabaseWinsResolver()
        conflict = _make_conflict()
        assert resolver.resolve(conflict) == STORE
        assert resolver.get_resolved_content(conflict, STORE) == "A\nb\nc\n"


# ---------------------------------------------------------------------------
# MergeResolver
# ---------------------------------------------------------------------------


class TestMergeResolver:
    """Tests for MergeResolver."""

    def test_clean_merge(self) -> None:
        resolver = MergeResolver()
        conflict = _make_conflict()
        assert resolver.resolve(conflict) == MERGED
        assert resolver.get_resolved_content(conflict, MERGED) == "A\nb\nC\n"

    def test_conflicting_edits_are_skipped(self) -> None:
        resolver = MergeResolver()
        conflict = _make_conflict(store="X\nb\nc\n", file="Y\nb\nc\n")
        assert resolver.resolve(conflict) == SKIP

    def test_shared_resolver_keeps_no_state(self) -> None:
        """One resolver serves the whole process; skips must not pile up."""
        resolver = MergeResolver()
        conflict = _make_conflict(store="X\nb\nc\n", file="Y\nb\nc\n")
        for _ in range(3):
            assert resolver.resolve(conflict) == SKIP
        assert resolver.resolve(_make_conflict(base=None)) == SKIP
        assert vars(resolver) == {}

    def test_no_base_is_skipped(self) -> None:
        resolver = MergeResolver()
        conflict = _make_conflict(base=None)
        assert resolver.resolve(conflict) == SKIP
        assert resolver.get_resolved_content(conflict, MERGED) is None


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


class TestCreateResolver:
    """Tests for create_resolver()."""

    @pytest.mark.parametrize(
        "strategy, expected",
        [
            ("file-wins", FileWinsResolver),
            ("database-wins", DatabaseWinsResolver),
            (ConflictStrategy.MERGE, MergeResolver),
        ],
    )
    def test_known_strategies(self, strategy, expected) -> None:
        assert isinstance(create_resolver(strategy), expected)

    def test_unknown_strategy(self) -> None:
        with pytest.raises(ValueError, match="Unknown conflict strategy"):
            create_resolver("newest-wins")
