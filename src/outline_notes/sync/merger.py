"""Three-way merge and diff utilities for the sync engine.

Uses the ``merge3`` library for three-way merging (the same algorithm used
by Bazaar/Breezy) and ``difflib`` for unified diff generation.

Merges operate on serialized document text.  Because every block line
carries its `` ^id`` marker, edits to different blocks land on different
lines and merge cleanly; concurrent edits to the same block conflict.
Conflict markers follow Git convention with custom labels:
``<<<<<<< STORE``, ``=======``, ``>>>>>>> FILE``.
"""

from __future__ import annotations

import difflib

from merge3 import Merge3

START_MARKER = "<<<<<<< STORE"
END_MARKER = ">>>>>>> FILE"


def attempt_merge(
    base_content: str,
    store_content: str,
    file_content: str,
) -> tuple[str, bool]:
    """Perform a three-way merge of store and file changes against a base.

    Args:
        base_content: Text last agreed between store and vault.
        store_content: Current serialization of the stored document.
        file_content: Current resource text.

    Returns:
        A tuple of ``(merged_text, has_conflicts)`` where *merged_text*
        may contain conflict markers when *has_conflicts* is ``True``.
    """
    m3 = Merge3(
        base_content.splitlines(True),
        store_content.splitlines(True),
        file_content.splitlines(True),
    )

    merged_lines = list(
        m3.merge_lines(
            name_a="STORE",
            name_b="FILE",
            start_marker=START_MARKER,
            mid_marker="=======",
            end_marker=END_MARKER,
        )
    )

    merged_text = "".join(merged_lines)
    has_conflicts = START_MARKER in merged_text
    return merged_text, has_conflicts


def split_header(text: str) -> tuple[str, str]:
    """Split document text into ``(header, body)``.

    The header includes both ``---`` delimiter lines and their newlines;
    it is empty when the text has no header.  Timestamps in the header
    change on every save, so merges run on the body only.
    """
    lines = text.splitlines(True)
    if not lines or lines[0].strip() != "---":
        return "", text
    for index in range(1, len(lines)):
        if lines[index].strip() == "---":
            return "".join(lines[: index + 1]), "".join(lines[index + 1 :])
    return "", text


def merge_documents(
    base_content: str,
    store_content: str,
    file_content: str,
) -> tuple[str, bool]:
    """Three-way merge of two document texts, keeping the file's header."""
    _, base_body = split_header(base_content)
    _, store_body = split_header(store_content)
    file_header, file_body = split_header(file_content)
    merged_body, has_conflicts = attempt_merge(
        base_body, store_body, file_body
    )
    return file_header + merged_body, has_conflicts


def generate_diff(
    old_content: str,
    new_content: str,
    label_old: str = "old",
    label_new: str = "new",
) -> str:
    """Generate a unified diff between two strings.

    Returns:
        A unified diff string.  Empty string if the contents are identical.
    """
    diff_lines = difflib.unified_diff(
        old_content.splitlines(True),
        new_content.splitlines(True),
        fromfile=label_old,
        tofile=label_new,
    )
    return "".join(diff_lines)
