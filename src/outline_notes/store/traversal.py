"""Depth-first traversal over a flat collection of blocks.

Blocks are linked only by ``parent_id``; there are no child pointers.
Traversal builds a transient parent -> children index and walks it with
an explicit stack, so arbitrarily deep outlines never hit the recursion
limit.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Iterator

from .models import Block


def sibling_key(block: Block) -> tuple[int, str]:
    """Sort key for siblings: by ``order``, ties kept deterministic."""
    return (block.order, block.created_at.isoformat())


def iter_tree(
    blocks: Iterable[Block], include_collapsed: bool = False
) -> Iterator[tuple[Block, int]]:
    """Yield ``(block, depth)`` pairs in pre-order.

    Top-level blocks come first, ordered by ``order``; each block is
    followed by its children (recursively, in ``order``) unless it is
    collapsed and *include_collapsed* is false.  Blocks whose parent is
    not part of *blocks* are treated as top-level so nothing is silently
    dropped.

    Args:
        blocks: Blocks of a single document.
        include_collapsed: Also descend into collapsed blocks.
    """
    block_list = list(blocks)
    ids = {b.id for b in block_list}
    children: dict[str | None, list[Block]] = defaultdict(list)
    for block in block_list:
        parent = block.parent_id if block.parent_id in ids else None
        children[parent].append(block)
    for group in children.values():
        group.sort(key=sibling_key)

    seen: set[str] = set()
    stack: list[tuple[Block, int]] = [
        (b, 0) for b in reversed(children[None])
    ]
    while stack:
        block, depth = stack.pop()
        if block.id in seen:
            continue
        seen.add(block.id)
        yield block, depth
        if block.collapsed and not include_collapsed:
            continue
        for child in reversed(children.get(block.id, [])):
            stack.append((child, depth + 1))
