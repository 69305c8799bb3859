# src/forum_stage/services/comment_tree.py
"""Reconstruct reply trees from flat parent-pointer comment rows."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar


class ThreadedRow(Protocol):
    id: int
    parent_comment_id: int | None


RowT = TypeVar("RowT", bound=ThreadedRow)


@dataclass(slots=True)
class CommentNode(Generic[RowT]):
    """A comment together with its direct replies."""

    comment: RowT
    replies: list[CommentNode[RowT]] = field(default_factory=list)

    def walk(self) -> Iterable[CommentNode[RowT]]:
        """Yield this node and every descendant, depth first."""
        yield self
        for reply in self.replies:
            yield from reply.walk()


def build_comment_tree(rows: Iterable[RowT]) -> list[CommentNode[RowT]]:
    """Nest ``rows`` under their parents.

    Sibling order at every level follows the input order. A row whose parent
    is not part of the input is dropped together with its descendants; it is
    never promoted to a root. Rows are not mutated, so the same input always
    yields a structurally identical tree.
    """
    nodes: dict[int, CommentNode[RowT]] = {}
    ordered: list[CommentNode[RowT]] = []
    for row in rows:
        node = CommentNode(row)
        nodes[row.id] = node
        ordered.append(node)

    roots: list[CommentNode[RowT]] = []
    for node in ordered:
        parent_id = node.comment.parent_comment_id
        if parent_id is None:
            roots.append(node)
            continue
        parent = nodes.get(parent_id)
        if parent is not None and parent is not node:
            parent.replies.append(node)
    return roots
