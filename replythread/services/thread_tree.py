"""Thread structure: id-indexed arena, per-thread session state and render planning.

Reply data can nest arbitrarily deep, so nothing here recurses in Python.
The arena is built with an explicit stack and nodes refer to their parent by
id only. What gets drawn is decided by ``plan_node`` per node, and
``build_rows`` flattens a whole thread into the rows the widgets show.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from replythread.core.types import ReplyRecord, UserIdentitySnapshot

logger = logging.getLogger("replythread")

DEFAULT_MAX_DEPTH = 3
DEFAULT_INITIAL_VISIBLE = 3

ROW_KINDS = ("reply", "collapsed_summary", "show_thread", "show_more")


@dataclass
class ArenaNode:
    record: ReplyRecord
    parent_id: Optional[str]
    depth: int
    child_ids: list[str] = field(default_factory=list)


class ThreadArena:
    """Flat, id-indexed view of a reply forest."""

    def __init__(self):
        self.nodes: dict[str, ArenaNode] = {}
        self.root_ids: list[str] = []

    @classmethod
    def from_roots(cls, records: Iterable[ReplyRecord]) -> 'ThreadArena':
        """Index a forest of records. Later duplicates of an id are dropped with their subtree."""
        arena = cls()
        stack = [(record, None, 0) for record in reversed(list(records))]

        while stack:
            record, parent_id, depth = stack.pop()
            if record.id in arena.nodes:
                logger.warning(f"Duplicate reply id '{record.id}' in thread, skipping subtree")
                continue

            arena.nodes[record.id] = ArenaNode(record, parent_id, depth)
            if parent_id is None:
                arena.root_ids.append(record.id)
            else:
                arena.nodes[parent_id].child_ids.append(record.id)

            for child in reversed(record.children):
                stack.append((child, record.id, depth + 1))

        return arena

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, node_id: str) -> ArenaNode:
        return self.nodes[node_id]

    def children(self, node_id: str) -> list[ArenaNode]:
        return [self.nodes[cid] for cid in self.nodes[node_id].child_ids]

    def descendant_count(self, node_id: str) -> int:
        count = 0
        stack = list(self.nodes[node_id].child_ids)
        while stack:
            count += 1
            stack.extend(self.nodes[stack.pop()].child_ids)
        return count

    def ancestors(self, node_id: str) -> list[str]:
        """Ids from the parent up to the root."""
        result = []
        parent_id = self.nodes[node_id].parent_id
        while parent_id is not None:
            result.append(parent_id)
            parent_id = self.nodes[parent_id].parent_id
        return result


@dataclass
class ThreadSession:
    """UI state shared by every node of one thread view, keyed by node id."""

    viewer: Optional[UserIdentitySnapshot] = None
    collapsed: set[str] = field(default_factory=set)
    expanded_bodies: set[str] = field(default_factory=set)
    show_all_replies: set[str] = field(default_factory=set)
    seen: set[str] = field(default_factory=set)
    focus_id: Optional[str] = None
    search_query: Optional[str] = None

    def toggle_collapsed(self, node_id: str) -> bool:
        """Flip a node's collapsed flag; returns the new value."""
        if node_id in self.collapsed:
            self.collapsed.discard(node_id)
            return False
        self.collapsed.add(node_id)
        return True

    def show_more(self, node_id: str) -> None:
        self.show_all_replies.add(node_id)

    def focus(self, node_id: Optional[str]) -> None:
        """Re-root the view on a node (``None`` returns to the full thread)."""
        self.focus_id = node_id

    def mark_seen(self, node_id: str) -> None:
        self.seen.add(node_id)

    def end_transition(self, node_id: str) -> None:
        """A deleted node has finished leaving the view."""
        self.seen.discard(node_id)


@dataclass(frozen=True)
class NodePlan:
    node_id: str
    depth: int
    collapsed: bool
    descendant_count: int
    visible_child_ids: tuple[str, ...] = ()
    hidden_child_count: int = 0
    show_thread: bool = False


@dataclass(frozen=True)
class ThreadRow:
    kind: str                        # one of ROW_KINDS
    node_id: str
    depth: int
    count: int = 0                   # descendants, hidden replies or thread size


def can_render(record: ReplyRecord, viewer: Optional[UserIdentitySnapshot], session: ThreadSession) -> bool:
    """Deleted replies show only while leaving the view; hidden ones only to staff."""
    if record.is_deleted:
        return record.id in session.seen
    if record.is_hidden:
        return viewer is not None and viewer.is_staff
    return True


def plan_node(
    arena: ThreadArena,
    node_id: str,
    session: ThreadSession,
    depth: int,
    max_depth: int = DEFAULT_MAX_DEPTH,
    initial_visible: int = DEFAULT_INITIAL_VISIBLE,
) -> NodePlan:
    """Decide what a node renders beneath itself at ``depth`` (0 for the view root)."""
    child_ids = [
        node.record.id for node in arena.children(node_id)
        if can_render(node.record, session.viewer, session)
    ]
    descendants = arena.descendant_count(node_id)

    if node_id in session.collapsed:
        return NodePlan(node_id, depth, True, descendants)

    if depth >= max_depth and child_ids:
        return NodePlan(node_id, depth, False, descendants, show_thread=True)

    if node_id in session.show_all_replies or len(child_ids) <= initial_visible:
        visible = child_ids
    else:
        visible = child_ids[:initial_visible]

    return NodePlan(
        node_id,
        depth,
        False,
        descendants,
        visible_child_ids=tuple(visible),
        hidden_child_count=len(child_ids) - len(visible),
    )


def view_root_ids(arena: ThreadArena, session: ThreadSession) -> list[str]:
    """Top-level ids of the current view, honouring ``focus_id``."""
    if session.focus_id is not None:
        if session.focus_id in arena:
            root_ids = [session.focus_id]
        else:
            logger.warning(f"Focused reply '{session.focus_id}' not in thread, showing all")
            root_ids = arena.root_ids
    else:
        root_ids = arena.root_ids
    return [rid for rid in root_ids if can_render(arena.get(rid).record, session.viewer, session)]


def build_rows(
    arena: ThreadArena,
    session: ThreadSession,
    max_depth: int = DEFAULT_MAX_DEPTH,
    initial_visible: int = DEFAULT_INITIAL_VISIBLE,
) -> list[ThreadRow]:
    """Flatten the visible thread into rows in display order.

    A collapsed node becomes a single summary row. A node at ``max_depth``
    with children gets a 'show_thread' row instead of them. No row is ever
    deeper than ``max_depth``.
    """
    rows: list[ThreadRow] = []
    stack: list = [("node", rid, 0) for rid in reversed(view_root_ids(arena, session))]

    while stack:
        item = stack.pop()
        if item[0] == "row":
            rows.append(item[1])
            continue

        _, node_id, depth = item
        plan = plan_node(arena, node_id, session, depth, max_depth, initial_visible)

        if plan.collapsed:
            rows.append(ThreadRow("collapsed_summary", node_id, depth, plan.descendant_count))
            continue

        rows.append(ThreadRow("reply", node_id, depth))
        if plan.show_thread:
            rows.append(ThreadRow("show_thread", node_id, depth, plan.descendant_count))
            continue

        if plan.hidden_child_count:
            stack.append(("row", ThreadRow("show_more", node_id, depth + 1, plan.hidden_child_count)))
        for child_id in reversed(plan.visible_child_ids):
            stack.append(("node", child_id, depth + 1))

    return rows
