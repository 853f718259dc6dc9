"""Tests for the thread arena, render planning and row flattening."""

from replythread.core.types import ReplyRecord, UserIdentitySnapshot
from replythread.services.thread_tree import (
    ThreadArena,
    ThreadSession,
    build_rows,
    plan_node,
    view_root_ids,
)

from fakes import make_tree

USER = UserIdentitySnapshot(id="u", display_name="U")


def _reply(reply_id, *children, status="approved"):
    return ReplyRecord(id=reply_id, user=USER, content=reply_id,
                       moderation_status=status, children=list(children))


class TestThreadArena:

    def test_indexes_depth_and_parents(self):
        arena = ThreadArena.from_roots([_reply("a", _reply("a1", _reply("a1x"))), _reply("b")])

        assert arena.root_ids == ["a", "b"]
        assert arena.get("a1x").depth == 2
        assert arena.get("a1x").parent_id == "a1"
        assert arena.ancestors("a1x") == ["a1", "a"]
        assert arena.descendant_count("a") == 2
        assert len(arena) == 4

    def test_very_deep_thread_builds(self):
        arena = ThreadArena.from_roots([make_tree(5000)])
        assert len(arena) == 5001
        assert arena.descendant_count("n") == 5000

    def test_duplicate_ids_skipped(self):
        arena = ThreadArena.from_roots([_reply("a", _reply("dup")), _reply("dup", _reply("x"))])
        assert arena.root_ids == ["a"]
        assert "x" not in arena


class TestDepthLimit:

    def test_no_row_deeper_than_max_depth(self):
        arena = ThreadArena.from_roots([make_tree(10)])
        rows = build_rows(arena, ThreadSession(), max_depth=3)

        assert max(row.depth for row in rows) == 3
        assert [row.kind for row in rows] == ["reply", "reply", "reply", "reply", "show_thread"]
        assert rows[-1].count == 7

    def test_node_at_limit_without_children_has_no_affordance(self):
        arena = ThreadArena.from_roots([make_tree(3)])
        kinds = [row.kind for row in build_rows(arena, ThreadSession(), max_depth=3)]
        assert "show_thread" not in kinds

    def test_focus_restarts_depth(self):
        arena = ThreadArena.from_roots([make_tree(10)])
        session = ThreadSession()
        session.focus("n.0.0.0")

        rows = build_rows(arena, session, max_depth=3)

        assert rows[0].node_id == "n.0.0.0"
        assert rows[0].depth == 0
        assert rows[-1].kind == "show_thread"


class TestCollapse:

    def test_collapse_yields_single_summary(self):
        tree = _reply("root", _reply("c1", _reply("g1")), _reply("c2"))
        arena = ThreadArena.from_roots([tree])
        session = ThreadSession()
        expanded = build_rows(arena, session)

        session.toggle_collapsed("root")
        collapsed = build_rows(arena, session)

        assert len(collapsed) == 1
        assert collapsed[0].kind == "collapsed_summary"
        assert collapsed[0].count == 3

        session.toggle_collapsed("root")
        assert build_rows(arena, session) == expanded

    def test_collapsed_child_keeps_siblings(self):
        arena = ThreadArena.from_roots([_reply("root", _reply("c1", _reply("g1")), _reply("c2"))])
        session = ThreadSession(collapsed={"c1"})

        rows = build_rows(arena, session)

        assert [(r.kind, r.node_id) for r in rows] == [
            ("reply", "root"), ("collapsed_summary", "c1"), ("reply", "c2"),
        ]


class TestShowMore:

    def test_initial_visible_then_show_more(self):
        arena = ThreadArena.from_roots([_reply("root", *[_reply(f"c{i}") for i in range(5)])])
        session = ThreadSession()

        plan = plan_node(arena, "root", session, 0, initial_visible=3)
        assert plan.visible_child_ids == ("c0", "c1", "c2")
        assert plan.hidden_child_count == 2

        rows = build_rows(arena, session, initial_visible=3)
        assert rows[-1].kind == "show_more"
        assert rows[-1].depth == 1
        assert rows[-1].count == 2

        session.show_more("root")
        plan = plan_node(arena, "root", session, 0, initial_visible=3)
        assert len(plan.visible_child_ids) == 5
        assert plan.hidden_child_count == 0


class TestVisibility:

    def test_hidden_only_for_staff(self):
        arena = ThreadArena.from_roots([_reply("root", _reply("h", status="hidden"), _reply("ok"))])
        member = ThreadSession(viewer=UserIdentitySnapshot(id="m"))
        staff = ThreadSession(viewer=UserIdentitySnapshot(id="s", role="admin"))

        assert plan_node(arena, "root", member, 0).visible_child_ids == ("ok",)
        assert plan_node(arena, "root", staff, 0).visible_child_ids == ("h", "ok")

    def test_deleted_shown_only_while_transitioning(self):
        arena = ThreadArena.from_roots([_reply("gone", status="deleted"), _reply("kept")])
        session = ThreadSession()
        assert view_root_ids(arena, session) == ["kept"]

        session.mark_seen("gone")
        assert view_root_ids(arena, session) == ["gone", "kept"]

        session.end_transition("gone")
        assert view_root_ids(arena, session) == ["kept"]

    def test_unknown_focus_falls_back(self):
        arena = ThreadArena.from_roots([_reply("a"), _reply("b")])
        session = ThreadSession(focus_id="missing")
        assert view_root_ids(arena, session) == ["a", "b"]
