"""Widget lifecycle tests, run on the offscreen Qt platform."""

import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
QtWidgets = pytest.importorskip("PyQt6.QtWidgets")

from unittest.mock import MagicMock

from replythread.core.types import ReplyRecord, UserIdentitySnapshot
from replythread.gui.task_coordinator import TaskCoordinator
from replythread.gui.widgets.action_footer_widget import ActionFooterWidget
from replythread.gui.widgets.identity_widget import IdentityWidget
from replythread.gui.widgets.reply_node_widget import ReplyNodeWidget, ThreadContext
from replythread.services.interaction_manager import InteractionStateManager, Permissions
from replythread.services.thread_tree import ThreadArena, ThreadSession

from fakes import FakeConfig, make_tree

USER = UserIdentitySnapshot(id="u", display_name="U")


@pytest.fixture(scope="module")
def qapp():
    app = QtWidgets.QApplication.instance() or QtWidgets.QApplication([])
    yield app


def _context(root, **config):
    return ThreadContext(
        arena=ThreadArena.from_roots([root]),
        session=ThreadSession(viewer=UserIdentitySnapshot(id="u-viewer")),
        host=MagicMock(),
        coordinator=TaskCoordinator(),
        config=FakeConfig(**config),
        notify=MagicMock(),
        request_rebuild=MagicMock(),
        request_visibility=MagicMock(),
    )


class TestIdentityWidget:

    def test_shutdown_stops_clock(self, qapp):
        widget = IdentityWidget(USER, 0.0, MagicMock(), tick_interval_sec=1)
        assert widget._tick_timer.isActive()

        widget.shutdown()

        assert not widget._tick_timer.isActive()

    def test_absolute_mode_never_ticks(self, qapp):
        widget = IdentityWidget(USER, 0.0, MagicMock(), timestamp_mode="absolute")
        assert not widget._tick_timer.isActive()


class TestReplyNodeWidget:

    def test_deep_thread_stops_at_max_depth(self, qapp):
        ctx = _context(make_tree(10), thread__max_depth=3)
        root = ReplyNodeWidget("n", 0, ctx)

        depths = sorted(node.depth for node in ctx.nodes.values())
        assert depths == [0, 1, 2, 3]
        assert root.depth == 0
        root.shutdown()

    def test_shutdown_reaches_every_descendant(self, qapp):
        ctx = _context(make_tree(3))
        root = ReplyNodeWidget("n", 0, ctx)
        nodes = list(ctx.nodes.values())

        root.shutdown()

        assert ctx.nodes == {}
        for node in nodes:
            assert not node._alive
            assert not node._identity._tick_timer.isActive()

    def test_new_children_trigger_visibility_check(self, qapp):
        children = [ReplyRecord(id=f"c{i}", user=USER, content="child", parent_id="root") for i in range(5)]
        ctx = _context(ReplyRecord(id="root", user=USER, content="root", children=children),
                       thread__initial_visible_replies=3)
        root = ReplyNodeWidget("root", 0, ctx)
        ctx.request_visibility.reset_mock()

        root._more_btn.click()
        assert "c4" in ctx.nodes
        assert ctx.request_visibility.called

        ctx.request_visibility.reset_mock()
        root._collapse_btn.click()
        root._collapse_btn.click()
        assert ctx.request_visibility.called
        root.shutdown()

    def test_reply_button_opens_composer(self, qapp):
        ctx = _context(make_tree(0))
        root = ReplyNodeWidget("n", 0, ctx)

        root._footer._reply_btn.click()
        root._footer._reply_btn.click()

        ctx.host.on_reply.assert_called_once_with("n")
        assert root._composer is not None
        root.shutdown()
        assert root._composer is None


class TestActionFooter:

    def test_disabled_footer_stays_disabled_when_calls_finish(self, qapp, record, viewer):
        coordinator = TaskCoordinator()
        manager = InteractionStateManager(record, Permissions.evaluate(viewer, record.user.id, record))
        footer = ActionFooterWidget(manager, MagicMock(), coordinator)
        assert footer._buttons["like"].isEnabled()

        footer.set_enabled_all(False)
        coordinator.busy_changed.emit(record.id, "delete", False)

        assert not footer._buttons["like"].isEnabled()
        assert not footer._buttons["bookmark"].isEnabled()
        assert manager.state.likes == record.stats.likes
