"""One reply and, recursively, its visible children."""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from PyQt6.QtWidgets import QFrame, QHBoxLayout, QLabel, QPushButton, QVBoxLayout
from PyQt6.QtCore import QTimer

from replythread.adapters.host_adapter import ReplyHostAdapter
from replythread.core.config_manager import ConfigManager
from replythread.core.i18n_manager import I18nManager
from replythread.core.types import Notice
from replythread.gui.task_coordinator import TaskCoordinator
from replythread.gui.widgets.action_footer_widget import ActionFooterWidget
from replythread.gui.widgets.delete_dialog import DeleteDialog
from replythread.gui.widgets.edit_dialog import EditDialog
from replythread.gui.widgets.identity_widget import IdentityWidget
from replythread.gui.widgets.reply_body_widget import ReplyBodyWidget
from replythread.gui.widgets.reply_composer_widget import ReplyComposerWidget
from replythread.services import analytics
from replythread.services.analytics import AnalyticsTracker
from replythread.services.content_processor import compute_metrics
from replythread.services.delete_engine import DeleteEngine
from replythread.services.edit_engine import EditEngine
from replythread.services.interaction_manager import InteractionStateManager, Permissions
from replythread.services.reply_body_state import ReplyBodyState, VisibilityTracker
from replythread.services.reply_composer import ReplyComposer
from replythread.services.thread_tree import ThreadArena, ThreadSession, plan_node

logger = logging.getLogger("replythread")

INDENT_PX = 20
DELETE_TRANSITION_MS = 1200

STATUS_BADGES = {
    "pending": ("thread.status.pending", "#f9a825"),
    "flagged": ("thread.status.flagged", "#d32f2f"),
    "hidden": ("thread.status.hidden", "#616161"),
}


@dataclass
class ThreadContext:
    """Everything a node needs from the thread it belongs to."""

    arena: ThreadArena
    session: ThreadSession
    host: ReplyHostAdapter
    coordinator: TaskCoordinator
    config: ConfigManager
    notify: Callable[[Notice], None]
    request_rebuild: Callable[[], None]
    request_visibility: Callable[[], None] = lambda: None
    nodes: dict = field(default_factory=dict)     # reply_id -> ReplyNodeWidget


class ReplyNodeWidget(QFrame):
    """Renders one reply, then instantiates ReplyNodeWidget(child, depth + 1) per child.

    Expensive work (content processing, the view report) waits until the
    node is at least ``thread.visibility_threshold`` visible. ``shutdown``
    stops timers, unmounts every engine and drops in-flight results, for
    this node and all of its children.
    """

    def __init__(self, reply_id: str, depth: int, ctx: ThreadContext, parent=None):
        super().__init__(parent)
        self._i18n = I18nManager()
        self._ctx = ctx
        self._config = ctx.config
        self._node = ctx.arena.get(reply_id)
        self._record = self._node.record
        self.reply_id = reply_id
        self.depth = depth
        self._max_depth = self._config.get("thread.max_depth", 3)
        self._children: list['ReplyNodeWidget'] = []
        self._body: Optional[ReplyBodyWidget] = None
        self._dialog = None
        self._composer: Optional[ReplyComposerWidget] = None
        self._alive = True

        viewer = ctx.session.viewer
        self._tracker = AnalyticsTracker(ctx.host.on_analytics_event, reply_id, self._record.user.id)
        self._permissions = Permissions.evaluate(viewer, self._record.user.id, self._record)
        self._interactions = InteractionStateManager(
            self._record,
            self._permissions,
            tracker=self._tracker,
            notify=ctx.notify,
            rollback_on_failure=self._config.get("thread.rollback_on_failure", True),
        )
        self._visibility = VisibilityTracker(self._config.get("thread.visibility_threshold", 0.5))

        self._transition_timer = QTimer(self)
        self._transition_timer.setSingleShot(True)
        self._transition_timer.timeout.connect(self._finish_delete_transition)

        ctx.nodes[reply_id] = self
        self._init_ui()
        self._render_children()

        if not self._config.get("thread.lazy_mount", True):
            self.set_visible_ratio(1.0)

    # ------------------------------------------------------------------
    # UI Construction
    # ------------------------------------------------------------------

    def _init_ui(self):
        record = self._record
        self.setFrameShape(QFrame.Shape.NoFrame)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(INDENT_PX if self.depth else 0, 4, 0, 4)
        layout.setSpacing(2)

        # -- Header: collapse toggle, identity, status badges --
        header = QHBoxLayout()
        self._collapse_btn = QPushButton()
        self._collapse_btn.setFlat(True)
        self._collapse_btn.setFixedSize(22, 22)
        self._collapse_btn.clicked.connect(self._on_toggle_collapse)
        header.addWidget(self._collapse_btn)

        self._identity = IdentityWidget(
            record.user,
            record.created_at,
            self._ctx.host,
            tick_interval_sec=self._config.get("identity.tick_interval_sec", 60),
            timestamp_mode=self._config.get("identity.timestamp_mode", "relative"),
            viewer=self._ctx.session.viewer,
        )
        header.addWidget(self._identity, 1)

        self._badges = QHBoxLayout()
        header.addLayout(self._badges)
        layout.addLayout(header)
        self._refresh_badges()

        # -- Collapsed summary --
        self._summary_btn = QPushButton()
        self._summary_btn.setFlat(True)
        self._summary_btn.setStyleSheet("color: #1976d2; text-align: left;")
        self._summary_btn.clicked.connect(self._on_toggle_collapse)
        layout.addWidget(self._summary_btn)

        # -- Body (placeholder until mounted) --
        self._body_container = QVBoxLayout()
        self._placeholder = QLabel(record.content[:120])
        self._placeholder.setWordWrap(True)
        self._placeholder.setStyleSheet("color: #999;")
        self._body_container.addWidget(self._placeholder)
        layout.addLayout(self._body_container)

        self._deleted_label = QLabel(self._i18n.get("thread.deleted"))
        self._deleted_label.setStyleSheet("color: #999; font-style: italic;")
        self._deleted_label.hide()
        layout.addWidget(self._deleted_label)

        # -- Footer --
        self._footer = ActionFooterWidget(self._interactions, self._ctx.host, self._ctx.coordinator)
        self._footer.edit_requested.connect(self._open_edit_dialog)
        self._footer.delete_requested.connect(self._open_delete_dialog)
        self._footer.reply_requested.connect(self._open_composer)
        layout.addWidget(self._footer)

        self._composer_container = QVBoxLayout()
        layout.addLayout(self._composer_container)

        # -- Children --
        self._children_frame = QFrame()
        self._children_layout = QVBoxLayout(self._children_frame)
        self._children_layout.setContentsMargins(0, 0, 0, 0)
        self._children_layout.setSpacing(0)
        self._children_frame.setStyleSheet("QFrame { border-left: 1px solid #e0e0e0; }")
        layout.addWidget(self._children_frame)

        self._more_btn = QPushButton()
        self._more_btn.setFlat(True)
        self._more_btn.setStyleSheet("color: #1976d2; text-align: left;")
        self._more_btn.clicked.connect(self._on_show_more)
        layout.addWidget(self._more_btn)

        self._thread_btn = QPushButton()
        self._thread_btn.setFlat(True)
        self._thread_btn.setStyleSheet("color: #1976d2; text-align: left;")
        self._thread_btn.clicked.connect(self._on_show_thread)
        layout.addWidget(self._thread_btn)

    def _refresh_badges(self):
        while self._badges.count():
            item = self._badges.takeAt(0)
            if item.widget() is not None:
                item.widget().deleteLater()

        record = self._record
        badges = []
        if record.is_pinned:
            badges.append(("thread.status.pinned", "#1976d2"))
        if record.is_highlighted:
            badges.append(("thread.status.highlighted", "#f9a825"))
        if record.is_edited:
            badges.append(("thread.status.edited", "#9e9e9e"))
        if record.is_locked:
            badges.append(("thread.status.locked", "#616161"))
        if record.moderation_status in STATUS_BADGES:
            badges.append(STATUS_BADGES[record.moderation_status])

        for key, color in badges:
            label = QLabel(self._i18n.get(key))
            label.setStyleSheet(f"color: {color}; font-size: 10px; border: 1px solid {color}; "
                                "border-radius: 4px; padding: 0 4px;")
            self._badges.addWidget(label)

    # ------------------------------------------------------------------
    # Children and collapse
    # ------------------------------------------------------------------

    def _render_children(self):
        """(Re)build the child widgets from the node's plan."""
        for child in self._children:
            child.shutdown()
            child.deleteLater()
        self._children.clear()

        plan = plan_node(
            self._ctx.arena,
            self.reply_id,
            self._ctx.session,
            self.depth,
            max_depth=self._max_depth,
            initial_visible=self._config.get("thread.initial_visible_replies", 3),
        )

        collapsed = plan.collapsed
        self._collapse_btn.setText("+" if collapsed else "−")
        self._summary_btn.setVisible(collapsed)
        if collapsed:
            self._summary_btn.setText(self._i18n.get(
                "thread.collapsed_summary",
                author=self._record.user.display_name or self._record.user.id,
                count=plan.descendant_count,
            ))
        for widget in (self._footer, self._children_frame):
            widget.setVisible(not collapsed)
        if self._body is not None:
            self._body.setVisible(not collapsed)
        else:
            self._placeholder.setVisible(not collapsed)

        for child_id in plan.visible_child_ids:
            child = ReplyNodeWidget(child_id, self.depth + 1, self._ctx)
            self._children_layout.addWidget(child)
            self._children.append(child)

        self._more_btn.setVisible(plan.hidden_child_count > 0)
        if plan.hidden_child_count:
            self._more_btn.setText(self._i18n.get("thread.show_more", count=plan.hidden_child_count))

        self._thread_btn.setVisible(plan.show_thread)
        if plan.show_thread:
            self._thread_btn.setText(self._i18n.get("thread.show_thread", count=plan.descendant_count))

        if self._record.is_deleted:
            self._show_deleted()
        else:
            self._ctx.request_visibility()

    def _on_toggle_collapse(self):
        collapsed = self._ctx.session.toggle_collapsed(self.reply_id)
        self._tracker.track(analytics.REPLY_COLLAPSE_TOGGLE, {"collapsed": collapsed})
        self._render_children()

    def _on_show_more(self):
        self._ctx.session.show_more(self.reply_id)
        self._tracker.track(analytics.REPLY_SHOW_MORE)
        self._render_children()

    def _on_show_thread(self):
        self._ctx.session.focus(self.reply_id)
        self._tracker.track(analytics.REPLY_SHOW_THREAD)
        self._ctx.request_rebuild()

    # ------------------------------------------------------------------
    # Lazy mount
    # ------------------------------------------------------------------

    def set_visible_ratio(self, ratio: float):
        """Called by the thread view with the fraction of this node on screen."""
        if not self._alive or not self._visibility.update(ratio):
            return
        self._mount()

    def _mount(self):
        self._ctx.session.mark_seen(self.reply_id)
        self._body = ReplyBodyWidget(
            self._make_body_state(),
            self._ctx.host,
            self._ctx.coordinator,
            translate_target=self._config.translate_target(),
            search_query=self._ctx.session.search_query,
        )
        self._body.expand_toggled.connect(self._on_body_expanded)
        self._placeholder.hide()
        self._body_container.addWidget(self._body)
        self._body.setVisible(self.reply_id not in self._ctx.session.collapsed)

        if self._visibility.should_report_view():
            self._body_state.track_view()
            self._ctx.coordinator.run(self.reply_id, "view", self._ctx.host.record_view, self.reply_id)

    def _make_body_state(self) -> ReplyBodyState:
        self._body_state = ReplyBodyState(
            self._record,
            tracker=self._tracker,
            notify=self._ctx.notify,
            max_lines=self._config.get("body.max_lines", 4),
            max_height=self._config.get("body.max_height", 0),
            copy_feedback_ms=self._config.get("body.copy_feedback_ms", 2000),
            expanded=self.reply_id in self._ctx.session.expanded_bodies,
        )
        return self._body_state

    def _on_body_expanded(self, expanded: bool):
        if expanded:
            self._ctx.session.expanded_bodies.add(self.reply_id)
        else:
            self._ctx.session.expanded_bodies.discard(self.reply_id)

    def set_search_query(self, query: Optional[str]):
        if self._body is not None:
            self._body.set_search_query(query)

    # ------------------------------------------------------------------
    # Edit / delete
    # ------------------------------------------------------------------

    def _open_edit_dialog(self):
        config = self._config
        engine = EditEngine(
            self._record,
            self._ctx.session.viewer,
            tracker=self._tracker,
            notify=self._ctx.notify,
            min_length=config.get("edit.min_length", 10),
            max_length=config.get("edit.max_length", 2000),
            require_reason=config.get("edit.require_reason", False),
            auto_save=config.get("edit.auto_save", False),
            time_limit_min=config.get("edit.time_limit_min", 30),
        )
        self._dialog = EditDialog(
            engine, self._ctx.host, self._ctx.coordinator,
            auto_save_interval_ms=config.get("edit.auto_save_interval_ms", 30000),
            parent=self,
        )
        self._dialog.saved.connect(self._on_edited)
        self._dialog.finished.connect(self._on_dialog_closed)
        self._dialog.open()

    def _on_edited(self, content: str, entry):
        record = self._record
        record.content = content
        record.is_edited = True
        record.updated_at = time.time()
        record.edit_history.append(entry)
        record.metrics = compute_metrics(content)
        # Offsets no longer match the new text; annotations are re-detected
        record.mentions, record.hashtags, record.links = [], [], []
        if self._body is not None:
            self._body.reload(self._make_body_state())
        else:
            self._placeholder.setText(content[:120])
        self._refresh_badges()

    def _open_delete_dialog(self):
        engine = DeleteEngine(
            self._record,
            self._ctx.session.viewer,
            tracker=self._tracker,
            notify=self._ctx.notify,
            require_reason=self._config.get("delete.require_reason", False),
            confirm_token=self._config.get("delete.confirm_token", "DELETE"),
        )
        self._dialog = DeleteDialog(
            engine, self._ctx.host, self._ctx.coordinator,
            author_name=self._record.user.display_name,
            preview=self._record.content,
            parent=self,
        )
        engine_notice = engine.children_warning
        if engine_notice is not None:
            self._ctx.notify(engine_notice)
        self._dialog.deleted.connect(self._on_deleted)
        self._dialog.finished.connect(self._on_dialog_closed)
        self._dialog.open()

    def _open_composer(self):
        if self._composer is not None:
            self._composer.setFocus()
            return
        self._ctx.host.on_reply(self.reply_id)
        composer = ReplyComposer(
            self._record,
            tracker=self._tracker,
            notify=self._ctx.notify,
            max_length=self._config.get("edit.max_length", 2000),
        )
        self._composer = ReplyComposerWidget(composer, self._ctx.host, self._ctx.coordinator)
        self._composer.closed.connect(self._close_composer)
        self._composer_container.addWidget(self._composer)

    def _close_composer(self):
        if self._composer is None:
            return
        self._composer.shutdown()
        self._composer.deleteLater()
        self._composer = None

    def _on_dialog_closed(self, _result: int):
        self._dialog = None

    def _on_deleted(self, request):
        self._record.moderation_status = "deleted"
        self._show_deleted()
        self._transition_timer.start(DELETE_TRANSITION_MS)

    def _show_deleted(self):
        self._deleted_label.show()
        self._close_composer()
        self._placeholder.hide()
        if self._body is not None:
            self._body.hide()
        self._footer.set_enabled_all(False)
        self._children_frame.hide()
        self._more_btn.hide()
        self._thread_btn.hide()

    def _finish_delete_transition(self):
        self._ctx.session.end_transition(self.reply_id)
        self.shutdown()
        self.hide()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def shutdown(self):
        """Stop timers, unmount engines and drop in-flight results, recursively."""
        if not self._alive:
            return
        self._alive = False
        self._transition_timer.stop()
        self._identity.shutdown()
        if self._body is not None:
            self._body.shutdown()
        if self._dialog is not None:
            self._dialog.shutdown()
            self._dialog = None
        self._close_composer()
        self._interactions.unmount()
        self._ctx.coordinator.stop_node(self.reply_id)
        if self._ctx.nodes.get(self.reply_id) is self:
            del self._ctx.nodes[self.reply_id]

        for child in self._children:
            child.shutdown()
        logger.debug(f"Reply node {self.reply_id} unmounted")
