"""Scrollable reply thread with batched top-level rendering and lazy node mounting."""

import logging
from typing import Optional

from PyQt6.QtWidgets import (
    QHBoxLayout, QLabel, QLineEdit, QPushButton,
    QScrollArea, QVBoxLayout, QWidget,
)
from PyQt6.QtCore import QPoint, Qt, QTimer

from replythread.adapters.host_adapter import ReplyHostAdapter
from replythread.core.config_manager import ConfigManager
from replythread.core.i18n_manager import I18nManager
from replythread.core.types import Notice, ReplyRecord, UserIdentitySnapshot
from replythread.gui.task_coordinator import TaskCoordinator
from replythread.gui.widgets.notification_banner import NotificationBanner
from replythread.gui.widgets.reply_node_widget import ReplyNodeWidget, ThreadContext
from replythread.services.content_processor import MIN_SEARCH_LENGTH
from replythread.services.thread_tree import ThreadArena, ThreadSession, view_root_ids

logger = logging.getLogger("replythread")


class ReplyThreadWidget(QWidget):
    """A whole thread: search box, notifications and the node tree.

    Top-level replies are rendered ``thread.render_batch`` at a time; the next
    batch loads when the scroll position passes 80%. After every scroll or
    resize each node is told how much of it is visible.
    """

    def __init__(
        self,
        roots: list[ReplyRecord],
        host: ReplyHostAdapter,
        config: ConfigManager,
        coordinator: TaskCoordinator,
        viewer: Optional[UserIdentitySnapshot] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._i18n = I18nManager()
        self._config = config
        self._coordinator = coordinator
        self._arena = ThreadArena.from_roots(roots)
        self._session = ThreadSession(viewer=viewer)
        self._ctx = ThreadContext(
            arena=self._arena,
            session=self._session,
            host=host,
            coordinator=coordinator,
            config=config,
            notify=self._on_notice,
            request_rebuild=self._schedule_rebuild,
            request_visibility=self._schedule_visibility,
        )
        self._root_ids: list[str] = []
        self._root_widgets: list[ReplyNodeWidget] = []
        self._rendered_count = 0

        self._init_ui()

        self._visibility_timer = QTimer(self)
        self._visibility_timer.setSingleShot(True)
        self._visibility_timer.setInterval(50)
        self._visibility_timer.timeout.connect(self._update_visibility)

        self._rebuild()

    # ------------------------------------------------------------------
    # UI Construction
    # ------------------------------------------------------------------

    def _init_ui(self):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self._banner = NotificationBanner(self._config.get("notifications.duration_ms", 3000))
        layout.addWidget(self._banner)

        top_row = QHBoxLayout()
        self._count_label = QLabel()
        top_row.addWidget(self._count_label)
        top_row.addStretch()

        self._back_btn = QPushButton(self._i18n.get("thread.back_to_thread"))
        self._back_btn.clicked.connect(self._on_back_to_thread)
        self._back_btn.hide()
        top_row.addWidget(self._back_btn)

        self._search_edit = QLineEdit()
        self._search_edit.setPlaceholderText(self._i18n.get("thread.search_placeholder"))
        self._search_edit.setClearButtonEnabled(True)
        self._search_edit.setMaximumWidth(240)
        self._search_edit.textChanged.connect(self._on_search_changed)
        top_row.addWidget(self._search_edit)
        layout.addLayout(top_row)

        self._scroll = QScrollArea()
        self._scroll.setWidgetResizable(True)
        container = QWidget()
        self._nodes_layout = QVBoxLayout(container)
        self._nodes_layout.setAlignment(Qt.AlignmentFlag.AlignTop)
        self._scroll.setWidget(container)
        self._scroll.verticalScrollBar().valueChanged.connect(self._on_scroll)
        layout.addWidget(self._scroll)

        self._more_indicator: Optional[QLabel] = None
        self._empty_label = QLabel(self._i18n.get("thread.empty"))
        self._empty_label.setStyleSheet("color: #888; padding: 16px;")
        self._empty_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self._empty_label)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def set_viewer(self, viewer: Optional[UserIdentitySnapshot]):
        """Switch the signed-in viewer; permissions and visibility are re-evaluated."""
        self._session.viewer = viewer
        self._rebuild()

    def _schedule_rebuild(self):
        # Deferred: the request comes from inside a node that is about to be replaced
        QTimer.singleShot(0, self._rebuild)

    def _schedule_visibility(self):
        """Re-check node visibility once layout settles (new or re-shown nodes)."""
        self._visibility_timer.start()

    def _rebuild(self):
        self._clear_nodes()
        self._root_ids = view_root_ids(self._arena, self._session)
        self._rendered_count = 0
        self._back_btn.setVisible(self._session.focus_id is not None)
        self._count_label.setText(self._i18n.get("thread.reply_count", count=len(self._arena)))
        self._empty_label.setVisible(not self._root_ids)
        self._render_next_batch()

    def _render_next_batch(self):
        batch = self._config.get("thread.render_batch", 10)
        start = self._rendered_count
        end = min(start + batch, len(self._root_ids))
        if start >= end:
            return

        if self._more_indicator is not None:
            self._more_indicator.deleteLater()
            self._more_indicator = None

        for reply_id in self._root_ids[start:end]:
            node = ReplyNodeWidget(reply_id, 0, self._ctx)
            self._nodes_layout.addWidget(node)
            self._root_widgets.append(node)
        self._rendered_count = end

        if end < len(self._root_ids):
            self._more_indicator = QLabel("···")
            self._more_indicator.setStyleSheet("color: #888; font-size: 18px; padding: 8px;")
            self._more_indicator.setAlignment(Qt.AlignmentFlag.AlignCenter)
            self._nodes_layout.addWidget(self._more_indicator)

        self._visibility_timer.start()

    def _clear_nodes(self):
        for node in self._root_widgets:
            node.shutdown()
        self._root_widgets.clear()
        while self._nodes_layout.count():
            item = self._nodes_layout.takeAt(0)
            widget = item.widget()
            if widget is not None:
                widget.deleteLater()
        self._more_indicator = None
        self._ctx.nodes.clear()

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------

    def _update_visibility(self):
        """Report each node's visible fraction of the viewport."""
        viewport = self._scroll.viewport()
        view_top = 0
        view_bottom = viewport.height()

        for node in list(self._ctx.nodes.values()):
            if not node.isVisible() or node.height() <= 0:
                continue
            top = node.mapTo(viewport, QPoint(0, 0)).y()
            bottom = top + node.height()
            visible = min(bottom, view_bottom) - max(top, view_top)
            if visible <= 0:
                continue
            node.set_visible_ratio(visible / min(node.height(), viewport.height()))

    def _on_scroll(self, value: int):
        self._visibility_timer.start()
        scrollbar = self._scroll.verticalScrollBar()
        if scrollbar.maximum() == 0:
            return
        if value > scrollbar.maximum() * 0.8 and self._rendered_count < len(self._root_ids):
            self._render_next_batch()

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self._visibility_timer.start()

    def showEvent(self, event):
        super().showEvent(event)
        self._visibility_timer.start()

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _on_notice(self, notice: Notice):
        self._banner.show_notice(notice)

    def _on_search_changed(self, text: str):
        query = text.strip()
        self._session.search_query = query if len(query) >= MIN_SEARCH_LENGTH else None
        for node in self._ctx.nodes.values():
            node.set_search_query(self._session.search_query)

    def _on_back_to_thread(self):
        self._session.focus(None)
        self._rebuild()

    def shutdown(self):
        """Unmount every node and stop timers (window closing)."""
        self._visibility_timer.stop()
        self._banner.shutdown()
        for node in self._root_widgets:
            node.shutdown()
