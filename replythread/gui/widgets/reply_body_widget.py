"""Reply body: rich text with clickable annotations, read-more, translate and copy."""

import logging
import time
from typing import Optional

from PyQt6.QtWidgets import QApplication, QHBoxLayout, QLabel, QPushButton, QVBoxLayout, QWidget
from PyQt6.QtCore import Qt, QTimer, pyqtSignal

from replythread.adapters.host_adapter import ReplyHostAdapter
from replythread.core.i18n_manager import I18nManager
from replythread.gui.task_coordinator import TaskCoordinator
from replythread.services.reply_body_state import ReplyBodyState

logger = logging.getLogger("replythread")

QWIDGETSIZE_MAX = 16777215


class ReplyBodyWidget(QWidget):
    """Presents a ReplyBodyState; every decision is made by the state object."""

    expand_toggled = pyqtSignal(bool)

    def __init__(
        self,
        state: ReplyBodyState,
        host: ReplyHostAdapter,
        coordinator: TaskCoordinator,
        translate_target: str = "",
        search_query: Optional[str] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._i18n = I18nManager()
        self._state = state
        self._host = host
        self._coordinator = coordinator
        self._target = translate_target
        self._query = search_query

        self._init_ui()

        self._copy_timer = QTimer(self)
        self._copy_timer.setSingleShot(True)
        self._copy_timer.timeout.connect(self._refresh_controls)

        self._render_text()

    # ------------------------------------------------------------------
    # UI Construction
    # ------------------------------------------------------------------

    def _init_ui(self):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(2)

        self._label = QLabel()
        self._label.setWordWrap(True)
        self._label.setTextInteractionFlags(
            Qt.TextInteractionFlag.TextSelectableByMouse
            | Qt.TextInteractionFlag.LinksAccessibleByMouse
        )
        self._label.setOpenExternalLinks(False)
        self._label.linkActivated.connect(self._on_link_activated)
        layout.addWidget(self._label)

        controls = QHBoxLayout()
        controls.setContentsMargins(0, 0, 0, 0)

        self._expand_btn = QPushButton()
        self._expand_btn.setFlat(True)
        self._expand_btn.setStyleSheet("color: #1976d2; font-size: 11px; padding: 0;")
        self._expand_btn.clicked.connect(self._on_toggle_expand)
        controls.addWidget(self._expand_btn)

        self._translate_btn = QPushButton()
        self._translate_btn.setFlat(True)
        self._translate_btn.setStyleSheet("font-size: 11px; padding: 0 6px;")
        self._translate_btn.clicked.connect(self._on_translate)
        controls.addWidget(self._translate_btn)

        self._copy_btn = QPushButton()
        self._copy_btn.setFlat(True)
        self._copy_btn.setStyleSheet("font-size: 11px; padding: 0 6px;")
        self._copy_btn.clicked.connect(self._on_copy)
        controls.addWidget(self._copy_btn)

        self._metrics_label = QLabel()
        self._metrics_label.setStyleSheet("color: #999; font-size: 10px;")
        controls.addWidget(self._metrics_label)
        controls.addStretch()
        layout.addLayout(controls)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def set_search_query(self, query: Optional[str]):
        self._query = query
        self._render_text()

    def reload(self, state: ReplyBodyState):
        """Swap in the state of an edited reply."""
        self._state.unmount()
        self._state = state
        self._render_text()

    def _render_text(self):
        state = self._state
        rich = state.display_is_rich(self._query)
        self._label.setTextFormat(Qt.TextFormat.RichText if rich else Qt.TextFormat.PlainText)
        self._label.setText(state.display_markup(self._query))

        metrics = state.metrics
        self._metrics_label.setText(
            self._i18n.get("body.metrics", words=metrics.word_count, minutes=metrics.reading_time)
        )
        self._measure()

    def _measure(self):
        """Measure the unclamped text height and clamp the label if needed."""
        width = self._label.width() or self.width()
        if width <= 0:
            self._refresh_controls()
            return
        full_height = self._label.heightForWidth(width)
        if full_height < 0:
            full_height = self._label.sizeHint().height()
        line_height = self._label.fontMetrics().lineSpacing()
        self._state.measure(full_height, line_height)

        if self._state.display_state == "expandable":
            allowed = self._state.max_height or self._state.max_lines * line_height
            self._label.setMaximumHeight(allowed)
        else:
            self._label.setMaximumHeight(QWIDGETSIZE_MAX)
        self._refresh_controls()

    def _refresh_controls(self):
        state = self._state

        display = state.display_state
        self._expand_btn.setVisible(display != "collapsed")
        self._expand_btn.setText(
            self._i18n.get("body.show_less" if display == "expanded" else "body.read_more")
        )

        self._translate_btn.setVisible(state.can_translate(self._target))
        self._translate_btn.setEnabled(not state.is_translating)
        if state.is_translating:
            self._translate_btn.setText(self._i18n.get("body.translating"))
        elif state.is_translated:
            self._translate_btn.setText(self._i18n.get("body.show_original"))
        else:
            self._translate_btn.setText(self._i18n.get("body.translate"))
        if state.error_key:
            self._translate_btn.setToolTip(self._i18n.get(state.error_key))

        copied = state.is_copy_feedback_active(time.time())
        self._copy_btn.setText(self._i18n.get("body.copied" if copied else "body.copy"))

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self._measure()

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _on_toggle_expand(self):
        expanded = self._state.toggle_expand()
        self._measure()
        self.expand_toggled.emit(expanded)

    def _on_translate(self):
        request = self._state.request_translation(self._target)
        if request is None:
            self._render_text()
            return

        started = self._coordinator.run(
            request.reply_id, "translate", ReplyBodyState.dispatch, self._host, request,
            on_success=lambda text, r=request: self._on_translated(r, text),
            on_failure=lambda key, r=request: self._on_translate_failed(r, key),
        )
        if not started:
            self._state.fail_translation(request, "errors.busy")
        self._refresh_controls()

    def _on_translated(self, request, text):
        if self._state.finish_translation(request, str(text or "")):
            self._render_text()

    def _on_translate_failed(self, request, error_key: str):
        if self._state.fail_translation(request, error_key):
            self._refresh_controls()

    def _on_copy(self):
        text = self._state.copy_text(time.time())
        QApplication.clipboard().setText(text)
        self._copy_timer.start(self._state.copy_feedback_ms)
        self._refresh_controls()

    def _on_link_activated(self, href: str):
        resolved = self._state.activate_anchor(href)
        if resolved is None:
            return
        kind, target = resolved
        if kind == "mention":
            self._host.on_mention_click(target)
        elif kind == "hashtag":
            self._host.on_hashtag_click(target)
        else:
            self._host.on_link_click(target)

    def shutdown(self):
        self._copy_timer.stop()
        self._state.unmount()
