"""Modal editor for one reply with reasons, diff preview and debounced auto-save."""

import html
import logging
import time

from PyQt6.QtWidgets import (
    QComboBox, QDialog, QHBoxLayout, QLabel, QLineEdit,
    QMessageBox, QPushButton, QTextEdit, QVBoxLayout,
)
from PyQt6.QtCore import QTimer, pyqtSignal

from replythread.adapters.host_adapter import ReplyHostAdapter
from replythread.core.exceptions import EditValidationError
from replythread.core.i18n_manager import I18nManager
from replythread.gui.task_coordinator import TaskCoordinator
from replythread.services.edit_engine import CUSTOM_REASON_MAX, EDIT_REASONS, EditEngine, EditRequest

logger = logging.getLogger("replythread")

LEVEL_COLORS = {
    "default": "#888",
    "warning": "#f57c00",
    "destructive": "#d32f2f",
}

DIFF_STYLES = {
    "added": "background-color: #c8e6c9;",
    "removed": "background-color: #ffcdd2; text-decoration: line-through;",
    "unchanged": "",
}


class EditDialog(QDialog):
    """Edits a reply through an EditEngine.

    Emits ``saved(content, history_entry)`` once the host accepted the edit.
    """

    saved = pyqtSignal(str, object)

    def __init__(
        self,
        engine: EditEngine,
        host: ReplyHostAdapter,
        coordinator: TaskCoordinator,
        auto_save_interval_ms: int = 30000,
        parent=None,
    ):
        super().__init__(parent)
        self._i18n = I18nManager()
        self._engine = engine
        self._host = host
        self._coordinator = coordinator

        self.setWindowTitle(self._i18n.get("edit.title"))
        self.setMinimumWidth(520)
        self._init_ui()

        # Debounce: restarted on every keystroke
        self._autosave_timer = QTimer(self)
        self._autosave_timer.setSingleShot(True)
        self._autosave_timer.setInterval(auto_save_interval_ms)
        self._autosave_timer.timeout.connect(self._on_autosave_due)

        self._refresh()

    # ------------------------------------------------------------------
    # UI Construction
    # ------------------------------------------------------------------

    def _init_ui(self):
        layout = QVBoxLayout(self)
        session = self._engine.session

        self._editor = QTextEdit()
        self._editor.setAcceptRichText(False)
        self._editor.setPlainText(session.draft)
        self._editor.textChanged.connect(self._on_text_changed)
        layout.addWidget(self._editor)

        info_row = QHBoxLayout()
        self._count_label = QLabel()
        info_row.addWidget(self._count_label)
        info_row.addStretch()
        self._autosave_label = QLabel()
        self._autosave_label.setStyleSheet("color: #888; font-size: 11px;")
        info_row.addWidget(self._autosave_label)
        self._time_label = QLabel()
        self._time_label.setStyleSheet("color: #888; font-size: 11px;")
        info_row.addWidget(self._time_label)
        layout.addLayout(info_row)

        self._diff_label = QLabel()
        self._diff_label.setWordWrap(True)
        self._diff_label.hide()
        layout.addWidget(self._diff_label)

        reason_row = QHBoxLayout()
        self._reason_label = QLabel(self._i18n.get("edit.reason"))
        reason_row.addWidget(self._reason_label)
        self._reason_combo = QComboBox()
        self._reason_combo.addItem(self._i18n.get("edit.reason_placeholder"), "")
        for reason in EDIT_REASONS:
            self._reason_combo.addItem(self._i18n.get(f"edit.reasons.{reason}"), reason)
        self._reason_combo.currentIndexChanged.connect(self._on_reason_changed)
        reason_row.addWidget(self._reason_combo, 1)
        layout.addLayout(reason_row)

        self._custom_reason = QLineEdit()
        self._custom_reason.setMaxLength(CUSTOM_REASON_MAX)
        self._custom_reason.setPlaceholderText(self._i18n.get("edit.custom_reason"))
        self._custom_reason.textChanged.connect(self._on_custom_reason_changed)
        self._custom_reason.hide()
        layout.addWidget(self._custom_reason)

        self._error_label = QLabel()
        self._error_label.setStyleSheet("color: #d32f2f;")
        self._error_label.setWordWrap(True)
        layout.addWidget(self._error_label)

        button_row = QHBoxLayout()
        self._preview_btn = QPushButton(self._i18n.get("edit.preview"))
        self._preview_btn.clicked.connect(self._on_toggle_preview)
        button_row.addWidget(self._preview_btn)
        button_row.addStretch()
        self._cancel_btn = QPushButton(self._i18n.get("edit.cancel"))
        self._cancel_btn.clicked.connect(self.reject)
        button_row.addWidget(self._cancel_btn)
        self._save_btn = QPushButton(self._i18n.get("edit.save"))
        self._save_btn.setDefault(True)
        self._save_btn.clicked.connect(self._on_save)
        button_row.addWidget(self._save_btn)
        layout.addLayout(button_row)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def _refresh(self):
        engine = self._engine
        session = engine.session
        now = time.time()

        length = len(session.draft)
        color = LEVEL_COLORS[engine.length_level()]
        self._count_label.setText(
            self._i18n.get("edit.char_count", count=length, max=engine.max_length)
        )
        self._count_label.setStyleSheet(f"color: {color}; font-size: 11px;")

        remaining = engine.time_remaining(now)
        if remaining is None:
            self._time_label.hide()
        else:
            self._time_label.show()
            self._time_label.setText(self._i18n.get("edit.time_remaining", minutes=int(remaining)))

        needs_reason = engine.needs_reason
        self._reason_label.setText(
            self._i18n.get("edit.reason") + (" *" if needs_reason else "")
        )
        self._custom_reason.setVisible(session.reason == "other")

        if session.is_auto_saving:
            self._autosave_label.setText(self._i18n.get("edit.auto_saving"))
        elif session.last_auto_save is not None:
            saved_at = time.strftime("%H:%M", time.localtime(session.last_auto_save))
            self._autosave_label.setText(self._i18n.get("edit.auto_saved", time=saved_at))

        if session.show_preview:
            self._diff_label.setText(self._render_diff())
            self._diff_label.show()
        else:
            self._diff_label.hide()

        error_key = engine.validation_error(now)
        show_error = error_key is not None and error_key != "edit.no_changes" and engine.has_changes
        self._error_label.setText(
            self._i18n.get(error_key, min=engine.min_length, max=engine.max_length) if show_error else ""
        )
        self._save_btn.setEnabled(engine.can_save(now))
        self._save_btn.setText(
            self._i18n.get("edit.saving" if session.is_saving else "edit.save")
        )

    def _render_diff(self) -> str:
        parts = []
        for span in self._engine.diff():
            style = DIFF_STYLES[span.type]
            text = html.escape(span.content)
            parts.append(f'<span style="{style}">{text}</span>' if style else text)
        return " ".join(parts)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _on_text_changed(self):
        self._engine.set_content(self._editor.toPlainText())
        if self._engine.auto_save:
            self._autosave_timer.start()
        self._refresh()

    def _on_reason_changed(self, index: int):
        self._engine.select_reason(self._reason_combo.itemData(index) or "")
        self._refresh()

    def _on_custom_reason_changed(self, text: str):
        self._engine.set_custom_reason(text)
        self._refresh()

    def _on_toggle_preview(self):
        showing = self._engine.toggle_preview()
        self._preview_btn.setText(self._i18n.get("edit.hide_preview" if showing else "edit.preview"))
        self._refresh()

    def _on_autosave_due(self):
        request = self._engine.begin_autosave()
        if request is None:
            return
        started = self._coordinator.run(
            request.reply_id, "autosave", EditEngine.dispatch, self._host, request,
            on_success=lambda _result, r=request: self._on_autosaved(r),
            on_failure=lambda key, r=request: self._on_autosave_failed(r, key),
        )
        if not started:
            self._engine.fail_autosave(request, "errors.busy")
        self._refresh()

    def _on_autosaved(self, request: EditRequest):
        self._engine.finish_autosave(request, time.time())
        self._refresh()

    def _on_autosave_failed(self, request: EditRequest, error_key: str):
        self._engine.fail_autosave(request, error_key)
        self._refresh()

    def _on_save(self):
        try:
            request = self._engine.begin_save(time.time())
        except EditValidationError as e:
            self._error_label.setText(self._i18n.get(e.key))
            return
        if request is None:
            return

        self._autosave_timer.stop()
        self._editor.setReadOnly(True)
        started = self._coordinator.run(
            request.reply_id, "edit", EditEngine.dispatch, self._host, request,
            on_success=lambda _result, r=request: self._on_saved(r),
            on_failure=lambda key, r=request: self._on_save_failed(r, key),
        )
        if not started:
            self._on_save_failed(request, "errors.busy")
            return
        self._refresh()

    def _on_saved(self, request: EditRequest):
        entry = self._engine.finish_save(request, time.time())
        if entry is None:
            return
        self.saved.emit(request.content, entry)
        self._close_quietly()
        self.accept()

    def _on_save_failed(self, request: EditRequest, error_key: str):
        self._engine.fail_save(request, error_key)
        self._editor.setReadOnly(False)
        self._error_label.setText(self._i18n.get(error_key))
        self._save_btn.setEnabled(self._engine.can_save(time.time()))

    # ------------------------------------------------------------------
    # Closing
    # ------------------------------------------------------------------

    def reject(self):
        if self._engine.session.is_saving:
            return
        if self._engine.has_unsaved_changes:
            answer = QMessageBox.question(
                self, self._i18n.get("edit.title"), self._i18n.get("edit.discard_confirm"),
            )
            if answer != QMessageBox.StandardButton.Yes:
                return
        self._engine.cancel()
        self._close_quietly()
        super().reject()

    def shutdown(self):
        """Close without asking (the reply is going away)."""
        self._engine.unmount()
        self._close_quietly()
        super().reject()

    def _close_quietly(self):
        self._autosave_timer.stop()
        self._coordinator.stop(self._engine.reply_id, "autosave")
