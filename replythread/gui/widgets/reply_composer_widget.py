"""Inline box for answering a reply, shown under its footer."""

import logging

from PyQt6.QtWidgets import QFrame, QHBoxLayout, QLabel, QPushButton, QTextEdit, QVBoxLayout
from PyQt6.QtCore import pyqtSignal

from replythread.adapters.host_adapter import ReplyHostAdapter
from replythread.core.exceptions import ReplyValidationError
from replythread.core.i18n_manager import I18nManager
from replythread.gui.task_coordinator import TaskCoordinator
from replythread.services.reply_composer import ReplyComposer, ReplySubmitRequest

logger = logging.getLogger("replythread")


class ReplyComposerWidget(QFrame):
    """Text box plus send/cancel bound to a ReplyComposer.

    Emits ``submitted`` after the host accepted the reply and ``closed``
    when the box should go away (sent or cancelled).
    """

    submitted = pyqtSignal(str)
    closed = pyqtSignal()

    def __init__(
        self,
        composer: ReplyComposer,
        host: ReplyHostAdapter,
        coordinator: TaskCoordinator,
        parent=None,
    ):
        super().__init__(parent)
        self._i18n = I18nManager()
        self._composer = composer
        self._host = host
        self._coordinator = coordinator
        self._init_ui()
        self._refresh()

    def _init_ui(self):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 4, 0, 4)

        self._editor = QTextEdit()
        self._editor.setAcceptRichText(False)
        self._editor.setPlaceholderText(self._i18n.get("compose.placeholder"))
        self._editor.setFixedHeight(72)
        self._editor.textChanged.connect(self._on_text_changed)
        layout.addWidget(self._editor)

        row = QHBoxLayout()
        self._error_label = QLabel()
        self._error_label.setStyleSheet("color: #d32f2f; font-size: 11px;")
        row.addWidget(self._error_label, 1)

        cancel_btn = QPushButton(self._i18n.get("compose.cancel"))
        cancel_btn.clicked.connect(self.cancel)
        row.addWidget(cancel_btn)

        self._send_btn = QPushButton()
        self._send_btn.clicked.connect(self._on_send)
        row.addWidget(self._send_btn)
        layout.addLayout(row)

    def _refresh(self):
        composer = self._composer
        self._send_btn.setEnabled(composer.can_submit)
        self._send_btn.setText(
            self._i18n.get("compose.sending" if composer.is_submitting else "compose.send")
        )

    def _on_text_changed(self):
        self._composer.set_content(self._editor.toPlainText())
        self._error_label.clear()
        self._refresh()

    def _on_send(self):
        try:
            request = self._composer.begin_submit()
        except ReplyValidationError as e:
            self._error_label.setText(self._i18n.get(e.key, max=self._composer.max_length))
            return
        if request is None:
            return

        self._editor.setReadOnly(True)
        started = self._coordinator.run(
            request.parent_id, "reply", ReplyComposer.dispatch, self._host, request,
            on_success=lambda _result, r=request: self._on_sent(r),
            on_failure=lambda key, r=request: self._on_failed(r, key),
        )
        if not started:
            self._on_failed(request, "errors.busy")
            return
        self._refresh()

    def _on_sent(self, request: ReplySubmitRequest):
        if not self._composer.finish_submit(request):
            return
        self.submitted.emit(request.content)
        self.closed.emit()

    def _on_failed(self, request: ReplySubmitRequest, error_key: str):
        self._composer.fail_submit(request, error_key)
        self._editor.setReadOnly(False)
        self._error_label.setText(self._i18n.get(error_key))
        self._refresh()

    def cancel(self):
        if self._composer.is_submitting:
            return
        self.shutdown()
        self.closed.emit()

    def shutdown(self):
        self._composer.unmount()
