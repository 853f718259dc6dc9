"""Delete confirmation dialog."""

import logging

from PyQt6.QtWidgets import (
    QCheckBox, QComboBox, QDialog, QHBoxLayout, QLabel,
    QLineEdit, QPushButton, QVBoxLayout,
)
from PyQt6.QtCore import pyqtSignal

from replythread.adapters.host_adapter import ReplyHostAdapter
from replythread.core.exceptions import DeleteValidationError
from replythread.core.i18n_manager import I18nManager
from replythread.gui.task_coordinator import TaskCoordinator
from replythread.services.delete_engine import DELETE_REASONS, DeleteEngine, DeleteRequest

logger = logging.getLogger("replythread")


class DeleteDialog(QDialog):
    """Soft or permanent delete of one reply through a DeleteEngine."""

    deleted = pyqtSignal(object)     # DeleteRequest

    def __init__(
        self,
        engine: DeleteEngine,
        host: ReplyHostAdapter,
        coordinator: TaskCoordinator,
        author_name: str = "",
        preview: str = "",
        parent=None,
    ):
        super().__init__(parent)
        self._i18n = I18nManager()
        self._engine = engine
        self._host = host
        self._coordinator = coordinator

        self.setWindowTitle(self._i18n.get("delete.title"))
        self.setMinimumWidth(440)
        self._init_ui(author_name, preview)
        self._refresh()

    def _init_ui(self, author_name: str, preview: str):
        layout = QVBoxLayout(self)

        summary = QLabel(self._i18n.get("delete.summary", author=author_name))
        summary.setWordWrap(True)
        layout.addWidget(summary)

        if preview:
            quote = QLabel(preview[:200])
            quote.setWordWrap(True)
            quote.setStyleSheet("color: #555; border-left: 3px solid #ccc; padding-left: 6px;")
            layout.addWidget(quote)

        self._warning_label = QLabel()
        self._warning_label.setWordWrap(True)
        self._warning_label.setStyleSheet("color: #f57c00;")
        layout.addWidget(self._warning_label)

        self._permanent_check = QCheckBox(self._i18n.get("delete.permanent"))
        self._permanent_check.toggled.connect(self._on_permanent_toggled)
        layout.addWidget(self._permanent_check)

        reason_row = QHBoxLayout()
        self._reason_label = QLabel()
        reason_row.addWidget(self._reason_label)
        self._reason_combo = QComboBox()
        self._reason_combo.addItem(self._i18n.get("delete.reason_placeholder"), "")
        for reason in DELETE_REASONS:
            self._reason_combo.addItem(self._i18n.get(f"delete.reasons.{reason}"), reason)
        self._reason_combo.currentIndexChanged.connect(self._on_reason_changed)
        reason_row.addWidget(self._reason_combo, 1)
        layout.addLayout(reason_row)

        self._custom_reason = QLineEdit()
        self._custom_reason.setPlaceholderText(self._i18n.get("delete.custom_reason"))
        self._custom_reason.textChanged.connect(self._on_custom_reason_changed)
        layout.addWidget(self._custom_reason)

        self._confirm_label = QLabel(
            self._i18n.get("delete.type_to_confirm", token=self._engine.confirm_token)
        )
        layout.addWidget(self._confirm_label)
        self._confirm_edit = QLineEdit()
        self._confirm_edit.textChanged.connect(self._on_confirmation_changed)
        layout.addWidget(self._confirm_edit)

        self._error_label = QLabel()
        self._error_label.setStyleSheet("color: #d32f2f;")
        layout.addWidget(self._error_label)

        button_row = QHBoxLayout()
        button_row.addStretch()
        cancel_btn = QPushButton(self._i18n.get("delete.cancel"))
        cancel_btn.clicked.connect(self.reject)
        button_row.addWidget(cancel_btn)
        self._confirm_btn = QPushButton()
        self._confirm_btn.setStyleSheet("color: white; background-color: #d32f2f;")
        self._confirm_btn.clicked.connect(self._on_confirm)
        button_row.addWidget(self._confirm_btn)
        layout.addLayout(button_row)

    def _refresh(self):
        engine = self._engine
        warning = engine.children_warning
        self._warning_label.setText(self._i18n.get(warning.key) if warning else "")
        self._warning_label.setVisible(warning is not None)

        self._reason_label.setText(
            self._i18n.get("delete.reason") + (" *" if engine.needs_reason else "")
        )
        self._custom_reason.setVisible(engine.reason == "other")
        self._confirm_label.setVisible(engine.permanent)
        self._confirm_edit.setVisible(engine.permanent)

        self._confirm_btn.setText(self._i18n.get(
            "delete.deleting" if engine.is_deleting
            else "delete.confirm_permanent" if engine.permanent
            else "delete.confirm"
        ))
        self._confirm_btn.setEnabled(engine.can_confirm)

    def _on_permanent_toggled(self, checked: bool):
        self._engine.set_permanent(checked)
        if not checked:
            self._confirm_edit.clear()
        self._refresh()

    def _on_reason_changed(self, index: int):
        self._engine.select_reason(self._reason_combo.itemData(index) or "")
        self._refresh()

    def _on_custom_reason_changed(self, text: str):
        self._engine.set_custom_reason(text)
        self._refresh()

    def _on_confirmation_changed(self, text: str):
        self._engine.set_confirmation(text)
        self._refresh()

    def _on_confirm(self):
        try:
            request = self._engine.begin_delete()
        except DeleteValidationError as e:
            self._error_label.setText(self._i18n.get(e.key))
            return
        if request is None:
            return

        started = self._coordinator.run(
            request.reply_id, "delete", DeleteEngine.dispatch, self._host, request,
            on_success=lambda _result, r=request: self._on_deleted(r),
            on_failure=lambda key, r=request: self._on_failed(r, key),
        )
        if not started:
            self._on_failed(request, "errors.busy")
            return
        self._refresh()

    def _on_deleted(self, request: DeleteRequest):
        if self._engine.finish_delete(request):
            self.deleted.emit(request)
            self.accept()

    def _on_failed(self, request: DeleteRequest, error_key: str):
        self._engine.fail_delete(request, error_key)
        self._error_label.setText(self._i18n.get(error_key))
        self._refresh()

    def reject(self):
        if self._engine.is_deleting:
            return
        super().reject()

    def shutdown(self):
        self._engine.unmount()
        super().reject()
