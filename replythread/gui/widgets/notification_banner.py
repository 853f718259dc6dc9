"""Transient, dismissible notification strip shown above the thread."""

import logging

from PyQt6.QtWidgets import QFrame, QHBoxLayout, QLabel, QPushButton
from PyQt6.QtCore import QTimer

from replythread.core.i18n_manager import I18nManager
from replythread.core.types import Notice

logger = logging.getLogger("replythread")

LEVEL_STYLES = {
    "info": "background-color: #e3f2fd; color: #0d47a1;",
    "success": "background-color: #e8f5e9; color: #1b5e20;",
    "error": "background-color: #ffebee; color: #b71c1c;",
}


class NotificationBanner(QFrame):
    """Shows one Notice at a time and hides itself after ``duration_ms``."""

    def __init__(self, duration_ms: int = 3000, parent=None):
        super().__init__(parent)
        self._i18n = I18nManager()
        self._duration_ms = duration_ms

        layout = QHBoxLayout(self)
        layout.setContentsMargins(8, 4, 8, 4)
        self._label = QLabel()
        self._label.setWordWrap(True)
        layout.addWidget(self._label, 1)

        self._close_btn = QPushButton("×")
        self._close_btn.setFixedSize(20, 20)
        self._close_btn.setFlat(True)
        self._close_btn.clicked.connect(self.dismiss)
        layout.addWidget(self._close_btn)

        self._hide_timer = QTimer(self)
        self._hide_timer.setSingleShot(True)
        self._hide_timer.timeout.connect(self.dismiss)
        self.hide()

    def show_notice(self, notice: Notice):
        self._label.setText(self._i18n.render(notice))
        self.setStyleSheet(LEVEL_STYLES.get(notice.level, LEVEL_STYLES["info"]))
        self.show()
        # Errors stay up twice as long
        duration = self._duration_ms * (2 if notice.level == "error" else 1)
        self._hide_timer.start(duration)

    def dismiss(self):
        self._hide_timer.stop()
        self.hide()

    def shutdown(self):
        self._hide_timer.stop()
