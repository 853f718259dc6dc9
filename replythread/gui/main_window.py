"""Main application window hosting one reply thread."""

import logging
from typing import Optional

from PyQt6.QtWidgets import (
    QComboBox, QHBoxLayout, QLabel, QMainWindow,
    QStatusBar, QVBoxLayout, QWidget,
)
from PyQt6.QtCore import Qt

from replythread.adapters.host_adapter import ReplyHostAdapter
from replythread.core.config_manager import ConfigManager
from replythread.core.i18n_manager import I18nManager
from replythread.core.types import ReplyRecord, UserIdentitySnapshot
from replythread.gui.task_coordinator import TaskCoordinator
from replythread.gui.widgets.reply_thread_widget import ReplyThreadWidget

logger = logging.getLogger("replythread")

# Demo viewers offered by the viewer selector
DEMO_VIEWERS = {
    "guest": None,
    "user": UserIdentitySnapshot(id="u-viewer", display_name="You", role="user", trust_score=55),
    "moderator": UserIdentitySnapshot(
        id="u-mod", display_name="Mod Mia", role="moderator", is_verified=True, trust_score=95,
    ),
}


class MainWindow(QMainWindow):
    """Main application window: viewer selector, thread view and status bar."""

    def __init__(
        self,
        roots: list[ReplyRecord],
        host: ReplyHostAdapter,
        config: ConfigManager,
        viewer_key: str = "user",
    ):
        super().__init__()
        self._config = config
        self._i18n = I18nManager()
        self._roots = roots
        self._host = host
        self._coordinator = TaskCoordinator(self)
        self._coordinator.busy_changed.connect(self._on_busy_changed)

        self.setWindowTitle(self._i18n.get("app.title"))
        self.setMinimumSize(720, 600)

        self._init_ui(viewer_key)

    def _init_ui(self, viewer_key: str):
        central = QWidget()
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)
        layout.setContentsMargins(8, 8, 8, 0)

        # === Viewer selector ===
        top_bar = QHBoxLayout()
        top_bar.addWidget(QLabel(self._i18n.get("app.viewer")))
        self._viewer_combo = QComboBox()
        for key in DEMO_VIEWERS:
            self._viewer_combo.addItem(self._i18n.get(f"app.viewers.{key}"), key)
        index = self._viewer_combo.findData(viewer_key)
        self._viewer_combo.setCurrentIndex(max(index, 0))
        self._viewer_combo.currentIndexChanged.connect(self._on_viewer_changed)
        top_bar.addWidget(self._viewer_combo)
        top_bar.addStretch()
        layout.addLayout(top_bar)

        # === Thread ===
        self._thread_widget = ReplyThreadWidget(
            self._roots,
            self._host,
            self._config,
            self._coordinator,
            viewer=self._current_viewer(),
        )
        layout.addWidget(self._thread_widget)

        # === Status bar ===
        self._status_bar = QStatusBar()
        self.setStatusBar(self._status_bar)
        self._activity_label = QLabel("")
        self._activity_label.setStyleSheet("color: #4fc3f7; font-size: 12px; padding: 0 8px;")
        self._activity_label.setAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
        self._status_bar.addPermanentWidget(self._activity_label)

    def _current_viewer(self) -> Optional[UserIdentitySnapshot]:
        return DEMO_VIEWERS.get(self._viewer_combo.currentData())

    def _on_viewer_changed(self, _index: int):
        viewer = self._current_viewer()
        logger.info(f"Viewer switched to {viewer.id if viewer else 'guest'}")
        self._thread_widget.set_viewer(viewer)
        self._status_bar.showMessage(
            self._i18n.get("status.viewer_changed", viewer=self._viewer_combo.currentText()), 3000
        )

    def _on_busy_changed(self, _reply_id: str, _kind: str, _busy: bool):
        count = self._coordinator.active_count()
        self._activity_label.setText(self._i18n.get("status.active_calls", count=count) if count else "")

    def closeEvent(self, event):
        self._thread_widget.shutdown()
        self._coordinator.stop_all()
        super().closeEvent(event)
