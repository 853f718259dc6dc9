"""Action row under a reply: votes, bookmark, share, reply and the moderation menu."""

import logging
from typing import Optional

from PyQt6.QtWidgets import QHBoxLayout, QInputDialog, QMenu, QPushButton, QWidget
from PyQt6.QtCore import pyqtSignal

from replythread.adapters.host_adapter import ReplyHostAdapter
from replythread.core.i18n_manager import I18nManager
from replythread.gui.task_coordinator import TaskCoordinator
from replythread.services.interaction_manager import (
    REPORT_REASONS,
    InteractionStateManager,
    MutationRequest,
    format_count,
)

logger = logging.getLogger("replythread")

SHARE_PLATFORMS = ("link", "twitter", "facebook", "email")

ACTIVE_STYLE = "color: #1976d2; font-weight: bold;"
IDLE_STYLE = ""


class ActionFooterWidget(QWidget):
    """Buttons bound to an InteractionStateManager.

    A button is disabled while its own action is pending; other actions stay
    usable. Edit, delete and reply open editors owned by the node, so they are
    signalled out.
    """

    edit_requested = pyqtSignal()
    reply_requested = pyqtSignal()
    delete_requested = pyqtSignal()

    def __init__(
        self,
        manager: InteractionStateManager,
        host: ReplyHostAdapter,
        coordinator: TaskCoordinator,
        parent=None,
    ):
        super().__init__(parent)
        self._i18n = I18nManager()
        self._manager = manager
        self._host = host
        self._coordinator = coordinator
        self._buttons: dict[str, QPushButton] = {}
        self._enabled = True

        self._init_ui()
        self._coordinator.busy_changed.connect(self._on_busy_changed)
        self.refresh()

    # ------------------------------------------------------------------
    # UI Construction
    # ------------------------------------------------------------------

    def _init_ui(self):
        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(4)
        perms = self._manager.permissions

        for kind in ("like", "dislike", "bookmark"):
            btn = self._make_button()
            btn.clicked.connect(lambda checked, k=kind: self._on_action(k))
            btn.setVisible(perms.allows(kind))
            self._buttons[kind] = btn
            layout.addWidget(btn)

        helpful = self._make_button()
        helpful.clicked.connect(lambda: self._on_action("helpful", True))
        helpful.setVisible(perms.can_helpful)
        self._buttons["helpful"] = helpful
        layout.addWidget(helpful)

        share = self._make_button()
        share_menu = QMenu(share)
        for platform in SHARE_PLATFORMS:
            share_menu.addAction(
                self._i18n.get(f"footer.share_to.{platform}"),
                lambda p=platform: self._on_action("share", platform=p),
            )
        share.setMenu(share_menu)
        self._buttons["share"] = share
        layout.addWidget(share)

        self._reply_btn = self._make_button()
        self._reply_btn.setText(self._i18n.get("footer.reply"))
        self._reply_btn.clicked.connect(self.reply_requested)
        self._reply_btn.setVisible(perms.can_reply)
        layout.addWidget(self._reply_btn)

        layout.addStretch()

        self._more_btn = self._make_button()
        self._more_btn.setText("⋯")
        self._more_menu = QMenu(self._more_btn)
        self._more_menu.aboutToShow.connect(self._populate_more_menu)
        self._more_btn.setMenu(self._more_menu)
        layout.addWidget(self._more_btn)

    @staticmethod
    def _make_button() -> QPushButton:
        btn = QPushButton()
        btn.setFlat(True)
        btn.setFixedHeight(24)
        btn.setStyleSheet("font-size: 11px; padding: 2px 8px;")
        return btn

    def _populate_more_menu(self):
        menu = self._more_menu
        menu.clear()
        perms = self._manager.permissions
        state = self._manager.state

        if perms.can_edit:
            menu.addAction(self._i18n.get("footer.edit"), self.edit_requested.emit)
        if perms.can_delete:
            menu.addAction(self._i18n.get("footer.delete"), self.delete_requested.emit)
        if perms.can_view_history:
            menu.addAction(self._i18n.get("footer.history"),
                           lambda: self._host.on_view_history(self._manager.reply_id))
        if perms.can_helpful:
            menu.addAction(self._i18n.get("footer.not_helpful"),
                           lambda: self._on_action("helpful", False))
        if perms.can_pin:
            key = "footer.unpin" if state.is_pinned else "footer.pin"
            menu.addAction(self._i18n.get(key), lambda: self._on_action("pin"))
        if perms.can_highlight:
            key = "footer.unhighlight" if state.is_highlighted else "footer.highlight"
            menu.addAction(self._i18n.get(key), lambda: self._on_action("highlight"))
        if perms.can_report:
            action = menu.addAction(self._i18n.get("footer.report"), self._on_report)
            action.setEnabled(not state.is_reported and not self._is_busy("report"))

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def refresh(self):
        """Update labels, highlighting and enabled state from the manager."""
        state = self._manager.state
        labels = {
            "like": ("footer.like", state.likes, state.is_liked),
            "dislike": ("footer.dislike", state.dislikes, state.is_disliked),
            "bookmark": ("footer.bookmark", state.bookmarks, state.is_bookmarked),
            "helpful": ("footer.helpful", state.helpful_votes, False),
            "share": ("footer.share", state.shares, False),
        }
        for kind, (key, count, active) in labels.items():
            btn = self._buttons[kind]
            btn.setText(f"{self._i18n.get(key)} {format_count(count)}")
            btn.setStyleSheet(
                "font-size: 11px; padding: 2px 8px;" + (ACTIVE_STYLE if active else IDLE_STYLE)
            )
            btn.setEnabled(self._enabled and not self._is_busy(kind))

    def set_enabled_all(self, enabled: bool):
        """Disable every control (deleted reply); busy changes no longer re-enable them."""
        self._enabled = enabled
        for btn in self._buttons.values():
            btn.setEnabled(enabled)
        self._reply_btn.setEnabled(enabled)
        self._more_btn.setEnabled(enabled)

    def _is_busy(self, kind: str) -> bool:
        return self._manager.is_pending(kind) or self._coordinator.is_busy(self._manager.reply_id, kind)

    def _on_busy_changed(self, reply_id: str, kind: str, busy: bool):
        if reply_id == self._manager.reply_id:
            self.refresh()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _on_action(self, kind: str, value: Optional[bool] = None, **extra):
        if not self._enabled or self._coordinator.is_busy(self._manager.reply_id, kind):
            return
        request = self._manager.request(kind, value, **extra)
        if request is None:
            return
        self.refresh()

        started = self._coordinator.run(
            request.reply_id, kind, InteractionStateManager.dispatch, self._host, request,
            on_success=lambda _result, r=request: self._on_done(r),
            on_failure=lambda key, r=request: self._on_failed(r, key),
        )
        if not started:
            self._on_failed(request, "errors.busy")

    def _on_report(self):
        reasons = [self._i18n.get(f"footer.report_reasons.{r}") for r in REPORT_REASONS]
        label, ok = QInputDialog.getItem(
            self, self._i18n.get("footer.report"), self._i18n.get("footer.report_reason"),
            reasons, 0, False,
        )
        if not ok:
            return
        reason = REPORT_REASONS[reasons.index(label)]
        details, ok = QInputDialog.getText(
            self, self._i18n.get("footer.report"), self._i18n.get("footer.report_details"),
        )
        if not ok:
            return
        self._on_action("report", reason=reason, details=details.strip() or None)

    def _on_done(self, request: MutationRequest):
        if self._manager.complete(request):
            self.refresh()

    def _on_failed(self, request: MutationRequest, error_key: str):
        if self._manager.fail(request, error_key):
            self.refresh()
