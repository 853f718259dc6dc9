"""Reply header: avatar, name, verification tier, location and a ticking timestamp."""

import logging
import time
from typing import Optional

from PyQt6.QtWidgets import QHBoxLayout, QLabel, QMenu, QPushButton, QWidget
from PyQt6.QtCore import Qt, QTimer

from replythread.adapters.host_adapter import ReplyHostAdapter
from replythread.core.i18n_manager import I18nManager
from replythread.core.types import UserIdentitySnapshot
from replythread.services.identity_presenter import (
    format_relative_time,
    present_identity,
)

logger = logging.getLogger("replythread")

TIER_COLORS = {
    "expert": "#6a1b9a",
    "elite": "#c62828",
    "premium": "#ef6c00",
    "trusted": "#2e7d32",
    "basic": "#757575",
}

AVATAR_SIZE = 28


class IdentityWidget(QWidget):
    """Identity facets of one reply author.

    The relative timestamp refreshes on a QTimer; ``shutdown`` stops it.
    """

    def __init__(
        self,
        user: UserIdentitySnapshot,
        created_at: float,
        host: ReplyHostAdapter,
        variant: str = "default",
        tick_interval_sec: int = 60,
        timestamp_mode: str = "relative",
        viewer: Optional[UserIdentitySnapshot] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._i18n = I18nManager()
        self._user = user
        self._created_at = created_at
        self._host = host
        self._viewer = viewer
        self._mode = timestamp_mode
        self._facets = present_identity(user, created_at, variant=variant)

        self._init_ui()

        self._tick_timer = QTimer(self)
        self._tick_timer.setInterval(max(1, tick_interval_sec) * 1000)
        self._tick_timer.timeout.connect(self._refresh_time)
        if self._mode == "relative":
            self._tick_timer.start()

    def _init_ui(self):
        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(6)
        facets = self._facets

        if facets.shows("avatar"):
            # Initial fallback; the host owns image loading
            avatar = QLabel(facets.avatar_initial)
            avatar.setFixedSize(AVATAR_SIZE, AVATAR_SIZE)
            avatar.setAlignment(Qt.AlignmentFlag.AlignCenter)
            avatar.setStyleSheet(
                f"border-radius: {AVATAR_SIZE // 2}px; background-color: #90a4ae; "
                "color: white; font-weight: bold;"
            )
            if facets.avatar_url:
                avatar.setToolTip(facets.avatar_url)
            layout.addWidget(avatar)

        self._name_btn = QPushButton(facets.display_name)
        self._name_btn.setFlat(True)
        self._name_btn.setStyleSheet("font-weight: bold; text-align: left; padding: 0;")
        self._name_btn.setCursor(Qt.CursorShape.PointingHandCursor)
        self._name_btn.clicked.connect(self._on_name_clicked)
        self._name_btn.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        self._name_btn.customContextMenuRequested.connect(self._show_user_menu)
        layout.addWidget(self._name_btn)

        if facets.shows("tier") and (facets.is_verified or facets.tier != "basic"):
            tier = QLabel(self._i18n.get(f"identity.tiers.{facets.tier}"))
            tier.setStyleSheet(
                f"color: white; background-color: {TIER_COLORS[facets.tier]}; "
                "border-radius: 6px; padding: 0 6px; font-size: 10px;"
            )
            layout.addWidget(tier)

        if facets.shows("badges"):
            badges = QLabel(" ".join(f"[{b}]" for b in facets.badges))
            badges.setStyleSheet("color: #607d8b; font-size: 10px;")
            layout.addWidget(badges)

        if facets.shows("location"):
            location = QLabel(facets.location)
            location.setStyleSheet("color: #888; font-size: 11px;")
            layout.addWidget(location)

        self._time_label = QLabel()
        self._time_label.setStyleSheet("color: #888; font-size: 11px;")
        self._time_label.setToolTip(facets.absolute_time)
        layout.addWidget(self._time_label)
        layout.addStretch()

        self._refresh_time()

    def _refresh_time(self):
        if self._mode == "absolute":
            self._time_label.setText(self._facets.absolute_time)
        else:
            self._time_label.setText(format_relative_time(self._created_at, time.time()))

    def _on_name_clicked(self):
        self._host.on_user_click(self._user)

    def _show_user_menu(self, pos):
        menu = QMenu(self)
        menu.addAction(self._i18n.get("identity.view_profile"),
                       lambda: self._host.on_view_profile(self._user.id))
        if self._viewer is not None and self._viewer.id != self._user.id:
            menu.addAction(self._i18n.get("identity.follow"),
                           lambda: self._host.on_follow(self._user.id))
            menu.addAction(self._i18n.get("identity.block"),
                           lambda: self._host.on_block(self._user.id))
        menu.exec(self._name_btn.mapToGlobal(pos))

    def shutdown(self):
        """Stop the relative-time clock."""
        self._tick_timer.stop()
