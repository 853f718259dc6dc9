"""Analytics event vocabulary and the per-reply tracker.

Event names and payload keys are consumed verbatim by host-side analytics
pipelines; do not rename them.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

logger = logging.getLogger("replythread")

REPLY_VIEW = "reply_view"
REPLY_LIKE = "reply_like"
REPLY_DISLIKE = "reply_dislike"
REPLY_BOOKMARK = "reply_bookmark"
REPLY_SHARE = "reply_share"
REPLY_HELPFUL = "reply_helpful"
REPLY_PIN = "reply_pin"
REPLY_HIGHLIGHT = "reply_highlight"
REPLY_REPORT = "reply_report"
REPLY_EDIT = "reply_edit"
REPLY_EDIT_TYPING = "reply_edit_typing"
REPLY_EDIT_ATTEMPT = "reply_edit_attempt"
REPLY_EDIT_SUCCESS = "reply_edit_success"
REPLY_EDIT_FAILURE = "reply_edit_failure"
REPLY_EDIT_CANCEL = "reply_edit_cancel"
REPLY_EDIT_SUBMIT = "reply_edit_submit"
REPLY_SUBMIT = "reply_submit"
REPLY_AUTO_SAVE = "reply_auto_save"
REPLY_DELETE = "reply_delete"
REPLY_EXPAND_TOGGLE = "reply_expand_toggle"
REPLY_TRANSLATE = "reply_translate"
REPLY_COPY = "reply_copy"
REPLY_MENTION_CLICK = "reply_mention_click"
REPLY_HASHTAG_CLICK = "reply_hashtag_click"
REPLY_LINK_CLICK = "reply_link_click"
REPLY_COLLAPSE_TOGGLE = "reply_collapse_toggle"
REPLY_SHOW_MORE = "reply_show_more"
REPLY_SHOW_THREAD = "reply_show_thread"

EVENT_NAMES = frozenset({
    REPLY_VIEW, REPLY_LIKE, REPLY_DISLIKE, REPLY_BOOKMARK, REPLY_SHARE,
    REPLY_HELPFUL, REPLY_PIN, REPLY_HIGHLIGHT, REPLY_REPORT, REPLY_EDIT,
    REPLY_EDIT_TYPING, REPLY_EDIT_ATTEMPT, REPLY_EDIT_SUCCESS,
    REPLY_EDIT_FAILURE, REPLY_EDIT_CANCEL, REPLY_EDIT_SUBMIT, REPLY_SUBMIT,
    REPLY_AUTO_SAVE, REPLY_DELETE,
    REPLY_EXPAND_TOGGLE, REPLY_TRANSLATE, REPLY_COPY, REPLY_MENTION_CLICK,
    REPLY_HASHTAG_CLICK, REPLY_LINK_CLICK, REPLY_COLLAPSE_TOGGLE,
    REPLY_SHOW_MORE, REPLY_SHOW_THREAD,
})

AnalyticsSink = Callable[[str, dict], None]


class AnalyticsTracker:
    """Sends events for one reply to the host's analytics sink.

    Every payload carries replyId, userId and an ISO-8601 timestamp. A
    failing sink is logged and swallowed: telemetry never breaks the UI.
    """

    def __init__(self, sink: Optional[AnalyticsSink], reply_id: str, user_id: str,
                 clock: Callable[[], float] = time.time):
        self._sink = sink
        self._reply_id = reply_id
        self._user_id = user_id
        self._clock = clock

    def track(self, event: str, data: Optional[dict] = None) -> Optional[dict]:
        """Emit an event. Returns the payload sent, or None without a sink."""
        if event not in EVENT_NAMES:
            logger.warning(f"Unknown analytics event '{event}'")
        if self._sink is None:
            return None

        payload = {
            "replyId": self._reply_id,
            "userId": self._user_id,
            "timestamp": datetime.fromtimestamp(self._clock(), tz=timezone.utc).isoformat(),
        }
        if data:
            payload.update(data)

        try:
            self._sink(event, payload)
        except Exception as e:
            logger.warning(f"Analytics sink failed for '{event}': {e}")
        return payload
