"""Stand-in host that acknowledges every call, for the demo window."""

import logging
import time
from typing import Optional

from replythread.adapters.host_adapter import ReplyHostAdapter
from replythread.core.exceptions import HostCallError

logger = logging.getLogger("replythread")


class DemoReplyHost(ReplyHostAdapter):
    """Logs every callback and acknowledges it after a short delay.

    Operations named in ``fail_operations`` raise HostCallError instead, which
    shows the rollback and error notices in the demo.
    """

    def __init__(self, latency_sec: float = 0.3, fail_operations: Optional[set] = None):
        self._latency = latency_sec
        self._fail = set(fail_operations or ())

    def _mutate(self, operation: str, reply_id: str, **details) -> None:
        logger.info(f"[demo host] {operation} {reply_id} {details}")
        time.sleep(self._latency)
        if operation in self._fail:
            raise HostCallError(f"Demo host rejected {operation} for {reply_id}")

    def like(self, reply_id, is_liked):
        self._mutate("like", reply_id, is_liked=is_liked)

    def dislike(self, reply_id, is_disliked):
        self._mutate("dislike", reply_id, is_disliked=is_disliked)

    def bookmark(self, reply_id, is_bookmarked):
        self._mutate("bookmark", reply_id, is_bookmarked=is_bookmarked)

    def share(self, reply_id, platform=None):
        self._mutate("share", reply_id, platform=platform)

    def helpful_vote(self, reply_id, is_helpful):
        self._mutate("helpful", reply_id, is_helpful=is_helpful)

    def pin(self, reply_id, is_pinned):
        self._mutate("pin", reply_id, is_pinned=is_pinned)

    def highlight(self, reply_id, is_highlighted):
        self._mutate("highlight", reply_id, is_highlighted=is_highlighted)

    def edit(self, reply_id, new_content, reason=None):
        self._mutate("edit", reply_id, length=len(new_content), reason=reason)

    def auto_save(self, reply_id, content):
        self._mutate("auto_save", reply_id, length=len(content))

    def submit_reply(self, parent_id, content):
        self._mutate("submit_reply", parent_id, length=len(content))

    def delete(self, reply_id, reason=None, permanent=False):
        self._mutate("delete", reply_id, reason=reason, permanent=permanent)

    def report(self, reply_id, reason, details=None):
        self._mutate("report", reply_id, reason=reason)

    def translate(self, reply_id, target_language):
        self._mutate("translate", reply_id, target=target_language)
        return f"[{target_language}] (demo translation of {reply_id})"

    def record_view(self, reply_id):
        logger.debug(f"[demo host] view {reply_id}")

    def on_user_click(self, user):
        logger.info(f"[demo host] user click {user.id}")

    def on_mention_click(self, mention):
        logger.info(f"[demo host] mention click {mention.id}")

    def on_hashtag_click(self, tag):
        logger.info(f"[demo host] hashtag click #{tag}")

    def on_link_click(self, link):
        logger.info(f"[demo host] link click {link.id}")

    def on_view_profile(self, user_id):
        logger.info(f"[demo host] view profile {user_id}")

    def on_block(self, user_id):
        logger.info(f"[demo host] block {user_id}")

    def on_follow(self, user_id):
        logger.info(f"[demo host] follow {user_id}")

    def on_view_history(self, reply_id):
        logger.info(f"[demo host] view history {reply_id}")

    def on_reply(self, reply_id):
        logger.info(f"[demo host] reply to {reply_id}")

    def on_analytics_event(self, event_name, payload):
        logger.debug(f"[analytics] {event_name} {payload}")
