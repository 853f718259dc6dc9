"""Inline composer for answering a reply."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from replythread.core.exceptions import ReplyValidationError
from replythread.core.types import Notice, ReplyRecord
from replythread.services import analytics
from replythread.services.analytics import AnalyticsTracker

logger = logging.getLogger("replythread")


@dataclass(frozen=True)
class ReplySubmitRequest:
    parent_id: str
    content: str


class ReplyComposer:
    """Draft, validation and submit protocol for one answer to ``record``.

    Same begin/finish/fail shape as EditEngine; results after ``unmount``
    are ignored.
    """

    def __init__(
        self,
        record: ReplyRecord,
        tracker: Optional[AnalyticsTracker] = None,
        notify: Optional[Callable[[Notice], None]] = None,
        max_length: int = 2000,
    ):
        self.parent_id = record.id
        self.max_length = max_length
        self.draft = ""
        self.is_submitting = False
        self._tracker = tracker
        self._notify = notify
        self._mounted = True

    def set_content(self, text: str) -> None:
        self.draft = text

    def validation_error(self) -> Optional[str]:
        content = self.draft.strip()
        if not content:
            return "compose.empty"
        if len(content) > self.max_length:
            return "compose.too_long"
        return None

    @property
    def can_submit(self) -> bool:
        return self._mounted and not self.is_submitting and self.validation_error() is None

    def begin_submit(self) -> Optional[ReplySubmitRequest]:
        """Start sending the draft. Returns None while a submit is in flight.

        Raises:
            ReplyValidationError: Draft is blank or over ``max_length``
        """
        if self.is_submitting or not self._mounted:
            return None
        key = self.validation_error()
        if key is not None:
            raise ReplyValidationError(f"Reply to {self.parent_id} rejected: {key}", key)
        self.is_submitting = True
        return ReplySubmitRequest(self.parent_id, self.draft.strip())

    def finish_submit(self, request: ReplySubmitRequest) -> bool:
        if not self._mounted or not self.is_submitting:
            return False
        self.is_submitting = False
        self.draft = ""
        if self._tracker is not None:
            self._tracker.track(analytics.REPLY_SUBMIT, {"contentLength": len(request.content)})
        self._emit(Notice("success", "notices.reply_sent"))
        logger.info(f"Reply to {self.parent_id} submitted ({len(request.content)} chars)")
        return True

    def fail_submit(self, request: ReplySubmitRequest, error_key: str = "errors.generic") -> bool:
        if not self._mounted or not self.is_submitting:
            return False
        self.is_submitting = False
        logger.error(f"Reply to {self.parent_id} failed ({error_key})")
        self._emit(Notice("error", "notices.reply_failed", {"error_key": error_key}))
        return True

    def unmount(self) -> None:
        self._mounted = False
        self.is_submitting = False

    @staticmethod
    def dispatch(host, request: ReplySubmitRequest) -> None:
        """Blocking; call it from a worker thread."""
        host.submit_reply(request.parent_id, request.content)

    def _emit(self, notice: Notice) -> None:
        if self._notify is not None:
            self._notify(notice)
