"""Delete confirmation for one reply: soft or permanent mode, reasons and the typed token."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from replythread.core.exceptions import DeleteValidationError
from replythread.core.types import Notice, ReplyRecord, UserIdentitySnapshot
from replythread.services import analytics
from replythread.services.analytics import AnalyticsTracker

logger = logging.getLogger("replythread")

DELETE_REASONS = (
    "spam",
    "inappropriate",
    "off_topic",
    "duplicate",
    "outdated",
    "personal_request",
    "policy_violation",
    "other",
)

DEFAULT_CONFIRM_TOKEN = "DELETE"


@dataclass(frozen=True)
class DeleteRequest:
    reply_id: str
    reason: Optional[str] = None
    permanent: bool = False


class DeleteEngine:
    """Gatekeeper for deleting one reply.

    A soft delete of a reply with children removes them too, so it needs a
    reason. A permanent delete is only enabled once the confirmation token
    has been typed (case-insensitive).
    """

    def __init__(
        self,
        record: ReplyRecord,
        actor: UserIdentitySnapshot,
        tracker: Optional[AnalyticsTracker] = None,
        notify: Optional[Callable[[Notice], None]] = None,
        require_reason: bool = False,
        confirm_token: str = DEFAULT_CONFIRM_TOKEN,
    ):
        self.reply_id = record.id
        self.actor = actor
        self.has_children = record.has_children or record.stats.replies > 0
        self.has_history = bool(record.edit_history)
        self.require_reason = require_reason
        self.confirm_token = confirm_token
        self.permanent = False
        self.reason = ""
        self.custom_reason = ""
        self.confirmation = ""
        self.is_deleting = False
        self._tracker = tracker
        self._notify = notify
        self._mounted = True

    @property
    def needs_reason(self) -> bool:
        return (
            self.require_reason
            or self.actor.is_staff
            or self.has_history
            or (self.has_children and not self.permanent)
        )

    @property
    def children_warning(self) -> Optional[Notice]:
        """Warning shown while a soft delete would take replies with it."""
        if self.has_children and not self.permanent:
            return Notice("info", "delete.children_warning")
        return None

    @property
    def token_matches(self) -> bool:
        return self.confirmation.casefold() == self.confirm_token.casefold()

    @property
    def final_reason(self) -> Optional[str]:
        if self.reason == "other":
            return self.custom_reason.strip() or None
        return self.reason or None

    def validation_error(self) -> Optional[str]:
        if self.needs_reason and not self.reason:
            return "delete.reason_required"
        if self.reason == "other" and not self.custom_reason.strip():
            return "delete.custom_reason_required"
        if self.permanent and not self.token_matches:
            return "delete.confirm_required"
        return None

    @property
    def can_confirm(self) -> bool:
        return not self.is_deleting and self.validation_error() is None

    def set_permanent(self, permanent: bool) -> None:
        self.permanent = permanent
        if not permanent:
            self.confirmation = ""

    def select_reason(self, reason: str) -> None:
        if reason and reason not in DELETE_REASONS:
            raise ValueError(f"Unknown delete reason: {reason}")
        self.reason = reason
        if reason != "other":
            self.custom_reason = ""

    def set_custom_reason(self, text: str) -> None:
        self.custom_reason = text

    def set_confirmation(self, text: str) -> None:
        self.confirmation = text

    def begin_delete(self) -> Optional[DeleteRequest]:
        """Validate and start the delete. Returns None while one is in flight.

        Raises:
            DeleteValidationError: Confirmation incomplete; ``key`` says why
        """
        if self.is_deleting:
            return None

        key = self.validation_error()
        if key is not None:
            raise DeleteValidationError(f"Delete of {self.reply_id} rejected: {key}", key)

        self.is_deleting = True
        return DeleteRequest(self.reply_id, self.final_reason, self.permanent)

    def finish_delete(self, request: DeleteRequest) -> bool:
        if not self._mounted or not self.is_deleting:
            return False
        self.is_deleting = False
        logger.info(f"Reply {self.reply_id} deleted (permanent={request.permanent})")
        if self._tracker is not None:
            self._tracker.track(analytics.REPLY_DELETE, {
                "reason": request.reason,
                "permanent": request.permanent,
            })
        self._emit(Notice("success", "notices.delete_done"))
        return True

    def fail_delete(self, request: DeleteRequest, error_key: str = "errors.generic") -> None:
        if not self._mounted or not self.is_deleting:
            return
        self.is_deleting = False
        logger.error(f"Deleting {self.reply_id} failed ({error_key})")
        self._emit(Notice("error", "notices.delete_failed", {"error_key": error_key}))

    def unmount(self) -> None:
        self._mounted = False
        self.is_deleting = False

    @staticmethod
    def dispatch(host, request: DeleteRequest) -> None:
        """Send a request to the host. Blocking; call it from a worker thread."""
        host.delete(request.reply_id, request.reason, request.permanent)

    def _emit(self, notice: Notice) -> None:
        if self._notify is not None:
            self._notify(notice)
