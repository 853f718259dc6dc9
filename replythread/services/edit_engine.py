"""Edit session for one reply: validation, reasons, diff preview, auto-save and save."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from replythread.core.exceptions import EditValidationError
from replythread.core.types import DiffSpan, EditHistoryEntry, Notice, ReplyRecord, UserIdentitySnapshot
from replythread.services import analytics
from replythread.services.analytics import AnalyticsTracker

logger = logging.getLogger("replythread")

EDIT_REASONS = (
    "typo",
    "clarity",
    "additional_info",
    "remove_info",
    "tone",
    "formatting",
    "policy",
    "other",
)

CUSTOM_REASON_MAX = 200

# Fraction of max_length at which the length indicator changes level
LENGTH_WARNING_RATIO = 0.75
LENGTH_DESTRUCTIVE_RATIO = 0.9


def generate_diff(old: str, new: str) -> list[DiffSpan]:
    """Word-level diff of two versions, position by position.

    Both strings are split on single spaces and compared index by index. A
    mismatch yields the removed word followed by the added one; there is no
    realignment after insertions or deletions. Empty words count as missing.
    """
    old_words = old.split(" ")
    new_words = new.split(" ")
    spans = []

    for i in range(max(len(old_words), len(new_words))):
        old_word = old_words[i] if i < len(old_words) else ""
        new_word = new_words[i] if i < len(new_words) else ""

        if old_word == new_word:
            spans.append(DiffSpan("unchanged", old_word, i, i + 1))
        elif not old_word:
            spans.append(DiffSpan("added", new_word, i, i + 1))
        elif not new_word:
            spans.append(DiffSpan("removed", old_word, i, i + 1))
        else:
            spans.append(DiffSpan("removed", old_word, i, i + 1))
            spans.append(DiffSpan("added", new_word, i, i + 1))

    return spans


def word_count(text: str) -> int:
    return len(text.split())


@dataclass
class EditSession:
    """Mutable state of an open editor."""

    original: str
    draft: str
    last_saved: str
    reason: str = ""
    custom_reason: str = ""
    last_auto_save: Optional[float] = None
    is_saving: bool = False
    is_auto_saving: bool = False
    show_preview: bool = False


@dataclass(frozen=True)
class EditRequest:
    reply_id: str
    content: str
    reason: Optional[str] = None
    is_auto_save: bool = False


class EditEngine:
    """Validates and submits edits of one reply.

    Validation failures are raised as EditValidationError before anything
    reaches the host. Host outcomes are reported through ``finish_*`` and
    ``fail_*``; those become no-ops after ``unmount``.
    """

    def __init__(
        self,
        record: ReplyRecord,
        editor: UserIdentitySnapshot,
        tracker: Optional[AnalyticsTracker] = None,
        notify: Optional[Callable[[Notice], None]] = None,
        min_length: int = 10,
        max_length: int = 2000,
        require_reason: bool = False,
        auto_save: bool = False,
        time_limit_min: Optional[float] = None,
    ):
        self.reply_id = record.id
        self.editor = editor
        self.min_length = min_length
        self.max_length = max_length
        self.require_reason = require_reason
        self.auto_save = auto_save
        self.time_limit_min = time_limit_min or None
        self.history: list[EditHistoryEntry] = list(record.edit_history)
        self.session = EditSession(
            original=record.content,
            draft=record.content,
            last_saved=record.content,
        )
        self._tracker = tracker
        self._notify = notify
        self._mounted = True

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def has_changes(self) -> bool:
        return self.session.draft != self.session.original

    @property
    def has_unsaved_changes(self) -> bool:
        return self.session.draft != self.session.last_saved

    @property
    def is_content_valid(self) -> bool:
        return self.min_length <= len(self.session.draft) <= self.max_length

    @property
    def needs_reason(self) -> bool:
        return self.require_reason or self.editor.is_staff or bool(self.history)

    @property
    def final_reason(self) -> Optional[str]:
        if self.session.reason == "other":
            return self.session.custom_reason.strip() or None
        return self.session.reason or None

    def time_remaining(self, now: float) -> Optional[float]:
        """Minutes left to save, floored at 0, or None without a limit.

        Counted from the latest history entry; a reply that was never edited
        gets the full limit.
        """
        if self.time_limit_min is None:
            return None
        if not self.history:
            return float(self.time_limit_min)
        elapsed = (now - self.history[-1].edited_at) / 60
        return max(0.0, self.time_limit_min - elapsed)

    def validation_error(self, now: float) -> Optional[str]:
        """i18n key of the first reason the draft cannot be saved, or None."""
        length = len(self.session.draft)
        if length < self.min_length:
            return "edit.too_short"
        if length > self.max_length:
            return "edit.too_long"
        if not self.has_changes:
            return "edit.no_changes"
        if self.needs_reason and not self.session.reason:
            return "edit.reason_required"
        if self.session.reason == "other" and not self.session.custom_reason.strip():
            return "edit.custom_reason_required"
        remaining = self.time_remaining(now)
        if remaining is not None and remaining <= 0:
            return "edit.time_expired"
        return None

    def can_save(self, now: float) -> bool:
        return not self.session.is_saving and self.validation_error(now) is None

    def length_level(self) -> str:
        """'default', 'warning' above 75% of max_length, 'destructive' above 90%."""
        ratio = len(self.session.draft) / self.max_length if self.max_length else 1.0
        if ratio > LENGTH_DESTRUCTIVE_RATIO:
            return "destructive"
        if ratio > LENGTH_WARNING_RATIO:
            return "warning"
        return "default"

    def diff(self) -> list[DiffSpan]:
        if not self.has_changes:
            return []
        return generate_diff(self.session.original, self.session.draft)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def set_content(self, text: str) -> None:
        self.session.draft = text
        self._track(analytics.REPLY_EDIT_TYPING, {
            "contentLength": len(text),
            "wordCount": word_count(text),
        })

    def select_reason(self, reason: str) -> None:
        if reason and reason not in EDIT_REASONS:
            raise ValueError(f"Unknown edit reason: {reason}")
        self.session.reason = reason
        if reason != "other":
            self.session.custom_reason = ""

    def set_custom_reason(self, text: str) -> None:
        self.session.custom_reason = text[:CUSTOM_REASON_MAX]

    def toggle_preview(self) -> bool:
        self.session.show_preview = not self.session.show_preview
        return self.session.show_preview

    # ------------------------------------------------------------------
    # Manual save
    # ------------------------------------------------------------------

    def begin_save(self, now: float) -> Optional[EditRequest]:
        """Validate and start a save. Returns None while one is in flight.

        Raises:
            EditValidationError: Draft cannot be saved; ``key`` says why
        """
        if self.session.is_saving:
            return None

        key = self.validation_error(now)
        if key is not None:
            raise EditValidationError(f"Edit of {self.reply_id} rejected: {key}", key)

        self.session.is_saving = True
        request = EditRequest(self.reply_id, self.session.draft, self.final_reason)
        self._track(analytics.REPLY_EDIT_ATTEMPT, {
            "reason": request.reason,
            "contentLength": len(request.content),
            "wordCount": word_count(request.content),
            "hasChanges": True,
            "editHistoryCount": len(self.history),
        })
        return request

    def finish_save(self, request: EditRequest, now: float) -> Optional[EditHistoryEntry]:
        """Record an acknowledged save and return the proposed history entry."""
        if not self._mounted or not self.session.is_saving:
            return None

        entry = EditHistoryEntry(
            edited_at=now,
            editor_id=self.editor.id,
            reason=request.reason or "",
            previous_content=self.session.original,
            new_content=request.content,
            changes=tuple(generate_diff(self.session.original, request.content)),
        )
        self.history.append(entry)
        self.session.is_saving = False
        self.session.original = request.content
        self.session.last_saved = request.content

        self._track(analytics.REPLY_EDIT_SUCCESS, {
            "reason": request.reason,
            "contentLength": len(request.content),
            "wordCount": word_count(request.content),
        })
        self._track(analytics.REPLY_EDIT, {"contentLength": len(request.content)})
        self._track(analytics.REPLY_EDIT_SUBMIT, {"contentLength": len(request.content)})
        self._emit(Notice("success", "notices.edit_saved"))
        logger.info(f"Reply {self.reply_id} edited ({len(request.content)} chars)")
        return entry

    def fail_save(self, request: EditRequest, error_key: str = "errors.generic") -> None:
        if not self._mounted or not self.session.is_saving:
            return
        self.session.is_saving = False
        logger.error(f"Saving edit of {self.reply_id} failed ({error_key})")
        self._track(analytics.REPLY_EDIT_FAILURE, {"error": error_key})
        self._emit(Notice("error", "notices.edit_failed", {"error_key": error_key}))

    # ------------------------------------------------------------------
    # Auto-save
    # ------------------------------------------------------------------

    def autosave_due(self) -> bool:
        """Whether the debounced auto-save should fire for the current draft."""
        return (
            self.auto_save
            and self._mounted
            and not self.session.is_auto_saving
            and self.has_changes
            and self.has_unsaved_changes
            and self.is_content_valid
        )

    def begin_autosave(self) -> Optional[EditRequest]:
        if not self.autosave_due():
            return None
        self.session.is_auto_saving = True
        return EditRequest(self.reply_id, self.session.draft, is_auto_save=True)

    def finish_autosave(self, request: EditRequest, now: float) -> None:
        if not self._mounted:
            return
        self.session.is_auto_saving = False
        self.session.last_saved = request.content
        self.session.last_auto_save = now
        self._track(analytics.REPLY_AUTO_SAVE, {
            "contentLength": len(request.content),
            "wordCount": word_count(request.content),
        })

    def fail_autosave(self, request: EditRequest, error_key: str = "errors.generic") -> None:
        if not self._mounted:
            return
        self.session.is_auto_saving = False
        logger.warning(f"Auto-save of {self.reply_id} failed ({error_key})")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def cancel(self) -> bool:
        """Close the editor. Returns whether unsaved changes were discarded."""
        unsaved = self.has_unsaved_changes
        self._track(analytics.REPLY_EDIT_CANCEL, {
            "hasUnsavedChanges": unsaved,
            "contentLength": len(self.session.draft),
        })
        self.unmount()
        return unsaved

    def unmount(self) -> None:
        self._mounted = False
        self.session.is_saving = False
        self.session.is_auto_saving = False

    @staticmethod
    def dispatch(host, request: EditRequest) -> None:
        """Send a request to the host. Blocking; call it from a worker thread."""
        if request.is_auto_save:
            host.auto_save(request.reply_id, request.content)
        else:
            host.edit(request.reply_id, request.content, request.reason)

    def _track(self, event: str, data: dict) -> None:
        if self._tracker is not None:
            self._tracker.track(event, data)

    def _emit(self, notice: Notice) -> None:
        if self._notify is not None:
            self._notify(notice)
