"""Optimistic interaction state for one reply: votes, bookmarks, shares, moderation flags.

Every interaction follows the same protocol. ``request`` checks permissions,
writes the new state locally and returns a ``MutationRequest``; the caller
sends it to the host off the GUI thread with ``dispatch`` and reports the
outcome with ``complete`` or ``fail``.

The manager keeps two states. ``confirmed`` only ever absorbs acknowledged
requests, in the order they were made: an acknowledgement that overtakes an
earlier request waits until that request settles. ``state`` is ``confirmed``
plus every request not yet folded in. Each request stores the value it sets,
so on failure the visible state is rebuilt from ``confirmed`` by replaying
the survivors in token order.
"""

import itertools
import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from replythread.core.types import InteractionState, Notice, ReplyRecord, UserIdentitySnapshot
from replythread.services import analytics
from replythread.services.analytics import AnalyticsTracker

logger = logging.getLogger("replythread")

INTERACTION_KINDS = ("like", "dislike", "bookmark", "share", "helpful", "pin", "highlight", "report")

REPORT_REASONS = ("spam", "harassment", "hate_speech", "misinformation", "off_topic", "other")

_EVENTS = {
    "like": analytics.REPLY_LIKE,
    "dislike": analytics.REPLY_DISLIKE,
    "bookmark": analytics.REPLY_BOOKMARK,
    "share": analytics.REPLY_SHARE,
    "helpful": analytics.REPLY_HELPFUL,
    "pin": analytics.REPLY_PIN,
    "highlight": analytics.REPLY_HIGHLIGHT,
    "report": analytics.REPLY_REPORT,
}

# Payload key carrying the request value in analytics events
_VALUE_FIELDS = {
    "like": "isLiked",
    "dislike": "isDisliked",
    "bookmark": "isBookmarked",
    "helpful": "isHelpful",
    "pin": "isPinned",
    "highlight": "isHighlighted",
}


@dataclass(frozen=True)
class Permissions:
    """What the current viewer may do with one reply."""

    can_like: bool = False
    can_dislike: bool = False
    can_bookmark: bool = False
    can_share: bool = True
    can_reply: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_report: bool = False
    can_pin: bool = False
    can_highlight: bool = False
    can_moderate: bool = False
    can_helpful: bool = False
    can_view_history: bool = False

    @classmethod
    def evaluate(
        cls,
        viewer: Optional[UserIdentitySnapshot],
        author_id: str,
        record: Optional[ReplyRecord] = None,
        allow_edit: bool = True,
        allow_delete: bool = True,
        allow_report: bool = True,
        allow_moderation: bool = True,
    ) -> 'Permissions':
        """Evaluate permissions for ``viewer`` (None when signed out).

        The ``allow_*`` switches let the host turn whole features off; they
        never grant anything the viewer's role does not.
        """
        if viewer is None:
            return cls(can_share=True)

        is_owner = viewer.id == author_id
        is_staff = viewer.is_staff
        is_locked = bool(record and record.is_locked)
        is_edited = bool(record and record.is_edited)

        return cls(
            can_like=not is_owner,
            can_dislike=not is_owner,
            can_bookmark=True,
            can_share=True,
            can_reply=not is_owner and not is_locked,
            can_edit=allow_edit and (is_staff or (is_owner and not is_locked)),
            can_delete=allow_delete and (is_owner or is_staff),
            can_report=allow_report and not is_owner,
            can_pin=allow_moderation and is_staff,
            can_highlight=allow_moderation and is_staff,
            can_moderate=allow_moderation and is_staff,
            can_helpful=not is_owner,
            can_view_history=is_edited and (is_owner or is_staff),
        )

    def allows(self, kind: str) -> bool:
        return getattr(self, f"can_{kind}", False)


@dataclass(frozen=True)
class MutationRequest:
    """One optimistic interaction awaiting the host's answer.

    ``value`` is the state the request sets (True/False for toggles, the vote
    direction for ``helpful``); ``share`` and ``report`` carry their details
    in ``extra``.
    """

    token: int
    reply_id: str
    kind: str
    value: Optional[bool] = None
    extra: dict = field(default_factory=dict)


def apply_mutation(state: InteractionState, request: MutationRequest) -> InteractionState:
    """Return ``state`` with ``request`` applied. Counters never drop below zero."""
    kind = request.kind
    value = request.value

    if kind == "like":
        likes = state.likes + _delta(state.is_liked, value)
        dislikes = state.dislikes
        is_disliked = state.is_disliked
        if value and state.is_disliked:
            dislikes -= 1
            is_disliked = False
        return replace(state, is_liked=value, is_disliked=is_disliked,
                       likes=max(0, likes), dislikes=max(0, dislikes))

    if kind == "dislike":
        dislikes = state.dislikes + _delta(state.is_disliked, value)
        likes = state.likes
        is_liked = state.is_liked
        if value and state.is_liked:
            likes -= 1
            is_liked = False
        return replace(state, is_disliked=value, is_liked=is_liked,
                       likes=max(0, likes), dislikes=max(0, dislikes))

    if kind == "bookmark":
        bookmarks = state.bookmarks + _delta(state.is_bookmarked, value)
        return replace(state, is_bookmarked=value, bookmarks=max(0, bookmarks))

    if kind == "share":
        return replace(state, shares=state.shares + 1)

    if kind == "helpful":
        if value:
            return replace(state, helpful_votes=state.helpful_votes + 1)
        return replace(state, unhelpful_votes=state.unhelpful_votes + 1)

    if kind == "pin":
        return replace(state, is_pinned=value)

    if kind == "highlight":
        return replace(state, is_highlighted=value)

    if kind == "report":
        return replace(state, is_reported=True)

    raise ValueError(f"Unknown interaction kind: {kind}")


def _delta(previous: bool, value: bool) -> int:
    if value and not previous:
        return 1
    if previous and not value:
        return -1
    return 0


def format_count(count: int) -> str:
    """Compact counter label: 999, 1.2K, 3.4M."""
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M"
    if count >= 1_000:
        return f"{count / 1_000:.1f}K"
    return str(count)


class InteractionStateManager:
    """Optimistic state machine for the interactions on one reply.

    At most one request per kind is pending; different kinds are independent.
    After ``unmount`` every completion is ignored.
    """

    def __init__(
        self,
        record: ReplyRecord,
        permissions: Permissions,
        tracker: Optional[AnalyticsTracker] = None,
        notify: Optional[Callable[[Notice], None]] = None,
        rollback_on_failure: bool = True,
    ):
        self.reply_id = record.id
        self.permissions = permissions
        self.confirmed = InteractionState.from_record(record)
        self.state = replace(self.confirmed)
        self._tracker = tracker
        self._notify = notify
        self._rollback = rollback_on_failure
        self._pending: dict[str, MutationRequest] = {}
        self._acked: list[MutationRequest] = []
        self._tokens = itertools.count(1)
        self._mounted = True

    def is_pending(self, kind: str) -> bool:
        return kind in self._pending

    @property
    def pending_kinds(self) -> frozenset:
        return frozenset(self._pending)

    def request(self, kind: str, value: Optional[bool] = None, **extra) -> Optional[MutationRequest]:
        """Start an interaction and apply it optimistically.

        Toggles default to flipping the current state; ``helpful`` defaults
        to a helpful vote. Returns None, changing nothing, when the viewer may
        not perform the action, the same kind is already pending, or the
        reply is already reported.

        Raises:
            ValueError: Unknown kind, or a report without a reason
        """
        if kind not in INTERACTION_KINDS:
            raise ValueError(f"Unknown interaction kind: {kind}")
        if not self._mounted or not self.permissions.allows(kind) or kind in self._pending:
            return None

        if kind == "report":
            if self.state.is_reported:
                return None
            if not extra.get("reason"):
                raise ValueError("A report needs a reason")
            value = True
        elif kind == "share":
            value = None
        elif kind == "helpful":
            value = True if value is None else bool(value)
        elif value is None:
            value = not getattr(self.state, _flag_name(kind))

        request = MutationRequest(
            token=next(self._tokens),
            reply_id=self.reply_id,
            kind=kind,
            value=value,
            extra=dict(extra),
        )
        self._pending[kind] = request
        self.state = apply_mutation(self.state, request)
        logger.debug(f"Reply {self.reply_id}: {kind} -> {value} (pending)")
        return request

    def complete(self, request: MutationRequest) -> bool:
        """Fold an acknowledged request into the confirmed state."""
        if not self._take(request):
            return False

        self._acked.append(request)
        self._settle()
        self._track(request)
        self._emit(Notice("success", _success_key(request)))
        return True

    def fail(self, request: MutationRequest, error_key: str = "errors.generic") -> bool:
        """Record a rejected request and roll back its optimistic write."""
        if not self._take(request):
            return False

        logger.error(f"Reply {self.reply_id}: {request.kind} failed ({error_key})")
        self._settle()
        if self._rollback:
            self.state = self._replay()
        self._emit(Notice("error", f"notices.{request.kind}_failed", {"error_key": error_key}))
        return True

    def unmount(self) -> None:
        self._mounted = False
        self._pending.clear()
        self._acked.clear()

    @staticmethod
    def dispatch(host, request: MutationRequest) -> None:
        """Send a request to the host. Blocking; call it from a worker thread."""
        kind, rid, value = request.kind, request.reply_id, request.value
        if kind == "like":
            host.like(rid, value)
        elif kind == "dislike":
            host.dislike(rid, value)
        elif kind == "bookmark":
            host.bookmark(rid, value)
        elif kind == "share":
            host.share(rid, request.extra.get("platform"))
        elif kind == "helpful":
            host.helpful_vote(rid, value)
        elif kind == "pin":
            host.pin(rid, value)
        elif kind == "highlight":
            host.highlight(rid, value)
        elif kind == "report":
            host.report(rid, request.extra["reason"], request.extra.get("details"))
        else:
            raise ValueError(f"Unknown interaction kind: {kind}")

    def _take(self, request: MutationRequest) -> bool:
        if not self._mounted:
            logger.debug(f"Reply {self.reply_id}: ignoring {request.kind} result after unmount")
            return False
        current = self._pending.get(request.kind)
        if current is None or current.token != request.token:
            logger.debug(f"Reply {self.reply_id}: ignoring stale {request.kind} result")
            return False
        del self._pending[request.kind]
        return True

    def _settle(self) -> None:
        """Fold acknowledged requests older than every pending one into ``confirmed``."""
        oldest_pending = min((r.token for r in self._pending.values()), default=None)
        self._acked.sort(key=lambda r: r.token)
        while self._acked and (oldest_pending is None or self._acked[0].token < oldest_pending):
            self.confirmed = apply_mutation(self.confirmed, self._acked.pop(0))

    def _replay(self) -> InteractionState:
        state = replace(self.confirmed)
        unsettled = list(self._pending.values()) + self._acked
        for request in sorted(unsettled, key=lambda r: r.token):
            state = apply_mutation(state, request)
        return state

    def _track(self, request: MutationRequest) -> None:
        if self._tracker is None:
            return
        data = {}
        if request.kind in _VALUE_FIELDS:
            data[_VALUE_FIELDS[request.kind]] = request.value
        elif request.kind == "share":
            data["platform"] = request.extra.get("platform")
        elif request.kind == "report":
            data["reason"] = request.extra.get("reason")
        self._tracker.track(_EVENTS[request.kind], data)

    def _emit(self, notice: Notice) -> None:
        if self._notify is not None:
            self._notify(notice)


def _flag_name(kind: str) -> str:
    return {
        "like": "is_liked",
        "dislike": "is_disliked",
        "bookmark": "is_bookmarked",
        "pin": "is_pinned",
        "highlight": "is_highlighted",
    }[kind]


def _success_key(request: MutationRequest) -> str:
    if request.kind in ("share", "report"):
        return f"notices.{request.kind}_done"
    if request.kind == "helpful":
        return "notices.helpful_on" if request.value else "notices.helpful_off"
    return f"notices.{request.kind}_on" if request.value else f"notices.{request.kind}_off"
