"""Tests for InteractionStateManager: permissions, optimistic updates and rollback."""

from unittest.mock import MagicMock

import pytest

from replythread.core.types import InteractionState, ReplyStats
from replythread.services.analytics import AnalyticsTracker
from replythread.services.interaction_manager import (
    InteractionStateManager,
    MutationRequest,
    Permissions,
    apply_mutation,
    format_count,
)

from fakes import RecordingSink


def _manager(record, viewer, sink=None, notices=None, rollback=True):
    tracker = AnalyticsTracker(sink, record.id, record.user.id) if sink is not None else None
    return InteractionStateManager(
        record,
        Permissions.evaluate(viewer, record.user.id, record),
        tracker=tracker,
        notify=notices.append if notices is not None else None,
        rollback_on_failure=rollback,
    )


class TestPermissions:

    def test_guest_can_only_share(self):
        perms = Permissions.evaluate(None, "u-author")
        assert perms.can_share
        assert not perms.can_like
        assert not perms.can_bookmark
        assert not perms.can_reply

    def test_owner_cannot_vote_on_own_reply(self, author, record):
        perms = Permissions.evaluate(author, author.id, record)
        assert not perms.can_like
        assert not perms.can_dislike
        assert not perms.can_report
        assert not perms.can_helpful
        assert perms.can_edit
        assert perms.can_delete

    def test_other_member(self, viewer, record):
        perms = Permissions.evaluate(viewer, record.user.id, record)
        assert perms.can_like and perms.can_report and perms.can_reply
        assert not perms.can_edit
        assert not perms.can_pin

    def test_staff_moderates(self, moderator, record):
        perms = Permissions.evaluate(moderator, record.user.id, record)
        assert perms.can_pin and perms.can_highlight and perms.can_moderate
        assert perms.can_edit and perms.can_delete

    def test_locked_reply(self, author, moderator, record):
        record.is_locked = True
        owner = Permissions.evaluate(author, author.id, record)
        staff = Permissions.evaluate(moderator, author.id, record)
        assert not owner.can_edit
        assert staff.can_edit
        assert not staff.can_reply

    def test_host_switches_never_grant(self, moderator, record):
        perms = Permissions.evaluate(moderator, record.user.id, record, allow_moderation=False, allow_edit=False)
        assert not perms.can_pin
        assert not perms.can_edit

    def test_history_needs_edit_and_ownership(self, author, viewer, record):
        record.is_edited = True
        assert Permissions.evaluate(author, author.id, record).can_view_history
        assert not Permissions.evaluate(viewer, author.id, record).can_view_history


class TestApplyMutation:

    def test_like_clears_dislike(self):
        state = InteractionState(is_disliked=True, likes=3, dislikes=4)
        new = apply_mutation(state, MutationRequest(1, "r", "like", True))
        assert new.is_liked and not new.is_disliked
        assert new.likes == 4
        assert new.dislikes == 3

    def test_dislike_clears_like(self):
        state = InteractionState(is_liked=True, likes=3, dislikes=4)
        new = apply_mutation(state, MutationRequest(1, "r", "dislike", True))
        assert new.is_disliked and not new.is_liked
        assert new.likes == 2
        assert new.dislikes == 5

    def test_counters_never_negative(self):
        state = InteractionState(is_liked=True, likes=0)
        assert apply_mutation(state, MutationRequest(1, "r", "like", False)).likes == 0

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            apply_mutation(InteractionState(), MutationRequest(1, "r", "wave", True))


class TestFormatCount:

    @pytest.mark.parametrize("count, expected", [
        (0, "0"), (999, "999"), (1000, "1.0K"), (1250, "1.2K"), (2_500_000, "2.5M"),
    ])
    def test_compact(self, count, expected):
        assert format_count(count) == expected


class TestRequest:

    def test_like_is_optimistic(self, record, viewer):
        mgr = _manager(record, viewer)
        request = mgr.request("like")

        assert request.value is True
        assert mgr.state.is_liked
        assert mgr.state.likes == 6
        assert mgr.confirmed.likes == 5
        assert mgr.is_pending("like")

    def test_like_then_dislike_moves_vote(self, record, viewer):
        record.stats = ReplyStats(likes=5, dislikes=2, is_disliked=True)
        mgr = _manager(record, viewer)

        mgr.request("like")

        assert mgr.state.is_liked and not mgr.state.is_disliked
        assert mgr.state.dislikes == 1

    def test_same_kind_pending_is_ignored(self, record, viewer):
        mgr = _manager(record, viewer)
        assert mgr.request("like") is not None
        assert mgr.request("like") is None
        assert mgr.state.likes == 6

    def test_different_kinds_run_together(self, record, viewer):
        mgr = _manager(record, viewer)
        assert mgr.request("like") is not None
        assert mgr.request("bookmark") is not None
        assert mgr.pending_kinds == frozenset({"like", "bookmark"})

    def test_denied_changes_nothing(self, record, author):
        mgr = _manager(record, author)
        assert mgr.request("like") is None
        assert mgr.state == mgr.confirmed

    def test_unknown_kind_raises(self, record, viewer):
        with pytest.raises(ValueError):
            _manager(record, viewer).request("wave")

    def test_report_needs_reason(self, record, viewer):
        with pytest.raises(ValueError):
            _manager(record, viewer).request("report")

    def test_report_once(self, record, viewer):
        mgr = _manager(record, viewer)
        request = mgr.request("report", reason="spam")
        mgr.complete(request)
        assert mgr.request("report", reason="spam") is None

    def test_helpful_defaults_to_vote_up(self, record, viewer):
        mgr = _manager(record, viewer)
        assert mgr.request("helpful").value is True
        assert mgr.state.helpful_votes == 1

    def test_share_counts(self, record, viewer):
        mgr = _manager(record, viewer)
        request = mgr.request("share", platform="email")
        assert request.extra == {"platform": "email"}
        assert mgr.state.shares == 1


class TestCompleteAndFail:

    def test_complete_confirms_and_tracks(self, record, viewer):
        sink, notices = RecordingSink(), []
        mgr = _manager(record, viewer, sink=sink, notices=notices)
        request = mgr.request("like")

        assert mgr.complete(request) is True

        assert mgr.confirmed.likes == 6
        assert not mgr.is_pending("like")
        assert sink.last("reply_like")["isLiked"] is True
        assert notices[-1].key == "notices.like_on"

    def test_fail_rolls_back(self, record, viewer):
        notices = []
        mgr = _manager(record, viewer, notices=notices)
        request = mgr.request("like")

        assert mgr.fail(request, "errors.timeout") is True

        assert mgr.state == mgr.confirmed
        assert not mgr.state.is_liked
        assert notices[-1].level == "error"
        assert notices[-1].key == "notices.like_failed"
        assert notices[-1].params == {"error_key": "errors.timeout"}

    def test_fail_keeps_other_pending_writes(self, record, viewer):
        mgr = _manager(record, viewer)
        like = mgr.request("like")
        mgr.request("bookmark")

        mgr.fail(like)

        assert not mgr.state.is_liked
        assert mgr.state.is_bookmarked
        assert mgr.state.bookmarks == 2

    def test_fail_without_rollback_keeps_optimistic_state(self, record, viewer):
        mgr = _manager(record, viewer, rollback=False)
        mgr.fail(mgr.request("like"))
        assert mgr.state.is_liked

    def test_stale_completion_ignored(self, record, viewer):
        mgr = _manager(record, viewer)
        first = mgr.request("like")
        mgr.fail(first)
        second = mgr.request("like")

        assert mgr.complete(first) is False
        assert mgr.is_pending("like")
        assert mgr.complete(second) is True

    def test_out_of_order_acks_keep_latest_vote(self, record, viewer):
        mgr = _manager(record, viewer)
        dislike = mgr.request("dislike")
        like = mgr.request("like")

        mgr.complete(like)
        assert mgr.confirmed == InteractionState.from_record(record)
        mgr.complete(dislike)
        mgr.fail(mgr.request("bookmark"))

        assert mgr.state.is_liked and not mgr.state.is_disliked
        assert mgr.state.likes == 6
        assert mgr.state.dislikes == 2
        assert mgr.confirmed == mgr.state

    def test_early_ack_survives_failure_of_older_request(self, record, viewer):
        mgr = _manager(record, viewer)
        like = mgr.request("like")
        dislike = mgr.request("dislike")

        mgr.complete(dislike)
        mgr.fail(like)

        assert mgr.state.is_disliked and not mgr.state.is_liked
        assert mgr.state.dislikes == 3
        assert mgr.confirmed == mgr.state

    def test_unmount_drops_results(self, record, viewer):
        notices = []
        mgr = _manager(record, viewer, notices=notices)
        request = mgr.request("like")

        mgr.unmount()

        assert mgr.complete(request) is False
        assert notices == []
        assert mgr.request("bookmark") is None


class TestDispatch:

    def test_routes_to_host(self, record, viewer):
        host = MagicMock()
        mgr = _manager(record, viewer)

        InteractionStateManager.dispatch(host, mgr.request("like"))
        InteractionStateManager.dispatch(host, mgr.request("report", reason="spam", details="ads"))
        InteractionStateManager.dispatch(host, mgr.request("share", platform="twitter"))

        host.like.assert_called_once_with("r1", True)
        host.report.assert_called_once_with("r1", "spam", "ads")
        host.share.assert_called_once_with("r1", "twitter")
