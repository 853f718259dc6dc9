"""Tests for the analytics tracker."""

from unittest.mock import MagicMock

from replythread.services import analytics
from replythread.services.analytics import AnalyticsTracker

from fakes import RecordingSink


class TestAnalyticsTracker:

    def test_payload_carries_reply_user_and_timestamp(self):
        sink = RecordingSink()
        tracker = AnalyticsTracker(sink, "r1", "u1", clock=lambda: 0.0)

        tracker.track(analytics.REPLY_LIKE, {"isLiked": True})

        event, payload = sink.events[0]
        assert event == "reply_like"
        assert payload == {
            "replyId": "r1",
            "userId": "u1",
            "timestamp": "1970-01-01T00:00:00+00:00",
            "isLiked": True,
        }

    def test_without_sink_returns_none(self):
        tracker = AnalyticsTracker(None, "r1", "u1")
        assert tracker.track(analytics.REPLY_VIEW) is None

    def test_failing_sink_is_swallowed(self):
        sink = MagicMock(side_effect=RuntimeError("collector down"))
        tracker = AnalyticsTracker(sink, "r1", "u1")

        payload = tracker.track(analytics.REPLY_SHARE, {"platform": "email"})

        sink.assert_called_once()
        assert payload["platform"] == "email"

    def test_unknown_event_still_sent(self):
        sink = RecordingSink()
        AnalyticsTracker(sink, "r1", "u1").track("custom_event")
        assert sink.names() == ["custom_event"]

    def test_vocabulary_includes_submit_events(self):
        assert {"reply_submit", "reply_edit_submit"} <= analytics.EVENT_NAMES
        assert len(analytics.EVENT_NAMES) == 28
