"""Tests for EditEngine: validation, diff, save protocol and auto-save."""

from unittest.mock import MagicMock

import pytest

from replythread.core.exceptions import EditValidationError
from replythread.core.types import EditHistoryEntry
from replythread.services.analytics import AnalyticsTracker
from replythread.services.edit_engine import EditEngine, EditRequest, generate_diff

from fakes import RecordingSink

NOW = 1_700_000_000.0


def _engine(record, editor, sink=None, notices=None, **kwargs):
    tracker = AnalyticsTracker(sink, record.id, record.user.id) if sink is not None else None
    return EditEngine(
        record,
        editor,
        tracker=tracker,
        notify=notices.append if notices is not None else None,
        **kwargs,
    )


class TestGenerateDiff:

    def test_identical_strings_are_unchanged(self):
        spans = generate_diff("same words here", "same words here")
        assert all(span.type == "unchanged" for span in spans)
        assert [span.content for span in spans] == ["same", "words", "here"]

    @pytest.mark.parametrize("text", ["same words here", "double  space", " padded ", ""])
    def test_self_diff_rebuilds_original(self, text):
        spans = generate_diff(text, text)
        assert all(span.type == "unchanged" for span in spans)
        assert " ".join(span.content for span in spans) == text

    def test_replaced_word(self):
        spans = generate_diff("a b c", "a x c")
        assert [(s.type, s.content) for s in spans] == [
            ("unchanged", "a"), ("removed", "b"), ("added", "x"), ("unchanged", "c"),
        ]

    def test_appended_words(self):
        spans = generate_diff("one", "one two")
        assert [(s.type, s.content) for s in spans] == [("unchanged", "one"), ("added", "two")]

    def test_removed_tail(self):
        spans = generate_diff("one two", "one")
        assert spans[-1].type == "removed"
        assert spans[-1].content == "two"

    def test_no_realignment_after_insert(self):
        spans = generate_diff("a b", "x a b")
        assert [s.type for s in spans] == ["removed", "added", "removed", "added", "added"]


class TestValidation:

    def test_length_bounds(self, record, author):
        engine = _engine(record, author, min_length=10, max_length=20)

        engine.set_content("x" * 9)
        assert engine.validation_error(NOW) == "edit.too_short"
        engine.set_content("x" * 10)
        assert engine.validation_error(NOW) is None
        engine.set_content("x" * 20)
        assert engine.validation_error(NOW) is None
        engine.set_content("x" * 21)
        assert engine.validation_error(NOW) == "edit.too_long"

    def test_unchanged_draft_cannot_be_saved(self, record, author):
        engine = _engine(record, author)
        assert engine.validation_error(NOW) == "edit.no_changes"
        assert not engine.can_save(NOW)

    def test_reason_required_by_config(self, record, author):
        engine = _engine(record, author, require_reason=True)
        engine.set_content(record.content + " and more")
        assert engine.validation_error(NOW) == "edit.reason_required"
        engine.select_reason("typo")
        assert engine.validation_error(NOW) is None

    def test_staff_must_give_reason(self, record, moderator):
        engine = _engine(record, moderator)
        assert engine.needs_reason

    def test_prior_edits_need_reason(self, record, author):
        record.edit_history = [EditHistoryEntry(NOW - 60, author.id, "typo", "old")]
        assert _engine(record, author).needs_reason

    def test_other_reason_needs_text(self, record, author):
        engine = _engine(record, author)
        engine.set_content(record.content + "!")
        engine.select_reason("other")
        assert engine.validation_error(NOW) == "edit.custom_reason_required"
        engine.set_custom_reason("   ")
        assert engine.validation_error(NOW) == "edit.custom_reason_required"
        engine.set_custom_reason("context")
        assert engine.validation_error(NOW) is None
        assert engine.final_reason == "context"

    def test_unknown_reason_rejected(self, record, author):
        with pytest.raises(ValueError):
            _engine(record, author).select_reason("boredom")

    def test_custom_reason_truncated(self, record, author):
        engine = _engine(record, author)
        engine.set_custom_reason("y" * 500)
        assert len(engine.session.custom_reason) == 200

    def test_time_limit_from_last_edit(self, record, author):
        record.edit_history = [EditHistoryEntry(NOW - 31 * 60, author.id, "typo", "old")]
        engine = _engine(record, author, time_limit_min=30)
        engine.set_content(record.content + "!")
        engine.select_reason("typo")

        assert engine.time_remaining(NOW) == 0.0
        assert engine.validation_error(NOW) == "edit.time_expired"

    def test_no_history_gets_full_limit(self, record, author):
        engine = _engine(record, author, time_limit_min=30)
        assert engine.time_remaining(NOW) == 30.0

    def test_zero_limit_means_none(self, record, author):
        assert _engine(record, author, time_limit_min=0).time_remaining(NOW) is None

    @pytest.mark.parametrize("length, level", [(70, "default"), (80, "warning"), (95, "destructive")])
    def test_length_level(self, record, author, length, level):
        engine = _engine(record, author, max_length=100)
        engine.set_content("x" * length)
        assert engine.length_level() == level


class TestSave:

    def test_begin_save_rejects_invalid(self, record, author):
        engine = _engine(record, author)
        engine.set_content("short")
        with pytest.raises(EditValidationError) as exc_info:
            engine.begin_save(NOW)
        assert exc_info.value.key == "edit.too_short"

    def test_save_success(self, record, author):
        sink, notices = RecordingSink(), []
        engine = _engine(record, author, sink=sink, notices=notices)
        new_content = record.content + " again"
        engine.set_content(new_content)

        request = engine.begin_save(NOW)
        assert request == EditRequest("r1", new_content, None)
        assert engine.begin_save(NOW) is None

        entry = engine.finish_save(request, NOW + 1)

        assert entry.previous_content == record.content
        assert entry.new_content == new_content
        assert entry.editor_id == author.id
        assert engine.history == [entry]
        assert not engine.has_changes
        assert not engine.session.is_saving
        assert notices[-1].key == "notices.edit_saved"
        assert "reply_edit_attempt" in sink.names()
        assert "reply_edit_success" in sink.names()
        assert sink.last("reply_edit_submit")["contentLength"] == len(new_content)
        assert sink.last("reply_edit_attempt")["editHistoryCount"] == 0

    def test_save_failure_keeps_draft(self, record, author):
        sink, notices = RecordingSink(), []
        engine = _engine(record, author, sink=sink, notices=notices)
        engine.set_content(record.content + " again")
        request = engine.begin_save(NOW)

        engine.fail_save(request, "errors.host_failed")

        assert engine.has_changes
        assert engine.can_save(NOW)
        assert sink.last("reply_edit_failure")["error"] == "errors.host_failed"
        assert notices[-1].params == {"error_key": "errors.host_failed"}

    def test_finish_after_unmount_is_ignored(self, record, author):
        engine = _engine(record, author)
        engine.set_content(record.content + " again")
        request = engine.begin_save(NOW)
        engine.unmount()
        assert engine.finish_save(request, NOW) is None
        assert engine.history == []

    def test_dispatch(self, record, author):
        host = MagicMock()
        EditEngine.dispatch(host, EditRequest("r1", "text", "typo"))
        EditEngine.dispatch(host, EditRequest("r1", "draft", is_auto_save=True))
        host.edit.assert_called_once_with("r1", "text", "typo")
        host.auto_save.assert_called_once_with("r1", "draft")


class TestAutoSave:

    def test_disabled_by_default(self, record, author):
        engine = _engine(record, author)
        engine.set_content(record.content + " more")
        assert engine.begin_autosave() is None

    def test_autosave_cycle(self, record, author):
        sink = RecordingSink()
        engine = _engine(record, author, sink=sink, auto_save=True)
        engine.set_content(record.content + " more")

        request = engine.begin_autosave()
        assert request.is_auto_save
        assert engine.begin_autosave() is None

        engine.finish_autosave(request, NOW)

        assert not engine.has_unsaved_changes
        assert engine.has_changes
        assert engine.session.last_auto_save == NOW
        assert "reply_auto_save" in sink.names()
        assert engine.begin_autosave() is None

    def test_invalid_draft_not_autosaved(self, record, author):
        engine = _engine(record, author, auto_save=True)
        engine.set_content("tiny")
        assert engine.begin_autosave() is None


class TestCancel:

    def test_cancel_reports_unsaved_changes(self, record, author):
        sink = RecordingSink()
        engine = _engine(record, author, sink=sink)
        engine.set_content(record.content + "?")

        assert engine.cancel() is True
        assert sink.last("reply_edit_cancel")["hasUnsavedChanges"] is True

    def test_cancel_clean(self, record, author):
        assert _engine(record, author).cancel() is False
