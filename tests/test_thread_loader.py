"""Tests for loading host thread JSON."""

import json

import pytest

from replythread.core.exceptions import ThreadDataError
from replythread.services.thread_loader import SAMPLE_THREAD_PATH, load_thread, reply_from_dict


def _minimal(reply_id="r1", **extra):
    data = {"id": reply_id, "user": {"id": "u1"}, "content": "hello world"}
    data.update(extra)
    return data


class TestReplyFromDict:

    def test_minimal_reply(self):
        record = reply_from_dict(_minimal())

        assert record.id == "r1"
        assert record.user.id == "u1"
        assert record.moderation_status == "approved"
        assert record.metrics.word_count == 2
        assert record.children == []

    def test_camel_case_fields(self):
        record = reply_from_dict(_minimal(
            isPinned=True,
            isEdited=True,
            language="ko",
            stats={"likes": 3, "isLiked": True, "helpfulVotes": 2},
            user={"id": "u1", "displayName": "Una", "trustScore": 91, "badges": ["Mod pick"]},
        ))

        assert record.is_pinned and record.is_edited
        assert record.language == "ko"
        assert record.stats.likes == 3
        assert record.stats.is_liked
        assert record.stats.helpful_votes == 2
        assert record.user.display_name == "Una"
        assert record.user.badges == ("Mod pick",)

    def test_children_get_parent_ids(self):
        record = reply_from_dict(_minimal(replies=[_minimal("c1", children=[_minimal("g1")])]))

        child = record.children[0]
        assert child.parent_id == "r1"
        assert child.children[0].parent_id == "c1"

    def test_iso_timestamps(self):
        record = reply_from_dict(_minimal(createdAt="1970-01-01T00:01:00Z"))
        assert record.created_at == 60.0

    def test_annotations_with_offsets(self):
        record = reply_from_dict(_minimal(
            content="hi @bob #tag",
            mentions=[{"id": "u-bob", "displayName": "Bob", "startIndex": 3, "endIndex": 7}],
            hashtags=["tag"],
        ))

        assert record.mentions[0].start == 3
        assert record.mentions[0].end == 7
        assert (record.hashtags[0].start, record.hashtags[0].end) == (8, 12)

    def test_edit_history(self):
        record = reply_from_dict(_minimal(editHistory=[
            {"editedAt": 10, "editedBy": "u1", "reason": "typo", "previousContent": "helo world"},
        ]))
        entry = record.edit_history[0]
        assert entry.editor_id == "u1"
        assert entry.previous_content == "helo world"

    def test_unknown_status_is_approved(self):
        assert reply_from_dict(_minimal(moderationStatus="weird")).moderation_status == "approved"

    @pytest.mark.parametrize("data", [
        {"user": {"id": "u1"}},
        {"id": "r1"},
        {"id": "r1", "user": {"id": "u1"}, "content": 42},
        {"id": "r1", "user": {"id": "u1"}, "createdAt": "yesterday"},
        {"id": "r1", "user": {"id": "u1"}, "replies": "none"},
        {"id": "r1", "user": {"id": "u1"}, "stats": {"likes": "many"}},
    ])
    def test_malformed_raises(self, data):
        with pytest.raises(ThreadDataError):
            reply_from_dict(data)


class TestLoadThread:

    def test_list_file(self, tmp_dir):
        path = tmp_dir / "thread.json"
        path.write_text(json.dumps([_minimal("a"), _minimal("b")]), encoding="utf-8")
        assert [r.id for r in load_thread(path)] == ["a", "b"]

    def test_wrapped_file(self, tmp_dir):
        path = tmp_dir / "thread.json"
        path.write_text(json.dumps({"replies": [_minimal("a")]}), encoding="utf-8")
        assert [r.id for r in load_thread(path)] == ["a"]

    def test_missing_file(self, tmp_dir):
        with pytest.raises(ThreadDataError):
            load_thread(tmp_dir / "nope.json")

    def test_invalid_json(self, tmp_dir):
        path = tmp_dir / "thread.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ThreadDataError):
            load_thread(path)

    def test_wrong_shape(self, tmp_dir):
        path = tmp_dir / "thread.json"
        path.write_text(json.dumps({"items": []}), encoding="utf-8")
        with pytest.raises(ThreadDataError):
            load_thread(path)

    def test_bundled_sample_loads(self):
        roots = load_thread(SAMPLE_THREAD_PATH)
        first = roots[0]
        assert first.id == "r1"
        assert first.content[first.mentions[0].start:first.mentions[0].end] == "@alice"
        link = first.links[0]
        assert first.content[link.start:link.end] == link.url
        assert len(first.children) > 3
