"""Parse host thread JSON (camelCase keys) into ReplyRecord trees."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from replythread.core.exceptions import ThreadDataError
from replythread.core.types import (
    MODERATION_STATUSES,
    Attachment,
    ContentMetrics,
    DiffSpan,
    EditHistoryEntry,
    HashtagAnnotation,
    LinkAnnotation,
    MentionAnnotation,
    ReplyRecord,
    ReplyStats,
    UserIdentitySnapshot,
)
from replythread.services.content_processor import compute_metrics

logger = logging.getLogger("replythread")

SAMPLE_THREAD_PATH = Path(__file__).resolve().parent.parent / "resources" / "sample_thread.json"


def load_thread(path: Path) -> list[ReplyRecord]:
    """Load a thread file holding a list of root replies (or {"replies": [...]}).

    Raises:
        ThreadDataError: File missing, not JSON, or malformed
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ThreadDataError(f"Cannot read thread file {path}: {e}")
    except json.JSONDecodeError as e:
        raise ThreadDataError(f"Thread file {path} is not valid JSON: {e}")

    if isinstance(data, dict):
        data = data.get("replies")
    if not isinstance(data, list):
        raise ThreadDataError(f"Thread file {path} must contain a list of replies")

    roots = [reply_from_dict(item) for item in data]
    logger.info(f"Loaded {len(roots)} root replies from {path}")
    return roots


def reply_from_dict(data: dict) -> ReplyRecord:
    """Build a reply and all of its descendants.

    Children listed under ``replies`` (or ``children``) get their
    ``parent_id`` from the enclosing reply. Missing metrics are computed.

    Raises:
        ThreadDataError: Required fields missing or of the wrong type
    """
    root = None
    stack: list[tuple[Any, Optional[ReplyRecord]]] = [(data, None)]

    while stack:
        item, parent = stack.pop()
        try:
            record = _parse_reply(item, parent.id if parent else None)
        except (TypeError, ValueError, AttributeError) as e:
            raise ThreadDataError(f"Malformed reply: {e}")
        if parent is None:
            root = record
        else:
            parent.children.append(record)

        children = item.get("replies", item.get("children")) or []
        if not isinstance(children, list):
            raise ThreadDataError(f"Replies of '{record.id}' must be a list")
        for child in reversed(children):
            stack.append((child, record))

    return root


def _parse_reply(item: Any, parent_id: Optional[str]) -> ReplyRecord:
    if not isinstance(item, dict):
        raise ThreadDataError(f"Reply must be an object, got {type(item).__name__}")
    if not item.get("id"):
        raise ThreadDataError("Reply without an id")

    reply_id = str(item["id"])
    content = item.get("content", "")
    if not isinstance(content, str):
        raise ThreadDataError(f"Content of '{reply_id}' must be a string")

    status = item.get("moderationStatus", "approved")
    if status not in MODERATION_STATUSES:
        logger.warning(f"Unknown moderation status '{status}' on '{reply_id}', treating as approved")
        status = "approved"

    metrics = item.get("metrics")
    if isinstance(metrics, dict):
        metrics = ContentMetrics(
            word_count=int(metrics.get("wordCount", 0)),
            character_count=int(metrics.get("characterCount", 0)),
            reading_time=int(metrics.get("readingTime", 0)),
        )
    else:
        metrics = compute_metrics(content)

    return ReplyRecord(
        id=reply_id,
        user=_parse_user(item.get("user"), reply_id),
        content=content,
        created_at=_parse_time(item.get("createdAt"), reply_id),
        updated_at=_parse_time(item["updatedAt"], reply_id) if item.get("updatedAt") else None,
        parent_id=item.get("parentId") or parent_id,
        is_edited=bool(item.get("isEdited", False)),
        is_pinned=bool(item.get("isPinned", False)),
        is_highlighted=bool(item.get("isHighlighted", False)),
        is_locked=bool(item.get("isLocked", False)),
        moderation_status=status,
        language=item.get("language", "en"),
        metrics=metrics,
        mentions=[_parse_mention(m, reply_id) for m in item.get("mentions", [])],
        hashtags=[_parse_hashtag(h, content) for h in item.get("hashtags", [])],
        links=[_parse_link(link, reply_id) for link in item.get("links", [])],
        attachments=[_parse_attachment(a) for a in item.get("attachments", [])],
        stats=_parse_stats(item.get("stats") or {}),
        edit_history=[_parse_history(h, reply_id) for h in item.get("editHistory", [])],
    )


def _parse_user(data: Any, reply_id: str) -> UserIdentitySnapshot:
    if not isinstance(data, dict) or not data.get("id"):
        raise ThreadDataError(f"Reply '{reply_id}' has no valid user")
    return UserIdentitySnapshot(
        id=str(data["id"]),
        display_name=data.get("displayName", ""),
        avatar_url=data.get("avatarUrl", ""),
        is_verified=bool(data.get("isVerified", False)),
        trust_score=int(data.get("trustScore", 0)),
        reputation_score=int(data.get("reputationScore", 0)),
        role=data.get("role", "user"),
        badges=tuple(data.get("badges", ())),
        location=data.get("location", ""),
    )


def _parse_time(value: Any, reply_id: str) -> float:
    """Epoch seconds from a number or an ISO-8601 string."""
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
        except ValueError:
            pass
    raise ThreadDataError(f"Invalid timestamp {value!r} on '{reply_id}'")


def _parse_mention(data: dict, reply_id: str) -> MentionAnnotation:
    try:
        return MentionAnnotation(
            id=str(data["id"]),
            display_name=data.get("displayName", ""),
            start=data.get("startIndex", 0),
            end=data.get("endIndex", 0),
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise ThreadDataError(f"Malformed mention on '{reply_id}': {e}")


def _parse_hashtag(data: Any, content: str) -> HashtagAnnotation:
    # Plain strings carry no offsets; locate the first occurrence in the content
    if isinstance(data, str):
        tag = data.lstrip("#")
        start = content.find(f"#{tag}")
        if start < 0:
            return HashtagAnnotation(tag=tag, start=-1, end=-1)
        return HashtagAnnotation(tag=tag, start=start, end=start + len(tag) + 1)
    return HashtagAnnotation(
        tag=str(data.get("tag", "")).lstrip("#"),
        start=data.get("startIndex", -1),
        end=data.get("endIndex", -1),
    )


def _parse_link(data: dict, reply_id: str) -> LinkAnnotation:
    try:
        return LinkAnnotation(
            id=str(data["id"]),
            url=data["url"],
            start=data.get("startIndex", 0),
            end=data.get("endIndex", 0),
            title=data.get("title", ""),
            domain=data.get("domain", ""),
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise ThreadDataError(f"Malformed link on '{reply_id}': {e}")


def _parse_attachment(data: dict) -> Attachment:
    return Attachment(
        id=str(data.get("id", "")),
        type=data.get("type", "document"),
        url=data.get("url", ""),
        filename=data.get("filename", ""),
        size=int(data.get("size", 0)),
        mime_type=data.get("mimeType", ""),
    )


def _parse_stats(data: dict) -> ReplyStats:
    return ReplyStats(
        likes=int(data.get("likes", 0)),
        dislikes=int(data.get("dislikes", 0)),
        shares=int(data.get("shares", 0)),
        bookmarks=int(data.get("bookmarks", 0)),
        reports=int(data.get("reports", 0)),
        views=int(data.get("views", 0)),
        helpful_votes=int(data.get("helpfulVotes", 0)),
        unhelpful_votes=int(data.get("unhelpfulVotes", 0)),
        replies=int(data.get("replies", 0)),
        is_liked=bool(data.get("isLiked", False)),
        is_disliked=bool(data.get("isDisliked", False)),
        is_bookmarked=bool(data.get("isBookmarked", False)),
        is_reported=bool(data.get("isReported", False)),
    )


def _parse_history(data: dict, reply_id: str) -> EditHistoryEntry:
    if not isinstance(data, dict):
        raise ThreadDataError(f"Malformed edit history on '{reply_id}'")
    return EditHistoryEntry(
        edited_at=_parse_time(data.get("editedAt"), reply_id),
        editor_id=str(data.get("editedBy", "")),
        reason=data.get("reason", ""),
        previous_content=data.get("previousContent", ""),
        new_content=data.get("newContent", ""),
        changes=tuple(
            DiffSpan(
                type=c.get("type", "unchanged"),
                content=c.get("content", ""),
                start=c.get("startIndex", 0),
                end=c.get("endIndex", 0),
            )
            for c in data.get("changes", [])
        ),
    )
