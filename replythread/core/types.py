"""Data Transfer Objects for ReplyThread."""

from dataclasses import dataclass, field
from typing import Optional


STAFF_ROLES = ("moderator", "admin")

MODERATION_STATUSES = ("approved", "pending", "flagged", "hidden", "deleted")


@dataclass(frozen=True)
class UserIdentitySnapshot:
    """Read-only snapshot of a user, owned by the host."""

    id: str
    display_name: str = ""
    avatar_url: str = ""
    is_verified: bool = False
    trust_score: int = 0             # 0-100
    reputation_score: int = 0
    role: str = "user"               # 'user', 'moderator', 'admin', 'merchant'
    badges: tuple[str, ...] = ()
    location: str = ""

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


@dataclass(frozen=True)
class MentionAnnotation:
    """A mentioned user at [start, end) of the reply content."""

    id: str
    display_name: str
    start: int
    end: int


@dataclass(frozen=True)
class HashtagAnnotation:
    tag: str                         # without leading '#'
    start: int
    end: int


@dataclass(frozen=True)
class LinkAnnotation:
    id: str
    url: str
    start: int
    end: int
    title: str = ""
    domain: str = ""


@dataclass(frozen=True)
class Attachment:
    id: str
    type: str                        # 'image', 'video', 'audio', 'document', 'link'
    url: str
    filename: str = ""
    size: int = 0                    # bytes
    mime_type: str = ""


@dataclass(frozen=True)
class ContentMetrics:
    word_count: int = 0
    character_count: int = 0
    reading_time: int = 0            # minutes


@dataclass
class ReplyStats:
    """Interaction counters plus the viewer's own flags, as sent by the host."""

    likes: int = 0
    dislikes: int = 0
    shares: int = 0
    bookmarks: int = 0
    reports: int = 0
    views: int = 0
    helpful_votes: int = 0
    unhelpful_votes: int = 0
    replies: int = 0
    is_liked: bool = False
    is_disliked: bool = False
    is_bookmarked: bool = False
    is_reported: bool = False


@dataclass(frozen=True)
class DiffSpan:
    """One word-level span of an edit diff."""

    type: str                        # 'added', 'removed', 'unchanged'
    content: str
    start: int                       # word index in its source version
    end: int


@dataclass(frozen=True)
class EditHistoryEntry:
    """Append-only record of one successful edit."""

    edited_at: float
    editor_id: str
    reason: str
    previous_content: str
    new_content: str = ""
    changes: tuple[DiffSpan, ...] = ()


@dataclass
class ReplyRecord:
    """One node of a reply thread."""

    id: str
    user: UserIdentitySnapshot
    content: str = ""
    created_at: float = 0.0
    updated_at: Optional[float] = None
    parent_id: Optional[str] = None  # back-reference only, never an object
    is_edited: bool = False
    is_pinned: bool = False
    is_highlighted: bool = False
    is_locked: bool = False
    moderation_status: str = "approved"
    language: str = "en"
    metrics: Optional[ContentMetrics] = None
    mentions: list[MentionAnnotation] = field(default_factory=list)
    hashtags: list[HashtagAnnotation] = field(default_factory=list)
    links: list[LinkAnnotation] = field(default_factory=list)
    attachments: list[Attachment] = field(default_factory=list)
    stats: ReplyStats = field(default_factory=ReplyStats)
    edit_history: list[EditHistoryEntry] = field(default_factory=list)
    children: list['ReplyRecord'] = field(default_factory=list)

    @property
    def is_deleted(self) -> bool:
        return self.moderation_status == "deleted"

    @property
    def is_hidden(self) -> bool:
        return self.moderation_status == "hidden"

    @property
    def has_children(self) -> bool:
        return bool(self.children)


@dataclass
class InteractionState:
    """Client-local optimistic interaction state of one reply.

    Invariant: is_liked and is_disliked are never both True.
    """

    is_liked: bool = False
    is_disliked: bool = False
    is_bookmarked: bool = False
    is_reported: bool = False
    is_pinned: bool = False
    is_highlighted: bool = False
    likes: int = 0
    dislikes: int = 0
    shares: int = 0
    bookmarks: int = 0
    helpful_votes: int = 0
    unhelpful_votes: int = 0

    @classmethod
    def from_record(cls, record: ReplyRecord) -> 'InteractionState':
        s = record.stats
        return cls(
            is_liked=s.is_liked,
            is_disliked=s.is_disliked and not s.is_liked,
            is_bookmarked=s.is_bookmarked,
            is_reported=s.is_reported,
            is_pinned=record.is_pinned,
            is_highlighted=record.is_highlighted,
            likes=s.likes,
            dislikes=s.dislikes,
            shares=s.shares,
            bookmarks=s.bookmarks,
            helpful_votes=s.helpful_votes,
            unhelpful_votes=s.unhelpful_votes,
        )


@dataclass(frozen=True)
class Notice:
    """Transient, dismissible user notification."""

    level: str                       # 'info', 'success', 'error'
    key: str                         # i18n key
    params: dict = field(default_factory=dict)
