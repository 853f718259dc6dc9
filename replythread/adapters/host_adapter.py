"""Abstract base class for the host application behind a reply thread."""

from abc import ABC, abstractmethod
from typing import Optional

from replythread.core.types import (
    LinkAnnotation,
    MentionAnnotation,
    UserIdentitySnapshot,
)


class ReplyHostAdapter(ABC):
    """Contract between the reply thread and the application that owns its data.

    Mutation methods run on worker threads. They return normally to
    acknowledge and raise (preferably a HostError subclass) to reject.
    Navigation and analytics methods are called on the GUI thread and must
    not block.
    """

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @abstractmethod
    def like(self, reply_id: str, is_liked: bool) -> None:
        """Set or clear the viewer's like on a reply."""
        ...

    @abstractmethod
    def dislike(self, reply_id: str, is_disliked: bool) -> None:
        """Set or clear the viewer's dislike on a reply."""
        ...

    @abstractmethod
    def bookmark(self, reply_id: str, is_bookmarked: bool) -> None:
        ...

    @abstractmethod
    def share(self, reply_id: str, platform: Optional[str] = None) -> None:
        ...

    @abstractmethod
    def helpful_vote(self, reply_id: str, is_helpful: bool) -> None:
        ...

    @abstractmethod
    def pin(self, reply_id: str, is_pinned: bool) -> None:
        ...

    @abstractmethod
    def highlight(self, reply_id: str, is_highlighted: bool) -> None:
        ...

    @abstractmethod
    def edit(self, reply_id: str, new_content: str, reason: Optional[str] = None) -> None:
        """Replace a reply's content.

        Raises:
            HostPermissionError: Edit window closed or not the owner
            HostCallError: Any other failure
        """
        ...

    @abstractmethod
    def auto_save(self, reply_id: str, content: str) -> None:
        """Store an edit draft. Failures never block a manual save."""
        ...

    @abstractmethod
    def submit_reply(self, parent_id: str, content: str) -> None:
        """Post a new reply under ``parent_id``."""
        ...

    @abstractmethod
    def delete(self, reply_id: str, reason: Optional[str] = None, permanent: bool = False) -> None:
        """Delete a reply; soft deletes take its descendants with it."""
        ...

    @abstractmethod
    def report(self, reply_id: str, reason: str, details: Optional[str] = None) -> None:
        ...

    @abstractmethod
    def translate(self, reply_id: str, target_language: str) -> str:
        """Translate a reply's content.

        Args:
            reply_id: Reply to translate
            target_language: Language code (e.g., "en", "ko")

        Returns:
            Translated text
        """
        ...

    @abstractmethod
    def record_view(self, reply_id: str) -> None:
        """Count one view of a reply."""
        ...

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    @abstractmethod
    def on_user_click(self, user: UserIdentitySnapshot) -> None:
        ...

    @abstractmethod
    def on_mention_click(self, mention: MentionAnnotation) -> None:
        ...

    @abstractmethod
    def on_hashtag_click(self, tag: str) -> None:
        ...

    @abstractmethod
    def on_link_click(self, link: LinkAnnotation) -> None:
        ...

    @abstractmethod
    def on_view_profile(self, user_id: str) -> None:
        ...

    @abstractmethod
    def on_block(self, user_id: str) -> None:
        ...

    @abstractmethod
    def on_follow(self, user_id: str) -> None:
        ...

    @abstractmethod
    def on_view_history(self, reply_id: str) -> None:
        ...

    @abstractmethod
    def on_reply(self, reply_id: str) -> None:
        """The viewer opened the inline composer under a reply."""
        ...

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------

    @abstractmethod
    def on_analytics_event(self, event_name: str, payload: dict) -> None:
        ...
