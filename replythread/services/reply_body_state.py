"""Reply body state: overflow and expansion, translation toggle, copy, anchor clicks and lazy mount."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from replythread.core.types import (
    ContentMetrics,
    LinkAnnotation,
    MentionAnnotation,
    Notice,
    ReplyRecord,
)
from replythread.services import analytics
from replythread.services.analytics import AnalyticsTracker
from replythread.services.content_processor import (
    ProcessedContent,
    compute_metrics,
    extract_annotations,
    parse_anchor,
    process_content,
)

logger = logging.getLogger("replythread")

DEFAULT_LINE_HEIGHT = 20
DEFAULT_MAX_LINES = 4
COPY_FEEDBACK_MS = 2000


@dataclass(frozen=True)
class TranslateRequest:
    reply_id: str
    source_language: str
    target_language: str


class VisibilityTracker:
    """Fires once when a node first becomes visible enough to mount."""

    def __init__(self, threshold: float = 0.5):
        self.threshold = threshold
        self.is_visible = False
        self._view_reported = False

    def update(self, ratio: float) -> bool:
        """Feed the visible fraction. True exactly once, on first reaching the threshold."""
        if self.is_visible or ratio < self.threshold:
            return False
        self.is_visible = True
        return True

    def should_report_view(self) -> bool:
        if not self.is_visible or self._view_reported:
            return False
        self._view_reported = True
        return True


class ReplyBodyState:
    """Display state of one reply body.

    ``display_state`` is 'collapsed' until a measurement shows overflow,
    then 'expandable', and 'expanded' once the reader opens it. Translation
    toggles between original and translated text; a failed translation
    leaves the current mode alone and exposes ``error_key``.
    """

    def __init__(
        self,
        record: ReplyRecord,
        tracker: Optional[AnalyticsTracker] = None,
        notify: Optional[Callable[[Notice], None]] = None,
        max_lines: int = DEFAULT_MAX_LINES,
        max_height: int = 0,
        copy_feedback_ms: int = COPY_FEEDBACK_MS,
        expanded: bool = False,
    ):
        self.record = record
        self.max_lines = max_lines
        self.max_height = max_height
        self.copy_feedback_ms = copy_feedback_ms
        self.is_overflowing = False
        self.is_expanded = expanded
        self.is_translated = False
        self.is_translating = False
        self.translated_text = ""
        self.translated_to = ""
        self.error_key: Optional[str] = None
        self._copied_until: Optional[float] = None
        self._tracker = tracker
        self._notify = notify
        self._processed: dict[Optional[str], ProcessedContent] = {}
        self._annotations = None
        self._mounted = True

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    @property
    def metrics(self) -> ContentMetrics:
        return self.record.metrics or compute_metrics(self.record.content)

    def annotations(self):
        """Record annotations, or ones detected in the text when it ships none."""
        if self._annotations is None:
            rec = self.record
            if rec.mentions or rec.hashtags or rec.links:
                self._annotations = (list(rec.mentions), list(rec.hashtags), list(rec.links))
            else:
                self._annotations = extract_annotations(rec.content)
        return self._annotations

    def processed(self, search_query: Optional[str] = None) -> ProcessedContent:
        if search_query not in self._processed:
            mentions, hashtags, links = self.annotations()
            self._processed[search_query] = process_content(
                self.record.content, search_query, mentions, hashtags, links,
            )
        return self._processed[search_query]

    def display_markup(self, search_query: Optional[str] = None) -> str:
        """Text for the body label; rich only when ``display_is_rich`` says so."""
        if self.is_translated:
            return self.translated_text
        return self.processed(search_query).markup

    def display_is_rich(self, search_query: Optional[str] = None) -> bool:
        return not self.is_translated and self.processed(search_query).is_rich

    # ------------------------------------------------------------------
    # Overflow
    # ------------------------------------------------------------------

    def measure(self, full_height: int, line_height: int = DEFAULT_LINE_HEIGHT) -> bool:
        """Compare the full content height with the allowed height; call again on resize."""
        allowed = self.max_height or self.max_lines * (line_height or DEFAULT_LINE_HEIGHT)
        self.is_overflowing = full_height > allowed
        return self.is_overflowing

    @property
    def display_state(self) -> str:
        if self.is_expanded:
            return "expanded"
        if self.is_overflowing:
            return "expandable"
        return "collapsed"

    def toggle_expand(self) -> bool:
        if not self.is_overflowing and not self.is_expanded:
            return self.is_expanded
        self.is_expanded = not self.is_expanded
        self._track(analytics.REPLY_EXPAND_TOGGLE, {"expanded": self.is_expanded})
        return self.is_expanded

    # ------------------------------------------------------------------
    # Translation
    # ------------------------------------------------------------------

    def can_translate(self, target_language: str) -> bool:
        return bool(target_language) and target_language != self.record.language

    def request_translation(self, target_language: str) -> Optional[TranslateRequest]:
        """Toggle translation. Returns a request only when the host must be asked."""
        if self.is_translating:
            return None
        if self.is_translated:
            self.is_translated = False
            return None
        if self.translated_text and self.translated_to == target_language:
            self.is_translated = True
            return None

        self.is_translating = True
        self.error_key = None
        return TranslateRequest(self.record.id, self.record.language, target_language)

    def finish_translation(self, request: TranslateRequest, text: str) -> bool:
        if not self._mounted or not self.is_translating:
            return False
        self.is_translating = False
        self.translated_text = text
        self.translated_to = request.target_language
        self.is_translated = True
        self._track(analytics.REPLY_TRANSLATE, {
            "fromLanguage": request.source_language,
            "toLanguage": request.target_language,
        })
        self._emit(Notice("success", "notices.translated", {
            "source": request.source_language,
            "target": request.target_language,
        }))
        return True

    def fail_translation(self, request: TranslateRequest, error_key: str = "errors.generic") -> bool:
        if not self._mounted or not self.is_translating:
            return False
        self.is_translating = False
        self.error_key = error_key
        logger.error(f"Translating {self.record.id} to {request.target_language} failed ({error_key})")
        self._emit(Notice("error", "notices.translate_failed", {"error_key": error_key}))
        return True

    @staticmethod
    def dispatch(host, request: TranslateRequest) -> str:
        """Ask the host for a translation. Blocking; call it from a worker thread."""
        return host.translate(request.reply_id, request.target_language)

    # ------------------------------------------------------------------
    # Copy and clicks
    # ------------------------------------------------------------------

    def copy_text(self, now: float) -> str:
        """Text to put on the clipboard; starts the 'copied' affordance."""
        text = self.processed().plain_text
        self._copied_until = now + self.copy_feedback_ms / 1000
        self._track(analytics.REPLY_COPY, {"contentLength": len(text)})
        self._emit(Notice("success", "notices.copied"))
        return text

    def is_copy_feedback_active(self, now: float) -> bool:
        return self._copied_until is not None and now < self._copied_until

    def activate_anchor(self, href: str) -> Optional[tuple[str, Union[MentionAnnotation, LinkAnnotation, str]]]:
        """Resolve a clicked anchor to (kind, mention | hashtag | link), or None."""
        parsed = parse_anchor(href)
        if parsed is None:
            logger.debug(f"Ignoring unknown anchor '{href}'")
            return None
        kind, ref = parsed
        mentions, _hashtags, links = self.annotations()

        if kind == "mention":
            mention = next((m for m in mentions if m.id == ref), None)
            if mention is None:
                return None
            self._track(analytics.REPLY_MENTION_CLICK, {"mentionedUserId": mention.id})
            return kind, mention
        if kind == "hashtag":
            self._track(analytics.REPLY_HASHTAG_CLICK, {"hashtag": ref})
            return kind, ref
        link = next((link for link in links if link.id == ref), None)
        if link is None:
            return None
        self._track(analytics.REPLY_LINK_CLICK, {"linkUrl": link.url})
        return kind, link

    def track_view(self) -> None:
        metrics = self.metrics
        self._track(analytics.REPLY_VIEW, {
            "contentLength": metrics.character_count,
            "wordCount": metrics.word_count,
        })

    def unmount(self) -> None:
        self._mounted = False
        self.is_translating = False

    def _track(self, event: str, data: dict) -> None:
        if self._tracker is not None:
            self._tracker.track(event, data)

    def _emit(self, notice: Notice) -> None:
        if self._notify is not None:
            self._notify(notice)
