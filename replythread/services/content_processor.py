"""Content processing: annotation markup, search highlighting and text metrics.

Everything here is a pure function of its input. The markup produced for the
GUI is Qt rich text in which every annotated region is an anchor whose href
encodes the annotation kind and reference (``mention:<id>``,
``hashtag:<tag>``, ``link:<id>``); the widget resolves activated anchors with
``parse_anchor``.
"""

import html
import logging
import math
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence
from urllib.parse import quote, unquote, urlparse

from replythread.core.types import (
    ContentMetrics,
    HashtagAnnotation,
    LinkAnnotation,
    MentionAnnotation,
)

logger = logging.getLogger("replythread")

WORDS_PER_MINUTE = 200
MIN_SEARCH_LENGTH = 3

ANCHOR_KINDS = ("mention", "hashtag", "link")

SEARCH_HIGHLIGHT_STYLE = "background-color: #fff59d;"

_URL_RE = re.compile(r'https?://[^\s<>"]+')
_HASHTAG_RE = re.compile(r'(?<![\w#&])#(\w+)')
_MENTION_RE = re.compile(r'(?<![\w@])@(\w+)')
_TRAILING_PUNCT = ".,;:!?)]}'\""


@dataclass(frozen=True)
class Segment:
    """A run of content text, optionally annotated."""

    text: str
    kind: str = "text"               # 'text', 'mention', 'hashtag', 'link', 'search'
    ref: str = ""                    # mention id, hashtag text or link id


@dataclass(frozen=True)
class ProcessedContent:
    segments: tuple[Segment, ...]
    markup: str
    is_rich: bool

    @property
    def plain_text(self) -> str:
        return "".join(seg.text for seg in self.segments)


def compute_metrics(content: str) -> ContentMetrics:
    """Word count, character count and reading time (minutes) of content."""
    words = [w for w in content.split() if w]
    return ContentMetrics(
        word_count=len(words),
        character_count=len(content),
        reading_time=math.ceil(len(words) / WORDS_PER_MINUTE),
    )


def process_content(
    content: str,
    search_query: Optional[str] = None,
    mentions: Iterable[MentionAnnotation] = (),
    hashtags: Iterable[HashtagAnnotation] = (),
    links: Iterable[LinkAnnotation] = (),
) -> ProcessedContent:
    """Split content into annotated segments and render them as markup.

    Annotation ranges that are malformed or fall outside the content are
    ignored. Without any annotated segment the markup is the content itself.
    """
    regions = _collect_regions(content, mentions, hashtags, links)

    segments: list[Segment] = []
    pos = 0
    for start, end, kind, ref in regions:
        if start > pos:
            segments.extend(_split_search_hits(content[pos:start], search_query))
        segments.append(Segment(content[start:end], kind, ref))
        pos = end
    if pos < len(content):
        segments.extend(_split_search_hits(content[pos:], search_query))

    is_rich = any(seg.kind != "text" for seg in segments)
    markup = render_markup(segments) if is_rich else content
    return ProcessedContent(segments=tuple(segments), markup=markup, is_rich=is_rich)


def render_markup(segments: Sequence[Segment]) -> str:
    """Render segments as Qt rich text."""
    parts = []
    for seg in segments:
        text = html.escape(seg.text).replace("\n", "<br/>")
        if seg.kind in ANCHOR_KINDS:
            href = f"{seg.kind}:{quote(seg.ref, safe='')}"
            parts.append(f'<a href="{href}">{text}</a>')
        elif seg.kind == "search":
            parts.append(f'<span style="{SEARCH_HIGHLIGHT_STYLE}">{text}</span>')
        else:
            parts.append(text)
    return "".join(parts)


def parse_anchor(href: str) -> Optional[tuple[str, str]]:
    """Resolve an activated anchor href into (kind, ref), or None."""
    kind, sep, ref = href.partition(":")
    if not sep or kind not in ANCHOR_KINDS:
        return None
    return kind, unquote(ref)


def extract_annotations(
    content: str,
) -> tuple[list[MentionAnnotation], list[HashtagAnnotation], list[LinkAnnotation]]:
    """Detect @mentions, #hashtags and http(s) links with their offsets.

    Used for records that arrive without host-provided annotations. Detected
    mentions use the handle as their id. Hashtags and mentions inside a link
    are not reported.
    """
    links = []
    for i, match in enumerate(_URL_RE.finditer(content)):
        url = match.group(0).rstrip(_TRAILING_PUNCT)
        if not url:
            continue
        start = match.start()
        links.append(LinkAnnotation(
            id=f"link-{i + 1}",
            url=url,
            start=start,
            end=start + len(url),
            domain=urlparse(url).netloc,
        ))

    def inside_link(start: int, end: int) -> bool:
        return any(link.start < end and start < link.end for link in links)

    hashtags = [
        HashtagAnnotation(tag=m.group(1), start=m.start(), end=m.end())
        for m in _HASHTAG_RE.finditer(content)
        if not inside_link(m.start(), m.end())
    ]
    mentions = [
        MentionAnnotation(id=m.group(1), display_name=m.group(1), start=m.start(), end=m.end())
        for m in _MENTION_RE.finditer(content)
        if not inside_link(m.start(), m.end())
    ]
    return mentions, hashtags, links


def _collect_regions(content, mentions, hashtags, links) -> list[tuple[int, int, str, str]]:
    candidates = []
    for m in mentions:
        candidates.append((m.start, m.end, "mention", m.id))
    for h in hashtags:
        candidates.append((h.start, h.end, "hashtag", h.tag))
    for link in links:
        candidates.append((link.start, link.end, "link", link.id))

    valid = []
    for start, end, kind, ref in candidates:
        if not isinstance(start, int) or not isinstance(end, int):
            logger.debug(f"Skipping {kind} annotation with non-integer offsets")
            continue
        if start < 0 or end > len(content) or start >= end:
            logger.debug(f"Skipping {kind} annotation [{start}, {end}) outside content")
            continue
        valid.append((start, end, kind, ref))

    valid.sort(key=lambda region: region[0])

    regions = []
    last_end = 0
    for region in valid:
        if region[0] < last_end:
            logger.debug(f"Skipping overlapping {region[2]} annotation at {region[0]}")
            continue
        regions.append(region)
        last_end = region[1]
    return regions


def _split_search_hits(text: str, query: Optional[str]) -> list[Segment]:
    if not query or len(query) < MIN_SEARCH_LENGTH:
        return [Segment(text)]

    segments = []
    pos = 0
    for match in re.finditer(re.escape(query), text, re.IGNORECASE):
        if match.start() > pos:
            segments.append(Segment(text[pos:match.start()]))
        segments.append(Segment(match.group(0), "search", query))
        pos = match.end()
    if pos < len(text):
        segments.append(Segment(text[pos:]))
    return segments
