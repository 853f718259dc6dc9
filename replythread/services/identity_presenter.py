"""Identity facets: avatar, name, verification tier, location and timestamps."""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from replythread.core.i18n_manager import I18nManager
from replythread.core.types import UserIdentitySnapshot

EXPERT_REPUTATION = 1000

# Checked top-down; first threshold reached wins.
TRUST_TIERS = (
    (95, "elite"),
    (85, "premium"),
    (70, "trusted"),
)

DEFAULT_ABSOLUTE_FORMAT = "%b %d, %Y %H:%M"

# (upper bound in seconds, unit length in seconds, i18n key)
_RELATIVE_UNITS = (
    (3600, 60, "time.minutes_ago"),
    (86400, 3600, "time.hours_ago"),
    (604800, 86400, "time.days_ago"),
    (2592000, 604800, "time.weeks_ago"),
    (31536000, 2592000, "time.months_ago"),
)

# Facets visible per header variant
VARIANT_FACETS = {
    "default": {"avatar", "name", "tier", "location", "timestamp", "badges"},
    "compact": {"avatar", "name", "tier", "timestamp"},
    "minimal": {"name", "timestamp"},
}


@dataclass(frozen=True)
class IdentityFacets:
    """Everything the identity header shows, each facet independently toggleable."""

    user_id: str
    display_name: str
    avatar_url: str
    avatar_initial: str
    tier: str
    is_verified: bool
    location: str
    badges: tuple[str, ...]
    relative_time: str
    absolute_time: str
    visible: frozenset

    def shows(self, facet: str) -> bool:
        return facet in self.visible


def verification_tier(user: UserIdentitySnapshot) -> str:
    """Derive the verification tier from trust and reputation scores.

    Always recomputed from the snapshot, never stored on it.
    """
    if user.reputation_score >= EXPERT_REPUTATION:
        return "expert"
    for threshold, tier in TRUST_TIERS:
        if user.trust_score >= threshold:
            return tier
    return "basic"


def avatar_initial(display_name: str) -> str:
    """Fallback avatar text when no image is available."""
    name = (display_name or "").strip()
    return name[0].upper() if name else "?"


def format_relative_time(timestamp: float, now: Optional[float] = None) -> str:
    """Format a timestamp as 'just now', '5m ago', '3h ago', ... '2y ago'."""
    i18n = I18nManager()
    if now is None:
        now = time.time()
    seconds = max(0, int(now - timestamp))

    if seconds < 60:
        return i18n.get("time.just_now")
    for upper, unit, key in _RELATIVE_UNITS:
        if seconds < upper:
            return i18n.get(key, count=seconds // unit)
    return i18n.get("time.years_ago", count=seconds // 31536000)


def format_absolute_time(timestamp: float, fmt: Optional[str] = None, tz=None) -> str:
    """Format a timestamp with the locale's absolute format.

    The format comes from the ``identity.absolute_format`` i18n key unless
    given explicitly; ``tz`` defaults to local time.
    """
    if fmt is None:
        fmt = I18nManager().get("identity.absolute_format")
        if fmt == "identity.absolute_format":
            fmt = DEFAULT_ABSOLUTE_FORMAT
    moment = datetime.fromtimestamp(timestamp, tz=tz or timezone.utc)
    if tz is None:
        moment = moment.astimezone()
    return moment.strftime(fmt)


def present_identity(
    user: UserIdentitySnapshot,
    created_at: float,
    now: Optional[float] = None,
    variant: str = "default",
    show_location: bool = True,
    show_verification: bool = True,
    absolute_format: Optional[str] = None,
) -> IdentityFacets:
    """Build the identity facets for a reply header."""
    visible = set(VARIANT_FACETS.get(variant, VARIANT_FACETS["default"]))
    if not show_location or not user.location:
        visible.discard("location")
    if not show_verification:
        visible.discard("tier")
    if not user.badges:
        visible.discard("badges")

    return IdentityFacets(
        user_id=user.id,
        display_name=user.display_name or user.id,
        avatar_url=user.avatar_url,
        avatar_initial=avatar_initial(user.display_name or user.id),
        tier=verification_tier(user),
        is_verified=user.is_verified,
        location=user.location,
        badges=tuple(user.badges),
        relative_time=format_relative_time(created_at, now),
        absolute_time=format_absolute_time(created_at, absolute_format),
        visible=frozenset(visible),
    )
