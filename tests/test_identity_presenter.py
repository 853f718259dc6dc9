"""Tests for the identity presenter."""

from datetime import timezone

import pytest

from replythread.core.types import UserIdentitySnapshot
from replythread.services.identity_presenter import (
    avatar_initial,
    format_absolute_time,
    format_relative_time,
    present_identity,
    verification_tier,
)

NOW = 1_700_000_000.0


class TestVerificationTier:

    @pytest.mark.parametrize("trust, expected", [
        (99, "elite"),
        (95, "elite"),
        (90, "premium"),
        (70, "trusted"),
        (69, "basic"),
        (0, "basic"),
    ])
    def test_trust_thresholds(self, trust, expected):
        user = UserIdentitySnapshot(id="u", trust_score=trust)
        assert verification_tier(user) == expected

    def test_reputation_makes_expert(self):
        user = UserIdentitySnapshot(id="u", trust_score=10, reputation_score=1000)
        assert verification_tier(user) == "expert"


class TestAvatarInitial:

    def test_first_letter_uppercased(self):
        assert avatar_initial("alice") == "A"

    def test_blank_name(self):
        assert avatar_initial("   ") == "?"
        assert avatar_initial("") == "?"


class TestRelativeTime:

    @pytest.mark.parametrize("age, expected", [
        (0, "just now"),
        (59, "just now"),
        (60, "1m ago"),
        (3599, "59m ago"),
        (3600, "1h ago"),
        (86400 * 2, "2d ago"),
        (604800 * 3, "3w ago"),
        (2592000 * 5, "5mo ago"),
        (31536000 * 2, "2y ago"),
    ])
    def test_units(self, i18n_en, age, expected):
        assert format_relative_time(NOW - age, now=NOW) == expected

    def test_future_timestamp_is_just_now(self, i18n_en):
        assert format_relative_time(NOW + 500, now=NOW) == "just now"


class TestAbsoluteTime:

    def test_explicit_format_and_zone(self):
        # 2023-11-14 22:13:20 UTC
        assert format_absolute_time(NOW, "%Y-%m-%d %H:%M", tz=timezone.utc) == "2023-11-14 22:13"

    def test_locale_format_used_by_default(self, i18n_en):
        text = format_absolute_time(NOW, tz=timezone.utc)
        assert text == "Nov 14, 2023 22:13"


class TestPresentIdentity:

    def test_default_variant(self, i18n_en):
        user = UserIdentitySnapshot(
            id="u-1", display_name="dana", trust_score=88, location="Seoul", badges=("Helper",),
        )
        facets = present_identity(user, NOW - 120, now=NOW)

        assert facets.display_name == "dana"
        assert facets.avatar_initial == "D"
        assert facets.tier == "premium"
        assert facets.relative_time == "2m ago"
        assert facets.shows("location")
        assert facets.shows("badges")

    def test_missing_location_and_badges_hidden(self, i18n_en):
        facets = present_identity(UserIdentitySnapshot(id="u-1"), NOW, now=NOW)
        assert not facets.shows("location")
        assert not facets.shows("badges")
        assert facets.display_name == "u-1"

    def test_minimal_variant(self, i18n_en):
        user = UserIdentitySnapshot(id="u-1", display_name="dana", location="Seoul")
        facets = present_identity(user, NOW, now=NOW, variant="minimal")
        assert facets.visible == frozenset({"name", "timestamp"})

    def test_verification_can_be_hidden(self, i18n_en):
        user = UserIdentitySnapshot(id="u-1", trust_score=99)
        facets = present_identity(user, NOW, now=NOW, show_verification=False)
        assert not facets.shows("tier")
        assert facets.tier == "elite"
