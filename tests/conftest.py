"""Shared test fixtures for ReplyThread tests."""

import json
import shutil
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from replythread.core.config_manager import ConfigManager, DEFAULT_CONFIG
from replythread.core.i18n_manager import I18nManager, LOCALE_DIR
from replythread.core.types import ReplyRecord, ReplyStats, UserIdentitySnapshot


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset all singletons before each test."""
    yield
    ConfigManager.reset()
    I18nManager.reset()


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def config_file(tmp_dir):
    """Create a temporary settings.yaml and return its path."""
    config_dir = tmp_dir / "config"
    config_dir.mkdir(parents=True)
    config_path = config_dir / "settings.yaml"

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(dict(DEFAULT_CONFIG), f, default_flow_style=False, sort_keys=False)

    return config_path


@pytest.fixture
def locale_dir(tmp_dir):
    """Create temporary locale directory with test JSON files."""
    loc_dir = tmp_dir / "locales"
    loc_dir.mkdir(parents=True)

    ko_data = {
        "app": {"title": "ReplyThread"},
        "footer": {"like": "좋아요", "reply": "답글"},
        "thread": {"show_more": "답글 {count}개 더 보기"},
    }
    en_data = {
        "app": {"title": "ReplyThread"},
        "footer": {"like": "Like", "reply": "Reply"},
        "thread": {"show_more": "Show {count} more replies"},
    }

    with open(loc_dir / "ko_KR.json", "w", encoding="utf-8") as f:
        json.dump(ko_data, f, ensure_ascii=False)
    with open(loc_dir / "en_US.json", "w", encoding="utf-8") as f:
        json.dump(en_data, f, ensure_ascii=False)

    return loc_dir


@pytest.fixture
def i18n_en():
    """I18nManager loaded with the bundled en_US locale."""
    mgr = I18nManager()
    with patch("replythread.core.i18n_manager.LOCALE_DIR", LOCALE_DIR):
        mgr.load_locale("en_US")
    return mgr


@pytest.fixture
def author():
    return UserIdentitySnapshot(id="u-author", display_name="Author", trust_score=60)


@pytest.fixture
def viewer():
    return UserIdentitySnapshot(id="u-viewer", display_name="Viewer", trust_score=50)


@pytest.fixture
def moderator():
    return UserIdentitySnapshot(id="u-mod", display_name="Mod", role="moderator", trust_score=95)


@pytest.fixture
def record(author):
    """A plain reply with some counters."""
    return ReplyRecord(
        id="r1",
        user=author,
        content="The quick brown fox jumps over the lazy dog",
        created_at=1_700_000_000.0,
        stats=ReplyStats(likes=5, dislikes=2, bookmarks=1),
    )
