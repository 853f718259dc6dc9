"""UI strings for the thread widgets, looked up by dot-notation key."""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Optional

from replythread.core.types import Notice

PACKAGE_ROOT = Path(__file__).resolve().parent.parent
LOCALE_DIR = PACKAGE_ROOT / "resources" / "locales"
FALLBACK_LOCALE = "en_US"

logger = logging.getLogger("replythread")


class I18nManager:
    """Process-wide string catalog.

    Lookups go to the active locale first, then to ``FALLBACK_LOCALE``, and
    finally return the key itself, so a partially translated catalog still
    renders every control. Engines never format text; they hand over
    ``Notice`` objects that ``render`` turns into a banner line.

    Usage:
        i18n = I18nManager()
        i18n.load_locale("ko_KR")
        i18n.get("thread.show_more", count=3)
        i18n.render(Notice("error", "notices.like_failed",
                           {"error_key": "errors.timeout"}))
    """

    _instance = None
    _lock = threading.RLock()

    def __new__(cls):
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._catalog: dict[str, Any] = {}
        self._fallback: dict[str, Any] = {}
        self._locale: str = FALLBACK_LOCALE
        self._initialized = True

    def load_locale(self, locale: str) -> None:
        """Switch the active catalog to ``LOCALE_DIR/<locale>.json``.

        A missing or unreadable file is logged and the current catalog stays
        active.
        """
        with self._lock:
            catalog = self._read_catalog(locale)
            if catalog is None:
                return
            self._catalog = catalog
            self._locale = locale
            if locale == FALLBACK_LOCALE:
                self._fallback = catalog
            elif not self._fallback:
                self._fallback = self._read_catalog(FALLBACK_LOCALE) or {}
            logger.info(f"Loaded locale: {locale}")

    def get(self, key: str, **params) -> str:
        """Look up ``key`` and fill ``{placeholders}`` from ``params``.

        Never raises; a template whose placeholders don't match ``params``
        is returned unformatted.
        """
        with self._lock:
            template = self._lookup(self._catalog, key)
            if template is None:
                template = self._lookup(self._fallback, key)
            if template is None:
                return key

        if not params:
            return template
        try:
            return template.format_map(params)
        except (KeyError, ValueError) as e:
            logger.warning(f"Cannot format '{key}' with {sorted(params)}: {e}")
            return template

    def render(self, notice: Notice) -> str:
        """Banner text for a notice; an ``error_key`` param is appended as its own sentence."""
        params = dict(notice.params)
        error_key = params.pop("error_key", None)
        text = self.get(notice.key, **params)
        if error_key:
            text = f"{text} {self.get(error_key)}"
        return text

    @property
    def locale(self) -> str:
        with self._lock:
            return self._locale

    @staticmethod
    def available_locales() -> list[str]:
        """Locale ids shipped in ``LOCALE_DIR``, sorted."""
        return sorted(path.stem for path in LOCALE_DIR.glob("*.json"))

    @classmethod
    def reset(cls) -> None:
        """Drop the instance (tests)."""
        with cls._lock:
            cls._instance = None

    @staticmethod
    def _read_catalog(locale: str) -> Optional[dict]:
        path = LOCALE_DIR / f"{locale}.json"
        if not path.exists():
            logger.warning(f"Locale file not found: {path}")
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Cannot load locale {locale}: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Locale {locale} is not a JSON object")
            return None
        return data

    @staticmethod
    def _lookup(catalog: dict, key: str) -> Optional[str]:
        node: Any = catalog
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node if isinstance(node, str) else None
