"""Thread-safe singleton configuration manager for ReplyThread."""

import logging
import threading
from pathlib import Path
from typing import Any

import yaml

from replythread.core.exceptions import ConfigError

logger = logging.getLogger(__name__)


SUPPORTED_LOCALES = ("en_US", "ko_KR")

# Default configuration template
DEFAULT_CONFIG = {
    "app": {
        "locale": "en_US",
        "version": "1.0.0",
        "log_level": "INFO",
    },
    "thread": {
        "max_depth": 3,
        "initial_visible_replies": 3,
        "render_batch": 10,
        "visibility_threshold": 0.5,
        "lazy_mount": True,
        "rollback_on_failure": True,
    },
    "body": {
        "max_lines": 4,
        "max_height": 0,             # pixels; 0 means max_lines * line height
        "copy_feedback_ms": 2000,
        "translate_target": "",      # empty: derive from app.locale
    },
    "identity": {
        "tick_interval_sec": 60,
        "timestamp_mode": "relative",
    },
    "edit": {
        "min_length": 10,
        "max_length": 2000,
        "require_reason": False,
        "auto_save": False,
        "auto_save_interval_ms": 30000,
        "time_limit_min": 30,        # 0 disables the limit
    },
    "delete": {
        "confirm_token": "DELETE",
        "require_reason": False,
    },
    "notifications": {
        "duration_ms": 3000,
    },
    "security": {
        "mask_logs": True,
    },
    "demo": {
        "latency_sec": 0.3,
    },
}


class ConfigManager:
    """Thread-safe singleton configuration manager.

    Manages application configuration with:
    - Singleton pattern ensuring only one instance exists
    - Thread-safe operations using RLock
    - Automatic settings.yaml creation if missing
    - Dot-notation key access (e.g., "thread.max_depth")
    - Validation rules for critical settings
    """

    _instance = None
    _lock = threading.RLock()

    def __new__(cls):
        """Ensure singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize configuration manager."""
        # Prevent re-initialization
        if hasattr(self, '_initialized'):
            return

        with self._lock:
            if hasattr(self, '_initialized'):
                return

            self.PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
            self.CONFIG_PATH = self.PROJECT_ROOT / "config" / "settings.yaml"

            self._config = {}
            self._instance_lock = threading.RLock()

            self._load_or_create_config()

            self._initialized = True

    def _load_or_create_config(self):
        """Load settings.yaml or create it from defaults."""
        if self.CONFIG_PATH.exists():
            try:
                with open(self.CONFIG_PATH, 'r', encoding='utf-8') as f:
                    self._config = yaml.safe_load(f) or {}
                logger.info(f"Loaded configuration from {self.CONFIG_PATH}")
            except yaml.YAMLError as e:
                logger.error(f"Failed to parse YAML at {self.CONFIG_PATH}: {e}")
                logger.warning("Using DEFAULT_CONFIG due to parse error")
                self._config = self._deep_copy(DEFAULT_CONFIG)
            except OSError as e:
                logger.error(f"Unexpected error loading config: {e}")
                logger.warning("Using DEFAULT_CONFIG")
                self._config = self._deep_copy(DEFAULT_CONFIG)
        else:
            logger.info(f"Config file not found at {self.CONFIG_PATH}")
            self.CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
            self._config = self._deep_copy(DEFAULT_CONFIG)
            self.save()
            logger.info(f"Created default configuration at {self.CONFIG_PATH}")

    def get(self, key: str, default=None) -> Any:
        """Get configuration value using dot-notation key.

        Falls back to DEFAULT_CONFIG when the loaded file lacks the key,
        then to ``default``.

        Example:
            >>> config.get("thread.max_depth")
            3
        """
        with self._instance_lock:
            found, value = self._lookup(self._config, key)
            if found:
                return value
            found, value = self._lookup(DEFAULT_CONFIG, key)
            return value if found else default

    def set(self, key: str, value: Any) -> None:
        """Set configuration value using dot-notation key.

        Note: This does NOT save to disk. Use save() to persist changes.
        """
        with self._instance_lock:
            parts = key.split('.')
            target = self._config

            for part in parts[:-1]:
                if part not in target:
                    target[part] = {}
                target = target[part]

            target[parts[-1]] = value

    def update(self, changes: dict) -> None:
        """Batch update configuration from flat dict of dot-notation keys.

        Applies validation rules and saves to disk once after all updates.

        Validation Rules:
            - app.locale: must be one of SUPPORTED_LOCALES
            - thread.max_depth: minimum 1
            - thread.visibility_threshold: 0.0-1.0
            - edit.min_length: minimum 0
            - edit.max_length: not below edit.min_length
            - identity.tick_interval_sec: minimum 1
            - edit.auto_save_interval_ms: minimum 1000
        """
        with self._instance_lock:
            validated_changes = {}

            for key, value in changes.items():
                validated_value = self._validate_key_value(key, value, changes)
                if validated_value is not None:
                    validated_changes[key] = validated_value

            for key, value in validated_changes.items():
                self.set(key, value)

            self.save()

    def _validate_key_value(self, key: str, value: Any, changes: dict) -> Any:
        """Apply validation rules to key-value pair.

        Returns:
            Validated value or None if invalid (will be ignored)
        """
        if key == "app.locale":
            if value not in SUPPORTED_LOCALES:
                logger.warning(f"Invalid locale '{value}'. Must be one of {SUPPORTED_LOCALES}. Ignoring.")
                return None
            return value

        if key == "thread.max_depth":
            return self._validate_min_int(key, value, 1)

        if key == "identity.tick_interval_sec":
            return self._validate_min_int(key, value, 1)

        if key == "edit.auto_save_interval_ms":
            return self._validate_min_int(key, value, 1000)

        if key == "edit.min_length":
            return self._validate_min_int(key, value, 0)

        if key == "edit.max_length":
            min_length = changes.get("edit.min_length", self.get("edit.min_length", 0))
            try:
                min_length = int(min_length)
            except (TypeError, ValueError):
                min_length = 0
            return self._validate_min_int(key, value, min_length)

        if key == "thread.visibility_threshold":
            try:
                threshold = float(value)
                if not (0.0 <= threshold <= 1.0):
                    logger.warning(f"visibility_threshold {threshold} out of range [0.0, 1.0]. Forcing to 0.5.")
                    return 0.5
                return threshold
            except (TypeError, ValueError):
                logger.warning(f"Invalid visibility_threshold '{value}'. Must be float. Ignoring.")
                return None

        return value

    @staticmethod
    def _validate_min_int(key: str, value: Any, minimum: int) -> Any:
        try:
            number = int(value)
        except (TypeError, ValueError):
            logger.warning(f"Invalid {key} '{value}'. Must be int. Ignoring.")
            return None
        if number < minimum:
            logger.warning(f"{key} {number} < {minimum}. Forcing to {minimum}.")
            return minimum
        return number

    def save(self) -> None:
        """Write current configuration to settings.yaml."""
        with self._instance_lock:
            try:
                self.CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
                with open(self.CONFIG_PATH, 'w', encoding='utf-8') as f:
                    yaml.safe_dump(self._config, f, default_flow_style=False, sort_keys=False)
                logger.debug(f"Saved configuration to {self.CONFIG_PATH}")
            except OSError as e:
                logger.error(f"Failed to save configuration: {e}")
                raise ConfigError(f"Failed to save configuration: {e}")

    def translate_target(self) -> str:
        """Target language code for on-demand translation.

        Example:
            >>> config.get("app.locale")
            'ko_KR'
            >>> config.translate_target()
            'ko'
        """
        with self._instance_lock:
            explicit = self.get("body.translate_target", "")
            if explicit:
                return explicit
            locale = self.get("app.locale", "en_US") or "en_US"
            return locale.split("_")[0] or "en"

    @classmethod
    def reset(cls) -> None:
        """Reset singleton instance (for testing)."""
        with cls._lock:
            cls._instance = None

    @staticmethod
    def _lookup(tree: dict, key: str) -> tuple[bool, Any]:
        value = tree
        for part in key.split('.'):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return False, None
        return True, value

    @staticmethod
    def _deep_copy(obj):
        """Create a deep copy of nested dict/list structures."""
        if isinstance(obj, dict):
            return {k: ConfigManager._deep_copy(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [ConfigManager._deep_copy(item) for item in obj]
        else:
            return obj
