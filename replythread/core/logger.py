"""The ``replythread`` logger: console plus a rotating file, with reply content masked."""

import logging
import logging.handlers
import re
from pathlib import Path
from typing import Optional

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOG_DIR = PROJECT_ROOT / "logs"
LOG_FILE_NAME = "replythread.log"

LOGGER_NAME = "replythread"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3


class SensitiveDataFilter(logging.Filter):
    """Masks links and e-mail addresses that reply content brings into log lines.

    The message is rendered with its args first so values passed as
    ``%s`` parameters are masked too.
    """

    URL_PATTERN = re.compile(r'https?://\S+')
    EMAIL_PATTERN = re.compile(r'[\w.+-]+@[\w-]+\.[\w.-]+')

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            return True
        message = self.URL_PATTERN.sub('[URL_MASKED]', message)
        record.msg = self.EMAIL_PATTERN.sub('[EMAIL_MASKED]', message)
        record.args = None
        return True


def setup_logger(
    log_level: str = "INFO",
    mask_logs: bool = True,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """Attach the handlers once; later calls return the configured logger.

    Args:
        log_level: Level name for the logger and both handlers
        mask_logs: Install SensitiveDataFilter on both handlers
        log_dir: Where ``replythread.log`` rotates (default: ``<project>/logs``)
    """
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    target_dir = log_dir or LOG_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    logger.setLevel(log_level)
    formatter = logging.Formatter(LOG_FORMAT)

    handlers = [
        logging.StreamHandler(),
        logging.handlers.RotatingFileHandler(
            target_dir / LOG_FILE_NAME,
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUPS,
            encoding="utf-8",
        ),
    ]
    mask = SensitiveDataFilter() if mask_logs else None
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        if mask is not None:
            handler.addFilter(mask)
        logger.addHandler(handler)

    logger.debug(f"Logging to {target_dir / LOG_FILE_NAME} (masking {'on' if mask_logs else 'off'})")
    return logger
