"""Tests for the replythread logger setup and masking filter."""

import logging

import pytest

from replythread.core.logger import LOG_FILE_NAME, LOGGER_NAME, SensitiveDataFilter, setup_logger


@pytest.fixture
def clean_logger():
    logger = logging.getLogger(LOGGER_NAME)
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def _record(msg, *args):
    return logging.LogRecord(LOGGER_NAME, logging.INFO, __file__, 1, msg, args, None)


class TestSensitiveDataFilter:

    def test_masks_url_and_email(self):
        record = _record("link https://example.com/a?b=1 from bob@example.com")
        assert SensitiveDataFilter().filter(record) is True
        assert record.getMessage() == "link [URL_MASKED] from [EMAIL_MASKED]"

    def test_masks_args(self):
        record = _record("content: %s", "see http://x.io")
        SensitiveDataFilter().filter(record)
        assert record.getMessage() == "content: see [URL_MASKED]"

    def test_plain_text_untouched(self):
        record = _record("Reply r1 liked")
        SensitiveDataFilter().filter(record)
        assert record.getMessage() == "Reply r1 liked"


class TestSetupLogger:

    def test_creates_file_and_handlers(self, clean_logger, tmp_dir):
        logger = setup_logger("DEBUG", log_dir=tmp_dir)

        assert logger is clean_logger
        assert len(logger.handlers) == 2
        assert (tmp_dir / LOG_FILE_NAME).exists()
        assert all(
            any(isinstance(f, SensitiveDataFilter) for f in h.filters) for h in logger.handlers
        )

    def test_second_call_keeps_handlers(self, clean_logger, tmp_dir):
        setup_logger(log_dir=tmp_dir)
        setup_logger(log_dir=tmp_dir)
        assert len(clean_logger.handlers) == 2

    def test_masking_can_be_disabled(self, clean_logger, tmp_dir):
        setup_logger(mask_logs=False, log_dir=tmp_dir)
        assert all(not h.filters for h in clean_logger.handlers)
