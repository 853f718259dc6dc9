"""ReplyThread demo application entry point."""

import sys

from PyQt6.QtWidgets import QApplication

from replythread.core.config_manager import ConfigManager
from replythread.core.exceptions import ThreadDataError
from replythread.core.i18n_manager import I18nManager
from replythread.core.logger import setup_logger
from replythread.adapters.demo_host import DemoReplyHost
from replythread.services.thread_loader import SAMPLE_THREAD_PATH, load_thread
from replythread.gui.main_window import MainWindow


def main():
    """Main entry point for the ReplyThread demo.

    Startup sequence:
    1. ConfigManager init (loads or creates settings.yaml)
    2. Logger init (reads log_level from config)
    3. I18nManager init (reads locale from config)
    4. Thread data (path from argv, else the bundled sample)
    5. Demo host adapter
    6. QApplication creation
    7. MainWindow creation
    8. Event loop
    """
    # 1. ConfigManager (loads or creates settings.yaml)
    config = ConfigManager()

    # 2. Logger (reads log_level from config)
    log_level = config.get("app.log_level", "INFO")
    mask_logs = config.get("security.mask_logs", True)
    logger = setup_logger(log_level=log_level, mask_logs=mask_logs)
    logger.info("ReplyThread starting...")

    # 3. I18nManager (reads locale from config)
    i18n = I18nManager()
    locale = config.get("app.locale", "en_US")
    i18n.load_locale(locale)
    logger.info(f"Locale loaded: {locale}")

    # 4. Thread data
    path = sys.argv[1] if len(sys.argv) > 1 else SAMPLE_THREAD_PATH
    try:
        roots = load_thread(path)
    except ThreadDataError as e:
        logger.error(f"Cannot load thread from {path}: {e}")
        sys.exit(1)
    logger.info(f"Loaded {len(roots)} top-level replies from {path}")

    # 5. Host adapter
    host = DemoReplyHost(latency_sec=config.get("demo.latency_sec", 0.3))

    # 6. Create QApplication
    app = QApplication(sys.argv)

    # 7. Create MainWindow
    window = MainWindow(roots, host, config)
    window.show()
    logger.info("ReplyThread UI ready")

    # 8. Enter event loop
    exit_code = app.exec()

    logger.info("ReplyThread shutting down")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
