"""QThread worker for blocking host calls."""

import logging
from typing import Callable

from PyQt6.QtCore import QThread, pyqtSignal

from replythread.core.exceptions import ReplyThreadError

logger = logging.getLogger("replythread")


class HostCallWorker(QThread):
    """Runs one blocking host callback off the GUI thread.

    Emits signals to the main thread; widgets never call the host's mutation
    methods directly. A stopped worker emits nothing, so a result that
    arrives after its node is gone is dropped.
    """
    succeeded = pyqtSignal(object)       # host return value (None for acks)
    failed = pyqtSignal(str)             # i18n error key

    def __init__(self, func: Callable, *args, parent=None, **kwargs):
        """Initialize the worker.

        Args:
            func: Blocking callable, e.g. ``InteractionStateManager.dispatch``
            *args, **kwargs: Arguments to pass to ``func``
            parent: Optional parent QObject
        """
        super().__init__(parent)
        self._func = func
        self._args = args
        self._kwargs = kwargs
        self._stopped = False

    def stop(self):
        """Request the worker to drop its result."""
        self._stopped = True

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    def run(self):
        """Execute the host call."""
        try:
            result = self._func(*self._args, **self._kwargs)
            if not self._stopped:
                self.succeeded.emit(result)
        except ReplyThreadError as e:
            if not self._stopped:
                # Map exception to i18n error key
                self.failed.emit(self._map_error_to_i18n_key(e))
                logger.error(f"Host call error: {e}")
        except Exception as e:
            if not self._stopped:
                self.failed.emit("errors.generic")
                logger.error(f"Unexpected host call error: {e}")

    @staticmethod
    def _map_error_to_i18n_key(error: ReplyThreadError) -> str:
        """Map exception type to i18n error key."""
        from replythread.core.exceptions import (
            HostCallError, HostPermissionError, HostTimeoutError
        )
        if isinstance(error, HostPermissionError):
            return "errors.permission_denied"
        if isinstance(error, HostTimeoutError):
            return "errors.timeout"
        if isinstance(error, HostCallError):
            return "errors.host_failed"
        return "errors.generic"
