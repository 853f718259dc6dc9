"""Central scheduler for host-call workers, one per reply and action kind."""

import logging
from typing import Callable, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from replythread.gui.workers import HostCallWorker

logger = logging.getLogger("replythread")


class TaskCoordinator(QObject):
    """Starts host calls and keeps their workers alive until they finish.

    At most one call per (reply_id, kind) runs at a time; different kinds on
    the same reply run concurrently.

    Usage:
        coordinator = TaskCoordinator()

        started = coordinator.run(
            "r1", "like", manager.dispatch, host, request,
            on_success=lambda _: manager.complete(request),
            on_failure=lambda key: manager.fail(request, key),
        )
        # started is False while a "like" for r1 is still running

        # When the reply widget goes away
        coordinator.stop_node("r1")
    """

    busy_changed = pyqtSignal(str, str, bool)    # reply_id, kind, busy

    def __init__(self, parent=None):
        super().__init__(parent)
        self._workers: dict[tuple[str, str], HostCallWorker] = {}
        self._retired: list[HostCallWorker] = []

    def is_busy(self, reply_id: str, kind: str) -> bool:
        """Check if a call of this kind is running for the reply."""
        return (reply_id, kind) in self._workers

    def active_count(self) -> int:
        return len(self._workers)

    def run(
        self,
        reply_id: str,
        kind: str,
        func: Callable,
        *args,
        on_success: Optional[Callable] = None,
        on_failure: Optional[Callable[[str], None]] = None,
    ) -> bool:
        """Start a host call in a worker.

        Args:
            reply_id: Reply the call belongs to.
            kind: Action kind ("like", "translate", "edit", ...).
            func: Blocking callable run on the worker thread.
            on_success: Called on the GUI thread with the call's result.
            on_failure: Called on the GUI thread with an i18n error key.

        Returns:
            True if the worker started, False if the same call is still running.
        """
        key = (reply_id, kind)
        if key in self._workers:
            logger.debug(f"Task '{kind}' for {reply_id} already running")
            return False

        worker = HostCallWorker(func, *args)
        if on_success is not None:
            worker.succeeded.connect(on_success)
        if on_failure is not None:
            worker.failed.connect(on_failure)
        worker.finished.connect(lambda k=key, w=worker: self._on_finished(k, w))

        self._workers[key] = worker
        self.busy_changed.emit(reply_id, kind, True)
        logger.debug(f"Task '{kind}' for {reply_id} started (active: {len(self._workers)})")
        worker.start()
        return True

    def stop(self, reply_id: str, kind: str):
        """Drop the result of one running call.

        The thread finishes on its own; its worker stays referenced until then.
        """
        worker = self._workers.pop((reply_id, kind), None)
        if worker is None:
            return
        worker.stop()
        self._retired.append(worker)
        self.busy_changed.emit(reply_id, kind, False)
        logger.debug(f"Task '{kind}' for {reply_id} stopped")

    def stop_node(self, reply_id: str):
        """Drop the results of every running call for a reply."""
        for key in [k for k in self._workers if k[0] == reply_id]:
            self.stop(*key)

    def stop_all(self, wait_ms: int = 2000):
        """Stop every worker and wait for the threads (application shutdown)."""
        for key in list(self._workers):
            self.stop_node(key[0])
        for worker in self._retired:
            if worker.isRunning():
                worker.wait(wait_ms)
        self._retired.clear()

    def _on_finished(self, key: tuple[str, str], worker: HostCallWorker):
        if self._workers.get(key) is worker:
            del self._workers[key]
            self.busy_changed.emit(key[0], key[1], False)
            logger.debug(f"Task '{key[1]}' for {key[0]} finished (remaining: {len(self._workers)})")
        elif worker in self._retired:
            self._retired.remove(worker)
        worker.deleteLater()
