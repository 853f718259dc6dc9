"""Tests for HostCallWorker error mapping and the demo host."""

import pytest

pytest.importorskip("PyQt6.QtCore")

from replythread.adapters.demo_host import DemoReplyHost
from replythread.core.exceptions import (
    HostCallError,
    HostPermissionError,
    HostTimeoutError,
    ThreadDataError,
)
from replythread.gui.workers import HostCallWorker


class TestErrorMapping:

    @pytest.mark.parametrize("error, key", [
        (HostPermissionError(), "errors.permission_denied"),
        (HostTimeoutError(), "errors.timeout"),
        (HostCallError(), "errors.host_failed"),
        (ThreadDataError(), "errors.generic"),
    ])
    def test_maps_exception_to_key(self, error, key):
        assert HostCallWorker._map_error_to_i18n_key(error) == key


class TestRun:

    def _run(self, func, *args, stop=False):
        results, errors = [], []
        worker = HostCallWorker(func, *args)
        worker.succeeded.connect(results.append)
        worker.failed.connect(errors.append)
        if stop:
            worker.stop()
        worker.run()
        return results, errors

    def test_success_emits_result(self):
        results, errors = self._run(lambda x: x * 2, 21)
        assert results == [42]
        assert errors == []

    def test_host_error_emits_key(self):
        def fail():
            raise HostTimeoutError()
        results, errors = self._run(fail)
        assert results == []
        assert errors == ["errors.timeout"]

    def test_unexpected_error_is_generic(self):
        def fail():
            raise RuntimeError("boom")
        assert self._run(fail)[1] == ["errors.generic"]

    def test_stopped_worker_emits_nothing(self):
        assert self._run(lambda: "late", stop=True) == ([], [])


class TestDemoHost:

    def test_acknowledges(self):
        host = DemoReplyHost(latency_sec=0)
        assert host.like("r1", True) is None
        assert "r1" in host.translate("r1", "ko")

    def test_configured_failures(self):
        host = DemoReplyHost(latency_sec=0, fail_operations={"delete"})
        with pytest.raises(HostCallError):
            host.delete("r1", "spam")
