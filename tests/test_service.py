"""Backup service worker tests."""

from __future__ import annotations

import threading
import time
from typing import Any

import pytest

from hashbackup.archive import RestoreError
from hashbackup.service import BackupService, ServiceStoppedError


class RecordingEngine:
    """Engine double that records calls and tracks overlapping execution."""

    def __init__(self, *, gate: threading.Event | None = None, delay: float = 0.0) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.entered = threading.Event()
        self._gate = gate
        self._delay = delay
        self._lock = threading.Lock()
        self._active = 0
        self.max_active = 0

    def _enter(self, call: tuple[Any, ...]) -> None:
        with self._lock:
            self.calls.append(call)
            self._active += 1
            self.max_active = max(self.max_active, self._active)
        self.entered.set()
        if self._gate is not None:
            self._gate.wait(timeout=5)
        if self._delay:
            time.sleep(self._delay)
        with self._lock:
            self._active -= 1

    def run_cycle(self) -> str:
        self._enter(("cycle",))
        return f"report-{len(self.calls)}"

    def restore(self, world: str, container_name: str) -> str:
        self._enter(("restore", world, container_name))
        if container_name == "missing.zip":
            raise RestoreError(f"Backup file not found: {container_name}")
        return f"restored {world}"


def _service(engine: RecordingEngine, **kwargs: Any) -> BackupService:
    kwargs.setdefault("interval_seconds", 3600)
    kwargs.setdefault("run_immediately", False)
    return BackupService(engine, **kwargs)  # type: ignore[arg-type]


def test_requested_cycle_resolves_future() -> None:
    engine = RecordingEngine()
    service = _service(engine)
    service.start()
    try:
        assert service.request_cycle().result(timeout=5) == "report-1"
    finally:
        service.stop(timeout=5)

    assert not service.running


def test_scheduled_cycle_runs_on_start_and_reports() -> None:
    engine = RecordingEngine()
    reports: list[str] = []
    reported = threading.Event()

    def on_cycle(report: Any) -> None:
        reports.append(report)
        reported.set()

    service = _service(engine, run_immediately=True, on_cycle=on_cycle)
    service.start()
    try:
        assert reported.wait(timeout=5)
    finally:
        service.stop(timeout=5)

    assert reports == ["report-1"]


def test_requests_never_overlap() -> None:
    engine = RecordingEngine(delay=0.01)
    service = _service(engine)
    service.start()
    futures = []
    submitters = [
        threading.Thread(target=lambda: futures.append(service.request_cycle())) for _ in range(5)
    ]
    try:
        for thread in submitters:
            thread.start()
        for thread in submitters:
            thread.join(timeout=5)
        futures.append(service.request_restore("world1", "backup_1.zip"))
        results = [future.result(timeout=5) for future in futures]
    finally:
        service.stop(timeout=5)

    assert engine.max_active == 1
    assert len(engine.calls) == 6
    assert "restored world1" in results


def test_restore_failure_is_delivered_through_future() -> None:
    engine = RecordingEngine()
    service = _service(engine)
    service.start()
    try:
        future = service.request_restore("world1", "missing.zip")
        with pytest.raises(RestoreError):
            future.result(timeout=5)
    finally:
        service.stop(timeout=5)

    assert engine.calls == [("restore", "world1", "missing.zip")]


def test_stop_fails_pending_jobs() -> None:
    gate = threading.Event()
    engine = RecordingEngine(gate=gate)
    service = _service(engine)
    service.start()

    running = service.request_cycle()
    assert engine.entered.wait(timeout=5)
    pending = service.request_cycle()
    service.stop(timeout=0)
    gate.set()
    service.join(timeout=5)

    assert running.result(timeout=5) == "report-1"
    with pytest.raises(ServiceStoppedError):
        pending.result(timeout=5)
    assert len(engine.calls) == 1


def test_submit_after_stop_is_rejected() -> None:
    service = _service(RecordingEngine())
    service.start()
    service.stop(timeout=5)

    with pytest.raises(ServiceStoppedError):
        service.request_cycle()


def test_invalid_interval_and_double_start() -> None:
    with pytest.raises(ValueError):
        _service(RecordingEngine(), interval_seconds=0)

    service = _service(RecordingEngine())
    service.start()
    try:
        with pytest.raises(RuntimeError):
            service.start()
    finally:
        service.stop(timeout=5)


def test_requests_before_start_are_rejected() -> None:
    engine = RecordingEngine()
    service = _service(engine)

    with pytest.raises(ServiceStoppedError):
        service.request_cycle()
    with pytest.raises(ServiceStoppedError):
        service.request_restore("world1", "backup_1.zip")

    assert engine.calls == []
