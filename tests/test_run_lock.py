"""Data-directory run lock tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from hashbackup.state import LOCK_FILENAME, RunLock


def test_second_holder_is_refused_until_release(tmp_path: Path) -> None:
    first = RunLock(tmp_path / "data")
    second = RunLock(tmp_path / "data")

    assert first.acquire(blocking=False)
    try:
        assert first.held
        assert first.path == tmp_path / "data" / LOCK_FILENAME
        assert first.path.read_text(encoding="ascii").strip() == str(os.getpid())
        assert second.acquire(blocking=False) is False
        assert not second.held
    finally:
        first.release()

    assert not first.held
    assert second.acquire(blocking=False)
    second.release()


def test_reacquiring_a_held_lock_is_an_error(tmp_path: Path) -> None:
    lock = RunLock(tmp_path)
    lock.acquire()
    try:
        with pytest.raises(RuntimeError):
            lock.acquire()
    finally:
        lock.release()

    lock.release()
