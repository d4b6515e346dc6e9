"""Cross-process run lock kept in the data directory."""

from __future__ import annotations

import fcntl
import logging
import os
from pathlib import Path

LOCK_FILENAME = "hashbackup.lock"

LOGGER = logging.getLogger(__name__)


class RunLock:
    """Exclusive advisory ``flock`` shared by every process using a data directory.

    The kernel releases the lock when the holding process exits.
    """

    def __init__(self, data_dir: Path, filename: str = LOCK_FILENAME) -> None:
        self._path = data_dir / filename
        self._fd: int | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self, *, blocking: bool = True) -> bool:
        """Take the lock.

        Args:
            blocking: Wait for the current holder instead of returning False.

        Returns:
            bool: True when the lock was taken, False if another holder has it.

        Raises:
            RuntimeError: If this instance already holds the lock.
            OSError: If the lock file cannot be created or locked.
        """
        if self._fd is not None:
            raise RuntimeError(f"{self._path} is already held by this process.")

        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(self._path), os.O_RDWR | os.O_CREAT, 0o644)
        flags = fcntl.LOCK_EX if blocking else fcntl.LOCK_EX | fcntl.LOCK_NB
        try:
            fcntl.flock(fd, flags)
        except BlockingIOError:
            os.close(fd)
            return False
        except OSError:
            os.close(fd)
            raise

        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode("ascii"))
        self._fd = fd
        LOGGER.debug("Acquired run lock %s", self._path)
        return True

    def release(self) -> None:
        """Release the lock if held."""
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        LOGGER.debug("Released run lock %s", self._path)
