"""Append changed files to a world's active zip container."""

from __future__ import annotations

import logging
import shutil
import warnings
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from hashbackup.tracking.hasher import CHUNK_SIZE

from .errors import ArchiveWriteError
from .models import AppendResult

LOGGER = logging.getLogger(__name__)


def entry_name(path: Path, base_dir: Path) -> str:
    """Return the forward-slash entry name of ``path`` relative to ``base_dir``."""
    try:
        relative = path.absolute().relative_to(base_dir.absolute())
    except ValueError:
        relative = Path(path.name)
    return relative.as_posix()


@dataclass(slots=True)
class _ContainerSnapshot:
    """Central directory bytes of a container captured before an append."""

    start_dir: int
    tail: bytes


class ArchiveWriter:
    """Stream files into zip containers without rewriting existing entries.

    An append either lands every requested file or leaves the container as it
    was: on failure the original central directory is written back and the
    new bytes are truncated, and a container created by the failed call is
    removed.
    """

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED) -> None:
        self.compression = compression

    def append(
        self,
        backup_dir: Path,
        container_name: str,
        files: Iterable[Path],
        *,
        base_dir: Path,
    ) -> AppendResult:
        """Append one entry per file to ``backup_dir / container_name``.

        Args:
            backup_dir: World backup directory; created when missing.
            container_name: Active container file name.
            files: Files to archive, in entry order.
            base_dir: Directory entry names are made relative to.

        Returns:
            AppendResult: Container path and the entry names written.

        Raises:
            ValueError: If ``files`` is empty.
            ArchiveWriteError: If any file fails to stream or the container
                cannot be opened.
        """
        paths = list(files)
        if not paths:
            raise ValueError("append requires at least one file")

        container = backup_dir / container_name
        try:
            backup_dir.mkdir(parents=True, exist_ok=True)
            snapshot = self._snapshot(container)
        except (OSError, zipfile.BadZipFile) as exc:
            raise ArchiveWriteError(f"Cannot open container {container}: {exc}") from exc

        entries: list[str] = []
        try:
            with warnings.catch_warnings():
                # Re-archiving a path into the same container repeats its entry name.
                warnings.filterwarnings("ignore", message="Duplicate name", category=UserWarning)
                with zipfile.ZipFile(container, mode="a", compression=self.compression) as archive:
                    for path in paths:
                        name = entry_name(path, base_dir)
                        self._write_entry(archive, path, name)
                        entries.append(name)
        except (OSError, ValueError, zipfile.BadZipFile) as exc:
            self._rollback(container, snapshot)
            raise ArchiveWriteError(f"Failed to update backup {container}: {exc}") from exc

        LOGGER.debug("Appended %d entries to %s", len(entries), container)
        return AppendResult(container=container, entries=entries, created=snapshot is None)

    def _write_entry(self, archive: zipfile.ZipFile, path: Path, name: str) -> None:
        info = zipfile.ZipInfo.from_file(path, arcname=name, strict_timestamps=False)
        info.compress_type = self.compression
        with path.open("rb") as source, archive.open(info, mode="w") as target:
            shutil.copyfileobj(source, target, CHUNK_SIZE)

    def _snapshot(self, container: Path) -> _ContainerSnapshot | None:
        if not container.exists():
            return None
        with zipfile.ZipFile(container) as archive:
            start_dir = archive.start_dir
        with container.open("rb") as handle:
            handle.seek(start_dir)
            tail = handle.read()
        return _ContainerSnapshot(start_dir=start_dir, tail=tail)

    def _rollback(self, container: Path, snapshot: _ContainerSnapshot | None) -> None:
        try:
            if snapshot is None:
                container.unlink(missing_ok=True)
                return
            with container.open("r+b") as handle:
                handle.seek(snapshot.start_dir)
                handle.write(snapshot.tail)
                handle.truncate()
        except OSError as exc:
            LOGGER.error("Could not roll back %s after a failed append: %s", container, exc)


__all__ = ["ArchiveWriter", "entry_name"]
