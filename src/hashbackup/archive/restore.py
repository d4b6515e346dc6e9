"""Extraction of archive containers back into the worlds directory."""

from __future__ import annotations

import logging
import shutil
import zipfile
from pathlib import Path

from hashbackup.tracking.hasher import CHUNK_SIZE

from .errors import RestoreError
from .models import RestoreResult

LOGGER = logging.getLogger(__name__)


class RestoreEngine:
    """Write every entry of a container under a destination root.

    Entries are extracted in archive order and existing files are
    overwritten, so when a path was archived several times into the same
    container the last entry wins. An interrupted restore is not rolled
    back.
    """

    def restore(self, container: Path, destination_root: Path) -> RestoreResult:
        """Extract ``container`` into ``destination_root``.

        Args:
            container: Zip container to read.
            destination_root: Directory entry names are resolved against.

        Returns:
            RestoreResult: Count of entries written and the distinct paths.

        Raises:
            RestoreError: If the container is missing or unreadable, holds an
                entry outside ``destination_root``, or a write fails.
        """
        if not container.is_file():
            raise RestoreError(f"Backup file not found: {container.name}")

        root = destination_root.resolve()
        written = 0
        restored: dict[str, None] = {}
        try:
            with zipfile.ZipFile(container) as archive:
                members = archive.infolist()
                targets = [self._target(root, info.filename) for info in members]
                for info, target in zip(members, targets):
                    if info.is_dir():
                        target.mkdir(parents=True, exist_ok=True)
                        continue
                    target.parent.mkdir(parents=True, exist_ok=True)
                    with archive.open(info) as source, target.open("wb") as sink:
                        shutil.copyfileobj(source, sink, CHUNK_SIZE)
                    written += 1
                    restored[info.filename] = None
        except zipfile.BadZipFile as exc:
            raise RestoreError(f"Failed to restore {container.name}: {exc}") from exc
        except OSError as exc:
            if isinstance(exc, RestoreError):
                raise
            raise RestoreError(
                f"Failed to restore {container.name} after {written} entries: {exc}"
            ) from exc

        LOGGER.info("Restored %d entries from %s into %s", written, container, root)
        return RestoreResult(
            container=container,
            destination=root,
            entries_written=written,
            files=list(restored),
        )

    def _target(self, root: Path, name: str) -> Path:
        target = (root / name).resolve()
        if target != root and root not in target.parents:
            raise RestoreError(f"Refusing to extract {name!r} outside {root}")
        return target
