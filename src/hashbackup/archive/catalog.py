"""Enumeration of archive containers on disk."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from .models import ContainerInfo

CONTAINER_SUFFIX = ".zip"


def list_containers(backup_dir: Path) -> list[ContainerInfo]:
    """Return containers in ``backup_dir`` ordered oldest-modified first.

    Args:
        backup_dir: A world's backup directory; may not exist yet.

    Returns:
        list[ContainerInfo]: Containers sorted by modification time, then name.
    """
    if not backup_dir.is_dir():
        return []

    containers: list[ContainerInfo] = []
    for path in backup_dir.iterdir():
        if not path.name.endswith(CONTAINER_SUFFIX) or not path.is_file():
            continue
        try:
            stat = path.stat()
        except OSError:
            continue
        containers.append(
            ContainerInfo(
                name=path.name,
                path=path,
                size_bytes=stat.st_size,
                modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            )
        )
    containers.sort(key=lambda info: (info.modified_at, info.name))
    return containers
