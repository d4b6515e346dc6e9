"""Retention limit enforcement for world backup directories."""

from __future__ import annotations

import logging
from pathlib import Path

from .catalog import list_containers
from .models import PruneResult

LOGGER = logging.getLogger(__name__)


class RetentionManager:
    """Delete the least recently modified containers beyond a count limit."""

    def prune(self, backup_dir: Path, max_count: int) -> PruneResult:
        """Keep the ``max_count`` most recently modified containers.

        Ordering uses modification time rather than the timestamp in the
        file name, because appends keep advancing the active container's
        modification time.

        Args:
            backup_dir: World backup directory.
            max_count: Number of containers to retain; at least one.

        Returns:
            PruneResult: Kept and deleted names, plus listing or delete failures.
        """
        if max_count < 1:
            raise ValueError("max_count must be at least 1")

        try:
            containers = list(reversed(list_containers(backup_dir)))
        except OSError as exc:
            LOGGER.warning("Failed to list backups in %s: %s", backup_dir, exc)
            return PruneResult(errors=[f"{backup_dir.name}: {exc}"])

        result = PruneResult(kept=[info.name for info in containers[:max_count]])
        for info in containers[max_count:]:
            try:
                info.path.unlink()
            except OSError as exc:
                LOGGER.warning("Failed to delete old backup %s: %s", info.path, exc)
                result.errors.append(f"{info.name}: {exc}")
                continue
            LOGGER.info("Deleted old backup for %s: %s", backup_dir.name, info.name)
            result.deleted.append(info.name)
        return result
