"""Active-archive rotation by age."""

from __future__ import annotations

import logging
from typing import MutableMapping

from hashbackup.state.models import ActiveArchive

from .models import LifecycleDecision

LOGGER = logging.getLogger(__name__)


class ArchiveLifecycle:
    """Decide, per world, which container receives this cycle's appends.

    A world without a record gets a new active archive. A record whose age
    reaches ``max_age_ms`` is replaced wholesale by one stamped with the
    current time; the retired container stays on disk, sealed, and is no
    longer referenced.
    """

    def __init__(self, records: MutableMapping[str, ActiveArchive], *, max_age_ms: int) -> None:
        if max_age_ms <= 0:
            raise ValueError("max_age_ms must be positive")
        self._records = records
        self._max_age_ms = max_age_ms

    @property
    def max_age_ms(self) -> int:
        return self._max_age_ms

    def active(self, world: str) -> ActiveArchive | None:
        """Return the active archive for ``world`` without changing it."""
        return self._records.get(world)

    def ensure_active(self, world: str, now_ms: int) -> LifecycleDecision:
        """Create or rotate the active archive for ``world`` as of ``now_ms``.

        Args:
            world: World name.
            now_ms: Current time in epoch milliseconds.

        Returns:
            LifecycleDecision: The archive that must receive this cycle's writes.
        """
        current = self._records.get(world)
        if current is None:
            fresh = ActiveArchive.started_at(now_ms)
            self._records[world] = fresh
            LOGGER.info("Started backup for %s: %s", world, fresh.file)
            return LifecycleDecision(world=world, active=fresh, action="created")

        if now_ms - current.created >= self._max_age_ms:
            fresh = ActiveArchive.started_at(now_ms)
            self._records[world] = fresh
            LOGGER.info("Archived backup for %s: %s (now writing %s)", world, current.file, fresh.file)
            return LifecycleDecision(world=world, active=fresh, action="rotated", retired=current.file)

        return LifecycleDecision(world=world, active=current, action="kept")
