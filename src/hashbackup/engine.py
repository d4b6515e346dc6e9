"""Backup cycle orchestration across all tracked worlds."""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator, Literal, Optional

from hashbackup.archive import (
    ArchiveLifecycle,
    ArchiveWriteError,
    ArchiveWriter,
    ContainerInfo,
    PruneResult,
    RestoreEngine,
    RestoreError,
    RestoreResult,
    RetentionManager,
    list_containers,
)
from hashbackup.config import HashBackupConfig
from hashbackup.state import (
    BackupMetadata,
    MetadataPersistError,
    MetadataRepository,
    RunLock,
    StateError,
)
from hashbackup.tracking import CandidateScanner, ChangeTracker, HashComputer

LOGGER = logging.getLogger(__name__)

FlushHook = Callable[[str], None]
Clock = Callable[[], int]


def wall_clock_ms() -> int:
    """Return the current time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


class CycleInProgressError(RuntimeError):
    """Raised when a non-blocking request finds another cycle or restore running."""


@dataclass(slots=True)
class WorldReport:
    """What one cycle did for one world.

    Attributes:
        world: World name.
        status: ``archived``, ``unchanged``, ``skipped`` (no source), or ``failed``.
        container: Active container name targeted this cycle.
        lifecycle: Lifecycle action taken before writing.
        retired: Container sealed by rotation during this cycle.
        entries: Entry names appended.
        unchanged: Number of files matching their recorded fingerprint.
        errors: Per-file or per-world failure messages.
    """

    world: str
    status: Literal["archived", "unchanged", "skipped", "failed"] = "unchanged"
    container: Optional[str] = None
    lifecycle: Optional[str] = None
    retired: Optional[str] = None
    entries: list[str] = field(default_factory=list)
    unchanged: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass(slots=True)
class CycleReport:
    """Summary of a complete backup cycle.

    Attributes:
        started_at: Time the cycle acquired the run guard.
        finished_at: Time pruning finished.
        worlds: Per-world outcomes in configuration order.
        metadata_saved: Whether the metadata document was persisted.
        metadata_error: Persist failure message, if any.
        pruned: Retention outcome per world.
    """

    started_at: datetime
    finished_at: Optional[datetime] = None
    worlds: list[WorldReport] = field(default_factory=list)
    metadata_saved: bool = False
    metadata_error: Optional[str] = None
    pruned: dict[str, PruneResult] = field(default_factory=dict)

    @property
    def archived_files(self) -> int:
        return sum(len(world.entries) for world in self.worlds)

    @property
    def failures(self) -> list[str]:
        messages = [f"{world.world}: {error}" for world in self.worlds for error in world.errors]
        if self.metadata_error:
            messages.append(f"metadata: {self.metadata_error}")
        for world, result in self.pruned.items():
            messages.extend(f"{world}: {error}" for error in result.errors)
        return messages

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-ready representation of the report."""
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "archived_files": self.archived_files,
            "metadata_saved": self.metadata_saved,
            "metadata_error": self.metadata_error,
            "worlds": [
                {
                    "world": world.world,
                    "status": world.status,
                    "container": world.container,
                    "lifecycle": world.lifecycle,
                    "retired": world.retired,
                    "entries": list(world.entries),
                    "unchanged": world.unchanged,
                    "errors": list(world.errors),
                }
                for world in self.worlds
            ],
            "pruned": {
                world: {"kept": result.kept, "deleted": result.deleted, "errors": result.errors}
                for world, result in self.pruned.items()
            },
        }


class BackupEngine:
    """Own the fingerprint map and active-archive records and run cycles.

    Cycles and restores share one run guard: a thread lock within the process
    plus a file lock in the data directory across processes. At most one of
    them touches the worlds, the containers, or the metadata at a time. On
    taking the guard the engine reloads the metadata document if another
    process rewrote it.
    """

    def __init__(
        self,
        config: HashBackupConfig,
        *,
        repository: MetadataRepository | None = None,
        flush: FlushHook | None = None,
        clock: Clock | None = None,
        hasher: HashComputer | None = None,
        writer: ArchiveWriter | None = None,
        retention: RetentionManager | None = None,
        restorer: RestoreEngine | None = None,
    ) -> None:
        """Initialize the engine and load persisted metadata.

        Args:
            config: Loaded hashbackup configuration.
            repository: Metadata store; defaults to one inside the data directory.
            flush: Hook invoked with each world name before it is fingerprinted.
            clock: Source of the current time in epoch milliseconds.
            hasher: Fingerprint implementation.
            writer: Container writer.
            retention: Retention policy implementation.
            restorer: Container extraction implementation.

        Raises:
            StateError: If stored metadata cannot be parsed.
        """
        settings = config.backup
        self._settings = settings
        self._worlds_root = settings.resolved_worlds_root()
        self._data_dir = settings.resolved_data_dir()
        self._backup_root = self._data_dir / "backups"
        self._repository = repository or MetadataRepository(self._data_dir)
        self._flush = flush
        self._clock = clock or wall_clock_ms
        self._hasher = hasher
        self._scanner = CandidateScanner(extension=settings.extension)
        self._observed = self._repository.signature()
        self._adopt(self._repository.load())
        self._writer = writer or ArchiveWriter()
        self._retention = retention or RetentionManager()
        self._restorer = restorer or RestoreEngine()
        self._run_guard = threading.Lock()
        self._process_lock = RunLock(self._data_dir)

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    @property
    def worlds(self) -> list[str]:
        return list(self._settings.worlds)

    @property
    def worlds_root(self) -> Path:
        return self._worlds_root

    @property
    def backup_root(self) -> Path:
        return self._backup_root

    @property
    def metadata(self) -> BackupMetadata:
        """Return the live metadata document owned by this engine."""
        return self._metadata

    def source_dir(self, world: str) -> Path:
        """Return the directory whose tracked files are archived for ``world``."""
        return self._worlds_root / world / self._settings.tracked_subdir

    def backup_dir(self, world: str) -> Path:
        """Return the directory holding ``world``'s containers."""
        return self._backup_root / world

    def run_cycle(self, *, blocking: bool = True) -> CycleReport:
        """Run one full cycle over every configured world.

        Args:
            blocking: Wait for an in-flight cycle or restore instead of failing.

        Returns:
            CycleReport: Per-world outcomes, persistence status, and pruning.

        Raises:
            CycleInProgressError: If ``blocking`` is False and the guard is held.
            OSError: If the data-directory lock cannot be taken.
        """
        with self._guarded(blocking):
            return self._run_cycle()

    def restore(self, world: str, container_name: str, *, blocking: bool = True) -> RestoreResult:
        """Extract one of ``world``'s containers back into the worlds directory.

        Args:
            world: World whose backup directory holds the container.
            container_name: Container file name, as shown by ``list_containers``.
            blocking: Wait for an in-flight cycle instead of failing.

        Returns:
            RestoreResult: Entries written and the restored paths.

        Raises:
            RestoreError: If the container does not exist or extraction fails.
            CycleInProgressError: If ``blocking`` is False and the guard is held.
            OSError: If the data-directory lock cannot be taken.
        """
        if Path(container_name).name != container_name or Path(world).name != world:
            raise RestoreError(f"Backup file not found: {container_name}")
        container = self.backup_dir(world) / container_name
        if not container.is_file():
            raise RestoreError(f"Backup file not found: {container_name}")

        with self._guarded(blocking):
            LOGGER.info("Restoring %s from %s", world, container_name)
            return self._restorer.restore(container, self._worlds_root)

    def list_containers(self, world: str) -> list[ContainerInfo]:
        """Return ``world``'s containers ordered oldest-modified first."""
        return list_containers(self.backup_dir(world))

    def active_container(self, world: str) -> str | None:
        """Return the name of ``world``'s active container, if one was started."""
        record = self._lifecycle.active(world)
        return record.file if record else None

    def collections_with_backups(self) -> list[str]:
        """Return configured worlds that already own a backup directory."""
        return [world for world in self._settings.worlds if self.backup_dir(world).is_dir()]

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    @contextmanager
    def _guarded(self, blocking: bool) -> Iterator[None]:
        if not self._run_guard.acquire(blocking=blocking):
            raise CycleInProgressError("A backup cycle or restore is already running.")
        try:
            if not self._process_lock.acquire(blocking=blocking):
                raise CycleInProgressError(
                    f"Another hashbackup process holds {self._process_lock.path}."
                )
            try:
                self._refresh_metadata()
                yield
            finally:
                self._process_lock.release()
        finally:
            self._run_guard.release()

    def _adopt(self, metadata: BackupMetadata) -> None:
        self._metadata = metadata
        self._tracker = ChangeTracker(metadata.hashes, self._hasher)
        self._lifecycle = ArchiveLifecycle(metadata.backups, max_age_ms=self._settings.archive_age_ms)

    def _refresh_metadata(self) -> None:
        """Reload the metadata document when another process has rewritten it.

        An unchanged document leaves the in-memory state in charge, including
        changes whose save failed earlier.
        """
        current = self._repository.signature()
        if current is None or current == self._observed:
            return
        try:
            metadata = self._repository.load()
        except StateError as exc:
            LOGGER.warning("Keeping in-memory metadata; reload failed: %s", exc)
            return
        LOGGER.info("Metadata at %s changed on disk; reloaded.", self._repository.path)
        self._observed = current
        self._adopt(metadata)

    def _run_cycle(self) -> CycleReport:
        report = CycleReport(started_at=datetime.now(timezone.utc))
        for world in self._settings.worlds:
            report.worlds.append(self._process_world(world))

        try:
            self._repository.save(self._metadata)
            report.metadata_saved = True
            self._observed = self._repository.signature()
        except MetadataPersistError as exc:
            LOGGER.warning("Failed to save metadata: %s", exc)
            report.metadata_error = str(exc)

        for world in self._settings.worlds:
            report.pruned[world] = self._retention.prune(
                self.backup_dir(world), self._settings.max_backups
            )

        report.finished_at = datetime.now(timezone.utc)
        LOGGER.info(
            "Backup cycle finished: %d file(s) archived across %d world(s).",
            report.archived_files,
            len(report.worlds),
        )
        return report

    def _process_world(self, world: str) -> WorldReport:
        report = WorldReport(world=world)
        if self._flush is not None:
            try:
                self._flush(world)
            except Exception as exc:
                LOGGER.warning("Flush hook failed for %s: %s", world, exc)
                report.errors.append(f"flush failed: {exc}")

        source_dir = self.source_dir(world)
        try:
            candidates = list(self._scanner.scan(source_dir))
        except OSError as exc:
            LOGGER.warning("Region directory not found for world %s: %s", world, exc)
            report.status = "skipped"
            report.errors.append(str(exc))
            return report

        decision = self._lifecycle.ensure_active(world, self._clock())
        report.container = decision.active.file
        report.lifecycle = decision.action
        report.retired = decision.retired

        changes = self._tracker.detect(candidates)
        report.unchanged = changes.unchanged
        report.errors.extend(changes.errors)
        if not changes.changed:
            return report

        try:
            result = self._writer.append(
                self.backup_dir(world),
                decision.active.file,
                changes.paths,
                base_dir=self._worlds_root,
            )
        except ArchiveWriteError as exc:
            LOGGER.warning("Failed to update backup for %s: %s", world, exc)
            report.status = "failed"
            report.errors.append(str(exc))
            return report

        self._tracker.commit(changes)
        report.status = "archived"
        report.entries = result.entries
        LOGGER.info(
            "Updated backup for %s: %s (%d file(s))", world, decision.active.file, len(result.entries)
        )
        return report


__all__ = [
    "BackupEngine",
    "Clock",
    "CycleInProgressError",
    "CycleReport",
    "FlushHook",
    "WorldReport",
    "wall_clock_ms",
]
