"""Operator commands returning human-readable status text."""

from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Any, Callable, Optional, Sequence

from hashbackup.archive import RestoreResult
from hashbackup.engine import BackupEngine, CycleInProgressError, CycleReport
from hashbackup.service import BackupService, ServiceStoppedError

LOGGER = logging.getLogger(__name__)

USAGE = "Usage: save | list [world] | restore <world> <filename>"


def describe_cycle(report: CycleReport) -> str:
    """Return a one-line summary of a completed cycle."""
    worlds = len(report.worlds)
    failures = report.failures
    summary = f"{report.archived_files} file(s) archived across {worlds} world(s)"
    if failures:
        return f"Backup saved with {len(failures)} problem(s): {summary}; first: {failures[0]}"
    return f"Backup saved! {summary}."


def describe_restore(world: str, container_name: str, result: RestoreResult) -> str:
    return (
        f"Restored {world} from {container_name} ({len(result.files)} file(s)). "
        "Please restart the server to apply changes."
    )


class OperatorCommands:
    """Implement ``save``, ``list``, and ``restore`` on top of an engine.

    With a running service, ``save`` and ``restore`` are queued on its worker.
    When ``notify`` is given they return immediately and the outcome is sent
    to ``notify`` on completion; otherwise the call waits for the outcome.
    """

    def __init__(
        self,
        engine: BackupEngine,
        *,
        service: Optional[BackupService] = None,
        notify: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._engine = engine
        self._service = service
        self._notify = notify

    def dispatch(self, args: Sequence[str]) -> str:
        """Run the command named by ``args[0]`` and return its status text."""
        if not args:
            return USAGE
        command = args[0].lower()
        if command == "save" and len(args) == 1:
            return self.save()
        if command == "list" and len(args) <= 2:
            return self.list(args[1] if len(args) == 2 else None)
        if command == "restore" and len(args) == 3:
            return self.restore(args[1], args[2])
        return USAGE

    def save(self) -> str:
        """Trigger an immediate backup cycle."""
        if self._service is None:
            try:
                return describe_cycle(self._engine.run_cycle())
            except (CycleInProgressError, OSError) as exc:
                return f"Backup failed: {exc}"

        try:
            future = self._service.request_cycle()
        except ServiceStoppedError as exc:
            return f"Backup failed: {exc}"
        return self._settle(future, describe_cycle, "Backup failed", "Backup requested.")

    def list(self, world: str | None = None) -> str:
        """List containers for ``world``, or the worlds that have backups."""
        if world is None:
            worlds = self._engine.collections_with_backups()
            if not worlds:
                return "No worlds have backups yet."
            return "\n".join(["Available worlds with backups:", *(f"- {name}" for name in worlds)])

        containers = self._engine.list_containers(world)
        if not containers:
            return f"No backups found for world: {world}"
        active = self._engine.active_container(world)
        lines = [f"Backups for {world}:"]
        for info in containers:
            marker = " (active)" if info.name == active else ""
            lines.append(f"- {info.name}{marker}")
        return "\n".join(lines)

    def restore(self, world: str, container_name: str) -> str:
        """Restore ``world`` from one of its containers."""
        if container_name not in {info.name for info in self._engine.list_containers(world)}:
            return f"Backup file not found: {container_name}"

        def _describe(result: RestoreResult) -> str:
            return describe_restore(world, container_name, result)

        if self._service is None:
            try:
                return _describe(self._engine.restore(world, container_name))
            except (CycleInProgressError, OSError) as exc:
                return f"Failed to restore: {exc}"

        try:
            future = self._service.request_restore(world, container_name)
        except ServiceStoppedError as exc:
            return f"Failed to restore: {exc}"
        return self._settle(future, _describe, "Failed to restore", "Restore requested.")

    def _settle(
        self,
        future: Future,
        describe: Callable[[Any], str],
        failure_prefix: str,
        pending_message: str,
    ) -> str:
        def _outcome(done: Future) -> str:
            exc = done.exception()
            if exc is not None:
                LOGGER.warning("%s: %s", failure_prefix, exc)
                return f"{failure_prefix}: {exc}"
            return describe(done.result())

        if self._notify is None:
            return _outcome(future)

        notify = self._notify
        future.add_done_callback(lambda done: notify(_outcome(done)))
        return pending_message


__all__ = ["OperatorCommands", "USAGE", "describe_cycle", "describe_restore"]
