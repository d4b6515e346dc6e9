"""Result models returned by archive operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Literal

from hashbackup.state.models import ActiveArchive


@dataclass(slots=True)
class ContainerInfo:
    """An archive container present in a world's backup directory.

    Attributes:
        name: Container file name.
        path: Absolute container path.
        size_bytes: Size on disk.
        modified_at: Last modification time (UTC).
    """

    name: str
    path: Path
    size_bytes: int
    modified_at: datetime


@dataclass(slots=True)
class AppendResult:
    """Outcome of appending changed files to a container.

    Attributes:
        container: Container the entries were appended to.
        entries: Entry names written, in order.
        created: Whether the container was created by this append.
    """

    container: Path
    entries: list[str]
    created: bool


@dataclass(slots=True)
class LifecycleDecision:
    """Lifecycle outcome for one world within a cycle.

    Attributes:
        world: World name.
        active: Active archive after the decision.
        action: Whether the record was created, rotated, or kept.
        retired: Container sealed by a rotation, if any.
    """

    world: str
    active: ActiveArchive
    action: Literal["created", "rotated", "kept"]
    retired: str | None = None


@dataclass(slots=True)
class PruneResult:
    """Outcome of enforcing the retention limit on a backup directory.

    Attributes:
        kept: Containers retained, most recently modified first.
        deleted: Containers removed.
        errors: Messages for containers that could not be removed.
    """

    kept: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass(slots=True)
class RestoreResult:
    """Outcome of extracting a container.

    Attributes:
        container: Container that was extracted.
        destination: Root directory the entries were written under.
        entries_written: Number of entries written, duplicates included.
        files: Distinct relative paths restored.
    """

    container: Path
    destination: Path
    entries_written: int
    files: list[str]
