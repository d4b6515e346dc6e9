"""Change detection against the last archived fingerprints."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, MutableMapping

from .errors import FingerprintError
from .hasher import HashComputer

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ChangedFile:
    """A tracked file whose content differs from its recorded fingerprint.

    Attributes:
        path: Absolute path of the file.
        fingerprint: Fingerprint computed during this cycle.
        previous: Recorded fingerprint, or ``None`` on first observation.
    """

    path: Path
    fingerprint: str
    previous: str | None = None


@dataclass(slots=True)
class ChangeSet:
    """Outcome of comparing a world's candidates with recorded fingerprints.

    Attributes:
        changed: Files whose content changed or was never recorded.
        unchanged: Number of candidates matching their recorded fingerprint.
        errors: Messages for candidates that could not be fingerprinted.
    """

    changed: list[ChangedFile] = field(default_factory=list)
    unchanged: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def paths(self) -> list[Path]:
        return [item.path for item in self.changed]


class ChangeTracker:
    """Compare candidate files with a path-to-fingerprint mapping.

    ``detect`` never mutates the mapping; ``commit`` records the new
    fingerprints once the changed files have been archived.
    """

    def __init__(
        self,
        fingerprints: MutableMapping[str, str],
        hasher: HashComputer | None = None,
    ) -> None:
        self._fingerprints = fingerprints
        self._hasher = hasher or HashComputer()

    def detect(self, candidates: Iterable[Path]) -> ChangeSet:
        """Return the candidates whose fingerprint differs from the recorded one.

        Args:
            candidates: Absolute paths of the files to evaluate.

        Returns:
            ChangeSet: Changed files plus per-file failures.
        """
        result = ChangeSet()
        for path in candidates:
            key = str(path)
            try:
                current = self._hasher.compute(path)
            except FingerprintError as exc:
                LOGGER.warning("Failed to check file %s: %s", key, exc)
                result.errors.append(f"{key}: {exc}")
                continue

            previous = self._fingerprints.get(key)
            if previous == current:
                result.unchanged += 1
            else:
                result.changed.append(ChangedFile(path=path, fingerprint=current, previous=previous))
        return result

    def commit(self, change_set: ChangeSet) -> None:
        """Record the fingerprints of every file reported in ``change_set``."""
        for item in change_set.changed:
            self._fingerprints[str(item.path)] = item.fingerprint

    def recorded(self, path: Path) -> str | None:
        """Return the recorded fingerprint for ``path``, if any."""
        return self._fingerprints.get(str(path))
