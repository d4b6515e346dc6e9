"""Durable metadata store for fingerprints and active archives."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from .errors import MetadataPersistError, StateError
from .lock import LOCK_FILENAME, RunLock
from .models import ActiveArchive, BackupMetadata

METADATA_FILENAME = "file_metadata.json"

LOGGER = logging.getLogger(__name__)


class MetadataRepository:
    """Load and persist the metadata document kept in the data directory."""

    def __init__(self, data_dir: Path, filename: str = METADATA_FILENAME) -> None:
        """Initialize the repository.

        Args:
            data_dir: Directory owned by hashbackup.
            filename: Name of the metadata document inside ``data_dir``.
        """
        self._path = data_dir / filename

    @property
    def path(self) -> Path:
        """Return the location of the metadata document."""
        return self._path

    def signature(self) -> tuple[int, int, int] | None:
        """Return an identity for the stored document, or None when absent.

        Every save replaces the file, so a changed signature means the
        document was rewritten since it was last observed.
        """
        try:
            stat = self._path.stat()
        except OSError:
            return None
        return (stat.st_ino, stat.st_mtime_ns, stat.st_size)

    def load(self) -> BackupMetadata:
        """Load the metadata document.

        Returns:
            BackupMetadata: Stored metadata, or an empty document when none exists.

        Raises:
            StateError: If the stored document cannot be read or parsed.
        """
        if not self._path.exists():
            LOGGER.debug("No metadata at %s; starting empty.", self._path)
            return BackupMetadata()

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise StateError(f"Unable to read metadata at {self._path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise StateError(f"Invalid metadata data: {exc}") from exc

        try:
            return BackupMetadata.model_validate(data)
        except ValidationError as exc:
            raise StateError(f"Invalid metadata data: {exc}") from exc

    def save(self, metadata: BackupMetadata) -> None:
        """Replace the stored document with ``metadata``.

        The document is written to a sibling temporary file and moved into
        place, so readers never observe a partially written file.

        Args:
            metadata: Complete metadata to persist.

        Raises:
            MetadataPersistError: If the document cannot be written.
        """
        metadata.touch()
        payload = metadata.model_dump(mode="json")
        temp_path = self._path.with_name(f"{self._path.name}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            os.replace(temp_path, self._path)
        except OSError as exc:
            raise MetadataPersistError(f"Failed to save metadata to {self._path}: {exc}") from exc


__all__ = [
    "MetadataRepository",
    "METADATA_FILENAME",
    "LOCK_FILENAME",
    "RunLock",
    "ActiveArchive",
    "BackupMetadata",
    "StateError",
    "MetadataPersistError",
]
