"""Persisted metadata models for tracked files and active archives."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ActiveArchive(BaseModel):
    """The container currently receiving appends for one world.

    Attributes:
        file: Container file name, derived from the creation timestamp.
        created: Creation time in epoch milliseconds.
    """

    model_config = ConfigDict(frozen=True)

    file: str
    created: int

    @classmethod
    def started_at(cls, now_ms: int) -> "ActiveArchive":
        """Return a fresh record named after ``now_ms``."""
        return cls(file=f"backup_{now_ms}.zip", created=now_ms)


class BackupMetadata(BaseModel):
    """Aggregate of every recorded fingerprint and active-archive record.

    Attributes:
        hashes: Mapping of absolute file path to its last archived fingerprint.
        backups: Mapping of world name to its active archive.
        updated_at: Time of the last successful save.
    """

    hashes: Dict[str, str] = Field(default_factory=dict)
    backups: Dict[str, ActiveArchive] = Field(default_factory=dict)
    updated_at: Optional[datetime] = None

    def touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)


__all__ = ["ActiveArchive", "BackupMetadata"]
