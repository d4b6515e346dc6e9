"""Configuration models describing hashbackup settings."""

from __future__ import annotations

from pathlib import Path
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

MILLIS_PER_DAY = 24 * 60 * 60 * 1000


class HashBackupBaseModel(BaseModel):
    """Shared configuration for hashbackup settings models."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class BackupSettings(HashBackupBaseModel):
    """Options controlling which worlds are archived and how often.

    Attributes:
        worlds: Names of the world folders to track.
        worlds_root: Directory containing the world folders.
        data_dir: Directory owning archives, metadata, and logs.
        tracked_subdir: Sub-directory of each world that holds tracked files.
        extension: File-name suffix selecting tracked files.
        interval_minutes: Minutes between scheduled backup cycles.
        archive_days: Age in days after which the active archive is sealed.
        max_backups: Maximum number of archives retained per world.
    """

    worlds: List[str] = Field(default_factory=list)
    worlds_root: str = "."
    data_dir: str = "~/.hashbackup"
    tracked_subdir: str = "region"
    extension: str = ".mca"
    interval_minutes: int = Field(default=10, ge=1)
    archive_days: float = Field(default=7, gt=0)
    max_backups: int = Field(default=50, ge=1)

    @field_validator("worlds")
    @classmethod
    def _reject_nested_names(cls, value: List[str]) -> List[str]:
        for name in value:
            if not name or "/" in name or "\\" in name or name in {".", ".."}:
                raise ValueError(f"Invalid world name: {name!r}")
        return value

    @property
    def archive_age_ms(self) -> int:
        """Return the archive rotation threshold in milliseconds."""
        return int(self.archive_days * MILLIS_PER_DAY)

    @property
    def interval_seconds(self) -> float:
        """Return the delay between scheduled cycles in seconds."""
        return float(self.interval_minutes * 60)

    def resolved_worlds_root(self) -> Path:
        """Return the absolute directory that contains the world folders."""
        return Path(self.worlds_root).expanduser().resolve()

    def resolved_data_dir(self) -> Path:
        """Return the absolute directory owned by hashbackup."""
        return Path(self.data_dir).expanduser().resolve()


class LoggingSettings(HashBackupBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "INFO"
    max_size_mb: int = 10
    backup_count: int = 5


class CLIOptions(HashBackupBaseModel):
    """CLI behavior defaults.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
    """

    quiet_default: bool = False


class HashBackupConfig(HashBackupBaseModel):
    """Top-level configuration struct for hashbackup.

    Attributes:
        backup: Archive tracking and retention settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    backup: BackupSettings = Field(default_factory=BackupSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "HashBackupBaseModel",
    "BackupSettings",
    "LoggingSettings",
    "CLIOptions",
    "HashBackupConfig",
    "MILLIS_PER_DAY",
]
