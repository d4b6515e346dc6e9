"""Background scheduling for backup cycles."""

from .worker import BackupService, ServiceStoppedError

__all__ = ["BackupService", "ServiceStoppedError"]
