"""Archive container errors."""


class ArchiveError(OSError):
    """Base exception for archive container operations."""


class ArchiveWriteError(ArchiveError):
    """Raised when changed files cannot be appended to a container."""


class RestoreError(ArchiveError):
    """Raised when a container cannot be extracted."""
