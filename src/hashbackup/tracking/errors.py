"""Errors raised while discovering and fingerprinting tracked files."""


class FingerprintError(OSError):
    """Raised when a file cannot be opened or read for fingerprinting."""


class MissingSourceDirectoryError(FileNotFoundError):
    """Raised when a configured world has no tracked source directory."""
