"""Fingerprinting and change detection for tracked world files."""

from .discovery import CandidateScanner
from .errors import FingerprintError, MissingSourceDirectoryError
from .hasher import CHUNK_SIZE, HashComputer
from .tracker import ChangedFile, ChangeSet, ChangeTracker

__all__ = [
    "CHUNK_SIZE",
    "CandidateScanner",
    "ChangeSet",
    "ChangeTracker",
    "ChangedFile",
    "FingerprintError",
    "HashComputer",
    "MissingSourceDirectoryError",
]
