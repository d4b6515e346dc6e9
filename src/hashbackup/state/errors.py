"""Metadata store errors."""


class StateError(Exception):
    """Base exception for metadata repository operations."""


class MetadataPersistError(StateError):
    """Raised when the metadata document cannot be written to disk."""
