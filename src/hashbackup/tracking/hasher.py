"""Content fingerprinting for tracked files."""

from __future__ import annotations

import hashlib
from pathlib import Path

from .errors import FingerprintError

CHUNK_SIZE = 8192


class HashComputer:
    """Compute SHA-1 content fingerprints by streaming files in fixed chunks."""

    def __init__(self, algorithm: str = "sha1", chunk_size: int = CHUNK_SIZE) -> None:
        self.algorithm = algorithm
        self.chunk_size = chunk_size

    def compute(self, path: Path) -> str:
        """Return a lowercase hex digest representing the file contents.

        Args:
            path: File to fingerprint.

        Returns:
            str: Hex digest of the file contents.

        Raises:
            FingerprintError: If the file cannot be opened or a read fails.
        """
        digest = hashlib.new(self.algorithm)
        try:
            with path.open("rb") as handle:
                for chunk in iter(lambda: handle.read(self.chunk_size), b""):
                    digest.update(chunk)
        except OSError as exc:
            raise FingerprintError(f"Failed to calculate hash for {path}: {exc}") from exc
        return digest.hexdigest()
