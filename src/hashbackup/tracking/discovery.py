"""Discovery of the tracked files belonging to a world."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

from .errors import MissingSourceDirectoryError


class CandidateScanner:
    """List files directly inside a source directory that carry the tracked suffix."""

    def __init__(self, *, extension: str) -> None:
        self.extension = extension

    def scan(self, source_dir: Path) -> Iterator[Path]:
        """Yield tracked files in ``source_dir`` in name order.

        Raises:
            MissingSourceDirectoryError: If ``source_dir`` is not a directory.
        """
        if not source_dir.is_dir():
            raise MissingSourceDirectoryError(f"Source directory not found: {source_dir}")

        for path in sorted(source_dir.iterdir()):
            if path.name.endswith(self.extension) and path.is_file():
                yield path.absolute()
