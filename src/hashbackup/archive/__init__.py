"""Archive container writing, rotation, retention, and restore."""

from .catalog import CONTAINER_SUFFIX, list_containers
from .errors import ArchiveError, ArchiveWriteError, RestoreError
from .lifecycle import ArchiveLifecycle
from .models import AppendResult, ContainerInfo, LifecycleDecision, PruneResult, RestoreResult
from .restore import RestoreEngine
from .retention import RetentionManager
from .writer import ArchiveWriter, entry_name

__all__ = [
    "CONTAINER_SUFFIX",
    "AppendResult",
    "ArchiveError",
    "ArchiveLifecycle",
    "ArchiveWriteError",
    "ArchiveWriter",
    "ContainerInfo",
    "LifecycleDecision",
    "PruneResult",
    "RestoreEngine",
    "RestoreError",
    "RestoreResult",
    "RetentionManager",
    "entry_name",
    "list_containers",
]
