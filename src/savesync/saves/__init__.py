"""Save registry and deterministic archival."""

from .archives import ArchiveEntryInfo, ArchiveService, PackResult, UnpackResult
from .paths import is_directory_like, location_size, normalize_path
from .registry import SaveRegistry
from .scratch import ScratchFile, ScratchFolder
from .service import SaveSyncService
from .store import RegistryStore
from .types import MAX_NAME_LENGTH, SaveCheck, SaveEntry

__all__ = [
    "MAX_NAME_LENGTH",
    "ArchiveEntryInfo",
    "ArchiveService",
    "PackResult",
    "RegistryStore",
    "SaveCheck",
    "SaveEntry",
    "SaveRegistry",
    "SaveSyncService",
    "ScratchFile",
    "ScratchFolder",
    "UnpackResult",
    "is_directory_like",
    "location_size",
    "normalize_path",
]
