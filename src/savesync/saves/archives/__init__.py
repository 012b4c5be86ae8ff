"""Archive capability for save snapshots."""

from .service import ArchiveService, zip_date_time
from .types import ArchiveEntryInfo, PackResult, UnpackResult

__all__ = ["ArchiveEntryInfo", "ArchiveService", "PackResult", "UnpackResult", "zip_date_time"]
