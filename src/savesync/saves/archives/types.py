"""Archive types for save snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ArchiveEntryInfo:
    name: str
    size: int
    date_time: tuple[int, int, int, int, int, int]


@dataclass(frozen=True)
class PackResult:
    save_name: str
    dst_archive_path: str
    files_packed: int
    total_bytes: int
    archive_bytes: int
    entries: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class UnpackResult:
    dst_dir: str
    files_unpacked: int
    total_bytes: int
    stripped_root: str | None
    entries: list[str] = field(default_factory=list)
