"""Deterministic zip snapshots of save locations.

Packing is reproducible: as long as a location's files, their relative paths
and their creation times are unchanged, `archive` returns identical bytes.

- entries are written in lexical order of their POSIX relative path
- each entry's timestamp is the source file's creation time (UTC)
- host system, permissions and compression settings are fixed

zipfile needs a seekable target to avoid data descriptors, so archives are
built in a scratch file and read back.
"""

from __future__ import annotations

import errno
import os
import shutil
import stat
import time
import zipfile
import zlib
from pathlib import Path, PurePosixPath

from savesync.core.config import ArchiveSettings, ConfigResolver
from savesync.core.errors import ArchiveCorrupt, IoFailure
from savesync.core.logging import get_logger

from ..paths import PathLike, creation_time, list_files
from ..scratch import ScratchFile
from ..types import SaveEntry
from .types import ArchiveEntryInfo, PackResult, UnpackResult

log = get_logger(__name__)

ZipDateTime = tuple[int, int, int, int, int, int]

_ZIP_MIN_DATE_TIME: ZipDateTime = (1980, 1, 1, 0, 0, 0)
_ZIP_MAX_DATE_TIME: ZipDateTime = (2107, 12, 31, 23, 59, 58)
_CREATE_SYSTEM_UNIX = 3
_FILE_ATTR = (stat.S_IFREG | 0o644) << 16

_CORRUPT_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError)


def zip_date_time(timestamp: float) -> ZipDateTime:
    """Convert a POSIX timestamp to a zip date_time tuple in UTC, clamped."""
    try:
        tm = time.gmtime(timestamp)
    except (OverflowError, OSError, ValueError):
        return _ZIP_MIN_DATE_TIME if timestamp < 0 else _ZIP_MAX_DATE_TIME
    dt: ZipDateTime = (tm.tm_year, tm.tm_mon, tm.tm_mday, tm.tm_hour, tm.tm_min, tm.tm_sec)
    if dt < _ZIP_MIN_DATE_TIME:
        return _ZIP_MIN_DATE_TIME
    if dt > _ZIP_MAX_DATE_TIME:
        return _ZIP_MAX_DATE_TIME
    return dt


def _zipinfo_deterministic(
    name: str, date_time: ZipDateTime, settings: ArchiveSettings
) -> zipfile.ZipInfo:
    zi = zipfile.ZipInfo(filename=name, date_time=date_time)
    zi.compress_type = settings.compression
    zi.create_system = _CREATE_SYSTEM_UNIX
    zi.external_attr = _FILE_ATTR
    return zi


def _safe_entry_parts(name: str) -> tuple[str, ...]:
    """Validate an entry name and return its path segments.

    Raises:
        ArchiveCorrupt: absolute names, drive letters or '..' segments
    """
    rel = PurePosixPath(name.replace("\\", "/"))
    if rel.is_absolute():
        raise ArchiveCorrupt(f"absolute entry name: {name!r}")
    parts = tuple(p for p in rel.parts if p not in ("", "."))
    if not parts:
        raise ArchiveCorrupt(f"empty entry name: {name!r}")
    if any(p == ".." for p in parts):
        raise ArchiveCorrupt(f"parent segment in entry name: {name!r}")
    if ":" in parts[0]:
        raise ArchiveCorrupt(f"drive in entry name: {name!r}")
    return parts


def _shared_root(names: list[str]) -> str | None:
    """Return the single top-level directory every entry lives under, if any."""
    roots: set[str] = set()
    for name in names:
        parts = _safe_entry_parts(name)
        if len(parts) < 2:
            return None
        roots.add(parts[0])
    if len(roots) != 1:
        return None
    return roots.pop()


class ArchiveService:
    """Packs save locations into zip bytes and restores them."""

    def __init__(self, resolver: ConfigResolver | None = None) -> None:
        self._resolver = resolver or ConfigResolver(cli_args={})
        self._settings: ArchiveSettings | None = None

    @property
    def settings(self) -> ArchiveSettings:
        if self._settings is None:
            self._settings = self._resolver.resolve_archive_settings()
        return self._settings

    def _scratch_file(self) -> ScratchFile:
        return ScratchFile(self._resolver.resolve_scratch_dir())

    def plan_entries(self, entry: SaveEntry) -> list[tuple[str, Path]]:
        """Return (archive name, source file) pairs in archive order."""
        src = Path(entry.path)
        if src.is_dir():
            return [(f"{entry.name}/{rel}", src / rel) for rel in list_files(src)]
        if src.is_file():
            return [(src.name, src)]
        missing = FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), entry.path)
        raise IoFailure(entry.path, missing) from missing

    def archive(self, entry: SaveEntry) -> bytes:
        """Return a deterministic zip snapshot of a save location."""
        data, _names, _total = self._pack(entry)
        return data

    def archive_to_file(self, entry: SaveEntry, destination: PathLike) -> PackResult:
        """Write the snapshot of a save location to destination.

        The destination is replaced atomically; a failure leaves no output.
        """
        data, names, total = self._pack(entry)
        dst = Path(destination)
        tmp = dst.with_name(dst.name + ".tmp")
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(data)
            tmp.replace(dst)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise IoFailure(str(dst), e) from e
        return PackResult(
            save_name=entry.name,
            dst_archive_path=str(dst),
            files_packed=len(names),
            total_bytes=total,
            archive_bytes=len(data),
            entries=names,
        )

    def _pack(self, entry: SaveEntry) -> tuple[bytes, list[str], int]:
        plan = self.plan_entries(entry)
        settings = self.settings
        total = 0
        with self._scratch_file() as scratch:
            try:
                with zipfile.ZipFile(scratch, "w") as zf:
                    for arcname, src in plan:
                        data = src.read_bytes()
                        zi = _zipinfo_deterministic(
                            arcname, zip_date_time(creation_time(src)), settings
                        )
                        zf.writestr(
                            zi,
                            data,
                            compress_type=settings.compression,
                            compresslevel=settings.compresslevel,
                        )
                        total += len(data)
                out = scratch.read_bytes()
            except OSError as e:
                raise IoFailure(getattr(e, "filename", None) or entry.path, e) from e

        log.debug(
            f"archive.pack name={entry.name!r} entries={len(plan)} "
            f"bytes={total} archive_bytes={len(out)}"
        )
        return out, [name for name, _src in plan], total

    def list_entries(self, data: bytes) -> list[ArchiveEntryInfo]:
        """List the file entries of an archive in container order."""
        with self._scratch_file() as scratch:
            self._stage(scratch, data)
            try:
                with zipfile.ZipFile(scratch, "r") as zf:
                    return [
                        ArchiveEntryInfo(
                            name=i.filename, size=int(i.file_size), date_time=i.date_time
                        )
                        for i in zf.infolist()
                        if not i.is_dir()
                    ]
            except _CORRUPT_ERRORS as e:
                raise ArchiveCorrupt(str(e)) from e

    def restore(
        self, data: bytes, destination: PathLike, *, strip_root: bool = True
    ) -> UnpackResult:
        """Write every file entry of an archive under destination.

        Existing files are overwritten; other files in destination are left
        alone. With strip_root, a top-level directory shared by every entry
        (the save name of a directory snapshot) is dropped. Partial output is
        not rolled back on failure.

        Raises:
            ArchiveCorrupt: malformed container or unsafe entry names
            IoFailure: destination cannot be written
        """
        dst = Path(destination)
        files = 0
        total = 0
        written: list[str] = []
        with self._scratch_file() as scratch:
            self._stage(scratch, data)
            try:
                with zipfile.ZipFile(scratch, "r") as zf:
                    infos = [i for i in zf.infolist() if not i.is_dir()]
                    root = _shared_root([i.filename for i in infos]) if strip_root else None
                    try:
                        dst.mkdir(parents=True, exist_ok=True)
                    except OSError as e:
                        raise IoFailure(str(dst), e) from e
                    dst_resolved = dst.resolve()
                    for info in infos:
                        parts = _safe_entry_parts(info.filename)
                        if root is not None:
                            parts = parts[1:]
                        out = dst_resolved.joinpath(*parts)
                        try:
                            out.resolve().relative_to(dst_resolved)
                        except ValueError:
                            raise ArchiveCorrupt(
                                f"entry escapes destination: {info.filename!r}"
                            ) from None
                        try:
                            out.parent.mkdir(parents=True, exist_ok=True)
                            with zf.open(info, "r") as src_f, open(out, "wb") as dst_f:
                                shutil.copyfileobj(src_f, dst_f)
                        except OSError as e:
                            raise IoFailure(str(out), e) from e
                        files += 1
                        total += int(info.file_size)
                        written.append("/".join(parts))
            except _CORRUPT_ERRORS as e:
                raise ArchiveCorrupt(str(e)) from e

        log.debug(
            f"archive.unpack dst={str(dst)!r} files={files} bytes={total} root={root!r}"
        )
        return UnpackResult(
            dst_dir=str(dst),
            files_unpacked=files,
            total_bytes=total,
            stripped_root=root,
            entries=written,
        )

    @staticmethod
    def _stage(scratch: Path, data: bytes) -> None:
        try:
            scratch.write_bytes(data)
        except OSError as e:
            raise IoFailure(str(scratch), e) from e
