"""Unit tests for deterministic save archives."""

from __future__ import annotations

import hashlib
import io
import stat
import time
import zipfile
from pathlib import Path

import pytest

from savesync.core.config import ConfigResolver
from savesync.core.errors import ArchiveCorrupt, IoFailure
from savesync.saves.archives import ArchiveService, zip_date_time
from savesync.saves.paths import creation_time, normalize_path
from savesync.saves.types import SaveEntry


def _sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _entry(name: str, location: Path) -> SaveEntry:
    return SaveEntry(name=name, path=normalize_path(location))


def _zip_of(entries: dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buf.getvalue()


@pytest.fixture
def service(resolver: ConfigResolver) -> ArchiveService:
    return ArchiveService(resolver)


def test_single_file_save_scenario(service: ArchiveService, save_file: Path, tmp_path: Path) -> None:
    data = service.archive(_entry("notes", save_file))

    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        assert zf.namelist() == ["notes.txt"]
        assert zf.read("notes.txt") == b"foo"

    out = tmp_path / "restored"
    out.mkdir()
    result = service.restore(data, out)
    assert (out / "notes.txt").read_text() == "foo"
    assert result.files_unpacked == 1
    assert result.stripped_root is None


def test_directory_save_scenario(service: ArchiveService, save_dir: Path, tmp_path: Path) -> None:
    data = service.archive(_entry("proj", save_dir))

    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        assert zf.namelist() == ["proj/a.txt", "proj/sub/b.txt"]

    out = tmp_path / "restored"
    result = service.restore(data, out)
    assert (out / "a.txt").read_text() == "Hello"
    assert (out / "sub" / "b.txt").read_text() == "World"
    assert result.stripped_root == "proj"
    assert result.entries == ["a.txt", "sub/b.txt"]
    assert result.total_bytes == 10


def test_restore_without_strip_root_keeps_save_name(
    service: ArchiveService, save_dir: Path, tmp_path: Path
) -> None:
    data = service.archive(_entry("proj", save_dir))
    out = tmp_path / "restored"
    service.restore(data, out, strip_root=False)
    assert (out / "proj" / "a.txt").read_text() == "Hello"
    assert (out / "proj" / "sub" / "b.txt").read_text() == "World"


def test_archive_is_deterministic(service: ArchiveService, save_dir: Path) -> None:
    entry = _entry("proj", save_dir)
    first = service.archive(entry)
    # Two seconds is the zip timestamp resolution.
    time.sleep(2.1)
    second = service.archive(entry)
    assert _sha256(first) == _sha256(second)


def test_archive_is_independent_of_local_timezone(
    service: ArchiveService, save_file: Path, monkeypatch
) -> None:
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset not available")
    entry = _entry("notes", save_file)

    monkeypatch.setenv("TZ", "UTC")
    time.tzset()
    utc = service.archive(entry)

    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    try:
        local = service.archive(entry)
    finally:
        monkeypatch.undo()
        time.tzset()

    assert utc == local


def test_entries_are_lexically_ordered(service: ArchiveService, tmp_path: Path) -> None:
    root = tmp_path / "game"
    root.mkdir()
    for name in ["z.sav", "b/2.sav", "a.sav", "b/1.sav"]:
        p = root / name
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(name)

    data = service.archive(_entry("game", root))
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        assert zf.namelist() == ["game/a.sav", "game/b/1.sav", "game/b/2.sav", "game/z.sav"]


def test_entry_headers_are_fixed(service: ArchiveService, save_file: Path) -> None:
    data = service.archive(_entry("notes", save_file))
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        (info,) = zf.infolist()
    expected = zip_date_time(creation_time(save_file))
    # DOS time stores seconds halved.
    assert info.date_time == expected[:5] + (expected[5] // 2 * 2,)
    assert info.create_system == 3
    assert info.external_attr >> 16 == stat.S_IFREG | 0o644
    assert info.compress_type == zipfile.ZIP_DEFLATED


def test_stored_compression_from_config(save_file: Path, tmp_path: Path) -> None:
    resolver = ConfigResolver(
        cli_args={"scratch_dir": str(tmp_path / "scratch"), "archive": {"compression": "stored"}},
        user_config_path=tmp_path / "missing-user.yaml",
        system_config_path=tmp_path / "missing-system.yaml",
    )
    data = ArchiveService(resolver).archive(_entry("notes", save_file))
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        assert [i.compress_type for i in zf.infolist()] == [zipfile.ZIP_STORED]


def test_zip_date_time_clamps_to_zip_range() -> None:
    assert zip_date_time(0) == (1980, 1, 1, 0, 0, 0)
    assert zip_date_time(-10**12) == (1980, 1, 1, 0, 0, 0)
    assert zip_date_time(10**13) == (2107, 12, 31, 23, 59, 58)
    assert zip_date_time(86400 * 365 * 30) == time.gmtime(86400 * 365 * 30)[:6]


def test_empty_directory_archive(service: ArchiveService, tmp_path: Path) -> None:
    empty = tmp_path / "empty"
    empty.mkdir()
    data = service.archive(_entry("empty", empty))
    assert service.list_entries(data) == []

    out = tmp_path / "out"
    result = service.restore(data, out)
    assert out.is_dir()
    assert result.files_unpacked == 0


def test_archive_missing_location_raises(service: ArchiveService, save_file: Path) -> None:
    entry = _entry("notes", save_file)
    save_file.unlink()
    with pytest.raises(IoFailure) as exc:
        service.archive(entry)
    assert exc.value.path == entry.path
    assert isinstance(exc.value.__cause__, FileNotFoundError)


def test_list_entries(service: ArchiveService, save_dir: Path) -> None:
    data = service.archive(_entry("proj", save_dir))
    entries = service.list_entries(data)
    assert [(e.name, e.size) for e in entries] == [("proj/a.txt", 5), ("proj/sub/b.txt", 5)]


def test_archive_to_file_matches_archive(
    service: ArchiveService, save_dir: Path, tmp_path: Path
) -> None:
    entry = _entry("proj", save_dir)
    dst = tmp_path / "out" / "proj.zip"

    result = service.archive_to_file(entry, dst)

    assert dst.read_bytes() == service.archive(entry)
    assert result.save_name == "proj"
    assert result.files_packed == 2
    assert result.total_bytes == 10
    assert result.archive_bytes == dst.stat().st_size
    assert result.entries == ["proj/a.txt", "proj/sub/b.txt"]
    assert not (tmp_path / "out" / "proj.zip.tmp").exists()


def test_restore_overwrites_and_keeps_unrelated_files(
    service: ArchiveService, save_dir: Path, tmp_path: Path
) -> None:
    data = service.archive(_entry("proj", save_dir))
    out = tmp_path / "restored"
    out.mkdir()
    (out / "a.txt").write_text("stale")
    (out / "keep.txt").write_text("mine")

    service.restore(data, out)

    assert (out / "a.txt").read_text() == "Hello"
    assert (out / "keep.txt").read_text() == "mine"


@pytest.mark.parametrize("data", [b"", b"not a zip at all", b"PK\x03\x04garbage"])
def test_corrupt_archive_raises(service: ArchiveService, tmp_path: Path, data: bytes) -> None:
    with pytest.raises(ArchiveCorrupt):
        service.restore(data, tmp_path / "out")
    with pytest.raises(ArchiveCorrupt):
        service.list_entries(data)


def test_truncated_archive_raises(service: ArchiveService, save_dir: Path, tmp_path: Path) -> None:
    data = service.archive(_entry("proj", save_dir))
    with pytest.raises(ArchiveCorrupt):
        service.restore(data[: len(data) // 2], tmp_path / "out")


@pytest.mark.parametrize("name", ["../evil.txt", "proj/../../evil.txt", "/abs/evil.txt"])
def test_unsafe_entry_names_raise(service: ArchiveService, tmp_path: Path, name: str) -> None:
    data = _zip_of({name: b"x"})
    out = tmp_path / "deep" / "out"
    with pytest.raises(ArchiveCorrupt):
        service.restore(data, out)
    assert not (tmp_path / "evil.txt").exists()
    assert not (tmp_path / "deep" / "evil.txt").exists()


def test_restore_into_file_destination_raises(
    service: ArchiveService, save_file: Path, tmp_path: Path
) -> None:
    data = service.archive(_entry("notes", save_file))
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    with pytest.raises(IoFailure):
        service.restore(data, blocker)


def test_scratch_files_are_cleaned_up(
    service: ArchiveService, save_dir: Path, scratch_dir: Path, tmp_path: Path
) -> None:
    data = service.archive(_entry("proj", save_dir))
    service.restore(data, tmp_path / "out")
    with pytest.raises(ArchiveCorrupt):
        service.restore(b"junk", tmp_path / "out2")
    assert list(scratch_dir.iterdir()) == []
