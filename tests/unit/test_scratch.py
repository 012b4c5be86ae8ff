"""Unit tests for scratch files and folders."""

from __future__ import annotations

from pathlib import Path

import pytest

from savesync.saves.scratch import ScratchFile, ScratchFolder


def test_scratch_file_created_empty_and_removed(scratch_dir: Path) -> None:
    with ScratchFile(scratch_dir) as path:
        assert path.is_file()
        assert path.read_bytes() == b""
        assert path.parent == scratch_dir
        path.write_bytes(b"data")
    assert not path.exists()


def test_scratch_file_removed_on_error(scratch_dir: Path) -> None:
    with pytest.raises(RuntimeError):
        with ScratchFile(scratch_dir) as path:
            raise RuntimeError("boom")
    assert not path.exists()
    assert list(scratch_dir.iterdir()) == []


def test_scratch_file_names_are_unique(scratch_dir: Path) -> None:
    with ScratchFile(scratch_dir) as a, ScratchFile(scratch_dir) as b:
        assert a != b


def test_scratch_file_release_is_idempotent(scratch_dir: Path) -> None:
    scratch = ScratchFile(scratch_dir)
    path = scratch.acquire()
    path.unlink()
    scratch.release()
    scratch.release()
    with pytest.raises(RuntimeError):
        _ = scratch.path


def test_scratch_file_defaults_to_system_temp() -> None:
    with ScratchFile() as path:
        assert path.exists()
    assert not path.exists()


def test_scratch_folder_removed_recursively(scratch_dir: Path) -> None:
    with ScratchFolder(scratch_dir) as folder:
        assert folder.is_dir()
        assert list(folder.iterdir()) == []
        (folder / "nested" / "deeper").mkdir(parents=True)
        (folder / "nested" / "deeper" / "f.bin").write_bytes(b"x")
    assert not folder.exists()


def test_scratch_folder_removed_on_error(scratch_dir: Path) -> None:
    with pytest.raises(ValueError):
        with ScratchFolder(scratch_dir) as folder:
            (folder / "f.txt").write_text("x")
            raise ValueError("boom")
    assert not folder.exists()
