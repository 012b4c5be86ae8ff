"""Scoped scratch files and folders.

Both are context managers: the filesystem object exists for the duration of
the `with` block and is removed on every exit path.

Usage:
    with ScratchFile() as path:
        path.write_bytes(data)
        ...
"""

from __future__ import annotations

import contextlib
import os
import shutil
import tempfile
from pathlib import Path
from types import TracebackType

from savesync.core.errors import IoFailure
from savesync.core.logging import get_logger

_logger = get_logger(__name__)

_PREFIX = "savesync-"


class _ScratchBase:
    def __init__(self, directory: Path | str | None = None) -> None:
        self._directory = None if directory is None else Path(directory)
        self._path: Path | None = None

    @property
    def path(self) -> Path:
        if self._path is None:
            raise RuntimeError(f"{type(self).__name__} is not acquired")
        return self._path

    def _scratch_parent(self) -> str:
        if self._directory is None:
            return tempfile.gettempdir()
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IoFailure(str(self._directory), e) from e
        return str(self._directory)

    def acquire(self) -> Path:
        raise NotImplementedError

    def release(self) -> None:
        raise NotImplementedError

    def __enter__(self) -> Path:
        return self.acquire()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


class ScratchFile(_ScratchBase):
    """Uniquely named empty file, deleted on release."""

    def acquire(self) -> Path:
        if self._path is not None:
            return self._path
        parent = self._scratch_parent()
        try:
            fd, name = tempfile.mkstemp(prefix=_PREFIX, suffix=".tmp", dir=parent)
        except OSError as e:
            raise IoFailure(parent, e) from e
        os.close(fd)
        self._path = Path(name)
        _logger.debug(f"scratch file acquired path={name!r}")
        return self._path

    def release(self) -> None:
        if self._path is None:
            return
        path, self._path = self._path, None
        with contextlib.suppress(FileNotFoundError):
            path.unlink()
        _logger.debug(f"scratch file released path={str(path)!r}")


class ScratchFolder(_ScratchBase):
    """Uniquely named empty directory, deleted recursively on release."""

    def acquire(self) -> Path:
        if self._path is not None:
            return self._path
        parent = self._scratch_parent()
        try:
            name = tempfile.mkdtemp(prefix=_PREFIX, dir=parent)
        except OSError as e:
            raise IoFailure(parent, e) from e
        self._path = Path(name)
        _logger.debug(f"scratch folder acquired path={name!r}")
        return self._path

    def release(self) -> None:
        if self._path is None:
            return
        path, self._path = self._path, None
        with contextlib.suppress(FileNotFoundError):
            shutil.rmtree(path)
        _logger.debug(f"scratch folder released path={str(path)!r}")
