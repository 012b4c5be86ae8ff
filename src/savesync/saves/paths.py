"""Path normalization for save locations.

Normalized paths are absolute strings. Anything that is not an existing file
(a directory, or nothing at all yet) carries a trailing separator, so that
prefix comparison between two normalized paths is a path-segment comparison.
"""

from __future__ import annotations

import os
from pathlib import Path

from savesync.core.errors import IoFailure, PathResolutionError

PathLike = str | os.PathLike[str]


def _to_platform_separators(path: str) -> str:
    # Backslashes are treated as separators on every platform.
    path = path.replace("\\", "/")
    if os.sep != "/":
        path = path.replace("/", os.sep)
    return path


def is_directory_like(path: PathLike) -> bool:
    """Return True if path does not exist or is an existing directory."""
    p = os.fspath(path)
    return not os.path.exists(p) or os.path.isdir(p)


def normalize_path(path: PathLike) -> str:
    """Canonicalize path into an absolute, comparison-stable string.

    Raises:
        PathResolutionError: path cannot be resolved to an absolute path
    """
    raw = os.fspath(path)
    if not isinstance(raw, str):
        raise PathResolutionError(f"Path must be a string, got {type(raw).__name__}")
    if raw.strip() == "":
        raise PathResolutionError("Path is required")
    if "\x00" in raw:
        raise PathResolutionError(f"Path contains a NUL character: {raw!r}")

    p = _to_platform_separators(raw)
    try:
        resolved = os.path.abspath(p)
    except (OSError, ValueError) as e:
        raise PathResolutionError(f"Cannot resolve path {raw!r}: {e}") from e

    if is_directory_like(resolved) and not resolved.endswith(os.sep):
        resolved += os.sep
    return resolved


def contains(outer: str, inner: str) -> bool:
    """Return True if normalized path `outer` is a directory containing `inner`.

    Both arguments must already be normalized.
    """
    return is_directory_like(outer) and inner.startswith(outer) and inner != outer


def creation_time(path: PathLike) -> float:
    """Return the file's creation timestamp (seconds since the epoch).

    Uses st_birthtime where the platform reports it and st_ctime otherwise.
    """
    p = os.fspath(path)
    try:
        st = os.stat(p)
    except OSError as e:
        raise IoFailure(p, e) from e
    birth = getattr(st, "st_birthtime", None)
    if birth is not None:
        return float(birth)
    return float(st.st_ctime)


def list_files(directory: PathLike) -> list[str]:
    """List every file under directory as POSIX relative paths, lexically sorted."""
    base = Path(directory)
    rels: list[str] = []
    try:
        for p in base.rglob("*"):
            if p.is_file():
                rels.append(p.relative_to(base).as_posix())
    except OSError as e:
        raise IoFailure(str(base), e) from e
    return sorted(rels)


def location_size(path: PathLike) -> int:
    """Total size in bytes of a save location (0 when it does not exist)."""
    p = Path(path)
    if not p.exists():
        return 0
    try:
        if p.is_dir():
            return sum((p / rel).stat().st_size for rel in list_files(p))
        return p.stat().st_size
    except OSError as e:
        raise IoFailure(str(p), e) from e
