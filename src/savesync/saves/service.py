"""Save sync service.

The facade a presentation layer talks to: registry management, persistence,
and archive/restore of registered saves. Every operation publishes
operation.start / operation.end diagnostics envelopes and logs one summary
line when it ends.

Registry access goes through a single lock; archive and restore work is
sequential filesystem I/O within each call.
"""

from __future__ import annotations

import asyncio
import threading
import time
import traceback
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from savesync.core.config import ConfigResolver
from savesync.core.diagnostics import build_envelope
from savesync.core.events import get_event_bus
from savesync.core.logging import get_logger

from .archives import ArchiveService, PackResult, UnpackResult
from .paths import PathLike, location_size
from .registry import SaveRegistry
from .store import RegistryStore
from .types import SaveCheck, SaveEntry

_logger = get_logger(__name__)

_COMPONENT = "saves"


def _short_traceback(*, max_lines: int = 20) -> str:
    tb_lines = traceback.format_exc().strip().splitlines()
    if len(tb_lines) <= max_lines:
        return "\n".join(tb_lines)
    return "\n".join(tb_lines[-max_lines:])


def _safe_publish(event: str, payload: dict[str, Any]) -> None:
    try:
        get_event_bus().publish(event, payload)
    except Exception:
        # Diagnostics emission must never break a save operation.
        return


def _format_fields(fields: dict[str, Any]) -> str:
    return " ".join(f"{k}={v!r}" for k, v in fields.items())


@contextmanager
def _observe_operation(*, operation: str, base: dict[str, Any]) -> Iterator[dict[str, Any]]:
    start = time.perf_counter()

    _safe_publish(
        "operation.start",
        build_envelope(
            event="operation.start",
            component=_COMPONENT,
            operation=operation,
            data=dict(base),
        ),
    )

    summary: dict[str, Any] = {}
    try:
        yield summary
    except Exception as e:
        duration_ms = int((time.perf_counter() - start) * 1000)
        end_data = dict(base)
        end_data.update(
            {
                "status": "failed",
                "duration_ms": duration_ms,
                "error_type": type(e).__name__,
                "error_message": str(e),
                "traceback": _short_traceback(),
            }
        )
        _safe_publish(
            "operation.end",
            build_envelope(
                event="operation.end",
                component=_COMPONENT,
                operation=operation,
                data=end_data,
            ),
        )
        _logger.warning(
            f"{operation} status=failed duration_ms={duration_ms} "
            f"{_format_fields(base)} error_type={type(e).__name__!r}"
        )
        raise
    else:
        duration_ms = int((time.perf_counter() - start) * 1000)
        end_data = dict(base)
        end_data.update(summary)
        end_data.update({"status": "succeeded", "duration_ms": duration_ms})
        _safe_publish(
            "operation.end",
            build_envelope(
                event="operation.end",
                component=_COMPONENT,
                operation=operation,
                data=end_data,
            ),
        )
        fields = dict(base)
        fields.update(summary)
        _logger.verbose(
            f"{operation} status=succeeded duration_ms={duration_ms} {_format_fields(fields)}"
        )


class SaveSyncService:
    """Registry + archive operations for registered saves."""

    def __init__(
        self,
        resolver: ConfigResolver | None = None,
        *,
        registry: SaveRegistry | None = None,
        store: RegistryStore | None = None,
    ) -> None:
        self._resolver = resolver or ConfigResolver(cli_args={})
        self._registry = registry if registry is not None else SaveRegistry()
        self._store = store
        self._archives = ArchiveService(self._resolver)
        self._lock = threading.RLock()

    @property
    def store(self) -> RegistryStore:
        if self._store is None:
            self._store = RegistryStore(self._resolver.resolve_data_dir())
        return self._store

    @property
    def archives(self) -> ArchiveService:
        return self._archives

    # Registry persistence

    def load_registry(self) -> SaveRegistry:
        """Replace the in-memory registry with the persisted one."""
        with self._lock, _observe_operation(
            operation="saves.load", base={"path": str(self.store.registry_path)}
        ) as summary:
            self._registry = self.store.load()
            summary["saves"] = len(self._registry)
            return self._registry

    def save_registry(self) -> Path:
        with self._lock, _observe_operation(
            operation="saves.persist", base={"path": str(self.store.registry_path)}
        ) as summary:
            path = self.store.save(self._registry)
            summary["saves"] = len(self._registry)
            return path

    # Registry management

    def list_saves(self) -> list[SaveEntry]:
        with self._lock:
            return self._registry.list_saves()

    def check_save(self, name: str, location: PathLike) -> SaveCheck:
        with self._lock:
            return self._registry.check_save(name, location)

    def add_save(self, name: str, location: PathLike) -> SaveEntry:
        with self._lock, _observe_operation(
            operation="saves.add", base={"name": name, "location": str(location)}
        ) as summary:
            entry = self._registry.add_save(name, location)
            summary["path"] = entry.path
            return entry

    def remove_save(self, name: str) -> None:
        with self._lock, _observe_operation(operation="saves.remove", base={"name": name}):
            self._registry.remove_save(name)

    def get_save_path(self, name: str) -> str:
        with self._lock:
            return self._registry.get_save_path(name)

    def get_save(self, name: str) -> SaveEntry:
        with self._lock:
            return self._registry.get_save(name)

    def save_size(self, name: str) -> int:
        """Total bytes currently stored at a save's location."""
        return location_size(self.get_save_path(name))

    # Archive / restore

    def archive_save(self, name: str) -> bytes:
        """Return the deterministic archive of a registered save."""
        with _observe_operation(operation="saves.archive", base={"name": name}) as summary:
            entry = self.get_save(name)
            data = self._archives.archive(entry)
            summary["archive_bytes"] = len(data)
            return data

    def export_save(self, name: str, destination: PathLike) -> PackResult:
        """Write the archive of a registered save to a file."""
        with _observe_operation(
            operation="saves.export", base={"name": name, "destination": str(destination)}
        ) as summary:
            entry = self.get_save(name)
            result = self._archives.archive_to_file(entry, destination)
            summary["files"] = result.files_packed
            summary["archive_bytes"] = result.archive_bytes
            return result

    async def export_save_async(self, name: str, destination: PathLike) -> PackResult:
        """export_save without blocking the event loop."""
        return await asyncio.to_thread(self.export_save, name, destination)

    def restore(
        self, data: bytes, destination: PathLike, *, strip_root: bool = True
    ) -> UnpackResult:
        """Unpack archive bytes under an arbitrary destination directory."""
        with _observe_operation(
            operation="saves.restore", base={"destination": str(destination)}
        ) as summary:
            result = self._archives.restore(data, destination, strip_root=strip_root)
            summary["files"] = result.files_unpacked
            return result

    def import_save(self, name: str, data: bytes) -> UnpackResult:
        """Unpack archive bytes onto a registered save's own location.

        Directory saves are restored into their directory; single-file saves
        into the file's parent directory.
        """
        with _observe_operation(operation="saves.import", base={"name": name}) as summary:
            entry = self.get_save(name)
            destination = Path(entry.path) if entry.is_directory else Path(entry.path).parent
            result = self._archives.restore(data, destination)
            summary["destination"] = str(destination)
            summary["files"] = result.files_unpacked
            return result
