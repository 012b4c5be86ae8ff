"""Registry persistence: saves.json under the data directory."""

from __future__ import annotations

from pathlib import Path

from savesync.core.errors import IoFailure
from savesync.core.logging import get_logger

from .registry import SaveRegistry

_LOGGER = get_logger(__name__)

REGISTRY_FILENAME = "saves.json"


def _atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(text, encoding="utf-8")
        tmp.replace(path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


class RegistryStore:
    """Persists a SaveRegistry as saves.json under a data directory."""

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @property
    def registry_path(self) -> Path:
        return self._data_dir / REGISTRY_FILENAME

    def exists(self) -> bool:
        return self.registry_path.exists()

    def load(self) -> SaveRegistry:
        """Load the registry; a missing document yields an empty registry.

        Every record is re-validated, so an edited document that breaks a
        registration rule fails the whole load.
        """
        path = self.registry_path
        if not path.exists():
            _LOGGER.debug(f"registry store empty path={str(path)!r}")
            return SaveRegistry()
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise IoFailure(str(path), e) from e
        registry = SaveRegistry.from_json(text)
        _LOGGER.verbose(f"registry loaded path={str(path)!r} saves={len(registry)}")
        return registry

    def save(self, registry: SaveRegistry) -> Path:
        path = self.registry_path
        try:
            _atomic_write_text(path, registry.to_json() + "\n")
        except OSError as e:
            raise IoFailure(str(path), e) from e
        _LOGGER.verbose(f"registry saved path={str(path)!r} saves={len(registry)}")
        return path
