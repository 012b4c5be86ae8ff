"""Save registry: named save locations with uniqueness and non-overlap rules.

Rules checked on every registration, in order:
- name has no path separators
- name is not empty
- name is at most MAX_NAME_LENGTH characters
- name is not already registered
- no registered save has the same normalized path
- no registered directory contains the new path, and the new path (when it
  is directory-like) contains no registered save

A failed registration leaves the registry unchanged.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from typing import Any

from savesync.core.errors import (
    InvalidSaveReason,
    RegistryFormatError,
    SaveNotFoundError,
)
from savesync.core.logging import get_logger

from .paths import PathLike, contains, normalize_path
from .types import ILLEGAL_NAME_CHARACTERS, MAX_NAME_LENGTH, SaveCheck, SaveEntry

_logger = get_logger(__name__)


class SaveRegistry:
    """Ordered mapping of save name to normalized location."""

    def __init__(self) -> None:
        self._saves: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._saves)

    def __contains__(self, name: object) -> bool:
        return name in self._saves

    def __iter__(self) -> Iterator[SaveEntry]:
        return iter(self.list_saves())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SaveRegistry):
            return NotImplemented
        return self._saves == other._saves

    def __repr__(self) -> str:
        return f"SaveRegistry({self._saves!r})"

    def check_save(self, name: str, location: PathLike) -> SaveCheck:
        """Validate a save definition without registering it."""
        path = normalize_path(location)

        if any(ch in name for ch in ILLEGAL_NAME_CHARACTERS):
            return SaveCheck(
                reason=InvalidSaveReason.ILLEGAL_CHARACTERS,
                message="Invalid characters detected! Please do not use slashes (\\ or /)",
            )
        if name == "":
            return SaveCheck(
                reason=InvalidSaveReason.EMPTY_NAME,
                message="Save names must not be empty.",
            )
        if len(name) > MAX_NAME_LENGTH:
            return SaveCheck(
                reason=InvalidSaveReason.NAME_TOO_LONG,
                message=f"Save names must be at most {MAX_NAME_LENGTH} characters.",
            )
        if name in self._saves:
            return SaveCheck(
                reason=InvalidSaveReason.DUPLICATE_NAME,
                message=f"Save with name '{name}' already exists.",
            )

        for other_name, other_path in self._saves.items():
            if other_path == path:
                return SaveCheck(
                    reason=InvalidSaveReason.DUPLICATE_PATH,
                    message=f"Save with location '{path}' already exists ('{other_name}').",
                )
            if contains(path, other_path) or contains(other_path, path):
                return SaveCheck(
                    reason=InvalidSaveReason.CONTAINMENT,
                    message=(
                        f"Save locations cannot contain each other: "
                        f"'{path}' overlaps '{other_name}' at '{other_path}'."
                    ),
                )

        return SaveCheck(entry=SaveEntry(name=name, path=path))

    def add_save(self, name: str, location: PathLike) -> SaveEntry:
        """Register a save.

        Raises:
            InvalidSaveDefinition: a registration rule is violated
            PathResolutionError: location cannot be resolved
        """
        entry = self.check_save(name, location).raise_for_reason()
        self._saves[entry.name] = entry.path
        _logger.debug(f"registry.add name={entry.name!r} path={entry.path!r}")
        return entry

    def remove_save(self, name: str) -> None:
        """Unregister a save. Files on disk are untouched."""
        if name not in self._saves:
            raise SaveNotFoundError(name)
        del self._saves[name]
        _logger.debug(f"registry.remove name={name!r}")

    def get_save_path(self, name: str) -> str:
        """Return the normalized path registered under name."""
        try:
            return self._saves[name]
        except KeyError:
            raise SaveNotFoundError(name) from None

    def get_save(self, name: str) -> SaveEntry:
        return SaveEntry(name=name, path=self.get_save_path(name))

    def list_saves(self) -> list[SaveEntry]:
        """Snapshot of all saves in registration order."""
        return [SaveEntry(name=n, path=p) for n, p in self._saves.items()]

    def to_dict(self) -> dict[str, Any]:
        return {"saves": [e.to_dict() for e in self.list_saves()]}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Any) -> SaveRegistry:
        """Rebuild a registry, re-running every registration rule.

        Raises:
            RegistryFormatError: document shape is wrong
            InvalidSaveDefinition: a record violates a registration rule
        """
        if not isinstance(data, dict):
            raise RegistryFormatError("Registry document must be a JSON object")
        saves = data.get("saves")
        if not isinstance(saves, list):
            raise RegistryFormatError("Registry document must contain a 'saves' list")

        registry = cls()
        for i, record in enumerate(saves):
            if not isinstance(record, dict):
                raise RegistryFormatError(f"Registry record #{i} must be an object")
            name = record.get("name")
            location = record.get("location")
            if not isinstance(name, str) or not isinstance(location, str):
                raise RegistryFormatError(
                    f"Registry record #{i} must have string 'name' and 'location'"
                )
            registry.add_save(name, location)
        return registry

    @classmethod
    def from_json(cls, text: str) -> SaveRegistry:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise RegistryFormatError(f"Invalid JSON: {e}") from e
        return cls.from_dict(data)
