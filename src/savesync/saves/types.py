"""Types for the save registry."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from savesync.core.errors import InvalidSaveDefinition, InvalidSaveReason

MAX_NAME_LENGTH = 32
ILLEGAL_NAME_CHARACTERS = ("/", "\\")


@dataclass(frozen=True)
class SaveEntry:
    """A named save location. `path` is always normalized."""

    name: str
    path: str

    @property
    def is_directory(self) -> bool:
        """True for directory saves (registered while directory-like)."""
        return self.path.endswith(os.sep)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "location": self.path}


@dataclass(frozen=True)
class SaveCheck:
    """Outcome of validating a save definition against a registry.

    Either `entry` is set (ok) or `reason` and `message` describe the failure.
    """

    entry: SaveEntry | None = None
    reason: InvalidSaveReason | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.reason is None

    def raise_for_reason(self) -> SaveEntry:
        """Return the entry, or raise InvalidSaveDefinition for a failed check."""
        if self.reason is not None:
            raise InvalidSaveDefinition(self.reason, self.message)
        if self.entry is None:
            raise ValueError("SaveCheck carries neither an entry nor a reason")
        return self.entry
