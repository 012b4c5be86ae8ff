"""Error handling with friendly messages."""

from __future__ import annotations

from enum import StrEnum


class SaveSyncError(Exception):
    """Base exception for all SaveSync errors."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\nSuggestion: {self.suggestion}"
        return self.message


class InvalidSaveReason(StrEnum):
    """Which registration rule a save definition broke."""

    ILLEGAL_CHARACTERS = "illegal_characters"
    EMPTY_NAME = "empty_name"
    NAME_TOO_LONG = "name_too_long"
    DUPLICATE_NAME = "duplicate_name"
    DUPLICATE_PATH = "duplicate_path"
    CONTAINMENT = "containment"


class InvalidSaveDefinition(SaveSyncError):
    """A save definition violates a registry rule."""

    def __init__(
        self, reason: InvalidSaveReason, message: str, suggestion: str | None = None
    ) -> None:
        self.reason = reason
        super().__init__(message, suggestion)


class SaveNotFoundError(SaveSyncError):
    """No save is registered under the given name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Save '{name}' does not exist",
            "Check registered saves with: savesync list",
        )


class ConfigError(SaveSyncError):
    """Configuration error."""

    pass


class RegistryFormatError(SaveSyncError):
    """Persisted registry document is malformed."""

    pass


class FileError(SaveSyncError):
    """File operation error."""

    pass


class PathResolutionError(FileError):
    """Path string cannot be resolved to an absolute path."""

    pass


class IoFailure(FileError):
    """Underlying filesystem operation failed."""

    def __init__(self, path: str, cause: OSError) -> None:
        self.path = path
        detail = cause.strerror or type(cause).__name__
        super().__init__(
            f"I/O failure on '{path}': {detail}",
            "Check permissions and free disk space",
        )


class ArchiveCorrupt(FileError):
    """Archive data is corrupted or unsafe to extract."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            f"Archive is corrupted or unreadable: {detail}",
            "Re-create the archive from the source save",
        )
