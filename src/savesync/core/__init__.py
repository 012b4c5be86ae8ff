"""SaveSync core: errors, logging, events, configuration."""

from savesync.core.config import ArchiveSettings, ConfigResolver, LoggingPolicy
from savesync.core.errors import (
    ArchiveCorrupt,
    ConfigError,
    FileError,
    InvalidSaveDefinition,
    InvalidSaveReason,
    IoFailure,
    PathResolutionError,
    RegistryFormatError,
    SaveNotFoundError,
    SaveSyncError,
)
from savesync.core.events import EventBus, get_event_bus
from savesync.core.logging import (
    VerbosityLevel,
    apply_logging_policy,
    get_logger,
    get_verbosity,
    set_colors,
    set_verbosity,
)

__all__ = [
    # Config
    "ArchiveSettings",
    "ConfigResolver",
    "LoggingPolicy",
    # Errors
    "ArchiveCorrupt",
    "ConfigError",
    "FileError",
    "InvalidSaveDefinition",
    "InvalidSaveReason",
    "IoFailure",
    "PathResolutionError",
    "RegistryFormatError",
    "SaveNotFoundError",
    "SaveSyncError",
    # Events
    "EventBus",
    "get_event_bus",
    # Logging
    "VerbosityLevel",
    "apply_logging_policy",
    "get_logger",
    "get_verbosity",
    "set_colors",
    "set_verbosity",
]
