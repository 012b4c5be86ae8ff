"""Configuration resolver with 4-level priority.

Priority (highest to lowest):
1. CLI arguments
2. Environment variables (SAVESYNC_*)
3. Config files (user > system)
4. Defaults
"""

from __future__ import annotations

import os
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from savesync.core.errors import ConfigError

ALLOWED_LOGGING_LEVELS = frozenset({"quiet", "normal", "verbose", "debug"})
DEFAULT_LOGGING_LEVEL = "normal"

ALLOWED_COMPRESSION = {
    "deflated": zipfile.ZIP_DEFLATED,
    "stored": zipfile.ZIP_STORED,
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class ConfigSource:
    """Represents where a config value came from."""

    value: Any
    source: str  # 'cli' | 'env' | 'user_config' | 'system_config' | 'default'


@dataclass(frozen=True)
class LoggingPolicy:
    """Resolved, immutable logging policy."""

    level_name: str  # quiet | normal | verbose | debug
    color: bool
    sources: dict[str, ConfigSource]


@dataclass(frozen=True)
class ArchiveSettings:
    """Resolved zip writer settings."""

    compression: int
    compresslevel: int | None


class ConfigResolver:
    """Resolve configuration with strict 4-level priority.

    Example:
        resolver = ConfigResolver(
            cli_args={'data_dir': '/srv/saves'},
            user_config_path=Path('~/.config/savesync/config.yaml')
        )

        data_dir, source = resolver.resolve('data_dir')
        # data_dir = '/srv/saves', source = 'cli'
    """

    def __init__(
        self,
        cli_args: dict[str, Any] | None = None,
        user_config_path: Path | None = None,
        system_config_path: Path | None = None,
        defaults: dict[str, Any] | None = None,
    ) -> None:
        """Initialize config resolver.

        Args:
            cli_args: Arguments from CLI (highest priority)
            user_config_path: Path to user config file
            system_config_path: Path to system config file
            defaults: Default values (lowest priority)
        """
        self.cli_args = cli_args or {}
        self.user_config_path = user_config_path or Path.home() / ".config/savesync/config.yaml"
        self.system_config_path = system_config_path or Path("/etc/savesync/config.yaml")
        self.defaults = defaults if defaults is not None else self._default_config()

        self._user_config: dict[str, Any] | None = None
        self._system_config: dict[str, Any] | None = None

    def resolve(self, key: str) -> tuple[Any, str]:
        """Resolve config value with priority.

        Args:
            key: Config key (supports dot notation: 'archive.compression')

        Returns:
            (value, source) tuple

        Raises:
            ConfigError: If key not found in any source
        """
        value = self._from_cli(key)
        if value is not None:
            return value, "cli"

        value = self._from_env(key)
        if value is not None:
            return value, "env"

        value = self._from_user_config(key)
        if value is not None:
            return value, "user_config"

        value = self._from_system_config(key)
        if value is not None:
            return value, "system_config"

        value = self._from_defaults(key)
        if value is not None:
            return value, "default"

        raise ConfigError(f"Config key '{key}' not found in any source")

    def resolve_data_dir(self) -> Path:
        """Resolve data_dir (registry document and diagnostics live here)."""
        key = "data_dir"
        value, _src = self.resolve(key)
        if not isinstance(value, (str, Path)) or str(value).strip() == "":
            raise ConfigError(f"Config key '{key}' must be a non-empty path string")
        return Path(str(value)).expanduser()

    def resolve_scratch_dir(self) -> Path | None:
        """Resolve scratch_dir; None means the system temp directory."""
        key = "scratch_dir"
        found = self._try_resolve_value(key)
        if found is None:
            return None
        value, _src = found
        if not isinstance(value, (str, Path)):
            raise ConfigError(f"Config key '{key}' must be a path string")
        if str(value).strip() == "":
            return None
        return Path(str(value)).expanduser()

    def resolve_archive_settings(self) -> ArchiveSettings:
        """Resolve archive.compression and archive.compresslevel."""
        key = "archive.compression"
        found = self._try_resolve_value(key)
        name = "deflated" if found is None else found[0]
        if not isinstance(name, str) or name.strip().lower() not in ALLOWED_COMPRESSION:
            allowed = ", ".join(sorted(ALLOWED_COMPRESSION))
            raise ConfigError(f"Invalid '{key}': {name!r}. Allowed values: {allowed}")
        compression = ALLOWED_COMPRESSION[name.strip().lower()]

        if compression == zipfile.ZIP_STORED:
            return ArchiveSettings(compression=compression, compresslevel=None)

        level_key = "archive.compresslevel"
        found = self._try_resolve_value(level_key)
        level = self._coerce_int(level_key, 6 if found is None else found[0])
        if not 0 <= level <= 9:
            raise ConfigError(f"Config key '{level_key}' must be between 0 and 9, got {level}")
        return ArchiveSettings(compression=compression, compresslevel=level)

    def resolve_bool(self, key: str, default: bool) -> bool:
        """Resolve a boolean key, accepting the usual string spellings from env."""
        found = self._try_resolve_value(key)
        if found is None:
            return default
        value, _src = found
        if isinstance(value, bool):
            return value
        s = str(value).strip().lower()
        if s in _TRUE_VALUES:
            return True
        if s in _FALSE_VALUES:
            return False
        raise ConfigError(f"Config key '{key}' must be a bool, got {value!r}")

    def resolve_logging_level(self) -> str:
        """Resolve and validate logging.level.

        Allowed values (after normalization): quiet | normal | verbose | debug.
        Returns DEFAULT_LOGGING_LEVEL when no source provides the key.

        Raises:
            ConfigError: If the resolved value is invalid.
        """
        level, _src = self._resolve_logging_level_and_source()
        return level

    def resolve_logging_policy(self) -> LoggingPolicy:
        """Resolve the logging policy. Side-effect free."""
        level_name, src = self._resolve_logging_level_and_source()
        return LoggingPolicy(
            level_name=level_name,
            color=self.resolve_bool("logging.color", True),
            sources={"level_name": src},
        )

    def _resolve_logging_level_and_source(self) -> tuple[str, ConfigSource]:
        key = "logging.level"
        found = self._try_resolve_value(key)
        if found is None:
            return DEFAULT_LOGGING_LEVEL, ConfigSource(
                value=DEFAULT_LOGGING_LEVEL,
                source="default",
            )

        value, source = found
        if not isinstance(value, str):
            raise ConfigError(f"Config key '{key}' must be a string, got {type(value).__name__}")

        norm = value.strip().lower()
        if norm not in ALLOWED_LOGGING_LEVELS:
            allowed = ", ".join(sorted(ALLOWED_LOGGING_LEVELS))
            raise ConfigError(f"Invalid '{key}': {value!r}. Allowed values: {allowed}")
        return norm, ConfigSource(value=norm, source=source)

    def _try_resolve_value(self, key: str) -> tuple[Any, str] | None:
        try:
            return self.resolve(key)
        except ConfigError as e:
            if "not found in any source" in str(e):
                return None
            raise

    @staticmethod
    def _coerce_int(key: str, value: Any) -> int:
        if isinstance(value, bool):
            raise ConfigError(f"Config key '{key}' must be an int")
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
        raise ConfigError(f"Config key '{key}' must be an int")

    def _from_cli(self, key: str) -> Any | None:
        return self._get_nested(self.cli_args, key)

    def _from_env(self, key: str) -> Any | None:
        """Get value from environment variables.

        Environment variable format: SAVESYNC_KEY_NAME
        Example: SAVESYNC_DATA_DIR, SAVESYNC_ARCHIVE_COMPRESSION
        """
        env_key = f"SAVESYNC_{key.upper().replace('.', '_')}"
        return os.environ.get(env_key)

    def _from_user_config(self, key: str) -> Any | None:
        return self._get_nested(self._get_user_config(), key)

    def _from_system_config(self, key: str) -> Any | None:
        return self._get_nested(self._get_system_config(), key)

    def _from_defaults(self, key: str) -> Any | None:
        return self._get_nested(self.defaults, key)

    def _get_user_config(self) -> dict[str, Any]:
        """Load user config file (cached)."""
        if self._user_config is None:
            self._user_config = self._load_yaml(self.user_config_path)
        return self._user_config

    def _get_system_config(self) -> dict[str, Any]:
        """Load system config file (cached)."""
        if self._system_config is None:
            self._system_config = self._load_yaml(self.system_config_path)
        return self._system_config

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
                return data if isinstance(data, dict) else {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e

    def _get_nested(self, data: dict[str, Any], key: str) -> Any | None:
        """Get nested value using dot notation.

        Example:
            data = {'archive': {'compression': 'stored'}}
            _get_nested(data, 'archive.compression') -> 'stored'
        """
        current: Any = data

        for part in key.split("."):
            if not isinstance(current, dict):
                return None
            current = current.get(part)
            if current is None:
                return None

        return current

    @staticmethod
    def _default_config() -> dict[str, Any]:
        """Default configuration."""
        return {
            "data_dir": str(Path.home() / ".savesync"),
            "scratch_dir": None,
            "archive": {
                "compression": "deflated",
                "compresslevel": 6,
            },
            "logging": {
                "level": DEFAULT_LOGGING_LEVEL,
                "color": True,
            },
            "diagnostics": {
                "enabled": False,
            },
        }
