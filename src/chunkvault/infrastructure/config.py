"""Configuration management for chunkvault.

Configuration is merged from several sources in priority order, later
sources overriding earlier ones:

    defaults
       |
       +---> FileConfigSource (YAML, JSON, TOML)
       +---> EnvConfigSource (CHUNKVAULT_* environment variables)
       |
       v
    ChunkVaultConfig (typed, validated)

Nested keys are separated by a double underscore in environment variables:

    CHUNKVAULT_BUFFER_SIZE=65536
    CHUNKVAULT_STORE__BACKEND=filesystem
    CHUNKVAULT_STORE__PATH=/var/lib/chunkvault
    CHUNKVAULT_LOGGING__LEVEL=debug

Usage:
    >>> from chunkvault.infrastructure.config import load_config
    >>>
    >>> config = load_config("chunkvault.yaml")
    >>> store = config.store.create()
"""

from __future__ import annotations

import json
import logging
import os
import tomllib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

if TYPE_CHECKING:
    from chunkvault.stores.base import ChunkStore

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class ConfigError(Exception):
    """Base configuration error."""

    pass


class ConfigValidationError(ConfigError):
    """Configuration validation error."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__(f"Configuration validation failed: {', '.join(errors)}")


class ConfigSourceError(ConfigError):
    """Configuration source error."""

    pass


# =============================================================================
# Configuration Sources
# =============================================================================


class ConfigSource(ABC):
    """Abstract base class for configuration sources.

    Sources are processed in priority order (lowest first), so values from
    higher priority sources win.
    """

    def __init__(self, priority: int = 0) -> None:
        self._priority = priority

    @property
    def priority(self) -> int:
        return self._priority

    @abstractmethod
    def load(self) -> dict[str, Any]:
        """Load configuration from source."""
        pass


class EnvConfigSource(ConfigSource):
    """Environment variable configuration source.

    Example:
        CHUNKVAULT_STORE__PATH=/data

        Will produce:
        {"store": {"path": "/data"}}
    """

    def __init__(
        self,
        prefix: str = "CHUNKVAULT_",
        separator: str = "__",
        priority: int = 100,
        environ: dict[str, str] | None = None,
    ) -> None:
        """Initialize environment source.

        Args:
            prefix: Environment variable prefix.
            separator: Separator for nested keys.
            priority: Source priority.
            environ: Mapping to read instead of ``os.environ``.
        """
        super().__init__(priority)
        self._prefix = prefix
        self._separator = separator
        self._environ = environ

    def load(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        environ = self._environ if self._environ is not None else os.environ

        for key, value in environ.items():
            if not key.startswith(self._prefix):
                continue
            parts = key[len(self._prefix) :].lower().split(self._separator)

            current = result
            for part in parts[:-1]:
                current = current.setdefault(part, {})
                if not isinstance(current, dict):
                    break
            else:
                current[parts[-1]] = self._parse_value(value)

        return result

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes", "on"):
            return True
        if value.lower() in ("false", "no", "off"):
            return False

        try:
            return int(value)
        except ValueError:
            return value


class FileConfigSource(ConfigSource):
    """File-based configuration source.

    Supports YAML, JSON, and TOML formats, detected from the file extension.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        required: bool = False,
        priority: int = 50,
    ) -> None:
        """Initialize file source.

        Args:
            path: Path to configuration file.
            required: Raise error if file not found.
            priority: Source priority.
        """
        super().__init__(priority)
        self._path = Path(path)
        self._required = required

    def load(self) -> dict[str, Any]:
        if not self._path.exists():
            if self._required:
                raise ConfigSourceError(f"Configuration file not found: {self._path}")
            return {}

        content = self._path.read_text(encoding="utf-8")
        suffix = self._path.suffix.lower()
        try:
            if suffix in (".yaml", ".yml"):
                data = yaml.safe_load(content) or {}
            elif suffix == ".json":
                data = json.loads(content)
            elif suffix == ".toml":
                data = tomllib.loads(content)
            else:
                raise ConfigSourceError(f"Unsupported file format: {suffix}")
        except (yaml.YAMLError, json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
            raise ConfigSourceError(f"Failed to load config {self._path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigSourceError(f"Configuration must be a mapping: {self._path}")
        return data


def merge_config(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge configuration dictionaries into ``base``."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            merge_config(base[key], value)
        else:
            base[key] = value
    return base


# =============================================================================
# Typed Configuration
# =============================================================================

_BACKENDS = ("memory", "filesystem")
_LOG_LEVELS = ("trace", "debug", "info", "warning", "error", "critical")
_LOG_FORMATS = ("console", "json")


@dataclass
class StoreSettings:
    """Chunk store settings."""

    backend: str = "filesystem"
    path: str = ".chunkvault/chunks"
    verify_digests: bool = True
    strict_digests: bool = False

    def create(self) -> "ChunkStore[Any]":
        """Create the configured chunk store."""
        from chunkvault.stores.factory import get_store

        kwargs: dict[str, Any] = {
            "verify_digests": self.verify_digests,
            "strict_digests": self.strict_digests,
        }
        if self.backend == "filesystem":
            kwargs["base_path"] = self.path
        return get_store(self.backend, **kwargs)


@dataclass
class LoggingSettings:
    """Logging settings."""

    level: str = "warning"
    format: str = "console"


@dataclass
class ChunkVaultConfig:
    """Typed chunkvault configuration.

    Attributes:
        buffer_size: Block size used when copying chunk streams.
        store: Chunk store settings.
        logging: Logging settings.
    """

    buffer_size: int = 8192
    store: StoreSettings = field(default_factory=StoreSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChunkVaultConfig":
        """Build a validated configuration from a merged dictionary.

        Unknown keys are ignored.

        Raises:
            ConfigValidationError: If any value is invalid.
        """
        errors: list[str] = []
        config = cls()

        if "buffer_size" in data:
            config.buffer_size = _typed(data, "buffer_size", int, errors, config.buffer_size)

        store = data.get("store", {})
        if isinstance(store, dict):
            s = config.store
            s.backend = str(store.get("backend", s.backend)).lower()
            s.path = str(store.get("path", s.path))
            s.verify_digests = _typed(store, "verify_digests", bool, errors, s.verify_digests, "store.")
            s.strict_digests = _typed(store, "strict_digests", bool, errors, s.strict_digests, "store.")
        else:
            errors.append("store must be a mapping")

        log = data.get("logging", {})
        if isinstance(log, dict):
            config.logging.level = str(log.get("level", config.logging.level)).lower()
            config.logging.format = str(log.get("format", config.logging.format)).lower()
        else:
            errors.append("logging must be a mapping")

        errors.extend(config.validate())
        if errors:
            raise ConfigValidationError(errors)
        return config

    def validate(self) -> list[str]:
        """Return a list of validation problems (empty when valid)."""
        errors = []
        if self.buffer_size <= 0:
            errors.append("buffer_size must be positive")
        if self.store.backend not in _BACKENDS:
            errors.append(f"store.backend must be one of {', '.join(_BACKENDS)}")
        if self.logging.level not in _LOG_LEVELS:
            errors.append(f"logging.level must be one of {', '.join(_LOG_LEVELS)}")
        if self.logging.format not in _LOG_FORMATS:
            errors.append(f"logging.format must be one of {', '.join(_LOG_FORMATS)}")
        return errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "buffer_size": self.buffer_size,
            "store": {
                "backend": self.store.backend,
                "path": self.store.path,
                "verify_digests": self.store.verify_digests,
                "strict_digests": self.store.strict_digests,
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
            },
        }


def _typed(
    data: dict[str, Any],
    key: str,
    expected: type,
    errors: list[str],
    default: Any,
    prefix: str = "",
) -> Any:
    if key not in data:
        return default
    value = data[key]
    if expected is int and isinstance(value, bool):
        errors.append(f"{prefix}{key} must be {expected.__name__}")
        return default
    if not isinstance(value, expected):
        errors.append(f"{prefix}{key} must be {expected.__name__}")
        return default
    return value


def load_config(
    path: str | Path | None = None,
    *,
    use_env: bool = True,
    environ: dict[str, str] | None = None,
) -> ChunkVaultConfig:
    """Load configuration from an optional file and the environment.

    Args:
        path: Configuration file. A missing explicit path is an error.
        use_env: Apply ``CHUNKVAULT_*`` environment variables.
        environ: Mapping to read instead of ``os.environ``.

    Returns:
        Validated configuration.
    """
    sources: list[ConfigSource] = []
    if path is not None:
        sources.append(FileConfigSource(path, required=True))
    if use_env:
        sources.append(EnvConfigSource(environ=environ))

    merged: dict[str, Any] = {}
    for source in sorted(sources, key=lambda s: s.priority):
        merge_config(merged, source.load())

    logger.debug(f"Loaded configuration from {len(sources)} source(s)")
    return ChunkVaultConfig.from_dict(merged)
