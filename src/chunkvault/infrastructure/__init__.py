"""Configuration and logging infrastructure."""

from chunkvault.infrastructure.config import (
    ChunkVaultConfig,
    ConfigError,
    ConfigSourceError,
    ConfigValidationError,
    EnvConfigSource,
    FileConfigSource,
    LoggingSettings,
    StoreSettings,
    load_config,
)
from chunkvault.infrastructure.logging import (
    TRACE,
    LogConfig,
    LogLevel,
    configure_logging,
    reset_logging,
)

__all__ = [
    # Configuration
    "ChunkVaultConfig",
    "ConfigError",
    "ConfigSourceError",
    "ConfigValidationError",
    "EnvConfigSource",
    "FileConfigSource",
    "LoggingSettings",
    "StoreSettings",
    "load_config",
    # Logging
    "TRACE",
    "LogConfig",
    "LogLevel",
    "configure_logging",
    "reset_logging",
]
