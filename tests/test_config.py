"""Tests for configuration loading.

This module tests:
- Environment and file configuration sources
- Merging and priority
- Typed validation
- Store creation from settings
"""

from __future__ import annotations

import json

import pytest

from chunkvault.infrastructure.config import (
    ChunkVaultConfig,
    ConfigSourceError,
    ConfigValidationError,
    EnvConfigSource,
    FileConfigSource,
    load_config,
    merge_config,
)
from chunkvault.stores.filesystem import FileSystemChunkStore
from chunkvault.stores.memory import MemoryChunkStore


# =============================================================================
# Sources
# =============================================================================


class TestEnvConfigSource:
    """Tests for environment variable configuration."""

    def test_nested_keys(self):
        source = EnvConfigSource(
            environ={
                "CHUNKVAULT_BUFFER_SIZE": "65536",
                "CHUNKVAULT_STORE__PATH": "/data/chunks",
                "CHUNKVAULT_STORE__VERIFY_DIGESTS": "false",
                "OTHER_VAR": "ignored",
            }
        )

        assert source.load() == {
            "buffer_size": 65536,
            "store": {"path": "/data/chunks", "verify_digests": False},
        }

    @pytest.mark.parametrize(
        "raw,parsed",
        [("true", True), ("YES", True), ("off", False), ("42", 42), ("debug", "debug")],
    )
    def test_value_parsing(self, raw, parsed):
        source = EnvConfigSource(environ={"CHUNKVAULT_VALUE": raw})
        assert source.load() == {"value": parsed}

    def test_custom_prefix(self):
        source = EnvConfigSource(prefix="CV_", environ={"CV_LOGGING__LEVEL": "info"})
        assert source.load() == {"logging": {"level": "info"}}


class TestFileConfigSource:
    """Tests for file configuration."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "chunkvault.yaml"
        path.write_text("store:\n  backend: memory\n")
        assert FileConfigSource(path).load() == {"store": {"backend": "memory"}}

    def test_json(self, tmp_path):
        path = tmp_path / "chunkvault.json"
        path.write_text(json.dumps({"buffer_size": 1024}))
        assert FileConfigSource(path).load() == {"buffer_size": 1024}

    def test_toml(self, tmp_path):
        path = tmp_path / "chunkvault.toml"
        path.write_text('[logging]\nlevel = "debug"\n')
        assert FileConfigSource(path).load() == {"logging": {"level": "debug"}}

    def test_missing_optional(self, tmp_path):
        assert FileConfigSource(tmp_path / "missing.yaml").load() == {}

    def test_missing_required(self, tmp_path):
        with pytest.raises(ConfigSourceError):
            FileConfigSource(tmp_path / "missing.yaml", required=True).load()

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "chunkvault.ini"
        path.write_text("[store]")
        with pytest.raises(ConfigSourceError):
            FileConfigSource(path).load()

    def test_malformed(self, tmp_path):
        path = tmp_path / "chunkvault.json"
        path.write_text("{not json")
        with pytest.raises(ConfigSourceError):
            FileConfigSource(path).load()

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "chunkvault.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigSourceError):
            FileConfigSource(path).load()


def test_merge_config():
    base = {"store": {"backend": "filesystem", "path": "a"}, "buffer_size": 1}
    merge_config(base, {"store": {"path": "b"}, "logging": {"level": "info"}})
    assert base == {
        "store": {"backend": "filesystem", "path": "b"},
        "buffer_size": 1,
        "logging": {"level": "info"},
    }


# =============================================================================
# Typed Configuration
# =============================================================================


class TestChunkVaultConfig:
    """Tests for typed configuration."""

    def test_defaults(self):
        config = ChunkVaultConfig()
        assert config.buffer_size == 8192
        assert config.store.backend == "filesystem"
        assert config.store.verify_digests is True
        assert config.logging.level == "warning"
        assert config.validate() == []

    def test_from_dict(self):
        config = ChunkVaultConfig.from_dict(
            {
                "buffer_size": 4096,
                "store": {"backend": "MEMORY", "strict_digests": True},
                "logging": {"level": "Debug", "format": "json"},
                "unknown": "ignored",
            }
        )

        assert config.buffer_size == 4096
        assert config.store.backend == "memory"
        assert config.store.strict_digests is True
        assert config.logging.level == "debug"
        assert config.logging.format == "json"

    @pytest.mark.parametrize(
        "data,message",
        [
            ({"buffer_size": 0}, "buffer_size must be positive"),
            ({"buffer_size": "big"}, "buffer_size must be int"),
            ({"buffer_size": True}, "buffer_size must be int"),
            ({"store": {"backend": "s3"}}, "store.backend"),
            ({"store": {"verify_digests": "yes"}}, "store.verify_digests must be bool"),
            ({"store": "memory"}, "store must be a mapping"),
            ({"logging": {"level": "loud"}}, "logging.level"),
            ({"logging": {"format": "xml"}}, "logging.format"),
        ],
    )
    def test_validation_errors(self, data, message):
        with pytest.raises(ConfigValidationError) as exc_info:
            ChunkVaultConfig.from_dict(data)
        assert any(message in error for error in exc_info.value.errors)

    def test_to_dict_roundtrip(self):
        config = ChunkVaultConfig.from_dict({"store": {"backend": "memory", "path": "x"}})
        assert ChunkVaultConfig.from_dict(config.to_dict()) == config

    def test_create_memory_store(self):
        config = ChunkVaultConfig.from_dict(
            {"store": {"backend": "memory", "verify_digests": False}}
        )
        store = config.store.create()
        assert isinstance(store, MemoryChunkStore)
        assert store.config.verify_digests is False

    def test_create_filesystem_store(self, tmp_path):
        config = ChunkVaultConfig.from_dict({"store": {"path": str(tmp_path / "chunks")}})
        store = config.store.create()
        assert isinstance(store, FileSystemChunkStore)
        assert store.root == tmp_path / "chunks"


# =============================================================================
# load_config
# =============================================================================


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults_without_sources(self):
        assert load_config(use_env=False) == ChunkVaultConfig()

    def test_env_overrides_file(self, tmp_path):
        path = tmp_path / "chunkvault.yaml"
        path.write_text("buffer_size: 1024\nstore:\n  backend: memory\n")

        config = load_config(path, environ={"CHUNKVAULT_BUFFER_SIZE": "2048"})

        assert config.buffer_size == 2048
        assert config.store.backend == "memory"

    def test_explicit_path_required(self, tmp_path):
        with pytest.raises(ConfigSourceError):
            load_config(tmp_path / "missing.yaml", use_env=False)

    def test_invalid_env_value(self):
        with pytest.raises(ConfigValidationError):
            load_config(environ={"CHUNKVAULT_LOGGING__FORMAT": "xml"})
