"""Tests for the unified config schema and the fallback adapter.

Covers the Pydantic models in config_schema.py (UnifiedConfig,
VaultConfig, SyncConfig, LoggingConfig), the build_config() factory,
and to_fallbacks(), which feeds YAML values into load_config().
"""

import pytest
from pydantic import ValidationError

from outline_notes.config import load_config
from outline_notes.config_schema import (
    LoggingConfig,
    SyncConfig,
    UnifiedConfig,
    VaultConfig,
    build_config,
    to_fallbacks,
)
from outline_notes.sync.models import ConflictStrategy

# ---------------------------------------------------------------------------
# UnifiedConfig tests
# ---------------------------------------------------------------------------


class TestUnifiedConfig:
    """Tests for the top-level UnifiedConfig model."""

    def test_zero_config_defaults(self):
        config = UnifiedConfig()
        assert config.vault.path is None
        assert config.vault.snapshot is None
        assert config.sync.watch_interval == 5.0
        assert config.sync.conflict_strategy is ConflictStrategy.FILE_WINS
        assert config.logging.level == "INFO"

    def test_unknown_sections_ignored(self):
        config = UnifiedConfig(
            vault={"path": "/notes"}, plugins={"calendar": True}
        )
        assert config.vault.path == "/notes"
        assert not hasattr(config, "plugins")

    def test_frozen_model_prevents_mutation(self):
        config = UnifiedConfig()
        with pytest.raises(ValidationError):
            config.vault = VaultConfig(path="/x")


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class TestSyncConfig:
    """Tests for SyncConfig field constraints."""

    def test_strategy_from_string(self):
        assert (
            SyncConfig(conflict_strategy="merge").conflict_strategy
            is ConflictStrategy.MERGE
        )

    @pytest.mark.parametrize(
        "fields",
        [
            {"conflict_strategy": "newest"},
            {"watch_interval": 0},
            {"export_debounce": -1},
            {"indent_size": 0},
            {"indent_size": 9},
            {"max_parallel_io": 0},
            {"max_parallel_io": 65},
        ],
    )
    def test_rejects_invalid_values(self, fields):
        with pytest.raises(ValidationError):
            SyncConfig(**fields)

    def test_zero_debounce_allowed(self):
        assert SyncConfig(export_debounce=0).export_debounce == 0


class TestLoggingConfig:
    """Tests for LoggingConfig."""

    def test_defaults(self):
        config = LoggingConfig()
        assert config.level == "INFO"
        assert config.file is None

    def test_custom_values(self):
        config = LoggingConfig(level="DEBUG", file="/tmp/notes.log")
        assert config.level == "DEBUG"
        assert config.file == "/tmp/notes.log"


# ---------------------------------------------------------------------------
# build_config() tests
# ---------------------------------------------------------------------------


class TestBuildConfig:
    """Tests for the build_config() factory."""

    def test_empty_dict_returns_defaults(self):
        assert build_config({}) == UnifiedConfig()

    def test_partial_sections_fill_defaults(self):
        config = build_config({"sync": {"indent_size": 4}})
        assert config.sync.indent_size == 4
        assert config.sync.watch_interval == 5.0
        assert config.vault.path is None

    def test_invalid_raw_dict_raises(self):
        with pytest.raises(ValidationError):
            build_config({"sync": {"watch_interval": "often"}})


# ---------------------------------------------------------------------------
# to_fallbacks() tests
# ---------------------------------------------------------------------------


class TestToFallbacks:
    """Tests for flattening UnifiedConfig into load_config() fallbacks."""

    def test_zero_config_is_empty(self):
        assert to_fallbacks(UnifiedConfig()) == {}

    def test_only_set_values_included(self):
        unified = build_config(
            {
                "vault": {"path": "/notes"},
                "sync": {"conflict_strategy": "merge", "indent_size": 4},
            }
        )
        assert to_fallbacks(unified) == {
            "path": "/notes",
            "conflict_strategy": "merge",
            "indent_size": 4,
        }

    def test_feeds_load_config(self, tmp_path, monkeypatch):
        for key in ("OUTLINE_VAULT", "OUTLINE_INDENT_SIZE", "OUTLINE_DEBUG"):
            monkeypatch.delenv(key, raising=False)
        unified = build_config(
            {
                "vault": {"path": str(tmp_path)},
                "sync": {"indent_size": 4, "debug": True},
            }
        )
        config = load_config(yaml_fallbacks=to_fallbacks(unified))
        assert config.vault_path == str(tmp_path)
        assert config.indent_size == 4
        assert config.debug is True
        assert config.watch_interval == 5.0
