"""Tests for unified config schema and adapter functions.

Tests the Pydantic models in config_schema.py (UnifiedConfig, RemoteConfig,
SyncSettings, LoggingConfig, CollectionConfig), the build_config() factory,
and the to_legacy_config() adapter.
"""

import pytest
from pydantic import ValidationError

from template_sync.config import Config
from template_sync.config_schema import (
    DEFAULT_TRACKED_FILES,
    CollectionConfig,
    LoggingConfig,
    RemoteConfig,
    SyncSettings,
    UnifiedConfig,
    build_config,
    to_legacy_config,
)

# ---------------------------------------------------------------------------
# UnifiedConfig tests
# ---------------------------------------------------------------------------


class TestUnifiedConfig:
    """Tests for the top-level UnifiedConfig model."""

    def test_empty_produces_valid_defaults(self):
        config = UnifiedConfig()
        assert config.remote.url is None
        assert config.remote.timeout == 30
        assert config.sync.tracked_files == DEFAULT_TRACKED_FILES
        assert config.collections == {}
        assert config.logging.level == "INFO"

    def test_full_config_with_all_sections(self):
        config = UnifiedConfig(
            remote=RemoteConfig(url="https://api.example.com", token="t", insecure=True),
            sync=SyncSettings(templates_root="tpl", max_parallel_syncs=8),
            logging=LoggingConfig(level="DEBUG", file="/tmp/sync.log"),
            collections={
                "net-1": CollectionConfig(
                    name="Network One",
                    templates=[{"id": "a1", "name": "Banner"}],
                )
            },
        )
        assert config.remote.insecure is True
        assert config.sync.templates_root == "tpl"
        assert config.collections["net-1"].templates[0].id == "a1"
        assert config.logging.file == "/tmp/sync.log"

    def test_unknown_sections_ignored(self):
        """Unknown sections are ignored (forward compatibility)."""
        config = UnifiedConfig(
            **{"remote": {"url": "https://api.example.com"}, "future": {"k": 1}}
        )
        assert config.remote.url == "https://api.example.com"
        assert not hasattr(config, "future")

    def test_frozen_model_prevents_mutation(self):
        config = UnifiedConfig()
        with pytest.raises(ValidationError):
            config.remote = RemoteConfig(url="https://changed.example.com")


# ---------------------------------------------------------------------------
# RemoteConfig tests
# ---------------------------------------------------------------------------


class TestRemoteConfig:
    """Tests for RemoteConfig section model."""

    def test_all_fields_optional_zero_config(self):
        config = RemoteConfig()
        assert config.url is None
        assert config.token is None
        assert config.insecure is False
        assert config.debug is False

    @pytest.mark.parametrize("timeout", [0, 301])
    def test_timeout_bounds(self, timeout):
        with pytest.raises(ValidationError):
            RemoteConfig(timeout=timeout)


# ---------------------------------------------------------------------------
# SyncSettings tests
# ---------------------------------------------------------------------------


class TestSyncSettings:
    """Tests for SyncSettings section model."""

    def test_defaults(self):
        settings = SyncSettings()
        assert settings.templates_root == "templates"
        assert settings.hash_file == ".pull-hashes.json"
        assert settings.backup_dir == ".backup"
        assert settings.diff_max_lines == 2000
        assert settings.max_parallel_syncs == 4
        assert settings.max_file_size_mb == 10

    def test_custom_tracked_files(self):
        settings = SyncSettings(tracked_files=["index.html", "main.css", "meta.json"])
        assert settings.tracked_files[0] == "index.html"

    def test_tracked_files_need_three_roles(self):
        with pytest.raises(ValidationError, match="markup, style and metadata"):
            SyncSettings(tracked_files=["a.html", "b.css"])

    def test_tracked_files_rejects_duplicates(self):
        with pytest.raises(ValidationError, match="duplicates"):
            SyncSettings(tracked_files=["a.html", "a.html", "c.json"])

    @pytest.mark.parametrize("bad", ["/etc/passwd", "../escape.css", ""])
    def test_tracked_files_must_stay_inside_artifact(self, bad):
        with pytest.raises(ValidationError):
            SyncSettings(tracked_files=["a.html", bad, "c.json"])

    def test_parallel_upper_bound(self):
        with pytest.raises(ValidationError):
            SyncSettings(max_parallel_syncs=33)

    def test_diff_max_lines_positive(self):
        with pytest.raises(ValidationError):
            SyncSettings(diff_max_lines=0)


# ---------------------------------------------------------------------------
# CollectionConfig / LoggingConfig tests
# ---------------------------------------------------------------------------


class TestCollectionConfig:
    def test_templates_default_empty(self):
        assert CollectionConfig().templates == []

    def test_template_entry_requires_id(self):
        with pytest.raises(ValidationError):
            CollectionConfig(templates=[{"name": "No id"}])


class TestLoggingConfig:
    def test_defaults(self):
        config = LoggingConfig()
        assert config.level == "INFO"
        assert config.file is None

    def test_frozen_model(self):
        config = LoggingConfig()
        with pytest.raises(ValidationError):
            config.level = "DEBUG"


# ---------------------------------------------------------------------------
# Adapter tests: to_legacy_config
# ---------------------------------------------------------------------------


class TestToLegacyConfig:
    """Tests for the to_legacy_config() adapter function."""

    def test_full_unified_config_produces_config(self):
        unified = UnifiedConfig(
            remote=RemoteConfig(
                url="https://api.example.com",
                token="secret",
                insecure=True,
                debug=True,
                timeout=60,
            ),
        )
        legacy = to_legacy_config(unified)
        assert isinstance(legacy, Config)
        assert legacy.api_url == "https://api.example.com"
        assert legacy.token == "secret"
        assert legacy.insecure is True
        assert legacy.debug is True
        assert legacy.timeout == 60

    def test_cli_overrides_win_over_config(self):
        unified = UnifiedConfig(
            remote=RemoteConfig(url="https://config.example.com", token="config"),
        )
        legacy = to_legacy_config(
            unified,
            cli_overrides={"url": "https://cli.example.com", "token": "cli"},
        )
        assert legacy.api_url == "https://cli.example.com"
        assert legacy.token == "cli"

    def test_partial_cli_overrides(self):
        unified = UnifiedConfig(
            remote=RemoteConfig(url="https://config.example.com", token="config"),
        )
        legacy = to_legacy_config(
            unified, cli_overrides={"url": "https://cli.example.com"}
        )
        assert legacy.api_url == "https://cli.example.com"
        assert legacy.token == "config"

    def test_zero_config_with_no_cli_overrides(self):
        legacy = to_legacy_config(UnifiedConfig())
        assert legacy.api_url == ""
        assert legacy.token == ""
        assert legacy.insecure is False


# ---------------------------------------------------------------------------
# build_config factory tests
# ---------------------------------------------------------------------------


class TestBuildConfig:
    """Tests for the build_config() factory function."""

    def test_empty_dict_returns_defaults(self):
        config = build_config({})
        assert isinstance(config, UnifiedConfig)
        assert config.remote.url is None

    def test_partial_sections_fill_defaults(self):
        config = build_config({"remote": {"url": "https://api.example.com"}})
        assert config.remote.url == "https://api.example.com"
        assert config.sync.templates_root == "templates"
        assert config.logging.level == "INFO"

    def test_none_section_treated_as_absent(self):
        """An empty YAML mapping key (``sync:``) yields defaults."""
        config = build_config({"sync": None, "collections": None})
        assert config.sync == SyncSettings()
        assert config.collections == {}

    def test_collections_from_raw_dict(self):
        raw = {
            "collections": {
                "net-1": {
                    "name": "Network One",
                    "templates": [
                        {"id": "a1", "name": "Banner"},
                        {"id": "a2", "name": "Skyscraper"},
                    ],
                }
            }
        }
        config = build_config(raw)
        ids = [t.id for t in config.collections["net-1"].templates]
        assert ids == ["a1", "a2"]
