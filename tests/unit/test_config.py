"""
Tests for plughost.core.config module.
"""

import tempfile
from pathlib import Path

import pytest
from pydantic import ValidationError

from plughost.core.config import (
    LoggingConfig,
    PlugHostConfig,
    PluginConfig,
    PluginPathsConfig,
    get_default_config,
    load_config,
)


class TestLoggingConfig:
    """Tests for LoggingConfig."""

    def test_default_values(self) -> None:
        config = LoggingConfig()
        assert config.level == "INFO"
        assert config.file_enabled is True
        assert config.console_enabled is True
        assert config.json_format is False
        assert config.backup_count == 3

    def test_custom_values(self) -> None:
        config = LoggingConfig(level="DEBUG", json_format=True)
        assert config.level == "DEBUG"
        assert config.json_format is True

    def test_path_expansion(self) -> None:
        config = LoggingConfig(log_directory="~/logs")
        assert "~" not in str(config.log_directory)


class TestPluginConfig:
    """Tests for PluginConfig."""

    def test_default_values(self) -> None:
        config = PluginConfig()
        assert config.package_extension == ".spkg"
        assert config.metadata_file_name == "plugin.json"
        assert config.deletion_marker_name == "NeedDelete.txt"
        assert config.preinstalled_ids == []
        assert config.discovery_workers == 1

    def test_extension_normalized(self) -> None:
        config = PluginConfig(package_extension="SPKG")
        assert config.package_extension == ".spkg"

    def test_discovery_workers_bounds(self) -> None:
        with pytest.raises(ValidationError):
            PluginConfig(discovery_workers=0)


class TestPluginPathsConfig:
    """Tests for PluginPathsConfig."""

    def test_paths_expanded(self) -> None:
        config = PluginPathsConfig(plugins_directory="~/my-plugins")
        assert "~" not in str(config.plugins_directory)
        assert config.plugins_directory.is_absolute()

    def test_plugin_roots_order(self) -> None:
        config = PluginPathsConfig()
        assert config.plugin_roots == [
            config.preinstalled_directory,
            config.plugins_directory,
        ]


class TestPlugHostConfig:
    """Tests for PlugHostConfig."""

    def test_default_config(self) -> None:
        config = PlugHostConfig()
        assert isinstance(config.logging, LoggingConfig)
        assert isinstance(config.paths, PluginPathsConfig)
        assert isinstance(config.plugins, PluginConfig)

    def test_save_and_load(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.json"

            original = PlugHostConfig(
                plugins=PluginConfig(preinstalled_ids=["builtin-ocr"], discovery_workers=4),
            )
            original.save(config_path)

            loaded = PlugHostConfig.load(config_path)

            assert loaded.plugins.preinstalled_ids == ["builtin-ocr"]
            assert loaded.plugins.discovery_workers == 4

    def test_get_default_config(self) -> None:
        assert get_default_config().plugins.metadata_file_name == "plugin.json"

    def test_load_nonexistent(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "nonexistent.json"
            config = PlugHostConfig.load(config_path)
            assert config.plugins.package_extension == ".spkg"

    def test_ensure_directories(self, sample_config: PlugHostConfig) -> None:
        for root in (
            sample_config.paths.preinstalled_directory,
            sample_config.paths.plugins_directory,
            sample_config.paths.settings_directory,
            sample_config.paths.cache_directory,
            sample_config.paths.temp_directory,
        ):
            assert root.is_dir()

    def test_is_preinstalled_id(self) -> None:
        config = PlugHostConfig(plugins=PluginConfig(preinstalled_ids=["builtin-ocr"]))
        assert config.is_preinstalled_id("builtin-ocr")
        assert not config.is_preinstalled_id("third-party")

    def test_load_config_creates_directories(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            config_path = root / "config.json"
            PlugHostConfig(
                logging=LoggingConfig(log_directory=root / "logs"),
                paths=PluginPathsConfig(
                    preinstalled_directory=root / "pre",
                    plugins_directory=root / "plugins",
                    settings_directory=root / "settings",
                    cache_directory=root / "cache",
                    temp_directory=root / "tmp",
                ),
            ).save(config_path)

            config = load_config(config_path)

            assert config.paths.plugins_directory.is_dir()
            assert config.paths.temp_directory.is_dir()
