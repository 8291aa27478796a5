"""Tests for archive configuration management."""

from pathlib import Path

import pytest
import yaml

from podstash.config.manager import ConfigManager
from podstash.config.schema import ArchiveSettings
from podstash.utils.errors import ArchiveExistsError, ArchiveNotFoundError, InvalidConfigError


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_paths(self, tmp_path: Path) -> None:
        manager = ConfigManager(tmp_path)

        assert manager.config_dir == tmp_path / "config"
        assert manager.base_url_file == tmp_path / "config" / "base.url"
        assert manager.settings_file == tmp_path / "config" / "podstash.yaml"

    def test_initialize_writes_normalized_base_url(self, tmp_path: Path) -> None:
        """Test init strips whitespace and the trailing slash."""
        manager = ConfigManager(tmp_path)

        settings = manager.initialize(" https://example.com/pod/ ")

        assert settings.base_url == "https://example.com/pod"
        assert manager.base_url_file.read_text() == "https://example.com/pod"
        assert manager.is_initialized()

    def test_initialize_twice_raises(self, tmp_path: Path) -> None:
        manager = ConfigManager(tmp_path)
        manager.initialize("https://example.com/pod")

        with pytest.raises(ArchiveExistsError):
            manager.initialize("https://example.com/other")

    def test_initialize_invalid_url_raises(self, tmp_path: Path) -> None:
        manager = ConfigManager(tmp_path)

        with pytest.raises(InvalidConfigError):
            manager.initialize("not a url")

        assert not manager.is_initialized()

    def test_new_settings_writes_nothing(self, tmp_path: Path) -> None:
        """Test validating a new archive's settings touches no files."""
        manager = ConfigManager(tmp_path / "archive")

        settings = manager.new_settings("https://example.com/pod/")

        assert settings.base_url == "https://example.com/pod"
        assert not (tmp_path / "archive").exists()

        with pytest.raises(InvalidConfigError):
            manager.new_settings("nope")

    def test_require_initialized(self, tmp_path: Path) -> None:
        manager = ConfigManager(tmp_path)

        with pytest.raises(ArchiveNotFoundError):
            manager.require_initialized()

        manager.initialize("https://example.com/pod")
        manager.require_initialized()

    def test_load_missing_archive_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ArchiveNotFoundError, match="podstash init"):
            ConfigManager(tmp_path).load_settings()

    def test_load_defaults(self, tmp_path: Path) -> None:
        """Test settings default when there is no settings file."""
        manager = ConfigManager(tmp_path)
        manager.initialize("https://example.com/pod")

        settings = manager.load_settings()

        assert settings.base_url == "https://example.com/pod"
        assert settings.download_delay_seconds == 10.0
        assert settings.request_timeout_seconds == 60.0
        assert settings.user_agent == "podstash"
        assert settings.log_level == "INFO"

    def test_load_settings_file(self, tmp_path: Path) -> None:
        """Test optional settings are read and base.url wins over the file."""
        manager = ConfigManager(tmp_path)
        manager.initialize("https://example.com/pod")
        manager.settings_file.write_text(
            yaml.safe_dump(
                {
                    "base_url": "https://elsewhere.org",
                    "download_delay_seconds": 2.5,
                    "user_agent": "my-archiver/1.0",
                }
            )
        )

        settings = manager.load_settings()

        assert settings.base_url == "https://example.com/pod"
        assert settings.download_delay_seconds == 2.5
        assert settings.user_agent == "my-archiver/1.0"

    def test_invalid_yaml_raises(self, tmp_path: Path) -> None:
        manager = ConfigManager(tmp_path)
        manager.initialize("https://example.com/pod")
        manager.settings_file.write_text("download_delay_seconds: [unclosed")

        with pytest.raises(InvalidConfigError):
            manager.load_settings()

    def test_non_mapping_yaml_raises(self, tmp_path: Path) -> None:
        manager = ConfigManager(tmp_path)
        manager.initialize("https://example.com/pod")
        manager.settings_file.write_text("- just\n- a list\n")

        with pytest.raises(InvalidConfigError, match="expected a mapping"):
            manager.load_settings()

    def test_invalid_values_raise(self, tmp_path: Path) -> None:
        manager = ConfigManager(tmp_path)
        manager.initialize("https://example.com/pod")
        manager.settings_file.write_text("download_delay_seconds: -1\n")

        with pytest.raises(InvalidConfigError):
            manager.load_settings()

    def test_save_settings_round_trip(self, tmp_path: Path) -> None:
        """Test saved settings load back and base_url stays out of the yaml."""
        manager = ConfigManager(tmp_path)
        manager.initialize("https://example.com/pod")
        settings = ArchiveSettings(
            base_url="https://example.com/pod", download_delay_seconds=1.0, log_level="DEBUG"
        )

        manager.save_settings(settings)

        assert "base_url" not in yaml.safe_load(manager.settings_file.read_text())
        assert manager.load_settings() == settings
