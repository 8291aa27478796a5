"""Configuration manager for loading and saving archive config."""

from pathlib import Path

import yaml
from pydantic import ValidationError

from podstash.config.schema import ArchiveSettings
from podstash.utils.errors import (
    ArchiveExistsError,
    ArchiveNotFoundError,
    InvalidConfigError,
)

CONFIG_DIR = "config"
BASE_URL_FILE = "base.url"
SETTINGS_FILE = "podstash.yaml"


class ConfigManager:
    """Manages the configuration files of one archive."""

    def __init__(self, archive_dir: Path) -> None:
        """Initialize the config manager.

        Args:
            archive_dir: Root directory of the archive
        """
        self.archive_dir = archive_dir
        self.config_dir = archive_dir / CONFIG_DIR
        self.base_url_file = self.config_dir / BASE_URL_FILE
        self.settings_file = self.config_dir / SETTINGS_FILE

    def is_initialized(self) -> bool:
        """Check whether the archive has a base URL file."""
        return self.base_url_file.exists()

    def require_initialized(self) -> None:
        """Raise unless the archive has a base URL file.

        Raises:
            ArchiveNotFoundError: If the base URL file doesn't exist
        """
        if not self.is_initialized():
            raise ArchiveNotFoundError(
                f"No archive found at {self.archive_dir} "
                f"(missing {CONFIG_DIR}/{BASE_URL_FILE}). Run 'podstash init' first."
            )

    def load_settings(self) -> ArchiveSettings:
        """Load and validate archive settings.

        Returns:
            Validated ArchiveSettings instance

        Raises:
            ArchiveNotFoundError: If the base URL file doesn't exist
            InvalidConfigError: If the base URL or settings file is invalid
        """
        self.require_initialized()

        base_url = self.base_url_file.read_text().strip()

        data: dict = {}
        if self.settings_file.exists():
            try:
                with open(self.settings_file) as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise InvalidConfigError(
                    f"Invalid configuration in {self.settings_file}: {e}"
                ) from e
            if not isinstance(data, dict):
                raise InvalidConfigError(
                    f"Invalid configuration in {self.settings_file}: expected a mapping"
                )

        # base.url is authoritative even if the yaml file repeats it
        data["base_url"] = base_url

        try:
            return ArchiveSettings(**data)
        except ValidationError as e:
            raise InvalidConfigError(
                f"Invalid configuration in {self.config_dir}: {e}"
            ) from e

    def new_settings(self, base_url: str) -> ArchiveSettings:
        """Validate the settings of an archive about to be created, writing nothing.

        Raises:
            ArchiveExistsError: If the archive is already initialized
            InvalidConfigError: If the base URL is not an http(s) URL
        """
        if self.is_initialized():
            raise ArchiveExistsError(f"Archive at {self.archive_dir} is already initialized")

        try:
            return ArchiveSettings(base_url=base_url)
        except ValidationError as e:
            raise InvalidConfigError(f"Invalid base URL '{base_url}': {e}") from e

    def initialize(self, base_url: str) -> ArchiveSettings:
        """Create the config directory and write the base URL.

        Args:
            base_url: Public URL under which the archive is served

        Returns:
            Settings of the new archive

        Raises:
            ArchiveExistsError: If the archive is already initialized
            InvalidConfigError: If the base URL is not an http(s) URL
        """
        settings = self.new_settings(base_url)

        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.base_url_file.write_text(settings.base_url)
        return settings

    def save_settings(self, settings: ArchiveSettings) -> None:
        """Save the optional settings (everything except the base URL).

        Args:
            settings: ArchiveSettings instance to save
        """
        data = settings.model_dump(mode="python", exclude={"base_url"})

        self.config_dir.mkdir(parents=True, exist_ok=True)

        with open(self.settings_file, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
