"""Archive configuration for Podstash."""

from podstash.config.manager import ConfigManager
from podstash.config.schema import ArchiveSettings, FeedConfig

__all__ = ["ConfigManager", "ArchiveSettings", "FeedConfig"]
