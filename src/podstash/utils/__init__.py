"""Utility functions and helpers for Podstash."""

from podstash.utils.datetime import EPOCH, format_rfc822, now_utc, parse_rfc822
from podstash.utils.errors import (
    ArchiveExistsError,
    ArchiveLockedError,
    ArchiveNotFoundError,
    ConfigError,
    ContentAddressError,
    DownloadError,
    DuplicateFeedError,
    FeedError,
    FeedNotFoundError,
    FeedParseError,
    InvalidConfigError,
    InvalidFeedNameError,
    NetworkError,
    PodstashError,
)

__all__ = [
    # Errors
    "PodstashError",
    "ConfigError",
    "InvalidConfigError",
    "ArchiveNotFoundError",
    "ArchiveExistsError",
    "ArchiveLockedError",
    "FeedError",
    "FeedNotFoundError",
    "DuplicateFeedError",
    "InvalidFeedNameError",
    "FeedParseError",
    "NetworkError",
    "DownloadError",
    "ContentAddressError",
    # Dates
    "EPOCH",
    "now_utc",
    "parse_rfc822",
    "format_rfc822",
]
