"""Custom exceptions for Podstash."""


class PodstashError(Exception):
    """Base exception for all Podstash errors."""

    pass


class ConfigError(PodstashError):
    """Configuration-related errors."""

    pass


class InvalidConfigError(ConfigError):
    """Invalid configuration data."""

    pass


class ArchiveNotFoundError(ConfigError):
    """Archive directory or its base URL file is missing."""

    pass


class ArchiveExistsError(ConfigError):
    """Archive has already been initialized."""

    pass


class ArchiveLockedError(PodstashError):
    """Another process holds the archive lock."""

    pass


class FeedError(PodstashError):
    """Feed management errors."""

    pass


class FeedNotFoundError(FeedError):
    """Feed not found in the archive."""

    pass


class DuplicateFeedError(FeedError):
    """Feed already exists."""

    pass


class InvalidFeedNameError(FeedError):
    """Feed name is reserved or not usable as a directory name."""

    pass


class FeedParseError(FeedError):
    """RSS feed parsing errors."""

    pass


class NetworkError(PodstashError):
    """Network-related errors."""

    pass


class DownloadError(NetworkError):
    """A download failed (connection error, timeout or non-2xx status)."""

    def __init__(self, message: str, url: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ContentAddressError(PodstashError):
    """A value could not be turned into a content address."""

    def __init__(self, value: object, reason: str) -> None:
        super().__init__(f"Unable to compute content address of {value!r}: {reason}")
        self.value = value
