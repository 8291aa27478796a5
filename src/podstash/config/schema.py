"""Configuration schema models using Pydantic."""

import re
from typing import Literal

from pydantic import BaseModel, Field, HttpUrl, TypeAdapter, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

DEFAULT_USER_AGENT = "podstash"

# Feed names become directory names and URL path segments
FEED_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
# Files and directories the archive itself keeps in its root
RESERVED_FEED_NAMES = frozenset({"config", "index.html", "index.html.download"})

_http_url = TypeAdapter(HttpUrl)


class ArchiveSettings(BaseModel):
    """Settings for one archive directory.

    ``base_url`` lives in ``config/base.url``; everything else is optional and
    read from ``config/podstash.yaml``.
    """

    base_url: str
    download_delay_seconds: float = Field(default=10.0, ge=0)
    request_timeout_seconds: float = Field(default=60.0, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    log_level: LogLevel = "INFO"

    @field_validator("base_url")
    @classmethod
    def _normalize_base_url(cls, value: str) -> str:
        value = value.strip()
        _http_url.validate_python(value)
        return value.rstrip("/")


class FeedConfig(BaseModel):
    """Configuration for a single tracked feed."""

    name: str
    url: HttpUrl

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if value in RESERVED_FEED_NAMES:
            raise ValueError(f'The name "{value}" is reserved')
        if not FEED_NAME_PATTERN.match(value):
            raise ValueError(
                f'"{value}" is not a valid feed name '
                "(use letters, digits, '.', '_' and '-')"
            )
        return value
