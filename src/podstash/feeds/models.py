"""Data models for snapshots, channels and episodes."""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

from podstash.utils.datetime import EPOCH

# Parsed snapshot schema
#
# One snapshot is parsed once into these models. Every optional element is
# None when absent from the XML.


class ParsedOwner(BaseModel):
    """``itunes:owner`` block."""

    name: str
    email: str


class ParsedEnclosure(BaseModel):
    """``enclosure`` element of an item."""

    url: str | None = None
    type: str | None = None
    length: int | None = None


class ParsedItem(BaseModel):
    """One ``item`` of a snapshot."""

    title: str | None = None
    link: str | None = None
    description: str | None = None
    guid: str | None = None
    pub_date: datetime = EPOCH
    enclosure: ParsedEnclosure | None = None

    @property
    def identity(self) -> str | None:
        """Key used to deduplicate items across snapshots.

        The guid when present, otherwise the enclosure URL.
        """
        if self.guid:
            return self.guid
        if self.enclosure and self.enclosure.url:
            return self.enclosure.url
        return None


class ParsedChannel(BaseModel):
    """Channel-level metadata of a snapshot."""

    title: str | None = None
    description: str | None = None
    link: str | None = None
    language: str | None = None
    author: str | None = None
    copyright: str | None = None
    owner: ParsedOwner | None = None
    image_url: str | None = None
    pub_date: datetime = EPOCH
    last_build_date: datetime = EPOCH


class ParsedFeed(BaseModel):
    """Typed result of parsing one snapshot."""

    channel: ParsedChannel = Field(default_factory=ParsedChannel)
    items: list[ParsedItem] = Field(default_factory=list)

    @property
    def guids(self) -> list[str]:
        """Identities of the items that are archived: those with an enclosure URL."""
        return [
            item.identity
            for item in self.items
            if item.identity and item.enclosure is not None and item.enclosure.url
        ]


# Canonical (reconciled) models


class MediaReference(BaseModel):
    """A remote media file and its content-addressed local copy."""

    remote_url: str
    address: str
    extension: str = ""
    local_path: Path
    local_url: str
    mime_type: str | None = None
    length: int | None = None

    @property
    def local_name(self) -> str:
        """File name inside the media directory."""
        return f"{self.address}{self.extension}"


class Owner(BaseModel):
    """Channel owner."""

    name: str
    email: str


class Episode(BaseModel):
    """Represents a single archived episode."""

    title: str | None = None
    link: str | None = None
    description: str = ""  # Sanitized HTML
    guid: str
    address: str
    pub_date: datetime = EPOCH
    enclosure: MediaReference
    images: list[MediaReference] = Field(default_factory=list)


class Channel(BaseModel):
    """Canonical channel reconciled from every snapshot of a feed."""

    title: str | None = None
    description: str | None = None
    link: str | None = None
    language: str | None = None
    author: str | None = None
    copyright: str | None = None
    owner: Owner | None = None
    image: MediaReference | None = None
    pub_date: datetime = EPOCH
    last_build_date: datetime = EPOCH
    episodes: list[Episode] = Field(default_factory=list)
