"""Reconciliation of feed snapshots into one canonical channel.

Every snapshot of a feed is parsed; channel metadata comes from the newest
one while episodes are merged across all of them, deduplicated by guid and
sorted newest first. Media references are resolved to content-addressed local
paths and URLs.
"""

import logging
from collections.abc import Sequence
from pathlib import Path

from podstash.feeds.addressing import (
    DEFAULT_AUDIO_EXTENSION,
    address_of,
    media_extension,
)
from podstash.feeds.models import (
    Channel,
    Episode,
    MediaReference,
    Owner,
    ParsedEnclosure,
    ParsedFeed,
    ParsedItem,
)
from podstash.feeds.parser import RSSParser
from podstash.feeds.sanitize import sanitize_description
from podstash.utils.errors import ContentAddressError, FeedParseError

logger = logging.getLogger(__name__)

AUDIO_DIR = "audio"
IMAGES_DIR = "images"


class FeedReconciler:
    """Builds the canonical Channel of one feed from its snapshots.

    Example:
        >>> reconciler = FeedReconciler(Path("archive/show1"), "https://example.com/pod/show1")
        >>> channel = reconciler.reconcile([newest_bytes, older_bytes])
        >>> channel.episodes[0].enclosure.local_url
        'https://example.com/pod/show1/audio/86f7e437faa5a7fce15d1ddcb9eaeaea377667b8.mp3'
    """

    def __init__(
        self,
        feed_dir: Path,
        local_url_base: str,
        parser: RSSParser | None = None,
        name: str | None = None,
        feed_url: str | None = None,
    ) -> None:
        """Initialize the reconciler.

        Args:
            feed_dir: Directory of the feed inside the archive
            local_url_base: Public URL of the feed directory
            parser: RSS parser (creates one if None)
            name: Feed name used in log messages
            feed_url: Remote feed URL, the base for relative links in items without one
        """
        self.feed_dir = feed_dir
        self.local_url_base = local_url_base.rstrip("/")
        self.parser = parser or RSSParser()
        self.name = name or feed_dir.name
        self.feed_url = feed_url

    def reconcile(self, snapshots: Sequence[bytes]) -> Channel:
        """Reconcile snapshots, newest first, into a Channel.

        Args:
            snapshots: Raw snapshot contents ordered newest first

        Returns:
            Canonical channel

        Raises:
            FeedParseError: If none of the snapshots can be parsed
        """
        parsed = self.parse_snapshots(snapshots)
        if not parsed:
            raise FeedParseError(f"No usable snapshots for feed '{self.name}'")

        channel = self.channel_metadata(parsed[0])

        for item in merge_items(parsed, feed_name=self.name):
            try:
                channel.episodes.append(self.resolve_episode(item))
            except ContentAddressError as e:
                logger.error(f"{self.name}: skipping episode {item.title!r}: {e}")

        return channel

    def parse_snapshots(self, snapshots: Sequence[bytes]) -> list[ParsedFeed]:
        """Parse every snapshot, skipping (and logging) unparseable ones."""
        parsed: list[ParsedFeed] = []
        for index, content in enumerate(snapshots):
            try:
                parsed.append(self.parser.parse(content))
            except FeedParseError as e:
                logger.warning(f"{self.name}: ignoring unparseable snapshot #{index}: {e}")
        return parsed

    def channel_metadata(self, feed: ParsedFeed) -> Channel:
        """Project channel-level metadata of one parsed snapshot."""
        source = feed.channel

        image = None
        if source.image_url:
            try:
                image = self.image_reference(source.image_url)
            except ContentAddressError as e:
                logger.warning(f"{self.name}: ignoring channel image: {e}")

        owner = None
        if source.owner:
            owner = Owner(name=source.owner.name, email=source.owner.email)

        return Channel(
            title=source.title,
            description=source.description,
            link=source.link,
            language=source.language,
            author=source.author,
            copyright=source.copyright,
            owner=owner,
            image=image,
            pub_date=source.pub_date,
            last_build_date=source.last_build_date,
        )

    def resolve_episode(self, item: ParsedItem) -> Episode:
        """Turn a merged item into an Episode with local media references.

        Raises:
            ContentAddressError: If the item's guid cannot be addressed
            FeedParseError: If the item has no identity or no enclosure
        """
        guid = item.identity
        if guid is None or item.enclosure is None or not item.enclosure.url:
            raise FeedParseError(f"Item {item.title!r} has no guid or enclosure URL")

        address = address_of(guid)
        description, images = sanitize_description(
            item.description,
            self.image_reference,
            base_url=item.link or self.feed_url,
        )

        return Episode(
            title=item.title,
            link=item.link,
            description=description,
            guid=guid,
            address=address,
            pub_date=item.pub_date,
            enclosure=self.enclosure_reference(address, item.enclosure),
            images=images,
        )

    def enclosure_reference(self, address: str, enclosure: ParsedEnclosure) -> MediaReference:
        """Resolve an enclosure, addressed by its episode's guid."""
        remote_url = enclosure.url or ""
        extension = media_extension(remote_url, DEFAULT_AUDIO_EXTENSION)
        return self._reference(
            AUDIO_DIR,
            remote_url,
            address,
            extension,
            mime_type=enclosure.type,
            length=enclosure.length,
        )

    def image_reference(self, remote_url: str) -> MediaReference:
        """Resolve an image, addressed by its URL."""
        remote_url = remote_url.strip()
        return self._reference(
            IMAGES_DIR,
            remote_url,
            address_of(remote_url),
            media_extension(remote_url),
        )

    def _reference(
        self,
        directory: str,
        remote_url: str,
        address: str,
        extension: str,
        mime_type: str | None = None,
        length: int | None = None,
    ) -> MediaReference:
        local_name = f"{address}{extension}"
        return MediaReference(
            remote_url=remote_url,
            address=address,
            extension=extension,
            local_path=self.feed_dir / directory / local_name,
            local_url=f"{self.local_url_base}/{directory}/{local_name}",
            mime_type=mime_type,
            length=length,
        )


def merge_items(feeds: Sequence[ParsedFeed], feed_name: str = "") -> list[ParsedItem]:
    """Merge the items of several snapshots.

    Items are concatenated in snapshot order, items without an enclosure URL
    are dropped, the first occurrence of each guid is kept, and the result is
    sorted by publication date, newest first. Equal dates keep merge order.

    Args:
        feeds: Parsed snapshots, newest first
        feed_name: Feed name used in log messages

    Returns:
        Deduplicated, sorted items
    """
    seen: set[str] = set()
    merged: list[ParsedItem] = []
    dropped = 0

    for feed in feeds:
        for item in feed.items:
            identity = item.identity
            if identity is None or item.enclosure is None or not item.enclosure.url:
                dropped += 1
                continue
            if identity in seen:
                continue
            seen.add(identity)
            merged.append(item)

    if dropped:
        logger.warning(f"{feed_name}: ignored {dropped} item(s) without an enclosure URL")

    return sorted(merged, key=lambda item: item.pub_date, reverse=True)
