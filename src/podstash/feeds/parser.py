"""RSS snapshot parser using lxml.

Raw snapshot bytes are parsed once into the typed ``ParsedFeed`` schema.
Missing elements become ``None`` and malformed dates become the epoch; only a
document that is not XML at all (or has no ``channel``) is an error.
"""

import logging

from lxml import etree

from podstash.feeds.models import (
    ParsedChannel,
    ParsedEnclosure,
    ParsedFeed,
    ParsedItem,
    ParsedOwner,
)
from podstash.utils.datetime import parse_rfc822
from podstash.utils.errors import FeedParseError

logger = logging.getLogger(__name__)

NAMESPACES = {
    "itunes": "http://www.itunes.com/dtds/podcast-1.0.dtd",
    "googleplay": "http://www.google.com/schemas/play-podcasts/1.0",
    "atom": "http://www.w3.org/2005/Atom",
    "content": "http://purl.org/rss/1.0/modules/content/",
}


def _text(parent: etree._Element, path: str) -> str | None:
    """Stripped text of the first matching child, or None if empty/missing."""
    node = parent.find(path, NAMESPACES)
    if node is None:
        return None
    text = "".join(node.itertext()).strip()
    return text or None


def _attr(parent: etree._Element, path: str, name: str) -> str | None:
    node = parent.find(path, NAMESPACES)
    if node is None:
        return None
    value = (node.get(name) or "").strip()
    return value or None


def _int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class RSSParser:
    """Parses RSS 2.0 snapshots into ``ParsedFeed`` models."""

    def __init__(self) -> None:
        """Initialize the RSS parser.

        Entity resolution and network access are disabled; ``recover`` lets
        slightly broken feeds (stray ``&``, bad encodings) still parse.
        """
        self._xml_parser = etree.XMLParser(
            recover=True,
            resolve_entities=False,
            no_network=True,
            huge_tree=True,
        )

    def parse(self, content: bytes) -> ParsedFeed:
        """Parse one snapshot.

        Args:
            content: Raw bytes of the snapshot

        Returns:
            ParsedFeed with channel metadata and items

        Raises:
            FeedParseError: If the content is not an RSS document
        """
        if not content or not content.strip():
            raise FeedParseError("Empty feed document")

        try:
            root = etree.fromstring(content, parser=self._xml_parser)
        except etree.XMLSyntaxError as e:
            raise FeedParseError(f"Invalid XML: {e}") from e

        if root is None:
            raise FeedParseError("Invalid XML: no root element")

        channel = root.find("channel") if root.tag == "rss" else None
        if channel is None:
            raise FeedParseError(f"Not an RSS 2.0 document (root element <{root.tag}>)")

        items = [self._parse_item(node) for node in channel.findall("item")]
        return ParsedFeed(channel=self._parse_channel(channel), items=items)

    def _parse_channel(self, channel: etree._Element) -> ParsedChannel:
        owner = None
        owner_name = _text(channel, "itunes:owner/itunes:name")
        owner_email = _text(channel, "itunes:owner/itunes:email")
        if owner_name and owner_email:
            owner = ParsedOwner(name=owner_name, email=owner_email)

        image_url = _text(channel, "image/url") or _attr(channel, "itunes:image", "href")

        return ParsedChannel(
            title=_text(channel, "title"),
            description=_text(channel, "description") or _text(channel, "itunes:summary"),
            link=_text(channel, "link"),
            language=_text(channel, "language"),
            author=_text(channel, "itunes:author"),
            copyright=_text(channel, "copyright"),
            owner=owner,
            image_url=image_url,
            pub_date=parse_rfc822(_text(channel, "pubDate")),
            last_build_date=parse_rfc822(_text(channel, "lastBuildDate")),
        )

    def _parse_item(self, item: etree._Element) -> ParsedItem:
        enclosure = None
        node = item.find("enclosure")
        if node is not None:
            enclosure = ParsedEnclosure(
                url=(node.get("url") or "").strip() or None,
                type=(node.get("type") or "").strip() or None,
                length=_int((node.get("length") or "").strip() or None),
            )

        description = _text(item, "description") or _text(item, "content:encoded")

        return ParsedItem(
            title=_text(item, "title"),
            link=_text(item, "link"),
            description=description,
            guid=_text(item, "guid"),
            pub_date=parse_rfc822(_text(item, "pubDate")),
            enclosure=enclosure,
        )
