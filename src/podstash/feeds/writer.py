"""RSS 2.0 serialization of the canonical channel.

All media URLs in the output point at the archive, never at the original
host.
"""

import re

from lxml import etree

from podstash.feeds.models import Channel, Episode, MediaReference
from podstash.feeds.parser import NAMESPACES
from podstash.utils.datetime import format_rfc822

# Characters XML 1.0 does not allow, even escaped
_INVALID_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


def _clean(text: str) -> str:
    return _INVALID_XML_CHARS.sub("", text)


def _ns(prefix: str, tag: str) -> str:
    return f"{{{NAMESPACES[prefix]}}}{tag}"


class RSSWriter:
    """Serializes a Channel into RSS 2.0 bytes."""

    def __init__(self, self_url: str | None = None) -> None:
        """Initialize the writer.

        Args:
            self_url: Public URL of the generated feed (atom:link rel="self")
        """
        self.self_url = self_url

    def to_xml(self, channel: Channel) -> bytes:
        """Serialize a channel.

        Args:
            channel: Canonical channel

        Returns:
            UTF-8 encoded RSS document with XML declaration
        """
        rss = etree.Element("rss", nsmap=NAMESPACES)
        rss.set("version", "2.0")
        node = etree.SubElement(rss, "channel")

        self._text(node, "title", channel.title, cdata=True)
        self._text(node, "link", channel.link)
        self._text(node, "description", channel.description, cdata=True)
        self._text(node, "language", channel.language)
        self._text(node, "copyright", channel.copyright)

        if self.self_url:
            atom_link = etree.SubElement(node, _ns("atom", "link"))
            atom_link.set("href", self.self_url)
            atom_link.set("rel", "self")
            atom_link.set("type", "application/rss+xml")

        self._text(node, _ns("itunes", "author"), channel.author)
        if channel.owner:
            owner = etree.SubElement(node, _ns("itunes", "owner"))
            self._text(owner, _ns("itunes", "name"), channel.owner.name)
            self._text(owner, _ns("itunes", "email"), channel.owner.email)

        if channel.image:
            self._image(node, channel)

        self._text(node, "pubDate", format_rfc822(channel.pub_date))
        self._text(node, "lastBuildDate", format_rfc822(channel.last_build_date))

        for episode in channel.episodes:
            self._item(node, episode)

        return etree.tostring(rss, xml_declaration=True, encoding="UTF-8", pretty_print=True)

    def _image(self, node: etree._Element, channel: Channel) -> None:
        image: MediaReference = channel.image  # type: ignore[assignment]

        element = etree.SubElement(node, "image")
        self._text(element, "url", image.local_url)
        self._text(element, "title", channel.title)
        self._text(element, "link", channel.link)

        etree.SubElement(node, _ns("itunes", "image")).set("href", image.local_url)
        etree.SubElement(node, _ns("googleplay", "image")).set("href", image.local_url)

    def _item(self, node: etree._Element, episode: Episode) -> None:
        item = etree.SubElement(node, "item")
        self._text(item, "title", episode.title, cdata=True)
        self._text(item, "link", episode.link)
        self._text(item, "description", episode.description, cdata=True)

        guid = self._text(item, "guid", episode.guid)
        if guid is not None:
            guid.set("isPermaLink", "false")

        self._text(item, "pubDate", format_rfc822(episode.pub_date))

        enclosure = etree.SubElement(item, "enclosure")
        enclosure.set("url", episode.enclosure.local_url)
        if episode.enclosure.mime_type:
            enclosure.set("type", _clean(episode.enclosure.mime_type))
        if episode.enclosure.length is not None:
            enclosure.set("length", str(episode.enclosure.length))

    def _text(
        self,
        parent: etree._Element,
        tag: str,
        value: str | None,
        cdata: bool = False,
    ) -> etree._Element | None:
        """Append a text element; absent values are omitted."""
        if not value:
            return None

        element = etree.SubElement(parent, tag)
        text = _clean(value)
        # "]]>" cannot appear inside CDATA, plain escaping is used instead
        if cdata and "]]>" not in text:
            element.text = etree.CDATA(text)
        else:
            element.text = text
        return element
