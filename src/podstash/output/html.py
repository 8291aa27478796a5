"""HTML index generation.

Templates are rendered with jinja2. The templates shipped in the package can
be overridden per archive by placing files with the same names in
``config/templates/``.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, PackageLoader, select_autoescape

from podstash.feeds.models import Channel
from podstash.utils.datetime import EPOCH
from podstash.utils.files import write_atomic

if TYPE_CHECKING:
    from podstash.feeds.feed import Feed

logger = logging.getLogger(__name__)

ARCHIVE_TEMPLATE = "index.html"
FEED_TEMPLATE = "feed.html"


def _format_date(value) -> str:
    if value is None or value == EPOCH:
        return ""
    return value.strftime("%Y-%m-%d")


class HTMLRenderer:
    """Renders the archive and feed index pages."""

    def __init__(self, override_dir: Path | None = None) -> None:
        """Initialize the renderer.

        Args:
            override_dir: Directory searched for templates before the
                built-in ones
        """
        loaders = []
        if override_dir is not None:
            loaders.append(FileSystemLoader(str(override_dir)))
        loaders.append(PackageLoader("podstash", "templates"))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(["html"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["date"] = _format_date

    def base_view(self, base_url: str) -> dict[str, Any]:
        """Variables exposed to every template."""
        return {"base_url": base_url}

    def feed_view(self, feed: "Feed", channel: Channel) -> dict[str, Any]:
        return {
            "name": feed.name,
            "feed_url": feed.local_url,
            "feed_base_url": feed.local_url_base,
            "remote_url": feed.url,
            "channel": channel,
        }

    def render_archive_index(self, base_url: str, feeds: list[tuple["Feed", Channel]]) -> str:
        template = self.env.get_template(ARCHIVE_TEMPLATE)
        return template.render(
            **self.base_view(base_url),
            channels=[self.feed_view(feed, channel) for feed, channel in feeds],
        )

    def render_feed_index(self, feed: "Feed", base_url: str, channel: Channel) -> str:
        template = self.env.get_template(FEED_TEMPLATE)
        return template.render(**self.base_view(base_url), **self.feed_view(feed, channel))

    async def write_archive_index(
        self,
        archive_dir: Path,
        base_url: str,
        feeds: list[tuple["Feed", Channel]],
    ) -> Path:
        path = archive_dir / ARCHIVE_TEMPLATE
        await write_atomic(path, self.render_archive_index(base_url, feeds).encode("utf-8"))
        logger.debug(f"Wrote {path}")
        return path

    async def write_feed_index(self, feed: "Feed", base_url: str, channel: Channel) -> Path:
        path = feed.index_path
        await write_atomic(path, self.render_feed_index(feed, base_url, channel).encode("utf-8"))
        logger.debug(f"Wrote {path}")
        return path
