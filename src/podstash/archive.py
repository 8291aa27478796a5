"""A podcast archive.

An archive is a directory holding several tracked feeds plus archive-wide
configuration. It is laid out so that it can be served over HTTP as is: each
feed exposes a generated ``feed.xml`` and ``index.html``, and the archive root
an ``index.html`` listing every feed. The base URL is the public URL the
directory is served under.
"""

import asyncio
import fcntl
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from pydantic import ValidationError

from podstash.config.manager import CONFIG_DIR, ConfigManager
from podstash.config.schema import ArchiveSettings, FeedConfig
from podstash.download.scheduler import DownloadScheduler
from podstash.feeds.feed import Feed, MediaReport
from podstash.feeds.models import Channel
from podstash.output.html import HTMLRenderer
from podstash.utils.errors import (
    ArchiveLockedError,
    DuplicateFeedError,
    FeedNotFoundError,
    InvalidConfigError,
    InvalidFeedNameError,
)

logger = logging.getLogger(__name__)

LOCK_FILE = ".lock"


@contextmanager
def archive_lock(archive_dir: Path) -> Iterator[None]:
    """Hold an exclusive advisory lock on an archive directory.

    The lock is not waited for: a second process gets ``ArchiveLockedError``
    immediately.

    Raises:
        ArchiveLockedError: If another process holds the lock
    """
    config_dir = archive_dir / CONFIG_DIR
    config_dir.mkdir(parents=True, exist_ok=True)

    with open(config_dir / LOCK_FILE, "a") as handle:
        try:
            fcntl.flock(handle, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as e:
            raise ArchiveLockedError(
                f"Unable to acquire lock on archive {archive_dir}. Is another instance running?"
            ) from e

        try:
            yield
        finally:
            fcntl.flock(handle, fcntl.LOCK_UN)


class Archive:
    """A directory of tracked feeds served under one base URL."""

    def __init__(self, path: Path, settings: ArchiveSettings) -> None:
        """Initialize an archive.

        Use ``Archive.create`` or ``Archive.load`` rather than calling this
        directly.

        Args:
            path: Root directory of the archive
            settings: Archive settings (base URL, download pacing)
        """
        self.path = path
        self.settings = settings
        self.renderer = HTMLRenderer(path / CONFIG_DIR / "templates")

    @property
    def base_url(self) -> str:
        return self.settings.base_url

    @classmethod
    def create(cls, path: Path, base_url: str) -> "Archive":
        """Initialize a new archive on disk.

        Raises:
            ArchiveExistsError: If the directory already holds an archive
            InvalidConfigError: If base_url is not an http(s) URL
        """
        settings = ConfigManager(path).initialize(base_url)
        logger.info(f"Initialized podcast archive under {path}")
        return cls(path, settings)

    @classmethod
    def load(cls, path: Path) -> "Archive":
        """Load an existing archive.

        Raises:
            ArchiveNotFoundError: If there is no base URL file
            InvalidConfigError: If the configuration is invalid
        """
        return cls(path, ConfigManager(path).load_settings())

    @classmethod
    @contextmanager
    def locked(cls, path: Path, base_url: str | None = None) -> Iterator["Archive"]:
        """Open (or create, when base_url is given) an archive under its lock.

        Example:
            >>> with Archive.locked(Path("~/podcasts")) as archive:
            ...     asyncio.run(archive.update())

        Raises:
            ArchiveNotFoundError: If opening a directory that holds no archive
            ArchiveExistsError: If creating over an existing archive
            InvalidConfigError: If base_url is not an http(s) URL
            ArchiveLockedError: If another process holds the lock
        """
        # Taking the lock creates config/, so reject bad input before that
        manager = ConfigManager(path)
        if base_url is None:
            manager.require_initialized()
        else:
            manager.new_settings(base_url)

        with archive_lock(path):
            if base_url is None:
                yield cls.load(path)
            else:
                yield cls.create(path, base_url)

    def scheduler(self) -> DownloadScheduler:
        """Create a download scheduler configured from the archive settings."""
        return DownloadScheduler(
            delay_seconds=self.settings.download_delay_seconds,
            user_agent=self.settings.user_agent,
            timeout_seconds=self.settings.request_timeout_seconds,
        )

    def feeds(self) -> list[Feed]:
        """Return the feeds of the archive, sorted by name."""
        feeds = []
        for entry in sorted(self.path.iterdir(), key=lambda p: p.name):
            if not entry.is_dir() or entry.name == CONFIG_DIR:
                continue
            try:
                feeds.append(Feed.load(self.path, self.base_url, entry.name))
            except FeedNotFoundError:
                logger.warning(f"Ignoring directory {entry.name}: no feed URL file")
        return feeds

    def get_feed(self, name: str) -> Feed:
        """Load one feed by name.

        Raises:
            FeedNotFoundError: If no such feed exists
        """
        return Feed.load(self.path, self.base_url, name)

    def new_feed(self, name: str, url: str) -> Feed:
        """Add a new feed to the archive.

        The name should be unique and safe for file systems. The URL is the
        remote RSS feed URL to be tracked.

        Raises:
            InvalidFeedNameError: If the name is reserved or unsafe
            DuplicateFeedError: If a feed with this name exists
        """
        try:
            config = FeedConfig(name=name, url=url)  # type: ignore[arg-type]
        except ValidationError as e:
            fields = {str(error["loc"][0]) for error in e.errors() if error["loc"]}
            message = "; ".join(error["msg"] for error in e.errors())
            if "name" in fields:
                raise InvalidFeedNameError(message) from e
            raise InvalidConfigError(f"Invalid feed URL '{url}': {message}") from e

        if (self.path / config.name).exists():
            raise DuplicateFeedError(f"Feed {name} already exists")

        feed = Feed.create(self.path, self.base_url, config.name, url.strip())
        logger.info(f"Added podcast {name} to archive")
        return feed

    async def update(
        self,
        just_mp3: bool = False,
        scheduler: DownloadScheduler | None = None,
    ) -> dict[str, MediaReport | Exception]:
        """Update every feed concurrently.

        One feed failing never affects the others.

        Args:
            just_mp3: Only fetch missing media, do not fetch new snapshots
            scheduler: Scheduler to use (one is created from settings if None)

        Returns:
            Per feed name, the media report or the exception that ended its cycle
        """
        feeds = self.feeds()
        owned = scheduler is None
        scheduler = scheduler or self.scheduler()

        async def update_one(feed: Feed) -> MediaReport | Exception:
            logger.info(f"Updating {feed.name}")
            try:
                return await feed.update(scheduler, just_mp3=just_mp3)
            except Exception as e:
                logger.error(f"Error encountered updating {feed.name}: {e}")
                logger.debug(f"{feed.name}: update failed", exc_info=True)
                return e

        try:
            results = await asyncio.gather(*[update_one(feed) for feed in feeds])
        finally:
            if owned:
                await scheduler.aclose()

        logger.info("Finished updating feeds")
        return {feed.name: result for feed, result in zip(feeds, results)}

    async def channels(self) -> list[tuple[Feed, Channel]]:
        """Canonical channel of every feed that has one."""
        pairs: list[tuple[Feed, Channel]] = []
        for feed in self.feeds():
            try:
                pairs.append((feed, await feed.channel()))
            except Exception as e:
                logger.error(f"Unable to read {feed.name}: {e}")
        return pairs

    async def update_html(self) -> None:
        """Generate the archive index and every feed's index page."""
        pairs = await self.channels()

        await self.renderer.write_archive_index(self.path, self.base_url, pairs)
        for feed, channel in pairs:
            try:
                await self.renderer.write_feed_index(feed, self.base_url, channel)
            except Exception as e:
                logger.error(f"Error encountered generating HTML for {feed.name}: {e}")
