"""A tracked feed and its update cycle.

On disk a feed is a directory inside the archive::

    <name>/config/feed.url      remote RSS URL, written once
    <name>/snapshots/<ms>.xml   immutable copies of the remote feed
    <name>/audio/<address>.<ext>
    <name>/images/<address>[.<ext>]
    <name>/feed.xml             generated feed, rewritten every cycle
    <name>/index.html           generated page, rewritten every cycle
"""

import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from podstash.download.scheduler import DownloadScheduler
from podstash.feeds.addressing import address_from_filename, episode_set_signature
from podstash.feeds.models import Channel, MediaReference
from podstash.feeds.parser import RSSParser
from podstash.feeds.reconciler import AUDIO_DIR, IMAGES_DIR, FeedReconciler
from podstash.feeds.snapshots import SnapshotStore
from podstash.feeds.writer import RSSWriter
from podstash.utils.errors import (
    DownloadError,
    DuplicateFeedError,
    FeedNotFoundError,
    FeedParseError,
)
from podstash.utils.files import TEMP_SUFFIX, write_atomic

logger = logging.getLogger(__name__)


class FeedState(str, Enum):
    """Phases of a feed update cycle."""

    IDLE = "idle"
    FETCHING_SNAPSHOT = "fetching-snapshot"
    RECONCILING = "reconciling"
    FETCHING_MEDIA = "fetching-media"
    PUBLISHING = "publishing"


@dataclass
class MediaJob:
    """One pending media download."""

    label: str
    reference: MediaReference


@dataclass
class MediaReport:
    """Outcome of the media phase of one cycle."""

    downloaded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    cached: int = 0


class Feed:
    """A remote podcast feed tracked in an archive."""

    PATH_CONFIG = "config"
    PATH_FEED_URL = "feed.url"
    PATH_SNAPSHOTS = "snapshots"
    PATH_RSS = "feed.xml"
    PATH_INDEX_HTML = "index.html"

    def __init__(self, archive_dir: Path, base_url: str, name: str, url: str) -> None:
        """Initialize a feed.

        Args:
            archive_dir: Root directory of the archive
            base_url: Public URL of the archive
            name: Feed name (directory name)
            url: Remote RSS URL
        """
        self.name = name
        self.url = url
        self.path = archive_dir / name
        self.local_url_base = f"{base_url.rstrip('/')}/{name}"
        self.local_url = f"{self.local_url_base}/{self.PATH_RSS}"
        self.state = FeedState.IDLE

        self.parser = RSSParser()
        self.snapshots = SnapshotStore(self.path / self.PATH_SNAPSHOTS)
        self.reconciler = FeedReconciler(
            self.path, self.local_url_base, self.parser, name=name, feed_url=url
        )
        self.writer = RSSWriter(self_url=self.local_url)

    @classmethod
    def load(cls, archive_dir: Path, base_url: str, name: str) -> "Feed":
        """Load an existing feed from the archive.

        Raises:
            FeedNotFoundError: If the feed directory or its URL file is missing
        """
        url_file = archive_dir / name / cls.PATH_CONFIG / cls.PATH_FEED_URL
        if not url_file.is_file():
            raise FeedNotFoundError(f"Feed '{name}' not found")
        return cls(archive_dir, base_url, name, url_file.read_text().strip())

    @classmethod
    def create(cls, archive_dir: Path, base_url: str, name: str, url: str) -> "Feed":
        """Create the directory of a new feed and record its URL.

        Raises:
            DuplicateFeedError: If a directory with that name already exists
        """
        feed_dir = archive_dir / name
        try:
            feed_dir.mkdir()
        except FileExistsError as e:
            raise DuplicateFeedError(f"Feed {name} already exists") from e

        try:
            config_dir = feed_dir / cls.PATH_CONFIG
            config_dir.mkdir()
            (config_dir / cls.PATH_FEED_URL).write_text(url)
        except OSError:
            shutil.rmtree(feed_dir, ignore_errors=True)
            raise

        return cls(archive_dir, base_url, name, url)

    @property
    def audio_dir(self) -> Path:
        return self.path / AUDIO_DIR

    @property
    def images_dir(self) -> Path:
        return self.path / IMAGES_DIR

    @property
    def rss_path(self) -> Path:
        return self.path / self.PATH_RSS

    @property
    def index_path(self) -> Path:
        return self.path / self.PATH_INDEX_HTML

    def _enter(self, state: FeedState) -> None:
        logger.debug(f"{self.name}: {self.state.value} -> {state.value}")
        self.state = state

    async def update(self, scheduler: DownloadScheduler, just_mp3: bool = False) -> MediaReport:
        """Run one full update cycle.

        Args:
            scheduler: Shared download scheduler
            just_mp3: Skip fetching a new snapshot and only fetch missing media

        Returns:
            Report of the media phase
        """
        try:
            if not just_mp3:
                self._enter(FeedState.FETCHING_SNAPSHOT)
                await self.fetch_snapshot(scheduler)

            self._enter(FeedState.RECONCILING)
            channel = await self.channel()

            self._enter(FeedState.FETCHING_MEDIA)
            report = await self.fetch_media(scheduler, channel)

            self._enter(FeedState.PUBLISHING)
            await self.save_feed(channel)

            return report
        finally:
            self._enter(FeedState.IDLE)

    async def fetch_snapshot(self, scheduler: DownloadScheduler) -> bool:
        """Fetch the remote feed as a new snapshot.

        The snapshot is only kept when its set of episodes differs from every
        existing snapshot. Fetch errors are logged, not raised: the cycle goes
        on with the snapshots already stored.

        Returns:
            True if a new snapshot was committed
        """
        try:
            is_new = await scheduler.fetch(
                f"{self.name} RSS feed",
                self.url,
                self.snapshots.next_snapshot_path(),
                validator=self._is_new_snapshot,
            )
        except DownloadError as e:
            logger.error(f"{self.name}: unable to fetch feed, using stored snapshots: {e}")
            return False

        if is_new:
            logger.info(f"{self.name}: stored new snapshot")
        return is_new

    async def _is_new_snapshot(self, temp_path: Path) -> bool:
        """Validator accepting a fetched feed only if its episode set is new."""
        content = await self.snapshots.read_snapshot(temp_path)

        try:
            incoming = episode_set_signature(self.parser.parse(content).guids)
        except FeedParseError as e:
            logger.warning(f"{self.name}: fetched feed is not valid RSS, discarding: {e}")
            return False

        for path in self.snapshots.snapshot_paths():
            try:
                existing = self.parser.parse(await self.snapshots.read_snapshot(path))
            except FeedParseError:
                continue
            if episode_set_signature(existing.guids) == incoming:
                return False

        return True

    async def channel(self) -> Channel:
        """Reconcile all stored snapshots into the canonical channel."""
        return self.reconciler.reconcile(await self.snapshots.read_all())

    def cached_addresses(self) -> set[str]:
        """Addresses of media files already in the audio and images directories."""
        addresses: set[str] = set()
        for directory in (self.audio_dir, self.images_dir):
            if not directory.is_dir():
                continue
            for path in directory.iterdir():
                if path.is_file() and not path.name.endswith(TEMP_SUFFIX):
                    addresses.add(address_from_filename(path.name))
        return addresses

    def media_references(self, channel: Channel) -> list[tuple[str, MediaReference]]:
        """Labelled media references of the channel in download order.

        Order: channel image, then each episode's enclosure followed by the
        images of its description, in canonical episode order.
        """
        references: list[tuple[str, MediaReference]] = []
        if channel.image:
            references.append((f"{self.name} cover art", channel.image))

        for episode in channel.episodes:
            title = episode.title or episode.guid
            references.append((f"{self.name} - {title}", episode.enclosure))
            for image in episode.images:
                references.append((f"{self.name} - {title} (image)", image))

        return references

    def media_jobs(self, channel: Channel, cached: set[str]) -> list[MediaJob]:
        """Build the ordered list of media still to download, one job per address."""
        jobs: list[MediaJob] = []
        queued = set(cached)

        for label, reference in self.media_references(channel):
            if reference.address in queued:
                continue
            queued.add(reference.address)
            jobs.append(MediaJob(label, reference))

        return jobs

    async def fetch_media(self, scheduler: DownloadScheduler, channel: Channel) -> MediaReport:
        """Download every media file of the channel not cached yet.

        Jobs run strictly one after another; a failed job is logged and the
        remaining ones still run.
        """
        cached = self.cached_addresses()
        jobs = self.media_jobs(channel, cached)
        # Files of episodes no longer in the channel are not counted
        referenced = {reference.address for _, reference in self.media_references(channel)}
        report = MediaReport(cached=len(referenced & cached))

        if jobs:
            logger.info(f"{self.name}: {len(jobs)} media file(s) to download")

        for job in jobs:
            try:
                await scheduler.fetch(job.label, job.reference.remote_url, job.reference.local_path)
            except DownloadError as e:
                logger.error(f"{self.name}: {e}")
                report.failed.append(job.reference.address)
            else:
                report.downloaded.append(job.reference.address)

        return report

    async def save_feed(self, channel: Channel) -> None:
        """Write the generated feed atomically."""
        await write_atomic(self.rss_path, self.writer.to_xml(channel))

