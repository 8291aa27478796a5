"""Immutable, timestamp-named snapshots of a remote feed."""

import time
from pathlib import Path

import aiofiles

from podstash.utils.files import TEMP_SUFFIX

SNAPSHOT_SUFFIX = ".xml"


class SnapshotStore:
    """Stores every fetched copy of one feed.

    Snapshots are named ``<epoch-ms>.xml``. Once committed they are never
    rewritten or deleted; reconciliation reads all of them.
    """

    def __init__(self, directory: Path) -> None:
        """Initialize snapshot store.

        Args:
            directory: Snapshot directory of the feed (created lazily)
        """
        self.directory = directory

    def next_snapshot_path(self) -> Path:
        """Allocate the path for a new snapshot named by the current time.

        Committed snapshots are never overwritten: if a snapshot with the
        current millisecond already exists, the next free one is used.
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        timestamp = time.time_ns() // 1_000_000
        path = self.directory / f"{timestamp}{SNAPSHOT_SUFFIX}"
        while path.exists():
            timestamp += 1
            path = self.directory / f"{timestamp}{SNAPSHOT_SUFFIX}"
        return path

    def snapshot_paths(self) -> list[Path]:
        """List committed snapshots, newest first.

        Ordering uses the numeric timestamp in the file name, since timestamps
        of different widths do not sort lexically. In-progress downloads and
        unrelated files are ignored.

        Returns:
            Snapshot paths sorted by descending timestamp
        """
        if not self.directory.is_dir():
            return []

        snapshots: list[tuple[int, Path]] = []
        for path in self.directory.iterdir():
            if not path.is_file() or path.name.endswith(TEMP_SUFFIX):
                continue
            stem = path.name.split(".")[0]
            if not stem.isdigit():
                continue
            snapshots.append((int(stem), path))

        snapshots.sort(key=lambda entry: entry[0], reverse=True)
        return [path for _, path in snapshots]

    async def read_snapshot(self, path: Path) -> bytes:
        """Read the raw content of a snapshot (async)."""
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def read_all(self) -> list[bytes]:
        """Read every committed snapshot, newest first (async)."""
        return [await self.read_snapshot(path) for path in self.snapshot_paths()]
