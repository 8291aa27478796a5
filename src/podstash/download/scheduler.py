"""Per-host download scheduling.

All outbound fetches of a command go through one ``DownloadScheduler``.
Downloads to the same host are serialized and spaced by a minimum delay,
measured from the end of one download to the start of the next; downloads to
different hosts run independently.

Every download is streamed to ``<destination>.download`` and renamed into
place only when complete (and accepted by the optional validator), so an
interrupted transfer never leaves a partial file at the destination.
"""

import asyncio
import logging
import os
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

import aiofiles
import httpx

from podstash.config.schema import DEFAULT_USER_AGENT
from podstash.utils.errors import DownloadError
from podstash.utils.files import temp_path_for

logger = logging.getLogger(__name__)

# Called with the temp path of a finished transfer; True commits it
Validator = Callable[[Path], Awaitable[bool]]


@dataclass
class HostQueue:
    """Scheduling state of one remote host."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    last_completed: float | None = None  # time.monotonic() of last finished download


class DownloadScheduler:
    """Serializes and throttles downloads per remote host.

    Example:
        >>> async with DownloadScheduler(delay_seconds=10) as scheduler:
        ...     changed = await scheduler.fetch(
        ...         "show1 RSS feed", "https://rss.example.org/feed.xml", Path("1700000000000.xml")
        ...     )
    """

    DEFAULT_DELAY_SECONDS = 10.0
    DEFAULT_TIMEOUT_SECONDS = 60.0
    CHUNK_SIZE = 64 * 1024

    def __init__(
        self,
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            delay_seconds: Minimum gap between downloads to the same host
            user_agent: User-Agent header sent with every request
            timeout_seconds: Connect/read/write timeout of each request
            client: HTTP client to use (one is created and owned if None)
        """
        self.delay_seconds = delay_seconds
        self.user_agent = user_agent
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._owns_client = client is None
        self._hosts: dict[str, HostQueue] = {}

    async def __aenter__(self) -> "DownloadScheduler":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this scheduler created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                timeout=httpx.Timeout(self.timeout_seconds),
            )
        return self._client

    def host_queue(self, host: str) -> HostQueue:
        """Get or create the queue of a host."""
        if host not in self._hosts:
            self._hosts[host] = HostQueue()
        return self._hosts[host]

    def last_completed(self, host: str) -> float | None:
        """Monotonic time the last download to host finished, if any."""
        queue = self._hosts.get(host)
        return queue.last_completed if queue else None

    async def fetch(
        self,
        label: str,
        url: str,
        destination: Path,
        validator: Validator | None = None,
    ) -> bool:
        """Download url to destination once the host's turn comes.

        Args:
            label: Human readable name used in logs
            url: Remote URL
            destination: Final path of the file
            validator: Optional async check of the finished temp file

        Returns:
            The validator's verdict (True when no validator is given). False
            means the download was discarded and destination is untouched.

        Raises:
            DownloadError: On connection errors, timeouts and non-2xx responses
        """
        url = url.strip()
        host = urlparse(url).netloc.lower()
        if not host:
            raise DownloadError(f"Unable to fetch {label}: no host in URL {url!r}", url)

        queue = self.host_queue(host)
        async with queue.lock:
            await self._wait_for_turn(host, queue)
            try:
                return await self._download(label, url, destination, validator)
            finally:
                # Failures count too, so a broken host is not hammered
                queue.last_completed = time.monotonic()

    async def _wait_for_turn(self, host: str, queue: HostQueue) -> None:
        if queue.last_completed is None:
            return

        remaining = queue.last_completed + self.delay_seconds - time.monotonic()
        if remaining > 0:
            logger.debug(f"Waiting {remaining:.2f}s before next request to {host}")
            await asyncio.sleep(remaining)

    async def _download(
        self,
        label: str,
        url: str,
        destination: Path,
        validator: Validator | None,
    ) -> bool:
        temp_path = temp_path_for(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Downloading {label}\n\t{url}")

        committed = False
        try:
            await self._stream_to_file(label, url, temp_path)

            accepted = True if validator is None else await validator(temp_path)
            if accepted:
                await asyncio.to_thread(os.replace, temp_path, destination)
                committed = True
            else:
                logger.info(f"Discarded {label}: unchanged")

            return accepted

        finally:
            if not committed:
                temp_path.unlink(missing_ok=True)

    async def _stream_to_file(self, label: str, url: str, temp_path: Path) -> None:
        try:
            async with self.client.stream(
                "GET", url, headers={"User-Agent": self.user_agent}
            ) as response:
                if not response.is_success:
                    raise DownloadError(
                        f"Unable to fetch {label}: HTTP {response.status_code}",
                        url,
                        status_code=response.status_code,
                    )

                async with aiofiles.open(temp_path, "wb") as f:
                    async for chunk in response.aiter_bytes(self.CHUNK_SIZE):
                        await f.write(chunk)

        except httpx.TimeoutException as e:
            raise DownloadError(f"Timed out fetching {label}: {e}", url) from e
        except httpx.HTTPError as e:
            raise DownloadError(f"Unable to fetch {label}: {e}", url) from e
