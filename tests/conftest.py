"""Shared fixtures for Podstash tests."""

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import httpx
import pytest

from podstash.download.scheduler import DownloadScheduler

CDN = "https://cdn.example.org"


def rss_item(
    guid: str | None,
    enclosure_url: str | None = None,
    title: str | None = None,
    pub_date: str | None = "Mon, 01 Jan 2024 10:00:00 GMT",
    description: str | None = None,
    enclosure_type: str = "audio/mpeg",
) -> str:
    """Build the XML of one RSS item."""
    if enclosure_url is None and guid is not None:
        enclosure_url = f"{CDN}/{guid}.mp3"

    parts = ["<item>"]
    parts.append(f"<title>{title or f'Episode {guid}'}</title>")
    if guid is not None:
        parts.append(f"<guid>{guid}</guid>")
    if pub_date is not None:
        parts.append(f"<pubDate>{pub_date}</pubDate>")
    if description is not None:
        parts.append(f"<description><![CDATA[{description}]]></description>")
    if enclosure_url:
        parts.append(
            f'<enclosure url="{enclosure_url}" type="{enclosure_type}" length="1234"/>'
        )
    parts.append("</item>")
    return "".join(parts)


def rss_document(
    items: list[str],
    title: str = "Show One",
    image_url: str | None = None,
    owner: tuple[str, str] | None = ("Jane Host", "jane@example.org"),
    pub_date: str | None = "Tue, 02 Jan 2024 10:00:00 GMT",
) -> bytes:
    """Build a complete RSS 2.0 document."""
    channel = [
        f"<title>{title}</title>",
        "<link>https://show1.example.org</link>",
        "<description>A show about things</description>",
        "<language>en</language>",
        "<itunes:author>Jane Host</itunes:author>",
    ]
    if owner is not None:
        channel.append(
            f"<itunes:owner><itunes:name>{owner[0]}</itunes:name>"
            f"<itunes:email>{owner[1]}</itunes:email></itunes:owner>"
        )
    if image_url is not None:
        channel.append(f"<image><url>{image_url}</url><title>{title}</title></image>")
    if pub_date is not None:
        channel.append(f"<pubDate>{pub_date}</pubDate>")

    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<rss version="2.0" xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">'
        f"<channel>{''.join(channel)}{''.join(items)}</channel></rss>"
    ).encode("utf-8")


@dataclass
class MockServer:
    """Serves canned responses through httpx.MockTransport and records requests."""

    routes: dict[str, tuple[int, bytes]] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)

    def serve(self, url: str, body: bytes, status: int = 200) -> None:
        self.routes[url] = (status, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.routes.get(str(request.url), (404, b"not found"))
        return httpx.Response(status, content=body)

    def requested(self, url: str) -> int:
        """Number of requests made to url."""
        return sum(1 for request in self.requests if str(request.url) == url)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def make_item() -> Callable[..., str]:
    """Builder for RSS item XML."""
    return rss_item


@pytest.fixture
def make_rss() -> Callable[..., bytes]:
    """Builder for RSS documents."""
    return rss_document


@pytest.fixture
def server() -> MockServer:
    """Mock HTTP server."""
    return MockServer()


@pytest.fixture
def scheduler(server: MockServer) -> DownloadScheduler:
    """Download scheduler without pacing, talking to the mock server."""
    return DownloadScheduler(delay_seconds=0, client=server.client())


@pytest.fixture
def archive_dir(tmp_path: Path) -> Path:
    """Directory for a test archive."""
    return tmp_path / "archive"
