"""Tests for snapshot reconciliation."""

from pathlib import Path

import pytest

from podstash.feeds.addressing import address_of
from podstash.feeds.parser import RSSParser
from podstash.feeds.reconciler import FeedReconciler, merge_items
from podstash.utils.datetime import EPOCH
from podstash.utils.errors import FeedParseError

FEED_BASE = "https://example.com/pod/show1"


@pytest.fixture
def reconciler(tmp_path: Path) -> FeedReconciler:
    return FeedReconciler(tmp_path / "show1", FEED_BASE)


class TestReconcile:
    """Tests for FeedReconciler.reconcile."""

    def test_single_snapshot(self, reconciler: FeedReconciler, make_rss, make_item) -> None:
        """Test episodes get content-addressed local enclosures."""
        channel = reconciler.reconcile([make_rss([make_item("a")])])

        assert channel.title == "Show One"
        assert len(channel.episodes) == 1
        episode = channel.episodes[0]
        assert episode.guid == "a"
        assert episode.address == "86f7e437faa5a7fce15d1ddcb9eaeaea377667b8"
        assert episode.enclosure.remote_url == "https://cdn.example.org/a.mp3"
        assert episode.enclosure.local_url == (
            f"{FEED_BASE}/audio/86f7e437faa5a7fce15d1ddcb9eaeaea377667b8.mp3"
        )
        assert episode.enclosure.local_path == (
            reconciler.feed_dir / "audio" / "86f7e437faa5a7fce15d1ddcb9eaeaea377667b8.mp3"
        )
        assert episode.enclosure.mime_type == "audio/mpeg"
        assert episode.enclosure.length == 1234

    def test_union_of_snapshots(self, reconciler: FeedReconciler, make_rss, make_item) -> None:
        """Test episodes that left the remote feed are still archived."""
        old = make_rss([make_item("a", pub_date="Mon, 01 Jan 2024 10:00:00 GMT")])
        new = make_rss([make_item("b", pub_date="Tue, 02 Jan 2024 10:00:00 GMT")])

        channel = reconciler.reconcile([new, old])

        assert [episode.guid for episode in channel.episodes] == ["b", "a"]

    def test_first_occurrence_wins(self, reconciler: FeedReconciler, make_rss, make_item) -> None:
        """Test an episode in several snapshots takes the newest snapshot's version."""
        old = make_rss([make_item("a", title="Old title")])
        new = make_rss([make_item("a", title="Fixed title")])

        channel = reconciler.reconcile([new, old])

        assert len(channel.episodes) == 1
        assert channel.episodes[0].title == "Fixed title"

    def test_metadata_from_newest_snapshot(
        self, reconciler: FeedReconciler, make_rss, make_item
    ) -> None:
        old = make_rss([make_item("a")], title="Old name")
        new = make_rss([make_item("a")], title="New name")

        assert reconciler.reconcile([new, old]).title == "New name"

    def test_sorted_newest_first(self, reconciler: FeedReconciler, make_rss, make_item) -> None:
        """Test episodes are sorted by date with undated ones last."""
        content = make_rss(
            [
                make_item("undated", pub_date=None),
                make_item("jan", pub_date="Mon, 01 Jan 2024 10:00:00 GMT"),
                make_item("mar", pub_date="Fri, 01 Mar 2024 10:00:00 GMT"),
            ]
        )

        channel = reconciler.reconcile([content])

        assert [episode.guid for episode in channel.episodes] == ["mar", "jan", "undated"]
        assert channel.episodes[-1].pub_date == EPOCH

    def test_out_of_range_date_sorts_as_epoch(
        self, reconciler: FeedReconciler, make_rss, make_item
    ) -> None:
        """Test a date that cannot be converted to UTC does not fail the feed."""
        content = make_rss(
            [
                make_item("a", pub_date="Fri, 31 Dec 9999 23:00:00 -0500"),
                make_item("b", pub_date="Mon, 01 Jan 2024 10:00:00 GMT"),
            ]
        )

        channel = reconciler.reconcile([content])

        assert [episode.guid for episode in channel.episodes] == ["b", "a"]
        assert channel.episodes[-1].pub_date == EPOCH

    def test_equal_dates_keep_merge_order(
        self, reconciler: FeedReconciler, make_rss, make_item
    ) -> None:
        content = make_rss([make_item("first"), make_item("second"), make_item("third")])

        channel = reconciler.reconcile([content])

        assert [episode.guid for episode in channel.episodes] == ["first", "second", "third"]

    def test_items_without_enclosure_excluded(
        self, reconciler: FeedReconciler, make_rss
    ) -> None:
        content = make_rss(
            [
                "<item><title>Announcement</title><guid>news</guid></item>",
                '<item><guid>a</guid><enclosure url="https://cdn.example.org/a.mp3"/></item>',
            ]
        )

        channel = reconciler.reconcile([content])

        assert [episode.guid for episode in channel.episodes] == ["a"]

    def test_item_without_guid_uses_enclosure_url(
        self, reconciler: FeedReconciler, make_rss, make_item
    ) -> None:
        url = "https://cdn.example.org/noguid.mp3"
        channel = reconciler.reconcile([make_rss([make_item(None, enclosure_url=url)])])

        assert channel.episodes[0].guid == url
        assert channel.episodes[0].address == address_of(url)

    def test_missing_owner_and_image(self, reconciler: FeedReconciler, make_rss) -> None:
        channel = reconciler.reconcile([make_rss([], owner=None)])

        assert channel.owner is None
        assert channel.image is None
        assert channel.episodes == []

    def test_channel_image_addressed_by_url(
        self, reconciler: FeedReconciler, make_rss
    ) -> None:
        image_url = "https://img.example.org/cover.jpg?size=large"
        channel = reconciler.reconcile([make_rss([], image_url=image_url)])

        assert channel.image is not None
        assert channel.image.address == address_of(image_url)
        assert channel.image.local_url == f"{FEED_BASE}/images/{address_of(image_url)}.jpg"

    def test_description_images_resolved(
        self, reconciler: FeedReconciler, make_rss, make_item
    ) -> None:
        image_url = "https://img.example.org/ep.png"
        content = make_rss([make_item("a", description=f'<p>Hi<img src="{image_url}"></p>')])

        episode = reconciler.reconcile([content]).episodes[0]

        assert [image.remote_url for image in episode.images] == [image_url]
        assert image_url not in episode.description
        assert episode.images[0].local_url in episode.description

    def test_relative_description_images_use_feed_url(
        self, tmp_path: Path, make_rss, make_item
    ) -> None:
        """Test relative image sources resolve against the feed URL when items have no link."""
        reconciler = FeedReconciler(
            tmp_path / "show1", FEED_BASE, feed_url="https://feeds.example.org/shows/show1.xml"
        )
        content = make_rss([make_item("a", description='<img src="/img/x.png">')])

        episode = reconciler.reconcile([content]).episodes[0]

        assert [image.remote_url for image in episode.images] == [
            "https://feeds.example.org/img/x.png"
        ]
        assert episode.images[0].address == address_of("https://feeds.example.org/img/x.png")

    def test_relative_description_images_prefer_item_link(
        self, tmp_path: Path, make_rss
    ) -> None:
        reconciler = FeedReconciler(
            tmp_path / "show1", FEED_BASE, feed_url="https://feeds.example.org/show1.xml"
        )
        content = make_rss(
            [
                "<item><guid>a</guid><link>https://show1.example.org/episodes/a/</link>"
                '<description><![CDATA[<img src="cover.png">]]></description>'
                '<enclosure url="https://cdn.example.org/a.mp3"/></item>'
            ]
        )

        episode = reconciler.reconcile([content]).episodes[0]

        assert [image.remote_url for image in episode.images] == [
            "https://show1.example.org/episodes/a/cover.png"
        ]

    def test_relative_description_images_without_base_dropped(
        self, reconciler: FeedReconciler, make_rss, make_item
    ) -> None:
        content = make_rss([make_item("a", description='<p>Hi<img src="/img/x.png"></p>')])

        episode = reconciler.reconcile([content]).episodes[0]

        assert episode.images == []
        assert "<img" not in episode.description
        assert "Hi" in episode.description

    def test_unparseable_snapshot_skipped(
        self, reconciler: FeedReconciler, make_rss, make_item
    ) -> None:
        channel = reconciler.reconcile([b"garbage", make_rss([make_item("a")])])
        assert [episode.guid for episode in channel.episodes] == ["a"]

    def test_no_usable_snapshot_raises(self, reconciler: FeedReconciler) -> None:
        with pytest.raises(FeedParseError, match="No usable snapshots"):
            reconciler.reconcile([])

        with pytest.raises(FeedParseError):
            reconciler.reconcile([b"", b"not xml"])


def test_merge_items_drops_items_without_identity(make_rss) -> None:
    feed = RSSParser().parse(make_rss(["<item><title>nothing</title></item>"]))
    assert merge_items([feed]) == []
