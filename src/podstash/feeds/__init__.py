"""Feed snapshots, reconciliation and republishing for Podstash."""

from podstash.feeds.addressing import address_of, episode_set_signature, media_extension
from podstash.feeds.feed import Feed, FeedState, MediaReport
from podstash.feeds.models import Channel, Episode, MediaReference, ParsedFeed
from podstash.feeds.parser import RSSParser
from podstash.feeds.reconciler import FeedReconciler
from podstash.feeds.snapshots import SnapshotStore
from podstash.feeds.writer import RSSWriter

__all__ = [
    "Feed",
    "FeedState",
    "MediaReport",
    "Channel",
    "Episode",
    "MediaReference",
    "ParsedFeed",
    "RSSParser",
    "RSSWriter",
    "FeedReconciler",
    "SnapshotStore",
    "address_of",
    "episode_set_signature",
    "media_extension",
]
