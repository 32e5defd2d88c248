"""Discovery feed: paginated, epoch-guarded registry searches."""

from modsync.feed.controller import FeedController, SearchContext
from modsync.feed.session import (
    FeedBucket,
    FeedBucketState,
    FeedSession,
    FeedState,
    page_has_more,
    project_key,
)

__all__ = [
    "FeedBucket",
    "FeedBucketState",
    "FeedController",
    "FeedSession",
    "FeedState",
    "SearchContext",
    "page_has_more",
    "project_key",
]
