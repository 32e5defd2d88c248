"""
Mutable feed state for the discovery surfaces.

A :class:`FeedSession` owns both result buckets plus the continuation flag
they share. Every response is tagged with the epoch of the bucket it was
issued for; a response whose epoch is no longer current is dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from modsync.models import RegistryProject, SearchPage

FeedBucketName = Literal["search", "popular"]


def project_key(project: RegistryProject, fallback_index: int = 0) -> str:
    """Identity used to de-duplicate hits: id, else slug, else title/author/position."""
    key = project.key
    if key:
        return key
    title = (project.title or "").strip().lower()
    author = (project.author or "").strip().lower()
    return f"{title}::{author}::{fallback_index}"


def page_has_more(
    raw_hit_count: int,
    page_size: int,
    next_offset: int,
    total_hits: int | None,
) -> bool:
    """A page signals more results only when it is full and the declared total is not reached."""
    if raw_hit_count < page_size:
        return False
    return total_hits is None or next_offset < total_hits


@dataclass(frozen=True)
class FeedBucketState:
    results: tuple[RegistryProject, ...]
    offset: int
    has_more: bool
    loading: bool
    error: str | None
    epoch: int


@dataclass(frozen=True)
class FeedState:
    """Snapshot handed to subscribers after every change."""

    search: FeedBucketState
    popular: FeedBucketState
    loading_more: bool
    popular_mode: bool

    @property
    def active(self) -> FeedBucketState:
        return self.popular if self.popular_mode else self.search

    @property
    def can_load_more(self) -> bool:
        return self.active.has_more


@dataclass
class FeedBucket:
    name: FeedBucketName
    results: list[RegistryProject] = field(default_factory=list)
    offset: int = 0
    has_more: bool = True
    epoch: int = 0
    error: str | None = None
    loading: bool = False
    query: str = ""
    categories: tuple[str, ...] = ()
    _keys: set[str] = field(default_factory=set, repr=False)

    def begin(self, query: str = "", categories: tuple[str, ...] = ()) -> int:
        """Start a new result set and return its epoch."""
        self.epoch += 1
        self.results = []
        self._keys = set()
        self.offset = 0
        self.has_more = True
        self.error = None
        self.loading = True
        self.query = query
        self.categories = categories
        return self.epoch

    def clear(self, *, has_more: bool = True) -> None:
        self.epoch += 1
        self.results = []
        self._keys = set()
        self.offset = 0
        self.has_more = has_more
        self.error = None
        self.loading = False

    def is_current(self, epoch: int) -> bool:
        return epoch == self.epoch

    def apply_page(self, page: SearchPage, *, requested_offset: int, page_size: int) -> None:
        """Append the page's unseen hits and advance the offset by the raw hit count."""
        for index, hit in enumerate(page.hits):
            key = project_key(hit, len(self.results) + index)
            if key in self._keys:
                continue
            self._keys.add(key)
            self.results.append(hit)

        next_offset = requested_offset + len(page.hits)
        self.offset = next_offset
        self.has_more = page_has_more(len(page.hits), page_size, next_offset, page.total_hits)
        self.error = None

    def snapshot(self) -> FeedBucketState:
        return FeedBucketState(
            results=tuple(self.results),
            offset=self.offset,
            has_more=self.has_more,
            loading=self.loading,
            error=self.error,
            epoch=self.epoch,
        )


@dataclass
class FeedSession:
    search: FeedBucket = field(default_factory=lambda: FeedBucket("search"))
    popular: FeedBucket = field(default_factory=lambda: FeedBucket("popular"))
    loading_more: bool = False
    _continuation: int = 0

    def bucket(self, name: FeedBucketName) -> FeedBucket:
        return self.popular if name == "popular" else self.search

    @property
    def initiating(self) -> bool:
        return self.search.loading or self.popular.loading

    def begin_continuation(self) -> int | None:
        """Claim the shared continuation slot; ``None`` if one is already running."""
        if self.loading_more:
            return None
        self._continuation += 1
        self.loading_more = True
        return self._continuation

    def end_continuation(self, token: int) -> None:
        # A reset may already have released the slot for a newer continuation.
        if token == self._continuation:
            self.loading_more = False

    def reset(self) -> None:
        self.search.clear()
        self.popular.clear()
        self.loading_more = False
        self._continuation += 1

    def snapshot(self, *, popular_mode: bool) -> FeedState:
        return FeedState(
            search=self.search.snapshot(),
            popular=self.popular.snapshot(),
            loading_more=self.loading_more,
            popular_mode=popular_mode,
        )
