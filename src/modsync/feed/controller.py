from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from modsync.constants import DEFAULT_PAGE_SIZE
from modsync.core.exceptions import ModsyncError
from modsync.core.logging.logger import get_logger
from modsync.feed.session import FeedSession, FeedState
from modsync.registry.base import SearchRequest
from modsync.registry.cache import SearchCache

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from modsync.feed.session import FeedBucket, FeedBucketName
    from modsync.models import ContentType, Provider, SearchPage
    from modsync.registry.base import RegistryHub

logger = get_logger(__name__)


@dataclass(frozen=True)
class SearchContext:
    """Everything besides query and categories that shapes a search request."""

    provider: Provider
    content_type: ContentType
    game_version: str | None = None
    loader: str | None = None
    page_size: int = DEFAULT_PAGE_SIZE

    def request(self, query: str, categories: Iterable[str], offset: int) -> SearchRequest:
        return SearchRequest.build(
            provider=self.provider,
            content_type=self.content_type,
            query=query,
            game_version=self.game_version,
            loader=self.loader,
            categories=categories,
            limit=self.page_size,
            offset=offset,
        )


def _normalize_categories(categories: Iterable[str] | None) -> tuple[str, ...]:
    return tuple(value.strip() for value in (categories or ()) if value and value.strip())


class FeedController:
    """Paginated discovery over one registry provider.

    Two buckets are kept: ``search`` for query/category results and
    ``popular`` for the curated download-sorted feed. Each has its own epoch,
    so a popular load never races a search. Continuations ("load more")
    share a single in-flight slot across both buckets.
    """

    def __init__(
        self,
        hub: RegistryHub,
        context: SearchContext,
        *,
        cache: SearchCache | None = None,
        search_on_empty: bool = True,
        with_popular: bool = False,
    ) -> None:
        self._hub = hub
        self._context = context
        self._cache = cache if cache is not None else SearchCache()
        self._search_on_empty = search_on_empty
        self._with_popular = with_popular
        self._session = FeedSession()
        self._listeners: list[Callable[[FeedState], None]] = []
        self._query = ""
        self._categories: tuple[str, ...] = ()

    @property
    def session(self) -> FeedSession:
        return self._session

    @property
    def context(self) -> SearchContext:
        return self._context

    @property
    def popular_mode(self) -> bool:
        return self._with_popular and not self._query and not self._categories

    @property
    def state(self) -> FeedState:
        return self._session.snapshot(popular_mode=self.popular_mode)

    def subscribe(self, listener: Callable[[FeedState], None]) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.state
        for listener in list(self._listeners):
            listener(snapshot)

    def set_context(self, context: SearchContext) -> None:
        """Switch provider or filters; in-flight responses for the old context are dropped."""
        self._context = context
        self.reset()

    def reset(self) -> None:
        self._session.reset()
        self._query = ""
        self._categories = ()
        self._notify()

    async def search(
        self,
        query: str = "",
        categories: Iterable[str] | None = None,
        offset: int = 0,
    ) -> None:
        """Start a search, or continue the current one when ``offset`` is past page 0.

        A continuation only proceeds for the query and categories the bucket was
        started with and at the bucket's own next offset; a different query
        starts over at page 0.
        """
        query = (query or "").strip()
        normalized = _normalize_categories(categories)
        bucket = self._session.search
        if offset > 0 and (query, normalized) == (bucket.query, bucket.categories):
            if self._session.initiating or offset != bucket.offset:
                return
            await self._continue(bucket, bucket.query, bucket.categories, bucket.offset)
            return

        self._query = query
        self._categories = normalized
        if not query and not normalized and not self._search_on_empty:
            bucket.clear(has_more=False)
            self._notify()
            return

        await self._initiate(bucket, query, normalized)

    async def load_popular(self) -> None:
        await self._initiate(self._session.popular, "", ())

    async def load_more(self) -> None:
        """Fetch the next page of whichever bucket is on screen.

        No-op while any load is in flight or the active bucket is exhausted.
        """
        if self._session.loading_more or self._session.initiating:
            return
        bucket = self._session.popular if self.popular_mode else self._session.search
        if not bucket.has_more:
            return
        await self._continue(bucket, bucket.query, bucket.categories, bucket.offset)

    async def _fetch(self, request: SearchRequest) -> SearchPage:
        client = self._hub.client(request.provider)
        return await self._cache.fetch(request, client.search)

    async def _initiate(
        self,
        bucket: FeedBucket,
        query: str,
        categories: tuple[str, ...],
    ) -> None:
        epoch = bucket.begin(query, categories)
        context = self._context
        request = context.request(query, categories, 0)
        self._notify()

        try:
            page = await self._fetch(request)
        except ModsyncError as exc:
            if bucket.is_current(epoch):
                bucket.error = str(exc)
                bucket.loading = False
                self._notify()
            self._log_failure(bucket.name, request, exc, stale=not bucket.is_current(epoch))
            return

        if not bucket.is_current(epoch):
            logger.debug(
                "Dropping stale feed response",
                data={"bucket": bucket.name, "epoch": epoch, "current": bucket.epoch},
            )
            return

        bucket.apply_page(page, requested_offset=0, page_size=context.page_size)
        bucket.loading = False
        self._notify()

    async def _continue(
        self,
        bucket: FeedBucket,
        query: str,
        categories: tuple[str, ...],
        offset: int,
    ) -> None:
        if not bucket.has_more:
            return
        token = self._session.begin_continuation()
        if token is None:
            return

        epoch = bucket.epoch
        context = self._context
        request = context.request(query, categories, offset)
        self._notify()
        try:
            try:
                page = await self._fetch(request)
            except ModsyncError as exc:
                if bucket.is_current(epoch):
                    bucket.error = str(exc)
                self._log_failure(bucket.name, request, exc, stale=not bucket.is_current(epoch))
                return

            if not bucket.is_current(epoch):
                return
            bucket.apply_page(page, requested_offset=offset, page_size=context.page_size)
        finally:
            self._session.end_continuation(token)
            self._notify()

    def _log_failure(
        self,
        bucket: FeedBucketName,
        request: SearchRequest,
        exc: ModsyncError,
        *,
        stale: bool,
    ) -> None:
        logger.warning(
            "Feed search failed",
            data={
                "bucket": bucket,
                "provider": request.provider.value,
                "query": request.query,
                "offset": request.offset,
                "stale": stale,
                "error": str(exc),
            },
        )
