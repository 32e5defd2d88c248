"""Short-lived cache and in-flight de-duplication for registry searches."""

from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from typing import TYPE_CHECKING

from modsync.constants import SEARCH_CACHE_MAX_ENTRIES, SEARCH_CACHE_TTL_SECONDS

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from modsync.models import SearchPage
    from modsync.registry.base import SearchRequest


class SearchCache:
    """TTL cache keyed by the normalized search request.

    Identical requests issued while one is still pending share the same
    future, so rapid re-renders never fan out into duplicate registry calls.
    Failures are not cached.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = SEARCH_CACHE_TTL_SECONDS,
        max_entries: int = SEARCH_CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, SearchPage]] = OrderedDict()
        self._in_flight: dict[str, asyncio.Future[SearchPage]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> SearchPage | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, page = entry
        if self._clock() - stored_at > self._ttl:
            del self._entries[key]
            return None
        return page

    def put(self, key: str, page: SearchPage) -> None:
        if self._max_entries <= 0:
            return
        self._entries[key] = (self._clock(), page)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    async def fetch(
        self,
        request: SearchRequest,
        loader: Callable[[SearchRequest], Awaitable[SearchPage]],
    ) -> SearchPage:
        key = request.cache_key
        cached = self.get(key)
        if cached is not None:
            return cached

        pending = self._in_flight.get(key)
        if pending is not None:
            return await asyncio.shield(pending)

        future: asyncio.Future[SearchPage] = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            page = await loader(request)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so an unawaited failure does not warn at GC.
            future.exception()
            raise
        else:
            self.put(key, page)
            future.set_result(page)
            return page
        finally:
            self._in_flight.pop(key, None)
