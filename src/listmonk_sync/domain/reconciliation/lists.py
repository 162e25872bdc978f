"""List metadata access with an optional read-through name cache."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import TypeAdapter, ValidationError

from listmonk_sync.domain.list_cache import ListNameCache, utc_now
from listmonk_sync.domain.model import ListRecord, ListVisibility
from listmonk_sync.domain.response import ApiResponse

from .payloads import UNEXPECTED_PAYLOAD_MESSAGE

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from listmonk_sync.domain.ports import QueryValue, SubscriberApi

log = getLogger(__name__)

_LIST_RECORDS = TypeAdapter(list[ListRecord])


def _extract_results(payload: object) -> object | None:
    if isinstance(payload, Sequence) and not isinstance(payload, str):
        return payload
    if isinstance(payload, Mapping):
        results = payload.get("results")
        if isinstance(results, Sequence) and not isinstance(results, str):
            return results
    return None


class ListDirectory:
    """Reads list records; caches id to name mappings for ``ttl_seconds`` when enabled."""

    def __init__(
        self,
        api: SubscriberApi,
        *,
        ttl_seconds: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._api = api
        self._ttl_seconds = ttl_seconds if ttl_seconds and ttl_seconds > 0 else None
        self._clock = clock
        self._cache: ListNameCache | None = None

    @property
    def cache_enabled(self) -> bool:
        return self._ttl_seconds is not None

    async def list_all(
        self, visibility: ListVisibility = ListVisibility.ALL
    ) -> ApiResponse[list[ListRecord]]:
        params: dict[str, QueryValue] = {"per_page": "all"}
        if visibility != ListVisibility.ALL:
            params["type"] = str(visibility)

        response = await self._api.get("/lists", params=params)
        if not response.success:
            return response.as_failure()

        results = _extract_results(response.data)
        if results is None:
            return ApiResponse.error("Unexpected response while fetching lists", code=response.code)
        try:
            records = _LIST_RECORDS.validate_python(results)
        except ValidationError as exc:
            log.warning("Invalid list payload: %s", exc)
            return ApiResponse.error(UNEXPECTED_PAYLOAD_MESSAGE, code=500)
        return ApiResponse.ok(records, code=response.code, message=response.message)

    async def names(self) -> ListNameCache | None:
        """Return the cached snapshot, refreshing it when expired.

        ``None`` means no metadata is available: the cache is disabled or the
        refresh failed.
        """

        if self._ttl_seconds is None:
            return None
        now = self._clock()
        if self._cache is not None and not self._cache.is_expired(now):
            return self._cache

        response = await self.list_all()
        if not response.success or response.data is None:
            log.warning("Could not refresh list names: %s %s", response.code, response.message)
            return None
        self._cache = ListNameCache.from_records(
            response.data, now=now, ttl_seconds=self._ttl_seconds
        )
        return self._cache

    async def known(self) -> ListNameCache | None:
        """Current list names, from the cache when enabled or a direct read otherwise.

        ``None`` when the metadata could not be fetched.
        """

        if self.cache_enabled:
            return await self.names()
        now = self._clock()
        response = await self.list_all()
        if not response.success or response.data is None:
            log.warning("Could not read list names: %s %s", response.code, response.message)
            return None
        return ListNameCache.from_records(response.data, now=now, ttl_seconds=0)

    def invalidate(self) -> None:
        self._cache = None
