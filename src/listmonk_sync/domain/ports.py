"""Port for the remote subscriber-list service."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .response import ApiResponse

type QueryValue = str | int
type QueryParams = Mapping[str, QueryValue] | Sequence[tuple[str, QueryValue]]
type JsonBody = Mapping[str, object]


@runtime_checkable
class SubscriberApi(Protocol):
    """Authenticated request/response access to the remote service.

    Implementations never raise for transport or remote failures; they return a
    failed ``ApiResponse`` instead.
    """

    async def get(
        self, path: str, *, params: QueryParams | None = None
    ) -> ApiResponse[object]: ...

    async def post(self, path: str, *, json: JsonBody | None = None) -> ApiResponse[object]: ...

    async def put(self, path: str, *, json: JsonBody | None = None) -> ApiResponse[object]: ...

    async def delete(
        self,
        path: str,
        *,
        params: QueryParams | None = None,
        json: JsonBody | None = None,
    ) -> ApiResponse[object]: ...


__all__ = ["JsonBody", "QueryParams", "QueryValue", "SubscriberApi"]
