"""Identity resolution against the remote subscriber store.

Lookups are best effort: a chunk that cannot be fetched is logged and skipped so
the calling batch continues with partial data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from listmonk_sync.domain.model import (
    ListMemberStatus,
    Subscriber,
    SubscriberPage,
    SubscriptionStatus,
)
from listmonk_sync.domain.response import ApiResponse

from .payloads import parse_response
from .query import (
    BLOCKLISTED_FILTER,
    EMAIL_FIELD,
    LOOKUP_CHUNK_SIZE,
    UID_FIELD,
    UUID_FIELD,
    chunked,
    equality_filter,
    in_filter,
    lookup_page_size,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from listmonk_sync.domain.identifiers import SubscriberIdentifier
    from listmonk_sync.domain.ports import QueryValue, SubscriberApi

log = getLogger(__name__)

NOT_FOUND_MESSAGE = "Subscriber not found"
MISSING_IDENTIFIER_MESSAGE = "id, uuid, or email is required"


@dataclass(slots=True)
class SubscriberIndex:
    """Existing subscribers keyed by lower-cased email and by ``attribs.uid``."""

    by_email: dict[str, Subscriber] = field(default_factory=dict[str, Subscriber])
    by_uid: dict[str, Subscriber] = field(default_factory=dict[str, Subscriber])

    def add(self, subscriber: Subscriber) -> None:
        self.by_email[subscriber.email_key] = subscriber
        uid = subscriber.uid
        if uid:
            self.by_uid[uid] = subscriber

    def match(self, *, uid: str | None, email_key: str) -> Subscriber | None:
        if uid:
            found = self.by_uid.get(uid)
            if found is not None:
                return found
        return self.by_email.get(email_key)

    def remember(self, subscriber: Subscriber, *, email_key: str, uid: str | None) -> None:
        self.by_email[email_key] = subscriber
        if uid:
            self.by_uid[uid] = subscriber


class SubscriberDirectory:
    """Read-only access to subscriber records."""

    def __init__(self, api: SubscriberApi, *, list_page_size: int = 100) -> None:
        self._api = api
        self._list_page_size = list_page_size

    async def lookup(
        self,
        *,
        uids: Iterable[str] = (),
        emails: Iterable[str] = (),
    ) -> SubscriberIndex:
        """Fetch existing subscribers for a batch, uid chunks first, then email chunks."""

        index = SubscriberIndex()
        uid_values = list(dict.fromkeys(uids))
        email_values = list(dict.fromkeys(emails))
        if uid_values:
            await self._fetch_into(index, UID_FIELD, uid_values)
        if email_values:
            await self._fetch_into(index, EMAIL_FIELD, email_values)
        log.debug(
            "Resolved %d subscribers by email and %d by uid",
            len(index.by_email),
            len(index.by_uid),
        )
        return index

    async def _fetch_into(self, index: SubscriberIndex, field_name: str, values: list[str]) -> None:
        for chunk in chunked(values, LOOKUP_CHUNK_SIZE):
            params: dict[str, QueryValue] = {
                "per_page": lookup_page_size(chunk),
                "query": in_filter(field_name, chunk),
            }
            response = parse_response(
                await self._api.get("/subscribers", params=params), SubscriberPage
            )
            if not response.success or response.data is None:
                log.warning(
                    "Lookup failed for %s chunk of %d values: %s %s",
                    field_name,
                    len(chunk),
                    response.code,
                    response.message,
                )
                continue
            for subscriber in response.data.results:
                index.add(subscriber)

    async def find(self, identifier: SubscriberIdentifier) -> ApiResponse[Subscriber]:
        if identifier.id is not None:
            if isinstance(identifier.id, bool) or not isinstance(identifier.id, int):
                return ApiResponse.error("id must be a number", code=400)
            response = await self.fetch(identifier.id)
            if response.success and response.data is None:
                return ApiResponse.error(NOT_FOUND_MESSAGE, code=404)
            return response

        if identifier.uuid:
            query = equality_filter(UUID_FIELD, identifier.uuid)
        elif identifier.email:
            query = equality_filter(EMAIL_FIELD, identifier.email)
        else:
            return ApiResponse.error(MISSING_IDENTIFIER_MESSAGE, code=400)

        page = parse_response(
            await self._api.get("/subscribers", params={"per_page": 1, "query": query}),
            SubscriberPage,
        )
        if not page.success:
            return page.as_failure()
        if page.data is None or not page.data.results:
            return ApiResponse.error(NOT_FOUND_MESSAGE, code=404)
        return ApiResponse.ok(page.data.results[0], code=page.code, message=page.message)

    async def fetch(self, subscriber_id: int) -> ApiResponse[Subscriber]:
        return parse_response(await self._api.get(f"/subscribers/{subscriber_id}"), Subscriber)

    async def list_members_by_status(
        self,
        list_id: int,
        status: ListMemberStatus,
        *,
        page: int | None = None,
        per_page: int | None = None,
    ) -> ApiResponse[SubscriberPage]:
        params: dict[str, QueryValue] = {"list_id": list_id}
        if page is not None:
            params["page"] = page
        params["per_page"] = per_page if per_page is not None else self._list_page_size

        match ListMemberStatus(status):
            case ListMemberStatus.SUBSCRIBED:
                params["subscription_status"] = SubscriptionStatus.CONFIRMED
            case ListMemberStatus.UNSUBSCRIBED:
                params["subscription_status"] = SubscriptionStatus.UNSUBSCRIBED
            case ListMemberStatus.BLOCKED:
                params["query"] = BLOCKLISTED_FILTER

        return parse_response(await self._api.get("/subscribers", params=params), SubscriberPage)
