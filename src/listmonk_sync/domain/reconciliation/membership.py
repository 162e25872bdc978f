"""Single-subscriber membership operations and the list write helpers they share."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from listmonk_sync.domain.identifiers import SubscriberIdentifier
from listmonk_sync.domain.model import Subscriber, SubscriberStatus
from listmonk_sync.domain.response import ApiResponse
from listmonk_sync.domain.results import (
    SetSubscriptionsListResult,
    SetSubscriptionsResult,
    SetSubscriptionsStatus,
    SubscribeResult,
    UnsubscribeListResult,
    UnsubscribeMessage,
    UnsubscribeResult,
)

from .payloads import membership_body, parse_response

if TYPE_CHECKING:
    from listmonk_sync.domain.attribs import Attribs
    from listmonk_sync.domain.list_cache import ListNameCache
    from listmonk_sync.domain.ports import SubscriberApi

    from .lists import ListDirectory
    from .resolver import SubscriberDirectory

log = getLogger(__name__)

SUBSCRIBE_FAILED = "Failed to subscribe"
LIST_IDS_INVALID = "list ids must be numbers"
ACTION_ADD = "add"
ACTION_UNSUBSCRIBE = "unsubscribe"


@dataclass(frozen=True, slots=True)
class SubscribeOptions:
    """``preconfirm`` skips double opt-in; ``status`` forces the created subscriber's status."""

    preconfirm: bool = True
    status: SubscriberStatus | None = None


def _is_list_id(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _unique_ids(list_ids: int | Sequence[int]) -> list[int] | None:
    """Deduplicate ``list_ids`` in order; ``None`` when any id is not an integer."""

    values: list[object] = (
        [list_ids] if isinstance(list_ids, (int, str, bytes)) else list(list_ids)
    )
    if not all(_is_list_id(value) for value in values):
        return None
    return [value for value in dict.fromkeys(values) if isinstance(value, int)]


def _list_name(subscriber: Subscriber, list_id: int, cache: ListNameCache | None) -> str | None:
    membership = subscriber.membership(list_id)
    if membership is not None and membership.name:
        return membership.name
    return cache.name_for(list_id) if cache is not None else None


class MembershipService:
    def __init__(
        self,
        api: SubscriberApi,
        directory: SubscriberDirectory,
        lists: ListDirectory,
    ) -> None:
        self._api = api
        self._directory = directory
        self._lists = lists

    async def create(
        self,
        *,
        email: str,
        name: str,
        attribs: Attribs,
        list_ids: Sequence[int],
        preconfirm: bool = True,
        status: SubscriberStatus | None = None,
    ) -> ApiResponse[Subscriber]:
        body: dict[str, object] = {
            "email": email,
            "name": name,
            "attribs": attribs,
            "lists": list(list_ids),
            "preconfirm_subscriptions": preconfirm,
        }
        if status:
            body["status"] = str(status)
        return parse_response(await self._api.post("/subscribers", json=body), Subscriber)

    async def update(
        self,
        subscriber_id: int,
        body: dict[str, object],
    ) -> ApiResponse[Subscriber]:
        return parse_response(
            await self._api.put(f"/subscribers/{subscriber_id}", json=body), Subscriber
        )

    async def add_to_list(self, ids: list[int], list_id: int) -> ApiResponse[object]:
        """Attach to one list; does not clear an unsubscribed membership."""

        return await self._api.put(
            f"/subscribers/lists/{list_id}", json=membership_body(ids, ACTION_ADD)
        )

    async def add_to_lists(self, ids: list[int], list_ids: list[int]) -> ApiResponse[object]:
        """Attach to every list in ``list_ids``, resubscribing unsubscribed memberships."""

        return await self._api.put(
            "/subscribers/lists", json=membership_body(ids, ACTION_ADD, list_ids)
        )

    async def unsubscribe_from_lists(
        self, ids: list[int], list_ids: list[int]
    ) -> ApiResponse[object]:
        return await self._api.put(
            "/subscribers/lists", json=membership_body(ids, ACTION_UNSUBSCRIBE, list_ids)
        )

    async def subscribe(
        self,
        list_id: int,
        email: str,
        *,
        name: str = "",
        attribs: Attribs | None = None,
        options: SubscribeOptions | None = None,
    ) -> ApiResponse[SubscribeResult]:
        """Create or attach ``email`` to ``list_id``; repeated calls are no-ops."""

        if not _is_list_id(list_id):
            return ApiResponse.error(f"{SUBSCRIBE_FAILED}: list_id must be a number", code=400)
        email = (email or "").strip()
        if not email:
            return ApiResponse.error(f"{SUBSCRIBE_FAILED}: email is required", code=400)
        options = options or SubscribeOptions()

        existing = await self._directory.find(SubscriberIdentifier(email=email))
        if existing.success and existing.data is not None:
            return await self._attach_existing(existing.data, list_id, found_code=existing.code)
        if existing.code != 404:
            return ApiResponse.error(f"{SUBSCRIBE_FAILED}: {existing.message}", code=existing.code)

        created = await self.create(
            email=email,
            name=name or "",
            attribs=dict(attribs or {}),
            list_ids=[list_id],
            preconfirm=options.preconfirm,
            status=options.status,
        )
        if not created.success or created.data is None:
            return ApiResponse.error(f"{SUBSCRIBE_FAILED}: {created.message}", code=created.code)
        log.debug("Created subscriber %s on list %d", created.data.id, list_id)
        return ApiResponse.ok(
            SubscribeResult(
                subscriber=created.data, added=True, already_subscribed=False, created=True
            ),
            code=created.code,
            message="Successfully subscribed",
        )

    async def _attach_existing(
        self, subscriber: Subscriber, list_id: int, *, found_code: int
    ) -> ApiResponse[SubscribeResult]:
        if subscriber.is_blocklisted:
            return ApiResponse.error(f"{SUBSCRIBE_FAILED}: subscriber is blocklisted", code=400)

        membership = subscriber.membership(list_id)
        if membership is not None and not membership.is_unsubscribed:
            return ApiResponse.ok(
                SubscribeResult(
                    subscriber=subscriber, added=False, already_subscribed=True, created=False
                ),
                code=found_code,
                message="Already subscribed",
            )

        if membership is not None:
            attached = await self.add_to_lists([subscriber.id], [list_id])
        else:
            attached = await self.add_to_list([subscriber.id], list_id)
        if not attached.success:
            return ApiResponse.error(f"{SUBSCRIBE_FAILED}: {attached.message}", code=attached.code)

        refreshed = await self._directory.fetch(subscriber.id)
        if refreshed.success and refreshed.data is not None:
            current, code = refreshed.data, refreshed.code
        else:
            log.warning(
                "Refetch of subscriber %d failed after attach: %s", subscriber.id, refreshed.message
            )
            current, code = subscriber, attached.code
        return ApiResponse.ok(
            SubscribeResult(subscriber=current, added=True, already_subscribed=False, created=False),
            code=code,
            message="Successfully subscribed",
        )

    async def unsubscribe(
        self,
        identifier: SubscriberIdentifier,
        list_ids: int | Sequence[int] | None = None,
    ) -> ApiResponse[UnsubscribeResult]:
        """Unsubscribe from ``list_ids``, or from every current list when omitted.

        Per-list outcomes describe the state before the call. Ids outside the
        subscriber's memberships are checked against the list metadata and
        reported as unknown when absent there too.
        """

        requested: list[int] | None = None
        if list_ids is not None:
            requested = _unique_ids(list_ids)
            if requested is None:
                return ApiResponse.error(LIST_IDS_INVALID, code=400)

        found = await self._directory.find(identifier)
        if not found.success or found.data is None:
            return found.as_failure()
        subscriber = found.data

        targets = subscriber.list_ids() if requested is None else requested
        if not targets:
            return ApiResponse.ok(
                UnsubscribeResult(subscriber=subscriber, lists=[]),
                code=found.code,
                message="No subscriptions to remove",
            )

        foreign = any(subscriber.membership(list_id) is None for list_id in targets)
        cache = await self._lists.known() if foreign or self._lists.cache_enabled else None
        outcomes: list[UnsubscribeListResult] = []
        for list_id in targets:
            membership = subscriber.membership(list_id)
            if membership is None and cache is not None and not cache.contains(list_id):
                outcomes.append(
                    UnsubscribeListResult(
                        list_id=list_id,
                        status_changed=False,
                        message=UnsubscribeMessage.UNKNOWN_LIST,
                    )
                )
                continue
            changed = membership is not None and not membership.is_unsubscribed
            outcomes.append(
                UnsubscribeListResult(
                    list_id=list_id,
                    status_changed=changed,
                    message=(
                        UnsubscribeMessage.SUBSCRIBED if changed else UnsubscribeMessage.UNSUBSCRIBED
                    ),
                    list_name=_list_name(subscriber, list_id, cache),
                )
            )

        response = await self.unsubscribe_from_lists([subscriber.id], targets)
        if not response.success:
            return response.as_failure()
        return ApiResponse.ok(
            UnsubscribeResult(subscriber=subscriber, lists=outcomes),
            code=response.code,
            message="Successfully unsubscribed",
        )

    async def set_subscriptions(
        self,
        identifier: SubscriberIdentifier,
        list_ids: Sequence[int],
        *,
        remove_others: bool = False,
    ) -> ApiResponse[SetSubscriptionsResult]:
        """Make the subscriber's active memberships match ``list_ids``.

        Lists outside ``list_ids`` are only unsubscribed with ``remove_others``.
        """

        requested = _unique_ids(list_ids)
        if requested is None:
            return ApiResponse.error(LIST_IDS_INVALID, code=400)

        found = await self._directory.find(identifier)
        if not found.success or found.data is None:
            return found.as_failure()
        subscriber = found.data

        current = subscriber.subscribed_list_ids()
        to_add = [list_id for list_id in requested if list_id not in current]
        to_remove = (
            [list_id for list_id in current if list_id not in requested] if remove_others else []
        )
        if to_add and subscriber.is_blocklisted:
            return ApiResponse.error("Cannot subscribe a blocklisted subscriber", code=400)

        cache = await self._lists.names()
        code = found.code
        if to_add:
            added = await self.add_to_lists([subscriber.id], to_add)
            if not added.success:
                return added.as_failure()
            code = added.code
        if to_remove:
            removed = await self.unsubscribe_from_lists([subscriber.id], to_remove)
            if not removed.success:
                return removed.as_failure()
            code = removed.code

        outcomes = [
            SetSubscriptionsListResult(
                list_id=list_id,
                status=(
                    SetSubscriptionsStatus.SUBSCRIBED
                    if list_id in to_add
                    else SetSubscriptionsStatus.UNCHANGED
                ),
                list_name=_list_name(subscriber, list_id, cache),
            )
            for list_id in requested
        ]
        outcomes.extend(
            SetSubscriptionsListResult(
                list_id=list_id,
                status=SetSubscriptionsStatus.UNSUBSCRIBED,
                list_name=_list_name(subscriber, list_id, cache),
            )
            for list_id in to_remove
        )
        log.info(
            "Subscriber %d: %d lists added, %d removed", subscriber.id, len(to_add), len(to_remove)
        )
        return ApiResponse.ok(
            SetSubscriptionsResult(subscriber=subscriber, lists=outcomes),
            code=code,
            message="Subscriptions updated",
        )
