"""Public async client for a Listmonk instance."""

from __future__ import annotations

import functools
from logging import getLogger
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from listmonk_sync.adapters.http_transport import ApiTransport
from listmonk_sync.config import get_listmonk_config
from listmonk_sync.domain.attribs import merge_attribs
from listmonk_sync.domain.identifiers import SubscriberIdentifier
from listmonk_sync.domain.list_cache import utc_now
from listmonk_sync.domain.model import ListVisibility, SubscriberStatus
from listmonk_sync.domain.reconciliation import (
    BulkAddReconciler,
    ListDirectory,
    MembershipService,
    SubscriberDirectory,
    UserSyncReconciler,
)
from listmonk_sync.domain.reconciliation.payloads import profile_body
from listmonk_sync.domain.reconciliation.resolver import MISSING_IDENTIFIER_MESSAGE
from listmonk_sync.domain.response import ApiResponse

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Sequence
    from datetime import datetime
    from os import PathLike
    from types import TracebackType

    from listmonk_sync.config.listmonk import ListmonkConfig
    from listmonk_sync.config.transport import TransportConfig
    from listmonk_sync.domain.attribs import Attribs
    from listmonk_sync.domain.entries import BulkEntry, UserRecord
    from listmonk_sync.domain.model import (
        ListMemberStatus,
        ListRecord,
        Subscriber,
        SubscriberPage,
    )
    from listmonk_sync.domain.ports import JsonBody, QueryParams
    from listmonk_sync.domain.reconciliation import SubscribeOptions
    from listmonk_sync.domain.results import (
        BulkAddResult,
        SetSubscriptionsResult,
        SubscribeResult,
        SyncUsersResult,
        UnsubscribeResult,
    )

log = getLogger(__name__)

type IdentifierInput = SubscriberIdentifier | int | str


def _guarded[**P, T](
    func: Callable[P, Awaitable[ApiResponse[T]]],
) -> Callable[P, Awaitable[ApiResponse[T]]]:
    """Report unexpected exceptions as a failed envelope instead of raising."""

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> ApiResponse[T]:
        try:
            return await func(*args, **kwargs)
        except Exception as exc:  # noqa: BLE001
            log.exception("Unexpected error in %s", func.__name__)
            return ApiResponse.error(exc, code=500)

    return wrapper


class ListmonkClient:
    """Async client exposing subscriber and membership operations.

    Every operation returns an ``ApiResponse``; calls are issued one at a time.
    """

    def __init__(
        self,
        config: ListmonkConfig,
        *,
        transport_factory: Callable[[TransportConfig], ApiTransport] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config
        self._transport = (transport_factory or ApiTransport)(config.transport())
        self._directory = SubscriberDirectory(
            self._transport, list_page_size=config.list_page_size
        )
        self._lists = ListDirectory(
            self._transport,
            ttl_seconds=config.list_cache_seconds,
            clock=clock or utc_now,
        )
        self._membership = MembershipService(self._transport, self._directory, self._lists)
        self._bulk = BulkAddReconciler(self._directory, self._membership)
        self._sync = UserSyncReconciler(self._directory, self._membership)

    @classmethod
    def from_environment(
        cls,
        *,
        dotenv_path: str | PathLike[str] | None = None,
        transport_factory: Callable[[TransportConfig], ApiTransport] | None = None,
    ) -> ListmonkClient:
        load_dotenv(dotenv_path)
        return cls(get_listmonk_config(), transport_factory=transport_factory)

    async def __aenter__(self) -> ListmonkClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._transport.aclose()

    def invalidate_list_cache(self) -> None:
        self._lists.invalidate()

    # Raw access

    @_guarded
    async def get(self, path: str, *, params: QueryParams | None = None) -> ApiResponse[object]:
        return await self._transport.get(path, params=params)

    @_guarded
    async def post(self, path: str, *, json: JsonBody | None = None) -> ApiResponse[object]:
        return await self._transport.post(path, json=json)

    @_guarded
    async def put(self, path: str, *, json: JsonBody | None = None) -> ApiResponse[object]:
        return await self._transport.put(path, json=json)

    @_guarded
    async def delete(
        self,
        path: str,
        *,
        params: QueryParams | None = None,
        json: JsonBody | None = None,
    ) -> ApiResponse[object]:
        return await self._transport.delete(path, params=params, json=json)

    # Subscribers

    @_guarded
    async def find_subscriber(self, identifier: IdentifierInput) -> ApiResponse[Subscriber]:
        return await self._directory.find(SubscriberIdentifier.parse(identifier))

    @_guarded
    async def update_user(
        self,
        identifier: IdentifierInput,
        *,
        email: str | None = None,
        name: str | None = None,
        uid: str | None = None,
        attribs: Attribs | None = None,
        force_uid_change: bool = False,
    ) -> ApiResponse[Subscriber]:
        """Update a subscriber's profile, keeping its current list memberships.

        ``attribs`` is merged over the stored attributes. A ``uid`` that differs
        from the stored ``attribs.uid`` is rejected unless ``force_uid_change``.
        """

        target = SubscriberIdentifier.parse(identifier)
        if target.is_empty:
            return ApiResponse.error(MISSING_IDENTIFIER_MESSAGE, code=400)
        if email is None and name is None and uid is None and attribs is None:
            return ApiResponse.error("No updates provided", code=400)

        found = await self._directory.find(target)
        if not found.success or found.data is None:
            return found
        existing = found.data

        current_uid = existing.attribs.get("uid")
        if (
            uid is not None
            and current_uid is not None
            and uid != current_uid
            and not force_uid_change
        ):
            return ApiResponse.error(
                "UID mismatch; set force_uid_change to overwrite existing uid", code=400
            )
        next_attribs = merge_attribs(existing.attribs, attribs, uid=uid)

        next_email = email.strip() if email is not None else existing.email
        if not next_email:
            return ApiResponse.error("Email is required", code=400)

        body = profile_body(
            existing,
            email=next_email,
            name=name if name is not None else existing.name,
            attribs=next_attribs,
        )
        return await self._membership.update(existing.id, body)

    @_guarded
    async def block_subscriber(self, subscriber_id: int) -> ApiResponse[Subscriber]:
        return await self._membership.update(
            subscriber_id, {"status": str(SubscriberStatus.BLOCKLISTED)}
        )

    @_guarded
    async def unblock_subscriber(self, subscriber_id: int) -> ApiResponse[Subscriber]:
        return await self._membership.update(
            subscriber_id, {"status": str(SubscriberStatus.ENABLED)}
        )

    @_guarded
    async def delete_subscriber(self, subscriber_id: int) -> ApiResponse[object]:
        return await self._transport.delete(f"/subscribers/{subscriber_id}")

    @_guarded
    async def delete_subscribers(self, subscriber_ids: Sequence[int]) -> ApiResponse[object]:
        if not subscriber_ids:
            return ApiResponse.error("No subscriber ids provided", code=400)
        return await self._transport.delete(
            "/subscribers", params=[("id", subscriber_id) for subscriber_id in subscriber_ids]
        )

    # Lists

    @_guarded
    async def list_all_lists(
        self, visibility: ListVisibility = ListVisibility.ALL
    ) -> ApiResponse[list[ListRecord]]:
        return await self._lists.list_all(ListVisibility(visibility))

    @_guarded
    async def list_members_by_status(
        self,
        list_id: int,
        status: ListMemberStatus,
        *,
        page: int | None = None,
        per_page: int | None = None,
    ) -> ApiResponse[SubscriberPage]:
        return await self._directory.list_members_by_status(
            list_id, status, page=page, per_page=per_page
        )

    # Memberships

    @_guarded
    async def subscribe(
        self,
        list_id: int,
        email: str,
        *,
        name: str = "",
        attribs: Attribs | None = None,
        options: SubscribeOptions | None = None,
    ) -> ApiResponse[SubscribeResult]:
        return await self._membership.subscribe(
            list_id, email, name=name, attribs=attribs, options=options
        )

    @_guarded
    async def unsubscribe(
        self,
        identifier: IdentifierInput,
        lists: int | Sequence[int] | None = None,
    ) -> ApiResponse[UnsubscribeResult]:
        return await self._membership.unsubscribe(SubscriberIdentifier.parse(identifier), lists)

    @_guarded
    async def set_subscriptions(
        self,
        identifier: IdentifierInput,
        list_ids: Sequence[int],
        *,
        remove_others: bool = False,
    ) -> ApiResponse[SetSubscriptionsResult]:
        return await self._membership.set_subscriptions(
            SubscriberIdentifier.parse(identifier), list_ids, remove_others=remove_others
        )

    @_guarded
    async def add_subscribers_to_list(
        self,
        list_id: int,
        entries: Iterable[BulkEntry],
        *,
        attach_to_list: bool = True,
        resubscribe: bool = False,
    ) -> ApiResponse[BulkAddResult]:
        return await self._bulk.add_subscribers_to_list(
            list_id, entries, attach_to_list=attach_to_list, resubscribe=resubscribe
        )

    @_guarded
    async def sync_users_to_list(
        self, list_id: int, users: Iterable[UserRecord]
    ) -> ApiResponse[SyncUsersResult]:
        return await self._sync.sync_users_to_list(list_id, users)


__all__ = ["IdentifierInput", "ListmonkClient"]
