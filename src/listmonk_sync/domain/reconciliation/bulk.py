"""Batch add of subscribers to a single list.

Each deduplicated entry is matched against the existing subscribers (by uid,
then by email) and routed to exactly one outcome: created, added, skipped or
errored. Membership writes for existing subscribers are queued and flushed in
chunks once every entry has been evaluated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from listmonk_sync.domain.entries import dedupe_entries, normalize_bulk_entry
from listmonk_sync.domain.model import SubscriberStatus
from listmonk_sync.domain.response import ApiResponse
from listmonk_sync.domain.results import BulkAddError, BulkAddResult, SubscriptionSnapshot

from .membership import SubscribeOptions
from .payloads import profile_body
from .query import WRITE_CHUNK_SIZE, chunked

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from listmonk_sync.domain.entries import BulkEntry, NormalizedEntry
    from listmonk_sync.domain.model import Subscriber

    from .membership import MembershipService
    from .resolver import SubscriberDirectory

log = getLogger(__name__)

_BULK_SUBSCRIBE = SubscribeOptions(preconfirm=True, status=SubscriberStatus.ENABLED)


@dataclass(slots=True)
class _WriteQueue:
    """Existing subscribers waiting for a membership write, keyed by id."""

    add: dict[int, Subscriber] = field(default_factory=dict[int, "Subscriber"])
    resubscribe: dict[int, Subscriber] = field(default_factory=dict[int, "Subscriber"])


def _snapshot(subscriber: Subscriber, email: str | None = None) -> SubscriptionSnapshot:
    return SubscriptionSnapshot(email=email or subscriber.email, lists=list(subscriber.lists))


class BulkAddReconciler:
    def __init__(self, directory: SubscriberDirectory, membership: MembershipService) -> None:
        self._directory = directory
        self._membership = membership

    async def add_subscribers_to_list(
        self,
        list_id: int,
        entries: Iterable[BulkEntry],
        *,
        attach_to_list: bool = True,
        resubscribe: bool = False,
    ) -> ApiResponse[BulkAddResult]:
        """Create missing subscribers and attach everyone to ``list_id``.

        With ``resubscribe`` unsubscribed members are added back; otherwise they
        are reported in ``skipped_unsubscribed``. With ``attach_to_list=False``
        missing subscribers are created without lists and no membership is written.
        """

        normalized = [normalize_bulk_entry(entry) for entry in entries]
        if not normalized:
            return ApiResponse.ok(BulkAddResult(), message="No entries to process")

        deduped = dedupe_entries(normalized, key=lambda entry: entry.bulk_key)
        index = await self._directory.lookup(
            uids=[entry.uid for entry in deduped.values() if entry.uid],
            emails=[entry.email_key for entry in deduped.values()],
        )

        result = BulkAddResult()
        queue = _WriteQueue()
        for entry in deduped.values():
            existing = index.match(uid=entry.uid, email_key=entry.email_key)
            if existing is None:
                await self._create(list_id, entry, result, attach_to_list=attach_to_list)
                continue

            if entry.uid and existing.email_key != entry.email_key:
                renamed = await self._membership.update(
                    existing.id,
                    profile_body(
                        existing,
                        email=entry.email,
                        name=entry.name if entry.name is not None else existing.name,
                        attribs=entry.attribs,
                    ),
                )
                if not renamed.success or renamed.data is None:
                    return ApiResponse.error(
                        renamed.message or "Failed to update subscriber email", code=renamed.code
                    )
                existing = renamed.data
                index.remember(existing, email_key=entry.email_key, uid=entry.uid)

            self._route_existing(list_id, existing, result, queue, attach_to_list, resubscribe)

        if attach_to_list:
            await self._flush(
                queue.add,
                lambda ids: self._membership.add_to_list(ids, list_id),
                result,
            )
            await self._flush(
                queue.resubscribe,
                lambda ids: self._membership.add_to_lists(ids, [list_id]),
                result,
            )

        log.info(
            "Bulk add to list %d: %d created, %d added, %d blocked, %d unsubscribed, %d errors",
            list_id,
            len(result.created),
            len(result.added),
            len(result.skipped_blocked),
            len(result.skipped_unsubscribed),
            len(result.errors),
        )
        if result.errors:
            code = 500 if len(result.errors) == len(deduped) else 207
            return ApiResponse.error("Failed to add some subscribers", code=code, data=result)
        return ApiResponse.ok(result, message="Successfully added subscribers")

    async def _create(
        self,
        list_id: int,
        entry: NormalizedEntry,
        result: BulkAddResult,
        *,
        attach_to_list: bool,
    ) -> None:
        if attach_to_list:
            subscribed = await self._membership.subscribe(
                list_id,
                entry.email,
                name=entry.name or "",
                attribs=entry.attribs,
                options=_BULK_SUBSCRIBE,
            )
            if subscribed.success and subscribed.data is not None:
                subscriber = subscribed.data.subscriber
                if subscribed.data.created:
                    result.created.append(subscriber)
                else:
                    result.added.append(subscriber)
                result.memberships.append(_snapshot(subscriber, entry.email))
                return
            failure: ApiResponse[object] = subscribed.as_failure()
        else:
            created = await self._membership.create(
                email=entry.email,
                name=entry.name or "",
                attribs=entry.attribs,
                list_ids=[],
                preconfirm=True,
                status=SubscriberStatus.ENABLED,
            )
            if created.success and created.data is not None:
                result.created.append(created.data)
                result.memberships.append(_snapshot(created.data, entry.email))
                return
            failure = created.as_failure()

        result.errors.append(
            BulkAddError(email=entry.email, message=failure.message, code=failure.code)
        )

    @staticmethod
    def _route_existing(
        list_id: int,
        existing: Subscriber,
        result: BulkAddResult,
        queue: _WriteQueue,
        attach_to_list: bool,
        resubscribe: bool,
    ) -> None:
        result.memberships.append(_snapshot(existing))
        if existing.is_blocklisted:
            result.skipped_blocked.append(existing.email)
            return

        membership = existing.membership(list_id)
        if membership is not None and not membership.is_unsubscribed:
            if attach_to_list:
                result.added.append(existing)
            return
        if membership is not None and not (attach_to_list and resubscribe):
            result.skipped_unsubscribed.append(existing.email)
            return
        if not attach_to_list:
            return

        if membership is not None:
            queue.resubscribe[existing.id] = existing
        else:
            queue.add[existing.id] = existing
        result.added.append(existing)

    @staticmethod
    async def _flush(
        queued: dict[int, Subscriber],
        write: Callable[[list[int]], Awaitable[ApiResponse[object]]],
        result: BulkAddResult,
    ) -> None:
        for chunk in chunked(list(queued), WRITE_CHUNK_SIZE):
            response = await write(chunk)
            if response.success:
                continue
            log.warning(
                "Membership write failed for %d subscribers: %s %s",
                len(chunk),
                response.code,
                response.message,
            )
            failed = set(chunk)
            result.added[:] = [item for item in result.added if item.id not in failed]
            result.errors.extend(
                BulkAddError(
                    email=queued[subscriber_id].email,
                    message=response.message,
                    code=response.code,
                )
                for subscriber_id in chunk
            )


__all__ = ["BulkAddReconciler"]
