"""Batch upsert of application users into one list, keyed by ``attribs.uid``."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from listmonk_sync.domain.attribs import attribs_equal, merge_attribs
from listmonk_sync.domain.entries import dedupe_entries, normalize_user
from listmonk_sync.domain.model import SubscriberStatus
from listmonk_sync.domain.response import ApiResponse
from listmonk_sync.domain.results import SyncUsersResult

from .membership import SubscribeOptions
from .payloads import profile_body
from .query import WRITE_CHUNK_SIZE, chunked

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from listmonk_sync.domain.attribs import Attribs
    from listmonk_sync.domain.entries import NormalizedEntry, UserRecord
    from listmonk_sync.domain.model import Subscriber

    from .membership import MembershipService
    from .resolver import SubscriberDirectory

log = getLogger(__name__)

_SYNC_SUBSCRIBE = SubscribeOptions(preconfirm=True, status=SubscriberStatus.ENABLED)


def _needs_update(existing: Subscriber, email: str, name: str, attribs: Attribs) -> bool:
    return (
        existing.email_key != email.lower()
        or existing.name != name
        or not attribs_equal(existing.attribs, attribs)
    )


class UserSyncReconciler:
    """Mirror a set of users into a list.

    Unlike the bulk add, every failure aborts the run and is returned as is;
    writes already issued are not rolled back.
    """

    def __init__(self, directory: SubscriberDirectory, membership: MembershipService) -> None:
        self._directory = directory
        self._membership = membership

    async def sync_users_to_list(
        self, list_id: int, users: Iterable[UserRecord]
    ) -> ApiResponse[SyncUsersResult]:
        if isinstance(list_id, bool) or not isinstance(list_id, int):
            return ApiResponse.error("list_id must be a number", code=400)
        normalized = [normalize_user(user) for user in users]
        if not normalized:
            return ApiResponse.ok(SyncUsersResult())
        if any(not entry.uid for entry in normalized):
            return ApiResponse.error("Each user must include a uid", code=400)
        if any(not entry.email for entry in normalized):
            return ApiResponse.error("Each user must include an email", code=400)

        deduped = dedupe_entries(normalized, key=lambda entry: entry.uid or "")
        index = await self._directory.lookup(
            uids=list(deduped),
            emails=[entry.email_key for entry in deduped.values()],
        )

        counts = SyncUsersResult()
        add_ids: list[int] = []
        resubscribe_ids: list[int] = []
        for entry in deduped.values():
            existing = index.match(uid=entry.uid, email_key=entry.email_key)
            if existing is None:
                subscribed = await self._membership.subscribe(
                    list_id,
                    entry.email,
                    name=entry.name or "",
                    attribs=entry.attribs,
                    options=_SYNC_SUBSCRIBE,
                )
                if not subscribed.success or subscribed.data is None:
                    return subscribed.as_failure()
                if subscribed.data.added:
                    counts.added += 1
                continue

            if existing.is_blocklisted:
                counts.blocked += 1
                continue

            membership = existing.membership(list_id)
            was_unsubscribed = membership is not None and membership.is_unsubscribed
            if was_unsubscribed:
                counts.unsubscribed += 1

            updated = await self._update_identity(existing, entry)
            if not updated.success:
                return updated.as_failure()
            if updated.data is None:
                return ApiResponse.error("Failed to update subscriber", code=updated.code)
            if updated.data is not existing:
                counts.updated += 1
                existing = updated.data

            current = existing.membership(list_id)
            on_list = current is not None and not current.is_unsubscribed
            if was_unsubscribed:
                resubscribe_ids.append(existing.id)
                counts.added += 1
            elif not on_list:
                add_ids.append(existing.id)
                counts.added += 1

        failure = await self._flush(add_ids, lambda ids: self._membership.add_to_list(ids, list_id))
        if failure is not None:
            return failure.as_failure()
        failure = await self._flush(
            resubscribe_ids, lambda ids: self._membership.add_to_lists(ids, [list_id])
        )
        if failure is not None:
            return failure.as_failure()

        log.info(
            "Synced %d users to list %d: %d added, %d updated, %d blocked, %d unsubscribed",
            len(deduped),
            list_id,
            counts.added,
            counts.updated,
            counts.blocked,
            counts.unsubscribed,
        )
        return ApiResponse.ok(counts)

    async def _update_identity(
        self, existing: Subscriber, entry: NormalizedEntry
    ) -> ApiResponse[Subscriber]:
        """Return ``existing`` untouched, or the record after a profile update."""

        attribs = merge_attribs(existing.attribs, entry.attribs, uid=entry.uid)
        name = entry.name if entry.name is not None else existing.name
        if not _needs_update(existing, entry.email, name, attribs):
            return ApiResponse.ok(existing)
        return await self._membership.update(
            existing.id, profile_body(existing, email=entry.email, name=name, attribs=attribs)
        )

    @staticmethod
    async def _flush(
        ids: list[int],
        write: Callable[[list[int]], Awaitable[ApiResponse[object]]],
    ) -> ApiResponse[object] | None:
        for chunk in chunked(ids, WRITE_CHUNK_SIZE):
            response = await write(chunk)
            if not response.success:
                log.warning(
                    "Membership write failed for %d users: %s %s",
                    len(chunk),
                    response.code,
                    response.message,
                )
                return response
        return None


__all__ = ["UserSyncReconciler"]
