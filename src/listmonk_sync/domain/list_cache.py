"""Time-bounded snapshot of list id to list name mappings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .model import ListRecord


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class ListNameCache:
    expires_at: datetime
    snapshot: Mapping[int, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_records(
        cls,
        records: Iterable[ListRecord],
        *,
        now: datetime,
        ttl_seconds: float,
    ) -> ListNameCache:
        names = {record.id: record.name or "" for record in records}
        return cls(
            expires_at=now + timedelta(seconds=ttl_seconds),
            snapshot=MappingProxyType(names),
        )

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def contains(self, list_id: int) -> bool:
        return list_id in self.snapshot

    def name_for(self, list_id: int) -> str | None:
        return self.snapshot.get(list_id) or None
