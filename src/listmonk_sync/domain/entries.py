"""Caller-supplied subscriber records and their batch normalisation.

A uid given on an entry is mirrored into ``attribs["uid"]`` exactly once, when
the entry is normalised, so later stages only ever read ``NormalizedEntry.uid``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .attribs import UID_KEY, Attribs, uid_from

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable


@dataclass(frozen=True, slots=True)
class BulkEntry:
    """Input row for ``add_subscribers_to_list``."""

    email: str
    name: str | None = None
    uid: str | None = None
    attribs: Attribs | None = None


@dataclass(frozen=True, slots=True)
class UserRecord:
    """Input row for ``sync_users_to_list``; ``uid`` and ``email`` are mandatory there."""

    email: str
    name: str | None = None
    uid: str | None = None
    attribs: Attribs | None = None


@dataclass(frozen=True, slots=True)
class NormalizedEntry:
    email: str
    name: str | None
    uid: str | None
    attribs: Attribs

    @property
    def email_key(self) -> str:
        return self.email.lower()

    @property
    def bulk_key(self) -> str:
        if self.uid:
            return f"uid:{self.uid}"
        return f"email:{self.email_key}"


def _mirrored(attribs: Attribs | None, uid: str | None) -> Attribs:
    copied: Attribs = dict(attribs or {})
    if uid:
        copied[UID_KEY] = uid
    return copied


def normalize_bulk_entry(entry: BulkEntry) -> NormalizedEntry:
    uid = entry.uid if entry.uid is not None else uid_from(entry.attribs)
    return NormalizedEntry(
        email=entry.email,
        name=entry.name,
        uid=uid or None,
        attribs=_mirrored(entry.attribs, uid),
    )


def normalize_user(record: UserRecord) -> NormalizedEntry:
    uid = (record.uid or "").strip()
    return NormalizedEntry(
        email=(record.email or "").strip(),
        name=record.name.strip() if record.name is not None else None,
        uid=uid,
        attribs=_mirrored(record.attribs, uid),
    )


def dedupe_entries(
    entries: Iterable[NormalizedEntry],
    *,
    key: Callable[[NormalizedEntry], str],
) -> dict[str, NormalizedEntry]:
    """Collapse entries sharing a key; the last one wins.

    The surviving entry keeps the position of the first occurrence.
    """

    deduped: dict[str, NormalizedEntry] = {}
    for entry in entries:
        deduped[key(entry)] = entry
    return deduped
