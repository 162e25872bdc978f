"""Typed reports returned by the membership and reconciliation operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .model import ListMembership, Subscriber


@dataclass(slots=True)
class SubscriptionSnapshot:
    email: str
    lists: list[ListMembership] = field(default_factory=list["ListMembership"])


@dataclass(slots=True, kw_only=True)
class BulkAddError:
    email: str
    message: str
    code: int


@dataclass(slots=True)
class BulkAddResult:
    """Outcome of ``add_subscribers_to_list``; every processed entry lands in one set."""

    created: list[Subscriber] = field(default_factory=list["Subscriber"])
    added: list[Subscriber] = field(default_factory=list["Subscriber"])
    skipped_blocked: list[str] = field(default_factory=list[str])
    skipped_unsubscribed: list[str] = field(default_factory=list[str])
    memberships: list[SubscriptionSnapshot] = field(default_factory=list[SubscriptionSnapshot])
    errors: list[BulkAddError] = field(default_factory=list[BulkAddError])


@dataclass(slots=True)
class SyncUsersResult:
    """Counters for one sync run; they overlap.

    A member found unsubscribed is counted in ``unsubscribed`` and, once added
    back, in ``added`` too. ``updated`` counts profile rewrites independently of
    membership changes.
    """

    blocked: int = 0
    unsubscribed: int = 0
    added: int = 0
    updated: int = 0


@dataclass(slots=True, kw_only=True)
class SubscribeResult:
    subscriber: Subscriber
    added: bool
    already_subscribed: bool
    created: bool


class UnsubscribeMessage(StrEnum):
    SUBSCRIBED = "Subscribed"
    UNSUBSCRIBED = "Unsubscribed"
    UNKNOWN_LIST = "Unknown List"


@dataclass(slots=True, kw_only=True)
class UnsubscribeListResult:
    """Per-list outcome, computed from the membership snapshot taken before the call."""

    list_id: int
    status_changed: bool
    message: UnsubscribeMessage
    list_name: str | None = None


@dataclass(slots=True, kw_only=True)
class UnsubscribeResult:
    subscriber: Subscriber
    lists: list[UnsubscribeListResult]


class SetSubscriptionsStatus(StrEnum):
    SUBSCRIBED = "Subscribed"
    UNSUBSCRIBED = "Unsubscribed"
    UNCHANGED = "Unchanged"


@dataclass(slots=True, kw_only=True)
class SetSubscriptionsListResult:
    list_id: int
    status: SetSubscriptionsStatus
    list_name: str | None = None


@dataclass(slots=True, kw_only=True)
class SetSubscriptionsResult:
    subscriber: Subscriber
    lists: list[SetSubscriptionsListResult]
