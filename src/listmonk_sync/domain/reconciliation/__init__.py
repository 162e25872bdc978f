"""Reconciliation of caller-supplied subscribers against the remote store.

Flow for the batch operations:
1) normalise and deduplicate the input entries
2) resolve existing subscribers by uid, then by email
3) route every entry to one outcome, issuing per-entry writes on the way
4) flush queued membership writes in chunks
"""

from __future__ import annotations

from .bulk import BulkAddReconciler
from .lists import ListDirectory
from .membership import MembershipService, SubscribeOptions
from .resolver import SubscriberDirectory, SubscriberIndex
from .sync import UserSyncReconciler

__all__ = [
    "BulkAddReconciler",
    "ListDirectory",
    "MembershipService",
    "SubscribeOptions",
    "SubscriberDirectory",
    "SubscriberIndex",
    "UserSyncReconciler",
]
