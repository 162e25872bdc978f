"""Listmonk client with batch subscriber reconciliation."""

from __future__ import annotations

from importlib import metadata

from .client import ListmonkClient
from .config import ListmonkConfig, get_listmonk_config
from .domain.entries import BulkEntry, UserRecord
from .domain.identifiers import SubscriberIdentifier
from .domain.reconciliation import SubscribeOptions
from .domain.response import ApiResponse

try:
    __version__ = metadata.version("listmonk-sync")
except metadata.PackageNotFoundError:
    __version__ = "0.0.0+local"

__all__ = [
    "ApiResponse",
    "BulkEntry",
    "ListmonkClient",
    "ListmonkConfig",
    "SubscribeOptions",
    "SubscriberIdentifier",
    "UserRecord",
    "get_listmonk_config",
]
