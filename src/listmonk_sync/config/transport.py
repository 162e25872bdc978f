"""Configuration types for the HTTP transport."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_TIMEOUT_SECONDS = 15.0


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class TransportConfig:
    name: str
    base_url: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    auth: tuple[str, str] | None = None
    ratelimit: RateLimit | None = None
    default_headers: Mapping[str, str] | None = None
    debug: bool = False
