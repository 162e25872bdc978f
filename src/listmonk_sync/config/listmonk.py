"""Listmonk API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import (
    optional_env_bool,
    optional_env_float,
    optional_env_int,
    require_env_vars,
)
from .errors import ConfigurationError
from .transport import DEFAULT_TIMEOUT_SECONDS, RateLimit, TransportConfig

DEFAULT_LIST_PAGE_SIZE = 100


@dataclass(frozen=True)
class ListmonkConfig:
    """Holds the connection settings for one Listmonk instance.

    ``list_cache_seconds`` enables the list-name cache used to enrich
    membership reports; ``None`` or ``0`` disables it.
    """

    api_url: str
    user: str
    token: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    list_page_size: int = DEFAULT_LIST_PAGE_SIZE
    list_cache_seconds: float | None = None
    debug: bool = False
    ratelimit: RateLimit | None = None

    def __post_init__(self) -> None:
        if not self.api_url or not self.api_url.strip():
            raise ConfigurationError("api_url is required")
        if not self.token:
            raise ConfigurationError("token is required")
        if not self.user:
            raise ConfigurationError("user is required for basic auth")
        if self.timeout_seconds <= 0:
            raise ConfigurationError("timeout_seconds must be positive")
        if self.list_page_size <= 0:
            raise ConfigurationError("list_page_size must be positive")

    @property
    def base_url(self) -> str:
        return self.api_url.strip().rstrip("/")

    def transport(self) -> TransportConfig:
        return TransportConfig(
            name="listmonk",
            base_url=self.base_url,
            timeout_seconds=self.timeout_seconds,
            auth=(self.user, self.token),
            ratelimit=self.ratelimit,
            debug=self.debug,
        )


def get_listmonk_config() -> ListmonkConfig:
    values = require_env_vars(("LISTMONK_URL", "LISTMONK_USER", "LISTMONK_TOKEN"))
    max_calls = optional_env_int("LISTMONK_MAX_CALLS_PER_SECOND")
    return ListmonkConfig(
        api_url=values["LISTMONK_URL"],
        user=values["LISTMONK_USER"],
        token=values["LISTMONK_TOKEN"],
        timeout_seconds=optional_env_float("LISTMONK_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)
        or DEFAULT_TIMEOUT_SECONDS,
        list_page_size=optional_env_int("LISTMONK_LIST_PAGE_SIZE", DEFAULT_LIST_PAGE_SIZE)
        or DEFAULT_LIST_PAGE_SIZE,
        list_cache_seconds=optional_env_float("LISTMONK_LIST_CACHE_SECONDS"),
        debug=optional_env_bool("LISTMONK_DEBUG"),
        ratelimit=RateLimit(max_calls=max_calls, per_seconds=1.0) if max_calls else None,
    )
