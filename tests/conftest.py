from __future__ import annotations

import pytest

LISTMONK_ENV_VARS = (
    "LISTMONK_URL",
    "LISTMONK_USER",
    "LISTMONK_TOKEN",
    "LISTMONK_TIMEOUT_SECONDS",
    "LISTMONK_LIST_PAGE_SIZE",
    "LISTMONK_LIST_CACHE_SECONDS",
    "LISTMONK_DEBUG",
    "LISTMONK_MAX_CALLS_PER_SECOND",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    # setenv first so teardown also drops values loaded from .env files
    for name in LISTMONK_ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch
