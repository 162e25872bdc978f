from __future__ import annotations

from datetime import UTC, datetime, timedelta

from listmonk_sync.domain.list_cache import ListNameCache
from listmonk_sync.domain.model import ListRecord

NOW = datetime(2024, 5, 1, 12, tzinfo=UTC)


def _cache(ttl: float = 60) -> ListNameCache:
    records = [ListRecord(id=1, name="Newsletter"), ListRecord(id=2, name=None)]
    return ListNameCache.from_records(records, now=NOW, ttl_seconds=ttl)


def test_cache_expires_exactly_at_ttl() -> None:
    cache = _cache(60)

    assert cache.expires_at == NOW + timedelta(seconds=60)
    assert not cache.is_expired(NOW + timedelta(seconds=59))
    assert cache.is_expired(NOW + timedelta(seconds=60))


def test_cache_lookups() -> None:
    cache = _cache()

    assert cache.name_for(1) == "Newsletter"
    assert cache.contains(2)
    assert cache.name_for(2) is None
    assert not cache.contains(3)
    assert cache.name_for(3) is None
