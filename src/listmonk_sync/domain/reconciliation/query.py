"""Server-side filter expressions and batching constants."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

LOOKUP_CHUNK_SIZE = 2500
MIN_LOOKUP_PAGE_SIZE = 50
WRITE_CHUNK_SIZE = 2500

EMAIL_FIELD = "email"
UUID_FIELD = "uuid"
UID_FIELD = "attribs->>'uid'"
BLOCKLISTED_FILTER = "subscribers.status = 'blocklisted'"


def escape_value(value: str) -> str:
    return value.replace("'", "''")


def quoted(value: str) -> str:
    return f"'{escape_value(value)}'"


def in_filter(field: str, values: Sequence[str]) -> str:
    return f"{field} IN ({','.join(quoted(value) for value in values)})"


def equality_filter(field: str, value: str) -> str:
    return f"{field} = {quoted(value)}"


def lookup_page_size(chunk: Sequence[object]) -> int:
    return max(len(chunk), MIN_LOOKUP_PAGE_SIZE)


def chunked[T](values: Sequence[T], size: int) -> Iterator[list[T]]:
    if size <= 0:
        raise ValueError("Chunk size must be positive")
    for start in range(0, len(values), size):
        yield list(values[start : start + size])
