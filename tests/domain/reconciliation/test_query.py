from __future__ import annotations

import pytest

from listmonk_sync.domain.reconciliation.query import (
    UID_FIELD,
    chunked,
    equality_filter,
    escape_value,
    in_filter,
    lookup_page_size,
)


def test_escape_value_doubles_single_quotes() -> None:
    assert escape_value("o'brien@example.com") == "o''brien@example.com"


def test_in_filter_quotes_each_value() -> None:
    assert in_filter("email", ["a@x.io", "o'b@x.io"]) == "email IN ('a@x.io','o''b@x.io')"
    assert in_filter(UID_FIELD, ["u-1"]) == "attribs->>'uid' IN ('u-1')"


def test_equality_filter() -> None:
    assert equality_filter("uuid", "abc") == "uuid = 'abc'"


def test_lookup_page_size_has_a_floor() -> None:
    assert lookup_page_size(["a"]) == 50
    assert lookup_page_size(list(range(120))) == 120


def test_chunked_splits_preserving_order() -> None:
    assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]
    assert list(chunked([], 3)) == []


def test_chunked_rejects_non_positive_size() -> None:
    with pytest.raises(ValueError, match="positive"):
        list(chunked([1], 0))
