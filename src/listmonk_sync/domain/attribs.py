"""Subscriber attribute bags.

``attribs`` is an arbitrary JSON object owned by the remote service. Equality is
decided on a canonical serialisation so that key insertion order never counts
as a change.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping

type JsonPrimitive = str | int | float | bool | None
type JsonValue = JsonPrimitive | list[JsonValue] | dict[str, JsonValue]
type Attribs = dict[str, JsonValue]

UID_KEY = "uid"


def _plain(value: object) -> object:
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        return int(value) if value.is_integer() else value
    if isinstance(value, Mapping):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def canonical_json(value: object) -> str:
    """Serialise ``value`` with object keys sorted recursively.

    Arrays keep their order. Integral floats serialise as integers and
    non-finite floats as ``null``, so ``1`` and ``1.0`` agree while ``1`` and
    ``"1"`` do not.
    """

    return json.dumps(_plain(value), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def attribs_equal(left: Mapping[str, object] | None, right: Mapping[str, object] | None) -> bool:
    return canonical_json(left or {}) == canonical_json(right or {})


def merge_attribs(
    base: Mapping[str, JsonValue] | None,
    overlay: Mapping[str, JsonValue] | None,
    *,
    uid: str | None = None,
) -> Attribs:
    """Overlay ``overlay`` onto ``base``; overlay wins, ``uid`` is pinned when given."""

    merged: Attribs = {**(base or {}), **(overlay or {})}
    if uid is not None:
        merged[UID_KEY] = uid
    return merged


def uid_from(attribs: Mapping[str, object] | None) -> str | None:
    """Return ``attribs["uid"]`` when it is a string."""

    if not attribs:
        return None
    value = attribs.get(UID_KEY)
    return value if isinstance(value, str) else None
