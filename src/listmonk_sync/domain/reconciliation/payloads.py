"""Response validation and the request bodies shared by the reconcilers."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from listmonk_sync.domain.response import ApiResponse

if TYPE_CHECKING:
    from collections.abc import Mapping

    from listmonk_sync.domain.attribs import Attribs
    from listmonk_sync.domain.model import Subscriber

log = getLogger(__name__)

UNEXPECTED_PAYLOAD_MESSAGE = "Unexpected response payload"


def parse_response[M: BaseModel](
    response: ApiResponse[object],
    model: type[M],
) -> ApiResponse[M]:
    """Validate ``response.data`` as ``model``; failures pass through unchanged."""

    if not response.success:
        return response.as_failure()
    if response.data is None:
        return ApiResponse.ok(None, code=response.code, message=response.message)
    try:
        parsed = model.model_validate(response.data)
    except ValidationError as exc:
        log.warning("Invalid %s payload: %s", model.__name__, exc)
        return ApiResponse.error(UNEXPECTED_PAYLOAD_MESSAGE, code=500)
    return ApiResponse.ok(parsed, code=response.code, message=response.message)


def membership_body(
    ids: list[int],
    action: str,
    target_list_ids: list[int] | None = None,
) -> Mapping[str, object]:
    body: dict[str, object] = {"ids": ids, "action": action}
    if target_list_ids is not None:
        body["target_list_ids"] = target_list_ids
    return body


def profile_body(
    subscriber: Subscriber,
    *,
    email: str,
    name: str,
    attribs: Attribs,
) -> dict[str, object]:
    """Body for ``PUT /subscribers/{id}``.

    The update replaces the whole record, so the subscriber's current list ids
    are repeated to keep its memberships.
    """

    body: dict[str, object] = {"email": email, "name": name, "attribs": attribs}
    list_ids = subscriber.list_ids()
    if list_ids:
        body["lists"] = list_ids
    return body
