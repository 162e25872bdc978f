from __future__ import annotations

import asyncio

from listmonk_sync.domain.identifiers import SubscriberIdentifier
from listmonk_sync.domain.model import ListMemberStatus
from listmonk_sync.domain.reconciliation import SubscriberDirectory
from listmonk_sync.domain.response import ApiResponse
from tests.support.listmonk import FakeListmonk


def test_lookup_queries_uids_before_emails() -> None:
    api = FakeListmonk()
    by_uid = api.seed("renamed@example.com", uid="u-1")
    by_email = api.seed("Plain@Example.com")
    directory = SubscriberDirectory(api)

    index = asyncio.run(
        directory.lookup(uids=["u-1"], emails=["new@example.com", "plain@example.com"])
    )

    queries = [call.params["query"] for call in api.calls_to("GET", "/subscribers")]
    assert queries == [
        "attribs->>'uid' IN ('u-1')",
        "email IN ('new@example.com','plain@example.com')",
    ]
    assert all(call.params["per_page"] == 50 for call in api.calls)
    assert index.match(uid="u-1", email_key="new@example.com").id == by_uid  # type: ignore[union-attr]
    assert index.match(uid=None, email_key="plain@example.com").id == by_email  # type: ignore[union-attr]
    assert index.match(uid="u-x", email_key="nobody@example.com") is None


def test_lookup_prefers_uid_match_over_email_match() -> None:
    api = FakeListmonk()
    owner = api.seed("old@example.com", uid="u-1")
    api.seed("shared@example.com", uid="u-2")
    directory = SubscriberDirectory(api)

    index = asyncio.run(directory.lookup(uids=["u-1"], emails=["shared@example.com"]))

    assert index.match(uid="u-1", email_key="shared@example.com").id == owner  # type: ignore[union-attr]


def test_lookup_skips_failed_chunks() -> None:
    api = FakeListmonk()
    api.seed("kept@example.com")
    api.fail_when(
        lambda call: "attribs" in str(call.params.get("query", "")),
        ApiResponse.error("boom", code=500),
    )
    directory = SubscriberDirectory(api)

    index = asyncio.run(directory.lookup(uids=["u-1"], emails=["kept@example.com"]))

    assert list(index.by_email) == ["kept@example.com"]
    assert index.by_uid == {}


def test_lookup_tolerates_non_string_uids() -> None:
    api = FakeListmonk()
    api.seed("numeric@example.com", attribs={"uid": 12})
    directory = SubscriberDirectory(api)

    index = asyncio.run(directory.lookup(emails=["numeric@example.com"]))

    assert "numeric@example.com" in index.by_email
    assert index.by_uid == {}


def test_find_by_email_uses_single_row_equality_query() -> None:
    api = FakeListmonk()
    subscriber_id = api.seed("o'hara@example.com")
    directory = SubscriberDirectory(api)

    response = asyncio.run(directory.find(SubscriberIdentifier(email="o'hara@example.com")))

    assert response.success is True
    assert response.data is not None
    assert response.data.id == subscriber_id
    assert api.calls[0].params == {"per_page": 1, "query": "email = 'o''hara@example.com'"}


def test_find_reports_not_found_and_missing_identifier() -> None:
    api = FakeListmonk()
    directory = SubscriberDirectory(api)

    missing = asyncio.run(directory.find(SubscriberIdentifier(uuid="nope")))
    by_id = asyncio.run(directory.find(SubscriberIdentifier(id=99)))
    empty = asyncio.run(directory.find(SubscriberIdentifier()))

    assert (missing.code, missing.message) == (404, "Subscriber not found")
    assert by_id.code == 404
    assert (empty.code, empty.message) == (400, "id, uuid, or email is required")
    assert len(api.calls) == 2


def test_find_by_id_treats_null_payload_as_not_found() -> None:
    api = FakeListmonk()
    api.failures[("GET", "/subscribers/5")] = ApiResponse.ok(None)
    directory = SubscriberDirectory(api)

    response = asyncio.run(directory.find(SubscriberIdentifier(id=5)))

    assert response.code == 404


def test_find_propagates_remote_failures() -> None:
    api = FakeListmonk()
    api.failures[("GET", "/subscribers")] = ApiResponse.error("db down", code=503)
    directory = SubscriberDirectory(api)

    response = asyncio.run(directory.find(SubscriberIdentifier(email="a@example.com")))

    assert (response.success, response.code, response.message) == (False, 503, "db down")


def test_list_members_by_status_translates_filters() -> None:
    api = FakeListmonk()
    api.seed("on@example.com", memberships={7: "confirmed"})
    api.seed("off@example.com", memberships={7: "unsubscribed"})
    api.seed("blocked@example.com", status="blocklisted", memberships={7: "confirmed"})
    directory = SubscriberDirectory(api, list_page_size=25)

    subscribed = asyncio.run(directory.list_members_by_status(7, ListMemberStatus.SUBSCRIBED))
    unsubscribed = asyncio.run(
        directory.list_members_by_status(7, ListMemberStatus.UNSUBSCRIBED, page=2, per_page=10)
    )
    blocked = asyncio.run(directory.list_members_by_status(7, ListMemberStatus.BLOCKED))

    assert api.calls[0].params == {
        "list_id": 7,
        "per_page": 25,
        "subscription_status": "confirmed",
    }
    assert api.calls[1].params == {
        "list_id": 7,
        "page": 2,
        "per_page": 10,
        "subscription_status": "unsubscribed",
    }
    assert api.calls[2].params["query"] == "subscribers.status = 'blocklisted'"
    assert subscribed.data is not None
    assert [s.email for s in subscribed.data.results] == ["on@example.com", "blocked@example.com"]
    assert unsubscribed.data is not None
    assert [s.email for s in unsubscribed.data.results] == ["off@example.com"]
    assert blocked.data is not None
    assert [s.email for s in blocked.data.results] == ["blocked@example.com"]
