from __future__ import annotations

import asyncio

from listmonk_sync.domain.entries import UserRecord
from listmonk_sync.domain.reconciliation import UserSyncReconciler
from listmonk_sync.domain.response import ApiResponse
from listmonk_sync.domain.results import SyncUsersResult
from tests.support.listmonk import FakeListmonk

LIST_ID = 9


def _reconciler(api: FakeListmonk) -> UserSyncReconciler:
    directory, _, membership = api.services()
    return UserSyncReconciler(directory, membership)


def test_validates_batch_before_any_call() -> None:
    api = FakeListmonk()
    reconciler = _reconciler(api)

    bad_list = asyncio.run(reconciler.sync_users_to_list("9", []))  # type: ignore[arg-type]
    no_uid = asyncio.run(
        reconciler.sync_users_to_list(LIST_ID, [UserRecord("a@example.com", uid="  ")])
    )
    no_email = asyncio.run(reconciler.sync_users_to_list(LIST_ID, [UserRecord(" ", uid="u-1")]))

    assert (bad_list.code, bad_list.message) == (400, "list_id must be a number")
    assert (no_uid.code, no_uid.message) == (400, "Each user must include a uid")
    assert (no_email.code, no_email.message) == (400, "Each user must include an email")
    assert api.calls == []


def test_empty_batch_returns_zero_counts() -> None:
    api = FakeListmonk()

    response = asyncio.run(_reconciler(api).sync_users_to_list(LIST_ID, []))

    assert response.success is True
    assert response.data == SyncUsersResult()


def test_sync_counts_each_outcome() -> None:
    api = FakeListmonk()
    api.seed("blocked@example.com", uid="u-blocked", status="blocklisted")
    back = api.seed("back@example.com", uid="u-back", memberships={LIST_ID: "unsubscribed"})
    member = api.seed(
        "member@example.com", name="Member", uid="u-member", memberships={LIST_ID: "confirmed"}
    )
    moved = api.seed("old@example.com", uid="u-moved")

    response = asyncio.run(
        _reconciler(api).sync_users_to_list(
            LIST_ID,
            [
                UserRecord("new@example.com", name="New", uid="u-new"),
                UserRecord("blocked@example.com", uid="u-blocked"),
                UserRecord("back@example.com", uid="u-back"),
                UserRecord("member@example.com", uid="u-member"),
                UserRecord("moved@example.com", uid="u-moved"),
            ],
        )
    )

    assert response.success is True
    assert response.data == SyncUsersResult(blocked=1, unsubscribed=1, added=3, updated=1)
    assert api.subscribers[moved].email == "moved@example.com"
    assert api.subscribers[back].memberships[LIST_ID] == "confirmed"
    assert api.subscribers[member].name == "Member"
    assert api.by_email("new@example.com").attribs == {"uid": "u-new"}

    list_writes = [(put.path, put.json) for put in api.calls_to("PUT", "/subscribers/lists")]
    assert list_writes == [
        (f"/subscribers/lists/{LIST_ID}", {"ids": [moved], "action": "add"}),
        ("/subscribers/lists", {"ids": [back], "action": "add", "target_list_ids": [LIST_ID]}),
    ]


def test_unchanged_users_are_not_rewritten() -> None:
    api = FakeListmonk()
    api.seed(
        "same@example.com",
        name="Same",
        attribs={"uid": "u-1", "plan": "pro"},
        memberships={LIST_ID: "confirmed"},
    )

    response = asyncio.run(
        _reconciler(api).sync_users_to_list(
            LIST_ID,
            [UserRecord("SAME@example.com", uid="u-1", attribs={"plan": "pro"})],
        )
    )

    assert response.data == SyncUsersResult()
    assert api.calls_to("PUT") == []


def test_integral_float_attribs_are_not_a_change() -> None:
    api = FakeListmonk()
    api.seed(
        "same@example.com",
        attribs={"uid": "u-1", "score": 3.0},
        memberships={LIST_ID: "confirmed"},
    )

    response = asyncio.run(
        _reconciler(api).sync_users_to_list(
            LIST_ID, [UserRecord("same@example.com", uid="u-1", attribs={"score": 3})]
        )
    )

    assert response.data == SyncUsersResult()
    assert api.calls_to("PUT") == []


def test_attribs_are_merged_over_existing() -> None:
    api = FakeListmonk()
    subscriber_id = api.seed(
        "user@example.com",
        name="User",
        attribs={"uid": "u-1", "plan": "free", "team": "core"},
        memberships={LIST_ID: "confirmed"},
    )

    response = asyncio.run(
        _reconciler(api).sync_users_to_list(
            LIST_ID,
            [UserRecord("user@example.com", name=" Renamed ", uid="u-1", attribs={"plan": "pro"})],
        )
    )

    assert response.data == SyncUsersResult(updated=1)
    assert api.calls_to("PUT")[0].json == {
        "email": "user@example.com",
        "name": "Renamed",
        "attribs": {"uid": "u-1", "plan": "pro", "team": "core"},
        "lists": [LIST_ID],
    }
    assert api.subscribers[subscriber_id].attribs["team"] == "core"
    assert api.subscribers[subscriber_id].memberships == {LIST_ID: "confirmed"}


def test_duplicate_uids_keep_the_last_record() -> None:
    api = FakeListmonk()

    asyncio.run(
        _reconciler(api).sync_users_to_list(
            LIST_ID,
            [
                UserRecord("first@example.com", uid="u-1"),
                UserRecord("second@example.com", uid="u-1"),
            ],
        )
    )

    posts = api.calls_to("POST")
    assert len(posts) == 1
    assert posts[0].json is not None
    assert posts[0].json["email"] == "second@example.com"


def test_failed_update_aborts_the_run() -> None:
    api = FakeListmonk()
    subscriber_id = api.seed("old@example.com", uid="u-1")
    api.failures[("PUT", f"/subscribers/{subscriber_id}")] = ApiResponse.error(
        "E-mail already exists.", code=409
    )

    response = asyncio.run(
        _reconciler(api).sync_users_to_list(
            LIST_ID,
            [UserRecord("taken@example.com", uid="u-1"), UserRecord("later@example.com", uid="u-2")],
        )
    )

    assert (response.success, response.code, response.message) == (
        False,
        409,
        "E-mail already exists.",
    )
    assert api.calls_to("POST") == []


def test_failed_create_aborts_the_run() -> None:
    api = FakeListmonk()
    api.failures[("POST", "/subscribers")] = ApiResponse.error("invalid email", code=400)

    response = asyncio.run(
        _reconciler(api).sync_users_to_list(LIST_ID, [UserRecord("x@example.com", uid="u-1")])
    )

    assert (response.code, response.message) == (400, "Failed to subscribe: invalid email")


def test_failed_membership_write_aborts_the_run() -> None:
    api = FakeListmonk()
    api.seed("loose@example.com", uid="u-1")
    api.failures[("PUT", f"/subscribers/lists/{LIST_ID}")] = ApiResponse.error(
        "locked", code=503
    )

    response = asyncio.run(
        _reconciler(api).sync_users_to_list(LIST_ID, [UserRecord("loose@example.com", uid="u-1")])
    )

    assert (response.success, response.code, response.message) == (False, 503, "locked")
