from __future__ import annotations

from listmonk_sync.domain.model import Subscriber, SubscriberPage


def test_subscriber_tolerates_null_collections() -> None:
    subscriber = Subscriber.model_validate(
        {"id": 1, "email": "A@Example.com", "name": None, "attribs": None, "lists": None}
    )

    assert subscriber.attribs == {}
    assert subscriber.lists == []
    assert subscriber.name == ""
    assert subscriber.email_key == "a@example.com"
    assert subscriber.uid is None


def test_subscriber_membership_helpers() -> None:
    subscriber = Subscriber.model_validate(
        {
            "id": 1,
            "email": "a@example.com",
            "status": "blocklisted",
            "attribs": {"uid": "u-1"},
            "lists": [
                {"id": 3, "subscription_status": "confirmed", "name": "News"},
                {"id": 4, "subscription_status": "unsubscribed"},
                {"id": 5},
            ],
            "unknown_field": "ignored",
        }
    )

    assert subscriber.is_blocklisted
    assert subscriber.uid == "u-1"
    assert subscriber.list_ids() == [3, 4, 5]
    assert subscriber.subscribed_list_ids() == [3, 5]
    assert subscriber.membership(4) is not None
    assert subscriber.membership(4).is_unsubscribed  # type: ignore[union-attr]
    assert subscriber.membership(9) is None


def test_subscriber_page_defaults() -> None:
    page = SubscriberPage.model_validate({"results": None})

    assert page.results == []
    assert page.total == 0
