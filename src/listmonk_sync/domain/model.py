"""Pydantic models describing the Listmonk subscriber and list payloads."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .attribs import Attribs, uid_from  # noqa: TC001


class SubscriberStatus(StrEnum):
    """Global status of a subscriber."""

    ENABLED = "enabled"
    DISABLED = "disabled"
    BLOCKLISTED = "blocklisted"
    UNCONFIRMED = "unconfirmed"
    BOUNCED = "bounced"


class SubscriptionStatus(StrEnum):
    """Status of a subscriber on one list."""

    CONFIRMED = "confirmed"
    UNCONFIRMED = "unconfirmed"
    UNSUBSCRIBED = "unsubscribed"


class ListMemberStatus(StrEnum):
    """Member filter accepted by ``list_members_by_status``."""

    SUBSCRIBED = "subscribed"
    UNSUBSCRIBED = "unsubscribed"
    BLOCKED = "blocked"


class ListVisibility(StrEnum):
    ALL = "all"
    PUBLIC = "public"
    PRIVATE = "private"


def _none_to_empty_list(value: object) -> object:
    return [] if value is None else value


def _none_to_empty_dict(value: object) -> object:
    return {} if value is None else value


def _none_to_blank(value: object) -> object:
    return "" if value is None else value


class ListmonkBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ListRecord(ListmonkBaseModel):
    id: int
    uuid: str | None = None
    name: str | None = None
    type: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None

    _normalize_tags = field_validator("tags", mode="before")(_none_to_empty_list)


class ListMembership(ListRecord):
    """A list entry on a subscriber.

    The remote service returns either a bare ``{id, subscription_status}`` pair
    or the full list record merged with the membership status.
    """

    subscription_status: str | None = None

    @property
    def is_unsubscribed(self) -> bool:
        return self.subscription_status == SubscriptionStatus.UNSUBSCRIBED


class Subscriber(ListmonkBaseModel):
    id: int
    uuid: str = ""
    email: str
    name: str = ""
    attribs: Attribs = Field(default_factory=dict)
    status: str = SubscriberStatus.ENABLED
    created_at: str | None = None
    updated_at: str | None = None
    lists: list[ListMembership] = Field(default_factory=list)

    _normalize_attribs = field_validator("attribs", mode="before")(_none_to_empty_dict)
    _normalize_lists = field_validator("lists", mode="before")(_none_to_empty_list)
    _normalize_name = field_validator("name", mode="before")(_none_to_blank)

    @property
    def email_key(self) -> str:
        return self.email.lower()

    @property
    def uid(self) -> str | None:
        return uid_from(self.attribs)

    @property
    def is_blocklisted(self) -> bool:
        return self.status == SubscriberStatus.BLOCKLISTED

    def membership(self, list_id: int) -> ListMembership | None:
        for entry in self.lists:
            if entry.id == list_id:
                return entry
        return None

    def list_ids(self) -> list[int]:
        return [entry.id for entry in self.lists]

    def subscribed_list_ids(self) -> list[int]:
        """Lists with a confirmed or unconfirmed (not unsubscribed) membership."""

        return [entry.id for entry in self.lists if not entry.is_unsubscribed]


class SubscriberPage(ListmonkBaseModel):
    results: list[Subscriber] = Field(default_factory=list)
    query: str | None = None
    total: int = 0
    per_page: int | str | None = None
    page: int | None = None

    _normalize_results = field_validator("results", mode="before")(_none_to_empty_list)
