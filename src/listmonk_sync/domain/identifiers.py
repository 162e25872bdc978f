"""Ways of addressing a single subscriber."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class SubscriberIdentifier:
    """Numeric id, UUID or email; the first one set is used, in that order."""

    id: int | None = None
    uuid: str | None = None
    email: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.id is None and not self.uuid and not self.email

    @classmethod
    def parse(cls, value: SubscriberIdentifier | int | str) -> SubscriberIdentifier:
        if isinstance(value, SubscriberIdentifier):
            return value
        if isinstance(value, bool):
            raise TypeError("A boolean is not a subscriber identifier")
        if isinstance(value, int):
            return cls(id=value)
        text = value.strip()
        if text.isdigit():
            return cls(id=int(text))
        if "@" in text:
            return cls(email=text)
        try:
            return cls(uuid=str(UUID(text)))
        except ValueError:
            return cls(email=text)
