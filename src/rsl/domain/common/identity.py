from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol, TypeVar


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def normalize_email(value: str | None) -> str | None:
    cleaned = _clean(value)
    return cleaned.lower() if cleaned else None


def normalize_phone(value: str | None) -> str | None:
    if value is None:
        return None
    digits = "".join(char for char in value if char.isdigit())
    return digits or None


@dataclass(frozen=True)
class Identity:
    """Weak identity of a person: any of user id, email or phone.

    Build instances with :meth:`of` so every field is normalized the same way.
    """

    user_id: str | None = None
    email: str | None = None
    phone: str | None = None

    @classmethod
    def of(
        cls,
        user_id: str | None = None,
        email: str | None = None,
        phone: str | None = None,
    ) -> Identity:
        return cls(
            user_id=_clean(user_id),
            email=normalize_email(email),
            phone=normalize_phone(phone),
        )

    @property
    def is_empty(self) -> bool:
        return self.user_id is None and self.email is None and self.phone is None

    def matches(self, other: Identity) -> bool:
        if self.user_id is not None and self.user_id == other.user_id:
            return True
        if self.email is not None and self.email == other.email:
            return True
        return self.phone is not None and self.phone == other.phone


class HasIdentity(Protocol):
    @property
    def identity(self) -> Identity: ...


T = TypeVar("T", bound=HasIdentity)


def resolve_member(candidates: Iterable[T], identity: Identity) -> T | None:
    if identity.is_empty:
        return None
    for candidate in candidates:
        if candidate.identity.matches(identity):
            return candidate
    return None
