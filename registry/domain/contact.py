"""Contact value types: the ways a person can be reached."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .reference import Country, PostalCode


class PhoneType(str, Enum):
    land = "land"
    mobile = "mobile"
    office = "office"


@dataclass(frozen=True, slots=True)
class Contact:
    """Base for every contact variant.

    Contacts are values: a change of the ``primary`` flag produces a new
    instance through :func:`dataclasses.replace`.
    """

    primary: bool = field(default=False, kw_only=True)


@dataclass(frozen=True, slots=True)
class Email(Contact):
    address: str

    def __str__(self) -> str:
        return self.address


@dataclass(frozen=True, slots=True)
class Phone(Contact):
    type: PhoneType
    number: str
    country: Country

    def __str__(self) -> str:
        return f"({self.country.calling_code}) {self.number} ({PhoneType(self.type).value})"


@dataclass(frozen=True, slots=True)
class PostalAddress(Contact):
    lines: tuple[str, ...]
    postal_code: PostalCode
    country: Country

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", tuple(self.lines))

    def __str__(self) -> str:
        parts = [line for line in self.lines if line]
        if self.postal_code.city:
            parts.append(self.postal_code.city)
        if self.postal_code.state:
            parts.append(f"{self.postal_code.state} {self.postal_code.code}")
        else:
            parts.append(self.postal_code.code)
        parts.append(self.country.name)
        return ", ".join(parts)
