"""Person aggregate: names and an ordered collection of contacts."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TypeVar

from .contact import Contact, Email, Phone, PostalAddress
from .errors import NotFoundError

C = TypeVar("C", bound=Contact)


@dataclass(slots=True)
class Person:
    """A natural person that can own accounts.

    Contacts keep their insertion order. For each concrete contact variant at
    most one entry carries the ``primary`` flag.
    """

    surname: str
    given_name: str
    middle_name: str | None = None
    title: str | None = None
    suffix: str | None = None
    contacts: list[Contact] = field(default_factory=list)
    id: str | None = None
    version: int = 0

    def add_contact(self, contact: Contact, primary: bool = False) -> None:
        """Append ``contact``; with ``primary`` it replaces the current primary of its variant.

        The first contact of a variant becomes its primary even when not asked to.
        """
        kind = type(contact)
        existing = [index for index, item in enumerate(self.contacts) if type(item) is kind]
        if primary:
            for index in existing:
                if self.contacts[index].primary:
                    self.contacts[index] = replace(self.contacts[index], primary=False)
        make_primary = primary or not existing
        if contact.primary != make_primary:
            contact = replace(contact, primary=make_primary)
        self.contacts.append(contact)

    def contacts_of(self, kind: type[C]) -> list[C]:
        """Return every contact of the given variant in insertion order."""
        return [contact for contact in self.contacts if type(contact) is kind]

    def primary_of(self, kind: type[C], required: bool = False) -> C | None:
        """Return the primary contact of ``kind``.

        Raises ``NotFoundError`` when ``required`` is set and the person has no
        contact of that variant.
        """
        for contact in self.contacts_of(kind):
            if contact.primary:
                return contact
        if required:
            raise NotFoundError(f"no primary {kind.__name__} for {self.formal_name}")
        return None

    @property
    def primary_email(self) -> Email | None:
        return self.primary_of(Email)

    @property
    def primary_phone(self) -> Phone | None:
        return self.primary_of(Phone)

    @property
    def primary_postal_address(self) -> PostalAddress | None:
        return self.primary_of(PostalAddress)

    @property
    def formal_name(self) -> str:
        """Render ``"<Title>. <Surname>, <Given> <Middle>, <Suffix>"`` skipping absent parts."""
        head = " ".join(part for part in (_with_period(self.title), self.surname) if part)
        middle = self.middle_name
        if middle and len(middle) == 1:
            middle = f"{middle}."
        rest = " ".join(part for part in (self.given_name, middle) if part)
        name = ", ".join(part for part in (head, rest) if part)
        if self.suffix:
            name = f"{name}, {self.suffix}"
        return name


def _with_period(value: str | None) -> str | None:
    if not value:
        return None
    return value if value.endswith(".") else f"{value}."
