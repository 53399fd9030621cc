from __future__ import annotations

from dataclasses import dataclass, field

from .errors import EmptyStateError
from .person import Person


@dataclass(slots=True)
class Account:
    """Ordered owners of a user's holdings; the first owner is the primary one."""

    _owners: list[Person] = field(default_factory=list)

    def add_primary_owner(self, person: Person) -> None:
        """Put ``person`` at the front, removing any earlier entry for the same person."""
        self._owners = [owner for owner in self._owners if not _same_person(owner, person)]
        self._owners.insert(0, person)

    @property
    def primary_owner(self) -> Person:
        if not self._owners:
            raise EmptyStateError("account has no owners")
        return self._owners[0]

    @property
    def owners(self) -> list[Person]:
        return list(self._owners)


def _same_person(left: Person, right: Person) -> bool:
    if left is right:
        return True
    return left.id is not None and left.id == right.id
