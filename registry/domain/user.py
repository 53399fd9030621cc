from __future__ import annotations

from dataclasses import dataclass, field

from ..security.passwords import PASSWORD_ENCODER
from .account import Account


@dataclass(slots=True)
class User:
    """Aggregate root for a login identity and the account it owns."""

    login_name: str
    password: str | None = field(default=None, repr=False)
    account: Account = field(default_factory=Account)
    registered: bool = False
    id: str | None = None
    version: int = 0

    def set_password(self, plaintext: str) -> None:
        """Store the adaptive digest of ``plaintext`` and mark the user registered."""
        self.password = PASSWORD_ENCODER.hash(plaintext)
        self.registered = True

    def check_password(self, plaintext: str) -> bool:
        if self.password is None:
            return False
        return PASSWORD_ENCODER.matches(plaintext, self.password)

    @property
    def is_registered(self) -> bool:
        return self.registered
