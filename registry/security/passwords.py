"""Adaptive one-way password hashing."""

from __future__ import annotations

from typing import Protocol

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from argon2.low_level import Type

from ..config import get_settings


class PasswordEncoder(Protocol):
    """Pluggable password hashing used by :class:`~registry.domain.user.User`."""

    def hash(self, plaintext: str) -> str:
        ...

    def matches(self, plaintext: str, digest: str) -> bool:
        ...


class Argon2PasswordEncoder:
    """Argon2id encoder; digests embed their own salt and cost parameters."""

    def __init__(self, *, time_cost: int, memory_cost: int, parallelism: int) -> None:
        self._hasher = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=32,
            type=Type.ID,
        )

    def hash(self, plaintext: str) -> str:
        return self._hasher.hash(plaintext)

    def matches(self, plaintext: str, digest: str) -> bool:
        """Return ``True`` when ``plaintext`` produced ``digest``; malformed digests never match."""
        try:
            return self._hasher.verify(digest, plaintext)
        except (VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, digest: str) -> bool:
        return self._hasher.check_needs_rehash(digest)


def _build_encoder() -> Argon2PasswordEncoder:
    settings = get_settings()
    return Argon2PasswordEncoder(
        time_cost=settings.argon2_time_cost,
        memory_cost=settings.argon2_memory_cost,
        parallelism=settings.argon2_parallelism,
    )


PASSWORD_ENCODER: PasswordEncoder = _build_encoder()
