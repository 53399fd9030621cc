"""Error hierarchy shared by the domain model, repositories, and stores."""

from __future__ import annotations


class RegistryError(Exception):
    """Base class for every error raised by the registry."""


class DuplicateKeyError(RegistryError, ValueError):
    """A unique key is already held by a different document."""

    def __init__(self, collection: str, fields: tuple[str, ...]) -> None:
        self.collection = collection
        self.fields = fields
        super().__init__(f"duplicate key in {collection}: {', '.join(fields)}")


class NotFoundError(RegistryError, LookupError):
    """An operation required exactly one result and found none."""


class EmptyStateError(RegistryError):
    """An aggregate was asked for state it does not hold yet."""


class ReferentialIntegrityError(RegistryError):
    """A document references another document that is not stored."""


class StaleDocumentError(RegistryError):
    """The stored document changed since the caller loaded it."""

    def __init__(self, collection: str, document_id: str) -> None:
        self.collection = collection
        self.document_id = document_id
        super().__init__(f"stale write to {collection}/{document_id}")
