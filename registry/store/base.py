"""Document store contract shared by every backend."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

Document = dict[str, Any]


@dataclass(frozen=True, slots=True)
class Collection:
    """A named set of documents and the unique keys the store enforces on it.

    Each entry of ``unique`` is a tuple of dotted field paths forming one
    unique index. Documents with a missing value on any path of an index are
    not constrained by it.
    """

    name: str
    unique: tuple[tuple[str, ...], ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class StoredDocument:
    """A document read back from the store with its identity and version."""

    id: str
    version: int
    document: Document


class DocumentStore(Protocol):
    """Single-document atomic operations against a collection.

    Filters map dotted field paths to values and match by exact equality.
    """

    def ensure_collection(self, collection: Collection) -> None:
        ...

    def save(
        self,
        collection: Collection,
        document_id: str | None,
        document: Document,
        expected_version: int = 0,
    ) -> StoredDocument:
        """Insert a new document or replace the stored one.

        Raises ``DuplicateKeyError`` when another document holds one of the
        collection's unique keys and ``StaleDocumentError`` when the stored
        version differs from ``expected_version``.
        """
        ...

    def get(self, collection: Collection, document_id: str) -> StoredDocument | None:
        ...

    def find_one(self, collection: Collection, filters: Mapping[str, Any]) -> StoredDocument | None:
        ...

    def find(self, collection: Collection, filters: Mapping[str, Any] | None = None) -> list[StoredDocument]:
        ...

    def delete(self, collection: Collection, document_id: str) -> None:
        ...

    def delete_all(self, collection: Collection) -> None:
        ...


def resolve_path(document: Mapping[str, Any], path: str) -> Any:
    """Return the value at a dotted ``path`` or ``None`` when any segment is missing."""
    value: Any = document
    for segment in path.split("."):
        if not isinstance(value, Mapping) or segment not in value:
            return None
        value = value[segment]
    return value


def nest_filters(filters: Mapping[str, Any]) -> Document:
    """Expand ``{"a.b": 1}`` into ``{"a": {"b": 1}}`` for containment queries."""
    nested: Document = {}
    for path, value in filters.items():
        *parents, leaf = path.split(".")
        target = nested
        for segment in parents:
            target = target.setdefault(segment, {})
        target[leaf] = value
    return nested
