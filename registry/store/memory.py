"""In-process document store used by tests and local development."""

from __future__ import annotations

import copy
import uuid
from threading import Lock
from typing import Any, Mapping

from ..domain.errors import DuplicateKeyError, StaleDocumentError
from .base import Collection, Document, StoredDocument, resolve_path


class MemoryDocumentStore:
    """Thread-safe dictionary-backed store honouring unique keys and versions.

    Documents are deep-copied on the way in and out so callers never share
    state with the store.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, tuple[int, Document]]] = {}
        self._lock = Lock()

    def ensure_collection(self, collection: Collection) -> None:
        with self._lock:
            self._collections.setdefault(collection.name, {})

    def save(
        self,
        collection: Collection,
        document_id: str | None,
        document: Document,
        expected_version: int = 0,
    ) -> StoredDocument:
        with self._lock:
            rows = self._collections.setdefault(collection.name, {})
            if document_id is None:
                document_id = str(uuid.uuid4())
            current = rows.get(document_id)
            if current is not None and current[0] != expected_version:
                raise StaleDocumentError(collection.name, document_id)
            self._check_unique(collection, rows, document_id, document)
            version = current[0] + 1 if current is not None else 1
            rows[document_id] = (version, copy.deepcopy(document))
            return StoredDocument(document_id, version, copy.deepcopy(document))

    def get(self, collection: Collection, document_id: str) -> StoredDocument | None:
        with self._lock:
            row = self._collections.get(collection.name, {}).get(document_id)
            if row is None:
                return None
            return StoredDocument(document_id, row[0], copy.deepcopy(row[1]))

    def find_one(self, collection: Collection, filters: Mapping[str, Any]) -> StoredDocument | None:
        matches = self.find(collection, filters)
        return matches[0] if matches else None

    def find(self, collection: Collection, filters: Mapping[str, Any] | None = None) -> list[StoredDocument]:
        filters = filters or {}
        with self._lock:
            rows = self._collections.get(collection.name, {})
            return [
                StoredDocument(document_id, version, copy.deepcopy(document))
                for document_id, (version, document) in rows.items()
                if all(resolve_path(document, path) == value for path, value in filters.items())
            ]

    def delete(self, collection: Collection, document_id: str) -> None:
        with self._lock:
            self._collections.get(collection.name, {}).pop(document_id, None)

    def delete_all(self, collection: Collection) -> None:
        with self._lock:
            self._collections[collection.name] = {}

    def _check_unique(
        self,
        collection: Collection,
        rows: dict[str, tuple[int, Document]],
        document_id: str,
        document: Document,
    ) -> None:
        for fields in collection.unique:
            key = tuple(resolve_path(document, path) for path in fields)
            if any(value is None for value in key):
                continue
            for other_id, (_, other) in rows.items():
                if other_id == document_id:
                    continue
                if tuple(resolve_path(other, path) for path in fields) == key:
                    raise DuplicateKeyError(collection.name, fields)
