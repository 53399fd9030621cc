"""Document store backends."""

from .base import Collection, Document, DocumentStore, StoredDocument
from .memory import MemoryDocumentStore

__all__ = [
    "Collection",
    "Document",
    "DocumentStore",
    "MemoryDocumentStore",
    "StoredDocument",
]
