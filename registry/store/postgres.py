"""Postgres-backed document store: one JSONB table per collection."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Mapping

from psycopg import errors, sql
from psycopg.rows import tuple_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from ..domain.errors import DuplicateKeyError, StaleDocumentError
from .base import Collection, Document, StoredDocument, nest_filters

logger = logging.getLogger(__name__)


class PostgresDocumentStore:
    """Documents live in ``<collection>(doc_id, version, document jsonb)`` tables.

    Unique keys become expression indexes over the JSONB paths, so the
    database rejects duplicates and the store reports them as
    :class:`DuplicateKeyError`.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    def ensure_collection(self, collection: Collection) -> None:
        """Create the collection table and its indexes when missing."""
        table = sql.Identifier(collection.name)
        statements = [
            sql.SQL(
                """
                CREATE TABLE IF NOT EXISTS {table} (
                    doc_id text PRIMARY KEY,
                    version integer NOT NULL,
                    document jsonb NOT NULL,
                    created_at timestamptz NOT NULL DEFAULT now(),
                    updated_at timestamptz NOT NULL DEFAULT now()
                )
                """
            ).format(table=table),
            sql.SQL(
                "CREATE INDEX IF NOT EXISTS {index} ON {table} USING gin (document jsonb_path_ops)"
            ).format(index=sql.Identifier(f"{collection.name}_document_idx"), table=table),
        ]
        for fields in collection.unique:
            index_name = _index_name(collection, fields)
            expressions = sql.SQL(", ").join(
                sql.SQL("(document #>> {})").format(sql.Literal("{" + ",".join(path.split(".")) + "}"))
                for path in fields
            )
            statements.append(
                sql.SQL("CREATE UNIQUE INDEX IF NOT EXISTS {index} ON {table} ({expressions})").format(
                    index=sql.Identifier(index_name),
                    table=table,
                    expressions=expressions,
                )
            )
        with self._pool.connection() as conn:
            with conn.cursor() as cur:
                for statement in statements:
                    cur.execute(statement)
                conn.commit()
        logger.info("collection %s ready (%d unique keys)", collection.name, len(collection.unique))

    def save(
        self,
        collection: Collection,
        document_id: str | None,
        document: Document,
        expected_version: int = 0,
    ) -> StoredDocument:
        table = sql.Identifier(collection.name)
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                row = None
                try:
                    if document_id is not None:
                        cur.execute(
                            sql.SQL(
                                """
                                UPDATE {table}
                                SET document = %s, version = version + 1, updated_at = now()
                                WHERE doc_id = %s AND version = %s
                                RETURNING version
                                """
                            ).format(table=table),
                            (Jsonb(document), document_id, expected_version),
                        )
                        row = cur.fetchone()
                    else:
                        document_id = str(uuid.uuid4())
                    if row is None:
                        cur.execute(
                            sql.SQL(
                                """
                                INSERT INTO {table} (doc_id, version, document)
                                VALUES (%s, 1, %s)
                                ON CONFLICT (doc_id) DO NOTHING
                                RETURNING version
                                """
                            ).format(table=table),
                            (document_id, Jsonb(document)),
                        )
                        row = cur.fetchone()
                except errors.UniqueViolation as exc:
                    conn.rollback()
                    raise DuplicateKeyError(collection.name, _violated_fields(collection, exc)) from exc
                if row is None:
                    conn.rollback()
                    raise StaleDocumentError(collection.name, document_id)
                conn.commit()
        return StoredDocument(document_id, row[0], document)

    def get(self, collection: Collection, document_id: str) -> StoredDocument | None:
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    sql.SQL("SELECT doc_id, version, document FROM {table} WHERE doc_id = %s").format(
                        table=sql.Identifier(collection.name)
                    ),
                    (document_id,),
                )
                row = cur.fetchone()
                if not row:
                    return None
        return StoredDocument(*row)

    def find_one(self, collection: Collection, filters: Mapping[str, Any]) -> StoredDocument | None:
        matches = self._select(collection, filters, limit=1)
        return matches[0] if matches else None

    def find(self, collection: Collection, filters: Mapping[str, Any] | None = None) -> list[StoredDocument]:
        return self._select(collection, filters or {}, limit=None)

    def delete(self, collection: Collection, document_id: str) -> None:
        with self._pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    sql.SQL("DELETE FROM {table} WHERE doc_id = %s").format(
                        table=sql.Identifier(collection.name)
                    ),
                    (document_id,),
                )
                conn.commit()

    def delete_all(self, collection: Collection) -> None:
        with self._pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql.SQL("DELETE FROM {table}").format(table=sql.Identifier(collection.name)))
                conn.commit()

    def _select(
        self,
        collection: Collection,
        filters: Mapping[str, Any],
        limit: int | None,
    ) -> list[StoredDocument]:
        query = sql.SQL(
            """
            SELECT doc_id, version, document
            FROM {table}
            WHERE document @> %s
            ORDER BY created_at, doc_id
            """
        ).format(table=sql.Identifier(collection.name))
        params: list[Any] = [Jsonb(nest_filters(filters))]
        if limit is not None:
            query = query + sql.SQL(" LIMIT %s")
            params.append(limit)
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(query, params)
                return [StoredDocument(*row) for row in cur.fetchall()]


def _violated_fields(collection: Collection, exc: errors.UniqueViolation) -> tuple[str, ...]:
    """Map the violated index name back to the collection's unique key."""
    constraint = getattr(exc.diag, "constraint_name", None) or ""
    for fields in collection.unique:
        if constraint == _index_name(collection, fields):
            return fields
    if len(collection.unique) == 1:
        return collection.unique[0]
    return (constraint or "unknown",)


def _index_name(collection: Collection, fields: tuple[str, ...]) -> str:
    return "_".join([collection.name, *(path.replace(".", "_") for path in fields), "key"])
