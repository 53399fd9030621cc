from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from psycopg import errors

from registry.domain import DuplicateKeyError, StaleDocumentError
from registry.repository import COUNTRIES, POSTAL_CODES, USERS
from registry.store.base import Collection, nest_filters, resolve_path
from registry.store.memory import MemoryDocumentStore
from registry.store.postgres import PostgresDocumentStore

PETS = Collection("pets", unique=(("owner.name", "name"),))


def test_memory_store_assigns_ids_and_versions():
    store = MemoryDocumentStore()

    created = store.save(PETS, None, {"name": "rex", "owner": {"name": "ann"}})
    updated = store.save(PETS, created.id, {"name": "rex", "owner": {"name": "ann"}, "age": 3}, 1)

    assert created.version == 1
    assert updated.id == created.id
    assert updated.version == 2
    assert store.get(PETS, created.id).document["age"] == 3


def test_memory_store_isolates_documents():
    store = MemoryDocumentStore()
    document = {"name": "rex", "owner": {"name": "ann"}}
    stored = store.save(PETS, None, document)

    document["owner"]["name"] = "bob"
    store.get(PETS, stored.id).document["name"] = "fido"

    assert store.get(PETS, stored.id).document == {"name": "rex", "owner": {"name": "ann"}}


def test_memory_store_compound_unique_key():
    store = MemoryDocumentStore()
    store.save(PETS, None, {"name": "rex", "owner": {"name": "ann"}})
    store.save(PETS, None, {"name": "rex", "owner": {"name": "bob"}})
    store.save(PETS, None, {"name": "rex"})
    store.save(PETS, None, {"name": "rex"})

    with pytest.raises(DuplicateKeyError) as info:
        store.save(PETS, None, {"name": "rex", "owner": {"name": "ann"}})
    assert info.value.fields == ("owner.name", "name")
    assert len(store.find(PETS, {"name": "rex"})) == 4


def test_memory_store_rejects_stale_version():
    store = MemoryDocumentStore()
    stored = store.save(PETS, None, {"name": "rex"})
    store.save(PETS, stored.id, {"name": "rex", "age": 1}, stored.version)

    with pytest.raises(StaleDocumentError):
        store.save(PETS, stored.id, {"name": "rex", "age": 2}, stored.version)


def test_memory_store_reinserts_deleted_document():
    store = MemoryDocumentStore()
    stored = store.save(PETS, None, {"name": "rex"})
    store.delete(PETS, stored.id)
    store.delete(PETS, stored.id)

    again = store.save(PETS, stored.id, {"name": "rex"}, stored.version)

    assert again.id == stored.id
    assert again.version == 1


def test_memory_store_filters_on_nested_paths():
    store = MemoryDocumentStore()
    store.save(PETS, None, {"name": "rex", "owner": {"name": "ann"}})
    store.save(PETS, None, {"name": "tom", "owner": {"name": "bob"}})

    found = store.find_one(PETS, {"owner.name": "bob"})

    assert found.document["name"] == "tom"
    assert store.find_one(PETS, {"owner.name": "carl"}) is None


def test_path_helpers():
    document = {"country": {"alpha2_code": "US"}, "code": "01581"}
    assert resolve_path(document, "country.alpha2_code") == "US"
    assert resolve_path(document, "country.name") is None
    assert resolve_path(document, "code.length") is None
    assert nest_filters({"country.alpha2_code": "US", "code": "01581"}) == document


def _pool() -> tuple[MagicMock, MagicMock, MagicMock]:
    pool = MagicMock()
    conn = MagicMock()
    cursor = MagicMock()
    pool.connection.return_value.__enter__.return_value = conn
    conn.cursor.return_value.__enter__.return_value = cursor
    return pool, conn, cursor


def test_postgres_store_inserts_new_document():
    pool, conn, cursor = _pool()
    cursor.fetchone.return_value = (1,)

    stored = PostgresDocumentStore(pool).save(USERS, None, {"login_name": "alice"})

    assert stored.version == 1
    assert stored.id
    assert cursor.execute.call_count == 1
    params = cursor.execute.call_args.args[1]
    assert params[0] == stored.id
    assert params[1].obj == {"login_name": "alice"}
    conn.commit.assert_called_once()


def test_postgres_store_updates_with_expected_version():
    pool, conn, cursor = _pool()
    cursor.fetchone.return_value = (4,)

    stored = PostgresDocumentStore(pool).save(USERS, "user-1", {"login_name": "alice"}, 3)

    assert (stored.id, stored.version) == ("user-1", 4)
    assert cursor.execute.call_count == 1
    assert cursor.execute.call_args.args[1][1:] == ("user-1", 3)


def test_postgres_store_reports_stale_write():
    pool, conn, cursor = _pool()
    cursor.fetchone.side_effect = [None, None]

    with pytest.raises(StaleDocumentError):
        PostgresDocumentStore(pool).save(USERS, "user-1", {"login_name": "alice"}, 3)

    assert cursor.execute.call_count == 2
    conn.rollback.assert_called_once()
    conn.commit.assert_not_called()


def test_postgres_store_translates_unique_violation():
    pool, conn, cursor = _pool()
    cursor.execute.side_effect = errors.UniqueViolation("duplicate key value violates unique constraint")

    with pytest.raises(DuplicateKeyError) as info:
        PostgresDocumentStore(pool).save(USERS, None, {"login_name": "alice"})

    assert info.value.fields == ("login_name",)
    conn.rollback.assert_called_once()


def test_postgres_store_nests_filters_for_containment():
    pool, _, cursor = _pool()
    cursor.fetchall.return_value = [("pc-1", 1, {"code": "01581"})]

    found = PostgresDocumentStore(pool).find_one(
        POSTAL_CODES, {"country.alpha2_code": "US", "code": "01581"}
    )

    assert found.id == "pc-1"
    params = cursor.execute.call_args.args[1]
    assert params[0].obj == {"country": {"alpha2_code": "US"}, "code": "01581"}
    assert params[1] == 1


def test_postgres_store_get_missing_document():
    pool, _, cursor = _pool()
    cursor.fetchone.return_value = None

    assert PostgresDocumentStore(pool).get(USERS, "missing") is None


def test_postgres_store_creates_table_and_indexes():
    pool, conn, cursor = _pool()

    PostgresDocumentStore(pool).ensure_collection(COUNTRIES)

    # table, gin index, one unique index per key
    assert cursor.execute.call_count == 2 + len(COUNTRIES.unique)
    conn.commit.assert_called_once()
