from __future__ import annotations

import os

# cheap hashing for the test run; read once when registry.config is imported
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST", "8192")
os.environ.setdefault("ARGON2_PARALLELISM", "1")

from dataclasses import dataclass  # noqa: E402

import pytest  # noqa: E402

from registry.reference_data import seed_reference_data  # noqa: E402
from registry.repository import (  # noqa: E402
    CountryRepository,
    PersonRepository,
    PostalCodeRepository,
    UserRepository,
    ensure_collections,
)
from registry.store.memory import MemoryDocumentStore  # noqa: E402


@dataclass
class Repositories:
    store: MemoryDocumentStore
    users: UserRepository
    persons: PersonRepository
    countries: CountryRepository
    postal_codes: PostalCodeRepository


@pytest.fixture
def store() -> MemoryDocumentStore:
    store = MemoryDocumentStore()
    ensure_collections(store)
    return store


@pytest.fixture
def repos(store: MemoryDocumentStore) -> Repositories:
    """Repositories over a fresh memory store seeded with the bundled reference data."""
    persons = PersonRepository(store)
    countries = CountryRepository(store)
    postal_codes = PostalCodeRepository(store)
    seed_reference_data(countries, postal_codes)
    return Repositories(
        store=store,
        users=UserRepository(store, persons),
        persons=persons,
        countries=countries,
        postal_codes=postal_codes,
    )
