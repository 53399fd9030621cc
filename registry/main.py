"""FastAPI application wiring for the household registry."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool

from .api.routes import router as v1_router
from .config import Settings, get_settings
from .domain.service import RegistryService
from .reference_data import seed_reference_data
from .repository import (
    CountryRepository,
    PersonRepository,
    PostalCodeRepository,
    UserRepository,
    ensure_collections,
)
from .store.base import DocumentStore
from .store.memory import MemoryDocumentStore
from .store.postgres import PostgresDocumentStore

logger = logging.getLogger(__name__)

settings = get_settings()


def build_service(store: DocumentStore, settings: Settings) -> RegistryService:
    """Provision collections on ``store`` and return a service over its repositories."""
    ensure_collections(store)
    persons = PersonRepository(store)
    countries = CountryRepository(store)
    postal_codes = PostalCodeRepository(store)
    if settings.seed_reference_data:
        seed_reference_data(countries, postal_codes)
    return RegistryService(UserRepository(store, persons), persons, countries, postal_codes)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise the document store and service for the app lifecycle."""
    logging.basicConfig(level=settings.log_level)
    pool: ConnectionPool | None = None
    if settings.store_backend == "postgres":
        pool = ConnectionPool(settings.database_url, open=False)
        pool.open()
        store: DocumentStore = PostgresDocumentStore(pool)
    else:
        store = MemoryDocumentStore()
    logger.info("document store backend: %s", settings.store_backend)
    app.state.registry_service = build_service(store, settings)
    try:
        yield
    finally:
        if pool is not None:
            pool.close()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


@app.get("/metrics")
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(v1_router)
