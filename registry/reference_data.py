"""Bundled country and postal-code reference data and its seeding."""

from __future__ import annotations

import json
import logging
from importlib import resources
from typing import Any

from schemas import CountryDocument

from .domain.reference import Country, PostalCode
from .repository import CountryRepository, PostalCodeRepository, country_from_document

logger = logging.getLogger(__name__)


def _load(name: str) -> list[dict[str, Any]]:
    return json.loads(resources.files("registry.data").joinpath(name).read_text(encoding="utf-8"))


def load_countries() -> list[Country]:
    """Return the bundled countries, unsaved."""
    return [country_from_document(CountryDocument.model_validate(row)) for row in _load("countries.json")]


def load_postal_codes(countries: dict[str, Country]) -> list[PostalCode]:
    """Return the bundled postal codes bound to ``countries`` (keyed by alpha-2 code)."""
    postal_codes = []
    for row in _load("postal_codes.json"):
        country = countries.get(row["country"])
        if country is None:
            raise ValueError(f"postal code {row['code']} references unknown country {row['country']}")
        postal_codes.append(
            PostalCode(country=country, code=row["code"], city=row.get("city"), state=row.get("state"))
        )
    return postal_codes


def seed_reference_data(countries: CountryRepository, postal_codes: PostalCodeRepository) -> tuple[int, int]:
    """Insert bundled reference data that is not stored yet.

    Returns the number of countries and postal codes inserted. Running it
    again inserts nothing.
    """
    by_code: dict[str, Country] = {}
    inserted_countries = 0
    for country in load_countries():
        existing = countries.find_by_alpha2_code(country.alpha2_code)
        if existing is None:
            existing = countries.save(country)
            inserted_countries += 1
        by_code[existing.alpha2_code] = existing

    inserted_postal_codes = 0
    for postal_code in load_postal_codes(by_code):
        if postal_codes.find_by_country_and_code(postal_code.country, postal_code.code) is None:
            postal_codes.save(postal_code)
            inserted_postal_codes += 1

    logger.info(
        "reference data seeded: %d countries, %d postal codes", inserted_countries, inserted_postal_codes
    )
    return inserted_countries, inserted_postal_codes
