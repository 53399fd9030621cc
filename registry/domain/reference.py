"""Country and postal-code reference entities."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Country:
    """ISO 3166 country record used by phone numbers and postal addresses."""

    name: str
    alpha2_code: str
    alpha3_code: str
    numeric_code: str
    iso_code: str
    calling_code: str
    id: str | None = None
    version: int = 0


@dataclass(slots=True)
class PostalCode:
    """A postal code within a country, with the locality it serves when known."""

    country: Country
    code: str
    city: str | None = None
    state: str | None = None
    id: str | None = None
    version: int = 0
