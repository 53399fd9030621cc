"""Stored shape of country and postal-code reference documents."""

from __future__ import annotations

from pydantic import BaseModel


class CountryDocument(BaseModel):
    name: str
    alpha2_code: str
    alpha3_code: str
    numeric_code: str
    iso_code: str
    calling_code: str


class PostalCodeDocument(BaseModel):
    country: CountryDocument
    code: str
    city: str | None = None
    state: str | None = None
