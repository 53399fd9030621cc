"""Shared document schema exports."""

from .person import (
    ContactDocument,
    EmailDocument,
    PersonDocument,
    PhoneDocument,
    PostalAddressDocument,
)
from .reference import CountryDocument, PostalCodeDocument
from .user import AccountDocument, UserDocument

__all__ = [
    "AccountDocument",
    "ContactDocument",
    "CountryDocument",
    "EmailDocument",
    "PersonDocument",
    "PhoneDocument",
    "PostalAddressDocument",
    "PostalCodeDocument",
    "UserDocument",
]
