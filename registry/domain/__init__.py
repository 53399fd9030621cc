"""Domain model for the household registry."""

from .account import Account
from .contact import Contact, Email, Phone, PhoneType, PostalAddress
from .errors import (
    DuplicateKeyError,
    EmptyStateError,
    NotFoundError,
    ReferentialIntegrityError,
    RegistryError,
    StaleDocumentError,
)
from .person import Person
from .reference import Country, PostalCode
from .user import User

__all__ = [
    "Account",
    "Contact",
    "Country",
    "DuplicateKeyError",
    "Email",
    "EmptyStateError",
    "NotFoundError",
    "Person",
    "Phone",
    "PhoneType",
    "PostalAddress",
    "PostalCode",
    "ReferentialIntegrityError",
    "RegistryError",
    "StaleDocumentError",
    "User",
]
