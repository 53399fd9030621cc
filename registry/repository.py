"""Repositories mapping registry aggregates to document-store collections."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from schemas import (
    AccountDocument,
    CountryDocument,
    EmailDocument,
    PersonDocument,
    PhoneDocument,
    PostalAddressDocument,
    PostalCodeDocument,
    UserDocument,
)

from .domain.account import Account
from .domain.contact import Contact, Email, Phone, PhoneType, PostalAddress
from .domain.errors import NotFoundError, ReferentialIntegrityError
from .domain.person import Person
from .domain.reference import Country, PostalCode
from .domain.user import User
from .store.base import Collection, DocumentStore, StoredDocument

logger = logging.getLogger(__name__)

COUNTRIES = Collection(
    "countries",
    unique=(("name",), ("alpha2_code",), ("alpha3_code",), ("numeric_code",), ("iso_code",)),
)
POSTAL_CODES = Collection("postal_codes", unique=(("country.alpha2_code", "code"),))
PERSONS = Collection("persons")
USERS = Collection("users", unique=(("login_name",),))

ALL_COLLECTIONS = (COUNTRIES, POSTAL_CODES, PERSONS, USERS)


def ensure_collections(store: DocumentStore) -> None:
    """Provision every registry collection and its unique keys."""
    for collection in ALL_COLLECTIONS:
        store.ensure_collection(collection)


class CountryRepository:
    """Country reference data keyed by name and by each ISO code."""

    collection = COUNTRIES

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def save(self, country: Country) -> Country:
        """Insert or replace a country; a clash on any ISO code raises ``DuplicateKeyError``."""
        document = country_document(country).model_dump(mode="json")
        stored = self._store.save(self.collection, country.id, document, country.version)
        country.id, country.version = stored.id, stored.version
        return country

    def get(self, country_id: str) -> Country | None:
        """Return the country stored under ``country_id``, if any."""
        return self._map(self._store.get(self.collection, country_id))

    def find_all(self) -> list[Country]:
        """Return every stored country."""
        return [self._map(stored) for stored in self._store.find(self.collection)]

    def find_by_name(self, name: str) -> Country | None:
        """Exact, case-sensitive lookup by English short name."""
        return self._find_one({"name": name})

    def find_by_alpha2_code(self, alpha2_code: str) -> Country | None:
        return self._find_one({"alpha2_code": alpha2_code})

    def find_by_alpha3_code(self, alpha3_code: str) -> Country | None:
        return self._find_one({"alpha3_code": alpha3_code})

    def find_by_numeric_code(self, numeric_code: str) -> Country | None:
        return self._find_one({"numeric_code": numeric_code})

    def find_by_iso_code(self, iso_code: str) -> Country | None:
        return self._find_one({"iso_code": iso_code})

    def delete(self, country: Country) -> None:
        """Remove ``country``; unsaved or already deleted countries are ignored."""
        if country.id is not None:
            self._store.delete(self.collection, country.id)

    def delete_all(self) -> None:
        self._store.delete_all(self.collection)

    def _find_one(self, filters: Mapping[str, Any]) -> Country | None:
        return self._map(self._store.find_one(self.collection, filters))

    def _map(self, stored: StoredDocument | None) -> Country | None:
        if stored is None:
            return None
        return country_from_document(
            CountryDocument.model_validate(stored.document), stored.id, stored.version
        )


class PostalCodeRepository:
    """Postal codes, unique per country and code."""

    collection = POSTAL_CODES

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def save(self, postal_code: PostalCode) -> PostalCode:
        """Insert or replace a postal code, unique per country and code."""
        document = postal_code_document(postal_code).model_dump(mode="json")
        stored = self._store.save(self.collection, postal_code.id, document, postal_code.version)
        postal_code.id, postal_code.version = stored.id, stored.version
        return postal_code

    def find_by_country_and_code(self, country: Country, code: str) -> PostalCode | None:
        """Return the postal code, or ``None`` when ``country`` has no such code."""
        stored = self._store.find_one(
            self.collection, {"country.alpha2_code": country.alpha2_code, "code": code}
        )
        if stored is None:
            return None
        return postal_code_from_document(
            PostalCodeDocument.model_validate(stored.document), stored.id, stored.version
        )

    def read_one(self, country: Country, code: str) -> PostalCode:
        """Return the reference entry for ``code`` in ``country`` or raise ``NotFoundError``."""
        postal_code = self.find_by_country_and_code(country, code)
        if postal_code is None:
            raise NotFoundError(f"postal code {code} not found for {country.alpha2_code}")
        return postal_code

    def delete(self, postal_code: PostalCode) -> None:
        if postal_code.id is not None:
            self._store.delete(self.collection, postal_code.id)

    def delete_all(self) -> None:
        self._store.delete_all(self.collection)


class PersonRepository:
    """People with their embedded contacts."""

    collection = PERSONS

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def save(self, person: Person) -> Person:
        """Insert or replace ``person`` together with its contacts."""
        document = person_document(person).model_dump(mode="json")
        stored = self._store.save(self.collection, person.id, document, person.version)
        person.id, person.version = stored.id, stored.version
        return person

    def get(self, person_id: str) -> Person | None:
        """Load a person by id."""
        stored = self._store.get(self.collection, person_id)
        if stored is None:
            return None
        return person_from_document(PersonDocument.model_validate(stored.document), stored.id, stored.version)

    def exists(self, person_id: str) -> bool:
        """Check for a stored person without decoding its document."""
        return self._store.get(self.collection, person_id) is not None

    def find_all(self) -> list[Person]:
        """Return every stored person."""
        return [
            person_from_document(PersonDocument.model_validate(stored.document), stored.id, stored.version)
            for stored in self._store.find(self.collection)
        ]

    def delete(self, person: Person) -> None:
        """Remove ``person``. Users that still own it fail to load afterwards."""
        if person.id is not None:
            self._store.delete(self.collection, person.id)

    def delete_all(self) -> None:
        self._store.delete_all(self.collection)


class UserRepository:
    """Users keyed by login name; account owners are resolved through ``PersonRepository``."""

    collection = USERS

    def __init__(self, store: DocumentStore, persons: PersonRepository) -> None:
        self._store = store
        self._persons = persons

    def save(self, user: User) -> User:
        """Insert or replace ``user``.

        Every account owner must already be stored, otherwise
        ``ReferentialIntegrityError`` is raised before anything is written.
        """
        owner_ids: list[str] = []
        for owner in user.account.owners:
            if owner.id is None or not self._persons.exists(owner.id):
                raise ReferentialIntegrityError(
                    f"user {user.login_name} references unsaved person {owner.formal_name}"
                )
            owner_ids.append(owner.id)
        document = UserDocument(
            login_name=user.login_name,
            password=user.password,
            registered=user.registered,
            account=AccountDocument(owner_ids=owner_ids),
        ).model_dump(mode="json")
        stored = self._store.save(self.collection, user.id, document, user.version)
        user.id, user.version = stored.id, stored.version
        return user

    def get(self, user_id: str) -> User | None:
        """Load a user by id, resolving its account owners."""
        return self._map(self._store.get(self.collection, user_id))

    def find_by_login_name(self, login_name: str) -> User | None:
        """Exact, case-sensitive lookup; raises ``ReferentialIntegrityError`` for a dangling owner."""
        return self._map(self._store.find_one(self.collection, {"login_name": login_name}))

    def find_all(self) -> list[User]:
        """Return every user; one dangling owner anywhere fails the whole listing."""
        return [self._map(stored) for stored in self._store.find(self.collection)]

    def delete(self, user: User) -> None:
        """Remove ``user``; its owner persons are left in place."""
        if user.id is not None:
            self._store.delete(self.collection, user.id)

    def delete_by_login_name(self, login_name: str) -> bool:
        """Delete the user document without resolving its owners; returns whether one existed."""
        stored = self._store.find_one(self.collection, {"login_name": login_name})
        if stored is None:
            return False
        self._store.delete(self.collection, stored.id)
        return True

    def delete_all(self) -> None:
        """Drop every user document. Persons are untouched."""
        self._store.delete_all(self.collection)

    def _map(self, stored: StoredDocument | None) -> User | None:
        """Decode a user document and load its owners, primary first."""
        if stored is None:
            return None
        document = UserDocument.model_validate(stored.document)
        account = Account()
        # stored primary-first; re-add oldest first so the primary ends up in front
        for owner_id in reversed(document.account.owner_ids):
            person = self._persons.get(owner_id)
            if person is None:
                logger.warning("user %s has dangling owner reference %s", document.login_name, owner_id)
                raise ReferentialIntegrityError(
                    f"user {document.login_name} references missing person {owner_id}"
                )
            account.add_primary_owner(person)
        return User(
            login_name=document.login_name,
            password=document.password,
            account=account,
            registered=document.registered,
            id=stored.id,
            version=stored.version,
        )


def country_document(country: Country) -> CountryDocument:
    """Snapshot a country as its stored document."""
    return CountryDocument(
        name=country.name,
        alpha2_code=country.alpha2_code,
        alpha3_code=country.alpha3_code,
        numeric_code=country.numeric_code,
        iso_code=country.iso_code,
        calling_code=country.calling_code,
    )


def country_from_document(document: CountryDocument, country_id: str | None = None, version: int = 0) -> Country:
    """Rebuild a country; embedded snapshots carry no id."""
    return Country(
        name=document.name,
        alpha2_code=document.alpha2_code,
        alpha3_code=document.alpha3_code,
        numeric_code=document.numeric_code,
        iso_code=document.iso_code,
        calling_code=document.calling_code,
        id=country_id,
        version=version,
    )


def postal_code_document(postal_code: PostalCode) -> PostalCodeDocument:
    """Snapshot a postal code with its country embedded by value."""
    return PostalCodeDocument(
        country=country_document(postal_code.country),
        code=postal_code.code,
        city=postal_code.city,
        state=postal_code.state,
    )


def postal_code_from_document(
    document: PostalCodeDocument, postal_code_id: str | None = None, version: int = 0
) -> PostalCode:
    """Rebuild a postal code from its document."""
    return PostalCode(
        country=country_from_document(document.country),
        code=document.code,
        city=document.city,
        state=document.state,
        id=postal_code_id,
        version=version,
    )


def person_document(person: Person) -> PersonDocument:
    """Map a person and its contacts, primary flags included, to a document."""
    return PersonDocument(
        surname=person.surname,
        given_name=person.given_name,
        middle_name=person.middle_name,
        title=person.title,
        suffix=person.suffix,
        contacts=[_contact_document(contact) for contact in person.contacts],
    )


def person_from_document(document: PersonDocument, person_id: str | None = None, version: int = 0) -> Person:
    """Rebuild a person, restoring contacts in their stored order."""
    return Person(
        surname=document.surname,
        given_name=document.given_name,
        middle_name=document.middle_name,
        title=document.title,
        suffix=document.suffix,
        contacts=[_contact_from_document(contact) for contact in document.contacts],
        id=person_id,
        version=version,
    )


def _contact_document(contact: Contact) -> EmailDocument | PhoneDocument | PostalAddressDocument:
    """Pick the document variant matching the contact type."""
    if isinstance(contact, Email):
        return EmailDocument(address=contact.address, primary=contact.primary)
    if isinstance(contact, Phone):
        return PhoneDocument(
            type=PhoneType(contact.type).value,
            number=contact.number,
            country=country_document(contact.country),
            primary=contact.primary,
        )
    if isinstance(contact, PostalAddress):
        return PostalAddressDocument(
            lines=list(contact.lines),
            postal_code=postal_code_document(contact.postal_code),
            country=country_document(contact.country),
            primary=contact.primary,
        )
    raise TypeError(f"unsupported contact type {type(contact).__name__}")


def _contact_from_document(document: EmailDocument | PhoneDocument | PostalAddressDocument) -> Contact:
    if isinstance(document, EmailDocument):
        return Email(document.address, primary=document.primary)
    if isinstance(document, PhoneDocument):
        return Phone(
            PhoneType(document.type),
            document.number,
            country_from_document(document.country),
            primary=document.primary,
        )
    return PostalAddress(
        tuple(document.lines),
        postal_code_from_document(document.postal_code),
        country_from_document(document.country),
        primary=document.primary,
    )
