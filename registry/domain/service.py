"""Registry service orchestrating repositories, password checks, and token issuance."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable

from prometheus_client import Counter

from ..repository import CountryRepository, PersonRepository, PostalCodeRepository, UserRepository
from ..security import passwords
from ..security.tokens import issue_access_token
from .contact import Contact
from .errors import NotFoundError
from .person import Person
from .reference import Country, PostalCode
from .user import User

logger = logging.getLogger(__name__)

USERS_REGISTERED = Counter("registry_users_registered_total", "Users registered through the service")
LOGINS = Counter("registry_logins_total", "Login attempts by outcome", ["outcome"])


@lru_cache
def _unknown_user_digest() -> str:
    return passwords.PASSWORD_ENCODER.hash("unknown-user")


@dataclass(slots=True)
class AccessToken:
    """Bearer token handed to a user after a successful login."""

    access_token: str
    expires_in: int
    user_id: str


@dataclass(slots=True)
class NewPerson:
    """Validated inputs required to create a person with contacts."""

    surname: str
    given_name: str
    middle_name: str | None = None
    title: str | None = None
    suffix: str | None = None


class RegistryService:
    """User, person, and reference-data workflows on top of the repositories."""

    def __init__(
        self,
        users: UserRepository,
        persons: PersonRepository,
        countries: CountryRepository,
        postal_codes: PostalCodeRepository,
    ) -> None:
        self._users = users
        self._persons = persons
        self._countries = countries
        self._postal_codes = postal_codes

    def register_user(self, login_name: str, password: str) -> User:
        """Create a registered user; a taken login name raises ``DuplicateKeyError``."""
        user = User(login_name)
        user.set_password(password)
        self._users.save(user)
        USERS_REGISTERED.inc()
        logger.info("registered user %s", login_name)
        return user

    def get_user(self, login_name: str) -> User | None:
        return self._users.find_by_login_name(login_name)

    def delete_user(self, login_name: str) -> bool:
        """Remove the user if present; returns whether anything was deleted."""
        deleted = self._users.delete_by_login_name(login_name)
        if deleted:
            logger.info("deleted user %s", login_name)
        return deleted

    def authenticate(self, login_name: str, password: str) -> AccessToken | None:
        """Return a signed token when the credentials match, else ``None``."""
        user = self._users.find_by_login_name(login_name)
        if user is None:
            # unknown login names still pay for one Argon2 verify
            passwords.PASSWORD_ENCODER.matches(password, _unknown_user_digest())
        if user is None or not user.check_password(password):
            LOGINS.labels(outcome="rejected").inc()
            logger.warning("login rejected for %s", login_name)
            return None
        token, expires_in = issue_access_token(subject=user.id or "", login_name=user.login_name)
        LOGINS.labels(outcome="accepted").inc()
        return AccessToken(access_token=token, expires_in=expires_in, user_id=user.id or "")

    def create_person(
        self, details: NewPerson, contacts: Iterable[tuple[Contact, bool]] = ()
    ) -> Person:
        """Persist a person built from ``details`` and ``(contact, primary)`` pairs."""
        person = Person(
            surname=details.surname,
            given_name=details.given_name,
            middle_name=details.middle_name,
            title=details.title,
            suffix=details.suffix,
        )
        for contact, primary in contacts:
            person.add_contact(contact, primary)
        return self._persons.save(person)

    def get_person(self, person_id: str) -> Person | None:
        return self._persons.get(person_id)

    def add_primary_owner(self, login_name: str, person_id: str) -> User:
        """Make a stored person the primary owner of the user's account."""
        user = self._users.find_by_login_name(login_name)
        if user is None:
            raise NotFoundError(f"user {login_name} not found")
        person = self._persons.get(person_id)
        if person is None:
            raise NotFoundError(f"person {person_id} not found")
        user.account.add_primary_owner(person)
        self._users.save(user)
        logger.info("user %s primary owner is now %s", login_name, person_id)
        return user

    def get_country(self, alpha2_code: str) -> Country | None:
        return self._countries.find_by_alpha2_code(alpha2_code)

    def require_country(self, alpha2_code: str) -> Country:
        country = self._countries.find_by_alpha2_code(alpha2_code)
        if country is None:
            raise NotFoundError(f"country {alpha2_code} not found")
        return country

    def require_postal_code(self, country: Country, code: str) -> PostalCode:
        return self._postal_codes.read_one(country, code)
