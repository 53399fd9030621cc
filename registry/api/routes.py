"""HTTP route definitions for the household registry."""

from __future__ import annotations

import logging
from typing import Annotated, Literal, Union

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, EmailStr, Field

from ..config import get_settings
from ..domain.contact import Contact, Email, Phone, PhoneType, PostalAddress
from ..domain.errors import (
    DuplicateKeyError,
    NotFoundError,
    ReferentialIntegrityError,
    StaleDocumentError,
)
from ..domain.person import Person
from ..domain.service import NewPerson, RegistryService
from ..domain.user import User
from ..security.login_throttle import LoginThrottle
from ..security.redis_login_throttle import RedisLoginThrottle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1")


class ContactResponse(BaseModel):
    kind: str
    display: str
    primary: bool


class PersonResponse(BaseModel):
    """Serialised representation of a `Person` aggregate."""

    person_id: str
    formal_name: str
    surname: str
    given_name: str
    middle_name: str | None = None
    title: str | None = None
    suffix: str | None = None
    contacts: list[ContactResponse]

    @classmethod
    def from_domain(cls, person: Person) -> "PersonResponse":
        return cls(
            person_id=person.id or "",
            formal_name=person.formal_name,
            surname=person.surname,
            given_name=person.given_name,
            middle_name=person.middle_name,
            title=person.title,
            suffix=person.suffix,
            contacts=[
                ContactResponse(kind=_CONTACT_KINDS[type(contact)], display=str(contact), primary=contact.primary)
                for contact in person.contacts
            ],
        )


class OwnerSummary(BaseModel):
    person_id: str
    formal_name: str


class UserResponse(BaseModel):
    """Serialised representation of a `User`; the password digest never leaves the service."""

    user_id: str
    login_name: str
    registered: bool
    owners: list[OwnerSummary]

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            user_id=user.id or "",
            login_name=user.login_name,
            registered=user.registered,
            owners=[
                OwnerSummary(person_id=owner.id or "", formal_name=owner.formal_name)
                for owner in user.account.owners
            ],
        )


class CountryResponse(BaseModel):
    name: str
    alpha2_code: str
    alpha3_code: str
    numeric_code: str
    iso_code: str
    calling_code: str


class RegisterUserRequest(BaseModel):
    login_name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AddOwnerRequest(BaseModel):
    person_id: str


class EmailContactRequest(BaseModel):
    kind: Literal["email"]
    address: EmailStr
    primary: bool = False


class PhoneContactRequest(BaseModel):
    kind: Literal["phone"]
    type: PhoneType
    number: str
    country: str = Field(..., description="ISO alpha-2 country code")
    primary: bool = False


class PostalAddressContactRequest(BaseModel):
    kind: Literal["postal_address"]
    lines: list[str] = Field(..., min_length=1)
    postal_code: str
    country: str = Field(..., description="ISO alpha-2 country code")
    primary: bool = False


ContactRequest = Annotated[
    Union[EmailContactRequest, PhoneContactRequest, PostalAddressContactRequest],
    Field(discriminator="kind"),
]


class CreatePersonRequest(BaseModel):
    """Payload accepted when creating a person with contacts."""

    surname: str
    given_name: str
    middle_name: str | None = None
    title: str | None = None
    suffix: str | None = None
    contacts: list[ContactRequest] = Field(default_factory=list)


class TokenRequest(BaseModel):
    login_name: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user_id: str


_CONTACT_KINDS: dict[type, str] = {Email: "email", Phone: "phone", PostalAddress: "postal_address"}

settings = get_settings()


def _build_login_throttle() -> LoginThrottle | RedisLoginThrottle:
    """Instantiate the configured login throttle backend, preferring Redis when available."""
    if settings.login_throttle_backend == "redis" and settings.redis_url:
        try:
            import redis

            client = redis.from_url(settings.redis_url)
            client.ping()
            logger.info("login throttle configured for redis backend at %s", settings.redis_url)
            return RedisLoginThrottle(
                client,
                max_failures=settings.login_max_failures,
                window_seconds=settings.login_lockout_seconds,
            )
        except Exception as exc:  # pragma: no cover - depends on a live redis
            logger.warning("redis login throttle unavailable, falling back to in-memory: %s", exc)

    logger.info("login throttle using in-memory backend")
    return LoginThrottle(
        max_failures=settings.login_max_failures,
        window_seconds=settings.login_lockout_seconds,
    )


login_throttle = _build_login_throttle()


def get_service(request: Request) -> RegistryService:
    """Resolve the `RegistryService` stored on the FastAPI application state."""
    service: RegistryService = request.app.state.registry_service
    return service


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register_user(
    payload: RegisterUserRequest,
    service: RegistryService = Depends(get_service),
) -> UserResponse:
    """Register a user with a hashed password."""
    try:
        user = service.register_user(payload.login_name, payload.password)
    except DuplicateKeyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="login name taken") from exc
    return UserResponse.from_domain(user)


@router.get("/users/{login_name}", response_model=UserResponse)
def get_user(login_name: str, service: RegistryService = Depends(get_service)) -> UserResponse:
    """Fetch a user and its account owners by login name."""
    try:
        user = service.get_user(login_name)
    except ReferentialIntegrityError as exc:
        raise _http_error(exc) from exc
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user not found")
    return UserResponse.from_domain(user)


@router.delete("/users/{login_name}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(login_name: str, service: RegistryService = Depends(get_service)) -> Response:
    """Delete a user; deleting an unknown login name still answers 204."""
    service.delete_user(login_name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/users/{login_name}/owners", response_model=UserResponse)
def add_primary_owner(
    login_name: str,
    payload: AddOwnerRequest,
    service: RegistryService = Depends(get_service),
) -> UserResponse:
    """Make a stored person the primary owner of the user's account."""
    try:
        user = service.add_primary_owner(login_name, payload.person_id)
    except (NotFoundError, ReferentialIntegrityError, StaleDocumentError) as exc:
        raise _http_error(exc) from exc
    return UserResponse.from_domain(user)


@router.post("/persons", response_model=PersonResponse, status_code=status.HTTP_201_CREATED)
def create_person(
    payload: CreatePersonRequest,
    service: RegistryService = Depends(get_service),
) -> PersonResponse:
    """Create a person; contact countries and postal codes must exist in the reference data."""
    try:
        contacts = [(_contact_from_request(item, service), item.primary) for item in payload.contacts]
    except NotFoundError as exc:
        raise _http_error(exc) from exc
    person = service.create_person(
        NewPerson(
            surname=payload.surname,
            given_name=payload.given_name,
            middle_name=payload.middle_name,
            title=payload.title,
            suffix=payload.suffix,
        ),
        contacts,
    )
    return PersonResponse.from_domain(person)


@router.get("/persons/{person_id}", response_model=PersonResponse)
def get_person(person_id: str, service: RegistryService = Depends(get_service)) -> PersonResponse:
    """Fetch a person with rendered contacts."""
    person = service.get_person(person_id)
    if person is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="person not found")
    return PersonResponse.from_domain(person)


@router.get("/countries/{alpha2_code}", response_model=CountryResponse)
def get_country(alpha2_code: str, service: RegistryService = Depends(get_service)) -> CountryResponse:
    """Look up a country by its alpha-2 code, case-insensitively."""
    country = service.get_country(alpha2_code.upper())
    if country is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="country not found")
    return CountryResponse(
        name=country.name,
        alpha2_code=country.alpha2_code,
        alpha3_code=country.alpha3_code,
        numeric_code=country.numeric_code,
        iso_code=country.iso_code,
        calling_code=country.calling_code,
    )


@router.post("/token", response_model=TokenResponse)
def issue_token(
    payload: TokenRequest,
    service: RegistryService = Depends(get_service),
) -> TokenResponse:
    """Exchange a login name and password for a signed access token."""
    throttle_key = f"login:{payload.login_name}"
    if not login_throttle.allow(throttle_key):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="too many failed logins")
    try:
        token = service.authenticate(payload.login_name, payload.password)
    except ReferentialIntegrityError as exc:
        raise _http_error(exc) from exc
    if token is None:
        login_throttle.record_failure(throttle_key)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid credentials")
    login_throttle.reset(throttle_key)
    return TokenResponse(access_token=token.access_token, expires_in=token.expires_in, user_id=token.user_id)


def _contact_from_request(
    item: EmailContactRequest | PhoneContactRequest | PostalAddressContactRequest,
    service: RegistryService,
) -> Contact:
    if isinstance(item, EmailContactRequest):
        return Email(str(item.address))
    country = service.require_country(item.country.upper())
    if isinstance(item, PhoneContactRequest):
        return Phone(item.type, item.number, country)
    postal_code = service.require_postal_code(country, item.postal_code)
    return PostalAddress(tuple(item.lines), postal_code, country)


def _http_error(exc: Exception) -> HTTPException:
    status_code = status.HTTP_409_CONFLICT
    if isinstance(exc, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    return HTTPException(status_code=status_code, detail=str(exc))
