"""Person documents and the tagged contact variants they embed."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from .reference import CountryDocument, PostalCodeDocument


class ContactBase(BaseModel):
    primary: bool = False


class EmailDocument(ContactBase):
    kind: Literal["email"] = "email"
    address: str


class PhoneDocument(ContactBase):
    kind: Literal["phone"] = "phone"
    type: Literal["land", "mobile", "office"]
    number: str
    country: CountryDocument


class PostalAddressDocument(ContactBase):
    kind: Literal["postal_address"] = "postal_address"
    lines: list[str] = Field(default_factory=list)
    postal_code: PostalCodeDocument
    country: CountryDocument


ContactDocument = Annotated[
    Union[EmailDocument, PhoneDocument, PostalAddressDocument],
    Field(discriminator="kind"),
]


class PersonDocument(BaseModel):
    surname: str
    given_name: str
    middle_name: str | None = None
    title: str | None = None
    suffix: str | None = None
    contacts: list[ContactDocument] = Field(default_factory=list)
