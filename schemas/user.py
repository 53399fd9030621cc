"""User documents; the account is embedded and owners are stored by id."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AccountDocument(BaseModel):
    owner_ids: list[str] = Field(default_factory=list)


class UserDocument(BaseModel):
    login_name: str
    password: str | None = None
    registered: bool = False
    account: AccountDocument = Field(default_factory=AccountDocument)
