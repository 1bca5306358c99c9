"""Pydantic schemas for contacts, notes, and deals.

The REST contract is camelCase (``ownerId``, ``contactId``, ``createdAt``,
``pageSize``); every schema derives from CamelModel, which serializes by
alias and accepts either spelling on input.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from src.app.crm.models import DEFAULT_STAGE

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50

# Primary keys are 32-bit INTEGER columns
MAX_ID = 2**31 - 1

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Page(CamelModel, Generic[T]):
    """One page of a paginated listing.

    ``total`` is the full filtered count, independent of the page.
    """

    items: list[T]
    total: int
    page: int
    page_size: int


class OkResponse(CamelModel):
    ok: bool = True


# ── Contacts ────────────────────────────────────────────────────────────────


class ContactCreate(CamelModel):
    """Schema for creating a contact. The owner is always the caller."""

    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    company: str = Field(default="", max_length=200)
    phone: str = Field(default="", max_length=50)


class ContactUpdate(CamelModel):
    """Schema for updating a contact (all fields optional)."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    email: EmailStr | None = None
    company: str | None = Field(default=None, max_length=200)
    phone: str | None = Field(default=None, max_length=50)


class ContactRead(CamelModel):
    id: int
    owner_id: int
    name: str
    email: str
    company: str = ""
    phone: str = ""
    created_at: datetime | None = None


# ── Notes ───────────────────────────────────────────────────────────────────


class NoteCreate(CamelModel):
    body: str = Field(..., min_length=1)


class NoteRead(CamelModel):
    id: int
    contact_id: int
    author_id: int
    body: str
    created_at: datetime | None = None


class NoteList(CamelModel):
    items: list[NoteRead]


# ── Deals ───────────────────────────────────────────────────────────────────


def _coerce_amount(value: Any) -> Any:
    """Treat null and blank amounts as 0; leave the rest to float parsing."""
    if value is None:
        return 0.0
    if isinstance(value, str) and not value.strip():
        return 0.0
    return value


class DealCreate(CamelModel):
    """Schema for creating a deal under a contact the caller owns."""

    title: str = Field(..., min_length=1, max_length=300)
    amount: float = Field(default=0.0, ge=0)
    stage: str = Field(default=DEFAULT_STAGE, max_length=100)
    contact_id: int = Field(..., ge=1, le=MAX_ID)

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_defaults_to_zero(cls, value: Any) -> Any:
        return _coerce_amount(value)


class DealUpdate(CamelModel):
    """Schema for updating a deal. Only supplied fields are written."""

    title: str | None = Field(default=None, min_length=1, max_length=300)
    amount: float | None = Field(default=None, ge=0)
    stage: str | None = Field(default=None, max_length=100)


class DealRead(CamelModel):
    id: int
    contact_id: int
    title: str
    amount: float = 0.0
    stage: str = DEFAULT_STAGE
    created_at: datetime | None = None
    contact: ContactRead | None = None
