"""CRM persistence models -- contacts and the notes and deals hanging off them.

Three SQLAlchemy models:
- ContactModel: a person owned by exactly one user (owner_id)
- NoteModel: free-text note attached to a contact
- DealModel: sales opportunity attached to a contact

Notes and deals carry no owner column. Their ownership is always resolved
through the parent contact. Foreign keys document the relationships but no
ON DELETE CASCADE is declared: removing a contact deletes its children
explicitly in ContactRepository.delete.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column

from src.app.core.database import Base

DEFAULT_STAGE = "Prospect"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContactModel(Base):
    """A contact owned by one user."""

    __tablename__ = "contacts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str] = mapped_column(
        String(200), nullable=False, default="", server_default=text("''")
    )
    phone: Mapped[str] = mapped_column(
        String(50), nullable=False, default="", server_default=text("''")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
    )


class NoteModel(Base):
    """A note on a contact.

    author_id records who wrote it; it plays no part in authorization.
    """

    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    contact_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("contacts.id"), nullable=False, index=True
    )
    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
    )


class DealModel(Base):
    """A sales deal on a contact. Stage is free text."""

    __tablename__ = "deals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    contact_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("contacts.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    amount: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, server_default=text("0")
    )
    stage: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default=DEFAULT_STAGE,
        server_default=text(f"'{DEFAULT_STAGE}'"),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
    )
