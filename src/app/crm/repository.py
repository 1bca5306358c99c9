"""CRM repositories -- ownership-scoped async CRUD for contacts, notes, deals.

Each repository opens its own session per call and takes the
acting principal's user id as the first argument of every method. Listing
queries filter by ownership directly (contacts by owner_id, deals by a join
through their contact); single-resource operations go through the
OwnershipGuard first.

Operations are not wrapped in a cross-statement lock: the ownership check
and the subsequent write run in different sessions, so a row deleted by a
concurrent request between the two is a possible race.
"""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import delete, func, or_, select, update

from src.app.core.database import SessionFactory
from src.app.core.exceptions import ForbiddenError
from src.app.crm.models import ContactModel, DealModel, NoteModel
from src.app.crm.ownership import OwnershipGuard
from src.app.crm.schemas import (
    ContactCreate,
    ContactRead,
    ContactUpdate,
    DealCreate,
    DealRead,
    DealUpdate,
    NoteCreate,
    NoteList,
    NoteRead,
    Page,
)

logger = structlog.get_logger(__name__)


def _offset(page: int, page_size: int) -> int:
    return (page - 1) * page_size


def _changes(data: ContactUpdate | DealUpdate) -> dict[str, Any]:
    """Supplied, non-null fields of a partial update."""
    return data.model_dump(exclude_unset=True, exclude_none=True)


# ── Contacts ────────────────────────────────────────────────────────────────


class ContactRepository:
    """Contacts owned by the acting user.

    Args:
        session_factory: async_sessionmaker bound to the application engine.
        guard: OwnershipGuard used before single-resource access.
    """

    def __init__(self, session_factory: SessionFactory, guard: OwnershipGuard) -> None:
        self._session_factory = session_factory
        self._guard = guard

    async def list(
        self,
        owner_id: int,
        search: str = "",
        page: int = 1,
        page_size: int = 10,
    ) -> Page[ContactRead]:
        """List the owner's contacts, newest first.

        ``search`` is a case-sensitive substring matched against name,
        email, or company.
        """
        conditions = [ContactModel.owner_id == owner_id]
        if search:
            conditions.append(
                or_(
                    ContactModel.name.contains(search, autoescape=True),
                    ContactModel.email.contains(search, autoescape=True),
                    ContactModel.company.contains(search, autoescape=True),
                )
            )

        async with self._session_factory() as session:
            total = await session.scalar(
                select(func.count()).select_from(ContactModel).where(*conditions)
            )
            result = await session.execute(
                select(ContactModel)
                .where(*conditions)
                .order_by(ContactModel.id.desc())
                .offset(_offset(page, page_size))
                .limit(page_size)
            )
            items = [ContactRead.model_validate(m) for m in result.scalars().all()]
            return Page[ContactRead](
                items=items, total=total or 0, page=page, page_size=page_size
            )

    async def create(self, owner_id: int, data: ContactCreate) -> ContactRead:
        async with self._session_factory() as session:
            model = ContactModel(
                owner_id=owner_id,
                name=data.name,
                email=str(data.email),
                company=data.company,
                phone=data.phone,
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            logger.info("contacts.created", contact_id=model.id, user_id=owner_id)
            return ContactRead.model_validate(model)

    async def get(self, owner_id: int, contact_id: int) -> ContactRead:
        await self._guard.assert_owns_contact(contact_id, owner_id)
        async with self._session_factory() as session:
            model = await session.get(ContactModel, contact_id)
            if model is None:
                # Deleted by a concurrent request after the ownership check
                raise ForbiddenError()
            return ContactRead.model_validate(model)

    async def update(
        self, owner_id: int, contact_id: int, data: ContactUpdate
    ) -> ContactRead:
        """Apply only the supplied fields."""
        await self._guard.assert_owns_contact(contact_id, owner_id)
        changes = _changes(data)
        if "email" in changes:
            changes["email"] = str(changes["email"])

        async with self._session_factory() as session:
            if changes:
                await session.execute(
                    update(ContactModel)
                    .where(ContactModel.id == contact_id)
                    .values(**changes)
                )
                await session.commit()
            model = await session.get(ContactModel, contact_id)
            if model is None:
                raise ForbiddenError()
            return ContactRead.model_validate(model)

    async def delete(self, owner_id: int, contact_id: int) -> None:
        """Delete a contact with its notes and deals.

        Children are removed explicitly before the contact; nothing relies
        on a database-level cascade.
        """
        await self._guard.assert_owns_contact(contact_id, owner_id)
        async with self._session_factory() as session:
            notes = await session.execute(
                delete(NoteModel).where(NoteModel.contact_id == contact_id)
            )
            deals = await session.execute(
                delete(DealModel).where(DealModel.contact_id == contact_id)
            )
            await session.execute(
                delete(ContactModel).where(ContactModel.id == contact_id)
            )
            await session.commit()
            logger.info(
                "contacts.deleted",
                contact_id=contact_id,
                user_id=owner_id,
                notes_deleted=notes.rowcount,
                deals_deleted=deals.rowcount,
            )


# ── Notes ───────────────────────────────────────────────────────────────────


class NoteRepository:
    """Notes, authorized through the parent contact's owner."""

    def __init__(self, session_factory: SessionFactory, guard: OwnershipGuard) -> None:
        self._session_factory = session_factory
        self._guard = guard

    async def list(self, owner_id: int, contact_id: int) -> NoteList:
        await self._guard.assert_owns_contact(contact_id, owner_id)
        async with self._session_factory() as session:
            result = await session.execute(
                select(NoteModel)
                .where(NoteModel.contact_id == contact_id)
                .order_by(NoteModel.id.desc())
            )
            return NoteList(
                items=[NoteRead.model_validate(m) for m in result.scalars().all()]
            )

    async def create(self, owner_id: int, contact_id: int, data: NoteCreate) -> NoteRead:
        await self._guard.assert_owns_contact(contact_id, owner_id)
        async with self._session_factory() as session:
            model = NoteModel(contact_id=contact_id, author_id=owner_id, body=data.body)
            session.add(model)
            await session.commit()
            await session.refresh(model)
            return NoteRead.model_validate(model)


# ── Deals ───────────────────────────────────────────────────────────────────


class DealRepository:
    """Deals, authorized transitively through their contact."""

    def __init__(self, session_factory: SessionFactory, guard: OwnershipGuard) -> None:
        self._session_factory = session_factory
        self._guard = guard

    async def list(
        self, owner_id: int, page: int = 1, page_size: int = 10
    ) -> Page[DealRead]:
        """List deals whose contact belongs to ``owner_id``, newest first.

        Each item embeds its parent contact.
        """
        owned = ContactModel.owner_id == owner_id

        async with self._session_factory() as session:
            total = await session.scalar(
                select(func.count())
                .select_from(DealModel)
                .join(ContactModel, DealModel.contact_id == ContactModel.id)
                .where(owned)
            )
            result = await session.execute(
                select(DealModel, ContactModel)
                .join(ContactModel, DealModel.contact_id == ContactModel.id)
                .where(owned)
                .order_by(DealModel.id.desc())
                .offset(_offset(page, page_size))
                .limit(page_size)
            )
            items = []
            for deal, contact in result.all():
                read = DealRead.model_validate(deal)
                read.contact = ContactRead.model_validate(contact)
                items.append(read)
            return Page[DealRead](
                items=items, total=total or 0, page=page, page_size=page_size
            )

    async def list_for_analytics(self, owner_id: int) -> list[DealRead]:
        """Every deal transitively owned by ``owner_id``, oldest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(DealModel)
                .join(ContactModel, DealModel.contact_id == ContactModel.id)
                .where(ContactModel.owner_id == owner_id)
                .order_by(DealModel.id)
            )
            return [DealRead.model_validate(m) for m in result.scalars().all()]

    async def create(self, owner_id: int, data: DealCreate) -> DealRead:
        """Create a deal; the target contact must belong to ``owner_id``."""
        await self._guard.assert_owns_contact(data.contact_id, owner_id)
        async with self._session_factory() as session:
            model = DealModel(
                contact_id=data.contact_id,
                title=data.title,
                amount=float(data.amount),
                stage=data.stage,
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            logger.info("deals.created", deal_id=model.id, user_id=owner_id)
            return DealRead.model_validate(model)

    async def get(self, owner_id: int, deal_id: int) -> DealRead:
        await self._guard.assert_owns_deal(deal_id, owner_id)
        async with self._session_factory() as session:
            model = await session.get(DealModel, deal_id)
            if model is None:
                raise ForbiddenError()
            return DealRead.model_validate(model)

    async def update(self, owner_id: int, deal_id: int, data: DealUpdate) -> DealRead:
        """Apply only the supplied fields; ``amount`` is stored as a float."""
        await self._guard.assert_owns_deal(deal_id, owner_id)
        changes = _changes(data)
        if "amount" in changes:
            changes["amount"] = float(changes["amount"])

        async with self._session_factory() as session:
            if changes:
                await session.execute(
                    update(DealModel).where(DealModel.id == deal_id).values(**changes)
                )
                await session.commit()
            model = await session.get(DealModel, deal_id)
            if model is None:
                raise ForbiddenError()
            return DealRead.model_validate(model)

    async def delete(self, owner_id: int, deal_id: int) -> None:
        await self._guard.assert_owns_deal(deal_id, owner_id)
        async with self._session_factory() as session:
            await session.execute(delete(DealModel).where(DealModel.id == deal_id))
            await session.commit()
            logger.info("deals.deleted", deal_id=deal_id, user_id=owner_id)
