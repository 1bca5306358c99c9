"""Ownership guard -- the only authorization primitive in the CRM.

A principal may act on a contact iff ``contact.owner_id`` is the principal.
Notes and deals have no owner column; they resolve to their parent
contact's owner. Missing rows and rows owned by someone else both raise
ForbiddenError, so callers cannot probe for other users' ids.

Every single-resource read and every write on contacts, notes, and deals
calls one of these checks after the request is parsed and before anything
is written.
"""

from __future__ import annotations

import structlog
from sqlalchemy import select

from src.app.core.database import SessionFactory
from src.app.core.exceptions import ForbiddenError
from src.app.crm.models import ContactModel, DealModel

logger = structlog.get_logger(__name__)


class OwnershipGuard:
    """Resolves ownership of contacts and deals.

    Args:
        session_factory: async_sessionmaker bound to the application engine.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    async def contact_owner(self, contact_id: int) -> int | None:
        """Return the owner id of a contact, or None if it does not exist."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(ContactModel.owner_id).where(ContactModel.id == contact_id)
            )
            return result.scalar_one_or_none()

    async def deal_contact(self, deal_id: int) -> int | None:
        """Return the parent contact id of a deal, or None if it does not exist."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(DealModel.contact_id).where(DealModel.id == deal_id)
            )
            return result.scalar_one_or_none()

    async def assert_owns_contact(self, contact_id: int, principal_id: int) -> None:
        """Raise ForbiddenError unless ``principal_id`` owns the contact."""
        owner_id = await self.contact_owner(contact_id)
        if owner_id is None or owner_id != principal_id:
            logger.info(
                "ownership.denied",
                resource="contact",
                resource_id=contact_id,
                user_id=principal_id,
            )
            raise ForbiddenError()

    async def assert_owns_deal(self, deal_id: int, principal_id: int) -> None:
        """Raise ForbiddenError unless ``principal_id`` owns the deal's contact.

        Two explicit steps: deal -> contact_id, then contact -> owner_id.
        """
        contact_id = await self.deal_contact(deal_id)
        owner_id = await self.contact_owner(contact_id) if contact_id is not None else None
        if owner_id is None or owner_id != principal_id:
            logger.info(
                "ownership.denied",
                resource="deal",
                resource_id=deal_id,
                user_id=principal_id,
            )
            raise ForbiddenError()
