"""
Contact repository - database operations for Contact.

Implements the `ContactStore` primitives on top of an AsyncSession. Reads
return `ContactSnapshot` objects ordered by (created_at, id).
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import or_, select, text, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.contact import Contact
from app.services.contact_store import ContactSnapshot
from app.utils.time import utc_now

logger = logging.getLogger(__name__)

ADVISORY_LOCK_SQL = text("SELECT pg_advisory_xact_lock(hashtextextended(:key, 0))")


class ContactRepository:
    """Repository for Contact database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_identifier(self, email: Optional[str], phone_number: Optional[str]) -> List[ContactSnapshot]:
        """Exact-match disjunction; an absent identifier never matches."""
        conditions = []
        if email:
            conditions.append(Contact.email == email)
        if phone_number:
            conditions.append(Contact.phone_number == phone_number)
        if not conditions:
            return []

        result = await self.db.execute(
            select(Contact)
            .where(or_(*conditions))
            .order_by(Contact.created_at, Contact.id)
            .execution_options(populate_existing=True)
        )
        return [ContactSnapshot.from_model(row) for row in result.scalars().all()]

    async def find_cluster(self, primary_id: int) -> List[ContactSnapshot]:
        """Return the primary row plus every row linked to it."""
        result = await self.db.execute(
            select(Contact)
            .where(or_(Contact.id == primary_id, Contact.linked_id == primary_id))
            .order_by(Contact.created_at, Contact.id)
            .execution_options(populate_existing=True)
        )
        return [ContactSnapshot.from_model(row) for row in result.scalars().all()]

    async def insert(self, fields: Dict[str, Any]) -> int:
        """Create a contact row and return its assigned id."""
        record = Contact(**fields)
        self.db.add(record)
        await self.db.flush()
        await self.db.refresh(record)
        return record.id

    async def update(self, contact_id: int, fields: Dict[str, Any]) -> None:
        """Partial update of a single row by id."""
        values = dict(fields)
        values.setdefault("updated_at", utc_now())
        await self.db.execute(
            update(Contact).where(Contact.id == contact_id).values(**values)
        )
        await self.db.flush()

    async def lock_identities(self, keys: Iterable[str]) -> None:
        """Take transaction-scoped advisory locks, in sorted order.

        Only PostgreSQL supports this; other dialects get no locking.
        """
        ordered = sorted(set(keys))
        if not ordered:
            return

        dialect = self.db.get_bind().dialect.name
        if dialect != "postgresql":
            logger.debug("Skipping identity locks on dialect %s", dialect)
            return

        for key in ordered:
            await self.db.execute(ADVISORY_LOCK_SQL, {"key": key})
