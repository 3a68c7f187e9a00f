"""
FastAPI dependencies shared by the routers.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.session import get_db
from app.repositories.contact_repository import ContactRepository
from app.services.contact_store import ContactStore
from app.services.identity_reconciliation_service import IdentityReconciliationService


async def get_contact_store(db: AsyncSession = Depends(get_db)) -> ContactStore:
    """Contact store bound to the request's session (one transaction per request)."""
    return ContactRepository(db)


async def get_identity_service(
    store: ContactStore = Depends(get_contact_store),
) -> IdentityReconciliationService:
    return IdentityReconciliationService(store, use_locks=settings.IDENTITY_LOCKS_ENABLED)
