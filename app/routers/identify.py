"""
Identity reconciliation endpoint.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from app.core.dependencies import get_identity_service
from app.errors import IdentityLockConflictError, is_deadlock
from app.schemas.identify import ContactSummary, ErrorResponse, IdentifyRequest, IdentifyResponse
from app.services.identity_reconciliation_service import IdentityReconciliationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/identify", tags=["Identity"])


@router.post(
    "",
    response_model=IdentifyResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def identify(
    payload: IdentifyRequest,
    service: IdentityReconciliationService = Depends(get_identity_service),
):
    """
    Resolve an email and/or phone number to its consolidated contact cluster.

    Merges clusters that turn out to share an identifier and records new
    identifiers as secondary contacts of the surviving primary.
    """
    try:
        result = await service.identify(payload.email, payload.phone_number)
    except DBAPIError as exc:
        if is_deadlock(exc):
            logger.warning("Identify aborted by lock deadlock; transaction rolled back")
            raise IdentityLockConflictError() from exc
        logger.exception("Contact store failure while identifying")
        raise
    except SQLAlchemyError:
        logger.exception("Contact store failure while identifying")
        raise
    return IdentifyResponse(contact=ContactSummary.from_result(result))
