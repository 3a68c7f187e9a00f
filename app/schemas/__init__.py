"""
Schemas package.

Import all schemas here for easy access.
"""

from app.schemas.identify import ContactSummary, ErrorResponse, IdentifyRequest, IdentifyResponse

__all__ = [
    "ContactSummary",
    "ErrorResponse",
    "IdentifyRequest",
    "IdentifyResponse",
]
