"""
Pydantic schemas for the /identify endpoint.

Field names on the wire are camelCase (`phoneNumber`, `primaryContactId`).
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.errors import MISSING_IDENTIFIER_MSG
from app.services.identity_reconciliation_service import IdentityResult


class IdentifyRequest(BaseModel):
    """Schema for an identify request. At least one identifier is required."""
    
    email: Optional[str] = None
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("email", "phone_number", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        # Phone numbers are often sent as JSON numbers
        if isinstance(value, int) and not isinstance(value, bool):
            value = str(value)
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @model_validator(mode="after")
    def require_identifier(self) -> "IdentifyRequest":
        if not self.email and not self.phone_number:
            raise ValueError(MISSING_IDENTIFIER_MSG)
        return self


class ContactSummary(BaseModel):
    """Consolidated view of one identity cluster."""
    
    primary_contact_id: int
    emails: List[str]
    phone_numbers: List[str]
    secondary_contact_ids: List[int]

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_result(cls, result: IdentityResult) -> "ContactSummary":
        return cls(
            primary_contact_id=result.primary_contact_id,
            emails=list(result.emails),
            phone_numbers=list(result.phone_numbers),
            secondary_contact_ids=list(result.secondary_contact_ids),
        )


class IdentifyResponse(BaseModel):
    """Schema for a successful identify response."""
    
    contact: ContactSummary


class ErrorResponse(BaseModel):
    error: str
