import pytest
from pydantic import ValidationError

from app.errors import MISSING_IDENTIFIER_MSG
from app.schemas.identify import ContactSummary, IdentifyRequest
from app.services.identity_reconciliation_service import IdentityResult

pytestmark = pytest.mark.unit


def test_request_accepts_camel_case_phone():
    request = IdentifyRequest(**{"email": "a@x.com", "phoneNumber": "123"})
    assert request.email == "a@x.com"
    assert request.phone_number == "123"


def test_numeric_phone_is_coerced_to_string():
    request = IdentifyRequest(**{"phoneNumber": 123456})
    assert request.phone_number == "123456"
    assert request.email is None


def test_blank_values_count_as_absent():
    request = IdentifyRequest(**{"email": "  ", "phoneNumber": " 42 "})
    assert request.email is None
    assert request.phone_number == "42"


@pytest.mark.parametrize("body", [{}, {"email": None, "phoneNumber": None}, {"email": "", "phoneNumber": ""}])
def test_request_without_identifiers_is_invalid(body):
    with pytest.raises(ValidationError) as exc_info:
        IdentifyRequest(**body)
    assert MISSING_IDENTIFIER_MSG in str(exc_info.value)


def test_summary_serializes_with_camel_case_keys():
    summary = ContactSummary.from_result(
        IdentityResult(primary_contact_id=1, emails=["a@x.com"], phone_numbers=["9"], secondary_contact_ids=[2])
    )
    assert summary.model_dump(by_alias=True) == {
        "primaryContactId": 1,
        "emails": ["a@x.com"],
        "phoneNumbers": ["9"],
        "secondaryContactIds": [2],
    }
