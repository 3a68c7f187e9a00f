from datetime import datetime, timezone

import pytest

from app.errors import ContactIntegrityError
from app.models.contact import LinkPrecedence
from app.services.contact_store import ContactSnapshot

NOW = datetime(2023, 4, 1, tzinfo=timezone.utc)

pytestmark = pytest.mark.unit


def build(**overrides):
    fields = {
        "id": 7,
        "email": "a@x.com",
        "phone_number": None,
        "link_precedence": "primary",
        "linked_id": None,
        "created_at": NOW,
        "updated_at": NOW,
    }
    fields.update(overrides)
    return ContactSnapshot(**fields)


def test_primary_resolves_to_itself():
    contact = build()
    assert contact.is_primary
    assert contact.link_precedence is LinkPrecedence.PRIMARY
    assert contact.primary_id == 7


def test_secondary_resolves_to_linked_primary():
    contact = build(link_precedence="secondary", linked_id=3)
    assert not contact.is_primary
    assert contact.primary_id == 3


@pytest.mark.parametrize(
    "overrides",
    [
        {"linked_id": 3},
        {"link_precedence": "secondary"},
        {"email": None, "phone_number": None},
        {"link_precedence": "tertiary"},
    ],
)
def test_invalid_rows_are_rejected(overrides):
    with pytest.raises(ContactIntegrityError):
        build(**overrides)
