"""
Contact store contract used by the reconciliation engine.

The engine only needs four primitives (identifier lookup, cluster fetch,
insert, partial update) plus an optional locking hook. Anything satisfying
`ContactStore` can back it: the SQLAlchemy repository in production, an
in-memory double in tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol

from app.errors import ContactIntegrityError
from app.models.contact import Contact, LinkPrecedence


@dataclass(frozen=True)
class ContactSnapshot:
    """Immutable view of one contact row.

    Construction enforces the linkage rules: a primary has no `linked_id`, a
    secondary always has one, and at least one identifier is set.
    """

    id: int
    email: Optional[str]
    phone_number: Optional[str]
    link_precedence: LinkPrecedence
    linked_id: Optional[int]
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        try:
            precedence = LinkPrecedence(self.link_precedence)
        except ValueError:
            raise ContactIntegrityError(
                f"Contact {self.id} has unknown link precedence",
                {"contact_id": self.id, "link_precedence": str(self.link_precedence)},
            )
        object.__setattr__(self, "link_precedence", precedence)

        if precedence is LinkPrecedence.PRIMARY and self.linked_id is not None:
            raise ContactIntegrityError(
                f"Primary contact {self.id} must not be linked",
                {"contact_id": self.id, "linked_id": self.linked_id},
            )
        if precedence is LinkPrecedence.SECONDARY and self.linked_id is None:
            raise ContactIntegrityError(
                f"Secondary contact {self.id} has no primary",
                {"contact_id": self.id},
            )
        if not self.email and not self.phone_number:
            raise ContactIntegrityError(
                f"Contact {self.id} has neither email nor phone number",
                {"contact_id": self.id},
            )

    @property
    def is_primary(self) -> bool:
        return self.link_precedence is LinkPrecedence.PRIMARY

    @property
    def primary_id(self) -> int:
        """Id of the primary this contact belongs to (itself if primary)."""
        if self.is_primary:
            return self.id
        return self.linked_id  # type: ignore[return-value]

    @classmethod
    def from_model(cls, row: Contact) -> "ContactSnapshot":
        return cls(
            id=row.id,
            email=row.email,
            phone_number=row.phone_number,
            link_precedence=row.link_precedence,
            linked_id=row.linked_id,
            created_at=row.created_at,
            updated_at=row.updated_at,
            deleted_at=row.deleted_at,
        )


class ContactStore(Protocol):
    """Persistence primitives the reconciliation engine relies on."""

    async def find_by_identifier(self, email: Optional[str], phone_number: Optional[str]) -> List[ContactSnapshot]:
        """Contacts whose email equals `email` OR whose phone equals `phone_number`."""
        ...

    async def find_cluster(self, primary_id: int) -> List[ContactSnapshot]:
        """The primary row plus every row linked to it."""
        ...

    async def insert(self, fields: Dict[str, Any]) -> int:
        ...

    async def update(self, contact_id: int, fields: Dict[str, Any]) -> None:
        ...

    async def lock_identities(self, keys: Iterable[str]) -> None:
        """Block until exclusive access to every key is held for this transaction."""
        ...
