"""
Contact model.

One row per observed (email, phone number) pair. Rows form clusters of depth
one: a primary contact plus secondaries whose `linked_id` points at it.
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.utils.time import utc_now


class LinkPrecedence(str, enum.Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class Contact(Base):
    """
    Contact table - identity observations linked into primary/secondary clusters.
    """

    __tablename__ = "contacts"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )

    phone_number: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        index=True,
    )

    linked_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("contacts.id"),
        nullable=True,
        index=True,
    )

    link_precedence: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=LinkPrecedence.PRIMARY.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    # Reserved soft-delete marker; reconciliation does not filter on it
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        CheckConstraint(
            "link_precedence IN ('primary', 'secondary')",
            name="ck_contacts_link_precedence",
        ),
        CheckConstraint(
            "email IS NOT NULL OR phone_number IS NOT NULL",
            name="ck_contacts_identifier_required",
        ),
        CheckConstraint(
            "(link_precedence = 'primary' AND linked_id IS NULL) OR "
            "(link_precedence = 'secondary' AND linked_id IS NOT NULL)",
            name="ck_contacts_linked_id_matches_precedence",
        ),
        UniqueConstraint("email", "phone_number", name="uq_contacts_email_phone"),
        Index("ix_contacts_precedence_linked", "link_precedence", "linked_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Contact(id={self.id}, email={self.email!r}, phone_number={self.phone_number!r}, "
            f"precedence={self.link_precedence}, linked_id={self.linked_id})>"
        )
