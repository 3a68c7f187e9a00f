"""
Declarative base for all ORM models.

Alembic reads `Base.metadata` to know which tables exist.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
