"""
Models package.

Import all models here so they are registered with SQLAlchemy.
This file also makes it easy to import models from one place.
"""

from app.models.contact import Contact, LinkPrecedence

# Export all models
__all__ = [
    "Contact",
    "LinkPrecedence",
]
