"""SQLAlchemy models for the category hierarchy."""

from category_tree.models.base import Base, TimestampMixin
from category_tree.models.category import Category

__all__ = [
    "Base",
    "TimestampMixin",
    "Category",
]
