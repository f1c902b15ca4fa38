"""Pydantic schemas for serializing trees."""

from category_tree.schemas.tree import CategoryNodeSchema, TreeSchema

__all__ = [
    "CategoryNodeSchema",
    "TreeSchema",
]
