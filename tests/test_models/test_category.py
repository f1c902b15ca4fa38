"""Tests for the Category model."""

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from category_tree.models.base import Base
from category_tree.models.category import Category


class TestCategoryTable:
    """Tests for the table definition."""

    def test_registered_on_base(self):
        assert "categories" in Base.metadata.tables

    def test_bound_columns_use_underscored_names(self):
        columns = Category.__table__.c

        assert "_lft" in columns
        assert "_rgt" in columns
        assert Category.left_bound.property.columns[0].name == "_lft"

    def test_bounds_index(self):
        indexes = {index.name: [c.name for c in index.columns] for index in Category.__table__.indexes}

        assert indexes["ix_categories_bounds"] == ["_lft", "_rgt"]

    def test_parent_foreign_key(self):
        (fk,) = Category.__table__.c.parent_id.foreign_keys

        assert fk.target_fullname == "categories.id"
        assert fk.ondelete == "CASCADE"

    def test_timestamp_columns(self):
        assert "created_at" in Category.__table__.c
        assert "updated_at" in Category.__table__.c


class TestCategoryRows:
    """Tests for persisted rows."""

    @pytest.mark.asyncio
    async def test_defaults(self, session: AsyncSession):
        session.add(Category(name="Auto Parts", slug="auto-parts"))
        await session.commit()

        category = (await session.execute(select(Category))).scalar_one()

        assert category.id == 1
        assert category.parent_id is None
        assert category.left_bound == 0
        assert category.right_bound == 0
        assert await session.scalar(select(Category.created_at)) is not None

    def test_repr(self):
        category = Category(id=3, slug="brakes", parent_id=1)

        assert repr(category) == "<Category(id=3, slug='brakes', parent_id=1)>"
