"""Boundary-indexed (nested set) loader: one scan in ``_lft`` order."""

from collections.abc import Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from category_tree.core.tree import Tree, build_from_bounds
from category_tree.loaders.base_loader import NODE_COLUMNS, BaseTreeLoader
from category_tree.models.category import Category

BOUND_COLUMNS = (
    Category.left_bound.label("left_bound"),
    Category.right_bound.label("right_bound"),
)


class NestedSetTreeLoader(BaseTreeLoader):
    """Rebuild the hierarchy purely from ``_lft``/``_rgt`` containment.

    Requires the bounds to be current: run ``NestedSetService.reindex``
    after bulk changes made outside the service.
    """

    strategy = "nested_set"

    async def fetch_rows(self, session: AsyncSession) -> tuple[Sequence[Any], int]:
        stmt = select(*NODE_COLUMNS, *BOUND_COLUMNS).order_by(Category.left_bound)
        rows = (await session.execute(stmt)).all()
        return rows, 1

    def assemble(self, rows: Sequence[Any]) -> Tree:
        return build_from_bounds(rows)
