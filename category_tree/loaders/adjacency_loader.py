"""Adjacency-recursive loader: one query per tree level."""

from collections.abc import Sequence
from typing import Any

from sqlalchemy import select, true
from sqlalchemy.ext.asyncio import AsyncSession

from category_tree.core.tree import Tree, link_rows
from category_tree.infra.logging import get_logger
from category_tree.loaders.base_loader import (
    NODE_COLUMNS,
    BaseTreeLoader,
    check_coverage,
    table_counts,
)
from category_tree.models.category import Category

logger = get_logger(__name__)


class AdjacencyTreeLoader(BaseTreeLoader):
    """Fetch roots, then the children of the previous level, until a level is empty.

    Issues ``levels + 1`` queries: the final query confirms the deepest
    level has no children. A table without roots costs a single query.

    The roots query also carries the table's row count and the first
    dangling parent reference, so rows that no level reaches are reported
    as ``InconsistentTree`` or ``CycleDetected`` instead of being dropped.
    """

    strategy = "adjacency"

    async def fetch_rows(self, session: AsyncSession) -> tuple[Sequence[Any], int]:
        counts = table_counts()
        roots = select(*NODE_COLUMNS).where(Category.parent_id.is_(None)).subquery("roots")
        stmt = (
            select(counts.c.total_rows, counts.c.dangling_id, roots)
            .select_from(counts.outerjoin(roots, true()))
            .order_by(roots.c.id)
        )
        result = (await session.execute(stmt)).all()
        total_rows, dangling_id = result[0].total_rows, result[0].dangling_id

        rows: list[Any] = []
        level = [row for row in result if row.id is not None]
        round_trips = 1

        while level:
            rows.extend(level)
            logger.debug("Level fetched", depth=round_trips - 1, nodes=len(level))

            stmt = (
                select(*NODE_COLUMNS)
                .where(Category.parent_id.in_([row.id for row in level]))
                .order_by(Category.parent_id, Category.id)
            )
            level = (await session.execute(stmt)).all()
            round_trips += 1

        check_coverage(len(rows), total_rows, dangling_id, self.strategy)
        return rows, round_trips

    def assemble(self, rows: Sequence[Any]) -> Tree:
        return link_rows(rows)
