"""Recursive-closure loader: the whole hierarchy in one WITH RECURSIVE query.

The query seeds the closure with root rows and unions children of rows
already produced until no new rows appear. Each produced row carries its
depth and a materialized path (``/1/4/9/``); the recursive term refuses to
enter an id that is already on the path, so the traversal terminates even
on databases that do not detect cyclic recursion themselves.

A node that sits on a parent cycle can never be reached from a root, so
cycles surface as rows missing from the closure. The same statement
returns the table's row count and the first row with a dangling parent,
which lets the loader tell the two apart without a second round trip.
"""

from collections.abc import Sequence
from typing import Any

from sqlalchemy import Integer, Select, Text, cast, literal_column, select, true
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

SEPARATOR = literal_column("'/'", Text)


def _segment() -> Any:
    """``/<id>/`` for the category row currently being joined."""
    return SEPARATOR + cast(Category.id, Text) + SEPARATOR


def build_closure_query(start_id: int | None = None) -> Select[Any]:
    """Build the recursive traversal statement.

    Args:
        start_id: Seed the closure with this node instead of every root

    Returns:
        SELECT over the closure ordered by depth then id, so siblings keep
        insertion order. Without ``start_id`` the closure is outer-joined
        to ``table_counts()``, which guarantees at least one result row.
    """
    seed = Category.parent_id.is_(None) if start_id is None else Category.id == start_id

    anchor = select(
        *NODE_COLUMNS,
        literal_column("0", Integer).label("depth"),
        cast(_segment(), Text).label("path"),
    ).where(seed)
    closure = anchor.cte("category_closure", recursive=True)

    step = (
        select(
            *NODE_COLUMNS,
            (closure.c.depth + 1).label("depth"),
            cast(closure.c.path + cast(Category.id, Text) + SEPARATOR, Text).label("path"),
        )
        .join(closure, Category.parent_id == closure.c.id)
        .where(~closure.c.path.contains(_segment()))
    )
    closure = closure.union_all(step)

    if start_id is not None:
        return select(closure).order_by(closure.c.depth, closure.c.id)

    counts = table_counts()
    return (
        select(counts.c.total_rows, counts.c.dangling_id, closure)
        .select_from(counts.outerjoin(closure, true()))
        .order_by(closure.c.depth, closure.c.id)
    )


class RecursiveTreeLoader(BaseTreeLoader):
    """Single round trip via a recursive common table expression."""

    strategy = "recursive"

    async def fetch_rows(self, session: AsyncSession) -> tuple[Sequence[Any], int]:
        result = (await session.execute(build_closure_query())).all()

        rows = [row for row in result if row.id is not None]
        check_coverage(len(rows), result[0].total_rows, result[0].dangling_id, self.strategy)

        logger.debug(
            "Closure fetched",
            rows=len(rows),
            depth=max((row.depth for row in rows), default=-1) + 1,
        )
        return rows, 1

    def assemble(self, rows: Sequence[Any]) -> Tree:
        return link_rows(rows)

    async def load_subtree(self, session: AsyncSession, node_id: int) -> Tree:
        """Materialize the subtree rooted at ``node_id`` in one round trip.

        Depths in the returned tree are relative to ``node_id``. An unknown
        id yields an empty tree.
        """
        rows = (await session.execute(build_closure_query(start_id=node_id))).all()
        tree = link_rows(rows, root_ids={node_id})
        logger.debug("Subtree loaded", node_id=node_id, nodes=len(tree))
        return tree
