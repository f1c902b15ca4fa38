"""Nested set maintenance for the boundary-indexed strategy.

Keeps ``_lft``/``_rgt`` consistent with ``parent_id`` on insert, move and
delete, and can renumber the whole table from the parent graph.

Boundary numbering follows a depth-first walk: a node takes the next
counter value on entry (``left_bound``) and on exit (``right_bound``).
Siblings are numbered in insertion order, i.e. ascending id, so the
nested-set tree has the same sibling order as the other strategies.

All mutating operations hold the service's writer lock and run in one
transaction. On PostgreSQL they also take a transaction-scoped advisory
lock keyed by the table name, which serializes writers across processes.
"""

import asyncio
import zlib
from collections import defaultdict
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import case, delete, func, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from category_tree.config import settings
from category_tree.core.errors import (
    CycleDetected,
    HasChildren,
    InconsistentTree,
    InvalidParent,
)
from category_tree.core.tree import TreeNode, build_from_bounds, verify_boundaries
from category_tree.infra.logging import get_logger
from category_tree.loaders.base_loader import NODE_COLUMNS
from category_tree.loaders.nested_set_loader import BOUND_COLUMNS
from category_tree.models.category import Category

logger = get_logger(__name__)

# Bulk statements here never touch loaded ORM objects
NO_SYNC = {"synchronize_session": False}


def compute_bounds(rows: Sequence[Any]) -> dict[int, tuple[int, int]]:
    """Number every node by a depth-first walk of the parent graph.

    Args:
        rows: Rows with ``id`` and ``parent_id``, in sibling order

    Returns:
        Mapping of id to (left_bound, right_bound)

    Raises:
        InconsistentTree: A parent reference is dangling, or some nodes are
            unreachable from the roots (parent cycle)
    """
    ids: set[int] = set()
    children: dict[int | None, list[int]] = defaultdict(list)
    for row in rows:
        ids.add(row.id)
        children[row.parent_id].append(row.id)

    for parent_id, child_ids in children.items():
        if parent_id is not None and parent_id not in ids:
            raise InconsistentTree(
                f"Node {child_ids[0]} references missing parent {parent_id}",
                node_id=child_ids[0],
            )

    bounds: dict[int, tuple[int, int]] = {}
    lefts: dict[int, int] = {}
    visited: set[int] = set()
    counter = 1

    for root_id in children[None]:
        visited.add(root_id)
        lefts[root_id] = counter
        counter += 1
        stack = [(root_id, iter(children[root_id]))]

        while stack:
            node_id, pending = stack[-1]
            child_id = next(pending, None)
            if child_id is None:
                stack.pop()
                bounds[node_id] = (lefts[node_id], counter)
                counter += 1
                continue
            if child_id in visited:
                raise InconsistentTree(f"Node {child_id} reached twice", node_id=child_id)
            visited.add(child_id)
            lefts[child_id] = counter
            counter += 1
            stack.append((child_id, iter(children[child_id])))

    if len(visited) != len(ids):
        stranded = min(ids - visited)
        raise InconsistentTree(
            f"{len(ids) - len(visited)} node(s) unreachable from any root; "
            f"node {stranded} is on or below a parent cycle",
            node_id=stranded,
        )

    return bounds


class NestedSetService:
    """Write path and containment queries for the nested set columns.

    One service instance should own each category table: its writer lock
    is what serializes boundary mutations inside the process.
    """

    def __init__(self, table_name: str | None = None) -> None:
        self.table_name = table_name or settings.category_table
        self._lock = asyncio.Lock()
        self._advisory_key = zlib.crc32(self.table_name.encode("utf-8"))

    @asynccontextmanager
    async def _writing(self, session: AsyncSession) -> AsyncIterator[None]:
        """Hold the writer lock and a transaction for one mutation.

        A transaction already open on ``session`` is reused and left for
        the caller to commit.
        """
        async with self._lock:
            if session.in_transaction():
                await self._advisory_lock(session)
                yield
            else:
                async with session.begin():
                    await self._advisory_lock(session)
                    yield

    async def _advisory_lock(self, session: AsyncSession) -> None:
        if session.get_bind().dialect.name == "postgresql":
            await session.execute(select(func.pg_advisory_xact_lock(self._advisory_key)))

    async def _get_bounds(self, session: AsyncSession, node_id: int) -> Any:
        row = (
            await session.execute(
                select(Category.id, Category.parent_id, *BOUND_COLUMNS).where(Category.id == node_id)
            )
        ).first()
        if row is None:
            raise InvalidParent(f"Category {node_id} does not exist", node_id=node_id)
        return row

    # =========================================================================
    # Mutations
    # =========================================================================

    async def insert(
        self,
        session: AsyncSession,
        name: str,
        slug: str,
        parent_id: int | None = None,
    ) -> int:
        """Insert a category as the last child of ``parent_id`` (or last root).

        Every bound at or after the parent's right bound moves up by 2 to
        open a gap; the new node takes ``[old parent right, +1]``.

        Returns:
            Id of the new category

        Raises:
            InvalidParent: ``parent_id`` is given but does not exist
        """
        async with self._writing(session):
            if parent_id is None:
                max_right = await session.scalar(
                    select(func.coalesce(func.max(Category.right_bound), 0))
                )
                left = max_right + 1
            else:
                parent = await self._get_bounds(session, parent_id)
                left = parent.right_bound
                await session.execute(
                    update(Category)
                    .where(Category.right_bound >= left)
                    .values(right_bound=Category.right_bound + 2)
                    .execution_options(**NO_SYNC)
                )
                await session.execute(
                    update(Category)
                    .where(Category.left_bound > left)
                    .values(left_bound=Category.left_bound + 2)
                    .execution_options(**NO_SYNC)
                )

            node_id = await session.scalar(
                insert(Category)
                .values(
                    name=name,
                    slug=slug,
                    parent_id=parent_id,
                    left_bound=left,
                    right_bound=left + 1,
                )
                .returning(Category.id)
            )

        logger.info("Category inserted", node_id=node_id, parent_id=parent_id, left_bound=left)
        return node_id

    async def move(self, session: AsyncSession, node_id: int, new_parent_id: int | None) -> None:
        """Re-parent ``node_id`` together with its whole subtree.

        The subtree is placed among its new siblings in id order. One
        UPDATE rotates the subtree's boundary segment into place and shifts
        the segment it jumps over by the subtree width.

        Raises:
            InvalidParent: Either id does not exist
            CycleDetected: ``new_parent_id`` is the node or one of its descendants
        """
        if new_parent_id == node_id:
            raise CycleDetected(f"Category {node_id} cannot be its own parent", node_id=node_id)

        async with self._writing(session):
            node = await self._get_bounds(session, node_id)
            left, right = node.left_bound, node.right_bound

            parent = None
            if new_parent_id is not None:
                parent = await self._get_bounds(session, new_parent_id)
                if left <= parent.left_bound and parent.right_bound <= right:
                    raise CycleDetected(
                        f"Category {new_parent_id} is a descendant of {node_id}",
                        node_id=node_id,
                    )

            if node.parent_id == new_parent_id:
                logger.debug("Move skipped, parent unchanged", node_id=node_id)
                return

            target = await self._insertion_point(session, node_id, new_parent_id, parent)
            width = right - left + 1

            if target > right:
                subtree_shift = target - 1 - right
                low, high, span_shift = right + 1, target - 1, -width
            else:
                subtree_shift = target - left
                low, high, span_shift = target, left - 1, width

            def shifted(column: Any) -> Any:
                return case(
                    (column.between(left, right), column + subtree_shift),
                    (column.between(low, high), column + span_shift),
                    else_=column,
                )

            first, last = min(left, low), max(right, high)
            await session.execute(
                update(Category)
                .where(
                    or_(
                        Category.left_bound.between(first, last),
                        Category.right_bound.between(first, last),
                    )
                )
                .values(
                    left_bound=shifted(Category.left_bound),
                    right_bound=shifted(Category.right_bound),
                )
                .execution_options(**NO_SYNC)
            )
            await session.execute(
                update(Category)
                .where(Category.id == node_id)
                .values(parent_id=new_parent_id)
                .execution_options(**NO_SYNC)
            )

        logger.info(
            "Category moved",
            node_id=node_id,
            new_parent_id=new_parent_id,
            width=width,
            shift=subtree_shift,
        )

    async def _insertion_point(
        self,
        session: AsyncSession,
        node_id: int,
        new_parent_id: int | None,
        parent: Any,
    ) -> int:
        """Bound value the moved subtree's left bound should land before."""
        if new_parent_id is None:
            siblings = Category.parent_id.is_(None)
        else:
            siblings = Category.parent_id == new_parent_id

        next_left = await session.scalar(
            select(func.min(Category.left_bound)).where(siblings, Category.id > node_id)
        )
        if next_left is not None:
            return next_left
        if parent is not None:
            return parent.right_bound
        return await session.scalar(select(func.max(Category.right_bound))) + 1

    async def delete(self, session: AsyncSession, node_id: int, cascade: bool = False) -> int:
        """Delete a category and close the boundary gap it leaves.

        Args:
            node_id: Category to delete
            cascade: Also delete every descendant

        Returns:
            Number of rows deleted

        Raises:
            InvalidParent: ``node_id`` does not exist
            HasChildren: The node has children and ``cascade`` is false
        """
        async with self._writing(session):
            node = await self._get_bounds(session, node_id)
            left, right = node.left_bound, node.right_bound
            width = right - left + 1

            if width > 2 and not cascade:
                raise HasChildren(
                    f"Category {node_id} has {(width - 2) // 2} descendant(s)",
                    node_id=node_id,
                )

            result = await session.execute(
                delete(Category)
                .where(Category.left_bound.between(left, right))
                .execution_options(**NO_SYNC)
            )
            await session.execute(
                update(Category)
                .where(Category.left_bound > right)
                .values(left_bound=Category.left_bound - width)
                .execution_options(**NO_SYNC)
            )
            await session.execute(
                update(Category)
                .where(Category.right_bound > right)
                .values(right_bound=Category.right_bound - width)
                .execution_options(**NO_SYNC)
            )

        logger.info("Category deleted", node_id=node_id, rows=result.rowcount, gap=width)
        return result.rowcount

    async def reindex(self, session: AsyncSession) -> int:
        """Recompute every node's bounds from ``parent_id``.

        Only rows whose bounds change are written, so a second call with no
        mutations in between writes nothing.

        Returns:
            Number of rows updated

        Raises:
            InconsistentTree: Dangling parent reference or parent cycle
        """
        async with self._writing(session):
            rows = (
                await session.execute(
                    select(Category.id, Category.parent_id, *BOUND_COLUMNS).order_by(Category.id)
                )
            ).all()
            bounds = compute_bounds(rows)

            changes = [
                {"id": row.id, "left_bound": left, "right_bound": right}
                for row in rows
                for left, right in (bounds[row.id],)
                if (row.left_bound, row.right_bound) != (left, right)
            ]
            if changes:
                await session.execute(update(Category), changes)

        logger.info("Nested set reindexed", nodes=len(rows), updated=len(changes))
        return len(changes)

    # =========================================================================
    # Containment queries
    # =========================================================================

    async def descendants(self, session: AsyncSession, node_id: int) -> list[TreeNode]:
        """All descendants of ``node_id`` in pre-order (flat)."""
        node = await self._get_bounds(session, node_id)
        rows = (
            await session.execute(
                select(*NODE_COLUMNS, *BOUND_COLUMNS)
                .where(
                    Category.left_bound > node.left_bound,
                    Category.right_bound < node.right_bound,
                )
                .order_by(Category.left_bound)
            )
        ).all()
        return [TreeNode.from_row(row) for row in rows]

    async def ancestors(self, session: AsyncSession, node_id: int) -> list[TreeNode]:
        """Ancestors of ``node_id`` from the root down to its parent."""
        node = await self._get_bounds(session, node_id)
        rows = (
            await session.execute(
                select(*NODE_COLUMNS, *BOUND_COLUMNS)
                .where(
                    Category.left_bound < node.left_bound,
                    Category.right_bound > node.right_bound,
                )
                .order_by(Category.left_bound)
            )
        ).all()
        return [TreeNode.from_row(row) for row in rows]

    async def check_consistency(self, session: AsyncSession, raise_on_error: bool = False) -> bool:
        """Check that stored bounds agree with the invariant and with ``parent_id``.

        Returns:
            True if consistent; False otherwise (unless ``raise_on_error``)

        Raises:
            InconsistentTree: On the first problem, if ``raise_on_error``
        """
        rows = (
            await session.execute(
                select(*NODE_COLUMNS, *BOUND_COLUMNS).order_by(Category.left_bound, Category.id)
            )
        ).all()

        try:
            tree = build_from_bounds(rows)
            verify_boundaries(tree)
            for tree_node in tree:
                derived_parent = tree_node.path[-2] if tree_node.depth else None
                if derived_parent != tree_node.parent_id:
                    raise InconsistentTree(
                        f"Category {tree_node.id} is nested under {derived_parent} "
                        f"but its parent_id is {tree_node.parent_id}",
                        node_id=tree_node.id,
                    )
        except InconsistentTree as e:
            logger.warning("Nested set inconsistent", error=str(e), node_id=e.node_id)
            if raise_on_error:
                raise
            return False

        return True


# Singleton service for the configured table
_service: NestedSetService | None = None


def get_nested_set_service() -> NestedSetService:
    """Get the singleton service for ``settings.category_table``."""
    global _service
    if _service is None:
        _service = NestedSetService()
    return _service
