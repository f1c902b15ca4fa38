"""Base Loader - Abstract base class for all tree loading strategies.

A loader fetches category rows through an explicit session and assembles
them into a ``Tree``. Fetch and assembly are timed separately so that
strategies with the same number of round trips can still be compared on
client-side cost.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from sqlalchemy import Subquery, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from category_tree.config import settings
from category_tree.core.errors import CycleDetected, EmptyResult, InconsistentTree
from category_tree.core.tree import LoadStats, Tree
from category_tree.infra.logging import get_logger
from category_tree.models.category import Category

logger = get_logger(__name__)

# Columns every strategy reads
NODE_COLUMNS = (Category.id, Category.name, Category.slug, Category.parent_id)


def table_counts() -> Subquery:
    """One-row subquery with ``total_rows`` and ``dangling_id``.

    ``dangling_id`` is the lowest id whose ``parent_id`` does not resolve,
    or NULL. Loaders join it onto their first query so that rows missing
    from the traversal can be explained without another round trip.
    """
    child = aliased(Category)
    parent = aliased(Category)
    counted = aliased(Category)

    total_rows = select(func.count()).select_from(counted).scalar_subquery()
    dangling_id = (
        select(func.min(child.id))
        .where(
            child.parent_id.is_not(None),
            ~select(parent.id).where(parent.id == child.parent_id).exists(),
        )
        .scalar_subquery()
    )
    return select(
        total_rows.label("total_rows"),
        dangling_id.label("dangling_id"),
    ).subquery("table_counts")


def check_coverage(fetched: int, total_rows: int, dangling_id: int | None, strategy: str) -> None:
    """Raise if the traversal did not reach every row of the table.

    Raises:
        InconsistentTree: Some row references a missing parent
        CycleDetected: Rows are unreachable from any root for another reason
    """
    if dangling_id is not None:
        raise InconsistentTree(
            f"Category {dangling_id} references a missing parent",
            node_id=dangling_id,
        )
    if fetched < total_rows:
        raise CycleDetected(
            f"{total_rows - fetched} of {total_rows} categories are not reachable "
            f"from any root; the parent graph contains a cycle ({strategy})"
        )


class BaseTreeLoader(ABC):
    """Abstract base class for tree loaders.

    Subclasses implement ``fetch_rows`` (all database access) and
    ``assemble`` (pure in-memory linking). Loaders hold no per-call state,
    so one instance can serve concurrent readers.

    Attributes:
        strategy: Registry key of the strategy
        strict: Raise EmptyResult when the table has no roots
    """

    strategy: str = ""

    def __init__(self, strict: bool | None = None) -> None:
        self.strict = settings.tree_strict if strict is None else strict

    async def load_tree(self, session: AsyncSession) -> Tree:
        """Materialize the whole category table as a Tree.

        Args:
            session: Session used for every query of this call

        Returns:
            Tree with ``stats`` describing round trips and timings

        Raises:
            EmptyResult: Table has no roots and the loader is strict
            CycleDetected: The parent graph contains a cycle
        """
        started = time.perf_counter()
        rows, round_trips = await self.fetch_rows(session)
        fetched = time.perf_counter()
        tree = self.assemble(rows)
        assembled = time.perf_counter()

        tree.stats = LoadStats(
            strategy=self.strategy,
            round_trips=round_trips,
            rows=len(rows),
            fetch_seconds=fetched - started,
            assembly_seconds=assembled - fetched,
        )
        logger.info(
            "Tree loaded",
            strategy=self.strategy,
            nodes=len(tree),
            roots=len(tree.roots),
            round_trips=round_trips,
            fetch_ms=round(tree.stats.fetch_seconds * 1000, 3),
            assembly_ms=round(tree.stats.assembly_seconds * 1000, 3),
        )

        if tree.is_empty and self.strict:
            raise EmptyResult(f"No root categories found ({self.strategy})")

        return tree

    @abstractmethod
    async def fetch_rows(self, session: AsyncSession) -> tuple[Sequence[Any], int]:
        """Read the rows needed for assembly.

        Returns:
            (rows, number of round trips issued)
        """
        ...

    @abstractmethod
    def assemble(self, rows: Sequence[Any]) -> Tree:
        """Build a Tree from fetched rows without touching the database."""
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(strict={self.strict})>"
