"""Shared fixtures: an in-memory SQLite database per test."""

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from category_tree.infra.database import create_engine_for, create_schema
from category_tree.models.category import Category
from category_tree.services.nested_set_service import NestedSetService

# (id, name, parent_id) - children of 1 are 2, 3, 11 in insertion order
CATALOG: list[tuple[int, str, int | None]] = [
    (1, "Auto Parts", None),
    (2, "Engine Parts", 1),
    (3, "Brakes", 1),
    (4, "Engine Bearings", 2),
    (5, "Pistons", 2),
    (6, "Brake Pads", 3),
    (7, "Tools", None),
    (8, "Wrenches", 7),
    (9, "Torque Wrenches", 8),
    (10, "Accessories", None),
    (11, "Filters", 1),
]

Seeder = Callable[[list[tuple[int, str, int | None]]], Awaitable[None]]


def slugify(name: str) -> str:
    return name.lower().replace(" ", "-")


def balanced_tree(roots: int, branching: int, levels: int) -> list[tuple[int, str, int | None]]:
    """Rows for ``roots`` complete trees with ``levels`` levels, ids in level order."""
    rows: list[tuple[int, str, int | None]] = []
    next_id = 1
    level: list[int | None] = [None]
    for depth in range(levels):
        fanout = roots if depth == 0 else branching
        current: list[int | None] = []
        for parent_id in level:
            for _ in range(fanout):
                rows.append((next_id, f"Node {next_id}", parent_id))
                current.append(next_id)
                next_id += 1
        level = current
    return rows


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = create_engine_for("sqlite+aiosqlite://", poolclass=StaticPool)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def service() -> NestedSetService:
    return NestedSetService(table_name="categories")


@pytest.fixture
def seed(session_factory: async_sessionmaker[AsyncSession]) -> Seeder:
    """Bulk insert rows with explicit ids; bounds stay at the 0 placeholder."""

    async def _seed(rows: list[tuple[int, str, int | None]]) -> None:
        payload: list[dict[str, Any]] = [
            {"id": node_id, "name": name, "slug": slugify(name), "parent_id": parent_id}
            for node_id, name, parent_id in rows
        ]
        async with session_factory() as session:
            await session.execute(insert(Category), payload)
            await session.commit()

    return _seed


@pytest_asyncio.fixture
async def catalog(
    seed: Seeder,
    service: NestedSetService,
    session_factory: async_sessionmaker[AsyncSession],
) -> list[tuple[int, str, int | None]]:
    """The CATALOG rows, seeded and numbered."""
    await seed(CATALOG)
    async with session_factory() as session:
        await service.reindex(session)
    return CATALOG


@pytest.fixture
def catalog_shape() -> tuple:
    """Expected ``Tree.shape()`` of CATALOG (siblings in id order)."""
    return (
        (1, ((2, ((4, ()), (5, ()))), (3, ((6, ()),)), (11, ()))),
        (7, ((8, ((9, ()),)),)),
        (10, ()),
    )


@pytest_asyncio.fixture
async def thousand_nodes(
    seed: Seeder,
    service: NestedSetService,
    session_factory: async_sessionmaker[AsyncSession],
) -> list[tuple[int, str, int | None]]:
    """A balanced forest of exactly 1,000 nodes over four levels, numbered."""
    rows = balanced_tree(roots=25, branching=3, levels=4)
    await seed(rows)
    async with session_factory() as session:
        await service.reindex(session)
    return rows
