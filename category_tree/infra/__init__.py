"""Infrastructure - Database and logging."""

from category_tree.infra.database import (
    QueryCounter,
    close_db_engine,
    count_queries,
    create_schema,
    get_db_session,
)
from category_tree.infra.logging import get_logger, setup_logging

__all__ = [
    "QueryCounter",
    "close_db_engine",
    "count_queries",
    "create_schema",
    "get_db_session",
    "get_logger",
    "setup_logging",
]
