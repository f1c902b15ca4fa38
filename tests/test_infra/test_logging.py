"""Tests for logging setup."""

import logging

from structlog.testing import capture_logs

from category_tree.infra.logging import get_logger, setup_logging


class TestLogging:
    """Tests for setup_logging and get_logger."""

    def test_setup_quiets_driver_loggers(self):
        setup_logging()

        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        assert logging.getLogger("aiosqlite").level == logging.WARNING

    def test_get_logger_binds_context(self):
        with capture_logs() as logs:
            get_logger(__name__, table="categories").info("Category inserted", node_id=7)

        assert logs == [
            {"event": "Category inserted", "log_level": "info", "table": "categories", "node_id": 7}
        ]
