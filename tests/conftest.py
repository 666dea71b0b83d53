"""Shared pytest fixtures for relq unit and integration tests."""
from __future__ import annotations

import logging

import pytest

from relq.schema import TableDefinition
from tests.fixtures import blog_tables, load_ddl


@pytest.fixture(scope="session")
def sample_ddl() -> str:
    """The sample PostgreSQL blog schema as a DDL script."""
    return load_ddl("postgres")


@pytest.fixture()
def blog() -> dict[str, TableDefinition]:
    """users <- posts for PostgreSQL."""
    return blog_tables("postgres")


@pytest.fixture(autouse=True)
def _reset_relq_logger():
    """Undo level changes made by configure_logging() between tests."""
    logger = logging.getLogger("relq")
    level = logger.level
    yield
    logger.setLevel(level)
