"""Shared fixtures for integration tests.

These tests need a live Postgres. They are excluded from default pytest
runs via the ``-m 'not integration'`` addopts in pyproject.toml. Run them
explicitly with::

    GRIDMIND_TEST_DB_URL=postgresql://localhost/gridmind_test \\
        pytest tests/integration/ -m integration -v
"""

from __future__ import annotations

import os

import pytest

from gridmind.tasks.postgres import PostgresTaskStore

DB_URL = os.environ.get("GRIDMIND_TEST_DB_URL", "")


@pytest.fixture
def pg_store():
    """A Postgres store; tasks added through ``pg_store.add`` are removed afterwards."""
    if not DB_URL:
        pytest.skip("GRIDMIND_TEST_DB_URL not set")

    store = PostgresTaskStore(DB_URL)
    created: list[str] = []
    original_add = store.add

    def tracking_add(task):
        created.append(task.id)
        return original_add(task)

    store.add = tracking_add
    yield store
    for task_id in created:
        store.remove(task_id)
