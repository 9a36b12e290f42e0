"""Integration tests for the Postgres task store."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from gridmind.tasks.models import Task, TaskPriority, TaskStatus, utcnow


def _task(**kwargs) -> Task:
    return Task(
        name=kwargs.pop("name", "pg task"),
        capability="trend_analysis",
        provider="statistics",
        parameters={"data": [1, 2, 3]},
        **kwargs,
    )


@pytest.mark.integration
class TestPostgresTaskStore:
    def test_round_trip(self, pg_store):
        task = pg_store.add(_task(metadata={"source": "dashboard"}))
        loaded = pg_store.get(task.id)

        assert loaded is not None
        assert loaded.parameters == {"data": [1, 2, 3]}
        assert loaded.metadata == {"source": "dashboard"}
        assert loaded.status == TaskStatus.PENDING

    def test_update_and_remove(self, pg_store):
        task = pg_store.add(_task())
        task.result = {"direction": "increasing"}
        task.status = TaskStatus.COMPLETED
        pg_store.update(task)

        assert pg_store.get(task.id).result == {"direction": "increasing"}
        assert pg_store.remove(task.id) is True
        assert pg_store.get(task.id) is None

    def test_find_due_orders_by_priority(self, pg_store):
        past = utcnow() - timedelta(minutes=5)
        low = pg_store.add(_task(status=TaskStatus.SCHEDULED, scheduled_for=past,
                                 priority=TaskPriority.LOW))
        high = pg_store.add(_task(status=TaskStatus.SCHEDULED, scheduled_for=past,
                                  priority=TaskPriority.HIGH))
        pg_store.add(_task(status=TaskStatus.SCHEDULED,
                           scheduled_for=utcnow() + timedelta(days=1)))

        due_ids = [t.id for t in pg_store.find_due()]
        assert due_ids.index(high.id) < due_ids.index(low.id)

    def test_claim_is_exclusive(self, pg_store):
        task = pg_store.add(_task())

        async def _claim():
            return await asyncio.to_thread(pg_store.claim, task.id, started_at=utcnow())

        async def _race():
            return await asyncio.gather(_claim(), _claim(), _claim())

        results = asyncio.run(_race())
        winners = [r for r in results if r is not None]
        assert len(winners) == 1
        assert winners[0].status == TaskStatus.IN_PROGRESS

    def test_find_children(self, pg_store):
        parent = pg_store.add(_task(name="parent"))
        child = pg_store.add(_task(name="child", parent_task_id=parent.id))

        assert [t.id for t in pg_store.find_children(parent.id)] == [child.id]
