"""Tests for TaskExecutor: claim, dispatch, outcome recording and fan-out."""

from __future__ import annotations

import asyncio
import calendar
from datetime import UTC, datetime, timedelta

import pytest

from gridmind.capabilities import build_default_registry
from gridmind.capabilities.language import LanguageProvider
from gridmind.errors import ConflictError, ExecutionError, NotFoundError, UnavailableError, ValidationError
from gridmind.executor import TaskExecutor
from gridmind.tasks.models import Task, TaskStatus
from tests.conftest import FakeLLM

SERIES = [10, 10, 10, 10, 100]


def _stats_task(capability: str = "anomaly_detection", **kwargs) -> Task:
    params = kwargs.pop("parameters", {"data": SERIES, "threshold": 1.9})
    return Task(name="scan", capability=capability, provider="statistics", parameters=params, **kwargs)


@pytest.mark.asyncio
async def test_pending_task_completes(store, executor):
    task = store.add(_stats_task())
    done = await executor.execute_task(task.id)

    assert done.status == TaskStatus.COMPLETED
    assert done.started_at is not None
    assert done.completed_at is not None
    assert done.result["anomaly_count"] == 1
    assert store.get(task.id).status == TaskStatus.COMPLETED


@pytest.mark.asyncio
async def test_flat_voltage_readings_complete_without_anomalies(store, executor):
    task = store.add(_stats_task(parameters={"data": [229.7, 229.7, 229.7]}))
    done = await executor.execute_task(task.id)

    assert done.status == TaskStatus.COMPLETED
    assert done.result["anomaly_count"] == 0


@pytest.mark.asyncio
async def test_scheduled_task_can_be_executed(store, executor):
    task = store.add(_stats_task(status=TaskStatus.SCHEDULED, scheduled_for=datetime.now(UTC)))
    done = await executor.execute_task(task.id)
    assert done.status == TaskStatus.COMPLETED


@pytest.mark.asyncio
async def test_missing_task(executor):
    with pytest.raises(NotFoundError):
        await executor.execute_task("000000000000")


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED])
async def test_terminal_task_conflicts(store, executor, status):
    task = store.add(_stats_task(status=status))
    with pytest.raises(ConflictError):
        await executor.execute_task(task.id)
    assert store.get(task.id).status == status


@pytest.mark.asyncio
async def test_in_progress_task_conflicts(store, executor):
    task = store.add(_stats_task(status=TaskStatus.IN_PROGRESS))
    with pytest.raises(ConflictError, match="already being executed"):
        await executor.execute_task(task.id)


@pytest.mark.asyncio
async def test_invalid_parameters_fail_the_task(store, executor):
    task = store.add(_stats_task(parameters={"data": ["lots"]}))
    with pytest.raises(ValidationError):
        await executor.execute_task(task.id)

    failed = store.get(task.id)
    assert failed.status == TaskStatus.FAILED
    assert failed.completed_at is not None
    assert failed.error
    assert failed.result == {"error": failed.error, "retryable": False}


@pytest.mark.asyncio
async def test_unknown_provider_fails_the_task(store, executor):
    task = store.add(Task(name="x", capability="trend_analysis", provider="nope"))
    with pytest.raises(NotFoundError):
        await executor.execute_task(task.id)
    assert store.get(task.id).status == TaskStatus.FAILED


@pytest.mark.asyncio
async def test_unavailable_provider_fails_retryable(store, test_settings):
    registry = build_default_registry(test_settings, llm=FakeLLM(configured=False))
    executor = TaskExecutor(store, registry)
    task = store.add(Task(name="mood", capability="sentiment_analysis", provider="openai",
                          parameters={"text": "hello"}))

    with pytest.raises(UnavailableError):
        await executor.execute_task(task.id)

    failed = store.get(task.id)
    assert failed.status == TaskStatus.FAILED
    assert failed.result["retryable"] is True


@pytest.mark.asyncio
async def test_handler_failure_records_retryable_flag(store, executor, fake_llm):
    fake_llm.replies.append(ExecutionError("upstream 503", retryable=True))
    task = store.add(Task(name="sum", capability="text_summarization", provider="openai",
                          parameters={"text": "long text"}))

    with pytest.raises(ExecutionError):
        await executor.execute_task(task.id)

    failed = store.get(task.id)
    assert failed.error == "upstream 503"
    assert failed.result == {"error": "upstream 503", "retryable": True}


@pytest.mark.asyncio
async def test_never_left_pending_or_in_progress(store, executor):
    ok = store.add(_stats_task())
    bad = store.add(_stats_task(parameters={}))
    for task in (ok, bad):
        try:
            await executor.execute_task(task.id)
        except ValidationError:
            pass
        assert store.get(task.id).status in {TaskStatus.COMPLETED, TaskStatus.FAILED}


@pytest.mark.asyncio
async def test_concurrent_executions_run_once(store, executor):
    task = store.add(_stats_task())
    results = await asyncio.gather(
        executor.execute_task(task.id),
        executor.execute_task(task.id),
        return_exceptions=True,
    )
    completed = [r for r in results if isinstance(r, Task)]
    conflicts = [r for r in results if isinstance(r, ConflictError)]
    assert len(completed) == 1
    assert len(conflicts) == 1


@pytest.mark.asyncio
async def test_cancel_during_run_keeps_cancelled(store, registry):
    gate = asyncio.Event()

    class SlowLLM(FakeLLM):
        async def complete(self, prompt, *, instructions=None):
            await gate.wait()
            return "summary"

    registry.register_provider(LanguageProvider(SlowLLM()))
    executor = TaskExecutor(store, registry)
    task = store.add(Task(name="sum", capability="text_summarization", provider="openai",
                          parameters={"text": "some text"}))

    running = asyncio.create_task(executor.execute_task(task.id))
    await asyncio.sleep(0)
    stored = store.get(task.id)
    assert stored.status == TaskStatus.IN_PROGRESS
    stored.status = TaskStatus.CANCELLED
    store.update(stored)
    gate.set()

    final = await running
    assert final.status == TaskStatus.CANCELLED
    assert store.get(task.id).result is None


class TestFanOut:
    @pytest.mark.asyncio
    async def test_children_inherit_parent_result(self, store, executor):
        parent = store.add(_stats_task())
        children = [
            store.add(Task(name=f"child-{i}", capability="trend_analysis", provider="statistics",
                           parameters={"data": [1, 2, 3]}, parent_task_id=parent.id,
                           metadata={"inheritParentResult": True}))
            for i in range(2)
        ]

        done = await executor.execute_task(parent.id)
        await executor.drain()

        for child in children:
            stored = store.get(child.id)
            assert stored.parameters["parentResult"] == done.result
            assert stored.status == TaskStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_children_without_flag_get_no_parent_result(self, store, executor):
        parent = store.add(_stats_task())
        child = store.add(Task(name="child", capability="trend_analysis", provider="statistics",
                               parameters={"data": [1, 2]}, parent_task_id=parent.id))

        await executor.execute_task(parent.id)
        await executor.drain()
        assert "parentResult" not in store.get(child.id).parameters

    @pytest.mark.asyncio
    async def test_failed_parent_does_not_launch_children(self, store, executor):
        parent = store.add(_stats_task(parameters={}))
        child = store.add(Task(name="child", capability="trend_analysis", provider="statistics",
                               parameters={"data": [1, 2]}, parent_task_id=parent.id))

        with pytest.raises(ValidationError):
            await executor.execute_task(parent.id)
        await executor.drain()
        assert store.get(child.id).status == TaskStatus.PENDING

    @pytest.mark.asyncio
    async def test_failing_child_does_not_affect_parent(self, store, executor):
        parent = store.add(_stats_task())
        child = store.add(Task(name="child", capability="trend_analysis", provider="statistics",
                               parameters={}, parent_task_id=parent.id))

        done = await executor.execute_task(parent.id)
        await executor.drain()
        assert done.status == TaskStatus.COMPLETED
        assert store.get(child.id).status == TaskStatus.FAILED
        assert executor.background_count == 0


class TestRecurrence:
    @pytest.mark.asyncio
    async def test_recurring_task_schedules_next_run(self, store, executor):
        when = datetime.now(UTC) - timedelta(minutes=1)
        task = store.add(_stats_task(status=TaskStatus.SCHEDULED, scheduled_for=when, recurrence="daily"))

        await executor.execute_task(task.id)

        follow_ups = [t for t in store.all() if t.metadata.get("recurrenceOf") == task.id]
        assert len(follow_ups) == 1
        nxt = follow_ups[0]
        assert nxt.status == TaskStatus.SCHEDULED
        assert nxt.scheduled_for == when + timedelta(days=1)
        assert nxt.recurrence == "daily"

    @pytest.mark.asyncio
    async def test_missed_occurrences_are_skipped(self, store, executor):
        when = datetime.now(UTC) - timedelta(days=3, hours=1)
        task = store.add(_stats_task(status=TaskStatus.SCHEDULED, scheduled_for=when, recurrence="daily"))

        await executor.execute_task(task.id)

        nxt = next(t for t in store.all() if t.metadata.get("recurrenceOf") == task.id)
        assert nxt.scheduled_for > datetime.now(UTC)

    @pytest.mark.asyncio
    async def test_monthly_follow_up_keeps_anchor_day(self, store, executor):
        when = datetime.now(UTC) - timedelta(minutes=1)
        task = store.add(_stats_task(
            status=TaskStatus.SCHEDULED,
            scheduled_for=when,
            recurrence="monthly",
            metadata={"recurrenceDay": 31},
        ))

        await executor.execute_task(task.id)

        nxt = next(t for t in store.all() if t.metadata.get("recurrenceOf") == task.id)
        year, month = (when.year + 1, 1) if when.month == 12 else (when.year, when.month + 1)
        assert nxt.scheduled_for.day == calendar.monthrange(year, month)[1]
        assert nxt.metadata["recurrenceDay"] == 31

    @pytest.mark.asyncio
    async def test_first_monthly_run_records_its_day(self, store, executor):
        when = datetime.now(UTC) - timedelta(minutes=1)
        task = store.add(_stats_task(status=TaskStatus.SCHEDULED, scheduled_for=when, recurrence="monthly"))

        await executor.execute_task(task.id)

        nxt = next(t for t in store.all() if t.metadata.get("recurrenceOf") == task.id)
        assert nxt.metadata["recurrenceDay"] == when.day

    @pytest.mark.asyncio
    async def test_failed_recurring_task_is_not_rescheduled(self, store, executor):
        task = store.add(_stats_task(parameters={}, recurrence="weekly"))
        with pytest.raises(ValidationError):
            await executor.execute_task(task.id)
        assert len(store.all()) == 1


@pytest.mark.asyncio
async def test_run_capability_without_task_row(store, executor):
    result = await executor.run_capability("statistics", "trend_analysis", {"data": [1, 2, 3]})
    assert result["direction"] == "increasing"
    assert store.all() == []
