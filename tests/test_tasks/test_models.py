"""Tests for task models and the status machine."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from gridmind.tasks.models import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    Task,
    TaskCreate,
    TaskPriority,
    TaskStatus,
    can_transition,
)

ALLOWED_EDGES = {
    (TaskStatus.PENDING, TaskStatus.IN_PROGRESS),
    (TaskStatus.SCHEDULED, TaskStatus.IN_PROGRESS),
    (TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED),
    (TaskStatus.IN_PROGRESS, TaskStatus.FAILED),
    (TaskStatus.PENDING, TaskStatus.CANCELLED),
    (TaskStatus.SCHEDULED, TaskStatus.CANCELLED),
    (TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED),
    (TaskStatus.PENDING, TaskStatus.SCHEDULED),
    (TaskStatus.SCHEDULED, TaskStatus.PENDING),
}


@pytest.mark.parametrize("current", list(TaskStatus))
@pytest.mark.parametrize("target", list(TaskStatus))
def test_only_listed_edges_are_allowed(current, target):
    assert can_transition(current, target) == ((current, target) in ALLOWED_EDGES)


def test_terminal_states_have_no_exits():
    for status in TERMINAL_STATUSES:
        assert ALLOWED_TRANSITIONS[status] == frozenset()


def test_status_values():
    assert TaskStatus.IN_PROGRESS.value == "in-progress"
    assert TaskStatus("cancelled") is TaskStatus.CANCELLED


def test_priority_rank_orders_critical_first():
    ranked = sorted(TaskPriority, key=lambda p: p.rank, reverse=True)
    assert ranked[0] is TaskPriority.CRITICAL
    assert ranked[-1] is TaskPriority.LOW


def test_task_defaults():
    task = Task(name="Check grid", capability="trend_analysis", provider="statistics")
    assert len(task.id) == 12
    assert task.status == TaskStatus.PENDING
    assert task.priority == TaskPriority.MEDIUM
    assert task.parameters == {}
    assert task.metadata == {}
    assert task.created_at.tzinfo is not None
    assert task.is_terminal is False


def test_naive_datetimes_become_utc():
    task = Task(
        name="t", capability="c", provider="p", scheduled_for=datetime(2026, 1, 1, 8, 0)
    )
    assert task.scheduled_for.tzinfo is UTC


def test_is_due_only_for_scheduled_tasks():
    past = datetime.now(UTC) - timedelta(minutes=1)
    future = datetime.now(UTC) + timedelta(hours=1)
    due = Task(name="a", capability="c", provider="p", status=TaskStatus.SCHEDULED, scheduled_for=past)
    later = Task(name="b", capability="c", provider="p", status=TaskStatus.SCHEDULED, scheduled_for=future)
    pending = Task(name="c", capability="c", provider="p", scheduled_for=past)

    assert due.is_due() is True
    assert later.is_due() is False
    assert pending.is_due() is False


def test_create_request_defaults_to_openai_provider():
    body = TaskCreate(name="Summarize", capability="text_summarization")
    assert body.provider == "openai"
    assert body.status is None


def test_create_request_rejects_empty_name():
    with pytest.raises(ValueError):
        TaskCreate(name="", capability="text_summarization")
