"""Pydantic models for dispatch tasks."""

from __future__ import annotations

import secrets
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from gridmind.config.constants import OPENAI_PROVIDER


class TaskStatus(StrEnum):
    """Lifecycle states for a task."""

    PENDING = "pending"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TaskPriority(StrEnum):
    """Task priority, lowest first."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TaskPriority.LOW: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.HIGH: 2,
    TaskPriority.CRITICAL: 3,
}

TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED})
CLAIMABLE_STATUSES = frozenset({TaskStatus.PENDING, TaskStatus.SCHEDULED})

# The only status edges a task may follow. pending <-> scheduled covers
# rescheduling work that has not started yet.
ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset(
        {TaskStatus.IN_PROGRESS, TaskStatus.SCHEDULED, TaskStatus.CANCELLED}
    ),
    TaskStatus.SCHEDULED: frozenset(
        {TaskStatus.IN_PROGRESS, TaskStatus.PENDING, TaskStatus.CANCELLED}
    ),
    TaskStatus.IN_PROGRESS: frozenset(
        {TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED}
    ),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
    TaskStatus.CANCELLED: frozenset(),
}


def can_transition(current: TaskStatus, target: TaskStatus) -> bool:
    """Return True if *current* -> *target* is a valid status edge."""
    return target in ALLOWED_TRANSITIONS[current]


def utcnow() -> datetime:
    return datetime.now(UTC)


def _generate_id() -> str:
    return secrets.token_hex(6)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class Task(BaseModel):
    """A persisted unit of work routed to one provider/capability pair."""

    id: str = Field(default_factory=_generate_id)
    name: str
    description: str = ""
    capability: str
    provider: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    created_by: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    scheduled_for: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    result: Any = None
    error: str | None = None
    parent_task_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    recurrence: str | None = None

    @field_validator("created_at", "updated_at", "scheduled_for", "started_at", "completed_at")
    @classmethod
    def _ensure_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_due(self, now: datetime | None = None) -> bool:
        """A scheduled task whose time has come."""
        if self.status != TaskStatus.SCHEDULED or self.scheduled_for is None:
            return False
        return self.scheduled_for <= (now or utcnow())


class TaskCreate(BaseModel):
    """Request body for creating a task."""

    name: str = Field(min_length=1)
    description: str = ""
    capability: str = Field(min_length=1)
    provider: str = OPENAI_PROVIDER
    parameters: dict[str, Any] = Field(default_factory=dict)
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus | None = None
    scheduled_for: datetime | None = None
    parent_task_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    recurrence: str | None = None
    created_by: str = ""

    @field_validator("scheduled_for")
    @classmethod
    def _ensure_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class TaskUpdate(BaseModel):
    """Request body for PATCH /tasks/{id}. Only set fields are applied."""

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    parameters: dict[str, Any] | None = None
    priority: TaskPriority | None = None
    status: TaskStatus | None = None
    scheduled_for: datetime | None = None
    metadata: dict[str, Any] | None = None
    recurrence: str | None = None

    @field_validator("scheduled_for")
    @classmethod
    def _ensure_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)
