"""Task CRUD rules shared by the HTTP routes and the CLI."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gridmind.config.constants import INHERIT_PARENT_RESULT_KEY, RETRY_OF_KEY
from gridmind.errors import ConflictError, NotFoundError, ValidationError
from gridmind.tasks.models import (
    CLAIMABLE_STATUSES,
    Task,
    TaskCreate,
    TaskStatus,
    TaskUpdate,
    can_transition,
    utcnow,
)
from gridmind.tasks.recurrence import is_valid_recurrence

if TYPE_CHECKING:
    from gridmind.capabilities.registry import CapabilityRegistry
    from gridmind.tasks.store import TaskRepository

logger = logging.getLogger("gridmind.tasks.service")

# Statuses a caller may set directly; in-progress/completed/failed belong to the executor
_EDITABLE_STATUSES = frozenset({TaskStatus.PENDING, TaskStatus.SCHEDULED, TaskStatus.CANCELLED})


class TaskService:
    """Validates and applies task mutations that don't go through the executor."""

    def __init__(self, store: TaskRepository, registry: CapabilityRegistry) -> None:
        self._store = store
        self._registry = registry

    # -- Reads -----------------------------------------------------------------

    def get(self, task_id: str) -> Task:
        task = self._store.get(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found", task_id=task_id)
        return task

    def query(
        self,
        status: TaskStatus | None = None,
        capability: str | None = None,
        created_by: str | None = None,
    ) -> list[Task]:
        return self._store.query(status=status, capability=capability, created_by=created_by)

    def children(self, task_id: str) -> list[Task]:
        self.get(task_id)
        return self._store.find_children(task_id)

    # -- Writes ----------------------------------------------------------------

    def create(self, data: TaskCreate, created_by: str | None = None) -> Task:
        """Validate and persist a new task.

        A ``scheduled_for`` without an explicit status makes the task
        ``scheduled``; otherwise it starts ``pending``.
        """
        self._check_capability(data.provider, data.capability)
        if data.parent_task_id and self._store.get(data.parent_task_id) is None:
            raise ValidationError(
                f"Parent task {data.parent_task_id} not found", parent_task_id=data.parent_task_id
            )
        if not _inherits(data.metadata):
            self._registry.validate_parameters(data.provider, data.capability, data.parameters)
        _check_recurrence(data.recurrence)

        if data.status is None:
            status = TaskStatus.SCHEDULED if data.scheduled_for else TaskStatus.PENDING
        elif data.status in CLAIMABLE_STATUSES:
            status = data.status
        else:
            raise ValidationError(f"New tasks must be pending or scheduled, not {data.status}")
        if status == TaskStatus.SCHEDULED and data.scheduled_for is None:
            raise ValidationError("A scheduled task needs scheduled_for")

        task = Task(
            name=data.name,
            description=data.description,
            capability=data.capability,
            provider=data.provider,
            parameters=data.parameters,
            status=status,
            priority=data.priority,
            created_by=created_by or data.created_by,
            scheduled_for=data.scheduled_for,
            parent_task_id=data.parent_task_id,
            metadata=data.metadata,
            recurrence=data.recurrence,
        )
        self._store.add(task)
        logger.info("Created task %s (%s) for %s/%s", task.id, task.name, task.provider, task.capability)
        return task

    def update(self, task_id: str, patch: TaskUpdate) -> Task:
        """Apply a partial update to a task that has not started yet."""
        task = self.get(task_id)
        if task.status not in CLAIMABLE_STATUSES:
            raise ConflictError(
                f"Task {task_id} is {task.status} and can no longer be edited",
                task_id=task_id,
                status=task.status.value,
            )

        fields = patch.model_dump(exclude_unset=True)
        target = fields.pop("status", None)

        if target == TaskStatus.CANCELLED:
            if fields:
                raise ValidationError("Cancelling a task cannot be combined with other changes")
            return self.cancel(task_id)

        if "recurrence" in fields:
            _check_recurrence(fields["recurrence"])

        for name, value in fields.items():
            setattr(task, name, value)

        if target is not None and target != task.status:
            if target not in _EDITABLE_STATUSES or not can_transition(task.status, target):
                raise ConflictError(
                    f"Cannot move task {task_id} from {task.status} to {target}",
                    task_id=task_id,
                )
            task.status = target
        if task.status == TaskStatus.SCHEDULED and task.scheduled_for is None:
            raise ValidationError("A scheduled task needs scheduled_for")

        if ("parameters" in fields or "metadata" in fields) and not _inherits(task.metadata):
            self._registry.validate_parameters(task.provider, task.capability, task.parameters)

        self._store.update(task)
        logger.info("Updated task %s (%s)", task.id, ", ".join(sorted(patch.model_fields_set)))
        return task

    def cancel(self, task_id: str) -> Task:
        """Cancel a task that has not reached a terminal state.

        An in-progress handler is not interrupted; its outcome is discarded.
        """
        task = self.get(task_id)
        if not can_transition(task.status, TaskStatus.CANCELLED):
            raise ConflictError(
                f"Task {task_id} is already {task.status}", task_id=task_id, status=task.status.value
            )
        task.status = TaskStatus.CANCELLED
        task.completed_at = utcnow()
        self._store.update(task)
        logger.info("Cancelled task %s", task_id)
        return task

    def delete(self, task_id: str) -> None:
        if not self._store.remove(task_id):
            raise NotFoundError(f"Task {task_id} not found", task_id=task_id)
        logger.info("Deleted task %s", task_id)

    def retry(self, task_id: str) -> Task:
        """Clone a failed task into a fresh pending task."""
        original = self.get(task_id)
        if original.status != TaskStatus.FAILED:
            raise ConflictError(
                f"Only failed tasks can be retried; task {task_id} is {original.status}",
                task_id=task_id,
                status=original.status.value,
            )
        clone = Task(
            name=original.name,
            description=original.description,
            capability=original.capability,
            provider=original.provider,
            parameters=original.parameters,
            priority=original.priority,
            created_by=original.created_by,
            parent_task_id=original.parent_task_id,
            metadata={**original.metadata, RETRY_OF_KEY: original.id},
            recurrence=original.recurrence,
        )
        self._store.add(clone)
        logger.info("Task %s retried as %s", original.id, clone.id)
        return clone

    # -- Internal helpers ------------------------------------------------------

    def _check_capability(self, provider: str, capability: str) -> None:
        if provider not in self._registry:
            raise ValidationError(f"Unknown provider '{provider}'", provider=provider)
        if not self._registry.is_capability_supported(provider, capability):
            raise ValidationError(
                f"Provider '{provider}' does not support capability '{capability}'",
                provider=provider,
                capability=capability,
            )


def _inherits(metadata: dict) -> bool:
    return metadata.get(INHERIT_PARENT_RESULT_KEY) is True


def _check_recurrence(recurrence: str | None) -> None:
    if recurrence and not is_valid_recurrence(recurrence):
        raise ValidationError(
            f"Invalid recurrence '{recurrence}': use daily, weekly, monthly, yearly or a cron expression"
        )
