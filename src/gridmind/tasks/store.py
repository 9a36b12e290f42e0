"""JSON file persistence for dispatch tasks."""

from __future__ import annotations

import json
import logging
import threading
from collections import Counter
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from gridmind.config.constants import TASKS_FILE
from gridmind.tasks.models import CLAIMABLE_STATUSES, Task, TaskStatus, utcnow

logger = logging.getLogger("gridmind.tasks.store")


@runtime_checkable
class TaskRepository(Protocol):
    """Storage operations the executor, poller and routes depend on."""

    def add(self, task: Task) -> Task: ...

    def get(self, task_id: str) -> Task | None: ...

    def update(self, task: Task) -> Task: ...

    def remove(self, task_id: str) -> bool: ...

    def all(self) -> list[Task]: ...

    def query(
        self,
        status: TaskStatus | None = None,
        capability: str | None = None,
        created_by: str | None = None,
    ) -> list[Task]: ...

    def find_by_status(self, status: TaskStatus) -> list[Task]: ...

    def find_due(self, now: datetime | None = None) -> list[Task]: ...

    def find_children(self, parent_id: str, status: TaskStatus | None = None) -> list[Task]: ...

    def claim(
        self,
        task_id: str,
        from_statuses: Iterable[TaskStatus] = CLAIMABLE_STATUSES,
        started_at: datetime | None = None,
    ) -> Task | None: ...

    def count_by_status(self) -> dict[str, int]: ...


def sort_due(tasks: list[Task]) -> list[Task]:
    """Order due tasks: highest priority first, then earliest scheduled_for."""
    return sorted(tasks, key=lambda t: (-t.priority.rank, t.scheduled_for or t.created_at))


class TaskStore:
    """Load/save tasks from a JSON file.

    Uses atomic writes (write to .tmp, then replace) to prevent corruption.
    Reads return copies, so callers must go through ``update()`` to persist
    changes. ``claim()`` is a compare-and-set under an in-process lock; it
    does not coordinate separate processes sharing one file (use the
    Postgres store for that).
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or TASKS_FILE
        self._tasks: dict[str, Task] = {}
        self._lock = threading.RLock()
        self.load()

    # -- Persistence -----------------------------------------------------------

    def load(self) -> None:
        """Load tasks from disk. Silently starts empty if file is missing."""
        with self._lock:
            self._tasks.clear()
            if not self._path.exists():
                return
            try:
                data = json.loads(self._path.read_text(encoding="utf-8"))
                for raw in data:
                    task = Task.model_validate(raw)
                    self._tasks[task.id] = task
                logger.debug("Loaded %d tasks from %s", len(self._tasks), self._path)
            except (json.JSONDecodeError, OSError) as exc:
                logger.warning("Failed to load tasks: %s", exc)

    def save(self) -> None:
        """Persist all tasks to disk atomically."""
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            data = [task.model_dump(mode="json") for task in self._tasks.values()]
            tmp.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
            tmp.replace(self._path)

    # -- CRUD ------------------------------------------------------------------

    def add(self, task: Task) -> Task:
        """Add a task and persist."""
        with self._lock:
            self._tasks[task.id] = task.model_copy(deep=True)
            self.save()
        return task

    def get(self, task_id: str) -> Task | None:
        """Retrieve a copy of a task by ID."""
        with self._lock:
            task = self._tasks.get(task_id)
            return task.model_copy(deep=True) if task else None

    def update(self, task: Task) -> Task:
        """Replace an existing task, bump updated_at and persist."""
        task.updated_at = utcnow()
        with self._lock:
            self._tasks[task.id] = task.model_copy(deep=True)
            self.save()
        return task

    def remove(self, task_id: str) -> bool:
        """Remove a task by ID. Returns True if it existed."""
        with self._lock:
            if task_id in self._tasks:
                del self._tasks[task_id]
                self.save()
                return True
        return False

    def all(self) -> list[Task]:
        """Return copies of all tasks."""
        with self._lock:
            return [t.model_copy(deep=True) for t in self._tasks.values()]

    # -- Query helpers ---------------------------------------------------------

    def query(
        self,
        status: TaskStatus | None = None,
        capability: str | None = None,
        created_by: str | None = None,
    ) -> list[Task]:
        """Filter tasks, newest first."""
        tasks = self.all()
        if status is not None:
            tasks = [t for t in tasks if t.status == status]
        if capability:
            tasks = [t for t in tasks if t.capability == capability]
        if created_by:
            tasks = [t for t in tasks if t.created_by == created_by]
        tasks.sort(key=lambda t: t.created_at, reverse=True)
        return tasks

    def find_by_status(self, status: TaskStatus) -> list[Task]:
        """Return all tasks with a given status."""
        return [t for t in self.all() if t.status == status]

    def find_due(self, now: datetime | None = None) -> list[Task]:
        """Return scheduled tasks whose scheduled_for has passed."""
        now = now or utcnow()
        return sort_due([t for t in self.all() if t.is_due(now)])

    def find_children(self, parent_id: str, status: TaskStatus | None = None) -> list[Task]:
        """Return child tasks of *parent_id*, oldest first."""
        children = [t for t in self.all() if t.parent_task_id == parent_id]
        if status is not None:
            children = [t for t in children if t.status == status]
        children.sort(key=lambda t: t.created_at)
        return children

    def claim(
        self,
        task_id: str,
        from_statuses: Iterable[TaskStatus] = CLAIMABLE_STATUSES,
        started_at: datetime | None = None,
    ) -> Task | None:
        """Atomically move a task to in-progress if its status is in *from_statuses*.

        Returns the claimed task, or None when the task is missing or its
        status no longer matches (someone else got there first).
        """
        allowed = set(from_statuses)
        with self._lock:
            current = self._tasks.get(task_id)
            if current is None or current.status not in allowed:
                return None
            now = utcnow()
            current.status = TaskStatus.IN_PROGRESS
            current.started_at = started_at or now
            current.updated_at = now
            self.save()
            return current.model_copy(deep=True)

    def count_by_status(self) -> dict[str, int]:
        """Return task counts keyed by status value."""
        counts = Counter(t.status.value for t in self.all())
        return {status.value: counts.get(status.value, 0) for status in TaskStatus}


def create_store(settings) -> TaskRepository:
    """Build the task repository selected by ``settings.db_url``."""
    if settings.is_postgres:
        from gridmind.tasks.postgres import PostgresTaskStore

        logger.info("Using Postgres task store")
        return PostgresTaskStore(settings.db_url)
    logger.info("Using JSON task store at %s", settings.tasks_path)
    return TaskStore(path=settings.tasks_path)
