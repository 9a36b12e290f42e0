"""Postgres persistence for dispatch tasks."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from gridmind.tasks.models import CLAIMABLE_STATUSES, Task, TaskStatus, utcnow
from gridmind.tasks.store import sort_due

logger = logging.getLogger("gridmind.tasks.postgres")

_COLUMNS = (
    "id, name, description, capability, provider, parameters, status, priority, "
    "created_by, created_at, updated_at, scheduled_for, started_at, completed_at, "
    "result, error, parent_task_id, metadata, recurrence"
)


class PostgresTaskStore:
    """Task repository backed by a ``gridmind_tasks`` table.

    ``claim()`` is a single ``UPDATE ... WHERE status IN (...) RETURNING``
    statement, so two service instances polling the same database cannot
    both take the same task.
    """

    def __init__(self, db_url: str) -> None:
        self.db_url = db_url
        self._ensure_schema()

    def _connect(self) -> psycopg.Connection:
        return psycopg.connect(self.db_url, row_factory=dict_row)

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS gridmind_tasks (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    capability TEXT NOT NULL,
                    provider TEXT NOT NULL,
                    parameters JSONB NOT NULL DEFAULT '{}'::jsonb,
                    status TEXT NOT NULL,
                    priority TEXT NOT NULL,
                    created_by TEXT NOT NULL DEFAULT '',
                    created_at TIMESTAMPTZ NOT NULL,
                    updated_at TIMESTAMPTZ NOT NULL,
                    scheduled_for TIMESTAMPTZ,
                    started_at TIMESTAMPTZ,
                    completed_at TIMESTAMPTZ,
                    result JSONB,
                    error TEXT,
                    parent_task_id TEXT,
                    metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
                    recurrence TEXT
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS gridmind_tasks_status_idx "
                "ON gridmind_tasks(status, scheduled_for)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS gridmind_tasks_parent_idx "
                "ON gridmind_tasks(parent_task_id)"
            )
            conn.commit()

    @staticmethod
    def _params(task: Task) -> tuple[Any, ...]:
        data = task.model_dump(mode="json")
        return (
            task.id,
            task.name,
            task.description,
            task.capability,
            task.provider,
            Jsonb(data["parameters"]),
            task.status.value,
            task.priority.value,
            task.created_by,
            task.created_at,
            task.updated_at,
            task.scheduled_for,
            task.started_at,
            task.completed_at,
            Jsonb(data["result"]) if task.result is not None else None,
            task.error,
            task.parent_task_id,
            Jsonb(data["metadata"]),
            task.recurrence,
        )

    @staticmethod
    def _row_to_task(row: dict[str, Any]) -> Task:
        return Task.model_validate(
            {
                **row,
                "parameters": row.get("parameters") or {},
                "metadata": row.get("metadata") or {},
            }
        )

    def _select(self, where: str = "", params: tuple[Any, ...] = (), order: str = "") -> list[Task]:
        sql = f"SELECT {_COLUMNS} FROM gridmind_tasks"
        if where:
            sql += f" WHERE {where}"
        if order:
            sql += f" ORDER BY {order}"
        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_task(row) for row in rows]

    # -- CRUD ------------------------------------------------------------------

    def add(self, task: Task) -> Task:
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO gridmind_tasks ({_COLUMNS}) "
                "VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)",
                self._params(task),
            )
            conn.commit()
        return task

    def get(self, task_id: str) -> Task | None:
        tasks = self._select("id = %s", (task_id,))
        return tasks[0] if tasks else None

    def update(self, task: Task) -> Task:
        task.updated_at = utcnow()
        params = self._params(task)
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE gridmind_tasks
                SET name=%s, description=%s, capability=%s, provider=%s,
                    parameters=%s, status=%s, priority=%s, created_by=%s,
                    created_at=%s, updated_at=%s, scheduled_for=%s,
                    started_at=%s, completed_at=%s, result=%s, error=%s,
                    parent_task_id=%s, metadata=%s, recurrence=%s
                WHERE id=%s
                """,
                (*params[1:], task.id),
            )
            conn.commit()
        return task

    def remove(self, task_id: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM gridmind_tasks WHERE id = %s", (task_id,))
            conn.commit()
            return cur.rowcount > 0

    def all(self) -> list[Task]:
        return self._select(order="created_at DESC")

    # -- Query helpers ---------------------------------------------------------

    def query(
        self,
        status: TaskStatus | None = None,
        capability: str | None = None,
        created_by: str | None = None,
    ) -> list[Task]:
        clauses: list[str] = []
        params: list[Any] = []
        if status is not None:
            clauses.append("status = %s")
            params.append(status.value)
        if capability:
            clauses.append("capability = %s")
            params.append(capability)
        if created_by:
            clauses.append("created_by = %s")
            params.append(created_by)
        return self._select(" AND ".join(clauses), tuple(params), order="created_at DESC")

    def find_by_status(self, status: TaskStatus) -> list[Task]:
        return self._select("status = %s", (status.value,))

    def find_due(self, now: datetime | None = None) -> list[Task]:
        now = now or utcnow()
        tasks = self._select(
            "status = %s AND scheduled_for IS NOT NULL AND scheduled_for <= %s",
            (TaskStatus.SCHEDULED.value, now),
        )
        return sort_due(tasks)

    def find_children(self, parent_id: str, status: TaskStatus | None = None) -> list[Task]:
        if status is None:
            return self._select("parent_task_id = %s", (parent_id,), order="created_at ASC")
        return self._select(
            "parent_task_id = %s AND status = %s",
            (parent_id, status.value),
            order="created_at ASC",
        )

    def claim(
        self,
        task_id: str,
        from_statuses: Iterable[TaskStatus] = CLAIMABLE_STATUSES,
        started_at: datetime | None = None,
    ) -> Task | None:
        now = utcnow()
        statuses = [TaskStatus(s).value for s in from_statuses]
        with self._connect() as conn:
            row = conn.execute(
                f"""
                UPDATE gridmind_tasks
                SET status = %s, started_at = %s, updated_at = %s
                WHERE id = %s AND status = ANY(%s)
                RETURNING {_COLUMNS}
                """,
                (TaskStatus.IN_PROGRESS.value, started_at or now, now, task_id, statuses),
            ).fetchone()
            conn.commit()
        if row is None:
            return None
        return self._row_to_task(row)

    def count_by_status(self) -> dict[str, int]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT status, COUNT(*) AS n FROM gridmind_tasks GROUP BY status"
            ).fetchall()
        counts = {row["status"]: int(row["n"]) for row in rows}
        return {status.value: counts.get(status.value, 0) for status in TaskStatus}
