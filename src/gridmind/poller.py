"""Scheduled-task poller — APScheduler interval job that feeds due tasks to the executor."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from gridmind.config.models import PollerConfig
from gridmind.errors import ConflictError, DispatchError
from gridmind.tasks.models import Task, TaskStatus, utcnow

if TYPE_CHECKING:
    from gridmind.executor import TaskExecutor
    from gridmind.tasks.store import TaskRepository

logger = logging.getLogger("gridmind.poller")

POLL_JOB_ID = "__gridmind_poll__"

INTERRUPTED_MESSAGE = "Interrupted: the process running this task stopped before it finished"


class TaskPoller:
    """Periodically runs scheduled tasks whose time has come.

    The interval job is registered with ``max_instances=1`` and
    ``coalesce=True`` so scans never overlap inside one process. Across
    processes, the executor's atomic claim keeps a task from running twice.
    """

    def __init__(
        self,
        store: TaskRepository,
        executor: TaskExecutor,
        config: PollerConfig | None = None,
    ) -> None:
        self._store = store
        self._executor = executor
        self._config = config or PollerConfig()
        self._scheduler = AsyncIOScheduler()
        self.last_poll: datetime | None = None

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Register the interval job and start the scheduler."""
        if not self._config.enabled:
            logger.info("Poller disabled by configuration")
            return
        self._scheduler.add_job(
            self.poll_once,
            trigger=IntervalTrigger(seconds=self._config.interval_seconds),
            id=POLL_JOB_ID,
            name="Scheduled task poll",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info("Poller started (every %ds)", self._config.interval_seconds)

    async def stop(self) -> None:
        """Gracefully shut down the scheduler."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Poller stopped")

    @property
    def running(self) -> bool:
        return self._scheduler.running

    @property
    def interval_seconds(self) -> int:
        return self._config.interval_seconds

    # -- Scans -----------------------------------------------------------------

    async def poll_once(self, now: datetime | None = None) -> dict[str, int]:
        """Execute every scheduled task with ``scheduled_for <= now``.

        Tasks run one after another, critical priority first. Individual
        failures are logged and counted, never raised.
        """
        now = now or utcnow()
        self.last_poll = now
        due = [t for t in self._store.find_due(now) if not self._waiting_on_parent(t)]
        summary = await self._run_all(due)
        if due:
            logger.info(
                "Poll: %d due, %d processed, %d errors, %d skipped",
                len(due), summary["processed"], summary["errors"], summary["skipped"],
            )
        else:
            logger.debug("Poll: nothing due")
        return summary

    async def process_pending(self) -> dict[str, int]:
        """Run every pending task once, highest priority and oldest first."""
        pending = sorted(
            self._store.find_by_status(TaskStatus.PENDING),
            key=lambda t: (-t.priority.rank, t.created_at),
        )
        ready = [t for t in pending if not self._waiting_on_parent(t)]
        summary = await self._run_all(ready)
        logger.info(
            "Processed pending tasks: %d processed, %d errors", summary["processed"], summary["errors"]
        )
        return summary

    def reconcile_interrupted(self) -> int:
        """Fail tasks a previous process left in-progress. Returns how many were fixed."""
        stuck = self._store.find_by_status(TaskStatus.IN_PROGRESS)
        for task in stuck:
            task.status = TaskStatus.FAILED
            task.completed_at = utcnow()
            task.error = INTERRUPTED_MESSAGE
            task.result = {"error": INTERRUPTED_MESSAGE, "retryable": True}
            self._store.update(task)
            logger.warning("Marked interrupted task %s (%s) as failed", task.id, task.name)
        return len(stuck)

    # -- Internal helpers ------------------------------------------------------

    def _waiting_on_parent(self, task: Task) -> bool:
        """Children only run once their parent has completed."""
        if not task.parent_task_id:
            return False
        parent = self._store.get(task.parent_task_id)
        return parent is not None and parent.status != TaskStatus.COMPLETED

    async def _run_all(self, tasks: list[Task]) -> dict[str, int]:
        processed = errors = skipped = 0
        for task in tasks:
            try:
                await self._executor.execute_task(task.id)
                processed += 1
            except ConflictError:
                # Claimed by another worker, or already finished
                skipped += 1
            except DispatchError as exc:
                errors += 1
                logger.warning("Task %s failed during poll: %s", task.id, exc.message)
            except Exception:
                errors += 1
                logger.exception("Unexpected error running task %s", task.id)
        return {"processed": processed, "errors": errors, "skipped": skipped}
