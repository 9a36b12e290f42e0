"""Task executor: claim, dispatch, record, fan out."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from gridmind.config.constants import (
    INHERIT_PARENT_RESULT_KEY,
    PARENT_RESULT_KEY,
    RECURRENCE_DAY_KEY,
    RECURRENCE_OF_KEY,
)
from gridmind.errors import (
    ConflictError,
    DispatchError,
    ExecutionError,
    NotFoundError,
    UnavailableError,
)
from gridmind.tasks.models import Task, TaskStatus, utcnow
from gridmind.tasks.recurrence import next_occurrence

if TYPE_CHECKING:
    from gridmind.capabilities.registry import CapabilityRegistry
    from gridmind.tasks.store import TaskRepository

logger = logging.getLogger("gridmind.executor")


class TaskExecutor:
    """Runs tasks through the capability registry and records the outcome.

    A task is claimed atomically (pending/scheduled -> in-progress) before
    its handler runs, so two callers racing on the same id never both
    execute it. Once ``execute_task`` returns or raises, the task is
    completed, failed or cancelled; never left pending or in-progress.
    """

    def __init__(self, store: TaskRepository, registry: CapabilityRegistry) -> None:
        self._store = store
        self._registry = registry
        self._background: set[asyncio.Task] = set()

    @property
    def registry(self) -> CapabilityRegistry:
        return self._registry

    # -- Direct dispatch -------------------------------------------------------

    async def run_capability(
        self, provider_name: str, capability: str, params: dict[str, Any] | None
    ) -> Any:
        """Look up, availability-check and run a capability without a task row."""
        provider = self._registry.get_provider(provider_name)
        provider.get(capability)
        if not await provider.is_available():
            raise UnavailableError(
                f"Provider '{provider_name}' is not available", provider=provider_name
            )
        return await provider.execute(capability, params)

    # -- Task execution --------------------------------------------------------

    async def execute_task(self, task_id: str) -> Task:
        """Execute one task and return its final state.

        Raises the classified ``DispatchError`` when the task cannot be
        claimed or its handler fails (after recording the failure).
        """
        task = self._store.get(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found", task_id=task_id)
        if task.is_terminal:
            raise ConflictError(
                f"Task {task_id} is already {task.status}; retry it to run again",
                task_id=task_id,
                status=task.status.value,
            )

        claimed = self._store.claim(task_id, started_at=utcnow())
        if claimed is None:
            raise ConflictError(
                f"Task {task_id} is already being executed", task_id=task_id
            )
        logger.info(
            "Executing task %s (%s) via %s/%s",
            claimed.id, claimed.name, claimed.provider, claimed.capability,
        )

        try:
            result = await self.run_capability(
                claimed.provider, claimed.capability, claimed.parameters
            )
        except DispatchError as exc:
            self._record_failure(claimed, exc)
            raise
        except asyncio.CancelledError:
            self._record_failure(
                claimed, ExecutionError("Execution was interrupted", retryable=True)
            )
            raise
        except Exception as exc:
            logger.exception("Unexpected error executing task %s", claimed.id)
            error = ExecutionError(str(exc) or type(exc).__name__)
            self._record_failure(claimed, error)
            raise error from exc

        completed = self._record_success(claimed, result)
        if completed.status == TaskStatus.COMPLETED:
            self._schedule_next(completed)
            self._launch_children(completed)
        return completed

    async def drain(self) -> None:
        """Wait for every background child execution, including ones they spawn."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    @property
    def background_count(self) -> int:
        return len(self._background)

    # -- Outcome recording -----------------------------------------------------

    def _current(self, task: Task) -> Task | None:
        """Latest stored copy; None if the task was deleted mid-run."""
        current = self._store.get(task.id)
        if current is None:
            logger.warning("Task %s was deleted while running", task.id)
        return current

    def _record_success(self, task: Task, result: Any) -> Task:
        current = self._current(task)
        if current is None:
            task.status = TaskStatus.COMPLETED
            task.result = result
            return task
        if current.status == TaskStatus.CANCELLED:
            logger.info("Task %s was cancelled while running; discarding result", task.id)
            return current
        current.status = TaskStatus.COMPLETED
        current.completed_at = utcnow()
        current.result = result
        current.error = None
        self._store.update(current)
        logger.info("Task %s completed", task.id)
        return current

    def _record_failure(self, task: Task, exc: DispatchError) -> Task:
        current = self._current(task)
        if current is None:
            task.status = TaskStatus.FAILED
            task.error = exc.message
            return task
        if current.status == TaskStatus.CANCELLED:
            logger.info("Task %s was cancelled while running; discarding error", task.id)
            return current
        current.status = TaskStatus.FAILED
        current.completed_at = utcnow()
        current.error = exc.message
        current.result = {"error": exc.message, "retryable": exc.retryable}
        self._store.update(current)
        logger.error(
            "Task %s failed (%s, retryable=%s): %s",
            task.id, type(exc).__name__, exc.retryable, exc.message,
        )
        return current

    # -- Follow-up work --------------------------------------------------------

    def _schedule_next(self, task: Task) -> Task | None:
        """Create the next scheduled copy of a recurring task."""
        if not task.recurrence:
            return None
        base = task.scheduled_for or task.completed_at or utcnow()
        now = utcnow()
        # Month and year steps keep the first run's day past short months
        anchor_day = task.metadata.get(RECURRENCE_DAY_KEY) or base.day
        nxt = next_occurrence(base, task.recurrence, anchor_day)
        # Skip missed occurrences instead of queueing a backlog
        while nxt is not None and nxt <= now:
            nxt = next_occurrence(nxt, task.recurrence, anchor_day)
        if nxt is None:
            logger.warning("Task %s has unusable recurrence %r", task.id, task.recurrence)
            return None

        follow_up = Task(
            name=task.name,
            description=task.description,
            capability=task.capability,
            provider=task.provider,
            parameters=task.parameters,
            priority=task.priority,
            created_by=task.created_by,
            status=TaskStatus.SCHEDULED,
            scheduled_for=nxt,
            metadata={**task.metadata, RECURRENCE_OF_KEY: task.id, RECURRENCE_DAY_KEY: anchor_day},
            recurrence=task.recurrence,
        )
        self._store.add(follow_up)
        logger.info("Scheduled next %s run of task %s as %s at %s",
                    task.recurrence, task.id, follow_up.id, nxt.isoformat())
        return follow_up

    def _launch_children(self, parent: Task) -> list[str]:
        """Start pending children of *parent* in the background."""
        launched: list[str] = []
        for child in self._store.find_children(parent.id, TaskStatus.PENDING):
            if child.metadata.get(INHERIT_PARENT_RESULT_KEY) is True:
                child.parameters = {**child.parameters, PARENT_RESULT_KEY: parent.result}
                self._store.update(child)
            bg = asyncio.create_task(self._run_child(child.id), name=f"gridmind-child-{child.id}")
            self._background.add(bg)
            bg.add_done_callback(self._background.discard)
            launched.append(child.id)
        if launched:
            logger.info("Launched %d child task(s) of %s", len(launched), parent.id)
        return launched

    async def _run_child(self, task_id: str) -> None:
        try:
            await self.execute_task(task_id)
        except ConflictError:
            logger.debug("Child task %s was picked up elsewhere", task_id)
        except DispatchError as exc:
            # Already recorded on the child task
            logger.warning("Child task %s failed: %s", task_id, exc.message)
