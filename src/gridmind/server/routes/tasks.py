"""Task CRUD and execution endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Header, Query, Request, Response
from pydantic import BaseModel

from gridmind.tasks.models import Task, TaskCreate, TaskStatus, TaskUpdate

tasks_router = APIRouter(prefix="/tasks", tags=["Tasks"])


class ProcessSummary(BaseModel):
    processed: int
    errors: int
    skipped: int = 0


def _service(request: Request):
    return request.app.state.task_service


def _executor(request: Request):
    return request.app.state.executor


@tasks_router.get("", response_model=list[Task])
async def list_tasks(
    request: Request,
    status: TaskStatus | None = Query(default=None),
    capability: str | None = Query(default=None),
    created_by: str | None = Query(default=None),
) -> list[Task]:
    return _service(request).query(status=status, capability=capability, created_by=created_by)


@tasks_router.post("", response_model=Task, status_code=201)
async def create_task(
    request: Request,
    body: TaskCreate,
    x_user_id: str | None = Header(default=None),
) -> Task:
    return _service(request).create(body, created_by=x_user_id)


@tasks_router.post("/process-pending", response_model=ProcessSummary)
async def process_pending(request: Request) -> ProcessSummary:
    summary = await request.app.state.poller.process_pending()
    return ProcessSummary(**summary)


@tasks_router.get("/status/{status}", response_model=list[Task])
async def tasks_by_status(request: Request, status: TaskStatus) -> list[Task]:
    return _service(request).query(status=status)


@tasks_router.get("/{task_id}", response_model=Task)
async def get_task(request: Request, task_id: str) -> Task:
    return _service(request).get(task_id)


@tasks_router.patch("/{task_id}", response_model=Task)
async def update_task(request: Request, task_id: str, body: TaskUpdate) -> Task:
    return _service(request).update(task_id, body)


@tasks_router.delete("/{task_id}", status_code=204)
async def delete_task(request: Request, task_id: str) -> Response:
    _service(request).delete(task_id)
    return Response(status_code=204)


@tasks_router.post("/{task_id}/execute", response_model=Task)
async def execute_task(request: Request, task_id: str) -> Task:
    return await _executor(request).execute_task(task_id)


@tasks_router.post("/{task_id}/cancel", response_model=Task)
async def cancel_task(request: Request, task_id: str) -> Task:
    return _service(request).cancel(task_id)


@tasks_router.post("/{task_id}/retry", response_model=Task, status_code=201)
async def retry_task(request: Request, task_id: str) -> Task:
    return _service(request).retry(task_id)


@tasks_router.get("/{task_id}/children", response_model=list[Task])
async def task_children(request: Request, task_id: str) -> list[Task]:
    return _service(request).children(task_id)
