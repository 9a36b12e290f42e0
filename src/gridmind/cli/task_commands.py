"""CLI commands for task management."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime

import typer
from rich.console import Console
from rich.table import Table

from gridmind.errors import DispatchError

app = typer.Typer(
    name="tasks",
    help="Manage dispatch tasks.",
    no_args_is_help=True,
)
console = Console()

_STATUS_STYLE = {
    "pending": "yellow",
    "scheduled": "cyan",
    "in-progress": "blue",
    "completed": "green",
    "failed": "red",
    "cancelled": "dim",
}


def build_runtime():
    """Store, executor and poller for one-shot CLI use (no server needed)."""
    from gridmind.capabilities import build_default_registry
    from gridmind.config.settings import get_settings
    from gridmind.executor import TaskExecutor
    from gridmind.poller import TaskPoller
    from gridmind.tasks.store import create_store

    settings = get_settings()
    store = create_store(settings)
    executor = TaskExecutor(store, build_default_registry(settings))
    return store, executor, TaskPoller(store, executor, settings.poller)


def _service():
    from gridmind.capabilities import build_default_registry
    from gridmind.config.settings import get_settings
    from gridmind.tasks.service import TaskService
    from gridmind.tasks.store import create_store

    settings = get_settings()
    return TaskService(create_store(settings), build_default_registry(settings))


def _fail(exc: DispatchError) -> None:
    hint = " [dim](retryable)[/dim]" if exc.retryable else ""
    console.print(f"[red]{type(exc).__name__}:[/red] {exc.message}{hint}")
    raise typer.Exit(1)


def _styled(status: str) -> str:
    style = _STATUS_STYLE.get(status, "")
    return f"[{style}]{status}[/{style}]" if style else status


@app.command("list")
def list_tasks(
    status: str = typer.Option(None, "--status", "-s", help="Filter by status"),
    capability: str = typer.Option(None, "--capability", "-c", help="Filter by capability"),
):
    """List tasks, newest first."""
    from gridmind.tasks.models import TaskStatus

    try:
        wanted = TaskStatus(status) if status else None
    except ValueError:
        console.print(f"[red]Unknown status '{status}'.[/red]")
        raise typer.Exit(1)

    tasks = _service().query(status=wanted, capability=capability)
    if not tasks:
        console.print("[dim]No tasks found.[/dim]")
        raise typer.Exit()

    table = Table(title="Tasks", show_lines=False)
    table.add_column("ID", style="dim", max_width=12)
    table.add_column("Name", style="bold", max_width=30)
    table.add_column("Capability")
    table.add_column("Status")
    table.add_column("Priority", style="dim")
    table.add_column("Scheduled", style="dim")

    for task in tasks:
        table.add_row(
            task.id,
            task.name,
            f"{task.provider}/{task.capability}",
            _styled(task.status.value),
            task.priority.value,
            task.scheduled_for.strftime("%Y-%m-%d %H:%M") if task.scheduled_for else "",
        )

    console.print(table)
    console.print(f"\n  [dim]{len(tasks)} tasks total.[/dim]\n")


@app.command("show")
def show_task(task_id: str = typer.Argument(help="Task ID")):
    """Show one task, including its result."""
    try:
        task = _service().get(task_id)
    except DispatchError as exc:
        _fail(exc)

    console.print()
    console.print(f"  [bold]{task.name}[/bold] [dim]({task.id})[/dim]")
    console.print(f"  Capability: {task.provider}/{task.capability}")
    console.print(f"  Status:     {_styled(task.status.value)}  Priority: {task.priority.value}")
    if task.scheduled_for:
        console.print(f"  Scheduled:  {task.scheduled_for.isoformat()}")
    if task.recurrence:
        console.print(f"  Recurs:     {task.recurrence}")
    if task.parent_task_id:
        console.print(f"  Parent:     {task.parent_task_id}")
    if task.error:
        console.print(f"  [red]Error:[/red]      {task.error}")
    if task.result is not None:
        console.print("  Result:")
        console.print_json(json.dumps(task.result, default=str))
    console.print()


@app.command("create")
def create_task(
    name: str = typer.Argument(help="Human-readable task name"),
    capability: str = typer.Argument(help="Capability to run, e.g. anomaly_detection"),
    provider: str = typer.Option("openai", "--provider", "-p", help="Provider name"),
    params: str = typer.Option("{}", "--params", help="Parameters as a JSON object"),
    priority: str = typer.Option("medium", "--priority", help="low, medium, high or critical"),
    at: str = typer.Option(None, "--at", help="Run at this ISO 8601 time instead of now"),
    recurrence: str = typer.Option(None, "--recurrence", "-r", help="daily, weekly, monthly, yearly or cron"),
    parent: str = typer.Option(None, "--parent", help="Parent task ID"),
    inherit: bool = typer.Option(False, "--inherit", help="Receive the parent's result as parentResult"),
):
    """Create a task. It runs on the next poll, or via 'tasks execute'."""
    from gridmind.config.constants import INHERIT_PARENT_RESULT_KEY
    from gridmind.tasks.models import TaskCreate

    try:
        parameters = json.loads(params)
        scheduled_for = datetime.fromisoformat(at) if at else None
    except ValueError as exc:
        console.print(f"[red]Invalid input: {exc}[/red]")
        raise typer.Exit(1)

    try:
        data = TaskCreate(
            name=name,
            capability=capability,
            provider=provider,
            parameters=parameters,
            priority=priority,
            scheduled_for=scheduled_for,
            recurrence=recurrence,
            parent_task_id=parent,
            metadata={INHERIT_PARENT_RESULT_KEY: True} if inherit else {},
            created_by="cli",
        )
        task = _service().create(data)
    except DispatchError as exc:
        _fail(exc)
    except ValueError as exc:
        console.print(f"[red]Invalid input: {exc}[/red]")
        raise typer.Exit(1)

    console.print(f"  [green]✓[/green] Created task [bold]{task.name}[/bold] (ID: {task.id})")
    console.print(f"  [dim]Status: {task.status.value}[/dim]")


@app.command("execute")
def execute_task(task_id: str = typer.Argument(help="Task ID to run now")):
    """Run a pending or scheduled task immediately."""
    store, executor, _ = build_runtime()

    async def _run():
        try:
            return await executor.execute_task(task_id)
        finally:
            await executor.drain()

    try:
        task = asyncio.run(_run())
    except DispatchError as exc:
        _fail(exc)

    console.print(f"  [green]✓[/green] Task [bold]{task.name}[/bold] {_styled(task.status.value)}")
    if task.result is not None:
        console.print_json(json.dumps(task.result, default=str))


@app.command("cancel")
def cancel_task(task_id: str = typer.Argument(help="Task ID to cancel")):
    """Cancel a task that has not finished."""
    try:
        task = _service().cancel(task_id)
    except DispatchError as exc:
        _fail(exc)
    console.print(f"  [green]✓[/green] Cancelled [bold]{task.name}[/bold] (ID: {task_id}).")


@app.command("retry")
def retry_task(task_id: str = typer.Argument(help="Failed task ID")):
    """Clone a failed task into a new pending task."""
    try:
        task = _service().retry(task_id)
    except DispatchError as exc:
        _fail(exc)
    console.print(f"  [green]✓[/green] Retrying as [bold]{task.id}[/bold].")


@app.command("delete")
def delete_task(task_id: str = typer.Argument(help="Task ID to delete")):
    """Delete a task permanently."""
    try:
        _service().delete(task_id)
    except DispatchError as exc:
        _fail(exc)
    console.print(f"  [green]✓[/green] Deleted task [bold]{task_id}[/bold].")
