"""gridmind CLI entry point."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from gridmind import __version__
from gridmind.cli.task_commands import app as tasks_app

app = typer.Typer(
    name="gridmind",
    help="Capability dispatch for power-monitoring analysis.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.add_typer(tasks_app, name="tasks")
console = Console()


@app.callback(invoke_without_command=True)
def main_callback(
    version: bool = typer.Option(False, "--version", "-v", help="Show version"),
    log_level: str = typer.Option(None, "--log-level", "-l", help="Override the configured log level"),
):
    if version:
        console.print(f"gridmind [dim]v{__version__}[/dim]")
        raise typer.Exit()

    from gridmind.config.settings import get_settings
    from gridmind.logging_setup import setup_logging

    setup_logging(log_level or get_settings().log_level)


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (default from config)"),
    port: int = typer.Option(None, "--port", "-p", help="Port (default from config)"),
):
    """Run the HTTP API with the scheduled-task poller."""
    import uvicorn

    from gridmind.config.settings import get_settings
    from gridmind.server.app import create_app

    settings = get_settings()
    if host:
        settings.server.host = host
    if port:
        settings.server.port = port

    _show_status(settings)
    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        access_log=False,
        log_config=None,
    )


@app.command()
def status():
    """Show configuration and task counts."""
    from gridmind.config.settings import get_settings

    _show_status(get_settings(), counts=True)


def _show_status(settings, counts: bool = False) -> None:
    """Print current config summary."""
    store = "postgres" if settings.is_postgres else str(settings.tasks_path)
    llm = "[green]configured[/green]" if settings.llm_configured else "[yellow]no API key[/yellow]"
    poller = (
        f"every {settings.poller.interval_seconds}s" if settings.poller.enabled else "[dim]disabled[/dim]"
    )

    console.print()
    console.print(f"  [bold]Version:[/bold]  {__version__}")
    console.print(f"  [bold]Model:[/bold]    {settings.model.provider} / {settings.model.model_id} ({llm})")
    console.print(f"  [bold]Store:[/bold]    {store}")
    console.print(f"  [bold]Poller:[/bold]   {poller}")
    console.print(f"  [bold]Server:[/bold]   http://{settings.server.host}:{settings.server.port}")

    if counts:
        from gridmind.tasks.store import create_store

        totals = create_store(settings).count_by_status()
        summary = ", ".join(f"{name} {n}" for name, n in totals.items() if n) or "none"
        console.print(f"  [bold]Tasks:[/bold]    {summary}")
    console.print()


@app.command()
def capabilities():
    """List registered providers and their capabilities."""
    from gridmind.capabilities import build_default_registry
    from gridmind.config.settings import get_settings

    registry = build_default_registry(get_settings())
    availability = asyncio.run(registry.availability())

    table = Table(title="Capabilities", show_lines=False)
    table.add_column("Provider", style="bold")
    table.add_column("Capability")
    table.add_column("Category", style="dim")
    table.add_column("Available")
    table.add_column("Description", max_width=50)

    for cap in registry.list_capabilities():
        ok = availability.get(cap["provider"], False)
        table.add_row(
            cap["provider"],
            cap["name"],
            cap["category"],
            "[green]yes[/green]" if ok else "[yellow]no[/yellow]",
            cap["description"],
        )
    console.print(table)


@app.command()
def configure(
    api_key: str = typer.Option(None, "--api-key", help="Store OPENAI_API_KEY in ~/.gridmind/.env"),
    model_id: str = typer.Option(None, "--model", "-m", help="Model ID for language capabilities"),
    interval: int = typer.Option(None, "--interval", help="Poll interval in seconds"),
    db_url: str = typer.Option(None, "--db-url", help="Postgres URL (empty string for the JSON store)"),
):
    """Write settings to ~/.gridmind/config.json and the API key to .env."""
    from gridmind.config.env_utils import write_env_key
    from gridmind.config.settings import Settings

    if api_key:
        write_env_key("OPENAI_API_KEY", api_key)
        console.print("  [green]✓[/green] OPENAI_API_KEY saved")

    if model_id is None and interval is None and db_url is None:
        if not api_key:
            console.print("[yellow]Nothing to change.[/yellow] Pass --api-key, --model, --interval or --db-url.")
        return

    existed = Settings.config_exists()
    settings = Settings()
    if model_id:
        settings.model.model_id = model_id
    if interval is not None:
        if interval < 1:
            console.print("[red]Interval must be at least 1 second.[/red]")
            raise typer.Exit(1)
        settings.poller.interval_seconds = interval
    if db_url is not None:
        settings.db_url = db_url
    settings.save()
    console.print(f"  [green]✓[/green] Config {'updated' if existed else 'created'}")
    _show_status(settings)


@app.command()
def poll(
    pending: bool = typer.Option(False, "--pending", help="Also run every pending task"),
):
    """Run one scan for due scheduled tasks and exit."""
    from gridmind.cli.task_commands import build_runtime

    summary = asyncio.run(_poll(build_runtime(), pending))
    console.print(
        f"  Processed [bold]{summary['processed']}[/bold], "
        f"errors [bold]{summary['errors']}[/bold], skipped {summary['skipped']}"
    )
    if summary["errors"]:
        raise typer.Exit(1)


async def _poll(runtime, pending: bool) -> dict[str, int]:
    _, executor, poller = runtime
    summary = await poller.poll_once()
    if pending:
        extra = await poller.process_pending()
        summary = {key: summary[key] + extra[key] for key in summary}
    await executor.drain()
    return summary


if __name__ == "__main__":
    app()
