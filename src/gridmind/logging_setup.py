"""Console logging for the CLI and the server process."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


class _ThirdPartyFilter(logging.Filter):
    """Keep gridmind records; only warnings and up from everything else."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith("gridmind"):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(level: str | int = logging.INFO, console: Console | None = None) -> None:
    """Install a RichHandler on the root logger.

    Call once, early. Repeated calls replace the handler instead of stacking.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        log_time_format="%H:%M:%S",
    )
    handler.setLevel(level)
    handler.addFilter(_ThirdPartyFilter())
    root.addHandler(handler)

    # APScheduler logs every job run at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.captureWarnings(True)
