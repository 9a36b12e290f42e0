"""Application lifespan management."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI

logger = logging.getLogger("gridmind.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown hooks for gridmind."""
    settings = app.state.settings
    poller = app.state.poller

    # --- Startup ---
    logger.info(
        "gridmind server starting: host=%s, port=%d, store=%s",
        settings.server.host,
        settings.server.port,
        "postgres" if settings.is_postgres else "json",
    )

    if not settings.llm_configured:
        logger.warning(
            "No OpenAI API key configured; the openai provider is unavailable. "
            "Set OPENAI_API_KEY in ~/.gridmind/.env."
        )

    if settings.poller.reconcile_on_start:
        fixed = poller.reconcile_interrupted()
        if fixed:
            logger.info("Reconciled %d interrupted task(s)", fixed)

    await poller.start()

    app.state.started_at = datetime.now(UTC)

    yield

    # --- Shutdown ---
    await poller.stop()

    executor = app.state.executor
    if executor.background_count:
        logger.info("Waiting for %d background task(s)...", executor.background_count)
    await executor.drain()

    logger.info("gridmind server shutting down.")
