"""FastAPI application factory."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI

from gridmind import __version__
from gridmind.capabilities import build_default_registry
from gridmind.executor import TaskExecutor
from gridmind.poller import TaskPoller
from gridmind.server.errors import register_error_handlers
from gridmind.server.lifespan import lifespan
from gridmind.server.routes.analyze import analyze_router
from gridmind.server.routes.capabilities import capabilities_router
from gridmind.server.routes.health import health_router
from gridmind.server.routes.tasks import tasks_router
from gridmind.tasks.service import TaskService
from gridmind.tasks.store import create_store

if TYPE_CHECKING:
    from gridmind.capabilities.registry import CapabilityRegistry
    from gridmind.config.settings import Settings
    from gridmind.llm.client import LanguageModel
    from gridmind.tasks.store import TaskRepository

logger = logging.getLogger("gridmind.server")


def create_app(
    settings: Settings,
    *,
    store: TaskRepository | None = None,
    registry: CapabilityRegistry | None = None,
    llm: LanguageModel | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    1. Builds (or accepts) the task store and capability registry
    2. Wires executor, poller and task service on top of them
    3. Stores every component on app.state for routes and lifespan
    4. Registers error handlers and routers
    """
    app = FastAPI(
        title="gridmind",
        version=__version__,
        description="Capability dispatch for power-monitoring analysis",
        lifespan=lifespan,
    )

    store = store if store is not None else create_store(settings)
    registry = registry if registry is not None else build_default_registry(settings, llm=llm)
    executor = TaskExecutor(store, registry)

    app.state.settings = settings
    app.state.store = store
    app.state.registry = registry
    app.state.executor = executor
    app.state.poller = TaskPoller(store, executor, settings.poller)
    app.state.task_service = TaskService(store, registry)

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(capabilities_router)
    app.include_router(tasks_router)
    app.include_router(analyze_router)

    logger.debug("App created with providers: %s", ", ".join(p.name for p in registry.providers))
    return app
