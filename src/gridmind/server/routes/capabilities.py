"""Capability discovery endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

capabilities_router = APIRouter(prefix="/capabilities", tags=["Capabilities"])


@capabilities_router.get("")
async def list_capabilities(request: Request) -> list[dict[str, Any]]:
    registry = request.app.state.registry
    availability = await registry.availability()
    return [
        {**cap, "available": availability.get(cap["provider"], False)}
        for cap in registry.list_capabilities()
    ]


@capabilities_router.get("/{provider}/{name}")
async def get_capability(request: Request, provider: str, name: str) -> dict[str, Any]:
    registry = request.app.state.registry
    capability = registry.get_capability(provider, name)
    available = await registry.get_provider(provider).is_available()
    return {**capability.describe(provider), "available": available}
