"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from gridmind.capabilities import build_default_registry
from gridmind.capabilities.registry import CapabilityRegistry
from gridmind.config.models import ModelConfig, PollerConfig
from gridmind.config.settings import Settings
from gridmind.executor import TaskExecutor
from gridmind.tasks.service import TaskService
from gridmind.tasks.store import TaskStore


class FakeLLM:
    """Stands in for the hosted model: replays canned replies, records prompts."""

    def __init__(self, replies: list | None = None, configured: bool = True) -> None:
        self.replies = list(replies or [])
        self.configured = configured
        self.prompts: list[str] = []

    def is_configured(self) -> bool:
        return self.configured

    async def complete(self, prompt: str, *, instructions: str | None = None) -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise AssertionError("FakeLLM ran out of replies")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings configured for testing (no real API calls, poller off)."""
    return Settings(
        model=ModelConfig(model_id="gpt-4o-mini", api_key="sk-test"),
        poller=PollerConfig(enabled=False),
        tasks_file=str(tmp_path / "tasks.json"),
        db_url="",
    )


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def store(tmp_path: Path) -> TaskStore:
    return TaskStore(path=tmp_path / "tasks.json")


@pytest.fixture
def registry(test_settings: Settings, fake_llm: FakeLLM) -> CapabilityRegistry:
    return build_default_registry(test_settings, llm=fake_llm)


@pytest.fixture
def executor(store: TaskStore, registry: CapabilityRegistry) -> TaskExecutor:
    return TaskExecutor(store, registry)


@pytest.fixture
def service(store: TaskStore, registry: CapabilityRegistry) -> TaskService:
    return TaskService(store, registry)
