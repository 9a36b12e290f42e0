"""Capability providers and the registry that routes to them."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gridmind.capabilities.base import Capability, CapabilityProvider
from gridmind.capabilities.language import LanguageProvider
from gridmind.capabilities.registry import CapabilityRegistry
from gridmind.capabilities.statistics import StatisticsProvider
from gridmind.llm.client import AgnoLanguageModel, LanguageModel

if TYPE_CHECKING:
    from gridmind.config.settings import Settings

__all__ = [
    "Capability",
    "CapabilityProvider",
    "CapabilityRegistry",
    "LanguageProvider",
    "StatisticsProvider",
    "build_default_registry",
]


def build_default_registry(settings: Settings, llm: LanguageModel | None = None) -> CapabilityRegistry:
    """Registry with the built-in language and statistics providers."""
    registry = CapabilityRegistry()
    registry.register_provider(LanguageProvider(llm or AgnoLanguageModel(settings.model)))
    registry.register_provider(StatisticsProvider(settings.analysis))
    return registry
