"""Capability registry: provider name -> provider object."""

from __future__ import annotations

import logging
from typing import Any

from gridmind.capabilities.base import Capability, CapabilityProvider
from gridmind.errors import NotFoundError

logger = logging.getLogger("gridmind.capabilities.registry")


class CapabilityRegistry:
    """Holds the providers the executor can dispatch to.

    Built once at startup and passed to whoever needs it. Registering a
    provider under an existing name replaces the old one.
    """

    def __init__(self) -> None:
        self._providers: dict[str, CapabilityProvider] = {}

    def register_provider(self, provider: CapabilityProvider) -> None:
        if provider.name in self._providers:
            logger.warning("Replacing already registered provider '%s'", provider.name)
        self._providers[provider.name] = provider
        logger.debug(
            "Registered provider %s (%s)", provider.name, ", ".join(sorted(provider.capabilities))
        )

    def get_provider(self, name: str) -> CapabilityProvider:
        provider = self._providers.get(name)
        if provider is None:
            raise NotFoundError(f"Provider '{name}' not found", provider=name)
        return provider

    def is_capability_supported(self, provider: str, capability: str) -> bool:
        found = self._providers.get(provider)
        return found is not None and found.supports(capability)

    def get_capability(self, provider: str, capability: str) -> Capability:
        return self.get_provider(provider).get(capability)

    def validate_parameters(
        self, provider: str, capability: str, params: dict[str, Any] | None
    ) -> dict[str, Any]:
        """Check *params* against the declared schema; return the normalized bag."""
        parsed = self.get_capability(provider, capability).parse(params)
        return parsed.model_dump(mode="json")

    @property
    def providers(self) -> list[CapabilityProvider]:
        return list(self._providers.values())

    def list_capabilities(self, provider: str | None = None) -> list[dict[str, Any]]:
        """Flat capability descriptors, sorted by provider then name."""
        if provider is not None:
            selected = [self.get_provider(provider)]
        else:
            selected = list(self._providers.values())
        out: list[dict[str, Any]] = []
        for prov in sorted(selected, key=lambda p: p.name):
            for name in sorted(prov.capabilities):
                out.append(prov.capabilities[name].describe(prov.name))
        return out

    async def availability(self) -> dict[str, bool]:
        """Provider name -> is_available()."""
        return {name: await prov.is_available() for name, prov in sorted(self._providers.items())}

    def __contains__(self, name: str) -> bool:
        return name in self._providers

    def __len__(self) -> int:
        return len(self._providers)
