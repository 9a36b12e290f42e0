"""Capability and provider base types."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from gridmind.errors import DispatchError, ExecutionError, NotFoundError, ValidationError

logger = logging.getLogger("gridmind.capabilities")

Handler = Callable[[Any], Awaitable[Any]]


@dataclass
class Capability:
    """A named operation a provider can run, with its declared parameter schema."""

    name: str
    description: str
    params_model: type[BaseModel]
    handler: Handler
    category: str = "analysis"

    def parse(self, params: dict[str, Any] | None) -> BaseModel:
        """Validate a raw parameter bag against the declared schema."""
        try:
            return self.params_model.model_validate(params or {})
        except PydanticValidationError as exc:
            problems = [
                f"{'.'.join(str(p) for p in err['loc']) or 'parameters'}: {err['msg']}"
                for err in exc.errors()
            ]
            raise ValidationError(
                f"Invalid parameters for '{self.name}': {'; '.join(problems)}",
                capability=self.name,
                problems=problems,
            ) from exc

    def schema(self) -> dict[str, Any]:
        return self.params_model.model_json_schema()

    def describe(self, provider: str) -> dict[str, Any]:
        return {
            "provider": provider,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "parameters": self.schema(),
        }


@dataclass
class CapabilityProvider:
    """Groups capabilities behind one availability check.

    Subclasses register their capabilities in ``__init__`` and override
    ``is_available()`` when they depend on external configuration.
    """

    name: str
    description: str = ""
    capabilities: dict[str, Capability] = field(default_factory=dict)

    def add(self, capability: Capability) -> None:
        self.capabilities[capability.name] = capability

    def supports(self, capability: str) -> bool:
        return capability in self.capabilities

    def get(self, capability: str) -> Capability:
        cap = self.capabilities.get(capability)
        if cap is None:
            raise NotFoundError(
                f"Capability '{capability}' not supported by provider '{self.name}'",
                provider=self.name,
                capability=capability,
            )
        return cap

    async def is_available(self) -> bool:
        return True

    async def execute(self, capability: str, params: dict[str, Any] | None) -> Any:
        """Validate *params* and run the capability's handler.

        Dispatch errors raised by the handler pass through unchanged; anything
        else is wrapped in ``ExecutionError``.
        """
        cap = self.get(capability)
        parsed = cap.parse(params)
        try:
            return await cap.handler(parsed)
        except DispatchError:
            raise
        except Exception as exc:
            logger.exception("Handler %s/%s raised", self.name, capability)
            raise ExecutionError(f"{capability} failed: {exc}") from exc
