"""Hosted language model access for the "intelligent" capabilities.

Calls go through an Agno ``Agent`` wrapping ``OpenAIChat``, the same way the
rest of the stack talks to models. Upstream failures are translated into
``ExecutionError`` with ``retryable`` set for transient conditions (rate
limits, 5xx, timeouts, dropped connections).
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from agno.exceptions import ModelProviderError

from gridmind.errors import ExecutionError

if TYPE_CHECKING:
    from agno.agent import Agent

    from gridmind.config.models import ModelConfig

logger = logging.getLogger("gridmind.llm.client")

TRANSIENT_STATUS_CODES = frozenset({408, 409, 429, 500, 502, 503, 504})

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@runtime_checkable
class LanguageModel(Protocol):
    """Anything that can turn a prompt into a text reply."""

    def is_configured(self) -> bool: ...

    async def complete(self, prompt: str, *, instructions: str | None = None) -> str: ...


def is_transient(exc: BaseException) -> bool:
    """Whether an upstream failure is worth retrying later."""
    if isinstance(exc, (TimeoutError, ConnectionError)):
        return True
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status in TRANSIENT_STATUS_CODES
    name = type(exc).__name__.lower()
    return "ratelimit" in name or "timeout" in name or "connection" in name


class AgnoLanguageModel:
    """OpenAI chat completions via Agno."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config

    @property
    def model_id(self) -> str:
        return self._config.model_id

    def is_configured(self) -> bool:
        return bool(self._config.api_key)

    def _build_agent(self, instructions: str | None) -> Agent:
        from agno.agent import Agent
        from agno.models.openai import OpenAIChat

        model = OpenAIChat(
            id=self._config.model_id,
            api_key=self._config.api_key,
            base_url=self._config.base_url or None,
            timeout=self._config.timeout_seconds,
            temperature=self._config.temperature,
        )
        return Agent(model=model, instructions=instructions, markdown=False)

    async def complete(self, prompt: str, *, instructions: str | None = None) -> str:
        agent = self._build_agent(instructions)
        try:
            response = await agent.arun(prompt)
        except ModelProviderError as exc:
            logger.warning("Model provider error (%s): %s", self._config.model_id, exc)
            raise ExecutionError(
                f"Language model request failed: {exc}", retryable=is_transient(exc)
            ) from exc
        except (TimeoutError, ConnectionError) as exc:
            logger.warning("Model request to %s did not complete: %s", self._config.model_id, exc)
            raise ExecutionError(f"Language model request failed: {exc}", retryable=True) from exc

        content = response.content if response and response.content else ""
        status = getattr(response, "status", None)
        if str(getattr(status, "value", status)).lower() == "error":
            raise ExecutionError(
                f"Language model run failed: {content or 'unknown error'}", retryable=True
            )
        if not content:
            raise ExecutionError("Language model returned an empty reply", retryable=True)
        return str(content)


def parse_json_reply(text: str) -> Any:
    """Parse a model reply that should be JSON, tolerating code fences and chatter."""
    cleaned = _FENCE_RE.sub("", text.strip())
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    # Fall back to the outermost object or array in the reply
    for open_ch, close_ch in (("{", "}"), ("[", "]")):
        start, end = cleaned.find(open_ch), cleaned.rfind(close_ch)
        if start != -1 and end > start:
            try:
                return json.loads(cleaned[start : end + 1])
            except json.JSONDecodeError:
                continue
    raise ExecutionError(f"Language model reply was not valid JSON: {text[:200]!r}")


async def complete_json(
    model: LanguageModel, prompt: str, *, instructions: str | None = None
) -> Any:
    """Run *prompt* and decode the JSON reply."""
    reply = await model.complete(prompt, instructions=instructions)
    return parse_json_reply(reply)
