"""Language-model provider: sentiment, summarization, decomposition, energy insights."""

from __future__ import annotations

import logging
import math
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from gridmind.analysis import lexicon_score
from gridmind.capabilities.base import Capability, CapabilityProvider
from gridmind.config.constants import OPENAI_PROVIDER
from gridmind.errors import ExecutionError
from gridmind.llm import prompts
from gridmind.llm.client import LanguageModel, complete_json, parse_json_reply

logger = logging.getLogger("gridmind.capabilities.language")

SENTIMENT_LABELS = ("positive", "negative", "neutral")


class SentimentParams(BaseModel):
    text: str = Field(min_length=1)
    detailed: bool = False


class SummaryParams(BaseModel):
    text: str = Field(min_length=1)
    max_length: int = Field(default=200, ge=10)
    format: Literal["paragraph", "bullets"] = "paragraph"


class DecomposeParams(BaseModel):
    task: str = Field(min_length=1)
    max_subtasks: int = Field(default=5, ge=1, le=20)
    assignee: str | None = None


class InsightsParams(BaseModel):
    data: list[Any] = Field(min_length=1, description="Power readings to review")
    include_recommendations: bool = True


def _clamp(value: Any, low: float, high: float, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return max(low, min(high, number))


def fallback_subtasks(task: str, max_subtasks: int, assignee: str | None) -> list[dict[str, Any]]:
    """Split a task into a sequential chain sized by its word count."""
    words = task.split()
    count = min(max_subtasks, max(2, math.ceil(len(words) / 15)))
    return [
        {
            "id": i + 1,
            "name": f"Subtask {i + 1}",
            "description": f"Part {i + 1} of {task}",
            "priority": "medium",
            "estimated_effort": "medium",
            "prerequisites": [i] if i > 0 else [],
            "assignee": assignee,
        }
        for i in range(count)
    ]


def _prerequisites(value: Any) -> list[int]:
    if not isinstance(value, list):
        return []
    return [p for p in value if isinstance(p, int) and not isinstance(p, bool)]


def workflow_shape(subtasks: list[dict[str, Any]]) -> dict[str, bool]:
    """Sequential: every subtask after the first depends on its predecessor.

    Parallel: no subtask has prerequisites.
    """
    return {
        "sequential": all(i == 0 or i in st["prerequisites"] for i, st in enumerate(subtasks)),
        "parallel": all(not st["prerequisites"] for st in subtasks),
    }


class LanguageProvider(CapabilityProvider):
    """Capabilities backed by a hosted language model.

    Unavailable until the model client has credentials.
    """

    def __init__(self, llm: LanguageModel) -> None:
        super().__init__(
            name=OPENAI_PROVIDER,
            description="Hosted language model analysis",
        )
        self.llm = llm
        self.add(Capability(
            name="sentiment_analysis",
            description="Classify the sentiment of a piece of text",
            params_model=SentimentParams,
            handler=self.analyze_sentiment,
            category="text-analysis",
        ))
        self.add(Capability(
            name="text_summarization",
            description="Summarize text as a paragraph or bullet list",
            params_model=SummaryParams,
            handler=self.summarize,
            category="text-analysis",
        ))
        self.add(Capability(
            name="task_decomposition",
            description="Break a complex task into smaller subtasks",
            params_model=DecomposeParams,
            handler=self.decompose,
            category="task-management",
        ))
        self.add(Capability(
            name="energy_insights",
            description="Describe usage patterns and recommendations for power readings",
            params_model=InsightsParams,
            handler=self.energy_insights,
            category="insights",
        ))

    async def is_available(self) -> bool:
        return self.llm.is_configured()

    async def analyze_sentiment(self, params: SentimentParams) -> dict[str, Any]:
        lexicon = lexicon_score(params.text)
        reply = await complete_json(
            self.llm,
            prompts.sentiment_prompt(params.text, params.detailed),
            instructions=prompts.ANALYST_INSTRUCTIONS,
        )
        if not isinstance(reply, dict):
            raise ExecutionError("Sentiment reply was not a JSON object")

        label = str(reply.get("sentiment", "")).lower()
        if label not in SENTIMENT_LABELS:
            logger.debug("Model returned unknown sentiment %r, using lexicon label", label)
            label = lexicon["sentiment"]

        result: dict[str, Any] = {
            "text": params.text,
            "sentiment": label,
            "score": _clamp(reply.get("score"), -1.0, 1.0, lexicon["score"]),
            "confidence": _clamp(reply.get("confidence"), 0.0, 1.0, abs(lexicon["score"])),
            "summary": reply.get("summary", ""),
            "metrics": lexicon,
        }
        if params.detailed:
            result["aspects"] = reply.get("aspects", [])
        return result

    async def summarize(self, params: SummaryParams) -> dict[str, Any]:
        summary = (
            await self.llm.complete(
                prompts.summary_prompt(params.text, params.max_length, params.format),
                instructions=prompts.ANALYST_INSTRUCTIONS,
            )
        ).strip()
        return {
            "original_length": len(params.text),
            "summary": summary,
            "summary_length": len(summary),
            "compression_ratio": round(len(summary) / len(params.text) * 100),
            "format": params.format,
        }

    async def decompose(self, params: DecomposeParams) -> dict[str, Any]:
        reply = await self.llm.complete(
            prompts.decompose_prompt(params.task, params.max_subtasks),
            instructions=prompts.ANALYST_INSTRUCTIONS,
        )
        try:
            parsed = parse_json_reply(reply)
        except ExecutionError:
            parsed = {}

        raw = parsed.get("subtasks") if isinstance(parsed, dict) else None
        if isinstance(raw, list) and raw:
            subtasks = [
                {
                    "id": i + 1,
                    "name": st.get("title") or f"Subtask {i + 1}",
                    "description": st.get("description", ""),
                    "priority": st.get("priority", "medium"),
                    "estimated_effort": st.get("estimated_effort", "medium"),
                    "prerequisites": _prerequisites(st.get("prerequisites")),
                    "assignee": params.assignee,
                }
                for i, st in enumerate(raw[: params.max_subtasks])
                if isinstance(st, dict)
            ]
            source = "model"
        else:
            subtasks = []

        if not subtasks:
            logger.info("Model gave no subtasks; splitting by word count")
            subtasks = fallback_subtasks(params.task, params.max_subtasks, params.assignee)
            source = "fallback"

        return {
            "original_task": params.task,
            "subtask_count": len(subtasks),
            "subtasks": subtasks,
            "workflow": workflow_shape(subtasks),
            "source": source,
        }

    async def energy_insights(self, params: InsightsParams) -> dict[str, Any]:
        reply = await complete_json(
            self.llm,
            prompts.insights_prompt(params.data, params.include_recommendations),
            instructions=prompts.ANALYST_INSTRUCTIONS,
        )
        if not isinstance(reply, dict):
            raise ExecutionError("Insights reply was not a JSON object")
        return {
            "reading_count": len(params.data),
            "insights": list(reply.get("insights") or []),
            "recommendations": (
                list(reply.get("recommendations") or []) if params.include_recommendations else []
            ),
            "metrics": dict(reply.get("metrics") or {}),
            "generated_at": datetime.now(UTC).isoformat(),
        }
