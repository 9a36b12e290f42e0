"""Capability shortcuts: run a handler directly, without creating a task."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel

from gridmind.capabilities.language import (
    DecomposeParams,
    InsightsParams,
    SentimentParams,
    SummaryParams,
)
from gridmind.capabilities.statistics import AnomalyParams, TrendParams
from gridmind.config.constants import OPENAI_PROVIDER, STATISTICS_PROVIDER

analyze_router = APIRouter(tags=["Analysis"])


async def _run(request: Request, provider: str, capability: str, body: BaseModel) -> Any:
    executor = request.app.state.executor
    return await executor.run_capability(provider, capability, body.model_dump(exclude_unset=True))


@analyze_router.post("/analyze/sentiment")
async def analyze_sentiment(request: Request, body: SentimentParams) -> Any:
    return await _run(request, OPENAI_PROVIDER, "sentiment_analysis", body)


@analyze_router.post("/analyze/summarize")
async def summarize(request: Request, body: SummaryParams) -> Any:
    return await _run(request, OPENAI_PROVIDER, "text_summarization", body)


@analyze_router.post("/analyze/insights")
async def energy_insights(request: Request, body: InsightsParams) -> Any:
    return await _run(request, OPENAI_PROVIDER, "energy_insights", body)


@analyze_router.post("/analyze/anomalies")
async def detect_anomalies(request: Request, body: AnomalyParams) -> Any:
    return await _run(request, STATISTICS_PROVIDER, "anomaly_detection", body)


@analyze_router.post("/analyze/trends")
async def analyze_trends(request: Request, body: TrendParams) -> Any:
    return await _run(request, STATISTICS_PROVIDER, "trend_analysis", body)


@analyze_router.post("/plan/decompose")
async def decompose_task(request: Request, body: DecomposeParams) -> Any:
    return await _run(request, OPENAI_PROVIDER, "task_decomposition", body)
