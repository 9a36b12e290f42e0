"""In-process statistics provider: trend analysis and anomaly detection."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from gridmind.analysis import analyze_trend, detect_anomalies
from gridmind.capabilities.base import Capability, CapabilityProvider
from gridmind.config.constants import STATISTICS_PROVIDER
from gridmind.config.models import AnalysisConfig


class TrendParams(BaseModel):
    data: list[Any] = Field(min_length=1, description="Readings: numbers or objects")
    value_field: str = "value"
    time_field: str = "timestamp"
    window: int | None = Field(default=None, ge=1, description="Moving-average window")


class AnomalyParams(BaseModel):
    data: list[Any] = Field(min_length=1, description="Readings: numbers or objects")
    value_field: str = "value"
    time_field: str = "timestamp"
    method: Literal["std_dev", "iqr"] = "std_dev"
    threshold: float | None = Field(default=None, gt=0, description="Bound multiplier k")


class StatisticsProvider(CapabilityProvider):
    """Closed-form statistics over supplied readings. Always available."""

    def __init__(self, analysis: AnalysisConfig | None = None) -> None:
        super().__init__(
            name=STATISTICS_PROVIDER,
            description="Closed-form statistics over power readings",
        )
        self.analysis = analysis or AnalysisConfig()
        self.add(Capability(
            name="trend_analysis",
            description="Direction, percent change, spread and moving average of a series",
            params_model=TrendParams,
            handler=self._trend,
            category="statistics",
        ))
        self.add(Capability(
            name="anomaly_detection",
            description="Flag readings strictly outside std-dev or IQR bounds",
            params_model=AnomalyParams,
            handler=self._anomalies,
            category="statistics",
        ))

    async def _trend(self, params: TrendParams) -> dict[str, Any]:
        return analyze_trend(
            params.data,
            value_field=params.value_field,
            time_field=params.time_field,
            window=params.window,
            stable_percent=self.analysis.trend_stable_percent,
        )

    async def _anomalies(self, params: AnomalyParams) -> dict[str, Any]:
        threshold = params.threshold
        if threshold is None:
            threshold = self.analysis.anomaly_threshold
        return detect_anomalies(
            params.data,
            value_field=params.value_field,
            time_field=params.time_field,
            method=params.method,
            threshold=threshold,
        )
