"""Pydantic models for configuration sub-sections."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from gridmind.config.constants import (
    DEFAULT_ANOMALY_THRESHOLD,
    DEFAULT_HOST,
    DEFAULT_LLM_TIMEOUT_SECONDS,
    DEFAULT_MODEL_ID,
    DEFAULT_MODEL_PROVIDER,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_PORT,
    DEFAULT_TREND_STABLE_PERCENT,
)


class ModelConfig(BaseModel):
    """Which hosted language model backs the "intelligent" capabilities."""

    provider: str = DEFAULT_MODEL_PROVIDER
    model_id: str = DEFAULT_MODEL_ID
    api_key: str = Field(default="", exclude=True)
    base_url: str = ""  # custom OpenAI-compatible endpoint
    timeout_seconds: float = DEFAULT_LLM_TIMEOUT_SECONDS
    temperature: float = 0.2


class ServerConfig(BaseModel):
    """HTTP server settings."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


class PollerConfig(BaseModel):
    """Scheduled-task poller settings."""

    enabled: bool = True
    interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS
    reconcile_on_start: bool = True  # fail tasks left in-progress by a dead process

    @model_validator(mode="after")
    def validate_interval(self) -> "PollerConfig":
        if self.interval_seconds < 1:
            raise ValueError(f"interval_seconds must be >= 1, got {self.interval_seconds}")
        return self


class AnalysisConfig(BaseModel):
    """Defaults for the in-process statistics handlers."""

    anomaly_threshold: float = DEFAULT_ANOMALY_THRESHOLD
    trend_stable_percent: float = DEFAULT_TREND_STABLE_PERCENT


# Maps config key paths to the env var that carries the secret.
SECRET_FIELD_ENV_MAP: dict[tuple[str, ...], str] = {
    ("model", "api_key"): "OPENAI_API_KEY",
}
