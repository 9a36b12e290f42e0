"""Central settings — loads from ~/.gridmind/config.json + environment variables."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gridmind.config.constants import CONFIG_FILE, ENV_FILE, TASKS_FILE
from gridmind.config.env_utils import read_env_file
from gridmind.config.models import (
    SECRET_FIELD_ENV_MAP,
    AnalysisConfig,
    ModelConfig,
    PollerConfig,
    ServerConfig,
)


class Settings(BaseSettings):
    """All gridmind configuration in one place.

    Priority (highest → lowest):
      1. Explicit keyword arguments
      2. Environment variables (GRIDMIND_ prefix)
      3. .env file
      4. ~/.gridmind/config.json
      5. Defaults defined here
    """

    model_config = SettingsConfigDict(
        env_prefix="GRIDMIND_",
        env_file=(".env", str(ENV_FILE)),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Sub-configs ---
    model: ModelConfig = Field(default_factory=ModelConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    poller: PollerConfig = Field(default_factory=PollerConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)

    # --- Top-level settings ---
    db_url: str = ""  # empty = JSON task file, postgresql://... = Postgres
    tasks_file: str = str(TASKS_FILE)
    log_level: str = "INFO"

    @model_validator(mode="before")
    @classmethod
    def load_config_file(cls, values: dict) -> dict:
        """Merge config.json values as defaults (env vars still override)."""
        if not isinstance(values, dict):
            return values
        if CONFIG_FILE.exists():
            try:
                file_data = json.loads(CONFIG_FILE.read_text(encoding="utf-8"))
                merged = {**file_data, **{k: v for k, v in values.items() if v is not None}}
                values = merged
            except (json.JSONDecodeError, OSError):
                pass

        cls._apply_env_to_secrets(values)
        cls._apply_env_to_server(values)
        return values

    @classmethod
    def _apply_env_to_secrets(cls, values: dict) -> None:
        """Populate secret fields from environment variables and .env file.

        Both the bare name (``OPENAI_API_KEY``) and the prefixed one
        (``GRIDMIND_OPENAI_API_KEY``) are honoured. Sub-configs passed in as
        model instances are left alone.
        """
        env_file_vals = read_env_file()

        for key_path, env_var in SECRET_FIELD_ENV_MAP.items():
            val = (
                os.environ.get(f"GRIDMIND_{env_var}")
                or os.environ.get(env_var)
                or env_file_vals.get(env_var)
            )
            if not val:
                continue

            node = values
            for part in key_path[:-1]:
                if part not in node:
                    node[part] = {}
                node = node[part]
                if not isinstance(node, dict):
                    break
            else:
                # An explicitly passed secret wins over the environment
                if not node.get(key_path[-1]):
                    node[key_path[-1]] = val

    @classmethod
    def _apply_env_to_server(cls, values: dict) -> None:
        """Map flat GRIDMIND_HOST/PORT env vars into server sub-config."""
        env_map = {
            "GRIDMIND_HOST": "host",
            "GRIDMIND_PORT": "port",
        }

        env_file_vals = read_env_file()

        server = values.get("server", {})
        if not isinstance(server, dict):
            return
        changed = False
        for env_key, field in env_map.items():
            val = os.environ.get(env_key) or env_file_vals.get(env_key)
            if val:
                server[field] = int(val) if field == "port" else val
                changed = True
        if changed:
            values["server"] = server

    @property
    def tasks_path(self) -> Path:
        """Resolved JSON task file path."""
        return Path(self.tasks_file).expanduser()

    @property
    def is_postgres(self) -> bool:
        return self.db_url.startswith(("postgresql", "postgres://"))

    @property
    def llm_configured(self) -> bool:
        return bool(self.model.api_key)

    def save(self) -> None:
        """Persist current settings to config.json (secrets excluded)."""
        CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(mode="json")
        CONFIG_FILE.write_text(json.dumps(data, indent=2), encoding="utf-8")

    @classmethod
    def config_exists(cls) -> bool:
        return CONFIG_FILE.exists()


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance for the CLI entry points."""
    return Settings()
