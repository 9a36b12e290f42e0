"""Paths and default values used across the project."""

from pathlib import Path

# Base directory for all gridmind data
GRIDMIND_HOME = Path.home() / ".gridmind"

CONFIG_DIR = GRIDMIND_HOME
CONFIG_FILE = CONFIG_DIR / "config.json"
ENV_FILE = GRIDMIND_HOME / ".env"
TASKS_FILE = GRIDMIND_HOME / "tasks.json"

# Server defaults
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000

# Poller
DEFAULT_POLL_INTERVAL_SECONDS = 30

# Analysis
DEFAULT_ANOMALY_THRESHOLD = 2.0
DEFAULT_TREND_STABLE_PERCENT = 5.0

# Language model
DEFAULT_MODEL_PROVIDER = "openai"
DEFAULT_MODEL_ID = "gpt-4o-mini"
DEFAULT_LLM_TIMEOUT_SECONDS = 60.0

# Provider names registered by build_default_registry()
OPENAI_PROVIDER = "openai"
STATISTICS_PROVIDER = "statistics"

# Metadata / parameter keys used for parent -> child result splicing
INHERIT_PARENT_RESULT_KEY = "inheritParentResult"
PARENT_RESULT_KEY = "parentResult"
RETRY_OF_KEY = "retryOf"
RECURRENCE_OF_KEY = "recurrenceOf"
RECURRENCE_DAY_KEY = "recurrenceDay"
