"""CLI fixtures: isolate config files and skip logging setup."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console


@pytest.fixture(autouse=True)
def cli_env(tmp_path: Path, test_settings, monkeypatch):
    # Wide console so tables never wrap names
    monkeypatch.setattr("gridmind.cli.main.console", Console(width=200))
    monkeypatch.setattr("gridmind.cli.task_commands.console", Console(width=200))
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("GRIDMIND_OPENAI_API_KEY", raising=False)
    fake_config = tmp_path / "config.json"
    fake_env = tmp_path / ".env"
    with (
        patch("gridmind.config.settings.CONFIG_FILE", fake_config),
        patch("gridmind.config.env_utils.ENV_FILE", fake_env),
        patch("gridmind.config.settings.get_settings", return_value=test_settings),
        patch("gridmind.logging_setup.setup_logging"),
    ):
        yield fake_config, fake_env
