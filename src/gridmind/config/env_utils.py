"""Utilities for reading and writing the ~/.gridmind/.env file."""

from __future__ import annotations

from pathlib import Path

from gridmind.config.constants import ENV_FILE


def write_env_key(env_key: str, value: str, env_path: Path | None = None) -> None:
    """Write or update a key in the .env file.

    Parameters
    ----------
    env_key:
        The environment variable name (e.g. ``OPENAI_API_KEY``).
    value:
        The value to store.
    env_path:
        Override .env location (default: ``~/.gridmind/.env``).
    """
    if env_path is None:
        env_path = ENV_FILE
    env_path.parent.mkdir(parents=True, exist_ok=True)

    lines: list[str] = []
    if env_path.exists():
        lines = env_path.read_text(encoding="utf-8").splitlines()

    prefix = f"{env_key}="
    for i, line in enumerate(lines):
        if line.startswith(prefix):
            lines[i] = f"{prefix}{value}"
            break
    else:
        lines.append(f"{prefix}{value}")

    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def read_env_file(env_path: Path | None = None) -> dict[str, str]:
    """Parse the .env file and return key-value pairs.

    Strips inline comments (``# ...``), surrounding quotes and whitespace.
    """
    if env_path is None:
        env_path = ENV_FILE

    result: dict[str, str] = {}
    if not env_path.exists():
        return result

    try:
        for line in env_path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            if " #" in value:
                value = value[: value.index(" #")]
            result[key.strip()] = value.strip().strip('"').strip("'")
    except OSError:
        pass

    return result
