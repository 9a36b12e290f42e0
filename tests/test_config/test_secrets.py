"""Tests for .env reading and writing."""

from __future__ import annotations

from pathlib import Path

from gridmind.config.env_utils import read_env_file, write_env_key


class TestWriteEnvKey:
    def test_creates_new_file(self, tmp_path: Path):
        env_path = tmp_path / ".env"
        write_env_key("FOO", "bar", env_path=env_path)
        assert env_path.read_text(encoding="utf-8").strip() == "FOO=bar"

    def test_appends_new_key(self, tmp_path: Path):
        env_path = tmp_path / ".env"
        env_path.write_text("EXISTING=value\n", encoding="utf-8")
        write_env_key("NEW_KEY", "new_value", env_path=env_path)
        lines = env_path.read_text(encoding="utf-8").strip().splitlines()
        assert lines == ["EXISTING=value", "NEW_KEY=new_value"]

    def test_replaces_existing_key(self, tmp_path: Path):
        env_path = tmp_path / ".env"
        env_path.write_text("OPENAI_API_KEY=old\nOTHER=1\n", encoding="utf-8")
        write_env_key("OPENAI_API_KEY", "new", env_path=env_path)
        assert read_env_file(env_path) == {"OPENAI_API_KEY": "new", "OTHER": "1"}


class TestReadEnvFile:
    def test_missing_file_is_empty(self, tmp_path: Path):
        assert read_env_file(tmp_path / "nope.env") == {}

    def test_strips_comments_and_quotes(self, tmp_path: Path):
        env_path = tmp_path / ".env"
        env_path.write_text(
            "# comment line\n"
            "A='single'\n"
            'B="double"  # trailing\n'
            "not a pair\n"
            "\n",
            encoding="utf-8",
        )
        assert read_env_file(env_path) == {"A": "single", "B": "double"}
