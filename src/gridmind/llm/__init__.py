"""Language model access."""

from gridmind.llm.client import AgnoLanguageModel, LanguageModel, complete_json, parse_json_reply

__all__ = ["AgnoLanguageModel", "LanguageModel", "complete_json", "parse_json_reply"]
