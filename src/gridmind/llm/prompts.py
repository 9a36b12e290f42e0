"""Fixed prompt templates for the language-model capabilities."""

from __future__ import annotations

import json
from typing import Any

ANALYST_INSTRUCTIONS = (
    "You are an analyst for a solar and grid power-monitoring dashboard. "
    "Answer precisely. When asked for JSON, reply with a single JSON value and nothing else."
)

SENTIMENT_PROMPT = """\
Classify the sentiment of the text below.

Reply with JSON: {{"sentiment": "positive" | "negative" | "neutral", \
"score": <number from -1 to 1>, "confidence": <number from 0 to 1>, \
"summary": <one sentence>{detail_field}}}

Text:
\"\"\"{text}\"\"\"
"""

SENTIMENT_DETAIL_FIELD = ', "aspects": [{"aspect": <string>, "sentiment": <string>}]'

SUMMARY_PROMPT = """\
Summarize the text below in at most {max_length} characters.
Format: {format_hint}
Reply with the summary only.

Text:
\"\"\"{text}\"\"\"
"""

SUMMARY_FORMAT_HINTS = {
    "paragraph": "a single paragraph",
    "bullets": "a bullet list, one '- ' item per line",
}

DECOMPOSE_PROMPT = """\
Break the following task into at most {max_subtasks} concrete subtasks.

Reply with JSON: {{"subtasks": [{{"title": <string>, "description": <string>, \
"priority": "low" | "medium" | "high", "estimated_effort": "small" | "medium" | "large", \
"prerequisites": [<1-based indices of earlier subtasks>]}}]}}

Task:
\"\"\"{task}\"\"\"
"""

INSIGHTS_PROMPT = """\
Review these power-monitoring readings and describe notable usage patterns.
{recommendation_hint}

Reply with JSON: {{"insights": [<string>], "recommendations": [<string>], \
"metrics": {{<name>: <number>}}}}

Readings (JSON):
{readings}
"""


def sentiment_prompt(text: str, detailed: bool) -> str:
    return SENTIMENT_PROMPT.format(
        text=text, detail_field=SENTIMENT_DETAIL_FIELD if detailed else ""
    )


def summary_prompt(text: str, max_length: int, fmt: str) -> str:
    return SUMMARY_PROMPT.format(
        text=text, max_length=max_length, format_hint=SUMMARY_FORMAT_HINTS[fmt]
    )


def decompose_prompt(task: str, max_subtasks: int) -> str:
    return DECOMPOSE_PROMPT.format(task=task, max_subtasks=max_subtasks)


def insights_prompt(readings: list[Any], include_recommendations: bool) -> str:
    hint = (
        "Include practical recommendations to reduce grid draw or cost."
        if include_recommendations
        else "Leave the recommendations list empty."
    )
    return INSIGHTS_PROMPT.format(
        recommendation_hint=hint, readings=json.dumps(readings, default=str)[:12000]
    )
