"""Keyword lexicon sentiment score, reported next to the model's judgement."""

from __future__ import annotations

import re
from typing import Any

POSITIVE_WORDS = frozenset(
    {"good", "great", "excellent", "amazing", "wonderful", "happy", "positive", "love", "like", "enjoy"}
)
NEGATIVE_WORDS = frozenset(
    {"bad", "terrible", "awful", "horrible", "sad", "negative", "hate", "dislike", "poor", "worst"}
)

_WORD_RE = re.compile(r"\w+")


def lexicon_score(text: str) -> dict[str, Any]:
    """Count lexicon hits and squash the net score into [-1, 1]."""
    words = _WORD_RE.findall(text.lower())
    positive = sum(1 for w in words if w in POSITIVE_WORDS)
    negative = sum(1 for w in words if w in NEGATIVE_WORDS)
    score = max(-1.0, min(1.0, (positive - negative) / 5))

    if score > 0.3:
        label = "positive"
    elif score < -0.3:
        label = "negative"
    else:
        label = "neutral"

    return {
        "sentiment": label,
        "score": score,
        "positive_hits": positive,
        "negative_hits": negative,
        "word_count": len(words),
    }
