"""Tests for the keyword lexicon score."""

from gridmind.analysis.sentiment import lexicon_score


def test_positive_text():
    result = lexicon_score("Great output today, I love the excellent solar numbers")
    assert result["positive_hits"] == 3
    assert result["negative_hits"] == 0
    assert result["score"] == 0.6
    assert result["sentiment"] == "positive"


def test_negative_text():
    result = lexicon_score("Terrible, awful grid draw. Worst week.")
    assert result["sentiment"] == "negative"
    assert result["score"] == -0.6


def test_mixed_text_is_neutral():
    result = lexicon_score("good and bad")
    assert result["score"] == 0
    assert result["sentiment"] == "neutral"
    assert result["word_count"] == 3


def test_score_is_clamped():
    result = lexicon_score(" ".join(["great"] * 12))
    assert result["score"] == 1.0
