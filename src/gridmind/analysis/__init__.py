"""Closed-form analysis routines used by the statistics and language providers."""

from gridmind.analysis.anomalies import detect_anomalies
from gridmind.analysis.sentiment import lexicon_score
from gridmind.analysis.trends import analyze_trend

__all__ = ["analyze_trend", "detect_anomalies", "lexicon_score"]
