"""Trend analysis over a time-ordered series of readings."""

from __future__ import annotations

import statistics
from typing import Any

from gridmind.analysis.series import extract_values, time_key
from gridmind.config.constants import DEFAULT_TREND_STABLE_PERCENT
from gridmind.errors import ValidationError


def percent_change(first: float, last: float) -> float:
    """Percent change from *first* to *last*.

    A zero baseline has no meaningful ratio, so 0 -> 0 is 0% and 0 -> x is
    reported as ±100% by the sign of x.
    """
    if first == 0:
        if last == 0:
            return 0.0
        return 100.0 if last > 0 else -100.0
    return (last - first) / abs(first) * 100.0


def classify_direction(change: float, stable_percent: float = DEFAULT_TREND_STABLE_PERCENT) -> str:
    if change > stable_percent:
        return "increasing"
    if change < -stable_percent:
        return "decreasing"
    return "stable"


def moving_average(values: list[float], window: int) -> list[float]:
    """Simple moving average; one output per full window."""
    if window < 1:
        raise ValidationError(f"window must be >= 1, got {window}")
    if window > len(values):
        raise ValidationError(f"window ({window}) is larger than the series ({len(values)})")
    total = sum(values[:window])
    out = [total / window]
    for i in range(window, len(values)):
        total += values[i] - values[i - window]
        out.append(total / window)
    return out


def analyze_trend(
    data: list[Any],
    *,
    value_field: str = "value",
    time_field: str = "timestamp",
    window: int | None = None,
    stable_percent: float = DEFAULT_TREND_STABLE_PERCENT,
) -> dict[str, Any]:
    """Summarize how a series moves from its first to its last reading.

    Records are sorted by *time_field* when they are mappings that carry it;
    bare numbers keep their list order.
    """
    if not data:
        raise ValidationError("data must contain at least one reading")

    if all(isinstance(item, dict) and time_field in item for item in data):
        ordered = sorted(
            data, key=lambda item: time_key(item[time_field], where=f"data.{time_field}")
        )
    else:
        ordered = list(data)

    values = extract_values(ordered, value_field)
    first, last = values[0], values[-1]
    change = percent_change(first, last)
    mean = statistics.fmean(values)
    variance = statistics.pvariance(values)
    std_dev = variance ** 0.5

    result: dict[str, Any] = {
        "count": len(values),
        "first_value": first,
        "last_value": last,
        "change": last - first,
        "change_percent": change,
        "direction": classify_direction(change, stable_percent),
        "mean": mean,
        "min": min(values),
        "max": max(values),
        "range": max(values) - min(values),
        "variance": variance,
        "std_dev": std_dev,
        "coefficient_of_variation": std_dev / abs(mean) if mean else 0.0,
        "window": window,
        "moving_average": moving_average(values, window) if window is not None else None,
    }
    if isinstance(ordered[0], dict) and time_field in ordered[0]:
        result["start"] = ordered[0][time_field]
        result["end"] = ordered[-1][time_field]
    return result
