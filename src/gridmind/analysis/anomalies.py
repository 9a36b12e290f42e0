"""Bound-rule anomaly detection.

Two interchangeable rules, each applied to every value independently:

* ``std_dev`` – bounds are mean ± k·σ (population σ); deviation is |z|.
* ``iqr`` – bounds are Q1 − k·IQR and Q3 + k·IQR (linear-interpolated
  quartiles); deviation is the distance past the bound in IQR units.

A value is anomalous only when it lies strictly outside a bound. A value
sitting exactly on a bound is normal.
"""

from __future__ import annotations

import statistics
from typing import Any, Literal

from gridmind.analysis.series import extract_values
from gridmind.config.constants import DEFAULT_ANOMALY_THRESHOLD
from gridmind.errors import ValidationError

AnomalyMethod = Literal["std_dev", "iqr"]
METHODS: tuple[str, ...] = ("std_dev", "iqr")


def std_dev_bounds(values: list[float], k: float) -> dict[str, float]:
    mean = statistics.fmean(values)
    sigma = statistics.pstdev(values)
    return {
        "mean": mean,
        "std_dev": sigma,
        "lower": mean - k * sigma,
        "upper": mean + k * sigma,
    }


def iqr_bounds(values: list[float], k: float) -> dict[str, float]:
    if len(values) < 2:
        q1 = q3 = values[0]
    else:
        q1, _, q3 = statistics.quantiles(values, n=4, method="inclusive")
    iqr = q3 - q1
    return {
        "q1": q1,
        "q3": q3,
        "iqr": iqr,
        "lower": q1 - k * iqr,
        "upper": q3 + k * iqr,
    }


def detect_anomalies(
    data: list[Any],
    *,
    value_field: str = "value",
    time_field: str = "timestamp",
    method: str = "std_dev",
    threshold: float = DEFAULT_ANOMALY_THRESHOLD,
) -> dict[str, Any]:
    """Return the flat list of out-of-bound points plus the bounds used."""
    if method not in METHODS:
        raise ValidationError(f"Unknown anomaly method '{method}'. Valid: {', '.join(METHODS)}")
    if threshold <= 0:
        raise ValidationError(f"threshold must be positive, got {threshold}")
    if not data:
        raise ValidationError("data must contain at least one reading")

    values = extract_values(data, value_field)

    if method == "std_dev":
        stats = std_dev_bounds(values, threshold)
        scale = stats["std_dev"]
    else:
        stats = iqr_bounds(values, threshold)
        scale = stats["iqr"]

    lower, upper = stats["lower"], stats["upper"]
    anomalies: list[dict[str, Any]] = []
    # Mean and quartiles can sit a rounding error off a flat series; nothing deviates from it
    flat = min(values) == max(values)
    for index, value in enumerate([] if flat else values):
        if value > upper:
            kind = "high"
        elif value < lower:
            kind = "low"
        else:
            continue

        if method == "std_dev":
            deviation = abs(value - stats["mean"]) / scale
        else:
            distance = value - upper if kind == "high" else lower - value
            deviation = distance / scale if scale else distance

        point: dict[str, Any] = {
            "index": index,
            "value": value,
            "type": kind,
            "deviation": deviation,
        }
        item = data[index]
        if isinstance(item, dict) and time_field in item:
            point["timestamp"] = item[time_field]
        anomalies.append(point)

    return {
        "method": method,
        "threshold": threshold,
        "count": len(values),
        "anomaly_count": len(anomalies),
        "anomalies": anomalies,
        **stats,
    }
