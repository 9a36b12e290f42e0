"""Helpers for pulling numeric series out of loosely-shaped reading lists."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any

from gridmind.errors import ValidationError


def to_number(value: Any, *, where: str) -> float:
    """Coerce a reading value to float, rejecting bools, NaN and non-numbers."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{where}: expected a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{where}: expected a number, got {value!r}") from None
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"{where}: value must be finite, got {value!r}")
    return number


def extract_values(data: list[Any], value_field: str) -> list[float]:
    """Return the numeric series from plain numbers or ``{value_field: n}`` records."""
    values: list[float] = []
    for i, item in enumerate(data):
        if isinstance(item, dict):
            if value_field not in item:
                raise ValidationError(f"data[{i}] is missing field '{value_field}'")
            values.append(to_number(item[value_field], where=f"data[{i}].{value_field}"))
        else:
            values.append(to_number(item, where=f"data[{i}]"))
    return values


def time_key(value: Any, *, where: str) -> float:
    """Sortable key for a time field: epoch numbers or ISO-8601 strings."""
    if isinstance(value, datetime):
        return value.timestamp()
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
        except ValueError:
            raise ValidationError(f"{where}: unparseable timestamp {value!r}") from None
    return to_number(value, where=where)
