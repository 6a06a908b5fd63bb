from __future__ import annotations

import math
import re
from typing import Any, Iterable

import pandas as pd

from health_atlas.config import DEFAULT_MISSING_TOKENS

MISSING = "NA"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def strip_quotes(value: str) -> str:
    """Remove one pair of stray double quotes left behind by loose CSV quoting."""
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value


def parse_time_label(label: Any) -> int | None:
    """Parse a leading integer from a time label; ``None`` when there is none."""
    if label is None:
        return None
    if isinstance(label, bool):
        return None
    if isinstance(label, int):
        return label
    match = _LEADING_INT.match(str(label))
    if match is None:
        return None
    return int(match.group(1))


def coerce_number(raw: str) -> int | float | None:
    try:
        number = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or "_" in raw:
        return None
    if number.is_integer() and abs(number) < 2**63:
        return int(number)
    return number


def parse_value(
    raw: Any, missing_tokens: Iterable[str] = DEFAULT_MISSING_TOKENS
) -> int | float | str:
    """Normalize a raw cell to a number, a categorical string, or the missing sentinel."""
    if raw is None:
        return MISSING
    if isinstance(raw, float) and math.isnan(raw):
        return MISSING
    text = str(raw).strip()
    tokens = missing_tokens if isinstance(missing_tokens, (set, frozenset)) else set(missing_tokens)
    if text in tokens:
        return MISSING
    number = coerce_number(text)
    return text if number is None else number


def is_missing(value: Any) -> bool:
    return value is None or value == MISSING


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_column(series: pd.Series, missing_tokens: Iterable[str]) -> pd.Series:
    tokens = frozenset(missing_tokens)
    return series.map(lambda raw: parse_value(raw, tokens)).astype(object)
