from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Callable, Mapping

import numpy as np

from health_atlas.lookup import DatasetLookup, RegionRecord
from health_atlas.preprocess.values import is_number

RegionFilter = Callable[[str], bool]


@dataclass(frozen=True)
class VariableSummary:
    n: int
    missing: int
    min: float
    max: float
    mean: float
    median: float
    q1: float
    q3: float
    iqr: float
    lower_fence: float
    upper_fence: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _as_float(value: Any) -> float | None:
    if is_number(value) and math.isfinite(value):
        return float(value)
    return None


def value_at_time(
    region_data: Mapping[str, Any] | None,
    code: str,
    time_offset: int,
    range_start: int,
) -> float | None:
    """Numeric value of ``code`` at ``time_offset``; ``None`` for anything else.

    A scalar is read as a one-element series starting at ``range_start``.
    """
    if not region_data:
        return None
    raw = region_data.get(code)
    if raw is None:
        return None
    series = raw if isinstance(raw, list) else [raw]
    idx = time_offset - range_start
    if idx < 0 or idx >= len(series):
        return None
    return _as_float(series[idx])


def all_values(region_data: Mapping[str, Any] | None, code: str) -> list[float | None]:
    if not region_data:
        return []
    raw = region_data.get(code)
    if raw is None:
        return []
    series = raw if isinstance(raw, list) else [raw]
    return [_as_float(value) for value in series]


def quantile(sorted_values: np.ndarray, p: float) -> float:
    """Linear-interpolation quantile of an ascending array (index ``(n-1)*p``)."""
    if sorted_values.size == 0:
        return 0.0
    return float(np.quantile(sorted_values, p, method="linear"))


def _iter_regions(
    dataset: DatasetLookup, region_filter: RegionFilter | None
) -> list[tuple[str, RegionRecord]]:
    return [
        (region_id, record)
        for region_id, record in dataset.regions.items()
        if region_filter is None or region_filter(region_id)
    ]


def summarize(
    dataset: DatasetLookup,
    variable_name: str,
    time_offset: int,
    region_filter: RegionFilter | None = None,
) -> VariableSummary | None:
    """Cross-region summary of one variable at one offset, or ``None`` without data."""
    descriptor = dataset.variable(variable_name)
    if descriptor is None or not descriptor.has_data:
        return None
    range_start, range_end = descriptor.time_range
    if time_offset < range_start or time_offset > range_end:
        return None

    collected: list[float] = []
    missing = 0
    for _, record in _iter_regions(dataset, region_filter):
        value = value_at_time(record, descriptor.code, time_offset, range_start)
        if value is None:
            missing += 1
        else:
            collected.append(value)
    if not collected:
        return None

    values = np.sort(np.asarray(collected, dtype=float))
    n = int(values.size)
    mid = n // 2
    median = float((values[mid - 1] + values[mid]) / 2) if n % 2 == 0 else float(values[mid])
    q1 = quantile(values, 0.25)
    q3 = quantile(values, 0.75)
    iqr = q3 - q1
    lowest = float(values[0])
    highest = float(values[-1])
    return VariableSummary(
        n=n,
        missing=missing,
        min=lowest,
        max=highest,
        mean=float(np.mean(values)),
        median=median,
        q1=q1,
        q3=q3,
        iqr=iqr,
        lower_fence=max(lowest, q1 - 1.5 * iqr),
        upper_fence=min(highest, q3 + 1.5 * iqr),
    )


def region_values(
    dataset: DatasetLookup,
    variable_name: str,
    time_offset: int,
    region_filter: RegionFilter | None = None,
) -> dict[str, float]:
    """Region -> value for every region observed at ``time_offset``.

    Regions missing from the result must be drawn with the no-data color.
    """
    descriptor = dataset.variable(variable_name)
    if descriptor is None or not descriptor.has_data:
        return {}
    range_start = descriptor.time_range[0]
    result: dict[str, float] = {}
    for region_id, record in _iter_regions(dataset, region_filter):
        value = value_at_time(record, descriptor.code, time_offset, range_start)
        if value is not None:
            result[region_id] = value
    return result


def time_offset(dataset: DatasetLookup, year: int) -> int | None:
    return dataset.time.offset(year)


def region_series(
    dataset: DatasetLookup, region_id: str, variable_name: str
) -> list[tuple[int, float | None]]:
    """Year-labelled series of one region for plotting; empty without data."""
    descriptor = dataset.variable(variable_name)
    if descriptor is None or not descriptor.has_data:
        return []
    values = all_values(dataset.region(region_id), descriptor.code)
    start = descriptor.time_range[0]
    series: list[tuple[int, float | None]] = []
    for idx, value in enumerate(values):
        year = dataset.time.label(start + idx)
        if year is not None:
            series.append((year, value))
    return series


def variable_year_range(dataset: DatasetLookup, variable_name: str) -> tuple[int, int] | None:
    """First and last year of a variable's envelope, else of the whole axis."""
    if not dataset.time.values:
        return None
    first, last = dataset.time.values[0], dataset.time.values[-1]
    descriptor = dataset.variable(variable_name)
    if descriptor is None or not descriptor.has_data:
        return first, last
    start, end = descriptor.time_range
    start_year = dataset.time.label(start)
    end_year = dataset.time.label(end)
    return (
        start_year if start_year is not None else first,
        end_year if end_year is not None else last,
    )


def clamp_year(dataset: DatasetLookup, variable_name: str, year: int) -> int:
    bounds = variable_year_range(dataset, variable_name)
    if bounds is None:
        return year
    return min(max(year, bounds[0]), bounds[1])
