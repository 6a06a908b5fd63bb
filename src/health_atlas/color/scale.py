from __future__ import annotations

import bisect
import math
from typing import Literal, Mapping, Sequence

from health_atlas.color.palettes import NA_COLOR_DARK, NA_COLOR_LIGHT, get_palette
from health_atlas.query.aggregation import VariableSummary

ColorScaleCenter = Literal["none", "median", "mean"]


def _index(t: float, steps: int) -> int:
    return max(0, min(math.floor(t * steps), steps - 1))


def center_scale(value: float, low: float, high: float, center: float, steps: int) -> float:
    """Position in [0, 1] with values below ``center`` on the lower half of the palette."""
    mid = (steps - 1) / 2
    denominator = steps - 1 if steps > 1 else 1
    if value <= center:
        if center == low:
            return mid / denominator
        t = (value - low) / (center - low)
        return (t * mid) / denominator
    if center == high:
        return mid / denominator
    t = (value - center) / (high - center)
    return (mid + t * mid) / denominator


def rank_position(value: float, sorted_values: Sequence[float]) -> float | None:
    idx = bisect.bisect_left(sorted_values, value)
    if idx >= len(sorted_values) or sorted_values[idx] != value:
        return None
    if len(sorted_values) == 1:
        return 0.5
    return idx / (len(sorted_values) - 1)


def palette_index(
    value: float,
    summary: VariableSummary,
    steps: int,
    center: ColorScaleCenter = "none",
    by_rank: bool = False,
    sorted_values: Sequence[float] | None = None,
) -> int:
    if steps <= 0:
        raise ValueError("palette must have at least one color")

    if by_rank and sorted_values is not None:
        t = rank_position(value, sorted_values)
        # Stale references fall back to the first color.
        return 0 if t is None else _index(t, steps)

    if summary.min == summary.max:
        return steps // 2

    if center == "median":
        t = center_scale(value, summary.min, summary.max, summary.median, steps)
    elif center == "mean":
        t = center_scale(value, summary.min, summary.max, summary.mean, steps)
    else:
        t = (value - summary.min) / (summary.max - summary.min)
    return _index(t, steps)


def value_to_color(
    value: float,
    summary: VariableSummary,
    palette_name: str,
    center: ColorScaleCenter = "none",
    by_rank: bool = False,
    sorted_values: Sequence[float] | None = None,
) -> str:
    palette = get_palette(palette_name)
    idx = palette_index(
        value,
        summary,
        steps=len(palette),
        center=center,
        by_rank=by_rank,
        sorted_values=sorted_values,
    )
    return palette[idx]


def na_color(dark: bool = False) -> str:
    return NA_COLOR_DARK if dark else NA_COLOR_LIGHT


def color_regions(
    values: Mapping[str, float],
    summary: VariableSummary | None,
    palette_name: str,
    center: ColorScaleCenter = "none",
    by_rank: bool = False,
    region_ids: Sequence[str] | None = None,
    dark: bool = False,
) -> dict[str, str]:
    """Color every region; regions without a value get the no-data color."""
    targets = list(region_ids) if region_ids is not None else list(values)
    sorted_values = sorted(values.values()) if by_rank else None
    colors: dict[str, str] = {}
    for region_id in targets:
        value = values.get(region_id)
        if value is None or summary is None:
            colors[region_id] = na_color(dark)
            continue
        colors[region_id] = value_to_color(
            value,
            summary,
            palette_name,
            center=center,
            by_rank=by_rank,
            sorted_values=sorted_values,
        )
    return colors
