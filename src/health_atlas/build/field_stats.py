from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Iterable, Literal, Sequence

import numpy as np
import pandas as pd

from health_atlas.build.compactor import OFFSET_COLUMN, observation_rows
from health_atlas.build.time_axis import TimeAxis
from health_atlas.config import DEFAULT_MISSING_TOKENS
from health_atlas.lookup import NO_RANGE
from health_atlas.preprocess.values import coerce_number

FieldType = Literal["integer", "float", "unknown"]


@dataclass(frozen=True)
class FieldInfo:
    name: str
    type: FieldType
    time_range: tuple[int, int]
    missing: int
    mean: float | None = None
    sd: float | None = None
    min: float | None = None
    max: float | None = None

    @property
    def has_data(self) -> bool:
        return self.time_range[0] != -1

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["time_range"] = list(self.time_range)
        return {key: value for key, value in data.items() if value is not None}


def time_field(axis: TimeAxis) -> FieldInfo:
    return FieldInfo(
        name="time",
        type="integer",
        time_range=(0, len(axis) - 1) if len(axis) else NO_RANGE,
        missing=0,
    )


def _numeric_or_none(raw: Any, tokens: set[str]) -> int | float | None:
    if raw is None:
        return None
    text = str(raw).strip()
    if text in tokens:
        return None
    return coerce_number(text)


def describe_variable(
    name: str,
    raw_values: pd.Series,
    offsets: pd.Series,
    missing_tokens: Iterable[str] = DEFAULT_MISSING_TOKENS,
) -> FieldInfo:
    """Manifest statistics for one variable over every row of a dataset."""
    tokens = set(missing_tokens)
    numeric = raw_values.map(lambda raw: _numeric_or_none(raw, tokens))
    is_numeric = numeric.notna()
    missing = int((~is_numeric).sum())

    values = np.asarray(numeric[is_numeric].tolist(), dtype=float)
    if values.size == 0:
        return FieldInfo(name=name, type="unknown", time_range=NO_RANGE, missing=missing)

    observed_offsets = offsets[is_numeric].dropna()
    time_range = (
        (int(observed_offsets.min()), int(observed_offsets.max()))
        if not observed_offsets.empty
        else NO_RANGE
    )
    field_type: FieldType = "float" if np.any(np.mod(values, 1.0) != 0.0) else "integer"
    return FieldInfo(
        name=name,
        type=field_type,
        time_range=time_range,
        missing=missing,
        mean=float(np.mean(values)),
        sd=float(np.std(values, ddof=1)) if values.size > 1 else 0.0,
        min=float(np.min(values)),
        max=float(np.max(values)),
    )


def build_field_info(
    frame: pd.DataFrame,
    variables: Sequence[str],
    axis: TimeAxis,
    missing_tokens: Iterable[str] = DEFAULT_MISSING_TOKENS,
) -> list[FieldInfo]:
    """Field info over the rows the lookup keeps: on the axis, last row per region/time."""
    rows = observation_rows(frame, axis)
    fields = [time_field(axis)]
    for name in variables:
        fields.append(
            describe_variable(
                name=name,
                raw_values=rows[name],
                offsets=rows[OFFSET_COLUMN],
                missing_tokens=missing_tokens,
            )
        )
    return fields
