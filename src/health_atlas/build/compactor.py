from __future__ import annotations

import logging
from typing import Iterable, Sequence

import pandas as pd

from health_atlas.build.codes import CodeRegistry
from health_atlas.build.time_axis import TimeAxis
from health_atlas.config import DEFAULT_MISSING_TOKENS
from health_atlas.io.schema import CanonicalColumns
from health_atlas.lookup import NO_RANGE, DatasetLookup, RegionRecord, VariableDescriptor
from health_atlas.preprocess.values import (
    MISSING,
    is_missing,
    parse_column,
    parse_time_label,
)

LOGGER = logging.getLogger(__name__)

OFFSET_COLUMN = "_offset"


def attach_offsets(frame: pd.DataFrame, axis: TimeAxis) -> pd.DataFrame:
    """Return rows whose time label is on the axis, with an integer offset column."""
    offsets = frame[CanonicalColumns.time].map(parse_time_label).map(
        lambda label: None if label is None else axis.offset(label)
    )
    valid = offsets.notna()
    if not valid.all():
        LOGGER.debug("Dropping %d rows without a usable time label", int((~valid).sum()))
    working = frame.loc[valid].copy()
    working[OFFSET_COLUMN] = offsets[valid].astype(int)
    working[CanonicalColumns.id] = working[CanonicalColumns.id].astype(str)
    return working


def latest_rows(working: pd.DataFrame) -> pd.DataFrame:
    """Keep the last row for each region/time pair."""
    return working.drop_duplicates(
        subset=[CanonicalColumns.id, OFFSET_COLUMN], keep="last"
    ).reset_index(drop=True)


def observation_rows(frame: pd.DataFrame, axis: TimeAxis) -> pd.DataFrame:
    """Rows on the axis with an offset column, one per region/time pair."""
    return latest_rows(attach_offsets(frame, axis))


def compute_envelope(offsets: pd.Series, values: pd.Series) -> tuple[int, int]:
    present = ~values.map(is_missing).astype(bool)
    observed = offsets[present]
    if observed.empty:
        return NO_RANGE
    return int(observed.min()), int(observed.max())


def _materialize(
    records: dict[str, RegionRecord],
    region_ids: pd.Series,
    offsets: pd.Series,
    values: pd.Series,
    descriptor: VariableDescriptor,
) -> None:
    start, _ = descriptor.time_range
    width = descriptor.width
    present = ~values.map(is_missing).astype(bool)
    for region_id, offset, value in zip(region_ids[present], offsets[present], values[present]):
        record = records[region_id]
        if width == 1:
            record[descriptor.code] = value
            continue
        series = record.get(descriptor.code)
        if not isinstance(series, list):
            series = [MISSING] * width
            record[descriptor.code] = series
        series[int(offset) - start] = value


def build_lookup(
    frame: pd.DataFrame,
    variables: Sequence[str],
    axis: TimeAxis,
    registry: CodeRegistry | None = None,
    missing_tokens: Iterable[str] = DEFAULT_MISSING_TOKENS,
) -> DatasetLookup:
    """Compact long-format rows into a sparse per-region lookup.

    Each variable gets one envelope, the min/max offset with any observation
    across all regions. Regions store a scalar for single-offset envelopes and
    an envelope-aligned list otherwise; a region without observations for a
    variable has no key for it at all.
    """
    if registry is None:
        registry = CodeRegistry()
    tokens = frozenset(missing_tokens)

    region_order = pd.unique(frame[CanonicalColumns.id].astype(str))
    records: dict[str, RegionRecord] = {str(region_id): {} for region_id in region_order}

    rows = observation_rows(frame, axis)
    region_ids = rows[CanonicalColumns.id]
    offsets = rows[OFFSET_COLUMN]

    descriptors: dict[str, VariableDescriptor] = {}
    for name in variables:
        values = parse_column(rows[name], tokens) if name in rows.columns else pd.Series(
            [MISSING] * len(rows), dtype=object
        )
        descriptor = VariableDescriptor(
            code=registry.code_for(name),
            time_range=compute_envelope(offsets, values),
        )
        descriptors[name] = descriptor
        if descriptor.has_data:
            _materialize(records, region_ids, offsets, values, descriptor)

    empty = [name for name, descriptor in descriptors.items() if not descriptor.has_data]
    if empty:
        LOGGER.info("%d variables have no observations: %s", len(empty), ", ".join(empty))
    return DatasetLookup(time=axis, variables=descriptors, regions=records)
