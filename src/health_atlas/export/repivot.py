from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal, Sequence

import pandas as pd

from health_atlas.io.write import write_text
from health_atlas.lookup import DatasetLookup
from health_atlas.preprocess.values import MISSING

LOGGER = logging.getLogger(__name__)

TableFormat = Literal["tall", "wide", "mixed"]
FileFormat = Literal["csv", "tsv"]

ID_COLUMN = "geoid"
SEPARATORS: dict[str, str] = {"csv": ",", "tsv": "\t"}


def _cell(value: Any) -> Any:
    return "" if value is None or value == MISSING else value


def _selected(dataset: DatasetLookup, include: Sequence[str]) -> list[str]:
    return list(include) if include else list(dataset.variables)


def tall_table(dataset: DatasetLookup, include: Sequence[str] = ()) -> pd.DataFrame:
    """One row per stored (region, time, variable) point."""
    rows: list[tuple[str, Any, str, Any]] = []
    variables = _selected(dataset, include)
    for region_id, record in dataset.regions.items():
        for name in variables:
            descriptor = dataset.variable(name)
            if descriptor is None:
                continue
            data = record.get(descriptor.code)
            if data is None:
                continue
            start = descriptor.time_range[0]
            series = data if isinstance(data, list) else [data]
            for idx, value in enumerate(series):
                year = dataset.time.label(start + idx)
                rows.append((region_id, "" if year is None else year, name, _cell(value)))
    return pd.DataFrame(rows, columns=[ID_COLUMN, "time", "variable", "value"], dtype=object)


def wide_table(dataset: DatasetLookup, include: Sequence[str] = ()) -> pd.DataFrame:
    """One row per region, one column per variable/year in each envelope."""
    columns: list[str] = []
    slots: list[tuple[str, int]] = []
    for name in _selected(dataset, include):
        descriptor = dataset.variable(name)
        if descriptor is None or not descriptor.has_data:
            continue
        start, end = descriptor.time_range
        for offset in range(start, end + 1):
            columns.append(f"{name}_{dataset.time.label(offset)}")
            slots.append((descriptor.code, offset - start))

    rows: list[list[Any]] = []
    for region_id, record in dataset.regions.items():
        row: list[Any] = [region_id]
        for code, idx in slots:
            data = record.get(code)
            if isinstance(data, list):
                row.append(_cell(data[idx]) if idx < len(data) else "")
            else:
                row.append(_cell(data))
        rows.append(row)
    return pd.DataFrame(rows, columns=[ID_COLUMN, *columns], dtype=object)


def mixed_table(dataset: DatasetLookup, include: Sequence[str] = ()) -> pd.DataFrame:
    """One row per region with the latest stored point of each variable."""
    variables = _selected(dataset, include)
    rows: list[list[Any]] = []
    for region_id, record in dataset.regions.items():
        row: list[Any] = [region_id]
        for name in variables:
            descriptor = dataset.variable(name)
            data = None if descriptor is None else record.get(descriptor.code)
            if isinstance(data, list):
                row.append(_cell(data[-1]) if data else "")
            else:
                row.append(_cell(data))
        rows.append(row)
    return pd.DataFrame(rows, columns=[ID_COLUMN, *variables], dtype=object)


TABLE_BUILDERS = {
    "tall": tall_table,
    "wide": wide_table,
    "mixed": mixed_table,
}


def generate_export(
    dataset: DatasetLookup,
    include: Sequence[str],
    table_format: TableFormat,
    separator: str = ",",
) -> str:
    builder = TABLE_BUILDERS.get(table_format)
    if builder is None:
        raise ValueError(f"Unsupported table format: {table_format}")
    table = builder(dataset, include)
    return table.to_csv(sep=separator, index=False, lineterminator="\n")


def export_filename(
    prefix: str,
    granularity: str,
    variable: str | None,
    file_format: FileFormat,
) -> str:
    return f"{prefix}_{granularity}_{variable or 'all'}.{file_format}"


def write_export(
    dataset: DatasetLookup,
    include: Sequence[str],
    table_format: TableFormat,
    file_format: FileFormat,
    out_dir: Path,
    prefix: str,
    granularity: str,
) -> Path:
    separator = SEPARATORS.get(file_format)
    if separator is None:
        raise ValueError(f"Unsupported file format: {file_format}")
    body = generate_export(dataset, include, table_format, separator)
    variable = include[0] if len(include) == 1 else None
    path = write_text(body, out_dir / export_filename(prefix, granularity, variable, file_format))
    LOGGER.info("Wrote %s export to %s", table_format, path)
    return path
