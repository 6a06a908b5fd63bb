from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from health_atlas.config import ColumnsConfig
from health_atlas.preprocess.values import strip_quotes


@dataclass(frozen=True)
class CanonicalColumns:
    id: str = "ID"
    time: str = "time"


def normalize_columns(df: pd.DataFrame, columns: ColumnsConfig) -> pd.DataFrame:
    """Strip quoting artifacts and rename the id/time columns to canonical names."""
    working = df.rename(columns=lambda column: strip_quotes(str(column).strip()))
    rename_map = {
        columns.id: CanonicalColumns.id,
        columns.time: CanonicalColumns.time,
    }
    missing = [source for source in rename_map if source not in working.columns]
    if missing:
        missing_str = ", ".join(missing)
        raise ValueError(f"Missing required columns in CSV: {missing_str}")
    working = working.rename(columns=rename_map)
    for column in working.columns:
        working[column] = working[column].map(
            lambda value: strip_quotes(value.strip()) if isinstance(value, str) else value
        )
    return working


def variable_columns(df: pd.DataFrame) -> list[str]:
    """Every column other than region id and time, in declaration order."""
    reserved = {CanonicalColumns.id, CanonicalColumns.time}
    return [str(column) for column in df.columns if column not in reserved]
