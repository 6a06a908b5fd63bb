from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pandas as pd

from health_atlas.config import AppConfig
from health_atlas.io.schema import normalize_columns


class SourceDataError(ValueError):
    """Raised when a dataset's raw rows cannot be loaded."""


def load_panel_rows(csv_path: Path, config: AppConfig) -> pd.DataFrame:
    """Load long-format panel rows as strings with canonical id/time columns."""
    if not csv_path.exists():
        raise SourceDataError(f"Data file not found: {csv_path}")

    try:
        # keep_default_na=False leaves missing tokens as text; parse_value owns that mapping.
        df = pd.read_csv(
            csv_path,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding="utf-8-sig",
            compression="infer",
        )
    except pd.errors.EmptyDataError as exc:
        raise SourceDataError(f"Empty header row in {csv_path}") from exc
    except (pd.errors.ParserError, UnicodeDecodeError, OSError) as exc:
        raise SourceDataError(f"Could not parse {csv_path}: {exc}") from exc

    if len(df.columns) == 0:
        raise SourceDataError(f"Empty header row in {csv_path}")

    try:
        return normalize_columns(df=df, columns=config.columns)
    except ValueError as exc:
        raise SourceDataError(f"{csv_path}: {exc}") from exc


def load_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)
