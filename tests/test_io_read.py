from __future__ import annotations

import lzma
from pathlib import Path

import pandas as pd
import pytest

from health_atlas.config import AppConfig, ColumnsConfig
from health_atlas.io.read import SourceDataError, load_panel_rows
from health_atlas.io.schema import normalize_columns


def test_load_panel_rows_normalizes_columns_and_quotes(tmp_path: Path) -> None:
    csv_path = tmp_path / "county.csv"
    csv_path.write_text(
        '"GEOID","year","pop"\n"51001","2019","NA"\n"51003","2020","12"\n',
        encoding="utf-8",
    )
    config = AppConfig.model_validate({"columns": {"id": "GEOID", "time": "year"}})

    frame = load_panel_rows(csv_path=csv_path, config=config)

    assert list(frame.columns) == ["ID", "time", "pop"]
    assert frame["ID"].tolist() == ["51001", "51003"]
    assert frame["pop"].tolist() == ["NA", "12"]


def test_load_panel_rows_reads_xz_archives(tmp_path: Path) -> None:
    csv_path = tmp_path / "district.csv.xz"
    with lzma.open(csv_path, "wt", encoding="utf-8") as handle:
        handle.write("ID,time,pop\nd1,2019,5\n")

    frame = load_panel_rows(csv_path=csv_path, config=AppConfig())

    assert frame.loc[0, "pop"] == "5"


def test_load_panel_rows_missing_file(tmp_path: Path) -> None:
    with pytest.raises(SourceDataError, match="not found"):
        load_panel_rows(csv_path=tmp_path / "absent.csv", config=AppConfig())


def test_load_panel_rows_empty_file(tmp_path: Path) -> None:
    csv_path = tmp_path / "empty.csv"
    csv_path.write_text("", encoding="utf-8")

    with pytest.raises(SourceDataError, match="Empty header"):
        load_panel_rows(csv_path=csv_path, config=AppConfig())


def test_load_panel_rows_missing_required_columns(tmp_path: Path) -> None:
    csv_path = tmp_path / "rows.csv"
    csv_path.write_text("geoid,pop\n1,2\n", encoding="utf-8")

    with pytest.raises(SourceDataError, match="ID, time"):
        load_panel_rows(csv_path=csv_path, config=AppConfig())


def test_normalize_columns_strips_one_quote_pair_per_value() -> None:
    frame = pd.DataFrame({"ID": ['""x""', '"y"'], "time": ["2020", "2021"]}, dtype=str)

    normalized = normalize_columns(df=frame, columns=ColumnsConfig())

    assert normalized["ID"].tolist() == ['"x"', "y"]
