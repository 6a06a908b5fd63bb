from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MISSING_TOKENS = ["", "NA", "na", "null"]
DEFAULT_DATASETS = {
    "district": "health_district.csv.xz",
    "county": "county.csv.xz",
    "tract": "tract.csv.xz",
}


class ColumnsConfig(BaseModel):
    id: str = "ID"
    time: str = "time"


class ParsingConfig(BaseModel):
    missing_tokens: list[str] = Field(default_factory=lambda: list(DEFAULT_MISSING_TOKENS))


class BuildConfig(BaseModel):
    data_dir: str = "data"
    out_dir: str = "public/data"
    measure_info_file: str = "measure_info.json"
    codes_file: str = "variable_codes.json"
    persist_codes: bool = True
    require_contiguous_time: bool = False


class PackageConfig(BaseModel):
    name: str = "vdh_rural_health"
    title: str = "Virginia Department of Health Rural Health Data"
    licence: str = "public"


class FetchConfig(BaseModel):
    base_url: str = ""
    timeout_seconds: float = Field(default=30.0, gt=0.0)


class ExportConfig(BaseModel):
    prefix: str = "vdh"
    table_format: Literal["tall", "wide", "mixed"] = "tall"
    file_format: Literal["csv", "tsv"] = "csv"


class ColorConfig(BaseModel):
    # None picks lajolla for rank coloring and vik otherwise.
    palette: str | None = None
    center: Literal["none", "median", "mean"] = "none"
    by_rank: bool = False
    digits: int = Field(default=2, ge=0, le=10)


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    columns: ColumnsConfig = Field(default_factory=ColumnsConfig)
    parsing: ParsingConfig = Field(default_factory=ParsingConfig)
    datasets: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_DATASETS))
    build: BuildConfig = Field(default_factory=BuildConfig)
    package: PackageConfig = Field(default_factory=PackageConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    color: ColorConfig = Field(default_factory=ColorConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _resolve_path(path_value: str, base_dir: Path) -> str:
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    base_dir = path.resolve().parent

    config.build.data_dir = _resolve_path(config.build.data_dir, base_dir)
    config.build.out_dir = _resolve_path(config.build.out_dir, base_dir)
    config.fetch.base_url = (
        os.getenv("HEALTH_ATLAS_BASE_URL") or config.fetch.base_url
    ).rstrip("/")
    return config
