from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from health_atlas.config import AppConfig, load_config


def test_load_config_resolves_relative_paths(tmp_path: Path) -> None:
    config_path = tmp_path / "configs" / "config.yaml"
    config_path.parent.mkdir()
    config_path.write_text(
        yaml.safe_dump({"build": {"data_dir": "../data", "out_dir": "../public/data"}}),
        encoding="utf-8",
    )

    cfg = load_config(config_path)

    assert Path(cfg.build.data_dir) == (tmp_path / "data").resolve()
    assert Path(cfg.build.out_dir) == (tmp_path / "public" / "data").resolve()


def test_load_config_defaults_for_empty_file(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("", encoding="utf-8")

    cfg = load_config(config_path)

    assert cfg.columns.id == "ID"
    assert cfg.columns.time == "time"
    assert set(cfg.datasets) == {"district", "county", "tract"}
    assert "NA" in cfg.parsing.missing_tokens
    assert cfg.export.table_format == "tall"
    assert cfg.build.persist_codes is True
    assert cfg.build.require_contiguous_time is False


def test_load_config_uses_env_base_url(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.safe_dump({"fetch": {"base_url": "https://example.org/app/"}}), encoding="utf-8"
    )

    assert load_config(config_path).fetch.base_url == "https://example.org/app"

    monkeypatch.setenv("HEALTH_ATLAS_BASE_URL", "https://mirror.example.org/")
    assert load_config(config_path).fetch.base_url == "https://mirror.example.org"


def test_app_config_rejects_unknown_sections() -> None:
    with pytest.raises(ValidationError):
        AppConfig.model_validate({"unexpected": {}})


def test_app_config_rejects_unknown_export_format() -> None:
    with pytest.raises(ValidationError):
        AppConfig.model_validate({"export": {"file_format": "xlsx"}})


def test_repository_default_config_loads() -> None:
    config_path = Path(__file__).resolve().parents[1] / "configs" / "default.yaml"

    cfg = load_config(config_path)

    assert cfg.datasets["district"] == "health_district.csv.xz"
    assert cfg.color.palette is None
