from __future__ import annotations

import json
from pathlib import Path

from health_atlas.config import AppConfig
from health_atlas.lookup import DatasetLookup
from health_atlas.pipeline.build_all import build_all


def _write(path: Path, body: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")


def _config(tmp_path: Path, **build: object) -> AppConfig:
    return AppConfig.model_validate(
        {
            "datasets": {"district": "district.csv", "county": "county.csv"},
            "build": {
                "data_dir": str(tmp_path / "data"),
                "out_dir": str(tmp_path / "out"),
                **build,
            },
        }
    )


def _seed(tmp_path: Path) -> None:
    data = tmp_path / "data"
    _write(data / "district.csv", "ID,time,pop,rate\nd1,2019,10,0.5\nd1,2020,12,\nd2,2020,8,NA\n")
    _write(data / "county.csv", "ID,time,pop,rate\nc1,2019,3,\nc2,2019,4,\n")
    _write(
        data / "measure_info.json",
        json.dumps({"pop": {"short_name": "Population", "category": "Demographics"}}),
    )


def test_build_all_writes_lookups_manifest_and_codes(tmp_path: Path) -> None:
    _seed(tmp_path)
    report = build_all(config=_config(tmp_path))
    out = tmp_path / "out"

    assert report.ok
    assert set(report.built) == {"district", "county"}
    assert report.manifest_path == out / "datapackage.json"
    assert (out / "measure_info.json").exists()

    district = DatasetLookup.from_payload(json.loads((out / "district.json").read_text()))
    assert district.variable("pop").time_range == (0, 1)
    assert district.region("d1")["X2"] == [10, 12]
    assert district.region("d2")["X2"] == ["NA", 8]
    assert district.region("d1")["X3"] == 0.5

    manifest = json.loads((out / "datapackage.json").read_text())
    assert manifest["name"] == "vdh_rural_health"
    assert manifest["measure_info"]["pop"]["short_name"] == "Population"
    resources = {resource["name"]: resource for resource in manifest["resources"]}
    assert resources["district"]["rows"] == 3
    assert resources["district"]["entities"] == 2
    assert resources["district"]["bytes"] == (out / "district.json").stat().st_size
    county_fields = {field["name"]: field for field in resources["county"]["schema"]["fields"]}
    assert county_fields["time"]["time_range"] == [0, 0]
    assert county_fields["rate"]["time_range"] == [-1, -1]
    assert county_fields["pop"]["type"] == "integer"

    codes = json.loads((out / "variable_codes.json").read_text())
    assert codes == {"pop": "X2", "rate": "X3"}


def test_build_all_isolates_failing_dataset(tmp_path: Path) -> None:
    _seed(tmp_path)
    (tmp_path / "data" / "county.csv").unlink()

    report = build_all(config=_config(tmp_path))

    assert not report.ok
    assert set(report.built) == {"district"}
    assert "county" in report.failed
    manifest = json.loads(report.manifest_path.read_text())
    assert [resource["name"] for resource in manifest["resources"]] == ["district"]


def test_build_all_keeps_codes_stable_when_columns_change(tmp_path: Path) -> None:
    _seed(tmp_path)
    build_all(config=_config(tmp_path))

    _write(
        tmp_path / "data" / "district.csv",
        "ID,time,income,rate,pop\nd1,2019,5,0.1,10\n",
    )
    _write(tmp_path / "data" / "county.csv", "ID,time,rate\nc1,2019,1\n")
    build_all(config=_config(tmp_path))

    district = DatasetLookup.from_payload(
        json.loads((tmp_path / "out" / "district.json").read_text())
    )
    assert district.variable("pop").code == "X2"
    assert district.variable("rate").code == "X3"
    assert district.variable("income").code == "X4"


def test_build_all_without_persisted_codes_renumbers(tmp_path: Path) -> None:
    _seed(tmp_path)
    build_all(config=_config(tmp_path, persist_codes=False))

    assert not (tmp_path / "out" / "variable_codes.json").exists()


def test_build_all_rejects_gapped_axis_when_contiguity_required(tmp_path: Path) -> None:
    _seed(tmp_path)
    _write(tmp_path / "data" / "county.csv", "ID,time,pop\nc1,2015,1\nc1,2018,2\n")

    report = build_all(config=_config(tmp_path, require_contiguous_time=True))

    assert set(report.built) == {"district"}
    assert "2016, 2017" in report.failed["county"]
