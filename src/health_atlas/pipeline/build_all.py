from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from health_atlas.build.codes import CodeRegistry
from health_atlas.build.compactor import build_lookup
from health_atlas.build.field_stats import FieldInfo, build_field_info
from health_atlas.build.manifest import ManifestResource, build_manifest
from health_atlas.build.time_axis import build_time_axis
from health_atlas.config import AppConfig
from health_atlas.io.read import SourceDataError, load_json, load_panel_rows
from health_atlas.io.schema import CanonicalColumns, variable_columns
from health_atlas.io.write import write_artifact, write_summary
from health_atlas.lookup import DatasetLookup
from health_atlas.paths import build_output_paths

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatasetBuildResult:
    name: str
    lookup: DatasetLookup
    fields: list[FieldInfo]
    rows: int
    entities: int
    bytes: int = 0
    path: Path | None = None


@dataclass
class BuildReport:
    built: dict[str, DatasetBuildResult] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)
    manifest_path: Path | None = None

    @property
    def ok(self) -> bool:
        return not self.failed


def build_dataset(
    name: str,
    csv_path: Path,
    config: AppConfig,
    registry: CodeRegistry,
) -> DatasetBuildResult:
    LOGGER.info("Building %s from %s", name, csv_path)
    frame = load_panel_rows(csv_path=csv_path, config=config)
    LOGGER.info("Parsed %d rows", len(frame))

    variables = variable_columns(frame)
    axis = build_time_axis(frame[CanonicalColumns.time])
    if config.build.require_contiguous_time:
        try:
            axis.require_contiguous()
        except ValueError as exc:
            raise SourceDataError(f"{csv_path}: {exc}") from exc

    tokens = config.parsing.missing_tokens
    lookup = build_lookup(
        frame=frame,
        variables=variables,
        axis=axis,
        registry=registry,
        missing_tokens=tokens,
    )
    fields = build_field_info(frame=frame, variables=variables, axis=axis, missing_tokens=tokens)
    LOGGER.info("Done: %d entities, %d variables", len(lookup.regions), len(variables))
    return DatasetBuildResult(
        name=name,
        lookup=lookup,
        fields=fields,
        rows=len(frame),
        entities=len(lookup.regions),
    )


def _load_measure_info(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    payload = load_json(path)
    if not isinstance(payload, dict):
        raise ValueError("measure info file must contain a mapping/object")
    return payload


def build_all(
    config: AppConfig,
    data_dir: Path | None = None,
    out_dir: Path | None = None,
) -> BuildReport:
    """Build every configured dataset; a failing dataset does not stop the others."""
    data_dir = data_dir or Path(config.build.data_dir)
    paths = build_output_paths(out_dir or Path(config.build.out_dir))

    codes_path = paths.root / config.build.codes_file
    registry = CodeRegistry.load(codes_path) if config.build.persist_codes else CodeRegistry()

    measure_info_src = data_dir / config.build.measure_info_file
    measure_info = _load_measure_info(measure_info_src)
    if measure_info_src.exists():
        shutil.copyfile(measure_info_src, paths.measure_info)
        LOGGER.info("Copied %s", measure_info_src.name)

    report = BuildReport()
    resources: list[ManifestResource] = []
    for name, file_name in config.datasets.items():
        try:
            result = build_dataset(
                name=name,
                csv_path=data_dir / file_name,
                config=config,
                registry=registry,
            )
        except SourceDataError as exc:
            LOGGER.error("Failed building %s: %s", name, exc)
            report.failed[name] = str(exc)
            continue

        lookup_path = paths.lookup(name)
        size = write_artifact(result.lookup.to_payload(), lookup_path)
        LOGGER.info("Wrote %s (%.1f MB)", lookup_path.name, size / 1024 / 1024)
        result = replace(result, bytes=size, path=lookup_path)
        report.built[name] = result
        resources.append(
            ManifestResource(
                name=name,
                fields=tuple(result.fields),
                bytes=size,
                rows=result.rows,
                entities=result.entities,
            )
        )

    if config.build.persist_codes:
        registry.save(codes_path)
    manifest = build_manifest(resources=resources, measure_info=measure_info, package=config.package)
    report.manifest_path = write_summary(manifest, paths.manifest)
    LOGGER.info("Wrote %s", paths.manifest.name)
    return report
