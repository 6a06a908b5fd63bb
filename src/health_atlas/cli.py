from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import typer

from health_atlas.color.palettes import select_palette
from health_atlas.color.scale import color_regions
from health_atlas.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from health_atlas.export.repivot import write_export
from health_atlas.io.fetch import ArtifactClient, ArtifactFetchError
from health_atlas.io.read import load_json
from health_atlas.logging import configure_logging
from health_atlas.lookup import DatasetLookup
from health_atlas.meta.measure_info import MeasureRegistry
from health_atlas.paths import MANIFEST_FILE_NAME, MEASURE_INFO_FILE_NAME, build_output_paths
from health_atlas.pipeline.build_all import build_all
from health_atlas.query.aggregation import (
    region_series,
    region_values,
    summarize,
    time_offset,
)
from health_atlas.query.availability import available_levels, preferred_level

app = typer.Typer(no_args_is_help=True, add_completion=False)


@dataclass(frozen=True)
class _Source:
    level: str
    dataset: DatasetLookup
    measure_info: dict[str, Any]
    manifest: dict[str, Any] | None


def _load_app_config(config_path: Path) -> AppConfig:
    return load_config(config_path)


def _artifact_client(cfg: AppConfig) -> ArtifactClient:
    return ArtifactClient.from_config(cfg.fetch)


def _load_lookup(lookup: Path) -> DatasetLookup:
    return DatasetLookup.from_payload(load_json(lookup))


def _load_json_if_exists(path: Path) -> Any:
    return load_json(path) if path.exists() else None


def _load_source(lookup: Path | None, dataset: str | None, config: Path) -> _Source:
    """Read a lookup from disk, or fetch a dataset from ``fetch.base_url``.

    Measure info and the manifest come from beside the lookup file, or from the
    same server as the dataset.
    """
    if (lookup is None) == (dataset is None):
        raise typer.BadParameter("Pass exactly one of --lookup or --dataset")
    if lookup is not None:
        return _Source(
            level=lookup.stem,
            dataset=_load_lookup(lookup),
            measure_info=_load_json_if_exists(lookup.parent / MEASURE_INFO_FILE_NAME) or {},
            manifest=_load_json_if_exists(lookup.parent / MANIFEST_FILE_NAME),
        )

    cfg = _load_app_config(config)
    if not cfg.fetch.base_url:
        raise typer.BadParameter("fetch.base_url is not configured")
    client = _artifact_client(cfg)
    try:
        return _Source(
            level=str(dataset),
            dataset=client.load_dataset(str(dataset)),
            measure_info=client.load_measure_info(),
            manifest=client.load_manifest(),
        )
    except ArtifactFetchError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc


def _require_offset(dataset: DatasetLookup, year: int) -> int:
    offset = time_offset(dataset, year)
    if offset is None:
        raise typer.BadParameter(f"Year {year} is not on the dataset time axis")
    return offset


def _echo_availability(source: _Source, variable: str) -> None:
    if source.manifest is None:
        return
    availability = available_levels(source.manifest, variable)
    shown = ", ".join(level for level, available in availability.items() if available)
    typer.echo(f"Available levels: {shown or 'none'}")
    preferred = preferred_level(source.level, availability)
    if preferred != source.level:
        typer.echo(f"Preferred level: {preferred}")


@app.command()
def build(
    data_dir: Path | None = typer.Option(None, exists=True, file_okay=False, resolve_path=True),
    out: Path | None = typer.Option(None, resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Compact every configured dataset and write lookups plus the manifest."""
    configure_logging()
    cfg = _load_app_config(config)
    report = build_all(config=cfg, data_dir=data_dir, out_dir=out)
    for name, result in report.built.items():
        typer.echo(f"- {name}: entities={result.entities} rows={result.rows} bytes={result.bytes}")
    for name, message in report.failed.items():
        typer.echo(f"- {name}: FAILED {message}", err=True)
    typer.echo(f"Manifest: {report.manifest_path}")
    if not report.ok:
        raise typer.Exit(code=1)


@app.command()
def summary(
    variable: str = typer.Option(...),
    year: int = typer.Option(...),
    lookup: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    dataset: str | None = typer.Option(None, help="Dataset name fetched from fetch.base_url."),
    region: list[str] = typer.Option([], help="Restrict the summary to these region ids."),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, resolve_path=True),
) -> None:
    """Print the cross-region summary of one variable at one year."""
    configure_logging()
    source = _load_source(lookup, dataset, config)
    offset = _require_offset(source.dataset, year)
    selected = set(region)
    result = summarize(
        source.dataset,
        variable,
        offset,
        region_filter=(lambda region_id: region_id in selected) if selected else None,
    )
    if result is None:
        typer.echo(f"No data for {variable} in {year}")
        _echo_availability(source, variable)
        return
    resolved = MeasureRegistry(source.measure_info).resolve(variable)
    typer.echo(f"{resolved.label} [{resolved.category}] {year}")
    for key, value in result.to_dict().items():
        typer.echo(f"- {key}: {value}")
    _echo_availability(source, variable)


@app.command()
def series(
    variable: str = typer.Option(...),
    region: str = typer.Option(...),
    lookup: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    dataset: str | None = typer.Option(None, help="Dataset name fetched from fetch.base_url."),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, resolve_path=True),
) -> None:
    """Print the year/value series of one region."""
    configure_logging()
    source = _load_source(lookup, dataset, config)
    points = region_series(source.dataset, region, variable)
    if not points:
        typer.echo(f"No data for {variable} in {region}")
        return
    for year, value in points:
        typer.echo(f"{year}\t{'NA' if value is None else value}")


@app.command()
def export(
    lookup: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    granularity: str = typer.Option(..., help="Granularity label used in the file name."),
    variable: list[str] = typer.Option([], help="Variables to include; all when omitted."),
    table_format: Literal["tall", "wide", "mixed"] | None = typer.Option(None),
    file_format: Literal["csv", "tsv"] | None = typer.Option(None),
    out: Path | None = typer.Option(None, resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Re-pivot a lookup into a tall, wide, or mixed delimited file."""
    configure_logging()
    cfg = _load_app_config(config)
    dataset = _load_lookup(lookup)
    unknown = [name for name in variable if dataset.variable(name) is None]
    if unknown:
        raise typer.BadParameter(f"Unknown variables: {', '.join(unknown)}")
    path = write_export(
        dataset,
        include=variable,
        table_format=table_format or cfg.export.table_format,
        file_format=file_format or cfg.export.file_format,
        out_dir=out or build_output_paths(Path(cfg.build.out_dir)).exports,
        prefix=cfg.export.prefix,
        granularity=granularity,
    )
    typer.echo(f"Export written to: {path}")


@app.command()
def colors(
    variable: str = typer.Option(...),
    year: int = typer.Option(...),
    lookup: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    dataset: str | None = typer.Option(None, help="Dataset name fetched from fetch.base_url."),
    dark: bool = typer.Option(False, help="Use the dark-theme no-data color."),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Print the palette color of every region for one variable at one year."""
    configure_logging()
    cfg = _load_app_config(config)
    source = _load_source(lookup, dataset, config)
    offset = _require_offset(source.dataset, year)
    values = region_values(source.dataset, variable, offset)
    assigned = color_regions(
        values,
        summarize(source.dataset, variable, offset),
        cfg.color.palette or select_palette(cfg.color.by_rank),
        center=cfg.color.center,
        by_rank=cfg.color.by_rank,
        region_ids=list(source.dataset.regions),
        dark=dark,
    )
    for region_id, color in assigned.items():
        value = values.get(region_id)
        shown = "NA" if value is None else f"{value:.{cfg.color.digits}f}"
        typer.echo(f"{region_id}\t{shown}\t{color}")


if __name__ == "__main__":
    app()
