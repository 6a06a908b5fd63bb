from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

MANIFEST_FILE_NAME = "datapackage.json"
MEASURE_INFO_FILE_NAME = "measure_info.json"


@dataclass(frozen=True)
class OutputPaths:
    root: Path
    manifest: Path
    measure_info: Path
    exports: Path

    def lookup(self, dataset_name: str) -> Path:
        return self.root / f"{dataset_name}.json"


def build_output_paths(out_dir: Path) -> OutputPaths:
    paths = OutputPaths(
        root=out_dir,
        manifest=out_dir / MANIFEST_FILE_NAME,
        measure_info=out_dir / MEASURE_INFO_FILE_NAME,
        exports=out_dir / "exports",
    )
    for path in (paths.root, paths.exports):
        path.mkdir(parents=True, exist_ok=True)
    return paths
