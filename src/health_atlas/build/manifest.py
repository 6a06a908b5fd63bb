from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from health_atlas.build.field_stats import FieldInfo
from health_atlas.config import PackageConfig


@dataclass(frozen=True)
class ManifestResource:
    name: str
    fields: tuple[FieldInfo, ...]
    bytes: int
    rows: int
    entities: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "schema": {"fields": [field.to_dict() for field in self.fields]},
            "bytes": self.bytes,
            "rows": self.rows,
            "entities": self.entities,
        }


def build_manifest(
    resources: Sequence[ManifestResource],
    measure_info: Mapping[str, Any],
    package: PackageConfig,
) -> dict[str, Any]:
    return {
        "name": package.name,
        "title": package.title,
        "licence": package.licence,
        "resources": [resource.to_dict() for resource in resources],
        "measure_info": dict(measure_info),
    }
