from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Union

from health_atlas.build.time_axis import TimeAxis

META_KEY = "_meta"
NO_RANGE: tuple[int, int] = (-1, -1)

StoredValue = Union[int, float, str]
RegionRecord = dict[str, Union[StoredValue, list[StoredValue]]]


@dataclass(frozen=True)
class VariableDescriptor:
    code: str
    time_range: tuple[int, int] = NO_RANGE

    @property
    def has_data(self) -> bool:
        return self.time_range[0] != -1

    @property
    def width(self) -> int:
        if not self.has_data:
            return 0
        return self.time_range[1] - self.time_range[0] + 1

    def to_payload(self) -> dict[str, Any]:
        return {"code": self.code, "time_range": list(self.time_range)}


@dataclass(frozen=True)
class DatasetLookup:
    """Compacted lookup for one granularity; read-only once built."""

    time: TimeAxis
    variables: dict[str, VariableDescriptor]
    regions: dict[str, RegionRecord] = field(default_factory=dict)

    def variable(self, name: str) -> VariableDescriptor | None:
        return self.variables.get(name)

    def region(self, region_id: str) -> RegionRecord | None:
        return self.regions.get(region_id)

    @property
    def code_to_variable(self) -> dict[str, str]:
        return {descriptor.code: name for name, descriptor in self.variables.items()}

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            META_KEY: {
                "time": {"value": list(self.time.values), "name": "time"},
                "variables": {
                    name: descriptor.to_payload() for name, descriptor in self.variables.items()
                },
            }
        }
        for region_id, record in self.regions.items():
            payload[region_id] = record
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> DatasetLookup:
        meta = payload.get(META_KEY)
        if not isinstance(meta, Mapping):
            raise ValueError(f"lookup payload is missing {META_KEY!r}")
        time_values = tuple(int(value) for value in (meta.get("time") or {}).get("value", []))
        variables: dict[str, VariableDescriptor] = {}
        for name, info in (meta.get("variables") or {}).items():
            start, end = info.get("time_range", NO_RANGE)
            variables[str(name)] = VariableDescriptor(
                code=str(info["code"]), time_range=(int(start), int(end))
            )
        regions = {
            str(region_id): dict(record)
            for region_id, record in payload.items()
            if region_id != META_KEY and isinstance(record, Mapping)
        }
        return cls(time=TimeAxis(values=time_values), variables=variables, regions=regions)
