from __future__ import annotations

from typing import Any, Mapping, Sequence

LEVELS: tuple[str, ...] = ("district", "county", "tract")
# Most granular level first.
PREFERRED_LEVELS: tuple[str, ...] = ("tract", "county", "district")


def _find_field(manifest: Mapping[str, Any], level: str, variable_name: str) -> Mapping | None:
    for resource in manifest.get("resources") or []:
        if resource.get("name") != level:
            continue
        for field in (resource.get("schema") or {}).get("fields") or []:
            if field.get("name") == variable_name:
                return field
        return None
    return None


def variable_available_at_level(
    manifest: Mapping[str, Any] | None,
    variable_name: str,
    level: str,
) -> bool:
    """Whether the manifest reports any observation of a variable at ``level``.

    Without a manifest every level is assumed available.
    """
    if manifest is None:
        return True
    field = _find_field(manifest, level, variable_name)
    if field is None:
        return False
    time_range = field.get("time_range") or [-1, -1]
    return int(time_range[0]) != -1


def available_levels(
    manifest: Mapping[str, Any] | None,
    variable_name: str,
    levels: Sequence[str] = LEVELS,
) -> dict[str, bool]:
    return {
        level: variable_available_at_level(manifest, variable_name, level) for level in levels
    }


def preferred_level(
    current: str,
    availability: Mapping[str, bool],
    preference: Sequence[str] = PREFERRED_LEVELS,
) -> str:
    """Keep ``current`` when it has data, else the most granular level that does."""
    if availability.get(current, False):
        return current
    for level in preference:
        if availability.get(level, False):
            return level
    return current
