from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

REFERENCES_KEY = "_references"
FALLBACK_CATEGORY = "Other"

_PLACEHOLDER = re.compile(r"\{[^}]+\}")
_VARIANT_TOKENS = ("{variant.name}", "{variant}")
_CATEGORY_TOKENS = ("{category.name}", "{category}")
_LABEL_KEYS = ("short_name", "default", "description", "long_name")


@dataclass(frozen=True)
class ResolvedVariable:
    name: str
    label: str
    category: str


def _substitute(template: str, tokens: Iterable[str], value: str) -> str:
    for token in tokens:
        template = template.replace(token, value)
    return template


def expand_names(pattern: str, variant_key: str | None, category_key: str | None) -> list[str]:
    """Concrete variable names for one variant/category pair of a template.

    ``blank`` variants and ``all`` categories may also stand for an empty string.
    """
    if variant_key is None:
        variant_options = [""]
    elif variant_key == "blank":
        variant_options = ["", "blank"]
    else:
        variant_options = [variant_key]
    if category_key is None:
        category_options = [""]
    elif category_key == "all":
        category_options = ["", "all"]
    else:
        category_options = [category_key]

    names: list[str] = []
    for variant in variant_options:
        for category in category_options:
            expanded = _substitute(pattern, _VARIANT_TOKENS, variant)
            names.append(_substitute(expanded, _CATEGORY_TOKENS, category))
    return names


def _label_part(meta: Mapping[str, Any] | None) -> str:
    if not meta:
        return ""
    for key in _LABEL_KEYS:
        value = meta.get(key)
        if value:
            return str(value)
    return ""


def resolve_label(
    template: str,
    variant_meta: Mapping[str, Any] | None,
    category_meta: Mapping[str, Any] | None,
) -> str:
    label = _substitute(template, _VARIANT_TOKENS, _label_part(variant_meta))
    label = _substitute(label, _CATEGORY_TOKENS, _label_part(category_meta))
    label = re.sub(r"\s+", " ", _PLACEHOLDER.sub("", label)).strip()
    return label or template


def fallback_label(name: str) -> str:
    return re.sub(r"\b\w", lambda match: match.group(0).upper(), name.replace("_", " "))


def _template_regex(pattern: str) -> re.Pattern[str]:
    parts = _PLACEHOLDER.split(pattern)
    return re.compile("^" + "(.+)".join(re.escape(part) for part in parts) + "$")


class MeasureRegistry:
    """Name -> measure metadata, with templates expanded and compiled once."""

    def __init__(self, measure_info: Mapping[str, Any]) -> None:
        self._entries: dict[str, Mapping[str, Any]] = {}
        self._resolved: dict[str, tuple[str, str]] = {}
        self._templates: list[tuple[re.Pattern[str], Mapping[str, Any]]] = []
        self._find_cache: dict[str, Mapping[str, Any] | None] = {}

        for name, info in measure_info.items():
            if name == REFERENCES_KEY or not isinstance(info, Mapping):
                continue
            self._entries[name] = info
            if "{" in name and "short_name" in info:
                self._templates.append((_template_regex(name), info))
            if "category" in info:
                self._register_labels(name, info)

    def _register_labels(self, name: str, info: Mapping[str, Any]) -> None:
        category = str(info.get("category") or FALLBACK_CATEGORY)
        short_name = str(info.get("short_name") or name)
        if "{" not in name:
            self._resolved[name] = (short_name, category)
            return

        variants = info.get("variants") or {}
        categories = info.get("categories") or {}
        variant_items: list[tuple[str | None, Mapping[str, Any] | None]] = (
            list(variants.items()) if variants else [(None, None)]
        )
        category_items: list[tuple[str | None, Mapping[str, Any] | None]] = (
            list(categories.items()) if categories else [(None, None)]
        )
        if not variants and not categories:
            return
        for variant_key, variant_meta in variant_items:
            for category_key, category_meta in category_items:
                label = resolve_label(short_name, variant_meta, category_meta)
                for expanded in expand_names(name, variant_key, category_key):
                    self._resolved[expanded] = (label, category)

    def resolve(self, name: str) -> ResolvedVariable:
        label, category = self._resolved.get(name, (fallback_label(name), FALLBACK_CATEGORY))
        return ResolvedVariable(name=name, label=label, category=category)

    def resolve_variables(self, names: Iterable[str]) -> list[ResolvedVariable]:
        return [self.resolve(name) for name in names]

    def find(self, name: str) -> Mapping[str, Any] | None:
        if name in self._find_cache:
            return self._find_cache[name]
        found: Mapping[str, Any] | None = None
        direct = self._entries.get(name)
        if direct is not None and "short_name" in direct:
            found = direct
        else:
            for pattern, info in self._templates:
                if pattern.match(name):
                    found = info
                    break
        self._find_cache[name] = found
        return found

    def render_statement(
        self,
        name: str,
        region_name: str,
        value: float | None,
        digits: int = 2,
    ) -> str | None:
        """Fill a measure's statement template for one region, if it has one."""
        info = self.find(name)
        statement = info.get("statement") if info else None
        if not statement:
            return None
        formatted = "NA" if value is None else f"{value:.{digits}f}"
        return (
            str(statement)
            .replace("{features.name}", region_name, 1)
            .replace("{value}", formatted, 1)
        )


def group_by_category(variables: Iterable[ResolvedVariable]) -> list[dict[str, Any]]:
    groups: dict[str, list[dict[str, str]]] = {}
    for variable in variables:
        groups.setdefault(variable.category, []).append(
            {"name": variable.name, "label": variable.label}
        )
    return [
        {"category": category, "variables": sorted(members, key=lambda item: item["label"])}
        for category, members in sorted(groups.items())
    ]
