from __future__ import annotations

from health_atlas.meta.measure_info import (
    MeasureRegistry,
    ResolvedVariable,
    expand_names,
    fallback_label,
    group_by_category,
    resolve_label,
)


def _measure_info() -> dict[str, object]:
    return {
        "_references": {"acs": {"title": "American Community Survey"}},
        "pop": {
            "short_name": "Population",
            "category": "Demographics",
            "statement": "{features.name} had {value} residents",
        },
        "rate_{variant.name}_{category.name}": {
            "short_name": "{variant} rate among {category}",
            "category": "Health",
            "variants": {"crude": {"default": "Crude"}},
            "categories": {"all": {"default": "everyone"}, "women": {"default": "women"}},
        },
    }


def test_expand_names_allows_blank_and_all_to_collapse() -> None:
    assert expand_names("rate_{variant}_{category}", "crude", "women") == ["rate_crude_women"]
    assert expand_names("rate_{variant}_{category}", "crude", "all") == [
        "rate_crude_",
        "rate_crude_all",
    ]
    assert expand_names("{variant.name}rate", "blank", None) == ["rate", "blankrate"]


def test_resolve_label_fills_and_tidies_template() -> None:
    assert resolve_label("{variant} rate among {category}", {"default": "Crude"}, None) == (
        "Crude rate among"
    )
    assert resolve_label("{variant}", None, None) == "{variant}"
    assert fallback_label("median_household_income") == "Median Household Income"


def test_registry_resolves_direct_and_templated_names() -> None:
    registry = MeasureRegistry(_measure_info())

    assert registry.resolve("pop") == ResolvedVariable("pop", "Population", "Demographics")
    assert registry.resolve("rate_crude_women").label == "Crude rate among women"
    assert registry.resolve("rate_crude_all").label == "Crude rate among everyone"
    assert registry.resolve("rate_crude_").category == "Health"
    assert registry.resolve("median_income") == ResolvedVariable(
        "median_income", "Median Income", "Other"
    )


def test_registry_find_matches_templates_and_memoizes() -> None:
    registry = MeasureRegistry(_measure_info())

    found = registry.find("rate_crude_women")

    assert found is not None
    assert found["category"] == "Health"
    assert registry.find("rate_crude_women") is found
    assert registry.find("_references") is None
    assert registry.find("unknown") is None


def test_render_statement_formats_value() -> None:
    registry = MeasureRegistry(_measure_info())

    assert registry.render_statement("pop", "Accomack", 1234.5) == "Accomack had 1234.50 residents"
    assert registry.render_statement("pop", "Accomack", None) == "Accomack had NA residents"
    assert registry.render_statement("pop", "Accomack", 3, digits=0) == "Accomack had 3 residents"
    assert registry.render_statement("rate_crude_women", "Accomack", 1.0) is None


def test_group_by_category_sorts_groups_and_labels() -> None:
    registry = MeasureRegistry(_measure_info())

    groups = group_by_category(
        registry.resolve_variables(["rate_crude_women", "pop", "rate_crude_all", "zeta"])
    )

    assert [group["category"] for group in groups] == ["Demographics", "Health", "Other"]
    assert [item["label"] for item in groups[1]["variables"]] == [
        "Crude rate among everyone",
        "Crude rate among women",
    ]
