from __future__ import annotations

import pytest

from health_atlas.build.time_axis import TimeAxis, build_time_axis


def test_build_time_axis_sorts_and_deduplicates() -> None:
    axis = build_time_axis(["2021", "2019", "2020", "2019", "bad", ""])

    assert axis.values == (2019, 2020, 2021)
    assert len(axis) == 3
    assert axis.offset(2019) == 0
    assert axis.offset(2021) == 2
    assert axis.label(1) == 2020


def test_offsets_resolve_by_lookup_when_axis_has_gaps() -> None:
    axis = build_time_axis([2015, 2017, 2018])

    assert axis.offset(2017) == 1
    assert axis.offset(2016) is None
    assert axis.label(3) is None
    assert axis.label(-1) is None
    assert axis.gaps() == [2016]
    assert not axis.is_contiguous


def test_require_contiguous_names_missing_labels() -> None:
    axis = build_time_axis([2010, 2013])

    with pytest.raises(ValueError, match="2011, 2012"):
        axis.require_contiguous()

    build_time_axis([2010, 2011]).require_contiguous()


def test_empty_axis_is_contiguous() -> None:
    axis = build_time_axis([])

    assert len(axis) == 0
    assert axis.is_contiguous
    assert axis.gaps() == []


def test_time_axis_rejects_unsorted_values() -> None:
    with pytest.raises(ValueError, match="strictly increasing"):
        TimeAxis(values=(2020, 2019))
