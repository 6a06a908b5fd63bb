from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from health_atlas.preprocess.values import parse_time_label

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeAxis:
    """Sorted, de-duplicated time labels observed in one dataset.

    Offsets are positions in ``values``. They are resolved by lookup, so an axis
    with holes (e.g. no rows for one year) still maps every label correctly.
    """

    values: tuple[int, ...]
    _index: dict[int, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if any(b <= a for a, b in zip(self.values, self.values[1:])):
            raise ValueError("time axis must be strictly increasing")
        object.__setattr__(self, "_index", {value: idx for idx, value in enumerate(self.values)})

    def __len__(self) -> int:
        return len(self.values)

    def offset(self, label: int) -> int | None:
        return self._index.get(label)

    def label(self, offset: int) -> int | None:
        if 0 <= offset < len(self.values):
            return self.values[offset]
        return None

    def gaps(self) -> list[int]:
        missing: list[int] = []
        for a, b in zip(self.values, self.values[1:]):
            missing.extend(range(a + 1, b))
        return missing

    @property
    def is_contiguous(self) -> bool:
        return not self.values or self.values[-1] - self.values[0] == len(self.values) - 1

    def require_contiguous(self) -> None:
        if not self.is_contiguous:
            gaps = ", ".join(str(label) for label in self.gaps())
            raise ValueError(f"time axis has gaps at: {gaps}")


def build_time_axis(labels: Iterable[Any]) -> TimeAxis:
    parsed: set[int] = set()
    skipped = 0
    for label in labels:
        value = parse_time_label(label)
        if value is None:
            skipped += 1
            continue
        parsed.add(value)
    if skipped:
        LOGGER.debug("Skipped %d rows with unparseable time labels", skipped)
    return TimeAxis(values=tuple(sorted(parsed)))
