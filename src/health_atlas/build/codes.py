from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Iterable, Mapping

LOGGER = logging.getLogger(__name__)

CODE_PREFIX = "X"
# X1 is reserved for the time axis.
FIRST_VARIABLE_SLOT = 2

_CODE_PATTERN = re.compile(rf"^{CODE_PREFIX}(\d+)$")


def _slot(code: str) -> int:
    match = _CODE_PATTERN.match(code)
    if match is None or int(match.group(1)) < FIRST_VARIABLE_SLOT:
        raise ValueError(f"invalid compact id: {code!r}")
    return int(match.group(1))


class CodeRegistry:
    """Persistent variable name -> compact id mapping.

    Known names keep their id across builds; new names take the next free slot,
    so a fresh registry assigns ``X2, X3, ...`` in declaration order.
    """

    def __init__(self, codes: Mapping[str, str] | None = None) -> None:
        self._codes: dict[str, str] = {}
        self._names: dict[str, str] = {}
        self._next_slot = FIRST_VARIABLE_SLOT
        for name, code in (codes or {}).items():
            self._register(name, code)

    def _register(self, name: str, code: str) -> None:
        slot = _slot(code)
        if code in self._names and self._names[code] != name:
            raise ValueError(
                f"compact id {code} is assigned to both {self._names[code]!r} and {name!r}"
            )
        self._codes[name] = code
        self._names[code] = name
        self._next_slot = max(self._next_slot, slot + 1)

    def __contains__(self, name: object) -> bool:
        return name in self._codes

    def __len__(self) -> int:
        return len(self._codes)

    def code_for(self, name: str) -> str:
        code = self._codes.get(name)
        if code is None:
            code = f"{CODE_PREFIX}{self._next_slot}"
            self._register(name, code)
        return code

    def assign(self, names: Iterable[str]) -> dict[str, str]:
        return {name: self.code_for(name) for name in names}

    def name_for(self, code: str) -> str | None:
        return self._names.get(code)

    def as_dict(self) -> dict[str, str]:
        return dict(self._codes)

    @classmethod
    def load(cls, path: Path) -> CodeRegistry:
        if not path.exists():
            return cls()
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle) or {}
        if not isinstance(payload, Mapping):
            raise ValueError("code registry file must contain a mapping/object")
        LOGGER.info("Loaded %d compact ids from %s", len(payload), path)
        return cls({str(name): str(code) for name, code in payload.items()})

    def save(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self._codes, indent=2), encoding="utf-8")
        return path
