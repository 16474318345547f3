from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence


@dataclass(frozen=True)
class Between:
    """Inclusive range filter."""

    start: Any
    end: Any

    def contains(self, value: Any) -> bool:
        return value is not None and self.start <= value <= self.end


@dataclass(frozen=True)
class AnyOf:
    values: tuple

    def __init__(self, values: Iterable[Any]):
        object.__setattr__(self, "values", tuple(values))

    def contains(self, value: Any) -> bool:
        return value in self.values


def matches(record: Mapping[str, Any], where: Optional[Mapping[str, Any]]) -> bool:
    for field, expected in (where or {}).items():
        value = record.get(field)
        if isinstance(expected, (Between, AnyOf)):
            if not expected.contains(value):
                return False
        elif value != expected:
            return False
    return True


def sort_records(records: list[dict], order_by: Sequence[str]) -> list[dict]:
    """Sort by ``field`` / ``-field`` keys; missing values sort first."""

    out = list(records)
    for key in reversed(list(order_by)):
        field = key.lstrip("-")
        out.sort(
            key=lambda r: (r.get(field) is not None, r.get(field) if r.get(field) is not None else 0),
            reverse=key.startswith("-"),
        )
    return out
