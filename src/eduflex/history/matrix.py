"""Month grids built from already-fetched records.

Pure functions: no store access, so the same records always give the same grid.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..fees.model import FeeRecord
from ..tutes.model import TuteAssignment


def _day(value: datetime) -> str:
    d = value.date() if isinstance(value, datetime) else value
    return d.isoformat()


def attendance_rate(present: int, total: int) -> int:
    """Whole percent, halves rounded up; 0 when nothing was recorded."""

    if total <= 0:
        return 0
    return (present * 200 + total) // (2 * total)


def student_order(roster: Sequence[str], recorded: Iterable[str]) -> list[str]:
    """Roster order first, then students that only appear in the records."""

    out = list(dict.fromkeys(roster))
    known = set(out)
    out.extend(sorted({s for s in recorded if s not in known}))
    return out


@dataclass(frozen=True)
class AttendanceRow:
    student_id: str
    cells: dict[str, Optional[bool]]
    present: int
    total: int

    @property
    def rate(self) -> int:
        return attendance_rate(self.present, self.total)


@dataclass(frozen=True)
class AttendanceMatrix:
    days: list[str]
    rows: list[AttendanceRow]


def attendance_matrix(records: Sequence[AttendanceRecord], *, roster: Sequence[str] = ()) -> AttendanceMatrix:
    """Per-student presence for every day that has at least one record."""

    marks: dict[str, dict[str, bool]] = {}
    for r in sorted(records, key=lambda x: (x.session_date, x.created_at or x.session_date)):
        if r.is_deleted:
            continue
        marks.setdefault(r.student_id, {})[_day(r.session_date)] = r.is_present

    days = sorted({d for per_student in marks.values() for d in per_student})
    rows = []
    for student_id in student_order(roster, marks):
        own = marks.get(student_id, {})
        rows.append(
            AttendanceRow(
                student_id=student_id,
                cells={d: own.get(d) for d in days},
                present=sum(1 for v in own.values() if v),
                total=len(own),
            )
        )
    return AttendanceMatrix(days=days, rows=rows)


@dataclass(frozen=True)
class FeeRow:
    student_id: str
    cells: dict[str, float]

    @property
    def total(self) -> float:
        return round(sum(self.cells.values()), 2)


@dataclass(frozen=True)
class FeeMatrix:
    days: list[str]
    rows: list[FeeRow]

    @property
    def total(self) -> float:
        return round(sum(r.total for r in self.rows), 2)


def fee_matrix(records: Sequence[FeeRecord], *, roster: Sequence[str] = ()) -> FeeMatrix:
    """Per-student amount paid on each day, plus the student's sum."""

    paid: dict[str, dict[str, float]] = {}
    for r in records:
        if r.is_deleted:
            continue
        cells = paid.setdefault(r.student_id, {})
        day = _day(r.payment_date)
        cells[day] = cells.get(day, 0.0) + float(r.amount)

    days = sorted({d for cells in paid.values() for d in cells})
    rows = [FeeRow(student_id=s, cells=dict(sorted(paid.get(s, {}).items()))) for s in student_order(roster, paid)]
    return FeeMatrix(days=days, rows=rows)


@dataclass(frozen=True)
class TuteCell:
    tute_ids: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.tute_ids)


@dataclass(frozen=True)
class TuteRow:
    student_id: str
    cells: dict[str, TuteCell]

    @property
    def count(self) -> int:
        return sum(c.count for c in self.cells.values())


@dataclass(frozen=True)
class TuteMatrix:
    days: list[str]
    rows: list[TuteRow]


def tute_matrix(assignments: Sequence[TuteAssignment], *, roster: Sequence[str] = ()) -> TuteMatrix:
    """Which tutes each student was handed on each day."""

    handed: dict[str, dict[str, TuteCell]] = {}
    for a in sorted(assignments, key=lambda x: x.assigned_at):
        cells = handed.setdefault(a.student_id, {})
        cells.setdefault(_day(a.assigned_at), TuteCell()).tute_ids.append(a.tute_id)

    days = sorted({d for cells in handed.values() for d in cells})
    rows = [TuteRow(student_id=s, cells=dict(sorted(handed.get(s, {}).items()))) for s in student_order(roster, handed)]
    return TuteMatrix(days=days, rows=rows)
