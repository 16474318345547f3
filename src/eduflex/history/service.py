from __future__ import annotations

import csv
import io

from ..attendance.repository import AttendanceRepository
from ..classes.service import RosterService
from ..common.datetime_utils import format_month, month_window, parse_iso_datetime, parse_month, range_window, to_iso
from ..core.constants import ATTENDANCE_WARNING_RATE
from ..core.exceptions import ValidationError
from ..fees.repository import FeeRepository
from ..tutes.repository import TuteAssignmentRepository, TuteRepository
from ..users.model import Caller
from ..users.service import ReferenceResolver
from .matrix import AttendanceMatrix, attendance_matrix, fee_matrix, tute_matrix


class HistoryService:
    """Monthly grids for the attendance, fee and tute screens.

    All month boundaries come from ``month_window`` so the grids cover exactly
    the records the tute syncer considers part of that month.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        fees: FeeRepository,
        tutes: TuteRepository,
        assignments: TuteAssignmentRepository,
        roster: RosterService,
        refs: ReferenceResolver,
    ):
        self._attendance = attendance
        self._fees = fees
        self._tutes = tutes
        self._assignments = assignments
        self._roster = roster
        self._refs = refs

    @staticmethod
    def _window(month=None, start=None, end=None):
        if month:
            return month_window(parse_month(month))
        if start and end:
            return range_window(parse_iso_datetime(start), parse_iso_datetime(end))
        raise ValidationError("Please provide month, or startDate and endDate")

    def attendance_grid(self, caller: Caller, *, class_id: str, month=None, start=None, end=None) -> AttendanceMatrix:
        self._roster.require_class(class_id, caller)
        start_dt, end_dt = self._window(month, start, end)
        records = self._attendance.list_range(start=start_dt, end=end_dt, class_ids=[class_id])
        return attendance_matrix(records, roster=self._roster.active_student_ids(class_id))

    def attendance_history(self, caller: Caller, *, class_id: str, month=None, start=None, end=None) -> dict:
        start_dt, end_dt = self._window(month, start, end)
        grid = self.attendance_grid(caller, class_id=class_id, month=month, start=start, end=end)
        refs = self._refs.resolve(user_ids=[r.student_id for r in grid.rows], class_ids=[class_id])
        return {
            "class": refs.school_class(class_id),
            "startDate": to_iso(start_dt),
            "endDate": to_iso(end_dt),
            "days": grid.days,
            "students": [
                {
                    "student": refs.user(row.student_id),
                    "cells": row.cells,
                    "present": row.present,
                    "total": row.total,
                    "rate": row.rate,
                    "belowThreshold": row.rate < ATTENDANCE_WARNING_RATE,
                }
                for row in grid.rows
            ],
        }

    def attendance_csv(self, caller: Caller, *, class_id: str, month=None, start=None, end=None) -> str:
        grid = self.attendance_grid(caller, class_id=class_id, month=month, start=start, end=end)
        refs = self._refs.resolve(user_ids=[r.student_id for r in grid.rows])

        out = io.StringIO()
        writer = csv.writer(out)
        writer.writerow(["student_code", "student_name", *grid.days, "present", "total", "rate"])
        for row in grid.rows:
            summary = refs.users.get(row.student_id)
            marks = ["" if row.cells[d] is None else ("P" if row.cells[d] else "A") for d in grid.days]
            writer.writerow(
                [
                    summary.user_code if summary else row.student_id,
                    summary.full_name if summary else "",
                    *marks,
                    row.present,
                    row.total,
                    row.rate,
                ]
            )
        return out.getvalue()

    def fee_history(self, caller: Caller, *, class_id: str, month) -> dict:
        self._roster.require_class(class_id, caller)
        first = parse_month(month)
        start_dt, end_dt = month_window(first)

        records = self._fees.list_range(start=start_dt, end=end_dt, class_ids=[class_id])
        grid = fee_matrix(records, roster=self._roster.active_student_ids(class_id))
        refs = self._refs.resolve(user_ids=[r.student_id for r in grid.rows], class_ids=[class_id])
        return {
            "class": refs.school_class(class_id),
            "month": format_month(first),
            "days": grid.days,
            "students": [
                {"student": refs.user(row.student_id), "cells": row.cells, "total": row.total} for row in grid.rows
            ],
            "total": grid.total,
        }

    def tute_history(self, caller: Caller, *, class_id: str, month) -> dict:
        self._roster.require_class(class_id, caller)
        first = parse_month(month)
        start_dt, end_dt = month_window(first)

        assignments = self._assignments.list_in_window(class_id=class_id, start=start_dt, end=end_dt)
        grid = tute_matrix(assignments, roster=self._roster.active_student_ids(class_id))
        refs = self._refs.resolve(user_ids=[r.student_id for r in grid.rows], class_ids=[class_id])
        tutes = self._tutes.get_live_by_ids({a.tute_id for a in assignments})
        return {
            "class": refs.school_class(class_id),
            "month": format_month(first),
            "days": grid.days,
            "tutes": [t.to_summary() for t in sorted(tutes.values(), key=lambda t: t.title)],
            "students": [
                {
                    "student": refs.user(row.student_id),
                    "cells": {d: {"count": c.count, "tutes": c.tute_ids} for d, c in row.cells.items()},
                    "count": row.count,
                }
                for row in grid.rows
            ],
        }

    def csv_filename(self, class_id: str, *, month=None, start=None, end=None) -> str:
        start_dt, end_dt = self._window(month, start, end)
        return f"attendance_{class_id}_{start_dt.strftime('%Y%m%d')}_{end_dt.strftime('%Y%m%d')}.csv"
