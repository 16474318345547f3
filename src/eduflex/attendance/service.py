from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional, Sequence

from ..classes.service import RosterService
from ..common.datetime_utils import day_window, now_local, parse_iso_datetime, range_window, start_of_day
from ..core.exceptions import NotFoundError, ValidationError
from ..store import Deadline, InsertOne, UpdateOne
from ..users.model import Caller
from ..users.service import ReferenceResolver
from .model import AttendanceEntry, AttendanceMarkResult, AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def last_entry_per_student(entries: Iterable[AttendanceEntry]) -> list[AttendanceEntry]:
    latest: dict[str, AttendanceEntry] = {}
    for e in entries:
        latest.pop(e.student_id, None)
        latest[e.student_id] = e
    return list(latest.values())


class AttendanceService:
    """Daily attendance reconciliation for a class session."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        roster: RosterService,
        refs: ReferenceResolver,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._roster = roster
        self._refs = refs
        self._clock = clock

    def mark_bulk(
        self,
        caller: Caller,
        *,
        class_id: str,
        session_date,
        entries: Sequence[AttendanceEntry],
        deadline: Optional[Deadline] = None,
    ) -> AttendanceMarkResult:
        """Converge the class's attendance for one day to the submitted entries.

        Students without an active enrollment are skipped. Existing records for
        the day are updated in place; missing ones are created. All writes go
        out as a single batch.
        """

        day = parse_iso_datetime(session_date)
        self._roster.require_class(class_id, caller)

        part = self._roster.partition(class_id, last_entry_per_student(entries), student_of=lambda e: e.student_id)
        existing = self._attendance.find_for_day(
            class_id=class_id,
            student_ids=[e.student_id for e in part.valid],
            day=day,
        )

        ops = []
        for e in part.valid:
            current = existing.get(e.student_id)
            if current:
                changes: dict = {"is_present": e.is_present}
                if e.notes is not None:
                    changes["notes"] = e.notes
                ops.append(UpdateOne(current.attendance_id, changes))
            else:
                ops.append(
                    InsertOne(
                        {
                            "student_id": e.student_id,
                            "class_id": class_id,
                            "session_date": start_of_day(day),
                            "is_present": e.is_present,
                            "notes": e.notes,
                            "marked_by": caller.user_id,
                        }
                    )
                )

        result = self._attendance.apply(ops, deadline=deadline, label="attendance bulk mark")
        records = self._attendance.get_by_ids(result.inserted_ids + result.modified_ids)

        logger.info(
            "attendance class=%s day=%s created=%d updated=%d skipped=%d",
            class_id,
            day.date().isoformat(),
            len(result.inserted_ids),
            len(result.modified_ids),
            len(part.skipped),
        )
        return AttendanceMarkResult(
            records=records,
            created=len(result.inserted_ids),
            updated=len(result.modified_ids),
            skipped=[e.student_id for e in part.skipped],
        )

    def mark_one(
        self,
        caller: Caller,
        *,
        class_id: str,
        session_date,
        entry: AttendanceEntry,
        deadline: Optional[Deadline] = None,
    ) -> AttendanceRecord:
        day = parse_iso_datetime(session_date)
        self._roster.require_class(class_id, caller)
        if not self._roster.is_enrolled(class_id, entry.student_id):
            raise ValidationError("Student is not enrolled in this class")

        result = self.mark_bulk(caller, class_id=class_id, session_date=day, entries=[entry], deadline=deadline)
        if not result.records:
            raise ValidationError("Student is not enrolled in this class")
        return result.records[0]

    def list_records(
        self,
        caller: Caller,
        *,
        class_id: Optional[str] = None,
        start=None,
        end=None,
        session_date=None,
        student_id: Optional[str] = None,
    ) -> list[AttendanceRecord]:
        if session_date:
            start_dt, end_dt = day_window(parse_iso_datetime(session_date))
        elif start and end:
            start_dt, end_dt = range_window(parse_iso_datetime(start), parse_iso_datetime(end))
        else:
            raise ValidationError("Please provide startDate and endDate, or sessionDate")

        if class_id:
            self._roster.require_class(class_id, caller)
            class_ids: Optional[list[str]] = [class_id]
        else:
            class_ids = self._roster.visible_class_ids(caller)

        return self._attendance.list_range(start=start_dt, end=end_dt, class_ids=class_ids, student_id=student_id)

    def delete(self, caller: Caller, attendance_id: str, *, deadline: Optional[Deadline] = None) -> None:
        record = self._attendance.get_by_id(attendance_id)
        if not record or record.is_deleted:
            raise NotFoundError("Attendance record not found")
        self._roster.require_class(record.class_id, caller)

        if not self._attendance.soft_delete(attendance_id, now=self._clock(), deadline=deadline):
            raise NotFoundError("Attendance record not found")
        logger.info("attendance %s deleted by %s", attendance_id, caller.user_id)

    def present(self, records: Sequence[AttendanceRecord]) -> list[dict]:
        """Records as JSON-ready dicts with student/class/markedBy display fields."""

        refs = self._refs.resolve(
            user_ids=[u for r in records for u in (r.student_id, r.marked_by)],
            class_ids=[r.class_id for r in records],
        )
        return [r.to_dict(refs) for r in records]
