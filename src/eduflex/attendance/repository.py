from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from ..common.batch import apply_batch
from ..common.datetime_utils import day_window
from ..store import AnyOf, Between, BulkResult, Deadline, RecordStore, UpdateOne, WriteOp
from ..store.collections import ATTENDANCE
from .model import AttendanceRecord


class AttendanceRepository:
    def __init__(self, store: RecordStore):
        self._store = store

    def get_by_id(self, attendance_id: str) -> Optional[AttendanceRecord]:
        r = self._store.find_one(ATTENDANCE, {"id": attendance_id})
        return AttendanceRecord.from_row(r) if r else None

    def get_by_ids(self, attendance_ids: Iterable[str]) -> list[AttendanceRecord]:
        ids = list(attendance_ids)
        if not ids:
            return []
        rows = self._store.find(ATTENDANCE, {"id": AnyOf(ids)}, order_by=("student_id",))
        return [AttendanceRecord.from_row(r) for r in rows]

    def find_for_day(self, *, class_id: str, student_ids: Sequence[str], day: date) -> dict[str, AttendanceRecord]:
        """Live records of the given students on the given day, keyed by student."""

        if not student_ids:
            return {}
        start, end = day_window(day)
        rows = self._store.find(
            ATTENDANCE,
            {
                "class_id": class_id,
                "student_id": AnyOf(student_ids),
                "session_date": Between(start, end),
                "is_deleted": False,
            },
            order_by=("created_at",),
        )
        out: dict[str, AttendanceRecord] = {}
        for r in rows:
            out.setdefault(r["student_id"], AttendanceRecord.from_row(r))
        return out

    def list_range(
        self,
        *,
        start: datetime,
        end: datetime,
        class_ids: Optional[Sequence[str]] = None,
        student_id: Optional[str] = None,
    ) -> list[AttendanceRecord]:
        where: dict = {"session_date": Between(start, end), "is_deleted": False}
        if class_ids is not None:
            where["class_id"] = AnyOf(class_ids)
        if student_id:
            where["student_id"] = student_id
        rows = self._store.find(ATTENDANCE, where, order_by=("-session_date", "-created_at"))
        return [AttendanceRecord.from_row(r) for r in rows]

    def apply(self, ops: Sequence[WriteOp], *, deadline: Optional[Deadline] = None, label: str) -> BulkResult:
        return apply_batch(self._store, ATTENDANCE, ops, deadline=deadline, label=label)

    def soft_delete(self, attendance_id: str, *, now: datetime, deadline: Optional[Deadline] = None) -> bool:
        result = self.apply(
            [UpdateOne(attendance_id, {"is_deleted": True, "deleted_at": now})],
            deadline=deadline,
            label="attendance delete",
        )
        return bool(result.modified_ids)
