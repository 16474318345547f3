from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..common.batch import apply_batch
from ..store import AnyOf, Between, BulkResult, Deadline, RecordStore, WriteOp
from ..store.collections import TUTE_ASSIGNMENTS, TUTES
from .model import Tute, TuteAssignment


class TuteRepository:
    def __init__(self, store: RecordStore):
        self._store = store

    def get_by_id(self, tute_id: str) -> Optional[Tute]:
        r = self._store.find_one(TUTES, {"id": tute_id})
        return Tute.from_row(r) if r else None

    def get_live_by_ids(self, tute_ids: Iterable[str]) -> dict[str, Tute]:
        ids = list(tute_ids)
        if not ids:
            return {}
        rows = self._store.find(TUTES, {"id": AnyOf(ids), "is_deleted": False})
        return {r["id"]: Tute.from_row(r) for r in rows}

    def list_live(self, *, grade: Optional[str] = None, month: Optional[str] = None) -> list[Tute]:
        where: dict = {"is_deleted": False}
        if grade:
            where["grade"] = grade
        if month:
            where["month"] = month
        rows = self._store.find(TUTES, where, order_by=("month", "title"))
        return [Tute.from_row(r) for r in rows]

    def create(self, values: dict, *, deadline: Optional[Deadline] = None) -> Tute:
        return Tute.from_row(self._store.insert(TUTES, values, deadline=deadline))


class TuteAssignmentRepository:
    def __init__(self, store: RecordStore):
        self._store = store

    def get_by_id(self, assignment_id: str) -> Optional[TuteAssignment]:
        r = self._store.find_one(TUTE_ASSIGNMENTS, {"id": assignment_id})
        return TuteAssignment.from_row(r) if r else None

    def list_in_window(
        self,
        *,
        class_id: str,
        start: datetime,
        end: datetime,
        student_id: Optional[str] = None,
    ) -> list[TuteAssignment]:
        where: dict = {"class_id": class_id, "assigned_at": Between(start, end)}
        if student_id:
            where["student_id"] = student_id
        rows = self._store.find(TUTE_ASSIGNMENTS, where, order_by=("assigned_at", "student_id"))
        return [TuteAssignment.from_row(r) for r in rows]

    def apply(self, ops: Sequence[WriteOp], *, deadline: Optional[Deadline] = None, label: str) -> BulkResult:
        return apply_batch(self._store, TUTE_ASSIGNMENTS, ops, deadline=deadline, label=label)

    def update_status(self, assignment_id: str, status: str, *, deadline: Optional[Deadline] = None) -> Optional[TuteAssignment]:
        r = self._store.update_by_id(TUTE_ASSIGNMENTS, assignment_id, {"status": status}, deadline=deadline)
        return TuteAssignment.from_row(r) if r else None
