from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from ..common.batch import apply_batch
from ..common.datetime_utils import day_window
from ..store import AnyOf, Between, BulkResult, Deadline, RecordStore, UpdateOne, WriteOp
from ..store.collections import FEES
from .model import FeeRecord


class FeeRepository:
    def __init__(self, store: RecordStore):
        self._store = store

    def get_by_id(self, fee_id: str) -> Optional[FeeRecord]:
        r = self._store.find_one(FEES, {"id": fee_id})
        return FeeRecord.from_row(r) if r else None

    def get_by_ids(self, fee_ids: Iterable[str]) -> list[FeeRecord]:
        ids = list(fee_ids)
        if not ids:
            return []
        rows = self._store.find(FEES, {"id": AnyOf(ids)}, order_by=("student_id",))
        return [FeeRecord.from_row(r) for r in rows]

    def find_for_day(self, *, class_id: str, student_ids: Sequence[str], day: date) -> dict[str, FeeRecord]:
        if not student_ids:
            return {}
        start, end = day_window(day)
        rows = self._store.find(
            FEES,
            {
                "class_id": class_id,
                "student_id": AnyOf(student_ids),
                "payment_date": Between(start, end),
                "is_deleted": False,
            },
            order_by=("created_at",),
        )
        out: dict[str, FeeRecord] = {}
        for r in rows:
            out.setdefault(r["student_id"], FeeRecord.from_row(r))
        return out

    def list_range(
        self,
        *,
        start: datetime,
        end: datetime,
        class_ids: Optional[Sequence[str]] = None,
        student_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> list[FeeRecord]:
        where: dict = {"payment_date": Between(start, end), "is_deleted": False}
        if class_ids is not None:
            where["class_id"] = AnyOf(class_ids)
        if student_id:
            where["student_id"] = student_id
        if status:
            where["status"] = status
        rows = self._store.find(FEES, where, order_by=("-payment_date", "-created_at"))
        return [FeeRecord.from_row(r) for r in rows]

    def apply(self, ops: Sequence[WriteOp], *, deadline: Optional[Deadline] = None, label: str) -> BulkResult:
        return apply_batch(self._store, FEES, ops, deadline=deadline, label=label)

    def soft_delete(self, fee_id: str, *, now: datetime, deadline: Optional[Deadline] = None) -> bool:
        result = self.apply(
            [UpdateOne(fee_id, {"is_deleted": True, "deleted_at": now})],
            deadline=deadline,
            label="fee delete",
        )
        return bool(result.modified_ids)
