from __future__ import annotations

from typing import Iterable, Optional

from ..core.enums import EnrollmentStatus
from ..store import AnyOf, RecordStore
from ..store.collections import CLASSES, ENROLLMENTS
from .model import Enrollment, SchoolClass


class ClassRepository:
    def __init__(self, store: RecordStore):
        self._store = store

    def get_by_id(self, class_id: str) -> Optional[SchoolClass]:
        r = self._store.find_one(CLASSES, {"id": class_id})
        return SchoolClass.from_row(r) if r else None

    def list_ids_for_teacher(self, teacher_id: str) -> list[str]:
        rows = self._store.find(CLASSES, {"teacher_id": teacher_id, "is_deleted": False})
        return [r["id"] for r in rows]


class EnrollmentRepository:
    def __init__(self, store: RecordStore):
        self._store = store

    def list_active(self, class_id: str, student_ids: Optional[Iterable[str]] = None) -> list[Enrollment]:
        where = {"class_id": class_id, "status": EnrollmentStatus.ACTIVE.value, "is_deleted": False}
        if student_ids is not None:
            where["student_id"] = AnyOf(sorted(set(student_ids)))
        rows = self._store.find(ENROLLMENTS, where, order_by=("date_joined",))
        return [Enrollment.from_row(r) for r in rows]
