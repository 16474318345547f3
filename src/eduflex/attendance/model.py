from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import to_iso
from ..users.service import References


@dataclass(frozen=True)
class AttendanceRecord:
    """One student's presence for one class session day."""

    attendance_id: str
    student_id: str
    class_id: str
    session_date: datetime
    is_present: bool
    notes: Optional[str] = None
    marked_by: Optional[str] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, r: dict) -> "AttendanceRecord":
        return cls(
            attendance_id=r["id"],
            student_id=r["student_id"],
            class_id=r["class_id"],
            session_date=r["session_date"],
            is_present=bool(r.get("is_present")),
            notes=r.get("notes"),
            marked_by=r.get("marked_by"),
            is_deleted=bool(r.get("is_deleted")),
            deleted_at=r.get("deleted_at"),
            created_at=r.get("created_at"),
            updated_at=r.get("updated_at"),
        )

    def to_dict(self, refs: Optional[References] = None) -> dict:
        refs = refs or References()
        return {
            "_id": self.attendance_id,
            "student": refs.user(self.student_id),
            "class": refs.school_class(self.class_id),
            "sessionDate": to_iso(self.session_date),
            "isPresent": self.is_present,
            "notes": self.notes,
            "markedBy": refs.user(self.marked_by),
            "isDeleted": self.is_deleted,
            "deletedAt": to_iso(self.deleted_at),
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }


@dataclass(frozen=True)
class AttendanceEntry:
    student_id: str
    is_present: bool = True
    notes: Optional[str] = None


@dataclass(frozen=True)
class AttendanceMarkResult:
    records: list[AttendanceRecord] = field(default_factory=list)
    created: int = 0
    updated: int = 0
    skipped: list[str] = field(default_factory=list)
