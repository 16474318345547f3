from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import to_iso
from ..core.enums import TuteAssignmentStatus
from ..users.service import References


@dataclass(frozen=True)
class Tute:
    """Teaching material for one grade and month, handed to students individually."""

    tute_id: str
    title: str
    grade: str
    month: str
    description: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    created_by: Optional[str] = None
    is_deleted: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, r: dict) -> "Tute":
        return cls(
            tute_id=r["id"],
            title=r.get("title") or "",
            grade=str(r.get("grade") or ""),
            month=r.get("month") or "",
            description=r.get("description"),
            file_url=r.get("file_url"),
            file_name=r.get("file_name"),
            created_by=r.get("created_by"),
            is_deleted=bool(r.get("is_deleted")),
            created_at=r.get("created_at"),
            updated_at=r.get("updated_at"),
        )

    def to_summary(self) -> dict:
        return {"_id": self.tute_id, "title": self.title, "grade": self.grade, "month": self.month}

    def to_dict(self, refs: Optional[References] = None) -> dict:
        refs = refs or References()
        return {
            **self.to_summary(),
            "description": self.description,
            "fileUrl": self.file_url,
            "fileName": self.file_name,
            "createdBy": refs.user(self.created_by),
            "isDeleted": self.is_deleted,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }


@dataclass(frozen=True)
class TuteAssignment:
    assignment_id: str
    student_id: str
    class_id: str
    tute_id: str
    assigned_at: datetime
    status: TuteAssignmentStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, r: dict) -> "TuteAssignment":
        return cls(
            assignment_id=r["id"],
            student_id=r["student_id"],
            class_id=r["class_id"],
            tute_id=r["tute_id"],
            assigned_at=r["assigned_at"],
            status=TuteAssignmentStatus(r.get("status") or TuteAssignmentStatus.ASSIGNED.value),
            created_at=r.get("created_at"),
            updated_at=r.get("updated_at"),
        )

    def to_dict(self, refs: Optional[References] = None, tutes: Optional[dict[str, Tute]] = None) -> dict:
        refs = refs or References()
        tute = (tutes or {}).get(self.tute_id)
        return {
            "_id": self.assignment_id,
            "student": refs.user(self.student_id),
            "class": refs.school_class(self.class_id),
            "tute": tute.to_summary() if tute else self.tute_id,
            "assignedAt": to_iso(self.assigned_at),
            "status": self.status.value,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }
