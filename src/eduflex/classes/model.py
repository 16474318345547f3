from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, Optional, TypeVar

from ..core.enums import EnrollmentStatus

T = TypeVar("T")


@dataclass(frozen=True)
class SchoolClass:
    class_id: str
    class_name: str
    grade: str
    teacher_id: str
    description: Optional[str] = None
    is_deleted: bool = False

    def to_summary(self) -> dict:
        return {"_id": self.class_id, "className": self.class_name, "description": self.description}

    @classmethod
    def from_row(cls, r: dict) -> "SchoolClass":
        return cls(
            class_id=r["id"],
            class_name=r.get("class_name") or "",
            grade=str(r.get("grade") or ""),
            teacher_id=r.get("teacher_id") or "",
            description=r.get("description"),
            is_deleted=bool(r.get("is_deleted")),
        )


@dataclass(frozen=True)
class Enrollment:
    enrollment_id: str
    student_id: str
    class_id: str
    status: EnrollmentStatus
    date_joined: Optional[datetime] = None
    date_left: Optional[datetime] = None
    is_deleted: bool = False

    @classmethod
    def from_row(cls, r: dict) -> "Enrollment":
        return cls(
            enrollment_id=r["id"],
            student_id=r["student_id"],
            class_id=r["class_id"],
            status=EnrollmentStatus(r.get("status") or EnrollmentStatus.ACTIVE.value),
            date_joined=r.get("date_joined"),
            date_left=r.get("date_left"),
            is_deleted=bool(r.get("is_deleted")),
        )


@dataclass(frozen=True)
class Partition(Generic[T]):
    """Entries split by the active-roster gate."""

    valid: list[T] = field(default_factory=list)
    skipped: list[T] = field(default_factory=list)
