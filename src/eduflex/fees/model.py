from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import to_iso
from ..core.enums import FeeStatus
from ..users.service import References


@dataclass(frozen=True)
class FeeRecord:
    fee_id: str
    student_id: str
    class_id: str
    amount: float
    payment_date: datetime
    status: FeeStatus
    due_date: Optional[datetime] = None
    notes: Optional[str] = None
    recorded_by: Optional[str] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, r: dict) -> "FeeRecord":
        return cls(
            fee_id=r["id"],
            student_id=r["student_id"],
            class_id=r["class_id"],
            amount=float(r.get("amount") or 0),
            payment_date=r["payment_date"],
            status=FeeStatus(r.get("status") or FeeStatus.PAID.value),
            due_date=r.get("due_date"),
            notes=r.get("notes"),
            recorded_by=r.get("recorded_by"),
            is_deleted=bool(r.get("is_deleted")),
            deleted_at=r.get("deleted_at"),
            created_at=r.get("created_at"),
            updated_at=r.get("updated_at"),
        )

    def to_dict(self, refs: Optional[References] = None) -> dict:
        refs = refs or References()
        return {
            "_id": self.fee_id,
            "student": refs.user(self.student_id),
            "class": refs.school_class(self.class_id),
            "amount": self.amount,
            "paymentDate": to_iso(self.payment_date),
            "dueDate": to_iso(self.due_date),
            "status": self.status.value,
            "notes": self.notes,
            "recordedBy": refs.user(self.recorded_by),
            "isDeleted": self.is_deleted,
            "deletedAt": to_iso(self.deleted_at),
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }


@dataclass(frozen=True)
class FeeEntry:
    """One row of the daily fee sheet. ``amount`` None falls back to the sheet default."""

    student_id: str
    is_paid: bool
    amount: Optional[float] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class FeeMarkResult:
    records: list[FeeRecord] = field(default_factory=list)
    created: int = 0
    updated: int = 0
    removed: int = 0
    skipped: list[str] = field(default_factory=list)
