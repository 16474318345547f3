from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping

SYSTEM_FIELDS = ("id", "created_at", "updated_at")


@dataclass(frozen=True)
class Collection:
    """Declared record kind: its fields, value coercions and unique keys."""

    name: str
    fields: tuple[str, ...]
    booleans: tuple[str, ...] = ()
    numbers: tuple[str, ...] = ()
    unique: tuple[tuple[str, ...], ...] = ()
    soft_delete: bool = True

    @property
    def columns(self) -> tuple[str, ...]:
        return ("id",) + self.fields + ("created_at", "updated_at")

    def check_fields(self, names: Iterable[str]) -> None:
        known = set(self.columns)
        unknown = [n for n in names if n not in known]
        if unknown:
            raise ValueError(f"Unknown field(s) for {self.name}: {', '.join(sorted(unknown))}")

    def new_record(self, values: Mapping[str, Any], *, record_id: str, now: datetime) -> dict:
        self.check_fields(values.keys())
        record: dict[str, Any] = {f: None for f in self.fields}
        if self.soft_delete:
            record["is_deleted"] = False
        record.update(values)
        record["id"] = record_id
        record["created_at"] = now
        record["updated_at"] = now
        return record

    def coerce(self, row: Mapping[str, Any]) -> dict:
        out = dict(row)
        for f in self.booleans:
            if out.get(f) is not None:
                out[f] = bool(out[f])
        for f in self.numbers:
            if isinstance(out.get(f), Decimal):
                out[f] = float(out[f])
        return out


USERS = Collection(
    name="users",
    fields=("user_code", "first_name", "last_name", "role", "is_deleted", "deleted_at"),
    booleans=("is_deleted",),
)

CLASSES = Collection(
    name="classes",
    fields=("class_name", "description", "grade", "teacher_id", "schedule", "created_by", "is_deleted", "deleted_at"),
    booleans=("is_deleted",),
)

ENROLLMENTS = Collection(
    name="enrollments",
    fields=("student_id", "class_id", "date_joined", "date_left", "status", "is_deleted", "deleted_at"),
    booleans=("is_deleted",),
)

ATTENDANCE = Collection(
    name="attendance",
    fields=("student_id", "class_id", "session_date", "is_present", "notes", "marked_by", "is_deleted", "deleted_at"),
    booleans=("is_present", "is_deleted"),
)

FEES = Collection(
    name="fees",
    fields=(
        "student_id",
        "class_id",
        "amount",
        "payment_date",
        "due_date",
        "status",
        "notes",
        "recorded_by",
        "is_deleted",
        "deleted_at",
    ),
    booleans=("is_deleted",),
    numbers=("amount",),
)

TUTES = Collection(
    name="tutes",
    fields=("title", "description", "grade", "month", "file_url", "file_name", "created_by", "is_deleted", "deleted_at"),
    booleans=("is_deleted",),
)

# A student holds a given tute at most once, whatever the class or month.
TUTE_ASSIGNMENTS = Collection(
    name="tute_assignments",
    fields=("student_id", "class_id", "tute_id", "assigned_at", "status"),
    unique=(("student_id", "tute_id"),),
    soft_delete=False,
)

ALL_COLLECTIONS = (USERS, CLASSES, ENROLLMENTS, ATTENDANCE, FEES, TUTES, TUTE_ASSIGNMENTS)
