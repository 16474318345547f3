from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional, Sequence

from ..classes.service import RosterService
from ..common.datetime_utils import day_window, now_local, parse_iso_datetime, range_window, start_of_day
from ..core.enums import FeeStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..store import Deadline, InsertOne, UpdateOne
from ..users.model import Caller
from ..users.service import ReferenceResolver
from .model import FeeEntry, FeeMarkResult, FeeRecord
from .repository import FeeRepository

logger = logging.getLogger(__name__)


def last_entry_per_student(entries: Iterable[FeeEntry]) -> list[FeeEntry]:
    latest: dict[str, FeeEntry] = {}
    for e in entries:
        latest.pop(e.student_id, None)
        latest[e.student_id] = e
    return list(latest.values())


class FeeService:
    """Daily fee sheet reconciliation plus ad hoc fee bookkeeping.

    In the daily sheet "unpaid" means there is no live fee record for the
    day: un-ticking a student soft-deletes the record instead of keeping a
    pending one.
    """

    def __init__(
        self,
        fees: FeeRepository,
        roster: RosterService,
        refs: ReferenceResolver,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._fees = fees
        self._roster = roster
        self._refs = refs
        self._clock = clock

    def mark_bulk(
        self,
        caller: Caller,
        *,
        class_id: str,
        payment_date,
        entries: Sequence[FeeEntry],
        default_amount: Optional[float] = None,
        deadline: Optional[Deadline] = None,
    ) -> FeeMarkResult:
        day = parse_iso_datetime(payment_date)
        entries = last_entry_per_student(entries)

        amounts: dict[str, float] = {}
        for e in entries:
            if not e.is_paid:
                continue
            amount = e.amount if e.amount is not None else default_amount
            if amount is None:
                raise ValidationError(f"Please provide amount for student {e.student_id}")
            amounts[e.student_id] = amount

        self._roster.require_class(class_id, caller)
        part = self._roster.partition(class_id, entries, student_of=lambda e: e.student_id)
        existing = self._fees.find_for_day(
            class_id=class_id,
            student_ids=[e.student_id for e in part.valid],
            day=day,
        )

        now = self._clock()
        ops = []
        removed: list[str] = []
        for e in part.valid:
            current = existing.get(e.student_id)
            if e.is_paid:
                values = {
                    "amount": amounts[e.student_id],
                    "notes": e.notes,
                    "recorded_by": caller.user_id,
                    "status": FeeStatus.PAID.value,
                }
                if current:
                    ops.append(UpdateOne(current.fee_id, values))
                else:
                    ops.append(
                        InsertOne(
                            {
                                **values,
                                "student_id": e.student_id,
                                "class_id": class_id,
                                "payment_date": start_of_day(day),
                            }
                        )
                    )
            elif current:
                ops.append(UpdateOne(current.fee_id, {"is_deleted": True, "deleted_at": now}))
                removed.append(current.fee_id)

        result = self._fees.apply(ops, deadline=deadline, label="fee bulk mark")
        updated_ids = [fid for fid in result.modified_ids if fid not in removed]
        records = self._fees.get_by_ids(result.inserted_ids + updated_ids)

        logger.info(
            "fees class=%s day=%s created=%d updated=%d removed=%d skipped=%d",
            class_id,
            day.date().isoformat(),
            len(result.inserted_ids),
            len(updated_ids),
            len(removed),
            len(part.skipped),
        )
        return FeeMarkResult(
            records=records,
            created=len(result.inserted_ids),
            updated=len(updated_ids),
            removed=len(removed),
            skipped=[e.student_id for e in part.skipped],
        )

    def record_fee(
        self,
        caller: Caller,
        *,
        class_id: str,
        student_id: str,
        amount: Optional[float],
        payment_date=None,
        due_date=None,
        status: Optional[str] = None,
        notes: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> FeeRecord:
        """Create one fee record outside the daily sheet.

        At most one live record per student, class and payment day is kept
        here as well, so the daily sheet never sees two.
        """

        if not student_id or not class_id or amount is None:
            raise ValidationError("Please provide student, class, and amount")
        try:
            fee_status = FeeStatus(status or FeeStatus.PAID.value)
        except ValueError:
            raise ValidationError(f"Invalid status: {status!r}")

        day = parse_iso_datetime(payment_date) if payment_date else self._clock()
        due = parse_iso_datetime(due_date) if due_date else None

        self._roster.require_class(class_id, caller)
        if not self._roster.is_enrolled(class_id, student_id):
            raise ValidationError("Student is not enrolled in this class")
        if self._fees.find_for_day(class_id=class_id, student_ids=[student_id], day=day):
            raise ValidationError("A fee is already recorded for this student on this date")

        result = self._fees.apply(
            [
                InsertOne(
                    {
                        "student_id": student_id,
                        "class_id": class_id,
                        "amount": amount,
                        "payment_date": start_of_day(day),
                        "due_date": due,
                        "status": fee_status.value,
                        "notes": notes,
                        "recorded_by": caller.user_id,
                    }
                )
            ],
            deadline=deadline,
            label="fee record",
        )
        logger.info("fee recorded class=%s student=%s status=%s", class_id, student_id, fee_status.value)
        return self._fees.get_by_ids(result.inserted_ids)[0]

    def list_records(
        self,
        caller: Caller,
        *,
        class_id: Optional[str] = None,
        start=None,
        end=None,
        payment_date=None,
        student_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> list[FeeRecord]:
        if payment_date:
            start_dt, end_dt = day_window(parse_iso_datetime(payment_date))
        elif start and end:
            start_dt, end_dt = range_window(parse_iso_datetime(start), parse_iso_datetime(end))
        else:
            raise ValidationError("Please provide startDate and endDate, or paymentDate")
        if status and status not in {s.value for s in FeeStatus}:
            raise ValidationError(f"Invalid status: {status!r}")

        if class_id:
            self._roster.require_class(class_id, caller)
            class_ids: Optional[list[str]] = [class_id]
        else:
            class_ids = self._roster.visible_class_ids(caller)

        return self._fees.list_range(
            start=start_dt,
            end=end_dt,
            class_ids=class_ids,
            student_id=student_id,
            status=status,
        )

    def delete(self, caller: Caller, fee_id: str, *, deadline: Optional[Deadline] = None) -> None:
        record = self._fees.get_by_id(fee_id)
        if not record or record.is_deleted:
            raise NotFoundError("Fee record not found")
        self._roster.require_class(record.class_id, caller)

        if not self._fees.soft_delete(fee_id, now=self._clock(), deadline=deadline):
            raise NotFoundError("Fee record not found")
        logger.info("fee %s deleted by %s", fee_id, caller.user_id)

    def present(self, records: Sequence[FeeRecord]) -> list[dict]:
        refs = self._refs.resolve(
            user_ids=[u for r in records for u in (r.student_id, r.recorded_by)],
            class_ids=[r.class_id for r in records],
        )
        return [r.to_dict(refs) for r in records]
