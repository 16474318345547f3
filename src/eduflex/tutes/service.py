from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..classes.service import RosterService
from ..common.datetime_utils import format_month, month_window, now_local, parse_iso_datetime, parse_month
from ..common.validators import require_non_empty, unique_in_order
from ..core.enums import Role, TuteAssignmentStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..store import AnyOf, Deadline, DeleteMany, UpsertIfAbsent
from ..users.model import Caller
from ..users.service import ReferenceResolver
from .model import Tute, TuteAssignment
from .repository import TuteAssignmentRepository, TuteRepository

logger = logging.getLogger(__name__)


def assignment_key(student_id: str, tute_id: str) -> dict:
    """A student holds a given tute at most once, whatever the class or month."""
    return {"student_id": student_id, "tute_id": tute_id}


class TuteService:
    def __init__(
        self,
        tutes: TuteRepository,
        assignments: TuteAssignmentRepository,
        roster: RosterService,
        refs: ReferenceResolver,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._tutes = tutes
        self._assignments = assignments
        self._roster = roster
        self._refs = refs
        self._clock = clock

    def create_tute(
        self,
        caller: Caller,
        *,
        title,
        grade,
        month,
        description: Optional[str] = None,
        file_url: Optional[str] = None,
        file_name: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> Tute:
        if caller.role not in {Role.ADMIN, Role.TEACHER}:
            raise AuthorizationError("Access denied")

        values = {
            "title": require_non_empty(title, "title"),
            "grade": require_non_empty(grade, "grade"),
            "month": format_month(parse_month(require_non_empty(month, "month"))),
            "description": description,
            "file_url": file_url,
            "file_name": file_name,
            "created_by": caller.user_id,
        }
        tute = self._tutes.create(values, deadline=deadline)
        logger.info("tute %s created for grade=%s month=%s", tute.tute_id, tute.grade, tute.month)
        return tute

    def list_tutes(self, *, grade: Optional[str] = None, month: Optional[str] = None) -> list[Tute]:
        if month:
            month = format_month(parse_month(month))
        return self._tutes.list_live(grade=grade, month=month)

    def sync_assignments(
        self,
        caller: Caller,
        *,
        class_id: str,
        student_id: str,
        tute_ids: Sequence[str],
        reference_date=None,
        deadline: Optional[Deadline] = None,
    ) -> dict:
        """Make the student's tutes for the reference month equal ``tute_ids``.

        Only assignments dated inside that month may be removed. Desired tutes
        are inserted only when the student has never held them; an existing
        assignment keeps its original class and date, even from another month.
        Removals and inserts are written as one batch.
        """

        student_id = require_non_empty(student_id, "studentId")
        ref = parse_iso_datetime(reference_date) if reference_date else self._clock()
        desired = unique_in_order([require_non_empty(t, "tuteIds") for t in tute_ids])

        self._roster.require_class(class_id, caller)
        if not self._roster.is_enrolled(class_id, student_id):
            logger.debug("tute sync class=%s skipped student %s without active enrollment", class_id, student_id)
            return {"message": "Student is not actively enrolled; nothing synced", "skipped": True}

        known = self._tutes.get_live_by_ids(desired)
        unknown = [t for t in desired if t not in known]
        if unknown:
            raise ValidationError(f"Invalid tute id(s): {', '.join(unknown)}")

        start, end = month_window(ref)
        current = self._assignments.list_in_window(class_id=class_id, start=start, end=end, student_id=student_id)
        wanted = set(desired)
        to_remove = [a.assignment_id for a in current if a.tute_id not in wanted]

        ops = []
        if to_remove:
            ops.append(DeleteMany({"id": AnyOf(to_remove)}))
        for tute_id in desired:
            ops.append(
                UpsertIfAbsent(
                    assignment_key(student_id, tute_id),
                    {"class_id": class_id, "status": TuteAssignmentStatus.ASSIGNED.value, "assigned_at": ref},
                )
            )

        result = self._assignments.apply(ops, deadline=deadline, label="tute sync")
        logger.info(
            "tute sync class=%s student=%s month=%s added=%d kept=%d removed=%d",
            class_id,
            student_id,
            format_month(ref),
            len(result.upserted_ids),
            result.ignored,
            result.deleted_count,
        )
        return {
            "message": "Tutes synced successfully",
            "added": len(result.upserted_ids),
            "removed": result.deleted_count,
            "skipped": False,
        }

    def assign_bulk(
        self,
        caller: Caller,
        *,
        class_id: str,
        tute_id: str,
        student_ids: Sequence[str] = (),
        assigned_at=None,
        deadline: Optional[Deadline] = None,
    ) -> dict:
        """Hand one tute to many students; an empty list means the whole active roster."""

        tute_id = require_non_empty(tute_id, "tuteId")
        when = parse_iso_datetime(assigned_at) if assigned_at else self._clock()

        self._roster.require_class(class_id, caller)
        tute = self._tutes.get_by_id(tute_id)
        if not tute or tute.is_deleted:
            raise NotFoundError("Tute not found")

        requested = unique_in_order([s for s in student_ids if s])
        if requested:
            part = self._roster.partition(class_id, requested, student_of=lambda s: s)
            targets, skipped = part.valid, part.skipped
        else:
            targets, skipped = self._roster.active_student_ids(class_id), []

        ops = [
            UpsertIfAbsent(
                assignment_key(s, tute_id),
                {"class_id": class_id, "status": TuteAssignmentStatus.ASSIGNED.value, "assigned_at": when},
            )
            for s in targets
        ]
        result = self._assignments.apply(ops, deadline=deadline, label="tute bulk assign")

        logger.info(
            "tute %s assigned class=%s new=%d existing=%d skipped=%d",
            tute_id,
            class_id,
            len(result.upserted_ids),
            result.ignored,
            len(skipped),
        )
        return {
            "message": "Tute assigned successfully",
            "assigned": len(result.upserted_ids),
            "alreadyAssigned": result.ignored,
            "skipped": list(skipped),
        }

    def month_overview(self, caller: Caller, *, class_id: str, month) -> dict:
        """Materials for the class grade and month, plus the class's assignments dated in that month."""

        school_class = self._roster.require_class(class_id, caller)
        first = parse_month(require_non_empty(month, "month"))
        start, end = month_window(first)

        tutes = self._tutes.list_live(grade=school_class.grade or None, month=format_month(first))
        assignments = self._assignments.list_in_window(class_id=class_id, start=start, end=end)
        return {
            "tutes": self.present_tutes(tutes),
            "assignments": self.present_assignments(assignments),
        }

    def set_status(
        self,
        caller: Caller,
        assignment_id: str,
        status,
        *,
        deadline: Optional[Deadline] = None,
    ) -> TuteAssignment:
        try:
            new_status = TuteAssignmentStatus(status)
        except ValueError:
            raise ValidationError(f"Invalid status: {status!r}")

        assignment = self._assignments.get_by_id(assignment_id)
        if not assignment:
            raise NotFoundError("Tute assignment not found")
        self._roster.require_class(assignment.class_id, caller)

        updated = self._assignments.update_status(assignment_id, new_status.value, deadline=deadline)
        if not updated:
            raise NotFoundError("Tute assignment not found")
        return updated

    def present_tutes(self, tutes: Sequence[Tute]) -> list[dict]:
        refs = self._refs.resolve(user_ids=[t.created_by for t in tutes])
        return [t.to_dict(refs) for t in tutes]

    def present_assignments(self, assignments: Sequence[TuteAssignment]) -> list[dict]:
        refs = self._refs.resolve(
            user_ids=[a.student_id for a in assignments],
            class_ids=[a.class_id for a in assignments],
        )
        tutes = self._tutes.get_live_by_ids({a.tute_id for a in assignments})
        return [a.to_dict(refs, tutes) for a in assignments]
