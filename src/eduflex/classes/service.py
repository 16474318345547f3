from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence, TypeVar

from ..core.enums import Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.model import Caller
from .model import Partition, SchoolClass
from .repository import ClassRepository, EnrollmentRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RosterService:
    """Class guard and active-enrollment gate shared by every reconciler."""

    def __init__(self, classes: ClassRepository, enrollments: EnrollmentRepository):
        self._classes = classes
        self._enrollments = enrollments

    def require_class(self, class_id: str, caller: Caller) -> SchoolClass:
        if not class_id:
            raise ValidationError("Please provide class")

        school_class = self._classes.get_by_id(class_id)
        if not school_class or school_class.is_deleted:
            raise NotFoundError("Invalid class")

        if caller.role == Role.TEACHER and school_class.teacher_id != caller.user_id:
            raise AuthorizationError("Access denied")
        if caller.role not in {Role.ADMIN, Role.TEACHER}:
            raise AuthorizationError("Access denied")

        return school_class

    def visible_class_ids(self, caller: Caller) -> Optional[list[str]]:
        """Classes the caller may read; None means every class."""

        if caller.is_admin:
            return None
        if caller.role == Role.TEACHER:
            return self._classes.list_ids_for_teacher(caller.user_id)
        raise AuthorizationError("Access denied")

    def partition(self, class_id: str, entries: Sequence[T], *, student_of: Callable[[T], str]) -> Partition[T]:
        """Split entries into those whose student is actively enrolled and the rest."""

        if not entries:
            return Partition()

        enrolled = {e.student_id for e in self._enrollments.list_active(class_id, [student_of(x) for x in entries])}
        out: Partition[T] = Partition()
        for entry in entries:
            (out.valid if student_of(entry) in enrolled else out.skipped).append(entry)

        if out.skipped:
            logger.debug(
                "class=%s skipped %d entr(y/ies) without active enrollment: %s",
                class_id,
                len(out.skipped),
                [student_of(x) for x in out.skipped],
            )
        return out

    def is_enrolled(self, class_id: str, student_id: str) -> bool:
        return bool(self._enrollments.list_active(class_id, [student_id]))

    def active_student_ids(self, class_id: str) -> list[str]:
        return [e.student_id for e in self._enrollments.list_active(class_id)]
