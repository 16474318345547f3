from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Caller roles used for authorization."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DELETED = "deleted"


class FeeStatus(str, Enum):
    PAID = "paid"
    PENDING = "pending"


class TuteAssignmentStatus(str, Enum):
    """Hand-out state of a tute for one student."""

    ASSIGNED = "assigned"
    RECEIVED = "received"
