from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import pytest

from eduflex.container import build_container
from eduflex.core.enums import Role
from eduflex.store.collections import CLASSES, ENROLLMENTS, TUTES, USERS
from eduflex.store.memory_store import InMemoryRecordStore
from eduflex.users.model import Caller


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@dataclass
class School:
    admin: str
    teacher: str
    other_teacher: str
    s1: str
    s2: str
    s3_inactive: str
    s4_outsider: str
    class_id: str
    other_class_id: str

    @property
    def admin_caller(self) -> Caller:
        return Caller(user_id=self.admin, role=Role.ADMIN)

    @property
    def teacher_caller(self) -> Caller:
        return Caller(user_id=self.teacher, role=Role.TEACHER)

    @property
    def other_teacher_caller(self) -> Caller:
        return Caller(user_id=self.other_teacher, role=Role.TEACHER)


def seed_school(store: InMemoryRecordStore) -> School:
    def user(code: str, first: str, last: str, role: Role) -> str:
        return store.insert(
            USERS,
            {"user_code": code, "first_name": first, "last_name": last, "role": role.value},
        )["id"]

    def school_class(name: str, teacher_id: str) -> str:
        return store.insert(
            CLASSES,
            {"class_name": name, "grade": "10", "teacher_id": teacher_id, "description": "Weekend theory"},
        )["id"]

    def enroll(student_id: str, class_id: str, status: str = "active") -> None:
        store.insert(
            ENROLLMENTS,
            {"student_id": student_id, "class_id": class_id, "status": status, "date_joined": datetime(2024, 1, 10)},
        )

    admin = user("ADM0001", "Demo", "Admin", Role.ADMIN)
    teacher = user("TCH0001", "Nimal", "Perera", Role.TEACHER)
    other_teacher = user("TCH0002", "Sunil", "Dias", Role.TEACHER)
    s1 = user("STU0001", "Kasun", "Silva", Role.STUDENT)
    s2 = user("STU0002", "Amaya", "Fernando", Role.STUDENT)
    s3 = user("STU0003", "Ravi", "Jayasinghe", Role.STUDENT)
    s4 = user("STU0004", "Dilini", "Wickrama", Role.STUDENT)

    class_id = school_class("Grade 10 Science", teacher)
    other_class_id = school_class("Grade 10 Maths", other_teacher)

    enroll(s1, class_id)
    enroll(s2, class_id)
    enroll(s3, class_id, "inactive")
    enroll(s4, other_class_id)

    return School(
        admin=admin,
        teacher=teacher,
        other_teacher=other_teacher,
        s1=s1,
        s2=s2,
        s3_inactive=s3,
        s4_outsider=s4,
        class_id=class_id,
        other_class_id=other_class_id,
    )


def add_tute(store: InMemoryRecordStore, title: str, *, month: str = "2024-03", grade: str = "10") -> str:
    return store.insert(TUTES, {"title": title, "grade": grade, "month": month})["id"]


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 3, 5, 9, 30))


@pytest.fixture
def store(clock) -> InMemoryRecordStore:
    return InMemoryRecordStore(clock=clock)


@pytest.fixture
def school(store) -> School:
    return seed_school(store)


@pytest.fixture
def container(store, clock):
    return build_container(store=store, clock=clock)


@pytest.fixture
def make_tute(store):
    def _make(title: str, *, month: str = "2024-03", grade: str = "10") -> str:
        return add_tute(store, title, month=month, grade=grade)

    return _make
