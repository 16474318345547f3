from __future__ import annotations

import pytest

from eduflex.attendance.model import AttendanceEntry
from eduflex.core.exceptions import AuthorizationError, ValidationError


def _mark(container, school, day, entries):
    container.attendance_service.mark_bulk(
        school.teacher_caller, class_id=school.class_id, session_date=day, entries=entries
    )


def test_attendance_history_for_month(container, school):
    _mark(container, school, "2024-03-05", [AttendanceEntry(school.s1, True), AttendanceEntry(school.s2, False)])
    _mark(container, school, "2024-03-12", [AttendanceEntry(school.s1, False)])
    _mark(container, school, "2024-04-02", [AttendanceEntry(school.s1, True)])

    data = container.history_service.attendance_history(
        school.teacher_caller, class_id=school.class_id, month="2024-03"
    )

    assert data["days"] == ["2024-03-05", "2024-03-12"]
    rows = {row["student"]["_id"]: row for row in data["students"]}
    assert set(rows) == {school.s1, school.s2}
    assert (rows[school.s1]["present"], rows[school.s1]["total"], rows[school.s1]["rate"]) == (1, 2, 50)
    assert rows[school.s1]["belowThreshold"] is True
    assert rows[school.s2]["cells"] == {"2024-03-05": False, "2024-03-12": None}


def test_attendance_history_by_date_range(container, school):
    _mark(container, school, "2024-03-05", [AttendanceEntry(school.s1, True)])
    _mark(container, school, "2024-03-12", [AttendanceEntry(school.s1, True)])

    data = container.history_service.attendance_history(
        school.teacher_caller, class_id=school.class_id, start="2024-03-10", end="2024-03-15"
    )

    assert data["days"] == ["2024-03-12"]


def test_attendance_history_needs_a_window(container, school):
    with pytest.raises(ValidationError):
        container.history_service.attendance_history(school.teacher_caller, class_id=school.class_id)


def test_attendance_csv(container, school):
    _mark(container, school, "2024-03-05", [AttendanceEntry(school.s1, True), AttendanceEntry(school.s2, False)])

    text = container.history_service.attendance_csv(school.admin_caller, class_id=school.class_id, month="2024-03")

    lines = text.strip().splitlines()
    assert lines[0] == "student_code,student_name,2024-03-05,present,total,rate"
    assert "STU0001,Kasun Silva,P,1,1,100" in lines
    assert "STU0002,Amaya Fernando,A,0,1,0" in lines


def test_tute_history(container, school, make_tute):
    t = make_tute("Algebra")
    container.tute_service.assign_bulk(
        school.teacher_caller, class_id=school.class_id, tute_id=t, assigned_at="2024-03-05T08:00:00"
    )

    data = container.history_service.tute_history(school.teacher_caller, class_id=school.class_id, month="2024-03")

    assert data["days"] == ["2024-03-05"]
    assert [x["title"] for x in data["tutes"]] == ["Algebra"]
    for row in data["students"]:
        assert row["cells"]["2024-03-05"] == {"count": 1, "tutes": [t]}


def test_history_respects_class_ownership(container, school):
    with pytest.raises(AuthorizationError):
        container.history_service.fee_history(
            school.other_teacher_caller, class_id=school.class_id, month="2024-03"
        )
