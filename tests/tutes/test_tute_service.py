from __future__ import annotations

from datetime import datetime

import pytest

from eduflex.core.enums import TuteAssignmentStatus
from eduflex.core.exceptions import DeadlineExceeded, NotFoundError, ValidationError
from eduflex.store import Deadline
from eduflex.store.collections import TUTE_ASSIGNMENTS, TUTES


def _held(store, student_id):
    return {r["tute_id"]: r for r in store.find(TUTE_ASSIGNMENTS, {"student_id": student_id})}


def test_sync_converges_month_to_desired_set(container, school, store, make_tute):
    a, b, c = make_tute("Algebra"), make_tute("Biology"), make_tute("Chemistry")
    service = container.tute_service

    service.sync_assignments(
        school.teacher_caller, class_id=school.class_id, student_id=school.s1, tute_ids=[a, b], reference_date="2024-03-05"
    )
    first_b = _held(store, school.s1)[b]["assigned_at"]

    ack = service.sync_assignments(
        school.teacher_caller, class_id=school.class_id, student_id=school.s1, tute_ids=[b, c], reference_date="2024-03-20"
    )

    held = _held(store, school.s1)
    assert set(held) == {b, c}
    assert held[b]["assigned_at"] == first_b == datetime(2024, 3, 5)
    assert held[c]["assigned_at"] == datetime(2024, 3, 20)
    assert (ack["added"], ack["removed"]) == (1, 1)


def test_sync_leaves_other_months_alone(container, school, store, make_tute):
    jan = make_tute("January revision", month="2024-01")
    feb = make_tute("February revision", month="2024-02")
    service = container.tute_service

    service.sync_assignments(
        school.teacher_caller, class_id=school.class_id, student_id=school.s1, tute_ids=[jan], reference_date="2024-01-15"
    )
    service.sync_assignments(
        school.teacher_caller, class_id=school.class_id, student_id=school.s1, tute_ids=[feb], reference_date="2024-02-10"
    )
    assert set(_held(store, school.s1)) == {jan, feb}

    ack = service.sync_assignments(
        school.teacher_caller,
        class_id=school.class_id,
        student_id=school.s1,
        tute_ids=[jan, feb],
        reference_date="2024-02-11",
    )

    held = _held(store, school.s1)
    assert held[jan]["assigned_at"] == datetime(2024, 1, 15)
    assert ack["added"] == 0
    assert len(store.find(TUTE_ASSIGNMENTS)) == 2


def test_sync_with_empty_list_clears_only_the_month(container, school, store, make_tute):
    t = make_tute("Physics")
    service = container.tute_service
    service.sync_assignments(
        school.teacher_caller, class_id=school.class_id, student_id=school.s1, tute_ids=[t], reference_date="2024-03-05"
    )

    service.sync_assignments(
        school.teacher_caller, class_id=school.class_id, student_id=school.s1, tute_ids=[], reference_date="2024-04-05"
    )
    assert set(_held(store, school.s1)) == {t}

    service.sync_assignments(
        school.teacher_caller, class_id=school.class_id, student_id=school.s1, tute_ids=[], reference_date="2024-03-31"
    )
    assert _held(store, school.s1) == {}


def test_sync_rejects_unknown_or_deleted_tutes(container, school, store, make_tute):
    gone = make_tute("Withdrawn")
    store.update_by_id(TUTES, gone, {"is_deleted": True})

    for tute_ids in (["missing"], [gone]):
        with pytest.raises(ValidationError):
            container.tute_service.sync_assignments(
                school.teacher_caller,
                class_id=school.class_id,
                student_id=school.s1,
                tute_ids=tute_ids,
                reference_date="2024-03-05",
            )
    assert store.find(TUTE_ASSIGNMENTS) == []


def test_sync_skips_students_without_active_enrollment(container, school, store, make_tute):
    t = make_tute("Physics")

    ack = container.tute_service.sync_assignments(
        school.teacher_caller,
        class_id=school.class_id,
        student_id=school.s3_inactive,
        tute_ids=[t],
        reference_date="2024-03-05",
    )

    assert ack["skipped"] is True
    assert store.find(TUTE_ASSIGNMENTS) == []


def test_sync_with_expired_deadline_changes_nothing(container, school, store, make_tute):
    a, b = make_tute("Algebra"), make_tute("Biology")
    service = container.tute_service
    service.sync_assignments(
        school.teacher_caller, class_id=school.class_id, student_id=school.s1, tute_ids=[a], reference_date="2024-03-05"
    )

    with pytest.raises(DeadlineExceeded):
        service.sync_assignments(
            school.teacher_caller,
            class_id=school.class_id,
            student_id=school.s1,
            tute_ids=[b],
            reference_date="2024-03-06",
            deadline=Deadline(expires_at=0.0),
        )

    assert set(_held(store, school.s1)) == {a}


def test_bulk_assign_defaults_to_active_roster(container, school, store, make_tute):
    t = make_tute("Past paper")
    service = container.tute_service

    ack = service.assign_bulk(school.teacher_caller, class_id=school.class_id, tute_id=t, assigned_at="2024-03-05")
    assert ack["assigned"] == 2
    holders = {r["student_id"] for r in store.find(TUTE_ASSIGNMENTS, {"tute_id": t})}
    assert holders == {school.s1, school.s2}

    again = service.assign_bulk(school.teacher_caller, class_id=school.class_id, tute_id=t, assigned_at="2024-03-09")
    assert (again["assigned"], again["alreadyAssigned"]) == (0, 2)
    assert all(r["assigned_at"] == datetime(2024, 3, 5) for r in store.find(TUTE_ASSIGNMENTS))


def test_bulk_assign_explicit_students_are_gated(container, school, store, make_tute):
    t = make_tute("Past paper")

    ack = container.tute_service.assign_bulk(
        school.teacher_caller,
        class_id=school.class_id,
        tute_id=t,
        student_ids=[school.s2, school.s4_outsider],
        assigned_at="2024-03-05",
    )

    assert ack["assigned"] == 1
    assert ack["skipped"] == [school.s4_outsider]


def test_bulk_assign_unknown_tute(container, school):
    with pytest.raises(NotFoundError):
        container.tute_service.assign_bulk(school.teacher_caller, class_id=school.class_id, tute_id="missing")


def test_month_overview_and_status(container, school, make_tute):
    march = make_tute("March notes")
    make_tute("April notes", month="2024-04")
    make_tute("Grade 11 notes", grade="11")
    service = container.tute_service
    service.assign_bulk(school.teacher_caller, class_id=school.class_id, tute_id=march, assigned_at="2024-03-05")

    overview = service.month_overview(school.teacher_caller, class_id=school.class_id, month="2024-03")

    assert [t["title"] for t in overview["tutes"]] == ["March notes"]
    assert len(overview["assignments"]) == 2
    assert overview["assignments"][0]["tute"]["title"] == "March notes"

    assignment_id = overview["assignments"][0]["_id"]
    updated = service.set_status(school.teacher_caller, assignment_id, "received")
    assert updated.status == TuteAssignmentStatus.RECEIVED

    with pytest.raises(ValidationError):
        service.set_status(school.teacher_caller, assignment_id, "lost")


def test_create_tute_normalises_month(container, school):
    tute = container.tute_service.create_tute(school.teacher_caller, title="Optics", grade="10", month="2024-03-15")

    assert tute.month == "2024-03"
    assert tute.created_by == school.teacher
    with pytest.raises(ValidationError):
        container.tute_service.create_tute(school.teacher_caller, title="", grade="10", month="2024-03")


def test_bulk_assign_defaults_assigned_at_to_now(container, school, store, clock, make_tute):
    t = make_tute("Optics")

    container.tute_service.assign_bulk(school.teacher_caller, class_id=school.class_id, tute_id=t)

    assert {r["assigned_at"] for r in store.find(TUTE_ASSIGNMENTS)} == {clock.now}
