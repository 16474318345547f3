from __future__ import annotations

from datetime import datetime

import pytest

from eduflex.core.exceptions import DeadlineExceeded
from eduflex.store import (
    AnyOf,
    BatchWriteError,
    Between,
    Deadline,
    DeleteMany,
    InsertOne,
    UpdateOne,
    UpsertIfAbsent,
)
from eduflex.store.collections import ATTENDANCE, TUTE_ASSIGNMENTS


def _assignment(student_id: str, tute_id: str, when: datetime) -> UpsertIfAbsent:
    return UpsertIfAbsent(
        {"student_id": student_id, "tute_id": tute_id},
        {"class_id": "c1", "status": "assigned", "assigned_at": when},
    )


def test_insert_fills_defaults_and_timestamps(store, clock):
    record = store.insert(ATTENDANCE, {"student_id": "s1", "class_id": "c1", "session_date": datetime(2024, 3, 5)})

    assert len(record["id"]) == 32
    assert record["is_deleted"] is False
    assert record["notes"] is None
    assert record["created_at"] == clock.now


def test_find_with_between_and_any_of(store):
    for day in (4, 5, 6):
        store.insert(ATTENDANCE, {"student_id": f"s{day}", "class_id": "c1", "session_date": datetime(2024, 3, day)})

    rows = store.find(
        ATTENDANCE,
        {
            "session_date": Between(datetime(2024, 3, 5), datetime(2024, 3, 6, 23, 59)),
            "student_id": AnyOf(["s4", "s5"]),
        },
    )

    assert [r["student_id"] for r in rows] == ["s5"]


def test_find_orders_descending(store):
    for day in (4, 6, 5):
        store.insert(ATTENDANCE, {"student_id": "s1", "class_id": "c1", "session_date": datetime(2024, 3, day)})

    rows = store.find(ATTENDANCE, {"student_id": "s1"}, order_by=("-session_date",))

    assert [r["session_date"].day for r in rows] == [6, 5, 4]


def test_unknown_filter_field_is_rejected(store):
    with pytest.raises(ValueError):
        store.find(ATTENDANCE, {"nope": 1})


def test_upsert_if_absent_leaves_existing_record_untouched(store):
    first = store.bulk_write(TUTE_ASSIGNMENTS, [_assignment("s1", "t1", datetime(2024, 1, 10))])
    again = store.bulk_write(TUTE_ASSIGNMENTS, [_assignment("s1", "t1", datetime(2024, 2, 10))])

    assert len(first.upserted_ids) == 1
    assert again.upserted_ids == []
    assert again.ignored == 1
    (row,) = store.find(TUTE_ASSIGNMENTS, {"student_id": "s1"})
    assert row["assigned_at"] == datetime(2024, 1, 10)


def test_duplicate_upserts_in_one_batch_count_as_ignored(store):
    result = store.bulk_write(
        TUTE_ASSIGNMENTS,
        [_assignment("s1", "t1", datetime(2024, 3, 1)), _assignment("s1", "t1", datetime(2024, 3, 2))],
    )

    assert len(result.upserted_ids) == 1
    assert result.ignored == 1


def test_plain_insert_breaking_unique_key_fails_whole_batch(store):
    store.bulk_write(TUTE_ASSIGNMENTS, [_assignment("s1", "t1", datetime(2024, 3, 1))])

    with pytest.raises(BatchWriteError):
        store.bulk_write(
            TUTE_ASSIGNMENTS,
            [
                _assignment("s2", "t1", datetime(2024, 3, 1)),
                InsertOne({"student_id": "s1", "tute_id": "t1", "class_id": "c2", "status": "assigned"}),
            ],
        )

    assert store.find(TUTE_ASSIGNMENTS, {"student_id": "s2"}) == []


def test_failed_batch_applies_nothing(store):
    kept = store.insert(ATTENDANCE, {"student_id": "s1", "class_id": "c1", "session_date": datetime(2024, 3, 5)})

    with pytest.raises(BatchWriteError):
        store.bulk_write(
            ATTENDANCE,
            [
                UpdateOne(kept["id"], {"is_present": False}),
                InsertOne({"student_id": "s2", "bogus": True}),
            ],
        )

    assert store.find_one(ATTENDANCE, {"id": kept["id"]})["is_present"] is None
    assert len(store.find(ATTENDANCE)) == 1


def test_expired_deadline_applies_nothing(store):
    with pytest.raises(DeadlineExceeded):
        store.bulk_write(
            ATTENDANCE,
            [InsertOne({"student_id": "s1", "class_id": "c1"})],
            deadline=Deadline(expires_at=0.0),
        )

    assert store.find(ATTENDANCE) == []


def test_delete_many_requires_a_filter(store):
    store.insert(ATTENDANCE, {"student_id": "s1", "class_id": "c1"})

    with pytest.raises(BatchWriteError):
        store.bulk_write(ATTENDANCE, [DeleteMany({})])

    result = store.bulk_write(ATTENDANCE, [DeleteMany({"student_id": "s1"})])
    assert result.deleted_count == 1


def test_update_of_missing_record_reports_nothing_modified(store):
    assert store.update_by_id(ATTENDANCE, "missing", {"is_present": True}) is None
