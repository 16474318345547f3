from __future__ import annotations

from datetime import datetime

import mysql.connector
import pytest

from eduflex.core.exceptions import DeadlineExceeded
from eduflex.store import AnyOf, BatchWriteError, Between, Deadline, DeleteMany, InsertOne, UpdateOne, UpsertIfAbsent
from eduflex.store.collections import ATTENDANCE, TUTE_ASSIGNMENTS
from eduflex.store.mysql_store import MySQLRecordStore, compile_order, compile_where


class FakeCursor:
    def __init__(self, conn: "FakeConnection"):
        self._conn = conn
        self.rowcount = 0
        self._last_select = None

    def execute(self, sql, params=()):
        self._conn.statements.append((sql, tuple(params)))
        error = self._conn.fail_on(sql)
        if error:
            raise error
        self.rowcount = self._conn.rowcount
        self._last_select = sql if sql.startswith("SELECT") else None

    def fetchone(self):
        return self._conn.existing.pop(0) if self._conn.existing else None

    def fetchall(self):
        return list(self._conn.rows)

    def close(self):
        pass


class FakeConnection:
    def __init__(self):
        self.statements: list[tuple[str, tuple]] = []
        self.existing: list[dict] = []
        self.rows: list[dict] = []
        self.rowcount = 1
        self.insert_error = None
        self.commits = 0
        self.rollbacks = 0
        self.closed = 0

    def fail_on(self, sql: str):
        if sql.startswith("INSERT") and self.insert_error is not None:
            return self.insert_error
        return None

    def cursor(self, dictionary=True):
        return FakeCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed += 1


class FakeConnectionFactory:
    def __init__(self):
        self.conn = FakeConnection()

    def connect(self):
        return self.conn


@pytest.fixture
def db():
    return FakeConnectionFactory()


@pytest.fixture
def mysql_store(db):
    ids = iter(f"{n:032x}" for n in range(1, 100))
    return MySQLRecordStore(db, clock=lambda: datetime(2024, 3, 5, 9, 30), id_factory=lambda: next(ids))


def test_compile_where_builds_parameterised_clause():
    clause, params = compile_where(
        ATTENDANCE,
        {
            "class_id": "c1",
            "student_id": AnyOf(["s1", "s2"]),
            "session_date": Between(datetime(2024, 3, 5), datetime(2024, 3, 5, 23, 59)),
            "is_deleted": False,
            "deleted_at": None,
        },
    )

    assert clause == (
        " WHERE `class_id`=%s AND `student_id` IN (%s, %s) AND `session_date` BETWEEN %s AND %s"
        " AND `is_deleted`=%s AND `deleted_at` IS NULL"
    )
    assert params == ("c1", "s1", "s2", datetime(2024, 3, 5), datetime(2024, 3, 5, 23, 59), 0)


def test_compile_where_empty_any_of_matches_nothing():
    clause, params = compile_where(ATTENDANCE, {"student_id": AnyOf([])})

    assert clause == " WHERE 1=0"
    assert params == ()


def test_compile_where_rejects_unknown_fields():
    with pytest.raises(ValueError):
        compile_where(ATTENDANCE, {"student_id; DROP TABLE users": "x"})


def test_compile_order():
    assert compile_order(ATTENDANCE, ("-session_date", "student_id")) == " ORDER BY `session_date` DESC, `student_id` ASC"


def test_find_coerces_booleans(mysql_store, db):
    db.conn.rows = [{"id": "a1", "student_id": "s1", "is_present": 1, "is_deleted": 0}]

    rows = mysql_store.find(ATTENDANCE, {"student_id": "s1"})

    assert rows[0]["is_present"] is True
    assert rows[0]["is_deleted"] is False
    assert db.conn.statements[0][0].startswith("SELECT `id`, `student_id`")


def test_bulk_write_runs_in_one_transaction(mysql_store, db):
    result = mysql_store.bulk_write(
        ATTENDANCE,
        [
            InsertOne({"student_id": "s1", "class_id": "c1", "is_present": True}),
            UpdateOne("a9", {"is_present": False}),
        ],
    )

    assert result.inserted_ids == [f"{1:032x}"]
    assert result.modified_ids == ["a9"]
    assert db.conn.commits == 1
    assert db.conn.rollbacks == 0
    update_sql, update_params = db.conn.statements[1]
    assert update_sql == "UPDATE `attendance` SET `is_present`=%s, `updated_at`=%s WHERE `id`=%s"
    assert update_params == (0, datetime(2024, 3, 5, 9, 30), "a9")


def test_upsert_skips_insert_when_pair_exists(mysql_store, db):
    db.conn.existing = [{"id": "old"}]

    result = mysql_store.bulk_write(
        TUTE_ASSIGNMENTS,
        [UpsertIfAbsent({"student_id": "s1", "tute_id": "t1"}, {"class_id": "c1", "status": "assigned"})],
    )

    assert result.ignored == 1
    assert result.upserted_ids == []
    assert [s for s, _ in db.conn.statements if s.startswith("INSERT")] == []
    assert db.conn.statements[0][0].endswith("LIMIT 1 FOR UPDATE")


def test_upsert_treats_duplicate_key_race_as_noop(mysql_store, db):
    db.conn.insert_error = mysql.connector.IntegrityError(msg="Duplicate entry", errno=1062)

    result = mysql_store.bulk_write(
        TUTE_ASSIGNMENTS,
        [UpsertIfAbsent({"student_id": "s1", "tute_id": "t1"}, {"class_id": "c1", "status": "assigned"})],
    )

    assert result.ignored == 1
    assert db.conn.commits == 1


def test_other_integrity_errors_roll_back_the_batch(mysql_store, db):
    db.conn.insert_error = mysql.connector.IntegrityError(msg="Cannot add or update a child row", errno=1452)

    with pytest.raises(BatchWriteError):
        mysql_store.bulk_write(
            TUTE_ASSIGNMENTS,
            [
                DeleteMany({"id": AnyOf(["x1"])}),
                UpsertIfAbsent({"student_id": "s1", "tute_id": "t1"}, {"class_id": "c1", "status": "assigned"}),
            ],
        )

    assert db.conn.commits == 0
    assert db.conn.rollbacks == 1
    assert db.conn.closed == 1


def test_expired_deadline_rolls_back(mysql_store, db):
    with pytest.raises(DeadlineExceeded):
        mysql_store.bulk_write(
            ATTENDANCE,
            [InsertOne({"student_id": "s1", "class_id": "c1"})],
            deadline=Deadline(expires_at=0.0),
        )

    assert db.conn.commits == 0
    assert db.conn.rollbacks == 1
    assert db.conn.statements == []
