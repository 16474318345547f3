from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Sequence

import mysql.connector

from ..common.datetime_utils import now_local
from ..core.exceptions import DeadlineExceeded
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .base import (
    BatchWriteError,
    BulkResult,
    Deadline,
    DeleteMany,
    DuplicateKeyError,
    InsertOne,
    RecordStore,
    UpdateOne,
    UpsertIfAbsent,
    WriteOp,
    new_record_id,
)
from .collections import SYSTEM_FIELDS, Collection
from .query import AnyOf, Between

logger = logging.getLogger(__name__)


def _to_sql(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return int(value)
    return value


def compile_where(collection: Collection, where: Optional[Mapping[str, Any]]) -> tuple[str, tuple]:
    """Translate a filter mapping into a WHERE clause and its parameters.

    Field names are checked against the collection declaration before they
    are interpolated; values always travel as parameters.
    """

    if not where:
        return "", ()
    collection.check_fields(where.keys())

    clauses: list[str] = []
    params: list[Any] = []
    for field, expected in where.items():
        if isinstance(expected, Between):
            clauses.append(f"`{field}` BETWEEN %s AND %s")
            params.extend([_to_sql(expected.start), _to_sql(expected.end)])
        elif isinstance(expected, AnyOf):
            if not expected.values:
                clauses.append("1=0")
                continue
            placeholders = ", ".join(["%s"] * len(expected.values))
            clauses.append(f"`{field}` IN ({placeholders})")
            params.extend(_to_sql(v) for v in expected.values)
        elif expected is None:
            clauses.append(f"`{field}` IS NULL")
        else:
            clauses.append(f"`{field}`=%s")
            params.append(_to_sql(expected))

    return " WHERE " + " AND ".join(clauses), tuple(params)


def compile_order(collection: Collection, order_by: Sequence[str]) -> str:
    if not order_by:
        return ""
    collection.check_fields(k.lstrip("-") for k in order_by)
    parts = [f"`{k.lstrip('-')}` {'DESC' if k.startswith('-') else 'ASC'}" for k in order_by]
    return " ORDER BY " + ", ".join(parts)


class MySQLRecordStore(RecordStore):
    def __init__(
        self,
        conn_factory: DatabaseConnection,
        *,
        clock: Callable[[], datetime] = now_local,
        id_factory: Callable[[], str] = new_record_id,
    ):
        self._conn_factory = conn_factory
        self._clock = clock
        self._id_factory = id_factory

    def find(
        self,
        collection: Collection,
        where: Optional[Mapping[str, Any]] = None,
        *,
        order_by: Sequence[str] = (),
    ) -> list[dict]:
        clause, params = compile_where(collection, where)
        order = compile_order(collection, order_by)
        columns = ", ".join(f"`{c}`" for c in collection.columns)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {columns} FROM `{collection.name}`{clause}{order}", params)
            return [collection.coerce(r) for r in fetchall(cur)]

    def find_one(self, collection: Collection, where: Mapping[str, Any]) -> Optional[dict]:
        rows = self.find(collection, where)
        return rows[0] if rows else None

    def insert(self, collection: Collection, values: Mapping[str, Any], *, deadline: Optional[Deadline] = None) -> dict:
        record = collection.new_record(values, record_id=self._id_factory(), now=self._clock())
        with db_cursor(self._conn_factory) as (_, cur):
            if deadline:
                deadline.check()
            self._insert_row(cur, collection, record)
        return collection.coerce(record)

    def update_by_id(
        self,
        collection: Collection,
        record_id: str,
        changes: Mapping[str, Any],
        *,
        deadline: Optional[Deadline] = None,
    ) -> Optional[dict]:
        result = BulkResult()
        with db_cursor(self._conn_factory) as (_, cur):
            if deadline:
                deadline.check()
            self._update_row(cur, collection, record_id, changes, result, self._clock())
        if not result.modified_ids:
            return None
        return self.find_one(collection, {"id": record_id})

    def bulk_write(
        self,
        collection: Collection,
        ops: Sequence[WriteOp],
        *,
        deadline: Optional[Deadline] = None,
    ) -> BulkResult:
        result = BulkResult()
        if not ops:
            return result

        now = self._clock()
        try:
            # One connection, one transaction: db_cursor commits only after every op ran.
            with db_cursor(self._conn_factory) as (_, cur):
                for op in ops:
                    if deadline:
                        deadline.check()
                    self._execute(cur, collection, op, result, now)
                if deadline:
                    deadline.check()
        except DeadlineExceeded:
            raise
        except (mysql.connector.Error, DuplicateKeyError, ValueError) as e:
            raise BatchWriteError(f"{collection.name}: batch of {len(ops)} operation(s) failed: {e}") from e
        return result

    def _execute(self, cur, collection: Collection, op: WriteOp, result: BulkResult, now: datetime) -> None:
        if isinstance(op, InsertOne):
            record = collection.new_record(op.values, record_id=self._id_factory(), now=now)
            self._insert_row(cur, collection, record)
            result.inserted_ids.append(record["id"])
        elif isinstance(op, UpdateOne):
            self._update_row(cur, collection, op.record_id, op.changes, result, now)
        elif isinstance(op, UpsertIfAbsent):
            clause, params = compile_where(collection, op.key)
            cur.execute(f"SELECT `id` FROM `{collection.name}`{clause} LIMIT 1 FOR UPDATE", params)
            if fetchone(cur):
                result.ignored += 1
                return
            record = collection.new_record({**op.values, **op.key}, record_id=self._id_factory(), now=now)
            try:
                self._insert_row(cur, collection, record)
            except DuplicateKeyError:
                # A concurrent writer got there first; the pair is already assigned.
                logger.debug("Upsert on %s matched a concurrent insert for %s", collection.name, dict(op.key))
                result.ignored += 1
                return
            result.upserted_ids.append(record["id"])
        elif isinstance(op, DeleteMany):
            if not op.where:
                raise ValueError("DeleteMany needs a filter")
            clause, params = compile_where(collection, op.where)
            cur.execute(f"DELETE FROM `{collection.name}`{clause}", params)
            result.deleted_count += int(cur.rowcount or 0)
        else:
            raise TypeError(f"Unsupported write operation: {op!r}")

    def _insert_row(self, cur, collection: Collection, record: Mapping[str, Any]) -> None:
        columns = collection.columns
        sql = (
            f"INSERT INTO `{collection.name}` ({', '.join(f'`{c}`' for c in columns)}) "
            f"VALUES ({', '.join(['%s'] * len(columns))})"
        )
        try:
            cur.execute(sql, tuple(_to_sql(record.get(c)) for c in columns))
        except mysql.connector.IntegrityError as e:
            if is_duplicate_key(e):
                key = collection.unique[0] if collection.unique else ("id",)
                raise DuplicateKeyError(collection.name, key) from e
            raise

    def _update_row(
        self,
        cur,
        collection: Collection,
        record_id: str,
        changes: Mapping[str, Any],
        result: BulkResult,
        now: datetime,
    ) -> None:
        collection.check_fields(changes.keys())
        fields = [f for f in changes if f not in SYSTEM_FIELDS]
        assignments = ", ".join([f"`{f}`=%s" for f in fields] + ["`updated_at`=%s"])
        params = tuple(_to_sql(changes[f]) for f in fields) + (now, record_id)
        try:
            cur.execute(f"UPDATE `{collection.name}` SET {assignments} WHERE `id`=%s", params)
        except mysql.connector.IntegrityError as e:
            if is_duplicate_key(e):
                raise DuplicateKeyError(collection.name, collection.unique[0] if collection.unique else ("id",)) from e
            raise
        if cur.rowcount > 0:
            result.modified_ids.append(record_id)
