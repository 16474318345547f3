from __future__ import annotations

import threading
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Sequence

from ..common.datetime_utils import now_local
from ..core.exceptions import DeadlineExceeded
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
from .collections import Collection
from .query import matches, sort_records


class InMemoryRecordStore(RecordStore):
    """Process-local store with the same semantics as the MySQL store.

    Batches are staged on a copy of the collection and swapped in only
    after every operation succeeded.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = now_local,
        id_factory: Callable[[], str] = new_record_id,
    ):
        self._data: dict[str, dict[str, dict]] = {}
        self._lock = threading.RLock()
        self._clock = clock
        self._id_factory = id_factory

    def find(
        self,
        collection: Collection,
        where: Optional[Mapping[str, Any]] = None,
        *,
        order_by: Sequence[str] = (),
    ) -> list[dict]:
        collection.check_fields((where or {}).keys())
        with self._lock:
            table = self._data.get(collection.name, {})
            rows = [dict(r) for r in table.values() if matches(r, where)]
        return sort_records(rows, order_by)

    def find_one(self, collection: Collection, where: Mapping[str, Any]) -> Optional[dict]:
        rows = self.find(collection, where)
        return rows[0] if rows else None

    def insert(self, collection: Collection, values: Mapping[str, Any], *, deadline: Optional[Deadline] = None) -> dict:
        result = self._commit(collection, [InsertOne(values)], deadline)
        return self.find_one(collection, {"id": result.inserted_ids[0]})

    def update_by_id(
        self,
        collection: Collection,
        record_id: str,
        changes: Mapping[str, Any],
        *,
        deadline: Optional[Deadline] = None,
    ) -> Optional[dict]:
        result = self._commit(collection, [UpdateOne(record_id, changes)], deadline)
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
        try:
            return self._commit(collection, ops, deadline)
        except DeadlineExceeded:
            raise
        except (DuplicateKeyError, ValueError) as e:
            raise BatchWriteError(f"{collection.name}: batch of {len(ops)} operation(s) failed: {e}") from e

    def _commit(self, collection: Collection, ops: Sequence[WriteOp], deadline: Optional[Deadline]) -> BulkResult:
        result = BulkResult()
        with self._lock:
            staged = dict(self._data.get(collection.name, {}))
            now = self._clock()
            for op in ops:
                if deadline:
                    deadline.check()
                self._apply(staged, collection, op, result, now)
            if deadline:
                deadline.check()
            self._data[collection.name] = staged
        return result

    def _apply(self, table: dict[str, dict], collection: Collection, op: WriteOp, result: BulkResult, now: datetime) -> None:
        if isinstance(op, InsertOne):
            result.inserted_ids.append(self._insert(table, collection, op.values, now))
        elif isinstance(op, UpdateOne):
            collection.check_fields(op.changes.keys())
            current = table.get(op.record_id)
            if current is None:
                return
            updated = {**current, **op.changes, "updated_at": now}
            self._check_unique(table, collection, updated)
            table[op.record_id] = updated
            result.modified_ids.append(op.record_id)
        elif isinstance(op, UpsertIfAbsent):
            collection.check_fields(op.key.keys())
            if any(matches(r, op.key) for r in table.values()):
                result.ignored += 1
                return
            try:
                result.upserted_ids.append(self._insert(table, collection, {**op.values, **op.key}, now))
            except DuplicateKeyError:
                result.ignored += 1
        elif isinstance(op, DeleteMany):
            collection.check_fields(op.where.keys())
            if not op.where:
                raise ValueError("DeleteMany needs a filter")
            doomed = [rid for rid, r in table.items() if matches(r, op.where)]
            for rid in doomed:
                del table[rid]
            result.deleted_count += len(doomed)
        else:
            raise TypeError(f"Unsupported write operation: {op!r}")

    def _insert(self, table: dict[str, dict], collection: Collection, values: Mapping[str, Any], now: datetime) -> str:
        record = collection.new_record(values, record_id=self._id_factory(), now=now)
        self._check_unique(table, collection, record)
        table[record["id"]] = record
        return record["id"]

    @staticmethod
    def _check_unique(table: dict[str, dict], collection: Collection, record: dict) -> None:
        for key in collection.unique:
            probe = {f: record.get(f) for f in key}
            for other in table.values():
                if other["id"] != record["id"] and matches(other, probe):
                    raise DuplicateKeyError(collection.name, key)
