from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol, Sequence, Union

from ..core.exceptions import DeadlineExceeded
from .collections import Collection


class DuplicateKeyError(Exception):
    """A write would break one of the collection's unique keys."""

    def __init__(self, collection: str, key: Sequence[str]):
        super().__init__(f"Duplicate key on {collection} ({', '.join(key)})")
        self.collection = collection
        self.key = tuple(key)


class BatchWriteError(Exception):
    """A bulk write failed; none of its operations were applied."""


def new_record_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Deadline:
    """Monotonic expiry carried from the request into persistence calls."""

    expires_at: float

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(time.monotonic() + float(seconds))

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def check(self) -> None:
        if self.expired:
            raise DeadlineExceeded("Request deadline exceeded")


@dataclass(frozen=True)
class InsertOne:
    values: Mapping[str, Any]


@dataclass(frozen=True)
class UpdateOne:
    record_id: str
    changes: Mapping[str, Any]


@dataclass(frozen=True)
class UpsertIfAbsent:
    """Insert ``key | values`` unless a record matching ``key`` already exists.

    An existing record is left completely untouched.
    """

    key: Mapping[str, Any]
    values: Mapping[str, Any]


@dataclass(frozen=True)
class DeleteMany:
    where: Mapping[str, Any]


WriteOp = Union[InsertOne, UpdateOne, UpsertIfAbsent, DeleteMany]


@dataclass
class BulkResult:
    inserted_ids: list[str] = field(default_factory=list)
    modified_ids: list[str] = field(default_factory=list)
    upserted_ids: list[str] = field(default_factory=list)
    deleted_count: int = 0
    ignored: int = 0


class RecordStore(Protocol):
    """Generic per-collection persistence used by every repository."""

    def find(
        self,
        collection: Collection,
        where: Optional[Mapping[str, Any]] = None,
        *,
        order_by: Sequence[str] = (),
    ) -> list[dict]:
        raise NotImplementedError

    def find_one(self, collection: Collection, where: Mapping[str, Any]) -> Optional[dict]:
        raise NotImplementedError

    def insert(self, collection: Collection, values: Mapping[str, Any], *, deadline: Optional[Deadline] = None) -> dict:
        raise NotImplementedError

    def update_by_id(
        self,
        collection: Collection,
        record_id: str,
        changes: Mapping[str, Any],
        *,
        deadline: Optional[Deadline] = None,
    ) -> Optional[dict]:
        raise NotImplementedError

    def bulk_write(
        self,
        collection: Collection,
        ops: Sequence[WriteOp],
        *,
        deadline: Optional[Deadline] = None,
    ) -> BulkResult:
        """Apply all operations or none of them."""

        raise NotImplementedError
