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
)
from .query import AnyOf, Between

__all__ = [
    "AnyOf",
    "BatchWriteError",
    "Between",
    "BulkResult",
    "Deadline",
    "DeleteMany",
    "DuplicateKeyError",
    "InsertOne",
    "RecordStore",
    "UpdateOne",
    "UpsertIfAbsent",
    "WriteOp",
]
