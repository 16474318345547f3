from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..core.exceptions import DeadlineExceeded, ReconciliationError
from ..store import BatchWriteError, BulkResult, Deadline, RecordStore, WriteOp
from ..store.collections import Collection

logger = logging.getLogger(__name__)


def apply_batch(
    store: RecordStore,
    collection: Collection,
    ops: Sequence[WriteOp],
    *,
    deadline: Optional[Deadline] = None,
    label: str,
) -> BulkResult:
    """Run a planned batch, reporting any failure as one reconciliation error."""

    if not ops:
        return BulkResult()
    try:
        return store.bulk_write(collection, ops, deadline=deadline)
    except DeadlineExceeded:
        logger.warning("%s: deadline expired before commit (%d op(s) discarded)", label, len(ops))
        raise
    except BatchWriteError as e:
        logger.exception("%s: batch of %d op(s) failed", label, len(ops))
        raise ReconciliationError(f"Could not apply {label}") from e
