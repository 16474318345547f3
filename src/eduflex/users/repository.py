from __future__ import annotations

from typing import Iterable

from ..store import AnyOf, RecordStore
from ..store.collections import USERS
from .model import UserSummary


class UserRepository:
    def __init__(self, store: RecordStore):
        self._store = store

    def get_summaries(self, user_ids: Iterable[str]) -> dict[str, UserSummary]:
        ids = {i for i in user_ids if i}
        if not ids:
            return {}
        rows = self._store.find(USERS, {"id": AnyOf(sorted(ids))})
        return {r["id"]: UserSummary.from_row(r) for r in rows}
