from __future__ import annotations

import re

import pytest

from eduflex.database.bootstrap import SCHEMA_PATH
from eduflex.store.collections import ALL_COLLECTIONS

TABLE_RE = re.compile(r"CREATE TABLE IF NOT EXISTS (\w+) \((.*?)\n\);", re.DOTALL)


def _schema_columns() -> dict[str, set[str]]:
    tables = {}
    for name, body in TABLE_RE.findall(SCHEMA_PATH.read_text(encoding="utf-8")):
        columns = set()
        for line in body.strip().splitlines():
            first = line.strip().split(" ", 1)[0]
            if first in {"KEY", "UNIQUE", "PRIMARY"}:
                continue
            columns.add(first)
        tables[name] = columns
    return tables


@pytest.mark.parametrize("collection", ALL_COLLECTIONS, ids=lambda c: c.name)
def test_schema_matches_declared_collections(collection):
    assert _schema_columns()[collection.name] == set(collection.columns)


def test_tute_assignment_pair_is_unique_in_schema():
    text = SCHEMA_PATH.read_text(encoding="utf-8")

    assert "UNIQUE KEY uq_tute_assignments_student_tute (student_id, tute_id)" in text
