from collections import defaultdict
from types import SimpleNamespace

import pytest


class FakeQuery:
    """Chainable stand-in for the postgrest query builder."""

    def __init__(self, table: "FakeTable", op: str, payload=None, on_conflict: str | None = None) -> None:
        self.table = table
        self.op = op
        self.payload = payload
        self.on_conflict = on_conflict
        self.filters = []

    def select(self, *_columns):
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def limit(self, _count):
        return self

    def _matches(self, row) -> bool:
        return all(check(row) for check in self.filters)

    def execute(self):
        if self.table.fail:
            raise ConnectionError("supabase unreachable")
        self.table.calls.append((self.op, self.payload))
        if self.op == "select":
            return SimpleNamespace(data=[dict(row) for row in self.table.rows if self._matches(row)])
        if self.op == "update":
            updated = []
            for row in self.table.rows:
                if self._matches(row):
                    row.update(self.payload)
                    updated.append(dict(row))
            return SimpleNamespace(data=updated)
        if self.op == "upsert":
            keys = [key.strip() for key in (self.on_conflict or "id").split(",")]
            for row in self.table.rows:
                if all(row.get(key) == self.payload.get(key) for key in keys):
                    row.update(self.payload)
                    break
            else:
                self.table.rows.append(dict(self.payload))
            return SimpleNamespace(data=[self.payload])
        raise AssertionError(f"unexpected operation {self.op}")


class FakeTable:
    def __init__(self) -> None:
        self.rows = []
        self.calls = []
        self.fail = False

    def select(self, *_columns):
        return FakeQuery(self, "select")

    def update(self, payload):
        return FakeQuery(self, "update", payload)

    def upsert(self, payload, on_conflict=None):
        return FakeQuery(self, "upsert", payload, on_conflict)


class FakeSupabase:
    def __init__(self) -> None:
        self.tables = defaultdict(FakeTable)

    def table(self, name):
        return self.tables[name]


@pytest.fixture
def fake_supabase():
    return FakeSupabase()
