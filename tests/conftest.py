"""Shared fixtures: test settings and an in-memory stand-in for Supabase.

``FakeSupabase`` understands the subset of the PostgREST query builder the
app uses (select / eq / in_ / gte / order / limit / insert / upsert) and
filters rows held in plain lists, so DB-backed code runs without a network.
"""

import os
from types import SimpleNamespace
from typing import Any, Callable

import pytest

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ["MISTRAL_API_KEY"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self._db = db
        self._table = table
        self._filters: list[Callable[[dict[str, Any]], bool]] = []
        self._order: tuple[str, bool] | None = None
        self._limit: int | None = None
        self._count: str | None = None
        self._head = False
        self._write: list[dict[str, Any]] | None = None

    def select(self, *columns: str, count: str | None = None, head: bool = False):
        self._count = count
        self._head = head
        return self

    def eq(self, column: str, value: Any):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column: str, values: list[Any]):
        allowed = set(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    def gte(self, column: str, value: Any):
        self._filters.append(
            lambda row: row.get(column) is not None and row.get(column) >= value
        )
        return self

    def order(self, column: str, desc: bool = False):
        self._order = (column, desc)
        return self

    def limit(self, n: int):
        self._limit = n
        return self

    def insert(self, rows: dict[str, Any] | list[dict[str, Any]]):
        self._write = [dict(r) for r in (rows if isinstance(rows, list) else [rows])]
        return self

    upsert = insert

    def execute(self) -> SimpleNamespace:
        self._db.calls.append(self._table)
        if self._table in self._db.errors:
            raise self._db.errors[self._table]

        if self._write is not None:
            stored = self._db.tables.setdefault(self._table, [])
            for row in self._write:
                row.setdefault("id", f"{self._table}-{len(stored) + 1}")
            stored.extend(self._write)
            return SimpleNamespace(data=[dict(r) for r in self._write], count=None)

        rows = [
            r for r in self._db.tables.get(self._table, []) if all(f(r) for f in self._filters)
        ]
        if self._order:
            column, desc = self._order
            rows.sort(
                key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc
            )
        if self._limit is not None:
            rows = rows[: self._limit]
        count = len(rows) if self._count else None
        data = [] if self._head else [dict(r) for r in rows]
        return SimpleNamespace(data=data, count=count)


class FakeAuth:
    def __init__(self) -> None:
        self.users: dict[str, SimpleNamespace] = {}

    def get_user(self, token: str) -> SimpleNamespace:
        if token not in self.users:
            raise RuntimeError("invalid JWT")
        return SimpleNamespace(user=self.users[token])


class FakeSupabase:
    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.errors: dict[str, Exception] = {}
        self.calls: list[str] = []
        self.auth = FakeAuth()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def add_user(self, token: str, user_id: str, email: str | None = None) -> None:
        self.auth.users[token] = SimpleNamespace(id=user_id, email=email)


@pytest.fixture
def fake_db(monkeypatch) -> FakeSupabase:
    """Install a FakeSupabase as the shared client."""
    from modcalc.services import db

    fake = FakeSupabase()
    monkeypatch.setattr(db, "_supabase", fake)
    return fake
