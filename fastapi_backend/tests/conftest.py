from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import pytest
from fastapi.testclient import TestClient

from src.api.errors import QueryFailed, StoreUnreachable
from src.api.main import create_app
from src.api.users import COUNT_SQL, CREATE_TABLE_SQL, LIST_SQL, PROBE_SQL, UserStore


class FakeDatabase:
    """In-memory stand-in for :class:`src.api.db.Database`.

    Understands only the fixed statements issued by :class:`UserStore`.
    """

    def __init__(self) -> None:
        self.table_exists = False
        self.rows: List[Dict[str, Any]] = []
        self.next_id = 1
        self.unreachable = False
        self.failing_query: Optional[str] = None
        self.schema_statements = 0
        self.insert_statements = 0
        self.closed = False
        self.now = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

    def _check(self, query: str) -> None:
        if self.unreachable:
            raise StoreUnreachable('could not connect to server: Connection refused (host "db")')
        if self.failing_query == query:
            raise QueryFailed('ERROR: permission denied for table users')

    def _require_table(self) -> None:
        if not self.table_exists:
            raise QueryFailed('relation "users" does not exist')

    def add_row(self, name: str, created_at: Any = None) -> int:
        row_id = self.next_id
        self.next_id += 1
        stamp = created_at if created_at is not None else self.now + timedelta(seconds=row_id)
        self.rows.append({"id": row_id, "name": name, "created_at": stamp})
        return row_id

    def execute(self, query: str, params: Optional[Sequence[Any]] = None) -> int:
        self._check(query)
        if query == CREATE_TABLE_SQL:
            self.schema_statements += 1
            self.table_exists = True
            return 0
        if query.startswith("INSERT INTO users (name) VALUES"):
            self._require_table()
            names = list(params or [])
            assert query.count("%s") == len(names)
            self.insert_statements += 1
            for name in names:
                self.add_row(name)
            return len(names)
        raise AssertionError(f"unexpected statement: {query}")

    def fetch_one(self, query: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        self._check(query)
        if query == PROBE_SQL:
            return {"now": self.now}
        if query == COUNT_SQL:
            self._require_table()
            return {"count": len(self.rows)}
        raise AssertionError(f"unexpected query: {query}")

    def fetch_all(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        self._check(query)
        if query == LIST_SQL:
            self._require_table()
            return [dict(row) for row in sorted(self.rows, key=lambda r: r["id"])]
        raise AssertionError(f"unexpected query: {query}")

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture()
def store(fake_db: FakeDatabase) -> UserStore:
    return UserStore(fake_db)


@pytest.fixture()
def client(store: UserStore):
    app = create_app(store=store, run_bootstrap=False)
    with TestClient(app) as test_client:
        yield test_client
