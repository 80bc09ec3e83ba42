"""
Pytest configuration and fixtures for reserve-api tests.

Provides an in-memory stand-in for the parts of the Supabase client the app
uses (table query builder and auth), and an API client wired to it.
"""

import uuid
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from reserve_api.database.supabase_client import get_supabase, get_service_supabase
from reserve_api.main import app, limiter
from reserve_api.modules.auth.service import clear_auth_cache


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Mimics postgrest's fluent builder: filters accumulate until execute()."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.limit_n = None
        self.offset_n = 0
        self.single_mode = None

    def select(self, *columns, **kwargs):
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.op = "update"
        self.payload = payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) >= value)
        return self

    def gt(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) > value)
        return self

    def lte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) <= value)
        return self

    def lt(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) < value)
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def offset(self, n):
        self.offset_n = n
        return self

    def single(self):
        self.single_mode = "single"
        return self

    def maybe_single(self):
        self.single_mode = "maybe"
        return self

    def _matches(self, row) -> bool:
        return all(f(row) for f in self.filters)

    def execute(self):
        self.db.record(self.table, self.op)
        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = [self.db.new_row(self.table, item) for item in payload]
            rows.extend(inserted)
            return FakeResponse([dict(r) for r in inserted])

        matched = [r for r in rows if self._matches(r)]
        if self.op == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResponse([dict(r) for r in matched])
        if self.op == "delete":
            self.db.tables[self.table] = [r for r in rows if not self._matches(r)]
            return FakeResponse([dict(r) for r in matched])

        result = [dict(r) for r in matched]
        if self.order_by:
            column, desc = self.order_by
            result.sort(
                key=lambda r: (r.get(column) is None, r.get(column) if r.get(column) is not None else 0),
                reverse=desc,
            )
        result = result[self.offset_n:]
        if self.limit_n is not None:
            result = result[:self.limit_n]

        if self.single_mode == "maybe":
            return FakeResponse(result[0]) if result else None
        if self.single_mode == "single":
            if len(result) != 1:
                raise Exception("JSON object requested, multiple (or no) rows returned")
            return FakeResponse(result[0])
        return FakeResponse(result)


class FakeAuth:
    def __init__(self):
        self.users: Dict[str, tuple] = {}
        self.tokens: Dict[str, Any] = {}
        self.signed_out = 0

    def add_user(self, email: str, password: str = "secret", user_id: str = None):
        user = SimpleNamespace(id=user_id or str(uuid.uuid4()), email=email, user_metadata={})
        self.users[email] = (password, user)
        token = f"token-{user.id}"
        self.tokens[token] = user
        return user, token

    def sign_up(self, credentials):
        email = credentials["email"]
        if email in self.users:
            raise Exception("User already registered")
        user, _ = self.add_user(email, credentials["password"])
        user.user_metadata = credentials.get("options", {}).get("data", {})
        return SimpleNamespace(user=user, session=None)

    def sign_in_with_password(self, credentials):
        entry = self.users.get(credentials["email"])
        if not entry or entry[0] != credentials["password"]:
            raise Exception("Invalid login credentials")
        user = entry[1]
        return SimpleNamespace(user=user, session=SimpleNamespace(access_token=f"token-{user.id}"))

    def get_user(self, jwt=None):
        user = self.tokens.get(jwt)
        if user is None:
            raise Exception("invalid JWT: unable to parse or verify signature")
        return SimpleNamespace(user=user)

    def sign_out(self):
        self.signed_out += 1


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[dict]] = {}
        self.calls: List[tuple] = []
        self.failures: Dict[tuple, int] = {}
        self._next_ids: Dict[str, int] = {}
        self.auth = FakeAuth()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def new_row(self, table: str, item: dict) -> dict:
        row = dict(item)
        next_id = self._next_ids.get(table, 1)
        if "id" not in row:
            row["id"] = next_id
        self._next_ids[table] = max(next_id, row["id"] + 1)
        row.setdefault("created_at", "2026-01-01T00:00:00+00:00")
        return row

    def record(self, table: str, op: str):
        self.calls.append((table, op))
        key = (table, op)
        if key in self.failures:
            if self.failures[key] == 0:
                del self.failures[key]
                raise Exception(f"simulated failure: {op} on {table}")
            self.failures[key] -= 1

    def fail_on(self, table: str, op: str, after: int = 0):
        """Make the (after + 1)-th `op` call on `table` raise once."""
        self.failures[(table, op)] = after

    def seed(self, table: str, rows: List[dict]) -> List[dict]:
        created = [self.new_row(table, row) for row in rows]
        self.tables.setdefault(table, []).extend(created)
        return created

    def rows(self, table: str) -> List[dict]:
        return self.tables.get(table, [])

    def writes(self) -> List[tuple]:
        return [call for call in self.calls if call[1] != "select"]


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def users(fake_supabase: FakeSupabase) -> Dict[str, SimpleNamespace]:
    """
    Three users with profiles: alice and bob are regular members, root is admin.

    Each entry has id (auth uuid), profile_id, token and ready-made headers.
    """
    people = {}
    for profile_id, (name, admin) in enumerate([("alice", False), ("bob", False), ("root", True)], start=1):
        user, token = fake_supabase.auth.add_user(f"{name}@example.com")
        fake_supabase.seed("profiles", [{
            "id": profile_id,
            "user_id": user.id,
            "name": name,
            "organization": "lab",
            "admin": admin,
        }])
        people[name] = SimpleNamespace(
            id=user.id,
            profile_id=profile_id,
            token=token,
            headers={"Authorization": f"Bearer {token}"},
        )
    return people


@pytest.fixture
def client(fake_supabase: FakeSupabase):
    """API client whose Supabase dependency is the in-memory fake."""
    clear_auth_cache()
    limiter.reset()
    app.dependency_overrides[get_supabase] = lambda: fake_supabase
    app.dependency_overrides[get_service_supabase] = lambda: fake_supabase
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
        clear_auth_cache()
