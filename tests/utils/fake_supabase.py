"""In-memory stand-in for the bits of the Supabase client the services use.

Supports table().select/insert/update/delete with eq, in_, or_ (including
nested and(...)), ilike inside or_, order, limit and exact counts, plus
rpc() and auth.get_user(). Good enough for workflow tests; not a PostgREST
implementation.
"""

import copy
import re
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Optional


DEFAULT_UNIQUE = {
    "profiles": [("username",)],
    "request_interests": [("request_id", "user_id")],
    "reviews": [("deal_id", "reviewer_id")],
    "user_badges": [("user_id", "badge_type")],
}

_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeAPIError(Exception):
    """Mimics postgrest's APIError enough for duplicate detection."""

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


def _split_top_level(expr: str) -> list[str]:
    parts, depth, current = [], 0, []
    for char in expr:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    if current:
        parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def _ilike(value: Any, pattern: str) -> bool:
    regex = "^" + ".*".join(re.escape(piece) for piece in pattern.split("%")) + "$"
    return re.match(regex, str(value or ""), re.IGNORECASE | re.DOTALL) is not None


def _condition(expr: str) -> Callable[[dict], bool]:
    if expr.startswith("and(") and expr.endswith(")"):
        checks = [_condition(p) for p in _split_top_level(expr[4:-1])]
        return lambda row: all(check(row) for check in checks)
    if expr.startswith("or(") and expr.endswith(")"):
        checks = [_condition(p) for p in _split_top_level(expr[3:-1])]
        return lambda row: any(check(row) for check in checks)

    column, op, value = expr.split(".", 2)
    if op == "eq":
        return lambda row: row.get(column) is not None and str(row.get(column)) == value
    if op == "neq":
        return lambda row: str(row.get(column)) != value
    if op == "ilike":
        return lambda row: _ilike(row.get(column), value)
    if op == "is" and value == "null":
        return lambda row: row.get(column) is None
    raise NotImplementedError(f"or_ operator not supported by fake: {op}")


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self._op = "select"
        self._payload: Any = None
        self._filters: list[Callable[[dict], bool]] = []
        self._order: Optional[tuple[str, bool]] = None
        self._limit: Optional[int] = None
        self._count: Optional[str] = None

    # Operations
    def select(self, *columns, count=None, **kwargs):
        self._count = count
        return self

    def insert(self, payload):
        self._op, self._payload = "insert", payload
        return self

    def update(self, payload):
        self._op, self._payload = "update", payload
        return self

    def delete(self):
        self._op = "delete"
        return self

    # Filters
    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self._filters.append(lambda row: row.get(column) in values)
        return self

    def is_(self, column, value):
        if value in ("null", None):
            self._filters.append(lambda row: row.get(column) is None)
        else:
            self._filters.append(lambda row: row.get(column) == value)
        return self

    def ilike(self, column, pattern):
        self._filters.append(lambda row: _ilike(row.get(column), pattern))
        return self

    def or_(self, expr):
        checks = [_condition(part) for part in _split_top_level(expr)]
        self._filters.append(lambda row: any(check(row) for check in checks))
        return self

    def order(self, column, desc=False, **kwargs):
        self._order = (column, desc)
        return self

    def limit(self, size):
        self._limit = size
        return self

    # Execution
    def _matches(self) -> list[dict]:
        rows = self.db.tables.setdefault(self.table_name, [])
        return [row for row in rows if all(check(row) for check in self._filters)]

    def execute(self):
        self.db.calls.append((self.table_name, self._op))
        if self._op == "insert":
            return self._execute_insert()
        if self._op == "update":
            matched = self._matches()
            for row in matched:
                row.update(copy.deepcopy(self._payload))
            return SimpleNamespace(data=copy.deepcopy(matched), count=None)
        if self._op == "delete":
            matched = self._matches()
            rows = self.db.tables[self.table_name]
            self.db.tables[self.table_name] = [r for r in rows if r not in matched]
            return SimpleNamespace(data=copy.deepcopy(matched), count=None)

        matched = self._matches()
        if self._order:
            column, desc = self._order
            present = [r for r in matched if r.get(column) is not None]
            missing = [r for r in matched if r.get(column) is None]
            present.sort(key=lambda r: r[column], reverse=desc)
            matched = present + missing
        count = len(matched) if self._count else None
        if self._limit is not None:
            matched = matched[: self._limit]
        return SimpleNamespace(data=copy.deepcopy(matched), count=count)

    def _execute_insert(self):
        payload = self._payload if isinstance(self._payload, list) else [self._payload]
        rows = self.db.tables.setdefault(self.table_name, [])
        inserted = []
        for item in payload:
            row = copy.deepcopy(item)
            row.setdefault("id", str(uuid.uuid4()))
            stamp = self.db.next_timestamp()
            row.setdefault("created_at", stamp)
            if self.table_name in self.db.timestamped:
                row.setdefault("updated_at", stamp)
            for columns in self.db.unique.get(self.table_name, []):
                key = tuple(row.get(c) for c in columns)
                if any(tuple(r.get(c) for c in columns) == key for r in rows + inserted):
                    raise FakeAPIError(
                        f'duplicate key value violates unique constraint "{self.table_name}_{"_".join(columns)}_key"',
                        code="23505",
                    )
            inserted.append(row)
        rows.extend(inserted)
        return SimpleNamespace(data=copy.deepcopy(inserted), count=None)


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: dict):
        self.db, self.name, self.params = db, name, params

    def execute(self):
        handler = self.db.rpc_handlers.get(self.name)
        if handler is None:
            raise FakeAPIError(f"function {self.name} does not exist", code="42883")
        return SimpleNamespace(data=handler(self.db, **self.params), count=None)


class FakeAuth:
    def __init__(self):
        self.tokens: dict[str, str] = {}

    def get_user(self, token: str):
        if token not in self.tokens:
            raise FakeAPIError("invalid JWT", code="401")
        return SimpleNamespace(user=SimpleNamespace(id=self.tokens[token]))


def _has_role(db: "FakeSupabase", _user_id: str, _role: str) -> bool:
    return any(
        r.get("user_id") == _user_id and r.get("role") == _role
        for r in db.tables.get("user_roles", [])
    )


class FakeSupabase:
    timestamped = {"profiles", "requests", "deals", "conversations"}

    def __init__(self, tables: Optional[dict[str, list[dict]]] = None):
        self.tables: dict[str, list[dict]] = copy.deepcopy(tables) if tables else {}
        self.unique = dict(DEFAULT_UNIQUE)
        self.rpc_handlers: dict[str, Callable] = {"has_role": _has_role}
        self.auth = FakeAuth()
        self.calls: list[tuple[str, str]] = []
        self._seq = 0

    def next_timestamp(self) -> str:
        self._seq += 1
        return (_EPOCH + timedelta(seconds=self._seq)).isoformat()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: dict) -> FakeRpc:
        return FakeRpc(self, name, params)

    def rows(self, table: str) -> list[dict]:
        return self.tables.setdefault(table, [])

    def row(self, table: str, row_id: str) -> Optional[dict]:
        return next((r for r in self.rows(table) if r.get("id") == row_id), None)

    def add(self, table: str, row: dict) -> dict:
        """Seed a row directly (no uniqueness checks)."""
        row = copy.deepcopy(row)
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", self.next_timestamp())
        self.rows(table).append(row)
        return row
