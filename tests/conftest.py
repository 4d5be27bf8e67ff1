"""
Shared fixtures: an in-memory stand-in for the Supabase PostgREST builder.

FakeSupabase.table() returns a FakeQuery that records every builder call and
evaluates the filters against plain dict rows on execute(), so tests can
check both the query that was built and the rows it would return.
"""

import operator
from typing import Any, Callable, Dict, List, Optional

import pytest


_COMPARISONS = {
    "gte": operator.ge,
    "gt": operator.gt,
    "lte": operator.le,
    "lt": operator.lt,
}


class FakeResult:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


def _split_top_level(text: str) -> List[str]:
    parts, depth, current = [], 0, ""
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(current)
            current = ""
        else:
            current += ch
    if current:
        parts.append(current)
    return parts


def _match(op: str, left: Any, right: Any) -> bool:
    if left is None:
        return False
    if op == "ilike":
        return str(left).lower() == str(right).lower()
    if op == "eq":
        return str(left) == str(right)
    try:
        return _COMPARISONS[op](float(left), float(right))
    except (TypeError, ValueError):
        return False


def parse_or_condition(text: str) -> Callable[[Dict[str, Any]], bool]:
    """Compile a PostgREST or_() condition such as 'a.gte.1,and(b.lt.2,c.gte.0)'."""
    if text.startswith("and(") and text.endswith(")"):
        subs = [parse_or_condition(part) for part in _split_top_level(text[4:-1])]
        return lambda row: all(sub(row) for sub in subs)
    column, op, value = text.split(".", 2)
    return lambda row: _match(op, row.get(column), value)


class FakeQuery:
    def __init__(self, db: "FakeSupabase", name: str):
        self._db = db
        self.name = name
        self.calls: List[tuple] = []
        self.columns = "*"
        self.count_mode: Optional[str] = None
        self._filters: List[Callable[[Dict[str, Any]], bool]] = []
        self._order: List[tuple] = []
        self._range: Optional[tuple] = None
        self._limit: Optional[int] = None

    def select(self, columns="*", count=None):
        self.calls.append(("select", columns, count))
        self.columns = columns
        self.count_mode = count
        return self

    def in_(self, column, values):
        self.calls.append(("in_", column, list(values)))
        self._filters.append(lambda row: row.get(column) in values)
        return self

    def _compare(self, op, column, value):
        self.calls.append((op, column, value))
        self._filters.append(lambda row: _match(op, row.get(column), value))
        return self

    def gte(self, column, value):
        return self._compare("gte", column, value)

    def lte(self, column, value):
        return self._compare("lte", column, value)

    def lt(self, column, value):
        return self._compare("lt", column, value)

    def or_(self, filters):
        self.calls.append(("or_", filters))
        conditions = [parse_or_condition(part) for part in _split_top_level(filters)]
        self._filters.append(lambda row: any(cond(row) for cond in conditions))
        return self

    def order(self, column, desc=False):
        self.calls.append(("order", column, desc))
        self._order.append((column, desc))
        return self

    def range(self, start, end):
        self.calls.append(("range", start, end))
        self._range = (start, end)
        return self

    def limit(self, size):
        self.calls.append(("limit", size))
        self._limit = size
        return self

    def predicate_calls(self) -> List[tuple]:
        return [c for c in self.calls if c[0] in ("in_", "gte", "lte", "lt", "or_")]

    def execute(self):
        self._db.executed.append(self)
        if self._db.on_execute is not None:
            self._db.on_execute(self)
        if self._db.error is not None:
            raise self._db.error

        rows = [row for row in self._db.rows if all(f(row) for f in self._filters)]
        count = len(rows) if self.count_mode == "exact" else None

        for column, desc in reversed(self._order):
            rows = sorted(rows, key=lambda row: row.get(column), reverse=desc)
        if self._range is not None:
            start, end = self._range
            rows = rows[start:end + 1]
        if self._db.max_rows is not None:
            rows = rows[:self._db.max_rows]
        if self._limit is not None:
            rows = rows[:self._limit]

        if self.columns != "*":
            keep = [c.strip() for c in self.columns.split(",")]
            rows = [{k: row.get(k) for k in keep} for row in rows]
        else:
            rows = [dict(row) for row in rows]

        return FakeResult(rows, count)


class FakeSupabase:
    """Minimal Supabase client: table(name) -> FakeQuery over self.rows."""

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None):
        self.rows = list(rows or [])
        self.error: Optional[Exception] = None
        self.max_rows: Optional[int] = None
        self.on_execute: Optional[Callable[[FakeQuery], None]] = None
        self.executed: List[FakeQuery] = []
        self.tables: List[str] = []

    def table(self, name):
        self.tables.append(name)
        return FakeQuery(self, name)

    def queries_with(self, call_name: str) -> List[FakeQuery]:
        return [q for q in self.executed if any(c[0] == call_name for c in q.calls)]


def creator_row(index: int, **overrides) -> Dict[str, Any]:
    """A well-formed creatordata row; higher index means more followers."""
    row = {
        "id": f"creator-{index:03d}",
        "handle": f"creator{index}",
        "display_name": f"Creator {index}",
        "platform": "tiktok",
        "primary_niche": "Fitness",
        "secondary_niche": None,
        "location": "United States",
        "followers_count": 1000 * index,
        "average_views": 500 * index,
        "engagement_rate": 2.5,
        "average_likes": 100,
        "average_comments": 10,
        "buzz_score": 75,
        "created_at": "2025-01-01T00:00:00Z",
        "updated_at": "2025-02-01T00:00:00Z",
    }
    row.update(overrides)
    return row


@pytest.fixture
def make_row():
    return creator_row


@pytest.fixture
def fake_db():
    """Factory: fake_db(rows) -> FakeSupabase."""
    return FakeSupabase
