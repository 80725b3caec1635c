"""
In-memory stand-in for the parts of the Supabase client the services use.

Tables are lists of dict rows. Query builders support the PostgREST filters the code
calls and return objects with .data and .count like the real SDK. Unique constraints
raise postgrest APIError with code 23505; errors can be queued per (table, operation).
"""

from collections import defaultdict, deque
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Tuple

from postgrest.exceptions import APIError

from bib.core.timestamps import parse_timestamp

def _recommendation_key(row):
    title_key = row.get("tmdb_id") or row.get("recommendation_id") or row.get("movie_title")
    return (row.get("sender_id"), row.get("recipient_id"), title_key)


# Column tuples follow SQL semantics (a NULL never conflicts); callables build the key themselves
DEFAULT_UNIQUE = {
    "users": [("username",), ("email",)],
    "friends": [("user_id", "friend_id")],
    "friend_recommendations": [_recommendation_key],
    "watch_reminders": [("user_id", "movie_id")],
    "watch_group_members": [("group_id", "user_id")],
    "watch_group_picks": [("group_id", "media_type", "tmdb_id")],
    "watch_group_pick_votes": [("pick_id", "user_id")],
    "nudges": [
        ("from_user_id", "to_user_id", "recommendation_id"),
        ("from_user_id", "to_user_id", "friend_recommendation_id"),
        ("from_user_id", "to_user_id", "tmdb_id"),
    ],
    "push_subscriptions": [("endpoint",)],
}

DEFAULT_COLUMNS = {
    "friend_recommendations": {
        "is_read": False,
        "is_watched": False,
        "watched_at": None,
        "remind_at": None,
        "reminder_notified_at": None,
        "tmdb_id": None,
        "recommendation_id": None,
    },
    "nudges": {"is_read": False},
    "watch_reminders": {"notified_at": None, "canceled_at": None},
    "watch_groups": {"description": None},
}


def api_error(message: str, code: str = "") -> APIError:
    return APIError({"message": message, "code": code, "details": None, "hint": None})


def _comparable(value: Any) -> Any:
    if isinstance(value, str):
        parsed = parse_timestamp(value)
        if parsed is not None and ("T" in value or "-" in value):
            return parsed
    return value


def _literal(raw: str) -> Any:
    if raw == "null":
        return None
    if raw == "true":
        return True
    if raw == "false":
        return False
    return raw


def _ilike(value: Any, pattern: str) -> bool:
    if value is None:
        return False
    needle = pattern.strip("%").lower()
    return needle in str(value).lower()


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.operation = "select"
        self.columns = "*"
        self.count_mode: Optional[str] = None
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.orders: List[Tuple[str, bool]] = []
        self.row_limit: Optional[int] = None

    # ---- operations ----

    def select(self, columns: str = "*", count: Optional[str] = None):
        self.operation = "select"
        self.columns = columns
        self.count_mode = count
        return self

    def insert(self, payload):
        self.operation = "insert"
        self.payload = payload
        return self

    def upsert(self, payload, on_conflict: Optional[str] = None):
        self.operation = "upsert"
        self.payload = payload
        self.on_conflict = on_conflict
        return self

    def update(self, payload):
        self.operation = "update"
        self.payload = payload
        return self

    def delete(self):
        self.operation = "delete"
        return self

    # ---- filters ----

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        allowed = list(values)
        self.filters.append(lambda row: row.get(column) in allowed)
        return self

    def is_(self, column, value):
        expected = _literal(value) if isinstance(value, str) else value
        self.filters.append(lambda row: row.get(column) is expected or row.get(column) == expected)
        return self

    def _compare(self, column, value, op):
        def check(row):
            current = row.get(column)
            if current is None:
                return False
            return op(_comparable(current), _comparable(value))
        self.filters.append(check)
        return self

    def lte(self, column, value):
        return self._compare(column, value, lambda a, b: a <= b)

    def lt(self, column, value):
        return self._compare(column, value, lambda a, b: a < b)

    def gte(self, column, value):
        return self._compare(column, value, lambda a, b: a >= b)

    def gt(self, column, value):
        return self._compare(column, value, lambda a, b: a > b)

    def ilike(self, column, pattern):
        self.filters.append(lambda row: _ilike(row.get(column), pattern))
        return self

    def or_(self, expression: str):
        clauses = []
        for part in expression.split(","):
            column, op, raw = part.split(".", 2)
            clauses.append((column, op, raw))

        def check(row):
            for column, op, raw in clauses:
                value = row.get(column)
                if op == "is" and value is _literal(raw):
                    return True
                if op == "eq" and value == _literal(raw):
                    return True
                if op == "ilike" and _ilike(value, raw):
                    return True
            return False
        self.filters.append(check)
        return self

    def order(self, column, desc: bool = False):
        self.orders.append((column, desc))
        return self

    def limit(self, n: int):
        self.row_limit = n
        return self

    # ---- execution ----

    def _matches(self, row: Dict[str, Any]) -> bool:
        return all(check(row) for check in self.filters)

    def _project(self, row: Dict[str, Any]) -> Dict[str, Any]:
        if self.columns.strip() == "*":
            return dict(row)
        names = [c.strip() for c in self.columns.split(",") if c.strip()]
        return {name: row.get(name) for name in names}

    def _check_columns(self, names) -> None:
        missing = self.db.missing_columns.get(self.table_name, set())
        for name in names:
            if name in missing:
                raise api_error(f"column {self.table_name}.{name} does not exist", "42703")

    def execute(self):
        self.db.calls.append((self.table_name, self.operation))
        queued = self.db.errors.get((self.table_name, self.operation))
        if queued:
            raise queued.popleft()

        rows = self.db.tables[self.table_name]
        if self.operation == "select":
            if self.columns.strip() != "*":
                self._check_columns(c.strip() for c in self.columns.split(","))
            found = [r for r in rows if self._matches(r)]
            for column, desc in reversed(self.orders):
                present = [r for r in found if r.get(column) is not None]
                absent = [r for r in found if r.get(column) is None]
                present.sort(key=lambda r: _comparable(r[column]), reverse=desc)
                found = absent + present if desc else present + absent
            total = len(found)
            if self.row_limit is not None:
                found = found[:self.row_limit]
            return SimpleNamespace(
                data=[self._project(r) for r in found],
                count=total if self.count_mode else None,
            )

        if self.operation == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            created = [self.db.insert_row(self.table_name, dict(p)) for p in payload]
            return SimpleNamespace(data=created, count=None)

        if self.operation == "upsert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            keys = [k.strip() for k in (self.on_conflict or "id").split(",")]
            saved = []
            for item in payload:
                self._check_columns(item)
                existing = next(
                    (r for r in rows if all(r.get(k) == item.get(k) for k in keys)),
                    None,
                )
                if existing is not None:
                    existing.update(item)
                    saved.append(dict(existing))
                else:
                    saved.append(self.db.insert_row(self.table_name, dict(item)))
            return SimpleNamespace(data=saved, count=None)

        if self.operation == "update":
            self._check_columns(self.payload)
            targets = [row for row in rows if self._matches(row)]
            for row in targets:
                self.db.check_unique(self.table_name, {**row, **self.payload}, ignore=row)
            changed = []
            for row in targets:
                row.update(self.payload)
                changed.append(dict(row))
            return SimpleNamespace(data=changed, count=None)

        if self.operation == "delete":
            removed = [r for r in rows if self._matches(r)]
            self.db.tables[self.table_name] = [r for r in rows if not self._matches(r)]
            return SimpleNamespace(data=removed, count=None)

        raise AssertionError(f"unsupported operation {self.operation}")


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: Dict[str, Any]):
        self.db = db
        self.name = name
        self.params = params

    def execute(self):
        self.db.calls.append((self.name, "rpc"))
        queued = self.db.errors.get((self.name, "rpc"))
        if queued:
            raise queued.popleft()
        handler = self.db.rpc_handlers.get(self.name)
        if handler is None:
            raise api_error(f"function {self.name} does not exist", "42883")
        return SimpleNamespace(data=handler(self.db, self.params), count=None)


class FakeAuth:
    """Token -> user lookups for AuthService.get_current_user"""

    def __init__(self):
        self.users: Dict[str, SimpleNamespace] = {}
        self.get_user_calls = 0
        self.signups: List[str] = []

    def add_token(self, token: str, user_id: str, email: str = "", metadata: Optional[dict] = None):
        self.users[token] = SimpleNamespace(
            id=user_id,
            email=email,
            user_metadata=metadata or {},
            created_at="2024-01-01T00:00:00+00:00",
        )

    def get_user(self, jwt: str):
        self.get_user_calls += 1
        user = self.users.get(jwt)
        if user is None:
            raise Exception("invalid JWT: token is expired")
        return SimpleNamespace(user=user)

    def sign_up(self, credentials: dict):
        """Email-confirmation projects: a user comes back without a session"""
        self.signups.append(credentials["email"])
        user = SimpleNamespace(id=f"auth-{len(self.signups)}", email=credentials["email"])
        return SimpleNamespace(user=user, session=None)

    def sign_out(self):
        return None


class FakeSupabase:
    def __init__(self, unique: Optional[Dict[str, List[Tuple[str, ...]]]] = None):
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.unique = dict(DEFAULT_UNIQUE if unique is None else unique)
        self.errors: Dict[Tuple[str, str], deque] = defaultdict(deque)
        self.missing_columns: Dict[str, set] = {}
        self.rpc_handlers: Dict[str, Callable] = {}
        self.calls: List[Tuple[str, str]] = []
        self.auth = FakeAuth()
        self._ids = 0
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Optional[Dict[str, Any]] = None) -> FakeRpc:
        return FakeRpc(self, name, params or {})

    def fail_next(self, table: str, operation: str, error: Exception, times: int = 1) -> None:
        for _ in range(times):
            self.errors[(table, operation)].append(error)

    def next_id(self, table: str) -> str:
        self._ids += 1
        return f"{table}-{self._ids}"

    def next_timestamp(self) -> str:
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    def insert_row(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        missing = self.missing_columns.get(table, set())
        for name in row:
            if name in missing:
                raise api_error(f"Could not find the '{name}' column of '{table}' in the schema cache", "PGRST204")
        full = {**DEFAULT_COLUMNS.get(table, {}), **row}
        full.setdefault("id", self.next_id(table))
        full.setdefault("created_at", self.next_timestamp())
        self.check_unique(table, full)
        self.tables[table].append(full)
        return dict(full)

    def check_unique(self, table: str, candidate: Dict[str, Any], ignore: Optional[Dict[str, Any]] = None) -> None:
        for constraint in self.unique.get(table, []):
            if callable(constraint):
                key = constraint
            else:
                key = (lambda columns: lambda row: tuple(row.get(c) for c in columns))(constraint)
            wanted = key(candidate)
            if any(part is None for part in wanted):
                continue
            for existing in self.tables[table]:
                if existing is not ignore and key(existing) == wanted:
                    raise api_error(f'duplicate key value violates unique constraint "{table}_key"', "23505")

    def seed(self, table: str, *rows: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [self.insert_row(table, dict(row)) for row in rows]

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables[table]
