"""In-memory stand-in for the async Supabase client used by the services.

Covers the slice of the PostgREST query builder the backend uses, the
embedded-resource syntax of select(), the unique indexes from the migration
and the two directory RPC functions.
"""

import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from postgrest.exceptions import APIError

# column -> referenced table
FOREIGN_KEYS = {"team_id": "teams", "todo_id": "todos"}

TABLE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "teams": {"description": None, "max_members": 10, "updated_at": None},
    "team_members": {"role": "member"},
    "team_invitations": {"status": "pending", "responded_at": None},
    "todos": {"team_id": None, "status": "NOT_STARTED", "updated_at": None},
    "work_sessions": {"ended_at": None, "duration_minutes": None},
}

# table -> (columns, row predicate) for unique and partial unique indexes
UNIQUE_INDEXES: Dict[str, List[Tuple[Tuple[str, ...], Callable[[dict], bool]]]] = {
    "team_members": [(("team_id", "user_id"), lambda row: True)],
    "team_invitations": [
        (("team_id", "invited_email"), lambda row: row.get("status") == "pending")
    ],
    "work_sessions": [
        (("todo_id", "user_id"), lambda row: row.get("ended_at") is None)
    ],
}


def pg_error(code: str, message: str) -> APIError:
    return APIError({"code": code, "message": message, "hint": None, "details": None})


class FakeResponse:
    def __init__(self, data: Any, count: Optional[int] = None):
        self.data = data
        self.count = count


def _comparable(value: Any) -> Any:
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return value


def _sort_key(value: Any) -> Tuple[bool, Any]:
    if value is None:
        return (False, 0)
    return (True, _comparable(value))


def _same(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is right
    return str(left) == str(right)


def _split_top_level(columns: str) -> List[str]:
    parts, depth, current = [], 0, ""
    for char in columns:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += char
    if current.strip():
        parts.append(current.strip())
    return parts


EMBED = re.compile(r"^(?:(?P<alias>\w+):)?(?P<name>\w+)\((?P<columns>.*)\)$", re.S)


class FakeQuery:
    def __init__(self, store: "FakeSupabase", table: str):
        self.store = store
        self.table = table
        self.operation = "select"
        self.columns = "*"
        self.count_mode: Optional[str] = None
        self.head = False
        self.payload: Any = None
        self.filters: List[Callable[[dict], bool]] = []
        self.orderings: List[Tuple[str, bool]] = []
        self.row_limit: Optional[int] = None

    def select(self, columns: str = "*", count: Optional[str] = None, head: bool = False):
        self.operation = "select"
        self.columns = columns
        self.count_mode = count
        self.head = head
        return self

    def insert(self, rows, returning: str = "representation", **kwargs):
        self.operation = "insert"
        self.payload = rows if isinstance(rows, list) else [rows]
        return self

    def update(self, payload: dict, returning: str = "representation", **kwargs):
        self.operation = "update"
        self.payload = payload
        return self

    def delete(self, returning: str = "representation", **kwargs):
        self.operation = "delete"
        return self

    def eq(self, column: str, value: Any):
        self.filters.append(lambda row: _same(row.get(column), value))
        return self

    def match(self, query: Dict[str, Any]):
        for column, value in query.items():
            self.eq(column, value)
        return self

    def is_(self, column: str, value: Any):
        if value in (None, "null"):
            self.filters.append(lambda row: row.get(column) is None)
        else:
            self.filters.append(lambda row: _same(row.get(column), value))
        return self

    def in_(self, column: str, values):
        wanted = {str(v) for v in values}
        self.filters.append(lambda row: str(row.get(column)) in wanted)
        return self

    def gte(self, column: str, value: Any):
        self.filters.append(
            lambda row: row.get(column) is not None
            and _comparable(row[column]) >= _comparable(value)
        )
        return self

    def lte(self, column: str, value: Any):
        self.filters.append(
            lambda row: row.get(column) is not None
            and _comparable(row[column]) <= _comparable(value)
        )
        return self

    def order(self, column: str, desc: bool = False, **kwargs):
        self.orderings.append((column, desc))
        return self

    def limit(self, size: int, **kwargs):
        self.row_limit = size
        return self

    def _matching(self) -> List[dict]:
        return [
            row
            for row in self.store.tables.setdefault(self.table, [])
            if all(f(row) for f in self.filters)
        ]

    async def execute(self) -> FakeResponse:
        self.store.calls.append((self.table, self.operation))
        failure = self.store.failures.get((self.table, self.operation))
        if failure is not None:
            raise failure

        if self.operation == "insert":
            return FakeResponse([self.store.insert_row(self.table, row) for row in self.payload])

        if self.operation == "update":
            hook = self.store.before_update.pop(self.table, None)
            if hook:
                hook(self.payload)
            rows = self._matching()
            for row in rows:
                row.update(self.payload)
            return FakeResponse([dict(row) for row in rows])

        if self.operation == "delete":
            rows = self._matching()
            table = self.store.tables[self.table]
            self.store.tables[self.table] = [row for row in table if row not in rows]
            return FakeResponse([dict(row) for row in rows])

        rows = self._matching()
        for column, desc in reversed(self.orderings):
            rows.sort(key=lambda row: _sort_key(row.get(column)), reverse=desc)
        count = len(rows) if self.count_mode else None
        if self.row_limit is not None:
            rows = rows[: self.row_limit]
        if self.head:
            return FakeResponse([], count)
        return FakeResponse([self._project(row) for row in rows], count)

    def _project(self, row: dict) -> dict:
        result: Dict[str, Any] = {}
        for part in _split_top_level(self.columns):
            embed = EMBED.match(part)
            if part == "*":
                result.update(row)
            elif embed:
                result.update(self._embed(row, embed))
            else:
                result[part] = row.get(part)
        return result

    def _embed(self, row: dict, embed: re.Match) -> dict:
        name, alias = embed.group("name"), embed.group("alias")
        if alias:
            foreign_key, key = name, alias
        else:
            foreign_key = next(fk for fk, table in FOREIGN_KEYS.items() if table == name)
            key = name
        target_table = FOREIGN_KEYS[foreign_key]
        target = next(
            (
                candidate
                for candidate in self.store.tables.get(target_table, [])
                if _same(candidate.get("id"), row.get(foreign_key))
            ),
            None,
        )
        if target is None:
            return {key: None}
        sub = FakeQuery(self.store, target_table).select(embed.group("columns"))
        return {key: sub._project(target)}


class FakeRpc:
    def __init__(self, store: "FakeSupabase", name: str, params: Dict[str, Any]):
        self.store = store
        self.name = name
        self.params = params

    async def execute(self) -> FakeResponse:
        if self.name in self.store.failing_rpcs:
            raise pg_error("P0001", f"function {self.name} failed")

        if self.name == "get_user_by_email":
            email = self.params["user_email"].lower()
            return FakeResponse(
                [
                    {"id": user_id, "email": user_email}
                    for user_id, user_email in self.store.users.items()
                    if user_email.lower() == email
                ]
            )
        if self.name == "get_user_email_by_id":
            return FakeResponse(self.store.users.get(str(self.params["p_user_id"])))

        raise pg_error("PGRST202", f"Could not find the function {self.name}")


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[dict]] = {}
        self.users: Dict[str, str] = {}
        self.failures: Dict[Tuple[str, str], Exception] = {}
        self.failing_rpcs: Set[str] = set()
        self.before_insert: Dict[str, Callable[[dict], None]] = {}
        self.before_update: Dict[str, Callable[[dict], None]] = {}
        self.calls: List[Tuple[str, str]] = []
        self._clock = datetime.now(timezone.utc)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Optional[Dict[str, Any]] = None) -> FakeRpc:
        return FakeRpc(self, name, params or {})

    def add_user(self, email: str) -> uuid.UUID:
        user_id = uuid.uuid4()
        self.users[str(user_id)] = email
        return user_id

    def now(self) -> str:
        # strictly increasing so ordering by created_at is deterministic
        self._clock += timedelta(milliseconds=1)
        return self._clock.isoformat()

    def insert_row(self, table: str, row: dict) -> dict:
        hook = self.before_insert.pop(table, None)
        if hook:
            hook(row)

        stored = {"id": str(uuid.uuid4()), "created_at": self.now()}
        stored.update(TABLE_DEFAULTS.get(table, {}))
        stored.update(row)
        if table == "team_members":
            stored.setdefault("joined_at", self.now())

        for columns, applies in UNIQUE_INDEXES.get(table, []):
            if not applies(stored):
                continue
            for existing in self.tables.get(table, []):
                if applies(existing) and all(
                    _same(existing.get(c), stored.get(c)) for c in columns
                ):
                    raise pg_error(
                        "23505", "duplicate key value violates unique constraint"
                    )

        self.tables.setdefault(table, []).append(stored)
        return dict(stored)

    def rows(self, table: str, **filters) -> List[dict]:
        return [
            row
            for row in self.tables.get(table, [])
            if all(_same(row.get(k), v) for k, v in filters.items())
        ]
