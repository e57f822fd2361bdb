"""
内存版 Supabase Client（仅测试使用）

中文注释:
- 只实现仓储层/服务层实际用到的 PostgREST 链式调用：
  select / insert / update / eq / in_ / not_.in_ / ilike / or_ / order / range / limit。
- 唯一约束与数据库迁移保持一致，冲突时抛出 postgrest APIError(code=23505)。
- auth 返回真实可校验的 HS256 token，方便注册/登录后直接访问受保护接口。
"""

from __future__ import annotations

import copy
import re
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Optional

import jwt
from postgrest.exceptions import APIError

DEFAULT_JWT_SECRET = "mock-secret-replace-later"

UNIQUE_KEYS: dict[str, list[tuple[str, ...]]] = {
    "users": [("email",)],
    "reviews": [("submission_id", "reviewer_id")],
    "volumes": [("volume_number",)],
    "issues": [("volume_id", "issue_number")],
}


def _matches_value(row_value: Any, value: Any) -> bool:
    if isinstance(value, bool) or isinstance(row_value, bool):
        return row_value is value or row_value == value
    if row_value is None or value is None:
        return row_value is None and value is None
    return str(row_value) == str(value)


def _ilike(row_value: Any, pattern: str) -> bool:
    if row_value is None:
        return False
    regex = "^" + ".*".join(re.escape(part) for part in str(pattern).split("%")) + "$"
    return re.match(regex, str(row_value), flags=re.IGNORECASE | re.DOTALL) is not None


class _Negation:
    """`query.not_.in_(...)` 取反代理"""

    def __init__(self, query: "FakeQuery"):
        self._query = query

    def in_(self, column: str, values: list[Any]) -> "FakeQuery":
        wanted = [str(v) for v in values]
        return self._query._filter(lambda r: str(r.get(column)) not in wanted)

    def eq(self, column: str, value: Any) -> "FakeQuery":
        return self._query._filter(lambda r: not _matches_value(r.get(column), value))


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self._db = db
        self._table = table
        self._action = "select"
        self._columns = "*"
        self._count: Optional[str] = None
        self._payload: Any = None
        self._filters: list[Callable[[dict[str, Any]], bool]] = []
        self._order: list[tuple[str, bool]] = []
        self._range: Optional[tuple[int, int]] = None
        self._limit: Optional[int] = None

    # === 动作 ===

    def select(self, columns: str = "*", count: Optional[str] = None) -> "FakeQuery":
        self._action = "select"
        self._columns = columns
        self._count = count
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self._action = "insert"
        self._payload = payload
        return self

    def update(self, payload: dict[str, Any]) -> "FakeQuery":
        self._action = "update"
        self._payload = payload
        return self

    # === 过滤 / 修饰 ===

    def _filter(self, predicate: Callable[[dict[str, Any]], bool]) -> "FakeQuery":
        self._filters.append(predicate)
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        return self._filter(lambda r: _matches_value(r.get(column), value))

    def neq(self, column: str, value: Any) -> "FakeQuery":
        return self._filter(lambda r: not _matches_value(r.get(column), value))

    def in_(self, column: str, values: list[Any]) -> "FakeQuery":
        wanted = [str(v) for v in values]
        return self._filter(lambda r: str(r.get(column)) in wanted)

    def ilike(self, column: str, pattern: str) -> "FakeQuery":
        return self._filter(lambda r: _ilike(r.get(column), pattern))

    def or_(self, filters: str) -> "FakeQuery":
        clauses = []
        for clause in filters.split(","):
            column, op, value = clause.strip().split(".", 2)
            if op != "ilike":
                raise NotImplementedError(f"or_ operator not supported: {op}")
            clauses.append((column, value))
        return self._filter(lambda r: any(_ilike(r.get(c), v) for c, v in clauses))

    @property
    def not_(self) -> _Negation:
        return _Negation(self)

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._order.append((column, desc))
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self._range = (start, end)
        return self

    def limit(self, size: int) -> "FakeQuery":
        self._limit = size
        return self

    # === 执行 ===

    def _matching(self) -> list[dict[str, Any]]:
        rows = self._db.tables.setdefault(self._table, [])
        return [r for r in rows if all(f(r) for f in self._filters)]

    def _project(self, row: dict[str, Any]) -> dict[str, Any]:
        if self._columns.strip() == "*":
            return copy.deepcopy(row)
        columns = [c.strip() for c in self._columns.split(",") if c.strip()]
        return {c: copy.deepcopy(row.get(c)) for c in columns}

    def _sorted(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        for column, desc in reversed(self._order):
            present = [r for r in rows if r.get(column) is not None]
            missing = [r for r in rows if r.get(column) is None]
            present.sort(key=lambda r: r.get(column), reverse=desc)
            rows = present + missing
        return rows

    def execute(self) -> SimpleNamespace:
        if self._action == "insert":
            return self._db._insert(self._table, self._payload)
        if self._action == "update":
            return self._db._update(self._table, self._matching(), self._payload)

        rows = self._sorted(self._matching())
        total = len(rows)
        if self._range is not None:
            start, end = self._range
            rows = rows[start : end + 1]
        if self._limit is not None:
            rows = rows[: self._limit]
        data = [self._project(r) for r in rows]
        return SimpleNamespace(data=data, count=total if self._count else None)


class FakeAuthAdmin:
    """auth.admin：按用户 JWT 吊销其全部 refresh token"""

    def __init__(self, auth: "FakeAuth"):
        self._auth = auth
        self.revoked: list[tuple[str, str]] = []

    def sign_out(self, access_token: str, scope: str = "global") -> None:
        claims = jwt.decode(access_token, options={"verify_signature": False})
        email = str(claims.get("email") or "").lower()
        for refresh, owner in list(self._auth.refresh_tokens.items()):
            if owner == email:
                del self._auth.refresh_tokens[refresh]
        self.revoked.append((access_token, scope))


class FakeAuth:
    def __init__(self, db: "FakeSupabase", secret: str):
        self._db = db
        self._secret = secret
        self.admin = FakeAuthAdmin(self)
        self.accounts: dict[str, dict[str, Any]] = {}
        self.refresh_tokens: dict[str, str] = {}
        self.reset_requests: list[str] = []

    def _mint(self, account: dict[str, Any]) -> SimpleNamespace:
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": account["id"],
                "email": account["email"],
                "aud": "authenticated",
                "exp": now + timedelta(hours=1),
                "iat": now,
                "role": "authenticated",
            },
            self._secret,
            algorithm="HS256",
        )
        refresh = uuid.uuid4().hex
        self.refresh_tokens[refresh] = account["email"]
        return SimpleNamespace(access_token=token, refresh_token=refresh)

    @staticmethod
    def _user(account: dict[str, Any]) -> SimpleNamespace:
        return SimpleNamespace(id=account["id"], email=account["email"], user_metadata=account["metadata"])

    def add_account(self, email: str, password: str, *, user_id: Optional[str] = None, metadata: Optional[dict] = None):
        account = {
            "id": user_id or str(uuid.uuid4()),
            "email": email.lower(),
            "password": password,
            "metadata": dict(metadata or {}),
        }
        self.accounts[account["email"]] = account
        return account

    def sign_up(self, credentials: dict[str, Any]) -> SimpleNamespace:
        email = credentials["email"].lower()
        if email in self.accounts:
            raise Exception("User already registered")
        metadata = (credentials.get("options") or {}).get("data") or {}
        account = self.add_account(email, credentials["password"], metadata=metadata)
        return SimpleNamespace(user=self._user(account), session=self._mint(account))

    def sign_in_with_password(self, credentials: dict[str, Any]) -> SimpleNamespace:
        account = self.accounts.get(credentials["email"].lower())
        if not account or account["password"] != credentials["password"]:
            raise Exception("Invalid login credentials")
        return SimpleNamespace(user=self._user(account), session=self._mint(account))

    def refresh_session(self, refresh_token: str) -> SimpleNamespace:
        email = self.refresh_tokens.pop(refresh_token, None)
        if not email:
            raise Exception("Invalid Refresh Token")
        account = self.accounts[email]
        return SimpleNamespace(user=self._user(account), session=self._mint(account))

    def get_user(self, token: str) -> SimpleNamespace:
        raise Exception("invalid JWT")

    def reset_password_for_email(self, email: str, options: Optional[dict] = None) -> None:
        self.reset_requests.append(email)


class FakeBucket:
    def __init__(self, storage: "FakeStorage", name: str):
        self._storage = storage
        self.name = name

    def upload(self, path: str, content: bytes, file_options: Optional[dict] = None) -> dict[str, str]:
        self._storage.objects[(self.name, path)] = {"content": content, "options": dict(file_options or {})}
        return {"Key": f"{self.name}/{path}"}

    def get_public_url(self, path: str) -> str:
        return f"https://storage.test/{self.name}/{path}"

    def create_signed_url(self, path: str, expires_in: int) -> dict[str, str]:
        if (self.name, path) not in self._storage.objects:
            raise Exception("Object not found")
        return {"signedURL": f"https://storage.test/signed/{self.name}/{path}?expires={expires_in}"}

    def remove(self, paths: list[str]) -> list[dict[str, str]]:
        removed = []
        for path in paths:
            if self._storage.objects.pop((self.name, path), None) is not None:
                removed.append({"name": path})
        return removed


class FakeStorage:
    def __init__(self):
        self.buckets: dict[str, dict[str, Any]] = {}
        self.objects: dict[tuple[str, str], dict[str, Any]] = {}

    def get_bucket(self, name: str) -> dict[str, Any]:
        if name not in self.buckets:
            raise Exception("Bucket not found")
        return self.buckets[name]

    def create_bucket(self, name: str, options: Optional[dict] = None) -> dict[str, Any]:
        self.buckets[name] = {"name": name, **(options or {})}
        return self.buckets[name]

    def from_(self, name: str) -> FakeBucket:
        return FakeBucket(self, name)


class FakeSupabase:
    def __init__(self, jwt_secret: str = DEFAULT_JWT_SECRET):
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.auth = FakeAuth(self, jwt_secret)
        self.storage = FakeStorage()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, name: str) -> list[dict[str, Any]]:
        return self.tables.setdefault(name, [])

    def seed(self, name: str, row: dict[str, Any]) -> dict[str, Any]:
        """直接写入一行（绕过唯一约束检查），返回写入的行。"""
        data = dict(row)
        data.setdefault("id", str(uuid.uuid4()))
        self.rows(name).append(data)
        return data

    # === 写操作 ===

    def _check_unique(self, name: str, candidate: dict[str, Any], *, ignore: Optional[dict] = None) -> None:
        for key in UNIQUE_KEYS.get(name, []):
            if any(candidate.get(c) is None for c in key):
                continue
            for row in self.rows(name):
                if row is ignore:
                    continue
                if all(str(row.get(c)).lower() == str(candidate.get(c)).lower() for c in key):
                    raise APIError(
                        {
                            "code": "23505",
                            "message": f'duplicate key value violates unique constraint "{name}_{"_".join(key)}"',
                            "details": None,
                            "hint": None,
                        }
                    )

    def _insert(self, name: str, payload: Any) -> SimpleNamespace:
        items = payload if isinstance(payload, list) else [payload]
        inserted = []
        for item in items:
            row = copy.deepcopy(dict(item))
            row.setdefault("id", str(uuid.uuid4()))
            self._check_unique(name, row)
            self.rows(name).append(row)
            inserted.append(copy.deepcopy(row))
        return SimpleNamespace(data=inserted, count=None)

    def _update(self, name: str, matched: list[dict[str, Any]], payload: dict[str, Any]) -> SimpleNamespace:
        updated = []
        for row in matched:
            self._check_unique(name, {**row, **payload}, ignore=row)
            row.update(copy.deepcopy(payload))
            updated.append(copy.deepcopy(row))
        return SimpleNamespace(data=updated, count=None)
