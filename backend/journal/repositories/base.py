"""
通用数据访问层（组合而非继承）

中文注释:
- TableGateway 只封装一张表的 CRUD / 计数 / 分页，不包含任何业务语义。
- 各实体 Repository 持有一个 TableGateway，并在其上写实体专属查询；
  需要额外过滤条件时，通过 `apply` 回调把 PostgREST 过滤器追加到 query builder 上。
- PostgREST 错误统一转换为 AppError（唯一约束 -> ConflictError，其余 -> InternalError）。
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from postgrest.exceptions import APIError
from supabase import Client

from journal.core.exceptions import translate_persistence_error
from journal.lib.api_client import get_supabase_admin

QueryModifier = Callable[[Any], Any]

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def sanitize_search_term(term: str) -> str:
    # PostgREST 的 or=(...) 语法里逗号/括号是分隔符，搜索词里直接去掉
    return re.sub(r"[,()*%]", " ", str(term or "")).strip()


def normalize_pagination(page: Any, limit: Any) -> tuple[int, int]:
    try:
        p = int(page)
    except (TypeError, ValueError):
        p = 1
    try:
        size = int(limit)
    except (TypeError, ValueError):
        size = DEFAULT_PAGE_SIZE
    return max(p, 1), min(max(size, 1), MAX_PAGE_SIZE)


@dataclass(frozen=True)
class Page:
    data: list[dict[str, Any]]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return math.ceil(self.total / self.limit)

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": self.data,
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "total_pages": self.total_pages,
        }


def rows_of(response: Any) -> list[dict[str, Any]]:
    return list(getattr(response, "data", None) or [])


class TableGateway:
    def __init__(self, table_name: str, client: Optional[Client] = None, *, timestamps: bool = True):
        self.table_name = table_name
        self._client = client
        self._timestamps = timestamps

    @property
    def client(self) -> Client:
        return self._client if self._client is not None else get_supabase_admin()

    def table(self) -> Any:
        return self.client.table(self.table_name)

    def execute(self, builder: Any, *, action: str) -> Any:
        try:
            return builder.execute()
        except APIError as e:
            raise translate_persistence_error(e, context=f"{self.table_name}.{action}") from e

    @staticmethod
    def _apply_filters(query: Any, filters: Optional[Mapping[str, Any]], apply: Optional[QueryModifier]) -> Any:
        for column, value in (filters or {}).items():
            if value is None:
                continue
            query = query.eq(column, value)
        if apply is not None:
            query = apply(query)
        return query

    def find_by_id(self, record_id: Any, *, columns: str = "*") -> Optional[dict[str, Any]]:
        query = self.table().select(columns).eq("id", str(record_id)).limit(1)
        rows = rows_of(self.execute(query, action="find_by_id"))
        return rows[0] if rows else None

    def find_one(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        apply: Optional[QueryModifier] = None,
        columns: str = "*",
    ) -> Optional[dict[str, Any]]:
        query = self._apply_filters(self.table().select(columns), filters, apply).limit(1)
        rows = rows_of(self.execute(query, action="find_one"))
        return rows[0] if rows else None

    def find_many(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        apply: Optional[QueryModifier] = None,
        columns: str = "*",
        order_by: Optional[str] = "created_at",
        desc: bool = True,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        query = self._apply_filters(self.table().select(columns), filters, apply)
        if order_by:
            query = query.order(order_by, desc=desc)
        if limit is not None:
            query = query.limit(limit)
        return rows_of(self.execute(query, action="find_many"))

    def find_by_ids(self, ids: list[Any], *, columns: str = "*") -> list[dict[str, Any]]:
        unique = list(dict.fromkeys(str(i) for i in ids if i))
        if not unique:
            return []
        query = self.table().select(columns).in_("id", unique)
        return rows_of(self.execute(query, action="find_by_ids"))

    def insert(self, data: Mapping[str, Any]) -> dict[str, Any]:
        payload = dict(data)
        if self._timestamps:
            now = utc_now_iso()
            payload.setdefault("created_at", now)
            payload.setdefault("updated_at", now)
        rows = rows_of(self.execute(self.table().insert(payload), action="insert"))
        return rows[0] if rows else payload

    def update(self, record_id: Any, data: Mapping[str, Any]) -> Optional[dict[str, Any]]:
        payload = dict(data)
        if self._timestamps:
            payload["updated_at"] = utc_now_iso()
        query = self.table().update(payload).eq("id", str(record_id))
        rows = rows_of(self.execute(query, action="update"))
        return rows[0] if rows else None

    def count(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        apply: Optional[QueryModifier] = None,
    ) -> int:
        query = self._apply_filters(self.table().select("id", count="exact"), filters, apply)
        resp = self.execute(query, action="count")
        count = getattr(resp, "count", None)
        if count is None:
            return len(rows_of(resp))
        return int(count)

    def paginate(
        self,
        page: Any = 1,
        limit: Any = DEFAULT_PAGE_SIZE,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        apply: Optional[QueryModifier] = None,
        order_by: str = "created_at",
        desc: bool = True,
    ) -> Page:
        page_no, size = normalize_pagination(page, limit)
        offset = (page_no - 1) * size
        query = self._apply_filters(self.table().select("*", count="exact"), filters, apply)
        query = query.order(order_by, desc=desc).range(offset, offset + size - 1)
        resp = self.execute(query, action="paginate")
        rows = rows_of(resp)
        total = getattr(resp, "count", None)
        return Page(data=rows, total=int(total if total is not None else len(rows)), page=page_no, limit=size)
