from __future__ import annotations

from typing import Any, Optional

from supabase import Client

from journal.core.roles import Role
from journal.repositories.base import Page, TableGateway, sanitize_search_term


class UserRepository:
    def __init__(self, client: Optional[Client] = None):
        self.table = TableGateway("users", client)

    def find_by_id(self, user_id: Any) -> Optional[dict[str, Any]]:
        return self.table.find_by_id(user_id)

    def find_by_ids(self, ids: list[Any]) -> list[dict[str, Any]]:
        return self.table.find_by_ids(ids)

    def find_by_email(self, email: str) -> Optional[dict[str, Any]]:
        return self.table.find_one({"email": str(email or "").strip().lower()})

    def create_with_id(self, data: dict[str, Any]) -> dict[str, Any]:
        """用 Supabase Auth 返回的 user id 建立 profile 行。"""
        payload = dict(data)
        payload["email"] = str(payload.get("email") or "").strip().lower()
        payload.setdefault("role", Role.AUTHOR.value)
        payload.setdefault("is_active", True)
        return self.table.insert(payload)

    def find_active_by_roles(self, roles: list[str]) -> list[dict[str, Any]]:
        return self.table.find_many(
            {"is_active": True},
            apply=lambda q: q.in_("role", list(roles)),
            order_by="last_name",
            desc=False,
        )

    @staticmethod
    def _search_filter(term: str) -> str:
        t = sanitize_search_term(term)
        return (
            f"first_name.ilike.%{t}%,last_name.ilike.%{t}%,"
            f"email.ilike.%{t}%,affiliation.ilike.%{t}%"
        )

    def search(self, term: str) -> list[dict[str, Any]]:
        if not sanitize_search_term(term):
            return []
        return self.table.find_many(
            apply=lambda q: q.or_(self._search_filter(term)),
            order_by="last_name",
            desc=False,
        )

    def update_profile(self, user_id: Any, updates: dict[str, Any]) -> Optional[dict[str, Any]]:
        return self.table.update(user_id, updates)

    def update_role(self, user_id: Any, role: str) -> Optional[dict[str, Any]]:
        return self.table.update(user_id, {"role": role})

    def update_status(self, user_id: Any, is_active: bool) -> Optional[dict[str, Any]]:
        return self.table.update(user_id, {"is_active": bool(is_active)})

    def find_with_pagination(
        self,
        page: Any = 1,
        limit: Any = 10,
        *,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> Page:
        term = sanitize_search_term(search or "")
        apply = (lambda q: q.or_(self._search_filter(term))) if term else None
        return self.table.paginate(page, limit, {"role": role, "is_active": is_active}, apply=apply)

    def get_stats(self) -> dict[str, Any]:
        # 中文注释: 一次拉取 role/is_active 两列在内存聚合，避免 6 次 count 往返
        rows = self.table.find_many(columns="role, is_active", order_by=None)
        by_role = {r.value: 0 for r in Role}
        active = 0
        for row in rows:
            role = str(row.get("role") or "")
            if role in by_role:
                by_role[role] += 1
            if row.get("is_active", True):
                active += 1
        return {
            "total": len(rows),
            "active": active,
            "inactive": len(rows) - active,
            "by_role": by_role,
        }
