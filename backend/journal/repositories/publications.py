"""
出版侧只读数据（Volume / Issue / Article）

中文注释:
- 这些表读多写少；写入只发生在管理员建卷/建期，文章由人工从 accepted 稿件整理。
- 期与卷的关联在 Python 内合并（find_by_ids / in_），不依赖 PostgREST 嵌入查询。
"""

from __future__ import annotations

from typing import Any, Optional

from supabase import Client

from journal.repositories.base import Page, TableGateway, sanitize_search_term


class VolumeRepository:
    def __init__(self, client: Optional[Client] = None):
        self.table = TableGateway("volumes", client)

    def create(self, data: dict[str, Any]) -> dict[str, Any]:
        return self.table.insert(data)

    def find_by_id(self, volume_id: Any) -> Optional[dict[str, Any]]:
        return self.table.find_by_id(volume_id)

    def find_by_number(self, volume_number: int) -> Optional[dict[str, Any]]:
        return self.table.find_one({"volume_number": int(volume_number)})

    def find_all(self) -> list[dict[str, Any]]:
        return self.table.find_many(order_by="volume_number", desc=True)

    def find_latest(self) -> Optional[dict[str, Any]]:
        rows = self.table.find_many(order_by="volume_number", desc=True, limit=1)
        return rows[0] if rows else None

    def count(self) -> int:
        return self.table.count()


class IssueRepository:
    def __init__(self, client: Optional[Client] = None):
        self.table = TableGateway("issues", client)

    def create(self, data: dict[str, Any]) -> dict[str, Any]:
        return self.table.insert(data)

    def find_by_id(self, issue_id: Any) -> Optional[dict[str, Any]]:
        return self.table.find_by_id(issue_id)

    def find_by_volume(self, volume_id: Any) -> list[dict[str, Any]]:
        return self.table.find_many({"volume_id": str(volume_id)}, order_by="issue_number", desc=False)

    def find_by_volumes(self, volume_ids: list[Any]) -> list[dict[str, Any]]:
        ids = list(dict.fromkeys(str(i) for i in volume_ids if i))
        if not ids:
            return []
        return self.table.find_many(
            apply=lambda q: q.in_("volume_id", ids),
            order_by="issue_number",
            desc=False,
        )

    def find_by_volume_and_number(self, volume_id: Any, issue_number: int) -> Optional[dict[str, Any]]:
        return self.table.find_one({"volume_id": str(volume_id), "issue_number": int(issue_number)})

    def count(self) -> int:
        return self.table.count()


class ArticleRepository:
    def __init__(self, client: Optional[Client] = None):
        self.table = TableGateway("articles", client)

    def find_by_id(self, article_id: Any) -> Optional[dict[str, Any]]:
        return self.table.find_by_id(article_id)

    def find_by_issue(self, issue_id: Any) -> list[dict[str, Any]]:
        return self.table.find_many({"issue_id": str(issue_id)}, order_by="published_at")

    def find_recent(self, limit: int = 10) -> list[dict[str, Any]]:
        return self.table.find_many(order_by="published_at", desc=True, limit=max(1, min(int(limit), 50)))

    def search(self, term: str) -> list[dict[str, Any]]:
        t = sanitize_search_term(term)
        if not t:
            return []
        return self.table.find_many(
            apply=lambda q: q.or_(f"title.ilike.%{t}%,abstract.ilike.%{t}%"),
            order_by="published_at",
        )

    def find_with_pagination(self, page: Any = 1, limit: Any = 10, *, issue_id: Optional[str] = None) -> Page:
        return self.table.paginate(page, limit, {"issue_id": issue_id}, order_by="published_at")

    def count(self) -> int:
        return self.table.count()
