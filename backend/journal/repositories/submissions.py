from __future__ import annotations

from typing import Any, Optional

from supabase import Client

from journal.models.submission import REVIEWABLE_STATUSES, SubmissionStatus
from journal.repositories.base import Page, TableGateway, sanitize_search_term


class SubmissionRepository:
    def __init__(self, client: Optional[Client] = None):
        self.table = TableGateway("submissions", client)

    def create(self, data: dict[str, Any]) -> dict[str, Any]:
        return self.table.insert(data)

    def find_by_id(self, submission_id: Any) -> Optional[dict[str, Any]]:
        return self.table.find_by_id(submission_id)

    def find_by_ids(self, ids: list[Any]) -> list[dict[str, Any]]:
        return self.table.find_by_ids(ids)

    def update(self, submission_id: Any, data: dict[str, Any]) -> Optional[dict[str, Any]]:
        return self.table.update(submission_id, data)

    def update_status(
        self,
        submission_id: Any,
        status: str,
        editor_comments: Optional[str] = None,
    ) -> Optional[dict[str, Any]]:
        data: dict[str, Any] = {"status": status}
        if editor_comments is not None:
            data["editor_comments"] = editor_comments
        return self.table.update(submission_id, data)

    def find_by_author(self, author_id: Any) -> list[dict[str, Any]]:
        return self.table.find_many({"author_id": str(author_id)}, order_by="submitted_at")

    def find_pending_review(self) -> list[dict[str, Any]]:
        return self.table.find_many(
            apply=lambda q: q.in_("status", sorted(REVIEWABLE_STATUSES)),
            order_by="submitted_at",
            desc=False,
        )

    def find_needing_review_excluding(self, excluded_ids: list[str]) -> list[dict[str, Any]]:
        """
        需要审稿的稿件 减去 指定 id 集合（一次集合差查询）。
        """
        ids = sorted({str(i) for i in excluded_ids if i})

        def _apply(q: Any) -> Any:
            q = q.in_("status", sorted(REVIEWABLE_STATUSES))
            if ids:
                q = q.not_.in_("id", ids)
            return q

        return self.table.find_many(apply=_apply, order_by="submitted_at", desc=False)

    def search(self, term: str) -> list[dict[str, Any]]:
        t = sanitize_search_term(term)
        if not t:
            return []
        return self.table.find_many(
            apply=lambda q: q.or_(f"title.ilike.%{t}%,abstract.ilike.%{t}%"),
            order_by="submitted_at",
        )

    def find_with_pagination(
        self,
        page: Any = 1,
        limit: Any = 10,
        *,
        status: Optional[str] = None,
        author_id: Optional[str] = None,
    ) -> Page:
        return self.table.paginate(
            page,
            limit,
            {"status": status, "author_id": author_id},
            order_by="submitted_at",
        )

    def get_stats(self) -> dict[str, int]:
        rows = self.table.find_many(columns="status", order_by=None)
        stats = {s.value: 0 for s in SubmissionStatus}
        for row in rows:
            status = str(row.get("status") or "")
            stats[status] = stats.get(status, 0) + 1
        stats["total"] = len(rows)
        return stats
