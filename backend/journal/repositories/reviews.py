from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from supabase import Client

from journal.models.review import ReviewStatus
from journal.repositories.base import TableGateway


def _parse_iso_datetime(raw: Any) -> Optional[datetime]:
    text = str(raw or "").strip()
    if not text:
        return None
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def average_review_days(rows: list[dict[str, Any]], submitted_at_by_id: dict[str, Any]) -> float:
    """
    平均审稿天数 = 审稿提交时间 - 稿件提交时间（只统计非负差值）。
    """
    total_days = 0.0
    valid = 0
    for row in rows:
        reviewed = _parse_iso_datetime(row.get("submitted_at"))
        submitted = _parse_iso_datetime(submitted_at_by_id.get(str(row.get("submission_id"))))
        if reviewed is None or submitted is None:
            continue
        days = (reviewed - submitted).total_seconds() / 86400
        if days >= 0:
            total_days += days
            valid += 1
    return total_days / valid if valid else 0.0


class ReviewRepository:
    def __init__(self, client: Optional[Client] = None):
        self.table = TableGateway("reviews", client)

    def create(self, data: dict[str, Any]) -> dict[str, Any]:
        return self.table.insert(data)

    def find_by_id(self, review_id: Any) -> Optional[dict[str, Any]]:
        return self.table.find_by_id(review_id)

    def update(self, review_id: Any, data: dict[str, Any]) -> Optional[dict[str, Any]]:
        return self.table.update(review_id, data)

    def find_by_submission(self, submission_id: Any) -> list[dict[str, Any]]:
        return self.table.find_many({"submission_id": str(submission_id)}, order_by="assigned_date")

    def find_by_reviewer(
        self,
        reviewer_id: Any,
        *,
        completed: Optional[bool] = None,
    ) -> list[dict[str, Any]]:
        return self.table.find_many(
            {"reviewer_id": str(reviewer_id), "is_completed": completed},
            order_by="assigned_date",
        )

    def find_by_pair(self, submission_id: Any, reviewer_id: Any) -> Optional[dict[str, Any]]:
        return self.table.find_one({"submission_id": str(submission_id), "reviewer_id": str(reviewer_id)})

    def has_reviewer_reviewed(self, submission_id: Any, reviewer_id: Any) -> bool:
        row = self.table.find_one(
            {"submission_id": str(submission_id), "reviewer_id": str(reviewer_id)},
            columns="id",
        )
        return row is not None

    def reviewed_submission_ids(self, reviewer_id: Any, *, include_assignments: bool = False) -> list[str]:
        """
        该审稿人已写过审稿（in_progress / completed）的稿件 id。
        编辑分配后尚未填写的 pending 行默认不算，include_assignments=True 时一并返回。
        """
        skip_assignments = None if include_assignments else (lambda q: q.neq("status", ReviewStatus.PENDING.value))
        rows = self.table.find_many(
            {"reviewer_id": str(reviewer_id)},
            apply=skip_assignments,
            columns="submission_id",
            order_by=None,
        )
        return [str(r["submission_id"]) for r in rows if r.get("submission_id")]

    def find_all(self) -> list[dict[str, Any]]:
        return self.table.find_many(order_by="assigned_date")

    @staticmethod
    def _histogram(rows: list[dict[str, Any]]) -> dict[str, int]:
        stats: dict[str, int] = {}
        for row in rows:
            rec = row.get("recommendation")
            if not rec:
                continue
            stats[rec] = stats.get(rec, 0) + 1
        return stats

    def get_review_stats(self) -> dict[str, int]:
        rows = self.table.find_many({"is_completed": True}, columns="recommendation", order_by=None)
        return self._histogram(rows)

    def get_submission_review_summary(self, submission_id: Any) -> dict[str, Any]:
        rows = self.table.find_many(
            {"submission_id": str(submission_id)},
            columns="recommendation",
            order_by=None,
        )
        return {"total_reviews": len(rows), "recommendations": self._histogram(rows)}

    def find_recent_completed(self, limit: int = 100) -> list[dict[str, Any]]:
        return self.table.find_many(
            {"is_completed": True},
            columns="submission_id, submitted_at",
            order_by="submitted_at",
            limit=limit,
        )
