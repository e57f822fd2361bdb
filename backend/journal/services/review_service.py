"""
审稿服务

中文注释:
- 每个 (submission, reviewer) 最多一条 review：编辑分配时先插入 pending 行，审稿人写审稿意见时填充该行。
- 数据库唯一索引兜底并发重复；应用层预检查只为给出更友好的错误信息。
- review 一旦 is_completed 即不可再修改。
- 审稿接口的冲突错误沿用 400（前端按 400 处理）。
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import BackgroundTasks

from journal.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from journal.core.roles import EDITORIAL_ROLES, REVIEWING_ROLES, has_role, is_owner
from journal.models.review import ReviewStatus
from journal.models.submission import REVIEWABLE_STATUSES, SubmissionStatus, normalize_status
from journal.models.user import display_name
from journal.repositories.base import utc_now_iso
from journal.repositories.reviews import ReviewRepository, average_review_days
from journal.repositories.submissions import SubmissionRepository
from journal.repositories.users import UserRepository
from journal.schemas.review import ReviewCreate, ReviewUpdate
from journal.services.notification_service import NotificationService

logger = logging.getLogger("journal.reviews")

# 审稿接口上的冲突统一返回 400
REVIEW_CONFLICT_STATUS = 400


def _conflict(message: str) -> ConflictError:
    return ConflictError(message, status_code=REVIEW_CONFLICT_STATUS)


def _author_summary(author: Optional[dict]) -> dict[str, Any]:
    author = author or {}
    return {
        "author_first_name": author.get("first_name"),
        "author_last_name": author.get("last_name"),
        "author_email": author.get("email"),
    }


class ReviewService:
    def __init__(
        self,
        reviews: Optional[ReviewRepository] = None,
        submissions: Optional[SubmissionRepository] = None,
        users: Optional[UserRepository] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.reviews = reviews or ReviewRepository()
        self.submissions = submissions or SubmissionRepository()
        self.users = users or UserRepository()
        self.notifications = notifications or NotificationService()

    # === 内部工具 ===

    def _get_submission(self, submission_id: Any) -> dict[str, Any]:
        submission = self.submissions.find_by_id(submission_id)
        if not submission:
            raise NotFoundError("Submission not found")
        return submission

    def _get_review(self, review_id: Any) -> dict[str, Any]:
        review = self.reviews.find_by_id(review_id)
        if not review:
            raise NotFoundError("Review not found")
        return review

    @staticmethod
    def _require_reviewable(submission: dict[str, Any]) -> None:
        status = normalize_status(submission.get("status"))
        if status not in REVIEWABLE_STATUSES:
            raise ValidationError(f"Submission is not open for review (status: {status})")

    def _move_to_under_review(self, submission: dict[str, Any]) -> None:
        if normalize_status(submission.get("status")) == SubmissionStatus.SUBMITTED.value:
            self.submissions.update_status(submission["id"], SubmissionStatus.UNDER_REVIEW.value)
            logger.info("Submission moved to under_review: id=%s", submission["id"])

    def _owned_review(self, user: dict, review_id: Any) -> dict[str, Any]:
        review = self._get_review(review_id)
        if not is_owner(user, review, "reviewer_id"):
            raise AuthorizationError("You can only modify your own reviews")
        if review.get("is_completed"):
            raise _conflict("Review has already been completed")
        return review

    # === 编辑分配 ===

    def assign_reviewer(
        self,
        actor: dict,
        submission_id: Any,
        reviewer_id: Any,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> dict[str, Any]:
        if not has_role(actor, EDITORIAL_ROLES):
            raise AuthorizationError("Only editors and admins can assign reviewers")

        submission = self._get_submission(submission_id)
        self._require_reviewable(submission)

        reviewer = self.users.find_by_id(reviewer_id)
        if not reviewer:
            raise NotFoundError("Reviewer not found")
        if reviewer.get("is_active") is False:
            raise ValidationError("Reviewer account is inactive")
        if not has_role(reviewer, REVIEWING_ROLES):
            raise ValidationError("User cannot review manuscripts")
        if is_owner(reviewer, submission):
            raise ValidationError("Authors cannot review their own submissions")

        if self.reviews.has_reviewer_reviewed(submission_id, reviewer_id):
            raise _conflict("Reviewer has already reviewed this submission")

        now = utc_now_iso()
        try:
            review = self.reviews.create(
                {
                    "submission_id": str(submission_id),
                    "reviewer_id": str(reviewer_id),
                    "comments": "",
                    "status": ReviewStatus.PENDING.value,
                    "is_completed": False,
                    "assigned_date": now,
                }
            )
        except ConflictError as e:
            raise _conflict("Reviewer has already reviewed this submission") from e

        self._move_to_under_review(submission)
        logger.info(
            "Reviewer assigned: submission=%s reviewer=%s by=%s",
            submission_id,
            reviewer_id,
            actor.get("id"),
        )
        self.notifications.review_assigned(reviewer, submission, review, background_tasks)
        return review

    # === 审稿人写审稿 ===

    def create_review(self, reviewer: dict, payload: ReviewCreate) -> dict[str, Any]:
        if not has_role(reviewer, REVIEWING_ROLES):
            raise AuthorizationError("Only reviewers can submit reviews")

        submission_id = str(payload.submission_id)
        submission = self._get_submission(submission_id)
        self._require_reviewable(submission)
        if is_owner(reviewer, submission):
            raise AuthorizationError("Authors cannot review their own submissions")

        fields = {
            "recommendation": payload.recommendation.value,
            "comments": payload.comments,
            "confidential_comments": payload.confidential_comments,
            "rating": payload.rating,
            "status": ReviewStatus.IN_PROGRESS.value,
            "is_completed": False,
        }

        existing = self.reviews.find_by_pair(submission_id, reviewer["id"])
        if existing is not None:
            if existing.get("is_completed") or existing.get("status") != ReviewStatus.PENDING.value:
                raise _conflict("Reviewer has already reviewed this submission")
            review = self.reviews.update(existing["id"], fields) or {**existing, **fields}
        else:
            try:
                review = self.reviews.create(
                    {
                        **fields,
                        "submission_id": submission_id,
                        "reviewer_id": str(reviewer["id"]),
                        "assigned_date": utc_now_iso(),
                    }
                )
            except ConflictError as e:
                raise _conflict("Reviewer has already reviewed this submission") from e

        self._move_to_under_review(submission)
        logger.info("Review saved: id=%s submission=%s reviewer=%s", review.get("id"), submission_id, reviewer["id"])
        return review

    def update_review(self, reviewer: dict, review_id: Any, payload: ReviewUpdate) -> dict[str, Any]:
        review = self._owned_review(reviewer, review_id)
        changes = payload.changes()
        if not changes:
            raise ValidationError("No fields to update")
        if review.get("status") == ReviewStatus.PENDING.value:
            changes["status"] = ReviewStatus.IN_PROGRESS.value
        return self.reviews.update(review_id, changes) or {**review, **changes}

    def complete_review(
        self,
        reviewer: dict,
        review_id: Any,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> dict[str, Any]:
        review = self._owned_review(reviewer, review_id)
        if not review.get("recommendation"):
            raise ValidationError("A recommendation is required before completing the review")
        if not str(review.get("comments") or "").strip():
            raise ValidationError("Review comments are required before completing the review")

        now = utc_now_iso()
        changes = {
            "is_completed": True,
            "status": ReviewStatus.COMPLETED.value,
            "completed_date": now,
            "submitted_at": now,
        }
        completed = self.reviews.update(review_id, changes) or {**review, **changes}
        logger.info("Review completed: id=%s reviewer=%s", review_id, reviewer.get("id"))

        submission = self.submissions.find_by_id(review.get("submission_id"))
        if submission:
            author = self.users.find_by_id(submission.get("author_id"))
            self.notifications.review_completed(author, submission, completed, background_tasks)
        return completed

    # === 查询 ===

    def get_reviewer_dashboard(self, reviewer_id: Any) -> dict[str, Any]:
        """
        pending = 可审稿件（submitted / under_review）减去该审稿人已写过审稿的稿件
        （编辑分配后尚未填写的 pending 行仍算待审）；
        completed = 该审稿人已完成的审稿 + 稿件标题/摘要/状态。
        """
        reviewed_ids = self.reviews.reviewed_submission_ids(reviewer_id)
        pending_submissions = self.submissions.find_needing_review_excluding(reviewed_ids)
        completed_reviews = self.reviews.find_by_reviewer(reviewer_id, completed=True)

        related = self.submissions.find_by_ids([r.get("submission_id") for r in completed_reviews])
        submissions_by_id = {str(s["id"]): s for s in related}
        author_ids = [s.get("author_id") for s in pending_submissions] + [s.get("author_id") for s in related]
        authors_by_id = {str(u["id"]): u for u in self.users.find_by_ids(author_ids)}

        pending_items = []
        for submission in pending_submissions:
            item = dict(submission)
            item.update(_author_summary(authors_by_id.get(str(submission.get("author_id")))))
            pending_items.append(item)

        completed_items = []
        for review in completed_reviews:
            submission = submissions_by_id.get(str(review.get("submission_id"))) or {}
            item = dict(review)
            item.update(
                {
                    "title": submission.get("title"),
                    "abstract": submission.get("abstract"),
                    "submission_status": submission.get("status"),
                    "submission_date": submission.get("submitted_at"),
                }
            )
            item.update(_author_summary(authors_by_id.get(str(submission.get("author_id")))))
            completed_items.append(item)

        return {
            "pendingReviews": pending_items,
            "completedReviews": completed_items,
            "reviewStats": {
                "totalReviews": len(completed_items),
                "pendingCount": len(pending_items),
            },
        }

    def get_submission_review_summary(self, submission_id: Any) -> dict[str, Any]:
        return self.reviews.get_submission_review_summary(submission_id)

    def get_reviews_for_submission(self, actor: dict, submission_id: Any) -> dict[str, Any]:
        if not has_role(actor, EDITORIAL_ROLES):
            raise AuthorizationError("Only editors and admins can view all reviews of a submission")
        self._get_submission(submission_id)
        reviews = self.reviews.find_by_submission(submission_id)
        reviewers = {str(u["id"]): u for u in self.users.find_by_ids([r.get("reviewer_id") for r in reviews])}
        items = []
        for review in reviews:
            item = dict(review)
            item["reviewer_name"] = display_name(reviewers.get(str(review.get("reviewer_id"))))
            items.append(item)
        return {"reviews": items, "summary": self.get_submission_review_summary(submission_id)}

    def get_reviews_for_author(self, author: dict, submission_id: Any) -> list[dict[str, Any]]:
        """作者视角：只返回已完成的审稿，并去掉 confidential_comments 与审稿人身份。"""
        submission = self._get_submission(submission_id)
        if not is_owner(author, submission):
            raise AuthorizationError("You can only view reviews of your own submissions")
        visible = []
        for review in self.reviews.find_by_submission(submission_id):
            if not review.get("is_completed"):
                continue
            visible.append(
                {
                    "id": review.get("id"),
                    "submission_id": review.get("submission_id"),
                    "recommendation": review.get("recommendation"),
                    "comments": review.get("comments"),
                    "rating": review.get("rating"),
                    "completed_date": review.get("completed_date"),
                }
            )
        return visible

    def get_my_reviews(self, reviewer: dict) -> list[dict[str, Any]]:
        reviews = self.reviews.find_by_reviewer(reviewer["id"])
        related = {str(s["id"]): s for s in self.submissions.find_by_ids([r.get("submission_id") for r in reviews])}
        items = []
        for review in reviews:
            submission = related.get(str(review.get("submission_id"))) or {}
            item = dict(review)
            item["submission_title"] = submission.get("title")
            item["submission_status"] = submission.get("status")
            items.append(item)
        return items

    def get_available_reviewers(self, actor: dict) -> list[dict[str, Any]]:
        if not has_role(actor, EDITORIAL_ROLES):
            raise AuthorizationError("Only editors and admins can list reviewers")
        return self.users.find_active_by_roles(sorted(REVIEWING_ROLES))

    def get_all_reviews(self, actor: dict) -> list[dict[str, Any]]:
        if not has_role(actor, EDITORIAL_ROLES):
            raise AuthorizationError("Only editors and admins can view all reviews")
        reviews = self.reviews.find_all()
        submissions = {str(s["id"]): s for s in self.submissions.find_by_ids([r.get("submission_id") for r in reviews])}
        reviewers = {str(u["id"]): u for u in self.users.find_by_ids([r.get("reviewer_id") for r in reviews])}
        items = []
        for review in reviews:
            item = dict(review)
            submission = submissions.get(str(review.get("submission_id"))) or {}
            item["submission_title"] = submission.get("title")
            item["submission_status"] = submission.get("status")
            item["reviewer_name"] = display_name(reviewers.get(str(review.get("reviewer_id"))))
            items.append(item)
        return items

    def get_review_statistics(self, actor: dict) -> dict[str, Any]:
        if not has_role(actor, EDITORIAL_ROLES):
            raise AuthorizationError("Only editors and admins can view review statistics")
        recommendations = self.reviews.get_review_stats()
        recent = self.reviews.find_recent_completed()
        submitted_at = {
            str(s["id"]): s.get("submitted_at")
            for s in self.submissions.find_by_ids([r.get("submission_id") for r in recent])
        }
        return {
            "total_completed": sum(recommendations.values()),
            "recommendations": recommendations,
            "average_review_days": round(average_review_days(recent, submitted_at), 1),
        }
