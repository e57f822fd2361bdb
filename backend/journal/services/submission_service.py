"""
稿件服务

中文注释:
- 作者投稿：先校验文件（PDF、≤10MiB），再上传 Storage，最后写 submissions 行。
- 状态流转统一经过 submission_workflow 校验，非法边在写库之前拒绝。
- 作者只能查看/修改自己的稿件；reviewer/editor/admin 可查看任意稿件。
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import BackgroundTasks

from journal.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from journal.core.roles import EDITORIAL_ROLES, REVIEWING_ROLES, SUBMITTING_ROLES, has_role, has_role_or_owns, is_owner
from journal.models.submission import AUTHOR_EDITABLE_STATUSES, SubmissionStatus, normalize_status
from journal.repositories.base import Page, utc_now_iso
from journal.repositories.submissions import SubmissionRepository
from journal.repositories.users import UserRepository
from journal.schemas.submission import SubmissionCreate, SubmissionUpdate
from journal.services import storage_service
from journal.services.notification_service import NotificationService
from journal.services.submission_workflow import check_resubmission, check_status_transition

logger = logging.getLogger("journal.submissions")


class SubmissionService:
    def __init__(
        self,
        submissions: Optional[SubmissionRepository] = None,
        users: Optional[UserRepository] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.submissions = submissions or SubmissionRepository()
        self.users = users or UserRepository()
        self.notifications = notifications or NotificationService()

    # === 内部工具 ===

    def _get_or_404(self, submission_id: Any) -> dict[str, Any]:
        submission = self.submissions.find_by_id(submission_id)
        if not submission:
            raise NotFoundError("Submission not found")
        return submission

    @staticmethod
    def _require_editorial(user: dict, action: str) -> None:
        if not has_role(user, EDITORIAL_ROLES):
            raise AuthorizationError(f"Only editors and admins can {action}")

    # === 作者侧 ===

    def create_submission(
        self,
        user: dict,
        payload: SubmissionCreate,
        *,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> dict[str, Any]:
        if not has_role(user, SUBMITTING_ROLES):
            raise AuthorizationError("Only authors can submit manuscripts")

        # 文件校验在 upload_manuscript 内、写 Storage 之前完成
        stored = storage_service.upload_manuscript(
            author_id=str(user["id"]),
            filename=filename,
            content=content,
            content_type=content_type,
        )

        now = utc_now_iso()
        try:
            submission = self.submissions.create(
                {
                    "title": payload.title,
                    "abstract": payload.abstract,
                    "keywords": payload.keywords,
                    "co_authors": payload.co_authors,
                    "author_id": str(user["id"]),
                    "manuscript_path": stored.path,
                    "manuscript_url": stored.url,
                    "status": SubmissionStatus.SUBMITTED.value,
                    "submitted_at": now,
                }
            )
        except Exception:
            # 行没写进去，刚上传的文件不能留在 Storage 里
            logger.error("Submission insert failed, removing uploaded file: path=%s", stored.path)
            storage_service.delete_manuscript(path=stored.path)
            raise
        logger.info("Submission created: id=%s author=%s", submission.get("id"), user.get("id"))
        self.notifications.submission_received(submission, user, background_tasks)
        return submission

    def get_submission(self, user: dict, submission_id: Any) -> dict[str, Any]:
        submission = self._get_or_404(submission_id)
        if not has_role_or_owns(user, submission, REVIEWING_ROLES):
            raise AuthorizationError("You can only view your own submissions")
        return submission

    def list_my_submissions(self, user: dict) -> list[dict[str, Any]]:
        return self.submissions.find_by_author(user["id"])

    def update_content(self, user: dict, submission_id: Any, payload: SubmissionUpdate) -> dict[str, Any]:
        submission = self._get_or_404(submission_id)
        if not is_owner(user, submission):
            raise AuthorizationError("You can only update your own submissions")
        status = normalize_status(submission.get("status"))
        if status not in AUTHOR_EDITABLE_STATUSES:
            raise ValidationError(f"Submission cannot be edited while {status}")
        changes = payload.changes()
        if not changes:
            raise ValidationError("No fields to update")
        updated = self.submissions.update(submission_id, changes)
        return updated or {**submission, **changes}

    def resubmit_manuscript(
        self,
        user: dict,
        submission_id: Any,
        *,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> dict[str, Any]:
        submission = self._get_or_404(submission_id)
        if not is_owner(user, submission):
            raise AuthorizationError("You can only update your own submissions")
        old_status = submission.get("status")
        new_status = check_resubmission(old_status)

        stored = storage_service.upload_manuscript(
            author_id=str(user["id"]),
            filename=filename,
            content=content,
            content_type=content_type,
        )
        try:
            updated = self.submissions.update(
                submission_id,
                {
                    "manuscript_path": stored.path,
                    "manuscript_url": stored.url,
                    "status": new_status,
                },
            ) or {**submission, "status": new_status, "manuscript_path": stored.path, "manuscript_url": stored.url}
        except Exception:
            # 行仍指向旧文件，只删除本次上传的新文件
            logger.error("Resubmission update failed, removing uploaded file: id=%s path=%s", submission_id, stored.path)
            storage_service.delete_manuscript(path=stored.path)
            raise
        logger.info("Submission resubmitted: id=%s %s -> %s", submission_id, old_status, new_status)
        self.notifications.submission_status_changed(updated, user, old_status, background_tasks)
        return updated

    def get_manuscript_url(self, user: dict, submission_id: Any) -> dict[str, Any]:
        submission = self.get_submission(user, submission_id)
        path = submission.get("manuscript_path")
        if not path:
            raise NotFoundError("Manuscript file not found")
        signed = storage_service.create_signed_url(path=str(path))
        return {"url": signed.url, "expires_in": signed.expires_in}

    # === 编辑侧 ===

    def update_status(
        self,
        user: dict,
        submission_id: Any,
        status: Any,
        editor_comments: Optional[str] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> dict[str, Any]:
        self._require_editorial(user, "update submission status")
        submission = self._get_or_404(submission_id)
        old_status = submission.get("status")
        target = check_status_transition(user, old_status, status)

        updated = self.submissions.update_status(submission_id, target, editor_comments) or {
            **submission,
            "status": target,
        }
        logger.info(
            "Submission status changed: id=%s %s -> %s by=%s",
            submission_id,
            old_status,
            target,
            user.get("id"),
        )
        author = self.users.find_by_id(submission.get("author_id"))
        self.notifications.submission_status_changed(updated, author, old_status, background_tasks)
        return updated

    def list_submissions(
        self,
        user: dict,
        *,
        page: Any = 1,
        limit: Any = 10,
        status: Optional[str] = None,
    ) -> Page:
        self._require_editorial(user, "view all submissions")
        status_filter = None
        if status:
            status_filter = normalize_status(status)
            if status_filter is None:
                raise ValidationError(f"Invalid status: {status}")
        return self.submissions.find_with_pagination(page, limit, status=status_filter)

    def get_stats(self, user: dict) -> dict[str, int]:
        self._require_editorial(user, "view statistics")
        return self.submissions.get_stats()

    def search(self, user: dict, term: str) -> list[dict[str, Any]]:
        self._require_editorial(user, "search submissions")
        if not (term or "").strip():
            raise ValidationError("Search query is required")
        return self.submissions.search(term)

    def pending_review(self, user: dict) -> list[dict[str, Any]]:
        self._require_editorial(user, "view pending reviews")
        return self.submissions.find_pending_review()
