from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import BackgroundTasks

from journal.core import mail
from journal.core.config import app_config
from journal.models.user import display_name


class NotificationService:
    """
    业务事件 -> 模板邮件

    中文注释:
    - 有 BackgroundTasks 时放到响应之后发送；没有时（脚本/单测）同步发送。
    - 收件人缺邮箱时静默跳过，邮件失败不影响主流程。
    """

    def __init__(self, email: Optional[mail.EmailService] = None):
        self.email = email or mail.email_service

    def _enqueue(
        self,
        background_tasks: Optional[BackgroundTasks],
        *,
        to_email: Optional[str],
        subject: str,
        template_name: str,
        context: Dict[str, Any],
    ) -> None:
        if not to_email:
            return
        if background_tasks is None:
            self.email.send_email_background(to_email, subject, template_name, context)
            return
        background_tasks.add_task(
            self.email.send_email_background,
            to_email=to_email,
            subject=subject,
            template_name=template_name,
            context=context,
        )

    def welcome(self, user: dict, background_tasks: Optional[BackgroundTasks] = None) -> None:
        self._enqueue(
            background_tasks,
            to_email=user.get("email"),
            subject=f"Welcome to {app_config.journal_name}",
            template_name="welcome.html",
            context={"recipient_name": display_name(user), "role": user.get("role") or "author"},
        )

    def submission_received(
        self,
        submission: dict,
        author: Optional[dict],
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> None:
        if not author:
            return
        self._enqueue(
            background_tasks,
            to_email=author.get("email"),
            subject="Manuscript submission received",
            template_name="submission_received.html",
            context={
                "recipient_name": display_name(author),
                "submission_id": submission.get("id"),
                "title": submission.get("title"),
                "abstract": submission.get("abstract"),
                "keywords": submission.get("keywords") or [],
                "co_authors": submission.get("co_authors") or [],
                "submitted_at": submission.get("submitted_at"),
            },
        )

    def submission_status_changed(
        self,
        submission: dict,
        author: Optional[dict],
        old_status: Optional[str],
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> None:
        if not author:
            return
        self._enqueue(
            background_tasks,
            to_email=author.get("email"),
            subject="Manuscript status update",
            template_name="submission_status.html",
            context={
                "recipient_name": display_name(author),
                "submission_id": submission.get("id"),
                "title": submission.get("title"),
                "old_status": old_status,
                "new_status": submission.get("status"),
                "editor_comments": submission.get("editor_comments"),
            },
        )

    def review_assigned(
        self,
        reviewer: dict,
        submission: dict,
        review: dict,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> None:
        self._enqueue(
            background_tasks,
            to_email=reviewer.get("email"),
            subject="New review assignment",
            template_name="review_assignment.html",
            context={
                "recipient_name": display_name(reviewer),
                "submission_id": submission.get("id"),
                "title": submission.get("title"),
                "abstract": submission.get("abstract"),
                "keywords": submission.get("keywords") or [],
                "assigned_date": review.get("assigned_date"),
            },
        )

    def review_completed(
        self,
        author: Optional[dict],
        submission: dict,
        review: dict,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> None:
        if not author:
            return
        self._enqueue(
            background_tasks,
            to_email=author.get("email"),
            subject="A review of your manuscript is complete",
            template_name="review_completed.html",
            context={
                "recipient_name": display_name(author),
                "submission_id": submission.get("id"),
                "title": submission.get("title"),
                "completed_date": review.get("completed_date"),
            },
        )
