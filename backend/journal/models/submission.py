from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SubmissionStatus(str, Enum):
    """
    稿件生命周期状态

    中文注释:
    - submitted -> under_review -> revisions_required / accepted / rejected
    - revisions_required -> under_review（仅作者重新上传稿件）
    - accepted -> published（管理员手工操作）
    """

    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    REVISIONS_REQUIRED = "revisions_required"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    PUBLISHED = "published"


REVIEWABLE_STATUSES = frozenset({SubmissionStatus.SUBMITTED.value, SubmissionStatus.UNDER_REVIEW.value})
AUTHOR_EDITABLE_STATUSES = frozenset(
    {SubmissionStatus.SUBMITTED.value, SubmissionStatus.REVISIONS_REQUIRED.value}
)


def normalize_status(value: object) -> Optional[str]:
    raw = getattr(value, "value", value)
    v = str(raw or "").strip().lower()
    if not v:
        return None
    try:
        return SubmissionStatus(v).value
    except ValueError:
        return None


class Submission(BaseModel):
    """数据库中的完整稿件模型"""

    id: UUID
    title: str
    abstract: str
    keywords: List[str] = Field(default_factory=list)
    author_id: UUID
    co_authors: List[str] = Field(default_factory=list)
    status: SubmissionStatus = SubmissionStatus.SUBMITTED
    manuscript_path: Optional[str] = None
    manuscript_url: Optional[str] = None
    editor_comments: Optional[str] = None
    submitted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


def serialize_submission(row: dict) -> dict:
    return Submission.model_validate(row).model_dump(mode="json")
