from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Recommendation(str, Enum):
    ACCEPT = "accept"
    MINOR_REVISIONS = "minor_revisions"
    MAJOR_REVISIONS = "major_revisions"
    REJECT = "reject"


class ReviewStatus(str, Enum):
    PENDING = "pending"  # assigned by an editor, not yet written
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Review(BaseModel):
    """审稿记录（confidential_comments 仅编辑可见）"""

    id: UUID
    submission_id: UUID
    reviewer_id: UUID
    comments: str = ""
    confidential_comments: Optional[str] = None
    recommendation: Optional[Recommendation] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    status: ReviewStatus = ReviewStatus.PENDING
    is_completed: bool = False
    assigned_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


def serialize_review(row: dict) -> dict:
    return Review.model_validate(row).model_dump(mode="json")
