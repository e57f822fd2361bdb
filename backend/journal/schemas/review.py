from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from journal.models.review import Recommendation


def _normalize_recommendation(v):
    # 中文注释: 兼容旧前端的连字符写法（minor-revisions）
    if isinstance(v, str):
        return v.strip().lower().replace("-", "_")
    return v


class ReviewCreate(BaseModel):
    # 中文注释: 前端发送 submissionId，snake_case 同样接受
    model_config = ConfigDict(populate_by_name=True)

    submission_id: UUID = Field(..., alias="submissionId")
    recommendation: Recommendation
    comments: str = Field(..., max_length=20000)
    confidential_comments: Optional[str] = Field(None, max_length=20000)
    rating: Optional[int] = Field(None, ge=1, le=5)

    @field_validator("recommendation", mode="before")
    @classmethod
    def normalize_recommendation(cls, v):
        return _normalize_recommendation(v)

    @field_validator("comments")
    @classmethod
    def comments_required(cls, v: str) -> str:
        text = (v or "").strip()
        if not text:
            raise ValueError("Review comments are required")
        return text


class ReviewUpdate(BaseModel):
    recommendation: Optional[Recommendation] = None
    comments: Optional[str] = Field(None, max_length=20000)
    confidential_comments: Optional[str] = Field(None, max_length=20000)
    rating: Optional[int] = Field(None, ge=1, le=5)

    @field_validator("recommendation", mode="before")
    @classmethod
    def normalize_recommendation(cls, v):
        return _normalize_recommendation(v)

    @field_validator("comments")
    @classmethod
    def comments_not_blank(cls, v):
        if v is None:
            return v
        text = v.strip()
        if not text:
            raise ValueError("Review comments cannot be empty")
        return text

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True, mode="json")


class ReviewAssign(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    submission_id: UUID = Field(..., alias="submissionId")
    reviewer_id: UUID = Field(..., alias="reviewerId")
