from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Volume(BaseModel):
    id: UUID
    volume_number: int
    year: int
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Issue(BaseModel):
    id: UUID
    volume_id: UUID
    issue_number: int
    description: Optional[str] = None
    published_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Article(BaseModel):
    """已发表文章（由 accepted 稿件人工整理而来）"""

    id: UUID
    submission_id: Optional[UUID] = None
    issue_id: UUID
    title: str
    abstract: str
    authors: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    pdf_url: Optional[str] = None
    published_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


def serialize_volume(row: dict, issues: Optional[List[dict]] = None) -> dict:
    data = Volume.model_validate(row).model_dump(mode="json")
    if issues is not None:
        data["issues"] = [Issue.model_validate(i).model_dump(mode="json") for i in issues]
    return data


def serialize_issue(row: dict) -> dict:
    return Issue.model_validate(row).model_dump(mode="json")


def serialize_article(row: dict) -> dict:
    return Article.model_validate(row).model_dump(mode="json")
