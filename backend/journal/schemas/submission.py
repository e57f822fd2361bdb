from __future__ import annotations

import json
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field, field_validator

from journal.models.submission import SubmissionStatus

MAX_TITLE_LENGTH = 200
MAX_ABSTRACT_WORDS = 500
MIN_KEYWORDS = 3
MAX_KEYWORDS = 10


def split_list_field(values: Optional[Iterable[str]]) -> List[str]:
    """
    multipart 表单里的列表字段：支持重复字段、JSON 数组字符串、逗号分隔字符串三种写法。
    """
    items: List[str] = []
    for raw in values or []:
        if raw is None:
            continue
        text = str(raw).strip()
        if not text:
            continue
        if text.startswith("["):
            try:
                parsed = json.loads(text)
            except ValueError:
                parsed = None
            if isinstance(parsed, list):
                items.extend(str(p) for p in parsed)
                continue
        items.extend(text.split(","))
    return items


def count_words(text: str) -> int:
    return len(str(text or "").split())


def _check_title(v: str) -> str:
    title = str(v or "").strip()
    if not title:
        raise ValueError("Title is required")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValueError(f"Title must be {MAX_TITLE_LENGTH} characters or less")
    return title


def _check_abstract(v: str) -> str:
    abstract = str(v or "").strip()
    if not abstract:
        raise ValueError("Abstract is required")
    if count_words(abstract) > MAX_ABSTRACT_WORDS:
        raise ValueError(f"Abstract must be {MAX_ABSTRACT_WORDS} words or less")
    return abstract


def _check_keywords(v: List[str]) -> List[str]:
    keywords = [str(k).strip() for k in (v or [])]
    if any(not k for k in keywords):
        raise ValueError("Keywords must not be empty")
    if len(keywords) < MIN_KEYWORDS:
        raise ValueError(f"At least {MIN_KEYWORDS} keywords are required")
    if len(keywords) > MAX_KEYWORDS:
        raise ValueError(f"Maximum {MAX_KEYWORDS} keywords allowed")
    return keywords


def _check_co_authors(v: List[str]) -> List[str]:
    co_authors = [str(c).strip() for c in (v or [])]
    for index, name in enumerate(co_authors):
        if not name:
            raise ValueError(f"Co-author {index + 1} name cannot be empty")
    return co_authors


class SubmissionCreate(BaseModel):
    title: str
    abstract: str
    keywords: List[str] = Field(default_factory=list)
    co_authors: List[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _check_title(v)

    @field_validator("abstract")
    @classmethod
    def validate_abstract(cls, v: str) -> str:
        return _check_abstract(v)

    @field_validator("keywords")
    @classmethod
    def validate_keywords(cls, v: List[str]) -> List[str]:
        return _check_keywords(v)

    @field_validator("co_authors")
    @classmethod
    def validate_co_authors(cls, v: List[str]) -> List[str]:
        return _check_co_authors(v)


class SubmissionUpdate(BaseModel):
    """作者修改内容（仅 submitted / revisions_required 状态允许）"""

    title: Optional[str] = None
    abstract: Optional[str] = None
    keywords: Optional[List[str]] = None
    co_authors: Optional[List[str]] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        return None if v is None else _check_title(v)

    @field_validator("abstract")
    @classmethod
    def validate_abstract(cls, v):
        return None if v is None else _check_abstract(v)

    @field_validator("keywords")
    @classmethod
    def validate_keywords(cls, v):
        return None if v is None else _check_keywords(v)

    @field_validator("co_authors")
    @classmethod
    def validate_co_authors(cls, v):
        return None if v is None else _check_co_authors(v)

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True, mode="json")


class SubmissionStatusUpdate(BaseModel):
    status: SubmissionStatus
    editor_comments: Optional[str] = Field(None, max_length=5000)
