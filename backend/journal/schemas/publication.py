from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class VolumeCreate(BaseModel):
    volume_number: int = Field(..., ge=1)
    year: int = Field(..., ge=1900, le=2100)
    description: Optional[str] = Field(None, max_length=2000)


class IssueCreate(BaseModel):
    issue_number: int = Field(..., ge=1)
    description: Optional[str] = Field(None, max_length=2000)
    published_at: Optional[datetime] = None
