from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from journal.core.roles import Role


class User(BaseModel):
    """
    Database model for public.users
    """

    id: UUID
    email: str
    first_name: str = ""
    last_name: str = ""
    affiliation: Optional[str] = None
    role: Role = Role.AUTHOR
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


def display_name(user: Optional[dict]) -> str:
    if not user:
        return ""
    name = f"{user.get('first_name') or ''} {user.get('last_name') or ''}".strip()
    return name or str(user.get("email") or "")


def public_user(row: dict) -> dict:
    """对外返回的用户信息（只包含 users 表公开字段）"""
    return User.model_validate(row).model_dump(mode="json")
