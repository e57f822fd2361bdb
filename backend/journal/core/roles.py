from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Mapping, Optional


class Role(str, Enum):
    ADMIN = "admin"
    EDITOR = "editor"
    REVIEWER = "reviewer"
    AUTHOR = "author"


# 中文注释: 不做角色继承；凡是 editor 能做的地方都显式列出 admin。
EDITORIAL_ROLES = frozenset({Role.EDITOR.value, Role.ADMIN.value})
REVIEWING_ROLES = frozenset({Role.REVIEWER.value, Role.EDITOR.value, Role.ADMIN.value})
SUBMITTING_ROLES = frozenset({Role.AUTHOR.value, Role.ADMIN.value})
SELF_REGISTER_ROLES = frozenset({Role.AUTHOR.value, Role.REVIEWER.value})


def normalize_role(value: Any) -> Optional[str]:
    raw = getattr(value, "value", value)
    v = str(raw or "").strip().lower()
    if not v:
        return None
    try:
        return Role(v).value
    except ValueError:
        return None


def user_role(user: Optional[Mapping[str, Any]]) -> Optional[str]:
    if not user:
        return None
    return normalize_role(user.get("role"))


def has_role(user: Optional[Mapping[str, Any]], allowed_roles: Iterable[Any]) -> bool:
    """当前用户角色是否落在允许集合内。"""
    role = user_role(user)
    if role is None:
        return False
    allowed = {normalize_role(r) for r in allowed_roles}
    return role in allowed


def is_owner(
    user: Optional[Mapping[str, Any]],
    resource: Optional[Mapping[str, Any]],
    field: str = "author_id",
) -> bool:
    """资源的 owner 字段（author_id / reviewer_id）是否等于当前用户。"""
    if not user or not resource:
        return False
    user_id = str(user.get("id") or "")
    owner_id = str(resource.get(field) or "")
    return bool(user_id) and user_id == owner_id


def has_role_or_owns(
    user: Optional[Mapping[str, Any]],
    resource: Optional[Mapping[str, Any]],
    allowed_roles: Iterable[Any],
    field: str = "author_id",
) -> bool:
    return has_role(user, allowed_roles) or is_owner(user, resource, field)
