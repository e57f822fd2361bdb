from __future__ import annotations

import logging
from typing import Any, Optional

from journal.core.exceptions import NotFoundError, ValidationError
from journal.core.roles import normalize_role
from journal.models.user import public_user
from journal.repositories.base import Page
from journal.repositories.users import UserRepository

logger = logging.getLogger("journal.auth")


class UserService:
    """管理员用户管理：分页、检索、改角色、启用/停用（不物理删除）"""

    def __init__(self, users: Optional[UserRepository] = None):
        self.users = users or UserRepository()

    def _get_or_404(self, user_id: Any) -> dict[str, Any]:
        user = self.users.find_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def list_users(
        self,
        *,
        page: Any = 1,
        limit: Any = 10,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> dict[str, Any]:
        role_filter = None
        if role:
            role_filter = normalize_role(role)
            if role_filter is None:
                raise ValidationError("Role must be one of: author, reviewer, editor, admin")
        result: Page = self.users.find_with_pagination(
            page, limit, role=role_filter, is_active=is_active, search=search
        )
        body = result.to_dict()
        body["data"] = [public_user(u) for u in result.data]
        return body

    def get_user(self, user_id: Any) -> dict[str, Any]:
        return public_user(self._get_or_404(user_id))

    def search(self, term: str) -> list[dict[str, Any]]:
        if not (term or "").strip():
            raise ValidationError("Search query is required")
        return [public_user(u) for u in self.users.search(term)]

    def get_stats(self) -> dict[str, Any]:
        return self.users.get_stats()

    def change_role(self, actor: dict, user_id: Any, role: Any) -> dict[str, Any]:
        new_role = normalize_role(role)
        if new_role is None:
            raise ValidationError("Role must be one of: author, reviewer, editor, admin")
        if str(actor.get("id")) == str(user_id):
            raise ValidationError("Admins cannot change their own role")
        user = self._get_or_404(user_id)
        updated = self.users.update_role(user_id, new_role) or {**user, "role": new_role}
        logger.info("User role changed: id=%s %s -> %s by=%s", user_id, user.get("role"), new_role, actor.get("id"))
        return public_user(updated)

    def set_active(self, actor: dict, user_id: Any, is_active: bool) -> dict[str, Any]:
        if str(actor.get("id")) == str(user_id) and not is_active:
            raise ValidationError("Admins cannot deactivate their own account")
        user = self._get_or_404(user_id)
        updated = self.users.update_status(user_id, is_active) or {**user, "is_active": bool(is_active)}
        logger.info("User status changed: id=%s is_active=%s by=%s", user_id, is_active, actor.get("id"))
        return public_user(updated)
