"""
账号服务（Supabase Auth + public.users）

中文注释:
- 密码与会话完全交给 Supabase Auth；public.users 只保存资料、角色与 is_active。
- 注册：先查 users 表防重复邮箱，再 sign_up，最后用 auth user id 建 users 行。
- 登录：历史账号可能缺 users 行，此时按 auth metadata 补建（只允许 author/reviewer）。
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import BackgroundTasks

from journal.core.config import app_config
from journal.core.exceptions import AuthenticationError, ConflictError, ValidationError
from journal.core.roles import SELF_REGISTER_ROLES, Role, normalize_role
from journal.lib.api_client import get_supabase, get_supabase_admin
from journal.models.user import public_user
from journal.repositories.users import UserRepository
from journal.schemas.auth import ProfileUpdate, RegisterRequest
from journal.services.notification_service import NotificationService

logger = logging.getLogger("journal.auth")


def _session_tokens(response: Any) -> tuple[Optional[str], Optional[str]]:
    session = getattr(response, "session", None)
    if not session:
        return None, None
    return getattr(session, "access_token", None), getattr(session, "refresh_token", None)


class AuthService:
    def __init__(
        self,
        users: Optional[UserRepository] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.users = users or UserRepository()
        self.notifications = notifications or NotificationService()

    @staticmethod
    def _auth():
        return get_supabase().auth

    def register(self, payload: RegisterRequest, background_tasks: Optional[BackgroundTasks] = None) -> dict[str, Any]:
        email = str(payload.email).strip().lower()
        if self.users.find_by_email(email):
            raise ConflictError("User with this email already exists")

        try:
            response = self._auth().sign_up(
                {
                    "email": email,
                    "password": payload.password,
                    "options": {
                        "data": {
                            "first_name": payload.first_name,
                            "last_name": payload.last_name,
                            "role": payload.role,
                        }
                    },
                }
            )
        except Exception as e:
            text = str(e).lower()
            if "already" in text and "registered" in text:
                raise ConflictError("User with this email already exists") from e
            logger.warning("Supabase sign_up failed: %s", e)
            raise ValidationError(f"Registration failed: {e}") from e

        auth_user = getattr(response, "user", None)
        if not auth_user:
            raise ValidationError("Registration failed")

        profile = self.users.create_with_id(
            {
                "id": str(auth_user.id),
                "email": email,
                "first_name": payload.first_name,
                "last_name": payload.last_name,
                "affiliation": payload.affiliation,
                "role": payload.role,
            }
        )
        logger.info("User registered: id=%s role=%s", profile.get("id"), profile.get("role"))
        self.notifications.welcome(profile, background_tasks)

        token, refresh_token = _session_tokens(response)
        return {"user": public_user(profile), "token": token, "refresh_token": refresh_token}

    def _profile_from_auth_user(self, auth_user: Any) -> dict[str, Any]:
        metadata = getattr(auth_user, "user_metadata", None) or {}
        role = normalize_role(metadata.get("role"))
        if role not in SELF_REGISTER_ROLES:
            role = Role.AUTHOR.value
        return self.users.create_with_id(
            {
                "id": str(auth_user.id),
                "email": getattr(auth_user, "email", None) or "",
                "first_name": str(metadata.get("first_name") or ""),
                "last_name": str(metadata.get("last_name") or ""),
                "role": role,
            }
        )

    def login(self, email: str, password: str) -> dict[str, Any]:
        # 中文注释: 共享 anon client 只用来换取 token，鉴权只认请求头里的 JWT，不读 client 上保存的会话
        try:
            response = self._auth().sign_in_with_password({"email": email.strip().lower(), "password": password})
        except Exception as e:
            logger.info("Login failed for %s: %s", email, e)
            raise AuthenticationError("Invalid email or password") from e

        auth_user = getattr(response, "user", None)
        token, refresh_token = _session_tokens(response)
        if not auth_user or not token:
            raise AuthenticationError("Invalid email or password")

        profile = self.users.find_by_id(auth_user.id)
        if not profile:
            profile = self._profile_from_auth_user(auth_user)
        if profile.get("is_active") is False:
            raise AuthenticationError("Account is deactivated")

        return {"user": public_user(profile), "token": token, "refresh_token": refresh_token}

    def refresh(self, refresh_token: str) -> dict[str, Any]:
        try:
            response = self._auth().refresh_session(refresh_token)
        except Exception as e:
            raise AuthenticationError("Invalid or expired refresh token") from e
        token, new_refresh = _session_tokens(response)
        if not token:
            raise AuthenticationError("Invalid or expired refresh token")
        return {"token": token, "refresh_token": new_refresh}

    def logout(self, access_token: str) -> None:
        """
        吊销调用方自己的会话（其全部 refresh token）。

        中文注释:
        - anon client 是进程内共享的，上面保存的是“最后一次登录”的会话，不能用它的 sign_out()。
        - 改用 service role 的 auth.admin.sign_out(jwt)，只作用于该 JWT 对应的用户。
        - access token 本身在过期前仍可通过签名校验，这里只保证无法再 refresh。
        """
        try:
            get_supabase_admin().auth.admin.sign_out(access_token)
        except Exception as e:
            logger.info("admin sign_out failed (ignored): %s", e)

    def forgot_password(self, email: str) -> None:
        # 中文注释: 无论邮箱是否存在都返回成功，避免账号枚举
        try:
            self._auth().reset_password_for_email(
                email.strip().lower(),
                {"redirect_to": f"{app_config.frontend_url}/reset-password"},
            )
        except Exception as e:
            logger.warning("reset_password_for_email failed: %s", e)

    def get_profile(self, user: dict) -> dict[str, Any]:
        return public_user(user)

    def update_profile(self, user: dict, payload: ProfileUpdate) -> dict[str, Any]:
        changes = payload.model_dump(exclude_none=True)
        updated = self.users.update_profile(user["id"], changes) or {**user, **changes}
        return public_user(updated)
