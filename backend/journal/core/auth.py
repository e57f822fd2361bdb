"""
认证与授权模块
功能: 校验 Supabase JWT，加载 users 表中的角色，并提供 require_roles 依赖

中文注释:
- get_current_user: HS256 本地校验，非 HS256 时回退到 Supabase Auth API
- 角色与 is_active 一律以 public.users 为准，token 里的 role 字段（authenticated）不参与授权
- require_roles: 路由级角色闸门，不做角色继承（admin 需要显式列出）
"""

import logging
import os
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from journal.core.exceptions import AuthenticationError, AuthorizationError
from journal.core.roles import has_role
from journal.lib.api_client import get_supabase
from journal.repositories.users import UserRepository

logger = logging.getLogger("journal.auth")

# === Auth 核心配置 ===
# 中文注释:
# 1. 密钥来源于 Supabase Project Settings 中的 JWT Secret。
# 2. auto_error=False：缺少 Authorization 头时由我们抛出统一的 401 错误体。
SUPABASE_JWT_SECRET = os.environ.get("SUPABASE_JWT_SECRET", "mock-secret-replace-later")
ALGORITHM = "HS256"

security = HTTPBearer(auto_error=False)


def _decode_token(token: str) -> dict:
    """
    返回 {"id", "email"}；校验失败抛 AuthenticationError。
    """
    try:
        header = jwt.get_unverified_header(token)
        if header.get("alg") == ALGORITHM and SUPABASE_JWT_SECRET:
            payload = jwt.decode(token, SUPABASE_JWT_SECRET, algorithms=[ALGORITHM], audience="authenticated")
            user_id = payload.get("sub")
            if not user_id:
                raise AuthenticationError("Invalid token payload")
            return {"id": str(user_id), "email": payload.get("email")}
    except JWTError as e:
        logger.info("JWT verification failed: %s", e)
        raise AuthenticationError("Invalid or expired token")

    # fallback: 通过 Supabase Auth API 校验并获取用户信息
    try:
        response = get_supabase().auth.get_user(token)
        user = response.user if response else None
    except Exception as e:
        # 中文注释: Supabase 配置缺失/网络异常同样视为鉴权失败，不回显内部错误
        logger.warning("JWT fallback verification failed: %s", e)
        raise AuthenticationError("Invalid or expired token")

    if not user:
        raise AuthenticationError("Invalid token payload")
    return {"id": str(user.id), "email": getattr(user, "email", None)}


def load_user(identity: dict) -> dict:
    """
    用 token 中的 sub 查 public.users，补齐 role / is_active / 姓名。
    """
    profile = UserRepository().find_by_id(identity["id"])
    if not profile:
        raise AuthenticationError("User profile not found")
    if profile.get("is_active") is False:
        raise AuthenticationError("Account is deactivated")
    user = dict(profile)
    user["email"] = profile.get("email") or identity.get("email")
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """
    解码并验证 Supabase JWT Token，返回 users 表中的当前用户
    """
    if credentials is None or not (credentials.credentials or "").strip():
        raise AuthenticationError("Access token is required")
    identity = _decode_token(credentials.credentials.strip())
    return load_user(identity)


def require_roles(*allowed_roles: str):
    """
    角色检查依赖工厂

    使用方式:
        @router.get("/endpoint")
        async def endpoint(user: dict = Depends(require_roles("editor", "admin"))):
            ...
    """

    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        if not has_role(current_user, allowed_roles):
            raise AuthorizationError(
                f"Insufficient permissions, required role: {', '.join(allowed_roles)}"
            )
        return current_user

    return role_checker


# 便捷的角色检查依赖
require_editor = require_roles("editor", "admin")
require_admin = require_roles("admin")
require_reviewer = require_roles("reviewer", "editor", "admin")
require_submitter = require_roles("author", "admin")
