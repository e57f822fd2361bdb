"""
审计日志（audit_logs 表）

中文注释:
- 记录编辑/管理员的关键操作：稿件状态流转、分配审稿人、改角色、启用/停用账号。
- 写入失败只记 warning，不影响业务请求（与 email_logs 的处理方式一致）。
- details 写库前经过 scrub，密码/token/保密审稿意见不会落库。
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from fastapi import Request
from supabase import Client

from journal.core.rate_limit import client_ip
from journal.core.sentry_init import scrub
from journal.models.audit_log import AuditAction, AuditLevel
from journal.repositories.base import TableGateway

logger = logging.getLogger("journal.audit")


class AuditService:
    def __init__(
        self,
        supabase_client: Optional[Client] = None,
        *,
        ip_address: str = "unknown",
        user_agent: Optional[str] = None,
        path: Optional[str] = None,
        method: Optional[str] = None,
    ):
        self._logs = TableGateway("audit_logs", supabase_client, timestamps=False)
        self.ip_address = ip_address
        self.user_agent = user_agent
        self.path = path
        self.method = method

    @classmethod
    def for_request(cls, request: Request) -> "AuditService":
        return cls(
            ip_address=client_ip(request),
            user_agent=request.headers.get("user-agent"),
            path=request.url.path,
            method=request.method,
        )

    def record(
        self,
        action: AuditAction,
        *,
        actor: Optional[dict] = None,
        entity_type: Optional[str] = None,
        entity_id: Any = None,
        details: Optional[Mapping[str, Any]] = None,
        level: AuditLevel = AuditLevel.INFO,
    ) -> bool:
        data = {
            "level": level.value,
            "user_id": str(actor["id"]) if actor and actor.get("id") else None,
            "action": action.value,
            "entity_type": entity_type,
            "entity_id": str(entity_id) if entity_id is not None else None,
            "details": scrub(dict(details or {})),
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "path": self.path,
            "method": self.method,
        }
        try:
            self._logs.insert(data)
        except Exception as e:
            logger.warning("[Audit] failed to record %s on %s/%s: %s", action.value, entity_type, entity_id, e)
            return False
        return True


def audit_trail(request: Request) -> AuditService:
    """FastAPI 依赖：绑定当前请求的 IP / UA / 路径"""
    return AuditService.for_request(request)
