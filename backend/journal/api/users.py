from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query

from journal.core.auth import require_admin
from journal.models.audit_log import AuditAction
from journal.schemas.user import RoleUpdate, StatusUpdate
from journal.services.audit_service import AuditService, audit_trail
from journal.services.user_service import UserService

# 中文注释: 整个 /users 路由只对 admin 开放
router = APIRouter(prefix="/users", tags=["Users (Admin)"])


@router.get("")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    role: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    current_user: dict = Depends(require_admin),
):
    body = UserService().list_users(page=page, limit=limit, role=role, is_active=is_active, search=search)
    return {"success": True, **body}


@router.get("/stats")
async def user_stats(current_user: dict = Depends(require_admin)):
    return {"success": True, "data": UserService().get_stats()}


@router.get("/search")
async def search_users(q: str = Query(""), current_user: dict = Depends(require_admin)):
    return {"success": True, "data": UserService().search(q)}


@router.get("/{user_id}")
async def get_user(user_id: UUID, current_user: dict = Depends(require_admin)):
    return {"success": True, "data": UserService().get_user(user_id)}


@router.put("/{user_id}/role")
async def change_role(
    user_id: UUID,
    current_user: dict = Depends(require_admin),
    req: RoleUpdate = Body(...),
    audit: AuditService = Depends(audit_trail),
):
    data = UserService().change_role(current_user, user_id, req.role)
    audit.record(
        AuditAction.USER_ROLE_CHANGED,
        actor=current_user,
        entity_type="user",
        entity_id=user_id,
        details={"role": data.get("role")},
    )
    return {"success": True, "message": "User role updated successfully", "data": data}


@router.put("/{user_id}/status")
async def change_status(
    user_id: UUID,
    current_user: dict = Depends(require_admin),
    req: StatusUpdate = Body(...),
    audit: AuditService = Depends(audit_trail),
):
    """
    启用/停用账号（用户不做物理删除）
    """
    data = UserService().set_active(current_user, user_id, req.is_active)
    audit.record(
        AuditAction.USER_ACTIVATED if req.is_active else AuditAction.USER_DEACTIVATED,
        actor=current_user,
        entity_type="user",
        entity_id=user_id,
    )
    message = "User activated successfully" if req.is_active else "User deactivated successfully"
    return {"success": True, "message": message, "data": data}
