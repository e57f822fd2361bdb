from fastapi import APIRouter, BackgroundTasks, Body, Depends
from fastapi.security import HTTPAuthorizationCredentials

from journal.core.auth import get_current_user, security
from journal.schemas.auth import ForgotPasswordRequest, LoginRequest, ProfileUpdate, RefreshRequest, RegisterRequest
from journal.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register", status_code=201)
async def register(background_tasks: BackgroundTasks, req: RegisterRequest = Body(...)):
    """
    注册新账号（默认角色 author）
    """
    data = AuthService().register(req, background_tasks)
    return {"success": True, "message": "User registered successfully", "data": data}


@router.post("/login")
async def login(req: LoginRequest = Body(...)):
    data = AuthService().login(str(req.email), req.password)
    return {"success": True, "message": "Login successful", "data": data}


@router.post("/refresh")
async def refresh(req: RefreshRequest = Body(...)):
    data = AuthService().refresh(req.token)
    return {"success": True, "data": data}


@router.post("/logout")
async def logout(
    current_user: dict = Depends(get_current_user),
    credentials: HTTPAuthorizationCredentials = Depends(security),
):
    AuthService().logout(credentials.credentials.strip())
    return {"success": True, "message": "Logged out successfully"}


@router.get("/profile")
async def get_profile(current_user: dict = Depends(get_current_user)):
    return {"success": True, "data": AuthService().get_profile(current_user)}


@router.put("/profile")
async def update_profile(
    current_user: dict = Depends(get_current_user),
    req: ProfileUpdate = Body(...),
):
    """
    更新当前用户资料（姓名 / 单位）；角色与状态只能由管理员修改
    """
    data = AuthService().update_profile(current_user, req)
    return {"success": True, "message": "Profile updated successfully", "data": data}


@router.post("/forgot-password")
async def forgot_password(req: ForgotPasswordRequest = Body(...)):
    AuthService().forgot_password(str(req.email))
    return {
        "success": True,
        "message": "If an account exists for this email, a password reset link has been sent",
    }
