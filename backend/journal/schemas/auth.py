import re
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    affiliation: Optional[str] = Field(None, max_length=200)
    # 中文注释: 自助注册只开放 author / reviewer，editor/admin 由管理员授予
    role: Literal["author", "reviewer"] = "author"

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("affiliation", mode="before")
    @classmethod
    def blank_affiliation_to_none(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if not (re.search(r"[a-z]", v) and re.search(r"[A-Z]", v) and re.search(r"\d", v)):
            raise ValueError(
                "Password must contain at least one uppercase letter, one lowercase letter, and one number"
            )
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    """兼容前端两种写法：refreshToken / refresh_token"""

    refresh_token: Optional[str] = None
    refreshToken: Optional[str] = None

    @model_validator(mode="after")
    def require_token(self) -> "RefreshRequest":
        if not (self.token or "").strip():
            raise ValueError("Refresh token is required")
        return self

    @property
    def token(self) -> str:
        return (self.refresh_token or self.refreshToken or "").strip()


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    affiliation: Optional[str] = Field(None, max_length=200)

    @field_validator("first_name", "last_name", "affiliation", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @model_validator(mode="after")
    def validate_any_field(self) -> "ProfileUpdate":
        if self.first_name is None and self.last_name is None and self.affiliation is None:
            raise ValueError("At least one field must be provided")
        return self
