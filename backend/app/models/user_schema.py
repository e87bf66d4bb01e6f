"""
账号相关的 Pydantic Schema
---------------------------------
功能：
- 注册/登录/找回密码/重置密码请求
- 账号更新请求（后台）
- 账号的不同投影（完整非敏感投影、教师视角的精简投影、公开教师名册）

密码规则：至少 8 位，需同时包含大写、小写、数字和特殊字符（@$!%*?&）。
"""

import re
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from .user import User

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])")


def _check_password(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters")
    if len(value.encode("utf-8")) > 72:
        raise ValueError("Password must be at most 72 bytes")
    if not PASSWORD_PATTERN.match(value):
        raise ValueError("Password must contain uppercase, lowercase, number, and special character")
    return value


class RegisterRequest(BaseModel):
    """注册请求"""
    name: str = Field(..., description="显示名称")
    email: EmailStr
    password: str

    @field_validator("name")
    @classmethod
    def _name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 3:
            raise ValueError("Name must be at least 3 characters long")
        return value

    @field_validator("password")
    @classmethod
    def _password(cls, value: str) -> str:
        return _check_password(value)


class LoginRequest(BaseModel):
    """登录请求"""
    email: EmailStr
    password: str


class ForgotPasswordRequest(BaseModel):
    """找回密码请求"""
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """重置密码请求"""
    password: str

    @field_validator("password")
    @classmethod
    def _password(cls, value: str) -> str:
        return _check_password(value)


class AccountUpdateRequest(BaseModel):
    """后台更新账号请求（不涉及密码）"""
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    is_blocked: Optional[bool] = None


def account_summary(user: User) -> dict:
    """完整的非敏感投影"""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "is_blocked": user.is_blocked,
        "profile_image": user.profile_image or "",
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def teacher_view_projection(user: User) -> dict:
    """教师调用者看到的精简投影"""
    return {"id": user.id, "name": user.name, "email": user.email, "is_blocked": user.is_blocked}


def roster_projection(user: User) -> dict:
    """公开教师名册（提交反馈时选择教师）"""
    return {"id": user.id, "name": user.name, "email": user.email, "profile_image": user.profile_image or ""}
