"""
认证与授权服务
---------------------------------
功能：
- 密码哈希与校验（bcrypt）
- JWT 签发与解析（PyJWT, HS256）
- 身份解析：从 Cookie `jwt`（优先）或 `Authorization: Bearer <token>` 取出凭证并加载账号
- 角色门禁：ROLE_GATES 显式列出每个门禁允许的角色集合

使用：
- current_user: User = Depends(get_current_user)
- current_user: User = Depends(require_gate("student_only"))

说明：
- 门禁中 admin_or_teacher 同时放行管理员与教师（后台面板由两种角色共用），
  只有删除教师等操作使用 strict_admin。
"""

from datetime import datetime, timedelta
from typing import Callable, Dict, FrozenSet, Optional
import hashlib
import secrets

import bcrypt
import jwt
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.database import get_db
from ..config.settings import (
    AUTH_COOKIE_NAME,
    JWT_ALGORITHM,
    JWT_EXPIRE_MINUTES,
    JWT_SECRET_KEY,
    RESET_TOKEN_EXPIRE_MINUTES,
)
from ..models.user import User, UserRole
from ..utils.errors import ForbiddenError, UnauthenticatedError

# OAuth2 Bearer（仅用于提取 Header 中的 Token，Cookie 优先）
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


# ============================================================================
# 密码与令牌
# ============================================================================

def hash_password(password: str) -> str:
    """生成 bcrypt 密码哈希"""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    """校验密码"""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(data: dict, expires_minutes: int = JWT_EXPIRE_MINUTES) -> str:
    """
    签发 JWT

    Args:
        data: 载荷（至少包含 user_id）
        expires_minutes: 有效期（分钟）

    Returns:
        编码后的 Token
    """
    payload = dict(data)
    payload["exp"] = datetime.utcnow() + timedelta(minutes=expires_minutes)
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """解析 JWT，签名错误或已过期返回 None"""
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None


def hash_reset_token(token: str) -> str:
    """重置令牌只以 SHA-256 摘要形式入库"""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue_reset_token(user: User) -> str:
    """
    为账号生成找回密码令牌（写入摘要与过期时间，调用方负责提交）

    Returns:
        明文令牌（仅用于拼接邮件链接）
    """
    token = secrets.token_hex(32)
    user.reset_password_token = hash_reset_token(token)
    user.reset_password_expire = datetime.utcnow() + timedelta(minutes=RESET_TOKEN_EXPIRE_MINUTES)
    return token


def clear_reset_token(user: User) -> None:
    user.reset_password_token = None
    user.reset_password_expire = None


# ============================================================================
# 身份解析
# ============================================================================

def extract_token(request: Request, header_token: Optional[str]) -> Optional[str]:
    """Cookie 中的 jwt 优先于 Authorization 头"""
    cookie_token = request.cookies.get(AUTH_COOKIE_NAME)
    if cookie_token:
        return cookie_token
    return header_token or None


async def resolve_user(token: Optional[str], db: AsyncSession) -> User:
    """
    将凭证解析为账号

    Raises:
        UnauthenticatedError: 缺少凭证、凭证无效/过期、账号不存在
        ForbiddenError: 账号被封禁（凭证本身有效）
    """
    if not token:
        raise UnauthenticatedError("Not authorized, no token")

    payload = decode_access_token(token)
    if not payload or payload.get("user_id") is None:
        raise UnauthenticatedError("Not authorized, token failed")

    result = await db.execute(select(User).where(User.id == payload["user_id"]))
    user = result.scalar_one_or_none()
    if not user:
        raise UnauthenticatedError("User not found")

    if user.is_blocked:
        raise ForbiddenError("Account blocked. Contact administrator.")

    return user


async def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    依赖注入：获取当前登录用户（必须认证）

    用法：
    @router.get("/protected")
    async def protected(current_user: User = Depends(get_current_user)):
        ...
    """
    return await resolve_user(extract_token(request, token), db)


# ============================================================================
# 角色门禁
# ============================================================================

ROLE_GATES: Dict[str, FrozenSet[UserRole]] = {
    "student_only": frozenset({UserRole.STUDENT}),
    "teacher_only": frozenset({UserRole.TEACHER}),
    "admin_or_teacher": frozenset({UserRole.ADMIN, UserRole.TEACHER}),
    "strict_admin": frozenset({UserRole.ADMIN}),
}

GATE_MESSAGES: Dict[str, str] = {
    "student_only": "Student access only",
    "teacher_only": "Teacher access only",
    "admin_or_teacher": "Admin/Teacher access only",
    "strict_admin": "Admin access only",
}


def check_gate(gate: str, user: User) -> None:
    """角色不在门禁集合内时抛出 ForbiddenError"""
    if user.role not in ROLE_GATES[gate]:
        raise ForbiddenError(GATE_MESSAGES[gate])


def require_gate(gate: str) -> Callable:
    """
    生成门禁依赖

    Args:
        gate: ROLE_GATES 中的门禁名

    Returns:
        FastAPI 依赖函数，返回通过校验的当前用户
    """
    if gate not in ROLE_GATES:
        raise KeyError(f"Unknown role gate: {gate}")

    async def _dependency(current_user: User = Depends(get_current_user)) -> User:
        check_gate(gate, current_user)
        return current_user

    _dependency.__name__ = f"require_{gate}"
    return _dependency
