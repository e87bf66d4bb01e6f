"""
认证路由
---------------------------------
功能：
- /api/auth/register - 用户注册（默认 student）
- /api/auth/login - 用户登录（返回 Token 并写入 jwt Cookie；封禁账号返回 403）
- /api/auth/logout - 退出登录（清除 Cookie）
- /api/auth/me - 获取当前用户信息
- /api/auth/forgot-password - 发送重置密码邮件
- /api/auth/reset-password/{token} - 重置密码
- /api/auth/upload-profile - 上传头像
- /api/auth/teachers - 公开教师名册（提交反馈时选择教师）
- /api/auth/users、/api/auth/users/{id}、/api/auth/toggle-block/{id} - 后台账号管理（管理员/教师）

使用：
- 登录成功后返回 JWT Token，前端保存并在后续请求中携带（或依赖 Cookie）
"""

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.database import get_db
from ..config.settings import AUTH_COOKIE_NAME, AUTH_COOKIE_SECURE, JWT_EXPIRE_MINUTES
from ..models.response_schema import ApiResponse
from ..models.user import User
from ..models.user_schema import (
    AccountUpdateRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    account_summary,
    roster_projection,
)
from ..services.account_service import account_service
from ..services.auth_service import create_access_token, get_current_user, require_gate
from ..utils.errors import InternalError
from ..utils.file_utils import delete_upload_file, save_upload_file
from ..utils.logger import log

router = APIRouter(prefix="/api/auth", tags=["认证"])


def _issue_session(response: Response, user: User) -> dict:
    """签发 Token、写入 Cookie，返回账号摘要 + token"""
    token = create_access_token(data={"user_id": user.id})
    response.set_cookie(
        AUTH_COOKIE_NAME,
        token,
        max_age=JWT_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=AUTH_COOKIE_SECURE,
        samesite="strict",
    )
    return {**account_summary(user), "token": token}


# ============================================================================
# API 路由
# ============================================================================

@router.post("/register", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def register(req: RegisterRequest, response: Response, db: AsyncSession = Depends(get_db)):
    """
    用户注册

    请求体：
    - name: 显示名称（至少3个字符）
    - email: 邮箱
    - password: 密码（至少8位，含大小写、数字和特殊字符）

    返回：
    - 账号摘要与 token
    """
    user = await account_service.register(req.name, req.email, req.password, db)
    return ApiResponse.ok(_issue_session(response, user), message="Registered successfully", code=201)


@router.post("/login", response_model=ApiResponse)
async def login(req: LoginRequest, response: Response, db: AsyncSession = Depends(get_db)):
    """
    用户登录

    返回：
    - 账号摘要与 token
    - 邮箱或密码错误：401；账号被封禁：403
    """
    user = await account_service.authenticate(req.email, req.password, db)
    log.info(f"用户 {user.id} 登录")
    return ApiResponse.ok(_issue_session(response, user))


@router.post("/logout", response_model=ApiResponse)
async def logout(response: Response):
    """退出登录：清除 jwt Cookie"""
    response.delete_cookie(
        AUTH_COOKIE_NAME, httponly=True, secure=AUTH_COOKIE_SECURE, samesite="strict"
    )
    return ApiResponse.ok(message="Logged out successfully")


@router.get("/me", response_model=ApiResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """
    获取当前用户信息

    需要携带 jwt Cookie 或请求头：
    Authorization: Bearer <token>
    """
    return ApiResponse.ok(account_summary(current_user))


@router.post("/forgot-password", response_model=ApiResponse)
async def forgot_password(req: ForgotPasswordRequest, db: AsyncSession = Depends(get_db)):
    """发送重置密码邮件（链接 15 分钟内有效）"""
    await account_service.request_password_reset(req.email, db)
    return ApiResponse.ok(message="Reset link sent to your email")


@router.post("/reset-password/{token}", response_model=ApiResponse)
async def reset_password(token: str, req: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    """
    重置密码

    令牌无效或已过期：400
    """
    await account_service.reset_password(token, req.password, db)
    return ApiResponse.ok(message="Password updated successfully")


@router.post("/upload-profile", response_model=ApiResponse)
async def upload_profile_image(
    image: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    上传头像

    返回：
    - profile_image: 新头像的相对路径
    """
    try:
        _, relative_path = await save_upload_file(image, "profiles")
        try:
            previous = await account_service.set_profile_image(current_user, relative_path, db)
        except HTTPException:
            delete_upload_file(relative_path)
            raise

        if previous:
            delete_upload_file(previous)

        log.info(f"用户 {current_user.id} 更新头像: {relative_path}")
        return ApiResponse.ok(
            {"profile_image": relative_path, "user": account_summary(current_user)},
            message="Profile image updated"
        )

    except HTTPException:
        raise
    except Exception as e:
        log.error(f"上传头像失败: {e}")
        raise InternalError("Server error uploading image") from e


@router.get("/teachers", response_model=ApiResponse)
async def get_teacher_roster(db: AsyncSession = Depends(get_db)):
    """公开教师名册"""
    teachers = await account_service.list_teachers(db)
    return ApiResponse.ok([roster_projection(t) for t in teachers])


@router.get("/users", response_model=ApiResponse)
async def get_users(
    include_admins: bool = False,
    current_user: User = Depends(require_gate("admin_or_teacher")),
    db: AsyncSession = Depends(get_db)
):
    """
    用户管理列表（管理员/教师）

    参数：
    - include_admins: 是否包含管理员账号（默认不包含）
    """
    users = await account_service.list_users(db, include_admins=include_admins)
    return ApiResponse.ok([account_summary(u) for u in users])


@router.put("/users/{user_id}", response_model=ApiResponse)
async def update_user(
    user_id: int,
    req: AccountUpdateRequest,
    current_user: User = Depends(require_gate("admin_or_teacher")),
    db: AsyncSession = Depends(get_db)
):
    """
    更新他人账号（姓名/邮箱；is_blocked 仅管理员）
    """
    user = await account_service.update_user(current_user, user_id, req, db)
    return ApiResponse.ok(account_summary(user))


@router.put("/toggle-block/{user_id}", response_model=ApiResponse)
async def toggle_block_user(
    user_id: int,
    current_user: User = Depends(require_gate("admin_or_teacher")),
    db: AsyncSession = Depends(get_db)
):
    """
    切换封禁状态

    返回：
    - is_blocked: 新的封禁状态
    """
    is_blocked = await account_service.toggle_block(current_user, user_id, db)
    return ApiResponse.ok(
        {"is_blocked": is_blocked},
        message=f"User {'blocked' if is_blocked else 'unblocked'} successfully"
    )
