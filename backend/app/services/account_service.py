"""
账号服务
---------------------------------
功能：
- 注册、登录校验
- 找回密码（生成令牌并发邮件）与重置密码
- 后台账号管理：用户列表、更新、封禁切换
- 教师管理：列表（按调用者角色返回不同投影）、更新、删除

使用：
- from ..services.account_service import account_service
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.settings import FRONTEND_URL
from ..models.user import User, UserRole
from ..models.user_schema import AccountUpdateRequest
from ..utils.errors import (
    ForbiddenError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    UnauthenticatedError,
)
from ..utils.logger import log
from .auth_service import (
    clear_reset_token,
    hash_password,
    hash_reset_token,
    issue_reset_token,
    verify_password,
)
from .email_service import EmailDeliveryError, get_email_service, password_reset_email


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AccountService:
    """账号服务"""

    @staticmethod
    async def get_by_email(email: str, db: AsyncSession) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == normalize_email(email)))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_id(user_id: int, db: AsyncSession) -> User:
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if not user:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    async def _commit(db: AsyncSession, action: str) -> None:
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            log.error(f"{action} 失败：{e}")
            raise InternalError(f"Error during {action}") from e

    # ------------------------------------------------------------------
    # 注册 / 登录 / 密码
    # ------------------------------------------------------------------

    @staticmethod
    async def register(name: str, email: str, password: str, db: AsyncSession) -> User:
        """注册新账号（角色默认 student）"""
        if await AccountService.get_by_email(email, db):
            raise InvalidInputError("User already exists")

        user = User(
            name=name,
            email=normalize_email(email),
            hashed_password=hash_password(password),
            role=UserRole.STUDENT,
            is_blocked=False,
            profile_image="",
        )
        db.add(user)
        await AccountService._commit(db, "registering user")
        await db.refresh(user)

        log.info(f"新用户注册：{user.id}")
        return user

    @staticmethod
    async def authenticate(email: str, password: str, db: AsyncSession) -> User:
        """
        校验登录凭据

        Raises:
            UnauthenticatedError: 邮箱或密码错误
            ForbiddenError: 账号已被封禁
        """
        user = await AccountService.get_by_email(email, db)
        if not user or not verify_password(password, user.hashed_password):
            raise UnauthenticatedError("Invalid credentials")
        if user.is_blocked:
            raise ForbiddenError("Your account has been blocked by admin")
        return user

    @staticmethod
    async def request_password_reset(email: str, db: AsyncSession) -> None:
        """生成重置令牌并发送邮件；邮件发送失败时撤销令牌"""
        user = await AccountService.get_by_email(email, db)
        if not user:
            raise NotFoundError("No user found with this email")

        token = issue_reset_token(user)
        await AccountService._commit(db, "issuing reset token")

        reset_url = f"{FRONTEND_URL}/reset-password/{token}"
        try:
            await get_email_service().send_async(
                user.email, "Reset Your Password", password_reset_email(reset_url)
            )
        except EmailDeliveryError as e:
            clear_reset_token(user)
            await AccountService._commit(db, "clearing reset token")
            log.error(f"重置密码邮件发送失败：用户 {user.id}，{e}")
            raise InternalError("Failed to send reset email") from e

        log.info(f"已发送重置密码邮件：用户 {user.id}")

    @staticmethod
    async def reset_password(token: str, password: str, db: AsyncSession) -> User:
        """使用重置令牌设置新密码（令牌一次性）"""
        result = await db.execute(
            select(User).where(
                User.reset_password_token == hash_reset_token(token),
                User.reset_password_expire > datetime.utcnow(),
            )
        )
        user = result.scalar_one_or_none()
        if not user:
            raise InvalidInputError("Reset token is invalid or has expired")

        user.hashed_password = hash_password(password)
        clear_reset_token(user)
        await AccountService._commit(db, "resetting password")

        log.info(f"用户 {user.id} 重置密码成功")
        return user

    @staticmethod
    async def set_profile_image(user: User, relative_path: str, db: AsyncSession) -> Optional[str]:
        """更新头像，返回被替换的旧头像路径"""
        previous = user.profile_image or None
        user.profile_image = relative_path
        await AccountService._commit(db, "updating profile image")
        return previous

    @staticmethod
    async def set_role(email: str, role: UserRole, db: AsyncSession) -> User:
        """设置账号角色（运维脚本使用，接口层不暴露）"""
        user = await AccountService.get_by_email(email, db)
        if not user:
            raise NotFoundError("User not found")
        user.role = role
        await AccountService._commit(db, "setting role")
        return user

    # ------------------------------------------------------------------
    # 后台管理
    # ------------------------------------------------------------------

    @staticmethod
    async def list_users(db: AsyncSession, include_admins: bool = False) -> List[User]:
        """用户管理列表，默认不含管理员账号"""
        stmt = select(User)
        if not include_admins:
            stmt = stmt.where(User.role != UserRole.ADMIN)
        result = await db.execute(stmt.order_by(User.created_at.desc(), User.id.desc()))
        return list(result.scalars().all())

    @staticmethod
    async def list_teachers(db: AsyncSession) -> List[User]:
        result = await db.execute(
            select(User).where(User.role == UserRole.TEACHER).order_by(User.name, User.id)
        )
        return list(result.scalars().all())

    @staticmethod
    def check_update_policy(actor: User, target_id: int, req: AccountUpdateRequest) -> None:
        """
        后台更新账号的统一规则（用户管理与教师管理两个入口共用）

        Raises:
            ForbiddenError: 修改自己，或非管理员尝试修改封禁标记
        """
        if actor.id == target_id:
            raise ForbiddenError("You cannot modify your own account here")
        if req.is_blocked is not None and not actor.is_admin:
            raise ForbiddenError("Only admins can change the blocked flag")

    @staticmethod
    async def _apply_update(target: User, req: AccountUpdateRequest, db: AsyncSession) -> None:
        if req.name is not None:
            name = req.name.strip()
            if len(name) < 3:
                raise InvalidInputError("Name must be at least 3 characters long")
            target.name = name
        if req.email is not None:
            email = normalize_email(req.email)
            if email != target.email:
                existing = await AccountService.get_by_email(email, db)
                if existing and existing.id != target.id:
                    raise InvalidInputError("Email already in use")
                target.email = email
        if req.is_blocked is not None:
            target.is_blocked = req.is_blocked

    @staticmethod
    async def update_user(actor: User, user_id: int, req: AccountUpdateRequest, db: AsyncSession) -> User:
        """
        更新他人账号的姓名/邮箱；封禁标记仅管理员可改

        Raises:
            ForbiddenError: 修改自己，或教师尝试修改封禁标记
            NotFoundError: 目标不存在
        """
        AccountService.check_update_policy(actor, user_id, req)
        target = await AccountService.get_by_id(user_id, db)
        await AccountService._apply_update(target, req, db)
        await AccountService._commit(db, "updating user")

        log.info(f"用户 {actor.id} 更新账号 {target.id}")
        return target

    @staticmethod
    async def toggle_block(actor: User, user_id: int, db: AsyncSession) -> bool:
        """切换封禁状态，返回新值；调用两次恢复原状"""
        if actor.id == user_id:
            raise ForbiddenError("You cannot block your own account")

        target = await AccountService.get_by_id(user_id, db)
        target.is_blocked = not target.is_blocked
        await AccountService._commit(db, "toggling block")

        log.info(f"用户 {actor.id} {'封禁' if target.is_blocked else '解封'}账号 {target.id}")
        return target.is_blocked

    @staticmethod
    async def _get_teacher(teacher_id: int, db: AsyncSession) -> User:
        result = await db.execute(
            select(User).where(User.id == teacher_id, User.role == UserRole.TEACHER)
        )
        teacher = result.scalar_one_or_none()
        if not teacher:
            raise NotFoundError("Teacher not found")
        return teacher

    @staticmethod
    async def update_teacher(actor: User, teacher_id: int, req: AccountUpdateRequest, db: AsyncSession) -> User:
        """
        更新教师的姓名/邮箱；封禁标记仅管理员可改，不能修改自己

        Raises:
            ForbiddenError: 修改自己，或教师尝试修改封禁标记
            NotFoundError: 目标不存在或不是教师
        """
        AccountService.check_update_policy(actor, teacher_id, req)
        teacher = await AccountService._get_teacher(teacher_id, db)
        await AccountService._apply_update(teacher, req, db)
        await AccountService._commit(db, "updating teacher")

        log.info(f"用户 {actor.id} 更新教师 {teacher.id}")
        return teacher

    @staticmethod
    async def delete_teacher(actor: User, teacher_id: int, db: AsyncSession) -> None:
        """删除教师账号（仅管理员）"""
        teacher = await AccountService._get_teacher(teacher_id, db)
        await db.delete(teacher)
        await AccountService._commit(db, "deleting teacher")

        log.info(f"管理员 {actor.id} 删除教师 {teacher_id}")


# 单例服务
account_service = AccountService()
