"""
用户数据模型
---------------------------------
功能：
- 定义 User 表结构，用于存储账号信息
- 字段包括：id、姓名、邮箱、密码哈希、角色、封禁标记、头像、重置密码令牌、时间戳
- 角色：student（默认）/ teacher / admin

使用：
- 用于注册、登录、身份解析与后台账号管理
- 邮箱作为唯一标识（统一小写存储）
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Enum
from datetime import datetime
from .base import Base
import enum


class UserRole(str, enum.Enum):
    """账号角色枚举"""
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class User(Base):
    """用户模型"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, comment="用户ID")
    name = Column(String(100), nullable=False, comment="显示名称")
    email = Column(String(255), unique=True, index=True, nullable=False, comment="邮箱（小写）")
    hashed_password = Column(String(255), nullable=False, comment="密码哈希")
    role = Column(
        Enum(UserRole, values_callable=lambda e: [m.value for m in e]),
        default=UserRole.STUDENT,
        nullable=False,
        comment="角色"
    )
    is_blocked = Column(Boolean, default=False, nullable=False, comment="是否被封禁")
    profile_image = Column(String(255), default="", nullable=False, comment="头像相对路径")

    # 找回密码：只保存令牌的 SHA-256 摘要
    reset_password_token = Column(String(64), nullable=True, index=True, comment="重置令牌哈希")
    reset_password_expire = Column(DateTime, nullable=True, comment="重置令牌过期时间")

    created_at = Column(DateTime, default=datetime.utcnow, comment="创建时间")
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, comment="更新时间")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role.value})>"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_teacher(self) -> bool:
        return self.role == UserRole.TEACHER
