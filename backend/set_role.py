"""
账号角色设置脚本
---------------------------------
功能：
- 管理员手动把已注册账号设为 teacher / admin（注册接口只创建 student）

运行：
python backend/set_role.py <邮箱> <角色>
python backend/set_role.py --list

示例：
python backend/set_role.py t.smith@school.edu teacher
python backend/set_role.py principal@school.edu admin
"""

import asyncio
import sys
from sqlalchemy import select

from app.config.database import AsyncSessionLocal
from app.models.user import User, UserRole
from app.services.account_service import account_service
from app.utils.errors import AppError
from app.utils.logger import log, setup_logging


async def set_role(email: str, role: UserRole) -> bool:
    """设置角色"""

    async with AsyncSessionLocal() as db:
        try:
            user = await account_service.set_role(email, role, db)
        except AppError as e:
            log.error(f"❌ {e.message}：{email}")
            return False

        log.info(f"✅ 账号 {user.id} 角色已设置为 {role.value}")
        return True


async def list_staff():
    """列出所有教师与管理员"""

    async with AsyncSessionLocal() as db:
        stmt = select(User).where(User.role != UserRole.STUDENT).order_by(User.role, User.name)
        result = await db.execute(stmt)
        users = result.scalars().all()

        if not users:
            log.info("暂无教师或管理员账号")
            return

        log.info(f"\n教师/管理员列表（共 {len(users)} 人）：")
        log.info("-" * 70)
        log.info(f"{'ID':<6} {'邮箱':<32} {'角色':<8} {'状态':<8}")
        log.info("-" * 70)

        for user in users:
            status = "已封禁" if user.is_blocked else "正常"
            log.info(f"{user.id:<6} {user.email:<32} {user.role.value:<8} {status:<8}")


def print_usage():
    """打印使用说明"""
    print("""
账号角色设置脚本
==========================================

用法：
  python backend/set_role.py <邮箱> <角色>
  python backend/set_role.py --list

参数：
  邮箱      必填，已注册账号的邮箱
  角色      必填，student / teacher / admin

选项：
  --list    列出所有教师与管理员
==========================================
    """)


async def main():
    """主函数"""
    setup_logging()

    if len(sys.argv) < 2:
        print_usage()
        return

    if sys.argv[1] == "--list":
        await list_staff()
        return

    if len(sys.argv) < 3:
        print_usage()
        return

    try:
        role = UserRole(sys.argv[2].lower())
    except ValueError:
        log.error("❌ 角色必须是 student / teacher / admin")
        return

    await set_role(sys.argv[1], role)


if __name__ == "__main__":
    asyncio.run(main())
