"""
数据库初始化脚本
---------------------------------
功能：
- 创建 users、feedbacks 表（已存在的表不受影响）
- --reset：先删除全部表再重建（会清空数据）

使用：
python backend/init_db.py
python backend/init_db.py --reset
"""

import asyncio
import sys

from app.config.database import DATABASE_URL, engine
from app.models.base import Base
# 导入模型以注册到 Base.metadata
from app.models.user import User  # noqa: F401
from app.models.feedback import Feedback  # noqa: F401
from app.utils.logger import log, setup_logging


async def init_database(reset: bool = False):
    """创建（或重建）全部数据表"""
    # 日志中不输出账号密码
    log.info(f"连接到：{DATABASE_URL.split('@')[-1]}")

    async with engine.begin() as conn:
        if reset:
            log.warning("⚠️ 删除全部数据表")
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    await engine.dispose()

    log.info(f"✅ 数据表就绪：{', '.join(Base.metadata.tables.keys())}")


if __name__ == "__main__":
    setup_logging()
    asyncio.run(init_database(reset="--reset" in sys.argv[1:]))
