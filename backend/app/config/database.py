"""
数据库连接配置
---------------------------------
功能：
- 创建异步引擎：默认 MySQL（aiomysql），DATABASE_URL 可整体覆盖（测试使用 SQLite）
- 提供会话工厂与路由依赖 get_db

使用：
- 路由中：db: AsyncSession = Depends(get_db)
- 脚本中：async with AsyncSessionLocal() as db: ...
"""

import os

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

# 导入 settings 以确保 .env 已加载
from . import settings

DB_HOST = os.getenv("DB_HOST", "127.0.0.1")
DB_PORT = os.getenv("DB_PORT", "3306")
DB_USER = os.getenv("DB_USER", "feedback")
DB_PASSWORD = os.getenv("DB_PASSWORD", "")
DB_NAME = os.getenv("DB_NAME", "feedback")

DATABASE_URL = os.getenv("DATABASE_URL") or (
    f"mysql+aiomysql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}?charset=utf8mb4"
)


def _engine_options(url: str) -> dict:
    """MySQL 需要连接池预检与回收；SQLite 使用驱动默认连接池"""
    options = {"echo": settings.DB_ECHO}
    if url.startswith("mysql"):
        options.update(pool_pre_ping=True, pool_recycle=3600)
    return options


engine = create_async_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

AsyncSessionLocal = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db():
    """每个请求一个会话，请求结束时关闭"""
    async with AsyncSessionLocal() as session:
        yield session
