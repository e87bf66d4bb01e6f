"""
日志工具
---------------------------------
功能：
- setup_logging(): 在应用启动时配置一次根日志（级别来自 LOG_LEVEL）
- log: 全局共享的业务日志器

使用：
- from ..utils.logger import log
- log.info(f"用户 {user.id} 提交反馈：{feedback.id}")
"""

import logging
import sys

from ..config.settings import LOG_LEVEL

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

log = logging.getLogger("feedback_portal")

_configured = False


def setup_logging(level: str = LOG_LEVEL) -> None:
    """配置根日志（重复调用无副作用）"""
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(level.upper())

    # uvicorn 访问日志保持原样，降低 SQLAlchemy 噪音
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True
