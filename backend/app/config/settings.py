"""
后端基础配置（含 .env 自动加载）
---------------------------------
功能：
- 定义上传目录（feedback/profiles）并在模块加载时确保目录存在。
- 定义允许的前端跨域源（默认 vite 开发地址）与重置密码链接使用的前端地址。
- 定义 JWT 认证配置与 Cookie 行为。
- 定义反馈图片限制（数量、大小、扩展名）。
- 定义找回密码邮件（SMTP）配置。

使用说明：
- 生产环境请设置 `JWT_SECRET_KEY` 与 `ENV=production`（启用 secure cookie）；
- 如需把上传文件放到其它磁盘，可设置 `UPLOAD_DIR`；
- SMTP 相关变量未设置时，找回密码接口会返回 500。
"""

from pathlib import Path
import os
from dotenv import find_dotenv, load_dotenv


# 注意：settings.py 位于 project_root/backend/app/config/
# 因此项目根目录应为 `parents[3]`
PROJECT_ROOT = Path(__file__).resolve().parents[3]
BACKEND_DIR = PROJECT_ROOT / "backend"

# 自动加载项目根目录 .env（若存在）。
# 注意：`override=False`，即环境变量已存在时不被 .env 覆盖，方便在生产环境直接通过系统环境变量注入。
_found = find_dotenv(filename=".env", usecwd=True)
if _found:
    load_dotenv(_found, override=False)
else:
    load_dotenv(str(PROJECT_ROOT / ".env"), override=False)

ENV = os.getenv("ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
# 输出 SQL 语句（调试用）
DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"

UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", BACKEND_DIR / "uploads")).expanduser().resolve()
FEEDBACK_UPLOAD_DIR = UPLOAD_DIR / "feedback"
PROFILE_UPLOAD_DIR = UPLOAD_DIR / "profiles"

# 确保目录存在
FEEDBACK_UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
PROFILE_UPLOAD_DIR.mkdir(parents=True, exist_ok=True)

# 允许跨域的前端地址
_origins_csv = os.getenv("FRONTEND_ORIGINS", "").strip()
if _origins_csv:
    FRONTEND_ORIGINS = [o.strip() for o in _origins_csv.split(",") if o.strip()]
else:
    FRONTEND_ORIGINS = [
        os.getenv("FRONTEND_ORIGIN", "http://localhost:5173"),
    ]

# 重置密码邮件中的链接前缀
FRONTEND_URL = os.getenv("FRONTEND_URL", FRONTEND_ORIGINS[0]).rstrip("/")

# --- JWT 认证配置 ---
# JWT 密钥：用于签名和验证 Token，生产环境必须修改为强密钥
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "your-secret-key-please-change-in-production")
# JWT 算法
JWT_ALGORITHM = "HS256"
# Token 过期时间（分钟），默认 30 天
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", 60 * 24 * 30))

# 登录态 Cookie（前端 withCredentials 时优先读取）
AUTH_COOKIE_NAME = "jwt"
AUTH_COOKIE_SECURE = ENV == "production"

# --- 反馈图片 ---
MAX_FEEDBACK_IMAGES = int(os.getenv("MAX_FEEDBACK_IMAGES", 3))
MAX_IMAGE_BYTES = int(os.getenv("MAX_IMAGE_BYTES", 5 * 1024 * 1024))  # 单张 5MB
ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "jfif", "webp"}

# --- 找回密码 ---
RESET_TOKEN_EXPIRE_MINUTES = int(os.getenv("RESET_TOKEN_EXPIRE_MINUTES", 15))

# --- SMTP 邮件配置 ---
SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", 587))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL", SMTP_USER)
