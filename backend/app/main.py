"""
应用入口
---------------------------------
功能：
- 创建 FastAPI 应用，配置日志与跨域
- 挂载认证、反馈、后台路由与 /uploads 静态目录
- 统一错误响应：{"code", "message", "data": null}

运行：
uvicorn app.main:app --reload --app-dir backend
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config.settings import FRONTEND_ORIGINS, UPLOAD_DIR
from .models.response_schema import ApiResponse
from .routers import admin_router, auth_router, feedback_router
from .utils.logger import setup_logging

setup_logging()

app = FastAPI(title="Student Feedback Portal API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["Authorization", "Set-Cookie"],
)

app.include_router(auth_router.router)
app.include_router(feedback_router.router)
app.include_router(admin_router.router)

UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(UPLOAD_DIR)), name="uploads")


# ============================================================================
# 异常处理
# ============================================================================

def _error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ApiResponse.error(status_code, message).model_dump(),
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """请求体/参数校验失败统一返回 400，并列出出错字段"""
    problems = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "form"))
        problems.append(f"{field or 'request'}: {err.get('msg')}")
    return _error_response(400, "Invalid input: " + "; ".join(problems))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """未处理异常只渲染统一结构；异常随后由 ServerErrorMiddleware 继续抛出并由服务器记录堆栈"""
    return _error_response(500, "Internal server error")


@app.get("/")
async def read_root():
    return {"message": "Student feedback API running"}
