"""
错误分类
---------------------------------
功能：
- 定义接口层使用的五类错误，均为 HTTPException 子类
- main.py 中的异常处理器统一渲染为 {"code", "message", "data": null}

分类：
- InvalidInputError   400 缺失/非法字段
- UnauthenticatedError 401 缺少/无效/过期凭证
- ForbiddenError      403 角色不符或账号被封禁
- NotFoundError       404 记录不存在或不属于调用者（两者不区分）
- InternalError       500 持久化/存储异常
"""

from fastapi import HTTPException, status


class AppError(HTTPException):
    """业务错误基类"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message)

    @property
    def message(self) -> str:
        return self.detail


class InvalidInputError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class UnauthenticatedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authorized"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class InternalError(AppError):
    pass
