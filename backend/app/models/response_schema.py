"""
统一响应结构
---------------------------------
功能：
- 所有接口返回 {"code", "message", "data"} 三段式结构
- 错误响应（异常处理器）同样使用该结构，data 为 null

使用：
- return ApiResponse.ok(data)
- return ApiResponse.ok(data, message="Feedback submitted successfully", code=201)
"""

from typing import Any, Optional
from pydantic import BaseModel


class ApiResponse(BaseModel):
    """通用响应"""
    code: int = 200
    message: str = "success"
    data: Optional[Any] = None

    @classmethod
    def ok(cls, data: Any = None, message: str = "success", code: int = 200) -> "ApiResponse":
        return cls(code=code, message=message, data=data)

    @classmethod
    def error(cls, code: int, message: str) -> "ApiResponse":
        return cls(code=code, message=message, data=None)
