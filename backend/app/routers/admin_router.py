"""
教师管理路由
---------------------------------
功能：
- GET /api/admin/teachers - 教师列表（管理员看到完整信息，教师看到精简信息）
- PUT /api/admin/teachers/{teacher_id} - 更新教师（姓名/邮箱/封禁）
- DELETE /api/admin/teachers/{teacher_id} - 删除教师（仅管理员）

使用：
- 在 main.py 中通过 app.include_router 挂载
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.database import get_db
from ..models.response_schema import ApiResponse
from ..models.user import User
from ..models.user_schema import AccountUpdateRequest, account_summary, teacher_view_projection
from ..services.account_service import account_service
from ..services.auth_service import require_gate


router = APIRouter(prefix="/api/admin", tags=["后台"])


@router.get("/teachers", response_model=ApiResponse)
async def get_teachers(
    current_user: User = Depends(require_gate("admin_or_teacher")),
    db: AsyncSession = Depends(get_db)
):
    """
    教师列表

    返回：
    - 管理员：完整的非敏感信息
    - 教师：仅 id、name、email、is_blocked
    """
    teachers = await account_service.list_teachers(db)
    project = account_summary if current_user.is_admin else teacher_view_projection
    return ApiResponse.ok([project(t) for t in teachers])


@router.put("/teachers/{teacher_id}", response_model=ApiResponse)
async def update_teacher(
    teacher_id: int,
    req: AccountUpdateRequest,
    current_user: User = Depends(require_gate("admin_or_teacher")),
    db: AsyncSession = Depends(get_db)
):
    """
    更新教师

    请求体：
    - name / email / is_blocked（均可选）

    目标不存在或不是教师：404
    """
    teacher = await account_service.update_teacher(current_user, teacher_id, req, db)
    return ApiResponse.ok(account_summary(teacher))


@router.delete("/teachers/{teacher_id}", response_model=ApiResponse)
async def delete_teacher(
    teacher_id: int,
    current_user: User = Depends(require_gate("strict_admin")),
    db: AsyncSession = Depends(get_db)
):
    """删除教师（仅管理员）；目标不存在或不是教师：404"""
    await account_service.delete_teacher(current_user, teacher_id, db)
    return ApiResponse.ok(message="Teacher removed")
