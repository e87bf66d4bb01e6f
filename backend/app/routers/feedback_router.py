"""
反馈路由
---------------------------------
功能：
- 学生：提交反馈（可带图片）、保存/更新/提交草稿、删除、查看自己的反馈与草稿
- 教师：查看收件箱、回复
- 管理员/教师：查看全部反馈（筛选）、修改状态

端点：
- POST /api/feedback/submit - 直接提交（JSON）
- POST /api/feedback/submit-image - 直接提交并附带图片（multipart，最多3张）
- GET /api/feedback/my-feedbacks - 我的反馈
- GET /api/feedback/drafts - 我的草稿
- POST /api/feedback/save-draft - 新建草稿
- PUT /api/feedback/save-draft/{feedback_id} - 更新草稿
- PUT /api/feedback/submit-draft/{feedback_id} - 提交草稿
- DELETE /api/feedback/delete/{feedback_id} - 删除
- GET /api/feedback/teacher - 教师收件箱
- PUT /api/feedback/respond/{feedback_id} - 回复
- GET /api/feedback/all - 全部反馈（subject/status/student_name 筛选）
- PUT /api/feedback/status/{feedback_id} - 修改状态
"""

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from ..config.database import get_db
from ..models.feedback import FeedbackCategory
from ..models.feedback_schema import (
    FeedbackReplyRequest,
    FeedbackStatusRequest,
    FeedbackSubmitRequest,
    serialize_feedback,
)
from ..models.response_schema import ApiResponse
from ..models.user import User
from ..services.auth_service import require_gate
from ..services.feedback_service import feedback_service
from ..utils.errors import InternalError
from ..utils.logger import log

router = APIRouter(prefix="/api/feedback", tags=["反馈"])

student_only = require_gate("student_only")
teacher_only = require_gate("teacher_only")
admin_or_teacher = require_gate("admin_or_teacher")


async def feedback_form(
    subject: Optional[str] = Form(None),
    teacher: Optional[int] = Form(None),
    feedback_text: Optional[str] = Form(None),
    rating: Optional[int] = Form(None),
    is_anonymous: bool = Form(False),
    category: FeedbackCategory = Form(FeedbackCategory.OTHER),
) -> dict:
    """multipart 表单中的反馈字段"""
    return {
        "subject": subject,
        "teacher": teacher,
        "feedback_text": feedback_text,
        "rating": rating,
        "is_anonymous": is_anonymous,
        "category": category,
    }


def _serialize_all(feedbacks, viewer: User) -> list:
    return [serialize_feedback(f, viewer) for f in feedbacks]


# ============================================================================
# 学生
# ============================================================================

@router.post("/submit", response_model=ApiResponse, status_code=201)
async def submit_feedback(
    req: FeedbackSubmitRequest,
    current_user: User = Depends(student_only),
    db: AsyncSession = Depends(get_db)
):
    """
    直接提交反馈

    请求体：
    - subject / teacher / feedback_text / rating（1-5）：必填
    - is_anonymous / category：可选

    返回：
    - feedback_id
    """
    feedback = await feedback_service.create_feedback(current_user, req.model_dump(), db)
    return ApiResponse.ok(
        {"feedback_id": feedback.id},
        message="Feedback submitted successfully.",
        code=201
    )


@router.post("/submit-image", response_model=ApiResponse, status_code=201)
async def submit_feedback_with_images(
    fields: dict = Depends(feedback_form),
    images: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(student_only),
    db: AsyncSession = Depends(get_db)
):
    """
    提交反馈并附带图片

    参数：
    - 与 /submit 相同的表单字段
    - images: 图片（可选，最多3张）
    """
    try:
        feedback = await feedback_service.create_feedback(current_user, fields, db, images=images)
        return ApiResponse.ok(
            {"feedback_id": feedback.id},
            message="Feedback submitted successfully.",
            code=201
        )
    except HTTPException:
        raise
    except Exception as e:
        log.error(f"提交反馈（含图片）失败: {e}")
        raise InternalError("Error submitting feedback") from e


@router.get("/my-feedbacks", response_model=ApiResponse)
async def get_my_feedbacks(
    current_user: User = Depends(student_only),
    db: AsyncSession = Depends(get_db)
):
    """我的已提交反馈（不含草稿），最新在前"""
    feedbacks = await feedback_service.list_my_feedbacks(current_user, db)
    return ApiResponse.ok(_serialize_all(feedbacks, current_user))


@router.get("/drafts", response_model=ApiResponse)
async def get_my_drafts(
    current_user: User = Depends(student_only),
    db: AsyncSession = Depends(get_db)
):
    """我的草稿（联表教师与作者信息），最新在前"""
    drafts = await feedback_service.list_my_drafts(current_user, db)
    return ApiResponse.ok(_serialize_all(drafts, current_user))


@router.post("/save-draft", response_model=ApiResponse)
async def create_draft(
    fields: dict = Depends(feedback_form),
    images: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(student_only),
    db: AsyncSession = Depends(get_db)
):
    """新建草稿（所有字段可选）"""
    try:
        feedback = await feedback_service.create_feedback(current_user, fields, db, images=images, draft=True)
        return ApiResponse.ok(serialize_feedback(feedback, current_user), message="Feedback saved as draft")
    except HTTPException:
        raise
    except Exception as e:
        log.error(f"保存草稿失败: {e}")
        raise InternalError("Error saving draft") from e


@router.put("/save-draft/{feedback_id}", response_model=ApiResponse)
async def update_draft(
    feedback_id: int,
    fields: dict = Depends(feedback_form),
    images: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(student_only),
    db: AsyncSession = Depends(get_db)
):
    """更新自己的草稿；草稿不存在或不属于自己：404"""
    try:
        feedback = await feedback_service.update_draft(current_user, feedback_id, fields, db, images=images)
        return ApiResponse.ok(serialize_feedback(feedback, current_user), message="Feedback saved as draft")
    except HTTPException:
        raise
    except Exception as e:
        log.error(f"更新草稿失败: {e}")
        raise InternalError("Error saving draft") from e


@router.put("/submit-draft/{feedback_id}", response_model=ApiResponse)
async def submit_draft(
    feedback_id: int,
    current_user: User = Depends(student_only),
    db: AsyncSession = Depends(get_db)
):
    """提交草稿：状态变为 Pending；已提交过的记录返回 404"""
    feedback = await feedback_service.submit_draft(current_user, feedback_id, db)
    return ApiResponse.ok(serialize_feedback(feedback, current_user), message="Draft submitted successfully")


@router.delete("/delete/{feedback_id}", response_model=ApiResponse)
async def delete_feedback(
    feedback_id: int,
    current_user: User = Depends(student_only),
    db: AsyncSession = Depends(get_db)
):
    """删除自己的反馈或草稿"""
    await feedback_service.delete_feedback(current_user, feedback_id, db)
    return ApiResponse.ok(message="Feedback deleted successfully")


# ============================================================================
# 教师
# ============================================================================

@router.get("/teacher", response_model=ApiResponse)
async def get_teacher_feedbacks(
    current_user: User = Depends(teacher_only),
    db: AsyncSession = Depends(get_db)
):
    """教师收件箱：发给自己的已发布反馈，最新在前"""
    feedbacks = await feedback_service.list_teacher_inbox(current_user, db)
    return ApiResponse.ok(_serialize_all(feedbacks, current_user))


@router.put("/respond/{feedback_id}", response_model=ApiResponse)
async def respond_to_feedback(
    feedback_id: int,
    req: FeedbackReplyRequest,
    current_user: User = Depends(teacher_only),
    db: AsyncSession = Depends(get_db)
):
    """
    回复反馈

    请求体：
    - reply: 回复内容（去除首尾空白后不能为空）
    """
    feedback = await feedback_service.reply(current_user, feedback_id, req.reply, db)
    return ApiResponse.ok(serialize_feedback(feedback, current_user))


# ============================================================================
# 管理员 / 教师
# ============================================================================

@router.get("/all", response_model=ApiResponse)
async def get_all_feedbacks(
    subject: Optional[str] = None,
    student_name: Optional[str] = None,
    status: Optional[str] = None,
    current_user: User = Depends(admin_or_teacher),
    db: AsyncSession = Depends(get_db)
):
    """
    全部已发布反馈

    参数：
    - subject: 科目
    - student_name: 作者姓名（包含匹配，匿名反馈不参与）
    - status: 状态（Pending/In Progress/Responded/Resolved）
    """
    feedbacks = await feedback_service.list_all(
        db, subject=subject, status=status, student_name=student_name
    )
    return ApiResponse.ok(_serialize_all(feedbacks, current_user))


@router.put("/status/{feedback_id}", response_model=ApiResponse)
async def update_feedback_status(
    feedback_id: int,
    req: FeedbackStatusRequest,
    current_user: User = Depends(admin_or_teacher),
    db: AsyncSession = Depends(get_db)
):
    """修改反馈状态（Draft 不可设置）"""
    feedback = await feedback_service.set_status(current_user, feedback_id, req.status, db)
    return ApiResponse.ok(serialize_feedback(feedback, current_user))
