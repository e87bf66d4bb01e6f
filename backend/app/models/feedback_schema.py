"""
反馈相关的 Pydantic Schema
---------------------------------
功能：
- 定义反馈提交、回复、状态修改的请求数据结构
- 定义反馈的序列化（联表后的作者/教师信息、匿名处理）

使用：
- FeedbackSubmitRequest: 直接提交（JSON）
- FeedbackReplyRequest / FeedbackStatusRequest: 教师/管理员操作
- serialize_feedback(): 将 ORM 对象转为响应字典
"""

from pydantic import BaseModel, Field
from typing import Optional

from .feedback import Feedback, FeedbackCategory
from .user import User


class FeedbackSubmitRequest(BaseModel):
    """直接提交反馈请求（必填项在服务层统一校验，以便一次列出所有缺失字段）"""
    subject: Optional[str] = None
    teacher: Optional[int] = Field(None, description="目标教师ID")
    feedback_text: Optional[str] = None
    rating: Optional[int] = None
    is_anonymous: bool = False
    category: FeedbackCategory = FeedbackCategory.OTHER

    class Config:
        json_schema_extra = {
            "example": {
                "subject": "Algorithms",
                "teacher": 2,
                "feedback_text": "Great pace",
                "rating": 5,
                "is_anonymous": False,
                "category": "Teaching Style"
            }
        }


class FeedbackReplyRequest(BaseModel):
    """回复反馈请求"""
    reply: str = ""


class FeedbackStatusRequest(BaseModel):
    """修改状态请求"""
    status: str


def _user_brief(user: Optional[User]) -> Optional[dict]:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email}


def serialize_feedback(feedback: Feedback, viewer: Optional[User] = None) -> dict:
    """
    序列化反馈记录

    Args:
        feedback: 反馈对象（student/teacher 已联表加载）
        viewer: 当前调用者；匿名反馈仅对作者本人展示作者信息

    Returns:
        响应字典
    """
    show_author = not feedback.is_anonymous or (viewer is not None and viewer.id == feedback.student_id)
    return {
        "id": feedback.id,
        "student": _user_brief(feedback.student) if show_author else None,
        "teacher": _user_brief(feedback.teacher),
        "subject": feedback.subject,
        "feedback_text": feedback.feedback_text,
        "rating": feedback.rating,
        "images": feedback.image_list,
        "is_anonymous": feedback.is_anonymous,
        "category": feedback.category.value,
        "status": feedback.effective_status.value,
        "is_draft": feedback.is_draft,
        "reply": feedback.reply or "",
        "responded_at": feedback.responded_at.isoformat() if feedback.responded_at else None,
        "created_at": feedback.created_at.isoformat() if feedback.created_at else None,
    }
