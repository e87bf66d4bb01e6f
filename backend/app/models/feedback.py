"""
学生反馈数据模型
---------------------------------
功能：
- 定义 Feedback 表结构，用于存储学生对教师的评价
- 字段包括：作者、目标教师、科目、正文、评分、图片、匿名、分类、状态、草稿标记、回复、时间戳

使用：
- 草稿（is_draft=True）只对作者可见，状态恒为 Draft
- 正式提交后从 Pending 开始，由教师/管理员回复或修改状态
- 图片以 JSON 列表（相对路径）存储，最多 3 张
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from .base import Base
import enum
import json


class FeedbackStatus(str, enum.Enum):
    """反馈状态枚举"""
    DRAFT = "Draft"  # 草稿
    PENDING = "Pending"  # 待处理
    IN_PROGRESS = "In Progress"  # 处理中
    RESPONDED = "Responded"  # 已回复
    RESOLVED = "Resolved"  # 已解决


class FeedbackCategory(str, enum.Enum):
    """反馈分类枚举"""
    TEACHING_STYLE = "Teaching Style"
    BEHAVIOR = "Behavior"
    COURSE_CONTENT = "Course Content"
    GRADING = "Grading"
    OTHER = "Other"


def _enum_values(enum_cls):
    return [m.value for m in enum_cls]


class Feedback(Base):
    """学生反馈模型"""
    __tablename__ = "feedbacks"

    id = Column(Integer, primary_key=True, index=True, comment="反馈ID")
    student_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False, comment="作者ID"
    )
    teacher_id = Column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True, comment="目标教师ID"
    )
    subject = Column(String(200), nullable=True, comment="科目")
    feedback_text = Column(Text, nullable=True, comment="反馈正文")
    rating = Column(Integer, nullable=True, comment="评分 1-5（草稿可为空）")
    images = Column(Text, nullable=True, comment="图片路径（JSON格式存储）")
    is_anonymous = Column(Boolean, default=False, nullable=False, comment="是否匿名")
    category = Column(
        Enum(FeedbackCategory, values_callable=_enum_values),
        default=FeedbackCategory.OTHER,
        nullable=False,
        comment="分类"
    )
    status = Column(
        Enum(FeedbackStatus, values_callable=_enum_values),
        default=FeedbackStatus.PENDING,
        nullable=False,
        comment="处理状态"
    )
    is_draft = Column(Boolean, default=False, nullable=False, index=True, comment="是否草稿")
    reply = Column(Text, default="", nullable=False, comment="教师/管理员回复")
    responded_at = Column(DateTime, nullable=True, comment="回复时间")
    created_at = Column(DateTime, default=datetime.utcnow, index=True, comment="创建时间")
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, comment="更新时间")

    # 读取时联表（populate）：作者与目标教师
    student = relationship("User", foreign_keys=[student_id], lazy="selectin")
    teacher = relationship("User", foreign_keys=[teacher_id], lazy="selectin")

    def __repr__(self):
        return f"<Feedback(id={self.id}, student={self.student_id}, status={self.status.value})>"

    @property
    def image_list(self) -> list[str]:
        return json.loads(self.images) if self.images else []

    @image_list.setter
    def image_list(self, paths: list[str]) -> None:
        self.images = json.dumps(paths) if paths else None

    @property
    def effective_status(self) -> FeedbackStatus:
        """草稿无论 status 字段为何，对外都视为 Draft"""
        return FeedbackStatus.DRAFT if self.is_draft else self.status
