"""
反馈服务
---------------------------------
功能：
- 学生：直接提交、保存/更新草稿、提交草稿、删除、查看自己的反馈与草稿
- 教师：查看收件箱、回复
- 管理员/教师：查看全部（可筛选）、修改状态

约定：
- 所有状态变化经过 feedback_lifecycle.apply_transition 校验
- “不存在”和“不属于调用者”统一返回 NotFoundError（单次带归属条件的查询）
- 图片两阶段持久化：先落盘，再提交引用；提交失败时删除已落盘文件
"""

from datetime import datetime
from typing import List, Optional

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..models.feedback import Feedback, FeedbackCategory
from ..models.user import User, UserRole
from ..utils.errors import InternalError, InvalidInputError, NotFoundError
from ..utils.file_utils import delete_upload_files, save_images, uploaded_files
from ..utils.logger import log
from .feedback_lifecycle import apply_transition, parse_settable_status

# 直接提交时的必填字段
REQUIRED_SUBMIT_FIELDS = ("subject", "teacher", "feedback_text", "rating")
# 提交草稿时的必填字段（目标教师可以为空）
REQUIRED_DRAFT_SUBMIT_FIELDS = ("subject", "feedback_text", "rating")


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _newest_first(stmt):
    return stmt.order_by(Feedback.created_at.desc(), Feedback.id.desc())


class FeedbackService:
    """反馈服务"""

    # ------------------------------------------------------------------
    # 校验
    # ------------------------------------------------------------------

    @staticmethod
    def check_required_fields(fields: dict, required=REQUIRED_SUBMIT_FIELDS) -> None:
        """发布前检查必填字段，一次列出全部缺失项"""
        missing = [name for name in required if _is_blank(fields.get(name))]
        if missing:
            raise InvalidInputError(f"Missing required fields: {', '.join(missing)}")

    @staticmethod
    def check_rating(rating: Optional[int]) -> None:
        if rating is not None and not 1 <= rating <= 5:
            raise InvalidInputError("Rating must be an integer between 1 and 5")

    @staticmethod
    def check_image_count(images: List[UploadFile]) -> None:
        if len(images) > settings.MAX_FEEDBACK_IMAGES:
            raise InvalidInputError(f"At most {settings.MAX_FEEDBACK_IMAGES} images are allowed")

    @staticmethod
    async def check_teacher(teacher_id: Optional[int], db: AsyncSession) -> None:
        """目标教师必须是已存在的教师账号"""
        if teacher_id is None:
            return
        result = await db.execute(
            select(User.id).where(User.id == teacher_id, User.role == UserRole.TEACHER)
        )
        if result.scalar_one_or_none() is None:
            raise InvalidInputError("Selected teacher does not exist")

    # ------------------------------------------------------------------
    # 查询辅助
    # ------------------------------------------------------------------

    @staticmethod
    async def get_feedback(feedback_id: int, db: AsyncSession, **filters) -> Feedback:
        """
        按 ID（及可选的归属条件）加载反馈，并重新联表作者/教师

        Raises:
            NotFoundError: 不存在或不满足归属条件
        """
        stmt = select(Feedback).where(Feedback.id == feedback_id)
        for column, value in filters.items():
            stmt = stmt.where(getattr(Feedback, column) == value)
        result = await db.execute(stmt.execution_options(populate_existing=True))
        feedback = result.scalar_one_or_none()
        if not feedback:
            raise NotFoundError("Feedback not found")
        return feedback

    @staticmethod
    async def _commit(db: AsyncSession, new_images: List[str], action: str) -> None:
        """提交事务；失败时回滚并补偿删除本次新落盘的图片"""
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            removed = delete_upload_files(new_images)
            log.error(f"{action} 写库失败，已清理 {removed} 张图片: {e}")
            raise InternalError(f"Error during {action}") from e

    @staticmethod
    def _apply_fields(feedback: Feedback, fields: dict) -> None:
        feedback.subject = _clean_text(fields.get("subject"))
        feedback.teacher_id = fields.get("teacher")
        feedback.feedback_text = _clean_text(fields.get("feedback_text"))
        feedback.rating = fields.get("rating")
        feedback.is_anonymous = bool(fields.get("is_anonymous") or False)
        feedback.category = fields.get("category") or FeedbackCategory.OTHER

    # ------------------------------------------------------------------
    # 学生操作
    # ------------------------------------------------------------------

    @staticmethod
    async def create_feedback(
        student: User,
        fields: dict,
        db: AsyncSession,
        images: Optional[List[UploadFile]] = None,
        draft: bool = False,
    ) -> Feedback:
        """
        新建反馈（直接提交或保存为草稿）

        Args:
            student: 作者
            fields: subject/teacher/feedback_text/rating/is_anonymous/category
            db: 数据库会话
            images: 附带图片（最多 3 张）
            draft: True 保存为草稿；False 直接提交（校验必填项）

        Returns:
            已联表的反馈对象
        """
        files = uploaded_files(images)
        if not draft:
            FeedbackService.check_required_fields(fields)
        FeedbackService.check_rating(fields.get("rating"))
        FeedbackService.check_image_count(files)
        await FeedbackService.check_teacher(fields.get("teacher"), db)

        status = apply_transition("create_draft" if draft else "create_submit", None)

        stored = await save_images(files, "feedback")

        feedback = Feedback(student_id=student.id, status=status, is_draft=draft, reply="")
        FeedbackService._apply_fields(feedback, fields)
        feedback.image_list = stored
        db.add(feedback)
        await FeedbackService._commit(db, stored, "saving draft" if draft else "submitting feedback")

        log.info(f"用户 {student.id} {'保存草稿' if draft else '提交反馈'}：{feedback.id}，图片 {len(stored)} 张")
        return await FeedbackService.get_feedback(feedback.id, db)

    @staticmethod
    async def update_draft(
        student: User,
        feedback_id: int,
        fields: dict,
        db: AsyncSession,
        images: Optional[List[UploadFile]] = None,
    ) -> Feedback:
        """
        更新自己的草稿（字段整体替换，ID 不变）

        未上传新图片时保留原图片；上传新图片则替换，并在提交成功后删除旧文件。
        """
        files = uploaded_files(images)
        FeedbackService.check_rating(fields.get("rating"))
        FeedbackService.check_image_count(files)

        feedback = await FeedbackService.get_feedback(feedback_id, db, student_id=student.id)
        feedback.status = apply_transition("update_draft", feedback.effective_status)
        await FeedbackService.check_teacher(fields.get("teacher"), db)

        stored = await save_images(files, "feedback")
        replaced: List[str] = []

        FeedbackService._apply_fields(feedback, fields)
        if stored:
            replaced = feedback.image_list
            feedback.image_list = stored
        await FeedbackService._commit(db, stored, "saving draft")

        if replaced:
            delete_upload_files(replaced)
        log.info(f"用户 {student.id} 更新草稿：{feedback.id}")
        return await FeedbackService.get_feedback(feedback.id, db)

    @staticmethod
    async def submit_draft(student: User, feedback_id: int, db: AsyncSession) -> Feedback:
        """提交草稿：Draft → Pending；已提交的记录再次提交返回 NotFoundError

        草稿缺少科目、正文或评分时返回 InvalidInputError；未选择教师的草稿允许提交。
        """
        feedback = await FeedbackService.get_feedback(feedback_id, db, student_id=student.id)
        status = apply_transition("submit_draft", feedback.effective_status)
        FeedbackService.check_required_fields(
            {
                "subject": feedback.subject,
                "feedback_text": feedback.feedback_text,
                "rating": feedback.rating,
            },
            required=REQUIRED_DRAFT_SUBMIT_FIELDS,
        )
        feedback.status = status
        feedback.is_draft = False
        await FeedbackService._commit(db, [], "submitting draft")

        log.info(f"用户 {student.id} 提交草稿：{feedback.id}")
        return await FeedbackService.get_feedback(feedback.id, db)

    @staticmethod
    async def delete_feedback(student: User, feedback_id: int, db: AsyncSession) -> None:
        """删除自己的反馈或草稿，并清理图片文件"""
        feedback = await FeedbackService.get_feedback(feedback_id, db, student_id=student.id)
        images = feedback.image_list

        await db.delete(feedback)
        await FeedbackService._commit(db, [], "deleting feedback")

        removed = delete_upload_files(images)
        log.info(f"用户 {student.id} 删除反馈：{feedback_id}，清理文件 {removed} 个")

    @staticmethod
    async def list_my_feedbacks(student: User, db: AsyncSession) -> List[Feedback]:
        stmt = select(Feedback).where(Feedback.student_id == student.id, Feedback.is_draft.is_(False))
        result = await db.execute(_newest_first(stmt))
        return list(result.scalars().all())

    @staticmethod
    async def list_my_drafts(student: User, db: AsyncSession) -> List[Feedback]:
        stmt = select(Feedback).where(Feedback.student_id == student.id, Feedback.is_draft.is_(True))
        result = await db.execute(_newest_first(stmt))
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # 教师 / 管理员操作
    # ------------------------------------------------------------------

    @staticmethod
    async def list_teacher_inbox(teacher: User, db: AsyncSession) -> List[Feedback]:
        stmt = select(Feedback).where(Feedback.teacher_id == teacher.id, Feedback.is_draft.is_(False))
        result = await db.execute(_newest_first(stmt))
        return list(result.scalars().all())

    @staticmethod
    async def list_all(
        db: AsyncSession,
        subject: Optional[str] = None,
        status: Optional[str] = None,
        student_name: Optional[str] = None,
    ) -> List[Feedback]:
        """
        全部已发布反馈（管理员/教师）

        Args:
            subject: 科目精确匹配
            status: 状态筛选（Draft 被忽略，其它非法值报错）
            student_name: 作者姓名包含匹配（不区分大小写），匿名反馈不参与匹配
        """
        stmt = select(Feedback).where(Feedback.is_draft.is_(False))
        if subject:
            stmt = stmt.where(Feedback.subject == subject)
        if status and status != "Draft":
            stmt = stmt.where(Feedback.status == parse_settable_status(status))

        result = await db.execute(_newest_first(stmt))
        feedbacks = list(result.scalars().all())

        if student_name:
            term = student_name.lower()
            feedbacks = [
                f for f in feedbacks
                if not f.is_anonymous and f.student is not None and term in f.student.name.lower()
            ]
        return feedbacks

    @staticmethod
    async def reply(actor: User, feedback_id: int, reply: Optional[str], db: AsyncSession) -> Feedback:
        """回复反馈：设置回复与回复时间，状态变为 Responded（重复回复覆盖）"""
        text = (reply or "").strip()
        if not text:
            raise InvalidInputError("Please provide a valid reply message")

        feedback = await FeedbackService.get_feedback(feedback_id, db)
        feedback.status = apply_transition("reply", feedback.effective_status)
        feedback.reply = text
        feedback.responded_at = datetime.utcnow()
        await FeedbackService._commit(db, [], "responding to feedback")

        log.info(f"用户 {actor.id}（{actor.role.value}）回复反馈：{feedback.id}")
        return await FeedbackService.get_feedback(feedback.id, db)

    @staticmethod
    async def set_status(actor: User, feedback_id: int, status: str, db: AsyncSession) -> Feedback:
        """修改已发布反馈的状态（不改动回复）"""
        target = parse_settable_status(status)
        feedback = await FeedbackService.get_feedback(feedback_id, db)
        feedback.status = apply_transition("set_status", feedback.effective_status, target)
        await FeedbackService._commit(db, [], "updating feedback status")

        log.info(f"用户 {actor.id}（{actor.role.value}）将反馈 {feedback.id} 状态改为 {target.value}")
        return await FeedbackService.get_feedback(feedback.id, db)


# 单例服务
feedback_service = FeedbackService()
