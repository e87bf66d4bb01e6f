"""
反馈生命周期（有限状态机）
---------------------------------
功能：
- TRANSITIONS 显式列出每个动作允许的起始状态与结果状态
- apply_transition() 校验并返回新状态，取代对 status 字段的随意赋值

状态：Draft → Pending →（In Progress）→ Responded → Resolved
- create_draft / create_submit：新建记录（起始状态为 None）
- update_draft：草稿保持 Draft
- submit_draft：Draft → Pending，单向不可逆
- reply：任一已发布状态 → Responded（重复回复覆盖上一次）
- set_status：任一已发布状态 → 任一可设置状态（管理员/教师覆盖，Draft 不可设置）
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from ..models.feedback import FeedbackStatus
from ..utils.errors import InvalidInputError, NotFoundError

PUBLISHED_STATUSES: FrozenSet[FeedbackStatus] = frozenset({
    FeedbackStatus.PENDING,
    FeedbackStatus.IN_PROGRESS,
    FeedbackStatus.RESPONDED,
    FeedbackStatus.RESOLVED,
})

# 外部可设置的状态（也是列表接口可筛选的状态）
SETTABLE_STATUSES: FrozenSet[FeedbackStatus] = PUBLISHED_STATUSES


@dataclass(frozen=True)
class Transition:
    sources: FrozenSet[Optional[FeedbackStatus]]
    target: Optional[FeedbackStatus]  # None 表示结果由调用方指定（set_status）


TRANSITIONS: Dict[str, Transition] = {
    "create_draft": Transition(frozenset({None}), FeedbackStatus.DRAFT),
    "create_submit": Transition(frozenset({None}), FeedbackStatus.PENDING),
    "update_draft": Transition(frozenset({FeedbackStatus.DRAFT}), FeedbackStatus.DRAFT),
    "submit_draft": Transition(frozenset({FeedbackStatus.DRAFT}), FeedbackStatus.PENDING),
    "reply": Transition(PUBLISHED_STATUSES, FeedbackStatus.RESPONDED),
    "set_status": Transition(PUBLISHED_STATUSES, None),
}


def parse_settable_status(value: str) -> FeedbackStatus:
    """
    将外部传入的状态字符串解析为可设置的状态

    Raises:
        InvalidInputError: 非法值或 Draft
    """
    try:
        status = FeedbackStatus(value)
    except ValueError:
        status = None
    if status not in SETTABLE_STATUSES:
        allowed = ", ".join(s.value for s in FeedbackStatus if s in SETTABLE_STATUSES)
        raise InvalidInputError(f"Invalid status '{value}', expected one of: {allowed}")
    return status


def apply_transition(
    action: str,
    current: Optional[FeedbackStatus],
    target: Optional[FeedbackStatus] = None,
) -> FeedbackStatus:
    """
    校验状态迁移并返回新状态

    Args:
        action: TRANSITIONS 中的动作名
        current: 当前对外状态（草稿为 Draft；新建记录为 None）
        target: set_status 的目标状态

    Returns:
        迁移后的状态

    Raises:
        NotFoundError: 当前状态不允许该动作（例如对草稿回复、重复提交草稿），
            与“记录不存在”不作区分
        InvalidInputError: set_status 的目标状态不可设置
    """
    transition = TRANSITIONS[action]
    if current not in transition.sources:
        raise NotFoundError("Feedback not found")

    if transition.target is not None:
        return transition.target

    if target not in SETTABLE_STATUSES:
        raise InvalidInputError(f"Status '{getattr(target, 'value', target)}' cannot be set")
    return target
