from __future__ import annotations

from enum import Enum
from typing import Literal


class InvalidStatusTransition(ValueError):
    """
    非法状态流转（例如 declined -> completed）。

    service 层统一转换为 409 返回给前端。
    """

    def __init__(self, entity: str, current: str | None, target: str):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"Cannot move {entity} from '{current}' to '{target}'")


class PaperStatus(str, Enum):
    """
    稿件生命周期状态。

    中文注释:
    - 状态流转必须走 allowed_next()，不允许直接 patch 任意字符串。
    - 编辑的显式 override 是唯一绕过状态表的途径（由 role_matrix 授权）。
    """

    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    REVISION_REQUESTED = "revision_requested"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    PUBLISHED = "published"

    @classmethod
    def allowed_next(cls, current: str) -> set[str]:
        """
        - submitted -> under_review / revision_requested / accepted / rejected
        - under_review -> revision_requested / accepted / rejected
        - revision_requested -> submitted (作者修回) / under_review / rejected
        - accepted -> published
        - rejected / published 为终态
        """
        c = (current or "").strip().lower()
        if c == cls.SUBMITTED.value:
            return {
                cls.UNDER_REVIEW.value,
                cls.REVISION_REQUESTED.value,
                cls.ACCEPTED.value,
                cls.REJECTED.value,
            }
        if c == cls.UNDER_REVIEW.value:
            return {cls.REVISION_REQUESTED.value, cls.ACCEPTED.value, cls.REJECTED.value}
        if c == cls.REVISION_REQUESTED.value:
            return {cls.SUBMITTED.value, cls.UNDER_REVIEW.value, cls.REJECTED.value}
        if c == cls.ACCEPTED.value:
            return {cls.PUBLISHED.value}
        return set()


def normalize_status(value: str | None) -> str | None:
    if value is None:
        return None
    v = str(value).strip().lower()
    if not v:
        return None
    try:
        return PaperStatus(v).value
    except ValueError:
        return None


def ensure_paper_transition(current: str | None, target: str) -> str:
    """
    校验稿件状态流转并返回规范化后的目标状态。

    同状态重复设置视为合法（用于仅更换 editor 的场景）。
    """
    norm_target = normalize_status(target)
    if norm_target is None:
        raise InvalidStatusTransition("paper", current, target)
    norm_current = normalize_status(current)
    if norm_current == norm_target:
        return norm_target
    if norm_target not in PaperStatus.allowed_next(norm_current or ""):
        raise InvalidStatusTransition("paper", current, target)
    return norm_target


DecisionValue = Literal["accept", "minor_revision", "major_revision", "reject"]

# 编辑决定 -> 稿件目标状态
DECISION_TARGET_STATUS: dict[str, str] = {
    "accept": PaperStatus.ACCEPTED.value,
    "minor_revision": PaperStatus.REVISION_REQUESTED.value,
    "major_revision": PaperStatus.REVISION_REQUESTED.value,
    "reject": PaperStatus.REJECTED.value,
}
