from __future__ import annotations

from enum import Enum
from typing import Literal

from app.models.paper import InvalidStatusTransition

Recommendation = Literal["accept", "minor_revision", "major_revision", "reject"]

SCORE_FIELDS = ("overall_score", "technical_quality", "novelty", "clarity", "significance")


class ReviewStatus(str, Enum):
    """审稿任务状态：assigned -> in_progress | declined；in_progress -> completed"""

    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DECLINED = "declined"

    @classmethod
    def allowed_next(cls, current: str) -> set[str]:
        c = (current or "").strip().lower()
        if c == cls.ASSIGNED.value:
            return {cls.IN_PROGRESS.value, cls.DECLINED.value}
        if c == cls.IN_PROGRESS.value:
            return {cls.COMPLETED.value}
        # completed / declined 为终态
        return set()


def ensure_review_transition(current: str | None, target: str) -> str:
    if target not in ReviewStatus.allowed_next(current or ""):
        raise InvalidStatusTransition("review", current, target)
    return target
