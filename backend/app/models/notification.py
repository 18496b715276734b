from typing import Literal, Optional

from pydantic import BaseModel, Field


NotificationType = Literal[
    "paper_submitted",
    "review_assigned",
    "review_completed",
    "decision_made",
    "revision_requested",
    "paper_accepted",
    "paper_published",
]


class NotificationCreate(BaseModel):
    """
    创建通知的输入结构（服务端内部使用）
    """

    user_id: str
    type: NotificationType
    title: str = Field(..., max_length=255)
    message: str = Field(..., max_length=2000)
    paper_id: Optional[str] = None
    review_id: Optional[str] = None
