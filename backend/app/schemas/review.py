from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.reviews import Recommendation


class ReviewAssignment(BaseModel):
    paper_id: str = Field(..., min_length=1)
    reviewer_id: str = Field(..., min_length=1)
    due_date: datetime


class ReviewAssignmentResponse(BaseModel):
    accept: bool


class ReviewSubmission(BaseModel):
    overall_score: int = Field(..., ge=1, le=5)
    technical_quality: int = Field(..., ge=1, le=5)
    novelty: int = Field(..., ge=1, le=5)
    clarity: int = Field(..., ge=1, le=5)
    significance: int = Field(..., ge=1, le=5)
    comments: str = Field(..., min_length=1, max_length=20000)
    # 中文注释: 保密意见仅编辑可见，不会出现在作者视图中
    confidential_comments: Optional[str] = Field(None, max_length=20000)
    recommendation: Recommendation
