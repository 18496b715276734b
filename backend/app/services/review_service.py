from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from postgrest.exceptions import APIError

from app.core.role_matrix import can_perform_action
from app.core.roles import ensure_action
from app.lib.api_client import supabase_admin
from app.models.paper import InvalidStatusTransition
from app.models.reviews import SCORE_FIELDS, ReviewStatus, ensure_review_transition
from app.schemas.review import ReviewAssignment, ReviewSubmission
from app.services.notification_dispatcher import NotificationDispatcher, WorkflowEvent
from app.services.paper_service import PaperService
from app.services.profile_service import ProfileService

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _rows(resp: Any) -> List[Dict[str, Any]]:
    return getattr(resp, "data", None) or []


# Postgres unique_violation（reviews_active_assignment_key）
UNIQUE_VIOLATION = "23505"


def _already_assigned() -> HTTPException:
    return HTTPException(status_code=409, detail="Reviewer is already assigned to this paper")


class ReviewService:
    """
    审稿任务：指派 / 接受或拒绝 / 提交评审 / 我的审稿列表

    中文注释:
    - 指派与审稿人列表需要 editor/admin（role_matrix）。
    - 审稿人只能操作分配给自己的 review；不存在与“非本人”统一返回 404。
    - Review.status 必须按 ReviewStatus.allowed_next 流转（declined -> completed 等返回 409）。
    """

    def __init__(
        self,
        dispatcher: Optional[NotificationDispatcher] = None,
        papers: Optional[PaperService] = None,
        profiles: Optional[ProfileService] = None,
    ):
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.papers = papers or PaperService(dispatcher=self.dispatcher)
        self.profiles = profiles or ProfileService()

    def _get_owned_review(self, *, caller: Dict[str, Any], review_id: str) -> Dict[str, Any]:
        rows = _rows(supabase_admin.table("reviews").select("*").eq("id", review_id).limit(1).execute())
        review = rows[0] if rows else None
        if not review or str(review.get("reviewer_id")) != str(caller["id"]):
            raise HTTPException(status_code=404, detail="Review not found or not authorized")
        return review

    def _compare_and_set(self, review: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
        """
        以读取时的 status 为条件更新；并发请求已推进状态（例如已拒绝）时 0 行命中 -> 409。
        """
        rows = _rows(
            supabase_admin.table("reviews")
            .update(updates)
            .eq("id", review["id"])
            .eq("status", review.get("status"))
            .execute()
        )
        if not rows:
            raise HTTPException(status_code=409, detail="Review status changed by another request, reload and retry")
        return rows[0]

    def _get_paper_or_none(self, paper_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not paper_id:
            return None
        rows = _rows(supabase_admin.table("papers").select("*").eq("id", paper_id).limit(1).execute())
        return rows[0] if rows else None

    # === 编辑侧 ===

    def assign_reviewer(self, *, caller: Dict[str, Any], data: ReviewAssignment) -> Dict[str, Any]:
        ensure_action(caller, "review:assign", "Only editors can assign reviewers")
        paper = self.papers.get_paper_row(data.paper_id)

        # 中文注释: 同一审稿人对同一稿件只允许一个未拒绝的任务（拒绝后可重新邀请）
        existing = _rows(
            supabase_admin.table("reviews")
            .select("id,status")
            .eq("paper_id", data.paper_id)
            .eq("reviewer_id", data.reviewer_id)
            .execute()
        )
        if any(r.get("status") != ReviewStatus.DECLINED.value for r in existing):
            raise _already_assigned()

        payload = {
            "paper_id": data.paper_id,
            "reviewer_id": data.reviewer_id,
            "assigned_by": caller["id"],
            "assigned_date": _now(),
            "due_date": data.due_date.isoformat(),
            "status": ReviewStatus.ASSIGNED.value,
        }
        try:
            rows = _rows(supabase_admin.table("reviews").insert(payload).execute())
        except APIError as e:
            # 中文注释: 并发指派时由部分唯一索引兜底
            if getattr(e, "code", None) == UNIQUE_VIOLATION:
                raise _already_assigned()
            raise
        if not rows:
            raise HTTPException(status_code=500, detail="Failed to create review assignment")
        review = rows[0]

        logger.info("Reviewer %s assigned to paper %s by user=%s", data.reviewer_id, data.paper_id, caller["id"])
        self.dispatcher.broadcast(WorkflowEvent.REVIEW_ASSIGNED, paper=paper, review=review)
        return review

    def list_available_reviewers(
        self,
        *,
        caller: Dict[str, Any],
        expertise: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        # 非编辑返回空列表（前端据此隐藏指派面板），不报错
        if not can_perform_action(action="reviewer:list", roles=caller.get("role")):
            return []
        return self.profiles.list_reviewers(expertise)

    # === 审稿人侧 ===

    def respond_to_assignment(self, *, caller: Dict[str, Any], review_id: str, accept: bool) -> Dict[str, Any]:
        review = self._get_owned_review(caller=caller, review_id=review_id)
        target = ReviewStatus.IN_PROGRESS.value if accept else ReviewStatus.DECLINED.value
        try:
            ensure_review_transition(review.get("status"), target)
        except InvalidStatusTransition as e:
            raise HTTPException(status_code=409, detail=str(e))

        updated = self._compare_and_set(review, {"status": target})
        logger.info("Review %s %s by reviewer=%s", review_id, target, caller["id"])

        if not accept:
            paper = self._get_paper_or_none(review.get("paper_id"))
            if paper:
                self.dispatcher.broadcast(WorkflowEvent.REVIEW_DECLINED, paper=paper, review=updated)
        return updated

    def submit_review(self, *, caller: Dict[str, Any], review_id: str, data: ReviewSubmission) -> Dict[str, Any]:
        review = self._get_owned_review(caller=caller, review_id=review_id)
        try:
            ensure_review_transition(review.get("status"), ReviewStatus.COMPLETED.value)
        except InvalidStatusTransition as e:
            raise HTTPException(status_code=409, detail=str(e))

        updates: Dict[str, Any] = {field: getattr(data, field) for field in SCORE_FIELDS}
        updates.update(
            {
                "comments": data.comments,
                "confidential_comments": data.confidential_comments,
                "recommendation": data.recommendation,
                "status": ReviewStatus.COMPLETED.value,
                "submitted_date": _now(),
            }
        )
        updated = self._compare_and_set(review, updates)
        logger.info("Review %s completed by reviewer=%s (%s)", review_id, caller["id"], data.recommendation)

        paper = self._get_paper_or_none(review.get("paper_id"))
        if paper:
            self.dispatcher.broadcast(WorkflowEvent.REVIEW_COMPLETED, paper=paper, review=updated)
        return updated

    def list_my_reviews(self, *, caller: Dict[str, Any], status: Optional[str] = None) -> List[Dict[str, Any]]:
        query = supabase_admin.table("reviews").select("*").eq("reviewer_id", caller["id"])
        if status:
            query = query.eq("status", status)
        reviews = _rows(query.order("assigned_date", desc=True).execute())
        if not reviews:
            return []

        paper_ids = sorted({str(r["paper_id"]) for r in reviews if r.get("paper_id")})
        papers = _rows(supabase_admin.table("papers").select("*").in_("id", paper_ids).execute()) if paper_ids else []
        decorated = {str(p["id"]): p for p in self.papers.decorate(papers)}

        return [{**r, "paper": decorated.get(str(r.get("paper_id")))} for r in reviews]
