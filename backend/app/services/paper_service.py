from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from app.core.role_matrix import can_perform_action
from app.core.roles import ensure_action
from app.lib.api_client import supabase_admin
from app.models.paper import (
    DECISION_TARGET_STATUS,
    InvalidStatusTransition,
    PaperStatus,
    ensure_paper_transition,
)
from app.schemas.paper import (
    EditorialDecisionCreate,
    PaperRevisionCreate,
    PaperStatusUpdate,
    PaperSubmission,
)
from app.services.notification_dispatcher import NotificationDispatcher, WorkflowEvent
from app.services.profile_service import UNKNOWN_NAME, display_name, load_profiles
from app.services.storage_service import UploadTarget, create_upload_target, resolve_file_urls

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 20
ANONYMOUS_REVIEWER = "Anonymous"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _first(resp: Any) -> Optional[Dict[str, Any]]:
    rows = getattr(resp, "data", None) or []
    return rows[0] if rows else None


def _conflict(e: InvalidStatusTransition) -> HTTPException:
    return HTTPException(status_code=409, detail=str(e))


def _stale() -> HTTPException:
    return HTTPException(status_code=409, detail="Paper status changed by another request, reload and retry")


class PaperService:
    """
    稿件投稿 / 列表 / 详情 / 检索 / 状态流转 / 编辑决定 / 修回

    中文注释:
    - 角色判断统一走 role_matrix（ensure_action / can_perform_action）。
    - 状态流转统一走 ensure_paper_transition，非法流转返回 409。
    - 通知在主写入之后通过 NotificationDispatcher 广播。
    """

    def __init__(self, dispatcher: Optional[NotificationDispatcher] = None):
        self.dispatcher = dispatcher or NotificationDispatcher()

    # === 内部工具 ===

    def get_paper_row(self, paper_id: str) -> Dict[str, Any]:
        resp = supabase_admin.table("papers").select("*").eq("id", paper_id).limit(1).execute()
        paper = _first(resp)
        if not paper:
            raise HTTPException(status_code=404, detail="Paper not found")
        return paper

    def _compare_and_set(
        self,
        paper_id: str,
        expected_status: Optional[str],
        updates: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        仅当 status 仍为读取时的值才写入；并发请求已改动状态时 0 行命中，返回 409。
        """
        resp = (
            supabase_admin.table("papers")
            .update(updates)
            .eq("id", paper_id)
            .eq("status", expected_status)
            .execute()
        )
        updated = _first(resp)
        if not updated:
            logger.info("Stale status write on paper %s (expected %s)", paper_id, expected_status)
            raise _stale()
        return updated

    def decorate(
        self,
        papers: List[Dict[str, Any]],
        *,
        with_file_url: bool = True,
    ) -> List[Dict[str, Any]]:
        """
        为稿件补齐 author_name / file_url（批量 join，避免逐条查询 profiles）。
        """
        if not papers:
            return []
        profiles = load_profiles(p.get("author_id") for p in papers)
        urls = resolve_file_urls(p.get("file_id") for p in papers) if with_file_url else {}
        out: List[Dict[str, Any]] = []
        for paper in papers:
            row = {
                **paper,
                "author_name": display_name(
                    profiles.get(str(paper.get("author_id"))),
                    fallback=paper.get("author_email") or UNKNOWN_NAME,
                ),
            }
            if with_file_url:
                row["file_url"] = urls.get(paper.get("file_id")) if paper.get("file_id") else None
            out.append(row)
        return out

    # === 投稿 ===

    def create_upload_url(self, *, caller: Dict[str, Any]) -> UploadTarget:
        return create_upload_target(user_id=caller["id"])

    def submit_paper(self, *, caller: Dict[str, Any], data: PaperSubmission) -> Dict[str, Any]:
        now = _now()
        payload = {
            "title": data.title,
            "abstract": data.abstract,
            "keywords": data.keywords,
            "author_id": caller["id"],
            "author_email": caller.get("email"),
            "co_authors": data.co_authors,
            "file_id": data.file_id,
            "file_name": data.file_name,
            "status": PaperStatus.SUBMITTED.value,
            "submission_date": now,
            "category": data.category,
            "version": 1,
        }
        paper = _first(supabase_admin.table("papers").insert(payload).execute())
        if not paper:
            raise HTTPException(status_code=500, detail="Failed to create paper")

        if data.file_id:
            supabase_admin.table("paper_versions").insert(
                {
                    "paper_id": paper["id"],
                    "version": 1,
                    "file_id": data.file_id,
                    "file_name": data.file_name or "manuscript.pdf",
                    "changes": None,
                    "upload_date": now,
                }
            ).execute()

        logger.info("Paper %s submitted by user=%s", paper["id"], caller["id"])
        self.dispatcher.broadcast(WorkflowEvent.PAPER_SUBMITTED, paper=paper)
        return paper

    # === 查询 ===

    def list_papers(self, *, caller: Dict[str, Any], status: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        editor/admin 可见全部稿件；其他角色（包括尚未建 profile 的用户）只看自己投的稿。
        """
        query = supabase_admin.table("papers").select("*")
        if not can_perform_action(action="paper:view_all", roles=caller.get("role")):
            query = query.eq("author_id", caller["id"])
        if status:
            query = query.eq("status", status)
        resp = query.order("submission_date", desc=True).execute()
        return self.decorate(getattr(resp, "data", None) or [])

    def get_paper(self, *, caller: Dict[str, Any], paper_id: str) -> Dict[str, Any]:
        paper = self.get_paper_row(paper_id)
        decorated = self.decorate([paper])[0]

        reviews = (
            supabase_admin.table("reviews")
            .select("*")
            .eq("paper_id", paper_id)
            .order("assigned_date", desc=True)
            .execute()
        )
        review_rows = getattr(reviews, "data", None) or []
        reviewer_profiles = load_profiles(r.get("reviewer_id") for r in review_rows)

        # 中文注释: 保密意见只对编辑/管理员可见
        can_see_confidential = can_perform_action(action="paper:view_all", roles=caller.get("role"))
        decorated_reviews = []
        for review in review_rows:
            row = {
                **review,
                "reviewer_name": display_name(
                    reviewer_profiles.get(str(review.get("reviewer_id"))), fallback=ANONYMOUS_REVIEWER
                ),
            }
            if not can_see_confidential and str(review.get("reviewer_id")) != str(caller["id"]):
                row.pop("confidential_comments", None)
            decorated_reviews.append(row)

        decisions = (
            supabase_admin.table("editorial_decisions")
            .select("*")
            .eq("paper_id", paper_id)
            .order("decision_date", desc=False)
            .execute()
        )
        versions = (
            supabase_admin.table("paper_versions")
            .select("*")
            .eq("paper_id", paper_id)
            .order("version", desc=False)
            .execute()
        )

        return {
            **decorated,
            "reviews": decorated_reviews,
            "editorial_decisions": getattr(decisions, "data", None) or [],
            "versions": getattr(versions, "data", None) or [],
        }

    def search_papers(
        self,
        *,
        query: str,
        category: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        标题全文检索（Postgres websearch 语法），最多返回 SEARCH_LIMIT 条。
        """
        text = (query or "").strip()
        if not text:
            return []
        q = supabase_admin.table("papers").select("*").text_search(
            "title", text, options={"type": "websearch", "config": "english"}
        )
        if category:
            q = q.eq("category", category)
        if status:
            q = q.eq("status", status)
        resp = q.limit(SEARCH_LIMIT).execute()
        return self.decorate(getattr(resp, "data", None) or [], with_file_url=False)

    # === 编辑操作 ===

    def update_paper_status(
        self,
        *,
        caller: Dict[str, Any],
        paper_id: str,
        data: PaperStatusUpdate,
    ) -> Dict[str, Any]:
        ensure_action(caller, "paper:update_status", "Only editors can update paper status")
        if data.override:
            ensure_action(caller, "paper:override_status", "Only editors can override paper status")

        paper = self.get_paper_row(paper_id)
        target = PaperStatus(data.status).value
        if not data.override:
            try:
                ensure_paper_transition(paper.get("status"), target)
            except InvalidStatusTransition as e:
                raise _conflict(e)

        updates: Dict[str, Any] = {
            "status": target,
            "editor_id": data.editor_id or caller["id"],
        }
        if target == PaperStatus.PUBLISHED.value and not paper.get("published_date"):
            updates["published_date"] = _now()

        updated = self._compare_and_set(paper_id, paper.get("status"), updates)
        logger.info(
            "Paper %s status %s -> %s by user=%s (override=%s)",
            paper_id,
            paper.get("status"),
            target,
            caller["id"],
            data.override,
        )
        self.dispatcher.broadcast(WorkflowEvent.PAPER_STATUS_CHANGED, paper=updated, status=target)
        return updated

    def record_decision(
        self,
        *,
        caller: Dict[str, Any],
        paper_id: str,
        data: EditorialDecisionCreate,
    ) -> Dict[str, Any]:
        """
        追加一条编辑决定，并把稿件推进到对应状态。
        """
        ensure_action(caller, "paper:record_decision", "Only editors can record decisions")
        paper = self.get_paper_row(paper_id)
        target = DECISION_TARGET_STATUS[data.decision]
        try:
            ensure_paper_transition(paper.get("status"), target)
        except InvalidStatusTransition as e:
            raise _conflict(e)

        # 中文注释: 先按读取时的 status 推进稿件（compare-and-set），成功后再追加决定记录，避免并发下重复决定
        updates = {"status": target, "editor_id": paper.get("editor_id") or caller["id"]}
        updated = self._compare_and_set(paper_id, paper.get("status"), updates)

        decision = _first(
            supabase_admin.table("editorial_decisions")
            .insert(
                {
                    "paper_id": paper_id,
                    "editor_id": caller["id"],
                    "decision": data.decision,
                    "comments": data.comments,
                    "decision_date": _now(),
                }
            )
            .execute()
        )
        if not decision:
            raise HTTPException(status_code=500, detail="Failed to record decision")

        logger.info("Decision %s recorded on paper %s by user=%s", data.decision, paper_id, caller["id"])
        self.dispatcher.broadcast(WorkflowEvent.DECISION_RECORDED, paper=updated, decision=data.decision)
        return {"decision": decision, "paper": updated}

    # === 作者修回 ===

    def submit_revision(
        self,
        *,
        caller: Dict[str, Any],
        paper_id: str,
        data: PaperRevisionCreate,
    ) -> Dict[str, Any]:
        paper = self.get_paper_row(paper_id)
        if str(paper.get("author_id")) != str(caller["id"]):
            # 中文注释: 不区分“不存在”与“非本人”，避免泄露稿件存在性
            raise HTTPException(status_code=404, detail="Paper not found")
        if paper.get("status") != PaperStatus.REVISION_REQUESTED.value:
            raise HTTPException(status_code=409, detail="Paper is not awaiting revision")
        target = ensure_paper_transition(paper.get("status"), PaperStatus.SUBMITTED.value)

        next_version = int(paper.get("version") or 1) + 1
        updates = {
            "status": target,
            "version": next_version,
            "file_id": data.file_id,
            "file_name": data.file_name,
        }
        updated = self._compare_and_set(paper_id, paper.get("status"), updates)

        supabase_admin.table("paper_versions").insert(
            {
                "paper_id": paper_id,
                "version": next_version,
                "file_id": data.file_id,
                "file_name": data.file_name,
                "changes": data.changes,
                "upload_date": _now(),
            }
        ).execute()

        logger.info("Paper %s revised to v%d by user=%s", paper_id, next_version, caller["id"])
        self.dispatcher.broadcast(WorkflowEvent.REVISION_SUBMITTED, paper=updated)
        return updated
