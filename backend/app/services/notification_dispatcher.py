"""
Workflow notifications.

State-changing services write their primary row first and then raise a
:py:class:`WorkflowEvent` through :py:class:`NotificationDispatcher`:

- the dispatcher resolves the subscribers of the event (all editors, the
  paper's author, the paper's editor, the assigned reviewer);
- one notification is written per subscriber through
  :py:class:`~app.services.notification_service.NotificationService`.

Broadcast is best-effort: a failed notification write is logged and never
undoes the primary write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from app.core.role_matrix import EDITOR_ROLE
from app.lib.api_client import supabase_admin
from app.models.paper import PaperStatus
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class WorkflowEvent(str, Enum):
    PAPER_SUBMITTED = "paper_submitted"
    PAPER_STATUS_CHANGED = "paper_status_changed"
    DECISION_RECORDED = "decision_recorded"
    REVISION_SUBMITTED = "revision_submitted"
    REVIEW_ASSIGNED = "review_assigned"
    REVIEW_DECLINED = "review_declined"
    REVIEW_COMPLETED = "review_completed"


@dataclass(frozen=True)
class EventContext:
    paper: Dict[str, Any]
    review: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def title(self) -> str:
        return str(self.paper.get("title") or "Untitled")


@dataclass(frozen=True)
class NotificationTemplate:
    type: str
    title: str
    message: str


def list_editor_user_ids() -> List[str]:
    res = supabase_admin.table("profiles").select("user_id").eq("role", EDITOR_ROLE).execute()
    rows = getattr(res, "data", None) or []
    return [str(r["user_id"]) for r in rows if r.get("user_id")]


def _paper_author(ctx: EventContext) -> List[str]:
    author_id = ctx.paper.get("author_id")
    return [str(author_id)] if author_id else []


def _paper_editor(ctx: EventContext) -> List[str]:
    editor_id = ctx.paper.get("editor_id")
    return [str(editor_id)] if editor_id else []


def _assigned_reviewer(ctx: EventContext) -> List[str]:
    reviewer_id = (ctx.review or {}).get("reviewer_id")
    return [str(reviewer_id)] if reviewer_id else []


def _all_editors(ctx: EventContext) -> List[str]:
    return list_editor_user_ids()


SUBSCRIBERS: Dict[WorkflowEvent, Callable[[EventContext], List[str]]] = {
    WorkflowEvent.PAPER_SUBMITTED: _all_editors,
    WorkflowEvent.PAPER_STATUS_CHANGED: _paper_author,
    WorkflowEvent.DECISION_RECORDED: _paper_author,
    WorkflowEvent.REVISION_SUBMITTED: _paper_editor,
    WorkflowEvent.REVIEW_ASSIGNED: _assigned_reviewer,
    WorkflowEvent.REVIEW_DECLINED: _paper_editor,
    WorkflowEvent.REVIEW_COMPLETED: _paper_editor,
}


def _status_changed_template(ctx: EventContext) -> NotificationTemplate:
    status = str(ctx.extra.get("status") or ctx.paper.get("status") or "")
    if status == PaperStatus.PUBLISHED.value:
        return NotificationTemplate(
            "paper_published",
            "Paper Published",
            f'Your paper "{ctx.title}" has been published',
        )
    return NotificationTemplate(
        "decision_made",
        "Paper Status Updated",
        f'Your paper "{ctx.title}" status has been updated to {status}',
    )


def _decision_template(ctx: EventContext) -> NotificationTemplate:
    decision = str(ctx.extra.get("decision") or "")
    if decision == "accept":
        return NotificationTemplate(
            "paper_accepted",
            "Paper Accepted",
            f'Your paper "{ctx.title}" has been accepted',
        )
    if decision in {"minor_revision", "major_revision"}:
        label = decision.replace("_", " ")
        return NotificationTemplate(
            "revision_requested",
            "Revision Requested",
            f'The editor requested a {label} of your paper "{ctx.title}"',
        )
    return NotificationTemplate(
        "decision_made",
        "Editorial Decision",
        f'A decision has been made on your paper "{ctx.title}"',
    )


TEMPLATES: Dict[WorkflowEvent, Callable[[EventContext], NotificationTemplate]] = {
    WorkflowEvent.PAPER_SUBMITTED: lambda ctx: NotificationTemplate(
        "paper_submitted",
        "New Paper Submission",
        f'New paper "{ctx.title}" has been submitted',
    ),
    WorkflowEvent.PAPER_STATUS_CHANGED: _status_changed_template,
    WorkflowEvent.DECISION_RECORDED: _decision_template,
    WorkflowEvent.REVISION_SUBMITTED: lambda ctx: NotificationTemplate(
        "paper_submitted",
        "Revised Paper Submitted",
        f'A revised version (v{ctx.paper.get("version")}) of "{ctx.title}" has been submitted',
    ),
    WorkflowEvent.REVIEW_ASSIGNED: lambda ctx: NotificationTemplate(
        "review_assigned",
        "Review Assignment",
        f'You have been assigned to review "{ctx.title}"',
    ),
    WorkflowEvent.REVIEW_DECLINED: lambda ctx: NotificationTemplate(
        "review_assigned",
        "Review Declined",
        f'Reviewer declined to review "{ctx.title}"',
    ),
    WorkflowEvent.REVIEW_COMPLETED: lambda ctx: NotificationTemplate(
        "review_completed",
        "Review Completed",
        f'Review for "{ctx.title}" has been completed',
    ),
}


class NotificationDispatcher:
    """
    事件 -> 订阅者 广播

    中文注释:
    - 订阅者解析（SUBSCRIBERS）与消息模板（TEMPLATES）都是显式表，新增事件只需各加一行。
    - 主写入已完成后才调用 broadcast；这里的任何失败都不会回滚主流程。
    """

    def __init__(self, notifications: Optional[NotificationService] = None):
        self.notifications = notifications or NotificationService()

    def resolve_recipients(self, event: WorkflowEvent, ctx: EventContext) -> List[str]:
        resolver = SUBSCRIBERS[event]
        seen: list[str] = []
        for user_id in resolver(ctx):
            if user_id and user_id not in seen:
                seen.append(user_id)
        return seen

    def broadcast(
        self,
        event: WorkflowEvent,
        *,
        paper: Dict[str, Any],
        review: Optional[Dict[str, Any]] = None,
        **extra: Any,
    ) -> List[Dict[str, Any]]:
        ctx = EventContext(paper=paper, review=review, extra=extra)
        try:
            recipients = self.resolve_recipients(event, ctx)
        except Exception as e:
            logger.error("Failed to resolve recipients for %s (paper=%s): %s", event.value, paper.get("id"), e)
            return []

        if not recipients:
            logger.info("No subscribers for %s (paper=%s)", event.value, paper.get("id"))
            return []

        template = TEMPLATES[event](ctx)
        created: List[Dict[str, Any]] = []
        for user_id in recipients:
            row = self.notifications.create_notification(
                user_id=user_id,
                type=template.type,
                title=template.title,
                message=template.message,
                paper_id=paper.get("id"),
                review_id=(review or {}).get("id"),
            )
            if row is not None:
                created.append(row)
        logger.info(
            "Broadcast %s for paper=%s: %d/%d notifications",
            event.value,
            paper.get("id"),
            len(created),
            len(recipients),
        )
        return created
