from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError
from pydantic import ValidationError

from app.lib.api_client import supabase_admin
from app.models.notification import NotificationCreate

logger = logging.getLogger(__name__)


class NotificationService:
    """
    通知服务：封装 notifications 表的读写

    中文注释:
    1) 写入是主流程之后的“副作用”，失败只记日志、返回 None，不影响主流程。
    2) 读取/标记已读时按 user_id 过滤，保证只能看到/修改自己的通知。
    3) 通知一旦创建只允许翻转 read 字段。
    """

    def create_notification(
        self,
        *,
        user_id: str,
        type: str,
        title: str,
        message: str,
        paper_id: Optional[str] = None,
        review_id: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        try:
            data = NotificationCreate(
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                paper_id=paper_id,
                review_id=review_id,
            )
        except ValidationError as e:
            logger.error("[Notifications] invalid payload for user=%s: %s", user_id, e)
            return None

        payload = {
            **data.model_dump(),
            "read": False,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            res = supabase_admin.table("notifications").insert(payload).execute()
        except APIError as e:
            logger.warning("[Notifications] insert rejected for user=%s: %s", user_id, e)
            return None
        except Exception as e:
            logger.error("[Notifications] insert failed for user=%s: %s", user_id, e)
            return None
        rows = getattr(res, "data", None) or []
        return rows[0] if rows else None

    def list_for_user(self, *, user_id: str, unread_only: bool = False) -> List[Dict[str, Any]]:
        query = supabase_admin.table("notifications").select("*").eq("user_id", user_id)
        if unread_only:
            query = query.eq("read", False)
        res = query.order("created_at", desc=True).execute()
        return getattr(res, "data", None) or []

    def mark_read(self, *, user_id: str, notification_id: str) -> Optional[Dict[str, Any]]:
        """
        将通知标记为已读；不存在或不属于当前用户时返回 None。
        """
        res = (
            supabase_admin.table("notifications")
            .select("*")
            .eq("id", notification_id)
            .limit(1)
            .execute()
        )
        rows = getattr(res, "data", None) or []
        existing = rows[0] if rows else None
        if not existing or str(existing.get("user_id")) != str(user_id):
            return None
        if existing.get("read") is True:
            return existing

        updated = (
            supabase_admin.table("notifications")
            .update({"read": True})
            .eq("id", notification_id)
            .eq("user_id", user_id)
            .execute()
        )
        out = getattr(updated, "data", None) or []
        return out[0] if out else {**existing, "read": True}
