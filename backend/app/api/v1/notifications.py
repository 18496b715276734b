from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.auth_utils import get_current_user
from app.services.notification_service import NotificationService

router = APIRouter(tags=["Notifications"])


def get_notification_service() -> NotificationService:
    return NotificationService()


@router.get("/notifications")
async def list_notifications(
    unread_only: bool = Query(False),
    current_user: dict = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """
    获取当前用户的通知列表（按创建时间倒序）
    """
    rows = service.list_for_user(user_id=current_user["id"], unread_only=unread_only)
    unread = sum(1 for r in rows if not r.get("read"))
    return {"success": True, "data": rows, "unread_count": unread}


@router.patch("/notifications/{id}/read")
async def mark_notification_read(
    id: str,
    current_user: dict = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """
    将通知标记为已读（仅允许更新自己的记录）
    """
    updated = service.mark_read(user_id=current_user["id"], notification_id=id)
    if updated is None:
        # 中文注释: 不存在或不属于当前用户，统一返回 404
        raise HTTPException(status_code=404, detail="Notification not found or not authorized")
    return {"success": True, "data": updated}
