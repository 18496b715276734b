import logging
from typing import Any, Callable, Optional

from fastapi import Depends, HTTPException, status

from app.core.auth_utils import get_current_user
from app.core.role_matrix import can_perform_action
from app.lib.api_client import supabase_admin

logger = logging.getLogger(__name__)


def fetch_profile(user_id: str) -> Optional[dict]:
    """
    按 auth user id 读取 profiles 记录（不存在返回 None）。
    """
    resp = supabase_admin.table("profiles").select("*").eq("user_id", user_id).limit(1).execute()
    rows = getattr(resp, "data", None) or []
    return rows[0] if rows else None


def build_caller(user: dict, profile: Optional[dict]) -> dict:
    return {
        "id": user["id"],
        "email": user.get("email"),
        "role": (profile or {}).get("role"),
        "profile": profile,
    }


async def get_current_profile(current_user: dict = Depends(get_current_user)) -> Optional[dict]:
    """
    获取当前用户的 profile（含 role）。

    中文注释:
    1) 与旧实现不同，这里不自动创建 profile：首次登录由前端引导调用 POST /profiles/me。
    2) 每次请求都重新查询，不做会话级角色缓存，角色变更立即生效。
    """
    return fetch_profile(current_user["id"])


async def get_caller(
    current_user: dict = Depends(get_current_user),
    profile: Optional[dict] = Depends(get_current_profile),
) -> dict:
    """
    service 层统一使用的调用者上下文：{"id", "email", "role", "profile"}
    """
    return build_caller(current_user, profile)


def ensure_action(caller: dict, action: str, detail: Optional[str] = None) -> None:
    if not can_perform_action(action=action, roles=caller.get("role")):
        logger.info("Denied %s for user=%s role=%s", action, caller.get("id"), caller.get("role"))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail or f"Insufficient role for {action}",
        )


def require_action(action: str, detail: Optional[str] = None) -> Callable[..., Any]:
    """
    路由级权限依赖工厂

    使用方式:
        @router.post("/categories")
        async def endpoint(caller = Depends(require_action("category:create"))):
            ...
    """

    async def _dep(caller: dict = Depends(get_caller)) -> dict:
        ensure_action(caller, action, detail)
        return caller

    return _dep
