from typing import Optional

from fastapi import APIRouter, Body, Depends

from app.core.auth_utils import get_current_user
from app.core.role_matrix import list_allowed_actions
from app.core.roles import get_current_profile
from app.schemas.user import ProfileUpsert
from app.services.profile_service import ProfileService

router = APIRouter(prefix="/profiles", tags=["User Profile"])


def get_profile_service() -> ProfileService:
    return ProfileService()


@router.get("/me")
async def get_my_profile(
    profile: Optional[dict] = Depends(get_current_profile),
):
    """
    获取当前登录用户的 profile；尚未建档时 data 为 null（前端据此进入建档页）
    """
    actions = sorted(list_allowed_actions((profile or {}).get("role")))
    return {"success": True, "data": profile, "allowed_actions": actions}


@router.post("/me")
async def create_profile(
    current_user: dict = Depends(get_current_user),
    req: ProfileUpsert = Body(...),
    service: ProfileService = Depends(get_profile_service),
):
    """
    创建或覆盖当前用户的 profile（按 user_id upsert，不会产生第二条记录）
    """
    profile = service.upsert_profile(
        user_id=current_user["id"],
        email=current_user.get("email"),
        data=req,
    )
    return {"success": True, "data": profile}
