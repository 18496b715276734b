from fastapi import APIRouter, Body, Depends, status

from app.core.auth_utils import get_current_user
from app.core.roles import require_action
from app.schemas.user import CategoryCreate
from app.services.profile_service import ProfileService

router = APIRouter(prefix="/categories", tags=["Categories"])


def get_category_service() -> ProfileService:
    return ProfileService()


@router.get("")
async def get_categories(
    _current_user: dict = Depends(get_current_user),
    service: ProfileService = Depends(get_category_service),
):
    return {"success": True, "data": service.list_categories()}


@router.post("/seed")
async def seed_categories(
    _current_user: dict = Depends(get_current_user),
    service: ProfileService = Depends(get_category_service),
):
    """
    初始化默认分类（幂等：已有分类时不写入）
    """
    created = service.seed_categories()
    return {"success": True, "seeded": len(created), "data": created}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_category(
    caller: dict = Depends(require_action("category:create", "Only admins can create categories")),
    req: CategoryCreate = Body(...),
    service: ProfileService = Depends(get_category_service),
):
    category = service.create_category(caller=caller, data=req)
    return {"success": True, "data": category}
