from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from app.core.roles import get_caller
from app.models.reviews import ReviewStatus
from app.schemas.review import ReviewAssignment, ReviewAssignmentResponse, ReviewSubmission
from app.services.review_service import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])


def get_review_service() -> ReviewService:
    return ReviewService()


@router.post("", status_code=status.HTTP_201_CREATED)
async def assign_reviewer(
    caller: dict = Depends(get_caller),
    req: ReviewAssignment = Body(...),
    service: ReviewService = Depends(get_review_service),
):
    """
    编辑指派审稿人（status=assigned），并通知审稿人
    """
    review = service.assign_reviewer(caller=caller, data=req)
    return {"success": True, "data": review}


@router.get("/reviewers")
async def get_available_reviewers(
    expertise: Optional[str] = Query(None, max_length=100),
    caller: dict = Depends(get_caller),
    service: ReviewService = Depends(get_review_service),
):
    """
    可指派的审稿人（非编辑返回空列表）
    """
    rows = service.list_available_reviewers(caller=caller, expertise=expertise)
    return {"success": True, "data": rows}


@router.get("/mine")
async def get_my_reviews(
    status: Optional[ReviewStatus] = Query(None),
    caller: dict = Depends(get_caller),
    service: ReviewService = Depends(get_review_service),
):
    rows = service.list_my_reviews(caller=caller, status=status.value if status else None)
    return {"success": True, "data": rows}


@router.post("/{review_id}/respond")
async def respond_to_review_assignment(
    review_id: str,
    caller: dict = Depends(get_caller),
    req: ReviewAssignmentResponse = Body(...),
    service: ReviewService = Depends(get_review_service),
):
    updated = service.respond_to_assignment(caller=caller, review_id=review_id, accept=req.accept)
    return {"success": True, "data": updated}


@router.post("/{review_id}/submit")
async def submit_review(
    review_id: str,
    caller: dict = Depends(get_caller),
    req: ReviewSubmission = Body(...),
    service: ReviewService = Depends(get_review_service),
):
    updated = service.submit_review(caller=caller, review_id=review_id, data=req)
    return {"success": True, "data": updated}
